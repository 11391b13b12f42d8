# Copyright DataStax, Inc.
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
# http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.

from __future__ import annotations

import asyncio
import logging
from typing import Any

import pytest
from pytest_httpserver import HTTPServer

from docapi import AsyncCollection
from docapi.event_observers import (
    ObservableError,
    ObservableEvent,
    ObservableEventType,
    ObservableRequest,
    ObservableResponse,
    ObservableWarning,
    Observer,
    dispatch_event,
    event_collector,
)
from docapi.exceptions import (
    DataAPIErrorDescriptor,
    DataAPIWarningDescriptor,
)

OBS_ERR = ObservableError(
    error=DataAPIErrorDescriptor(
        {
            "title": "error_title",
            "errorCode": "error_errorCode",
            "message": "error_message",
        }
    ),
)
OBS_WRN = ObservableWarning(
    warning=DataAPIWarningDescriptor(
        {
            "title": "warning_title",
            "errorCode": "warning_errorCode",
            "message": "warning_message",
        }
    ),
)
OBS_RSP_1 = ObservableResponse(body='{"k_resp":"v1"}', status_code=200)
OBS_RSP_2 = ObservableResponse(body='{"k_resp":"v2"}', status_code=200)
OBS_REQ = ObservableRequest(
    payload='{"k_req":"v"}',
    http_method="POST",
    url="http://localhost/v1",
    query_parameters=None,
    redacted_headers=None,
    dev_ops_api=False,
)


class _FailingObserver(Observer):
    def receive(
        self,
        event: ObservableEvent,
        sender: Any = None,
        function_name: str | None = None,
        request_id: str | None = None,
    ) -> None:
        raise RuntimeError("observer failure")


class TestEventObservers:
    @pytest.mark.describe("test of custom observer receiving events")
    def test_custom_observer(self) -> None:
        class MyObserver(Observer):
            def __init__(
                self, evt_map: dict[ObservableEventType, list[ObservableEvent]]
            ) -> None:
                self.evt_map = evt_map

            def receive(
                self,
                event: ObservableEvent,
                sender: Any = None,
                function_name: str | None = None,
                request_id: str | None = None,
            ) -> None:
                self.evt_map[event.event_type] = self.evt_map.get(
                    event.event_type, []
                ) + [event]

        received_events: dict[ObservableEventType, list[ObservableEvent]] = {}
        my_obs = MyObserver(received_events)

        my_obs.receive(OBS_RSP_1)
        my_obs.receive(OBS_ERR)
        my_obs.receive(OBS_WRN)
        my_obs.receive(OBS_RSP_2)
        my_obs.receive(OBS_REQ)

        assert received_events[ObservableEventType.ERROR] == [OBS_ERR]
        assert received_events[ObservableEventType.WARNING] == [OBS_WRN]
        assert received_events[ObservableEventType.RESPONSE] == [OBS_RSP_1, OBS_RSP_2]
        assert received_events[ObservableEventType.REQUEST] == [OBS_REQ]
        assert len(received_events) == 4

    @pytest.mark.describe("test of observer from event dict")
    def test_observer_from_evdict(self) -> None:
        received_events: dict[ObservableEventType, list[ObservableEvent]] = {}
        my_obs = Observer.from_event_dict(received_events)

        my_obs.receive(OBS_RSP_1)
        my_obs.receive(OBS_ERR)
        my_obs.receive(OBS_WRN)
        my_obs.receive(OBS_RSP_2)
        my_obs.receive(OBS_REQ)

        assert received_events[ObservableEventType.ERROR] == [OBS_ERR]
        assert received_events[ObservableEventType.RESPONSE] == [OBS_RSP_1, OBS_RSP_2]
        assert len(received_events) == 4

        # now with filtering by event type
        received_events_f: dict[ObservableEventType, list[ObservableEvent]] = {}
        my_obs_f = Observer.from_event_dict(
            received_events_f,
            event_types=(ObservableEventType.RESPONSE, ObservableEventType.WARNING),
        )

        my_obs_f.receive(OBS_RSP_1)
        my_obs_f.receive(OBS_ERR)
        my_obs_f.receive(OBS_WRN)
        my_obs_f.receive(OBS_RSP_2)
        my_obs_f.receive(OBS_REQ)

        assert received_events_f[ObservableEventType.RESPONSE] == [
            OBS_RSP_1,
            OBS_RSP_2,
        ]
        assert received_events_f[ObservableEventType.WARNING] == [OBS_WRN]
        assert len(received_events_f) == 2

    @pytest.mark.describe("test of observer from event list")
    def test_observer_from_evlist(self) -> None:
        ev_list: list[ObservableEvent] = []
        my_obs = Observer.from_event_list(
            ev_list,
            event_types=(ObservableEventType.RESPONSE, ObservableEventType.WARNING),
        )

        my_obs.receive(OBS_RSP_1)
        my_obs.receive(OBS_ERR)
        my_obs.receive(OBS_WRN)
        my_obs.receive(OBS_RSP_2)
        my_obs.receive(OBS_REQ)

        assert ev_list == [OBS_RSP_1, OBS_WRN, OBS_RSP_2]

    @pytest.mark.describe("test of observer filtering with event types as strings")
    def test_observer_string_event_types(self) -> None:
        ev_list: list[ObservableEvent] = []
        my_obs = Observer.from_event_list(ev_list, event_types=["error", "WARNING"])

        my_obs.receive(OBS_RSP_1)
        my_obs.receive(OBS_ERR)
        my_obs.receive(OBS_WRN)

        assert ev_list == [OBS_ERR, OBS_WRN]
        with pytest.raises(ValueError):
            Observer.from_event_list(ev_list, event_types=["nonsense"])


class TestEventDispatching:
    @pytest.mark.describe("test of event dispatching outside of an event loop")
    def test_dispatch_without_loop(self) -> None:
        ev_list: list[ObservableEvent] = []
        dispatch_event([Observer.from_event_list(ev_list)], OBS_REQ)
        assert ev_list == [OBS_REQ]

    @pytest.mark.describe("test of event dispatching within an event loop")
    async def test_dispatch_within_loop(self) -> None:
        ev_list: list[ObservableEvent] = []
        dispatch_event([Observer.from_event_list(ev_list)], OBS_REQ)
        dispatch_event([Observer.from_event_list(ev_list)], OBS_RSP_1)
        # delivery happens at the next suspension point
        assert ev_list == []
        await asyncio.sleep(0)
        assert ev_list == [OBS_REQ, OBS_RSP_1]

    @pytest.mark.describe("test of a failing observer")
    async def test_failing_observer(self, caplog: pytest.LogCaptureFixture) -> None:
        ev_list: list[ObservableEvent] = []
        observers = [_FailingObserver(), Observer.from_event_list(ev_list)]
        with caplog.at_level(logging.ERROR):
            dispatch_event(observers, OBS_ERR)
            await asyncio.sleep(0)
        assert ev_list == [OBS_ERR]
        error_records = [
            record
            for record in caplog.records
            if record.levelno == logging.ERROR
            if "_FailingObserver" in record.getMessage()
        ]
        assert len(error_records) == 1
        assert error_records[0].exc_info is not None

    @pytest.mark.describe("test of event_collector on a collection")
    async def test_event_collector(
        self,
        httpserver: HTTPServer,
        async_collection: AsyncCollection[dict[str, Any]],
        event_list: list[ObservableEvent],
    ) -> None:
        httpserver.expect_oneshot_request("/v1/test_ks/test_coll").respond_with_json(
            {"status": {"count": 3}}
        )
        collected: dict[ObservableEventType, list[ObservableEvent]] = {}
        with event_collector(
            async_collection,
            destination=collected,
            event_types=[ObservableEventType.RESPONSE],
        ) as observed_collection:
            await observed_collection.estimated_document_count()
        await asyncio.sleep(0)

        assert set(collected.keys()) == {ObservableEventType.RESPONSE}
        response_event = collected[ObservableEventType.RESPONSE][0]
        assert isinstance(response_event, ObservableResponse)
        assert response_event.status_code == 200
        # the observers of the original collection see the events as well
        assert {ev.event_type for ev in event_list} == {
            ObservableEventType.REQUEST,
            ObservableEventType.RESPONSE,
        }

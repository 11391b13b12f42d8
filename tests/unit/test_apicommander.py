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
import json
import logging
import time

import pytest
from pytest_httpserver import HTTPServer
from werkzeug import Request, Response

from docapi.event_observers import (
    ObservableEvent,
    ObservableEventType,
    ObservableRequest,
    Observer,
)
from docapi.exceptions import (
    DataAPIHttpException,
    DataAPIResponseException,
    DataAPITimeoutException,
    DevOpsAPIHttpException,
    DevOpsAPIResponseException,
    UnexpectedDataAPIResponseException,
    UnexpectedDevOpsAPIResponseException,
    _TimeoutContext,
)
from docapi.utils.api_commander import APICommander
from docapi.utils.request_tools import HttpMethod

ERROR_RESPONSE = json.dumps({"errors": [{"title": "Error", "errorCode": "E_C"}]})


class TestAPICommander:
    @pytest.mark.describe("test of APICommander equality")
    def test_apicommander_equality(self) -> None:
        cmd1 = APICommander(
            api_endpoint="api_endpoint1",
            path="path1",
            headers={"h": "headers1"},
            callers=[("c", "v")],
            redacted_header_names=["redacted_header_names1"],
            dev_ops_api=True,
        )
        cmd2 = APICommander(
            api_endpoint="api_endpoint1/",
            path="/path1",
            headers={"h": "headers1"},
            callers=[("c", "v")],
            redacted_header_names=["redacted_header_names1"],
            dev_ops_api=True,
        )
        assert cmd1 == cmd2
        assert cmd1.full_path == "api_endpoint1/path1"
        assert cmd1 != APICommander(
            api_endpoint="api_endpoint1",
            path="path1",
            headers={"h": "headers1"},
            callers=[("c", "v")],
            redacted_header_names=["redacted_header_names1"],
            dev_ops_api=False,
        )

    @pytest.mark.describe("test of APICommander request")
    async def test_apicommander_request(self, httpserver: HTTPServer) -> None:
        base_endpoint = httpserver.url_for("/")
        base_path = "/base"
        extra_path = "extra/path"
        cmd = APICommander(
            api_endpoint=base_endpoint,
            path=base_path,
            headers={"h": "v"},
            callers=[("cn0", "cv0"), ("cn1", "cv1")],
        )

        def hv_matcher(hk: str, hv: str | None, ev: str) -> bool:
            if hk == "v":
                return hv == ev
            elif hk.lower() == "user-agent":
                return hv is not None and hv.startswith(ev)
            else:
                return True

        httpserver.expect_oneshot_request(
            base_path,
            method=HttpMethod.PUT,
            data="{}",
            headers={
                "h": "v",
                "User-Agent": "cn0/cv0 cn1/cv1",
            },
            header_value_matcher=hv_matcher,
        ).respond_with_json({"r": 1})
        resp_b = await cmd.async_request(
            http_method=HttpMethod.PUT,
            payload={},
        )
        assert resp_b == {"r": 1}

        httpserver.expect_oneshot_request(
            "/".join([base_path, extra_path]),
            method=HttpMethod.DELETE,
            data="{}",
        ).respond_with_json({"r": 2})
        resp_e = await cmd.async_request(
            http_method=HttpMethod.DELETE,
            payload={},
            additional_path=extra_path,
        )
        assert resp_e == {"r": 2}

    @pytest.mark.describe("test of APICommander exceptions")
    async def test_apicommander_exceptions(self, httpserver: HTTPServer) -> None:
        base_endpoint = httpserver.url_for("/")
        base_path = "/base"
        cmd = APICommander(
            api_endpoint=base_endpoint,
            path=base_path,
            dev_ops_api=False,
        )

        httpserver.expect_oneshot_request(
            base_path,
        ).respond_with_data("{unparseable")
        with pytest.raises(UnexpectedDataAPIResponseException):
            await cmd.async_request()

        httpserver.expect_oneshot_request(
            base_path,
        ).respond_with_data(ERROR_RESPONSE)
        with pytest.raises(DataAPIResponseException) as exc_info:
            await cmd.async_request()
        assert str(exc_info.value) == "Error (E_C)"

        httpserver.expect_oneshot_request(
            base_path,
        ).respond_with_data(ERROR_RESPONSE)
        soft_response = await cmd.async_request(raise_api_errors=False)
        assert soft_response["errors"][0]["errorCode"] == "E_C"

        httpserver.expect_oneshot_request(
            base_path,
        ).respond_with_data(ERROR_RESPONSE, status=500)
        with pytest.raises(DataAPIHttpException) as http_exc_info:
            await cmd.async_request()
        assert http_exc_info.value.error_descriptors[0].error_code == "E_C"

    @pytest.mark.describe("test of APICommander DevOps exceptions")
    async def test_apicommander_devops_exceptions(
        self, httpserver: HTTPServer
    ) -> None:
        base_endpoint = httpserver.url_for("/")
        base_path = "/base"
        cmd = APICommander(
            api_endpoint=base_endpoint,
            path=base_path,
            dev_ops_api=True,
        )

        httpserver.expect_oneshot_request(
            base_path,
        ).respond_with_data("{unparseable")
        with pytest.raises(UnexpectedDevOpsAPIResponseException):
            await cmd.async_request()

        httpserver.expect_oneshot_request(
            base_path,
        ).respond_with_data(ERROR_RESPONSE)
        with pytest.raises(DevOpsAPIResponseException):
            await cmd.async_request()

        httpserver.expect_oneshot_request(
            base_path,
        ).respond_with_data(ERROR_RESPONSE)
        await cmd.async_request(raise_api_errors=False)

        httpserver.expect_oneshot_request(
            base_path,
        ).respond_with_data(ERROR_RESPONSE, status=500)
        with pytest.raises(DevOpsAPIHttpException):
            await cmd.async_request()

    @pytest.mark.describe("test of APICommander timeouts")
    async def test_apicommander_timeout(self, httpserver: HTTPServer) -> None:
        def _slow_handler(request: Request) -> Response:
            time.sleep(0.5)
            return Response("{}", content_type="application/json")

        base_path = "/slow"
        cmd = APICommander(api_endpoint=httpserver.url_for("/"), path=base_path)
        httpserver.expect_oneshot_request(base_path).respond_with_handler(
            _slow_handler
        )
        with pytest.raises(DataAPITimeoutException) as exc_info:
            await cmd.async_request(
                payload={"cmd": {}},
                timeout_context=_TimeoutContext(
                    request_ms=50, label="request_timeout_ms"
                ),
            )
        assert "request_timeout_ms" in str(exc_info.value)

    @pytest.mark.describe("test of APICommander server warnings")
    async def test_apicommander_server_warnings(
        self,
        caplog: pytest.LogCaptureFixture,
        httpserver: HTTPServer,
    ) -> None:
        base_endpoint = httpserver.url_for("/")
        base_path = "/base"
        cmd = APICommander(
            api_endpoint=base_endpoint,
            path=base_path,
            dev_ops_api=False,
        )

        httpserver.expect_oneshot_request(
            base_path,
        ).respond_with_json({"status": {"warnings": ["THE_WARNING", "THE_WARNING_2"]}})
        with caplog.at_level(logging.WARNING):
            await cmd.async_request()
            w_records = [
                record
                for record in caplog.records
                if record.levelno == logging.WARNING
                if "THE_WARNING" in record.msg
            ]
            assert len(w_records) == 2
        caplog.clear()

        ops_base_path = "/base_ops"
        devops_cmd = APICommander(
            api_endpoint=base_endpoint,
            path=ops_base_path,
            dev_ops_api=True,
        )
        httpserver.expect_oneshot_request(
            ops_base_path,
        ).respond_with_json({"status": {"warnings": ["THE_WARNING"]}})
        with caplog.at_level(logging.WARNING):
            await devops_cmd.async_request()
            w_records = [
                record
                for record in caplog.records
                if record.levelno == logging.WARNING
                if "THE_WARNING" in record.msg
            ]
            assert len(w_records) == 0
        caplog.clear()

    @pytest.mark.describe("test of APICommander request events")
    async def test_apicommander_events(
        self,
        httpserver: HTTPServer,
        event_list: list[ObservableEvent],
        observer: Observer,
    ) -> None:
        cmd = APICommander(
            api_endpoint=httpserver.url_for("/"),
            path="/base",
            headers={"Token": "secret-token"},
            event_observers={"o": observer},
        )
        httpserver.expect_oneshot_request("/base").respond_with_json(
            {
                "status": {"warnings": [{"message": "careful"}]},
                "errors": [{"message": "oops"}],
            }
        )
        await cmd.async_request(payload={"cmd": {}}, raise_api_errors=False)

        await asyncio.sleep(0)
        assert [ev.event_type for ev in event_list] == [
            ObservableEventType.REQUEST,
            ObservableEventType.RESPONSE,
            ObservableEventType.ERROR,
            ObservableEventType.WARNING,
        ]
        request_event = event_list[0]
        assert isinstance(request_event, ObservableRequest)
        assert request_event.payload == '{"cmd":{}}'
        assert request_event.redacted_headers is not None
        assert request_event.redacted_headers["Token"] != "secret-token"

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
from typing import Any

import pytest

from docapi.admin import (
    LongRunningOperation,
    PollOutcome,
    poll_until_complete,
    status_sequence_predicate,
)
from docapi.event_observers import (
    ObservableEvent,
    ObservableEventType,
    ObservableOperationPolling,
    Observer,
)
from docapi.exceptions import (
    DataAPITimeoutException,
    DataAPIUnexpectedStatusException,
    DevOpsAPITimeoutException,
    DevOpsAPIUnexpectedStatusException,
    MultiCallTimeoutManager,
)

FAST_POLL_S = 0.001


class _StatusSequence:
    """A stand-in status check returning the given statuses in turn."""

    def __init__(self, statuses: list[Any]) -> None:
        self.statuses = list(statuses)
        self.calls = 0

    async def __call__(self) -> Any:
        status = self.statuses[min(self.calls, len(self.statuses) - 1)]
        self.calls += 1
        return status


def _operation(
    *,
    timeout_ms: int | None = None,
    dev_ops_api: bool = False,
    poll_interval_s: float = FAST_POLL_S,
    blocking: bool = True,
    observer: Observer | None = None,
) -> LongRunningOperation:
    return LongRunningOperation(
        operation_name="test_operation",
        status_predicate=status_sequence_predicate(
            pending={"PENDING", "INITIALIZING"},
            complete={"ACTIVE"},
        ),
        poll_interval_s=poll_interval_s,
        blocking=blocking,
        timeout_manager=MultiCallTimeoutManager(
            overall_timeout_ms=timeout_ms,
            dev_ops_api=dev_ops_api,
        ),
        event_observers=[observer] if observer else [],
    )


class TestStatusPredicates:
    @pytest.mark.describe("test of status sequence predicates")
    def test_status_sequence_predicate(self) -> None:
        predicate = status_sequence_predicate(
            pending={"TERMINATING"},
            complete={None, "TERMINATED"},
            key=lambda payload: payload.get("status"),
        )
        assert predicate({"status": "TERMINATING"}) == PollOutcome.PENDING
        assert predicate({"status": "TERMINATED"}) == PollOutcome.COMPLETE
        assert predicate({}) == PollOutcome.COMPLETE
        assert predicate({"status": "ERROR"}) == PollOutcome.UNEXPECTED


class TestPolling:
    @pytest.mark.describe("test of polling until completion")
    async def test_poll_to_completion(
        self,
        event_list: list[ObservableEvent],
        observer: Observer,
    ) -> None:
        status_check = _StatusSequence(["PENDING", "INITIALIZING", "ACTIVE"])
        operation = _operation(observer=observer)
        final_status = await poll_until_complete(operation, status_check)
        assert final_status == "ACTIVE"
        assert operation.poll_count == 3
        assert operation.last_status == "ACTIVE"
        assert status_check.calls == 3

        await asyncio.sleep(0)
        assert [ev.event_type for ev in event_list] == [
            ObservableEventType.OPERATION_STARTED,
            ObservableEventType.OPERATION_POLLING,
            ObservableEventType.OPERATION_POLLING,
            ObservableEventType.OPERATION_SUCCEEDED,
        ]
        polling_event = event_list[1]
        assert isinstance(polling_event, ObservableOperationPolling)
        assert polling_event.poll_count == 1
        assert polling_event.last_status == "PENDING"

    @pytest.mark.describe("test of non-blocking operations")
    async def test_poll_non_blocking(self) -> None:
        status_check = _StatusSequence(["PENDING"])
        operation = _operation(blocking=False)
        assert await poll_until_complete(operation, status_check) is None
        assert status_check.calls == 0

    @pytest.mark.describe("test of polling hitting an unexpected status")
    async def test_poll_unexpected_status(
        self,
        event_list: list[ObservableEvent],
        observer: Observer,
    ) -> None:
        status_check = _StatusSequence(["PENDING", "ERROR", "ACTIVE"])
        with pytest.raises(DataAPIUnexpectedStatusException) as exc_info:
            await poll_until_complete(_operation(observer=observer), status_check)
        assert exc_info.value.last_status == "ERROR"
        assert status_check.calls == 2

        await asyncio.sleep(0)
        assert event_list[-1].event_type == ObservableEventType.OPERATION_FAILED

        with pytest.raises(DevOpsAPIUnexpectedStatusException):
            await poll_until_complete(
                _operation(dev_ops_api=True),
                _StatusSequence(["MAINTENANCE"]),
            )

    @pytest.mark.describe("test of polling running out of time")
    async def test_poll_timeout(self) -> None:
        # the budget cannot accommodate even one interval
        status_check = _StatusSequence(["ACTIVE"])
        with pytest.raises(DataAPITimeoutException):
            await poll_until_complete(
                _operation(timeout_ms=50, poll_interval_s=1.0),
                status_check,
            )
        assert status_check.calls == 0

        # the budget runs out while the operation is pending
        status_check_2 = _StatusSequence(["PENDING"])
        with pytest.raises(DevOpsAPITimeoutException):
            await poll_until_complete(
                _operation(timeout_ms=100, poll_interval_s=0.02, dev_ops_api=True),
                status_check_2,
            )
        assert 1 <= status_check_2.calls <= 5

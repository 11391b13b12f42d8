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

from docapi.data.utils.batch_executor import (
    BatchOutcome,
    DispatchOutcome,
    execute_batch,
)
from docapi.event_observers import (
    ObservableEvent,
    ObservableEventType,
    ObservableOperationFailed,
    ObservableOperationStarted,
    ObservableOperationSucceeded,
    Observer,
)

ERROR_RESPONSE = {"errors": [{"message": "boom", "errorCode": "E_BOOM"}]}
OK_RESPONSE: dict[str, Any] = {"status": {"ok": 1}}


def _outcome(unit: Any, failing: bool = False) -> DispatchOutcome[Any]:
    return DispatchOutcome(
        result=unit,
        commands=[{"unit": unit}],
        raw_responses=[ERROR_RESPONSE if failing else OK_RESPONSE],
    )


def _collect(batch: BatchOutcome[Any]) -> BatchOutcome[Any]:
    return batch


class TestBatchExecutor:
    @pytest.mark.describe("test of ordered batch, stopping at first soft failure")
    async def test_ordered_stops_at_first_failure(self) -> None:
        dispatched: list[int] = []

        async def _dispatch(unit: int, index: int) -> DispatchOutcome[Any]:
            dispatched.append(index)
            return _outcome(unit, failing=(unit == 2))

        batch = await execute_batch(
            [0, 1, 2, 3, 4],
            _dispatch,
            _collect,
            ordered=True,
            concurrency=10,
            operation_name="test_op",
        )
        assert dispatched == [0, 1, 2]
        assert batch.results() == [0, 1, 2]
        assert len(batch.failed()) == 1
        commands, responses = batch.failed_commands_and_responses()
        assert commands == [{"unit": 2}]
        assert responses == [ERROR_RESPONSE]

    @pytest.mark.describe("test of unordered batch, dispatching all units")
    async def test_unordered_dispatches_all(self) -> None:
        async def _dispatch(unit: int, index: int) -> DispatchOutcome[Any]:
            # later units complete first
            await asyncio.sleep(0.01 * (5 - unit))
            return _outcome(unit, failing=(unit in {1, 3}))

        batch = await execute_batch(
            [0, 1, 2, 3, 4],
            _dispatch,
            _collect,
            ordered=False,
            concurrency=5,
            operation_name="test_op",
        )
        assert batch.results() == [0, 1, 2, 3, 4]
        assert [outcome.result for outcome in batch.failed()] == [1, 3]
        assert batch.commands() == [{"unit": i} for i in range(5)]

    @pytest.mark.describe("test of unordered batch, honoring the concurrency bound")
    async def test_unordered_concurrency_bound(self) -> None:
        in_flight = 0
        max_in_flight = 0

        async def _dispatch(unit: int, index: int) -> DispatchOutcome[Any]:
            nonlocal in_flight, max_in_flight
            in_flight += 1
            max_in_flight = max(max_in_flight, in_flight)
            await asyncio.sleep(0.01)
            in_flight -= 1
            return _outcome(unit)

        batch = await execute_batch(
            list(range(20)),
            _dispatch,
            _collect,
            ordered=False,
            concurrency=3,
            operation_name="test_op",
        )
        assert max_in_flight == 3
        assert batch.results() == list(range(20))

    @pytest.mark.describe("test of ordered batch, never overlapping requests")
    async def test_ordered_is_sequential(self) -> None:
        in_flight = 0
        max_in_flight = 0

        async def _dispatch(unit: int, index: int) -> DispatchOutcome[Any]:
            nonlocal in_flight, max_in_flight
            in_flight += 1
            max_in_flight = max(max_in_flight, in_flight)
            await asyncio.sleep(0.001)
            in_flight -= 1
            return _outcome(unit)

        await execute_batch(
            list(range(6)),
            _dispatch,
            _collect,
            ordered=True,
            concurrency=8,
            operation_name="test_op",
        )
        assert max_in_flight == 1

    @pytest.mark.describe("test of unordered batch, hard failure cancelling the rest")
    async def test_unordered_hard_failure_cancels(self) -> None:
        cancelled: list[int] = []

        async def _dispatch(unit: int, index: int) -> DispatchOutcome[Any]:
            if unit == 0:
                await asyncio.sleep(0.01)
                raise RuntimeError("network down")
            try:
                await asyncio.sleep(10)
            except asyncio.CancelledError:
                cancelled.append(unit)
                raise
            return _outcome(unit)

        with pytest.raises(RuntimeError, match="network down"):
            await execute_batch(
                [0, 1, 2, 3],
                _dispatch,
                _collect,
                ordered=False,
                concurrency=2,
                operation_name="test_op",
            )
        # unit 1 was in flight when unit 0 failed; nothing got to complete
        assert 1 in cancelled
        assert set(cancelled) <= {1, 2, 3}

    @pytest.mark.describe("test of batch lifecycle events")
    async def test_batch_events(self) -> None:
        events: list[ObservableEvent] = []
        observer = Observer.from_event_list(events)

        async def _dispatch(unit: int, index: int) -> DispatchOutcome[Any]:
            return _outcome(unit)

        await execute_batch(
            [0, 1],
            _dispatch,
            _collect,
            ordered=False,
            concurrency=2,
            operation_name="test_op",
            event_observers=[observer],
        )
        await asyncio.sleep(0)
        assert [ev.event_type for ev in events] == [
            ObservableEventType.OPERATION_STARTED,
            ObservableEventType.OPERATION_SUCCEEDED,
        ]
        assert isinstance(events[0], ObservableOperationStarted)
        assert events[0].details["units"] == 2
        assert isinstance(events[1], ObservableOperationSucceeded)

        def _failing_finalize(batch: BatchOutcome[Any]) -> None:
            raise ValueError("finalize failure")

        events.clear()
        with pytest.raises(ValueError):
            await execute_batch(
                [0],
                _dispatch,
                _failing_finalize,
                ordered=True,
                concurrency=1,
                operation_name="test_op",
                event_observers=[observer],
            )
        await asyncio.sleep(0)
        assert isinstance(events[-1], ObservableOperationFailed)
        assert isinstance(events[-1].error, ValueError)

    @pytest.mark.describe("test of batch with no units")
    async def test_empty_batch(self) -> None:
        async def _dispatch(unit: int, index: int) -> DispatchOutcome[Any]:
            raise AssertionError("never called")

        batch = await execute_batch(
            [],
            _dispatch,
            _collect,
            ordered=False,
            concurrency=4,
            operation_name="test_op",
        )
        assert batch.results() == []
        assert batch.failed() == []

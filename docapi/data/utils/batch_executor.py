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
import time
from dataclasses import dataclass, field
from typing import (
    Any,
    Awaitable,
    Callable,
    Dict,
    Generic,
    Iterable,
    List,
    Sequence,
    TypeVar,
)

from docapi.event_observers.events import (
    ObservableOperationFailed,
    ObservableOperationStarted,
    ObservableOperationSucceeded,
)
from docapi.event_observers.observers import Observer, dispatch_event

logger = logging.getLogger(__name__)

UNIT = TypeVar("UNIT")
R = TypeVar("R")
T = TypeVar("T")


@dataclass
class DispatchOutcome(Generic[R]):
    """
    What came out of dispatching one unit of a batch.

    Attributes:
        result: the partial result contributed by this unit, including
            whatever succeeded in a response that also carries errors.
        commands: the payloads sent for this unit.
        raw_responses: the responses received, in the same order.
    """

    result: R
    commands: List[Dict[str, Any]]
    raw_responses: List[Dict[str, Any]]

    @property
    def has_errors(self) -> bool:
        return any(response.get("errors") for response in self.raw_responses)


@dataclass
class BatchOutcome(Generic[R]):
    """
    The outcomes of the units of a batch that were dispatched, keyed by their
    position in the input. In ordered mode, units after the first failing one
    are absent; in unordered mode, all units are present.
    """

    outcomes: Dict[int, DispatchOutcome[R]] = field(default_factory=dict)

    def results(self) -> list[R]:
        """The per-unit results, in input order."""
        return [self.outcomes[index].result for index in sorted(self.outcomes)]

    def commands(self) -> list[dict[str, Any]]:
        """All commands sent, in input order of the units."""
        return [
            command
            for index in sorted(self.outcomes)
            for command in self.outcomes[index].commands
        ]

    def raw_responses(self) -> list[dict[str, Any]]:
        """All responses, in input order of the units."""
        return [
            response
            for index in sorted(self.outcomes)
            for response in self.outcomes[index].raw_responses
        ]

    def failed(self) -> list[DispatchOutcome[R]]:
        """The outcomes carrying errors, in input order."""
        return [
            self.outcomes[index]
            for index in sorted(self.outcomes)
            if self.outcomes[index].has_errors
        ]

    def failed_commands_and_responses(
        self,
    ) -> tuple[list[dict[str, Any] | None], list[dict[str, Any]]]:
        """
        The (command, response) pairs of all failed requests, as two lists
        ready for the `from_responses` constructor of the cumulative exceptions.
        """
        commands: list[dict[str, Any] | None] = []
        responses: list[dict[str, Any]] = []
        for outcome in self.failed():
            for command, response in zip(outcome.commands, outcome.raw_responses):
                if response.get("errors"):
                    commands.append(command)
                    responses.append(response)
        return commands, responses


def _elapsed_ms(started: float) -> int:
    return int((time.monotonic() - started) * 1000)


async def _run_ordered(
    units: Sequence[UNIT],
    dispatch: Callable[[UNIT, int], Awaitable[DispatchOutcome[R]]],
) -> BatchOutcome[R]:
    batch_outcome: BatchOutcome[R] = BatchOutcome()
    for unit_index, unit in enumerate(units):
        outcome = await dispatch(unit, unit_index)
        batch_outcome.outcomes[unit_index] = outcome
        if outcome.has_errors:
            logger.info(f"ordered batch stopping at unit {unit_index} on errors")
            break
    return batch_outcome


async def _run_unordered(
    units: Sequence[UNIT],
    dispatch: Callable[[UNIT, int], Awaitable[DispatchOutcome[R]]],
    concurrency: int,
) -> BatchOutcome[R]:
    batch_outcome: BatchOutcome[R] = BatchOutcome()
    semaphore = asyncio.Semaphore(concurrency)

    async def _guarded_dispatch(
        unit: UNIT, unit_index: int
    ) -> tuple[int, DispatchOutcome[R]]:
        async with semaphore:
            return unit_index, await dispatch(unit, unit_index)

    tasks = [
        asyncio.ensure_future(_guarded_dispatch(unit, unit_index))
        for unit_index, unit in enumerate(units)
    ]
    try:
        for next_completed in asyncio.as_completed(tasks):
            unit_index, outcome = await next_completed
            batch_outcome.outcomes[unit_index] = outcome
    except BaseException:
        # a hard failure: whatever is queued or in flight is abandoned
        pending = [task for task in tasks if not task.done()]
        if pending:
            logger.info(f"unordered batch cancelling {len(pending)} pending units")
        for task in pending:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)
        raise
    return batch_outcome


async def execute_batch(
    units: Sequence[UNIT],
    dispatch: Callable[[UNIT, int], Awaitable[DispatchOutcome[R]]],
    finalize: Callable[[BatchOutcome[R]], T],
    *,
    ordered: bool,
    concurrency: int,
    operation_name: str,
    event_observers: Iterable[Observer] = (),
    sender: Any = None,
) -> T:
    """
    Run a batch of units of work, each of them a network round-trip (or a
    short sequence of them), and merge the outcomes into one result.

    Ordered batches dispatch one unit at a time in input order and stop at the
    first unit whose responses carry errors. Unordered batches keep up to
    `concurrency` units in flight and dispatch all units regardless of errors.
    In both modes an exception raised by `dispatch` (a hard failure: HTTP error,
    timeout, network error) ends the batch right away and propagates as is;
    in unordered mode, the units not yet completed are cancelled.

    Args:
        units: the units of work, e.g. chunks of documents.
        dispatch: a coroutine function sending one unit, given the unit
            and its index in `units`.
        finalize: turns the collected outcomes into the final result. This is
            where a cumulative exception is raised if any unit reported errors.
        ordered: whether to run in ordered mode.
        concurrency: the maximum number of units in flight, unordered mode only.
            Values below 1 are treated as 1.
        operation_name: a name for the batch, for logging and events.
        event_observers: the observers receiving the lifecycle events.
        sender: the object reported as sender of the lifecycle events.

    Returns:
        whatever `finalize` returns.
    """
    _concurrency = 1 if ordered else max(1, concurrency)
    _observers = list(event_observers)

    def _dispatch_event(event: Any) -> None:
        if _observers:
            dispatch_event(
                _observers, event, sender=sender, function_name=operation_name
            )

    started = time.monotonic()
    logger.info(
        f"{operation_name}: starting batch of {len(units)} units "
        f"(ordered={ordered}, concurrency={_concurrency})"
    )
    _dispatch_event(
        ObservableOperationStarted(
            operation_name,
            details={
                "units": len(units),
                "ordered": ordered,
                "concurrency": _concurrency,
            },
        )
    )
    try:
        if not units:
            batch_outcome: BatchOutcome[R] = BatchOutcome()
        elif ordered:
            batch_outcome = await _run_ordered(units, dispatch)
        else:
            batch_outcome = await _run_unordered(units, dispatch, _concurrency)
        final_result = finalize(batch_outcome)
    except Exception as exc:
        logger.info(f"{operation_name}: batch failed ({exc.__class__.__name__})")
        _dispatch_event(
            ObservableOperationFailed(
                operation_name, elapsed_ms=_elapsed_ms(started), error=exc
            )
        )
        raise
    logger.info(f"{operation_name}: batch completed")
    _dispatch_event(
        ObservableOperationSucceeded(operation_name, elapsed_ms=_elapsed_ms(started))
    )
    return final_result

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
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Iterable

from docapi.event_observers.events import (
    ObservableEvent,
    ObservableOperationFailed,
    ObservableOperationPolling,
    ObservableOperationStarted,
    ObservableOperationSucceeded,
)
from docapi.event_observers.observers import Observer, dispatch_event
from docapi.exceptions import (
    DataAPIUnexpectedStatusException,
    DevOpsAPIUnexpectedStatusException,
    MultiCallTimeoutManager,
)
from docapi.utils.str_enum import StrEnum

logger = logging.getLogger(__name__)


class PollOutcome(StrEnum):
    """
    The verdict of a status predicate on the last status observed.
    """

    COMPLETE = "complete"
    PENDING = "pending"
    UNEXPECTED = "unexpected"


@dataclass
class LongRunningOperation:
    """
    A handle on an admin operation that completes asynchronously on the
    server side, such as the creation of a keyspace or of a database.

    Attributes:
        operation_name: a name for logging and events, e.g. "create_keyspace".
        status_predicate: a function classifying a status payload as
            COMPLETE, PENDING or UNEXPECTED.
        poll_interval_s: seconds to wait before each status check.
        blocking: if False, there is no waiting at all.
        timeout_manager: the time budget for the whole operation. It
            also determines the flavour (DevOps API or Data API) of the
            exceptions raised.
        poll_count: how many status checks were issued so far.
        last_status: the status payload returned by the last check.
    """

    operation_name: str
    status_predicate: Callable[[Any], PollOutcome]
    poll_interval_s: float
    blocking: bool
    timeout_manager: MultiCallTimeoutManager
    poll_count: int = 0
    last_status: Any = None
    event_observers: list[Observer] = field(default_factory=list)
    sender: Any = None

    @property
    def elapsed_ms(self) -> int:
        return self.timeout_manager.elapsed_ms()

    def _dispatch_event(self, event: ObservableEvent) -> None:
        if self.event_observers:
            dispatch_event(
                self.event_observers,
                event,
                sender=self.sender,
                function_name=self.operation_name,
            )

    def _unexpected_status_exception(
        self,
    ) -> DevOpsAPIUnexpectedStatusException | DataAPIUnexpectedStatusException:
        text = (
            f"Operation '{self.operation_name}' found in unexpected status "
            f"after {self.poll_count} status checks."
        )
        if self.timeout_manager.dev_ops_api:
            return DevOpsAPIUnexpectedStatusException(
                text, last_status=self.last_status
            )
        return DataAPIUnexpectedStatusException(text, last_status=self.last_status)


async def poll_until_complete(
    operation: LongRunningOperation,
    status_check: Callable[[], Awaitable[Any]],
) -> Any:
    """
    Wait for a long-running operation to complete, by checking its status
    at regular intervals.

    Each round first makes sure the remaining budget accommodates one more
    interval (raising a timeout exception right away otherwise), then sleeps,
    then invokes `status_check` and classifies the returned status through
    the operation's predicate.

    The timeout only governs the client-side waiting: a timeout is no
    guarantee that the operation will not complete on the server.

    Args:
        operation: the LongRunningOperation to wait for. It gets updated
            with the count of polls and the last status seen.
        status_check: a coroutine function returning the current status.

    Returns:
        the last status observed, or None for non-blocking operations.

    Raises:
        DevOpsAPITimeoutException or DataAPITimeoutException: if the budget
            runs out before completion.
        DevOpsAPIUnexpectedStatusException or DataAPIUnexpectedStatusException:
            if a status classified as UNEXPECTED is observed.
    """
    if not operation.blocking:
        logger.info(f"{operation.operation_name}: not waiting for completion")
        return None

    interval_ms = int(operation.poll_interval_s * 1000)
    operation._dispatch_event(
        ObservableOperationStarted(
            operation.operation_name,
            details={"poll_interval_s": operation.poll_interval_s},
        )
    )
    try:
        while True:
            operation.timeout_manager.ensure_time_for(interval_ms)
            logger.info(
                f"{operation.operation_name}: sleeping {operation.poll_interval_s}s "
                "before polling for status"
            )
            await asyncio.sleep(operation.poll_interval_s)
            operation.last_status = await status_check()
            operation.poll_count += 1
            outcome = operation.status_predicate(operation.last_status)
            if outcome == PollOutcome.COMPLETE:
                break
            if outcome == PollOutcome.UNEXPECTED:
                raise operation._unexpected_status_exception()
            operation._dispatch_event(
                ObservableOperationPolling(
                    operation.operation_name,
                    poll_count=operation.poll_count,
                    elapsed_ms=operation.elapsed_ms,
                    last_status=operation.last_status,
                )
            )
    except Exception as exc:
        logger.info(
            f"{operation.operation_name}: waiting failed ({exc.__class__.__name__})"
        )
        operation._dispatch_event(
            ObservableOperationFailed(
                operation.operation_name,
                elapsed_ms=operation.elapsed_ms,
                error=exc,
            )
        )
        raise
    logger.info(
        f"{operation.operation_name}: complete after {operation.poll_count} polls"
    )
    operation._dispatch_event(
        ObservableOperationSucceeded(
            operation.operation_name, elapsed_ms=operation.elapsed_ms
        )
    )
    return operation.last_status


def status_sequence_predicate(
    *,
    pending: Iterable[Any],
    complete: Iterable[Any],
    key: Callable[[Any], Any] | None = None,
) -> Callable[[Any], PollOutcome]:
    """
    Build a status predicate from the sets of pending and complete statuses:
    any status in neither set is unexpected. If `key` is given, it extracts
    the status from the payload returned by the status check.
    """
    _pending = set(pending)
    _complete = set(complete)

    def _predicate(payload: Any) -> PollOutcome:
        status = key(payload) if key is not None else payload
        if status in _complete:
            return PollOutcome.COMPLETE
        if status in _pending:
            return PollOutcome.PENDING
        return PollOutcome.UNEXPECTED

    return _predicate

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
from abc import ABC, abstractmethod
from typing import Any, Iterable

from docapi.event_observers.events import ObservableEvent, ObservableEventType

logger = logging.getLogger(__name__)


class Observer(ABC):
    """
    An observer that can be attached to docapi events through the API options.

    Users can subclass Observer and provide their implementation of the
    `receive` method. Request-issuing classes (Database, Collection, the admin
    classes) dispatch events to the observers registered in their API options.

    Events are delivered through the event loop (`loop.call_soon`): the
    operation emitting them never waits on an observer, and an exception
    raised in `receive` is logged and otherwise ignored. As a consequence,
    the events of an operation may still be in flight when the operation
    returns; they are delivered at the next suspension point.

    This class offers factory static methods for common use-cases:
    `from_event_list` and `from_event_dict`.
    """

    @abstractmethod
    def receive(
        self,
        event: ObservableEvent,
        sender: Any = None,
        function_name: str | None = None,
        request_id: str | None = None,
    ) -> None:
        """Receive an event.

        Args:
            event: the event being dispatched.
            sender: the object directly responsible for generating the event.
            function_name: when applicable, the name of the method
                that triggered the event.
            request_id: an identifier shared by the events of one request
                (or of one multi-request operation, for lifecycle events).
        """
        ...

    @staticmethod
    def from_event_list(
        event_list: list[ObservableEvent],
        *,
        event_types: Iterable[ObservableEventType | str] | None = None,
    ) -> Observer:
        """
        Create an Observer appending the events it receives to a caller-provided
        list.

        Args:
            event_list: the list where the caller will find the received events.
            event_types: if provided, only events of these types are kept.
                Strings matching the name or value of a type are accepted.
        """
        return _ListObserver(event_list, event_types)

    @staticmethod
    def from_event_dict(
        event_dict: dict[ObservableEventType, list[ObservableEvent]],
        *,
        event_types: Iterable[ObservableEventType | str] | None = None,
    ) -> Observer:
        """
        Create an Observer collecting the events it receives into a
        caller-provided dictionary, grouped by event type.

        Args:
            event_dict: the dict where the caller will find the received events.
            event_types: if provided, only events of these types are kept.
        """
        return _DictObserver(event_dict, event_types)


class _FilteringObserver(Observer):
    def __init__(
        self, event_types: Iterable[ObservableEventType | str] | None
    ) -> None:
        self.event_types = (
            set(ObservableEventType)
            if event_types is None
            else {ObservableEventType.coerce(ev_t) for ev_t in event_types}
        )

    def receive(
        self,
        event: ObservableEvent,
        sender: Any = None,
        function_name: str | None = None,
        request_id: str | None = None,
    ) -> None:
        if event.event_type in self.event_types:
            self._store(event)

    @abstractmethod
    def _store(self, event: ObservableEvent) -> None: ...


class _ListObserver(_FilteringObserver):
    def __init__(
        self,
        event_list: list[ObservableEvent],
        event_types: Iterable[ObservableEventType | str] | None,
    ) -> None:
        super().__init__(event_types)
        self.event_list = event_list

    def _store(self, event: ObservableEvent) -> None:
        self.event_list.append(event)


class _DictObserver(_FilteringObserver):
    def __init__(
        self,
        event_dict: dict[ObservableEventType, list[ObservableEvent]],
        event_types: Iterable[ObservableEventType | str] | None,
    ) -> None:
        super().__init__(event_types)
        self.event_dict = event_dict

    def _store(self, event: ObservableEvent) -> None:
        self.event_dict.setdefault(event.event_type, []).append(event)


def _deliver(
    observer: Observer,
    event: ObservableEvent,
    sender: Any,
    function_name: str | None,
    request_id: str | None,
) -> None:
    try:
        observer.receive(
            event,
            sender=sender,
            function_name=function_name,
            request_id=request_id,
        )
    except Exception:
        logger.exception(
            f"Observer {observer.__class__.__name__} failed "
            f"receiving a '{event.event_type}' event"
        )


def dispatch_event(
    observers: Iterable[Observer],
    event: ObservableEvent,
    *,
    sender: Any = None,
    function_name: str | None = None,
    request_id: str | None = None,
) -> None:
    """
    Hand an event over to each of the observers, without waiting for them.

    Within a running event loop, delivery is scheduled with `call_soon`;
    outside of one, observers are invoked right away. Either way, errors
    raised by observers never reach the caller.
    """
    try:
        loop: asyncio.AbstractEventLoop | None = asyncio.get_running_loop()
    except RuntimeError:
        loop = None
    for observer in observers:
        if loop is None:
            _deliver(observer, event, sender, function_name, request_id)
        else:
            loop.call_soon(
                _deliver, observer, event, sender, function_name, request_id
            )

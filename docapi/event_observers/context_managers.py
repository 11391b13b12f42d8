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

from contextlib import contextmanager
from typing import Iterable, Iterator, Protocol, TypeVar

from typing_extensions import Self
from uuid6 import uuid7

from docapi.event_observers.events import ObservableEvent, ObservableEventType
from docapi.event_observers.observers import Observer
from docapi.utils.api_options import APIOptions
from docapi.utils.unset import _UNSET, UnsetType


class OptionAwareDatabaseObject(Protocol):
    def with_options(
        self,
        *,
        api_options: APIOptions | UnsetType = _UNSET,
    ) -> Self: ...


DB_OBJ = TypeVar("DB_OBJ", bound=OptionAwareDatabaseObject)


@contextmanager
def event_collector(
    target: DB_OBJ,
    *,
    destination: list[ObservableEvent]
    | dict[ObservableEventType, list[ObservableEvent]],
    event_types: Iterable[ObservableEventType] | None = None,
) -> Iterator[DB_OBJ]:
    """
    Yield a copy of `target` with an extra observer collecting events
    into `destination` (a list, or a dict grouping the events by type).

    Example:
        >>> events = []
        >>> with event_collector(my_collection, destination=events) as coll:
        ...     await coll.insert_many(documents)
    """
    observer_id = f"observer_{str(uuid7())}"
    observer: Observer
    if isinstance(destination, list):
        observer = Observer.from_event_list(destination, event_types=event_types)
    else:
        observer = Observer.from_event_dict(destination, event_types=event_types)
    yield target.with_options(
        api_options=APIOptions(event_observers={observer_id: observer})
    )

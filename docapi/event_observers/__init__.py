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

from docapi.event_observers.context_managers import event_collector
from docapi.event_observers.events import (
    ObservableError,
    ObservableEvent,
    ObservableEventType,
    ObservableOperationFailed,
    ObservableOperationPolling,
    ObservableOperationStarted,
    ObservableOperationSucceeded,
    ObservableRequest,
    ObservableResponse,
    ObservableWarning,
)
from docapi.event_observers.observers import Observer, dispatch_event

__all__ = [
    "event_collector",
    "dispatch_event",
    "ObservableError",
    "ObservableEvent",
    "ObservableEventType",
    "ObservableOperationFailed",
    "ObservableOperationPolling",
    "ObservableOperationStarted",
    "ObservableOperationSucceeded",
    "ObservableRequest",
    "ObservableResponse",
    "ObservableWarning",
    "Observer",
]

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

from abc import ABC
from dataclasses import dataclass
from typing import Any

from docapi.exceptions.error_descriptors import (
    DataAPIErrorDescriptor,
    DataAPIWarningDescriptor,
)
from docapi.utils.str_enum import StrEnum


class ObservableEventType(StrEnum):
    """
    Enum for the possible values of the event type for observable events.

    The first four are tied to individual HTTP requests, the `OPERATION_*`
    ones describe the lifecycle of operations spanning several requests
    (batched writes, blocking admin operations).
    """

    WARNING = "warning"
    ERROR = "error"
    REQUEST = "request"
    RESPONSE = "response"
    OPERATION_STARTED = "operation_started"
    OPERATION_POLLING = "operation_polling"
    OPERATION_SUCCEEDED = "operation_succeeded"
    OPERATION_FAILED = "operation_failed"


@dataclass
class ObservableEvent(ABC):
    """
    The most general event sent to observers.

    Attributes:
        event_type: the type of the event.
    """

    event_type: ObservableEventType


@dataclass
class ObservableError(ObservableEvent):
    """
    An error found in the "errors" field of a Data API response.

    This is dispatched as soon as the response is parsed, regardless of
    whether an exception is eventually raised to the caller (for instance,
    an unordered insert_many goes on with the other chunks first).

    Attributes:
        event_type: ObservableEventType.ERROR.
        error: the descriptor of the error.
    """

    error: DataAPIErrorDescriptor

    def __init__(self, error: DataAPIErrorDescriptor) -> None:
        self.event_type = ObservableEventType.ERROR
        self.error = error


@dataclass
class ObservableWarning(ObservableEvent):
    """
    A warning returned by a Data API command.

    Attributes:
        event_type: ObservableEventType.WARNING.
        warning: the descriptor of the warning.
    """

    warning: DataAPIWarningDescriptor

    def __init__(self, warning: DataAPIWarningDescriptor) -> None:
        self.event_type = ObservableEventType.WARNING
        self.warning = warning


@dataclass
class ObservableRequest(ObservableEvent):
    """
    A request about to be sent, with its payload as it goes on the wire.

    Attributes:
        event_type: ObservableEventType.REQUEST.
        payload: the encoded payload, if any.
        http_method: the HTTP verb, e.g. "POST".
        url: the full target URL.
        query_parameters: the query parameters, if any.
        redacted_headers: the request headers, with secrets masked.
        dev_ops_api: whether the request targets the DevOps API.
    """

    payload: str | None
    http_method: str
    url: str
    query_parameters: dict[str, Any] | None
    redacted_headers: dict[str, Any] | None
    dev_ops_api: bool

    def __init__(
        self,
        payload: str | None,
        http_method: str,
        url: str,
        query_parameters: dict[str, Any] | None,
        redacted_headers: dict[str, Any] | None,
        dev_ops_api: bool,
    ) -> None:
        self.event_type = ObservableEventType.REQUEST
        self.payload = payload
        self.http_method = http_method
        self.url = url
        self.query_parameters = query_parameters
        self.redacted_headers = redacted_headers
        self.dev_ops_api = dev_ops_api


@dataclass
class ObservableResponse(ObservableEvent):
    """
    A response received from the API, body untouched.

    Attributes:
        event_type: ObservableEventType.RESPONSE.
        body: the response body.
        status_code: the HTTP status code.
    """

    body: str | None
    status_code: int

    def __init__(self, body: str | None, *, status_code: int) -> None:
        self.event_type = ObservableEventType.RESPONSE
        self.body = body
        self.status_code = status_code


@dataclass
class ObservableOperationStarted(ObservableEvent):
    """
    A multi-request operation has started.

    Attributes:
        event_type: ObservableEventType.OPERATION_STARTED.
        operation_name: e.g. "insert_many" or "create_keyspace".
        details: a dict with operation-specific information, such as the
            number of units to dispatch.
    """

    operation_name: str
    details: dict[str, Any]

    def __init__(
        self, operation_name: str, *, details: dict[str, Any] | None = None
    ) -> None:
        self.event_type = ObservableEventType.OPERATION_STARTED
        self.operation_name = operation_name
        self.details = details or {}


@dataclass
class ObservableOperationPolling(ObservableEvent):
    """
    A long-running operation was checked and found not yet complete.

    Attributes:
        event_type: ObservableEventType.OPERATION_POLLING.
        operation_name: the name of the operation being waited upon.
        poll_count: how many status checks were issued so far.
        elapsed_ms: time since the operation started, in milliseconds.
        last_status: the status payload returned by the last check.
    """

    operation_name: str
    poll_count: int
    elapsed_ms: int
    last_status: Any

    def __init__(
        self,
        operation_name: str,
        *,
        poll_count: int,
        elapsed_ms: int,
        last_status: Any,
    ) -> None:
        self.event_type = ObservableEventType.OPERATION_POLLING
        self.operation_name = operation_name
        self.poll_count = poll_count
        self.elapsed_ms = elapsed_ms
        self.last_status = last_status


@dataclass
class ObservableOperationSucceeded(ObservableEvent):
    """
    A multi-request operation completed successfully.

    Attributes:
        event_type: ObservableEventType.OPERATION_SUCCEEDED.
        operation_name: the name of the operation.
        elapsed_ms: the total duration, in milliseconds.
    """

    operation_name: str
    elapsed_ms: int

    def __init__(self, operation_name: str, *, elapsed_ms: int) -> None:
        self.event_type = ObservableEventType.OPERATION_SUCCEEDED
        self.operation_name = operation_name
        self.elapsed_ms = elapsed_ms


@dataclass
class ObservableOperationFailed(ObservableEvent):
    """
    A multi-request operation ended with an exception.

    Attributes:
        event_type: ObservableEventType.OPERATION_FAILED.
        operation_name: the name of the operation.
        elapsed_ms: the duration until the failure, in milliseconds.
        error: the exception about to be raised to the caller.
    """

    operation_name: str
    elapsed_ms: int
    error: Exception

    def __init__(
        self, operation_name: str, *, elapsed_ms: int, error: Exception
    ) -> None:
        self.event_type = ObservableEventType.OPERATION_FAILED
        self.operation_name = operation_name
        self.elapsed_ms = elapsed_ms
        self.error = error

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

import time
from dataclasses import dataclass

import httpx

from docapi.exceptions.collection_exceptions import (
    CollectionBulkWriteException,
    CollectionDeleteManyException,
    CollectionInsertManyException,
    CollectionUpdateManyException,
    CumulativeOperationException,
    TooManyDocumentsToCountException,
)
from docapi.exceptions.data_api_exceptions import (
    CursorException,
    DataAPIException,
    DataAPIHttpException,
    DataAPIResponseException,
    DataAPITimeoutException,
    DataAPIUnexpectedStatusException,
    UnexpectedDataAPIResponseException,
)
from docapi.exceptions.devops_api_exceptions import (
    DevOpsAPIErrorDescriptor,
    DevOpsAPIException,
    DevOpsAPIHttpException,
    DevOpsAPIResponseException,
    DevOpsAPITimeoutException,
    DevOpsAPIUnexpectedStatusException,
    UnexpectedDevOpsAPIResponseException,
)
from docapi.exceptions.error_descriptors import (
    DataAPIDetailedErrorDescriptor,
    DataAPIErrorDescriptor,
    DataAPIWarningDescriptor,
)
from docapi.utils.api_options import FullTimeoutOptions


class InvalidEnvironmentException(ValueError):
    """
    An operation was attempted that the configured environment does not
    support, e.g. asking for an AstraDBAdmin on a self-deployed backend.
    """

    pass


def _min_labeled_timeout(
    *timeouts: tuple[int | None, str | None],
) -> tuple[int, str | None]:
    _non_null = [(to, lb) for to, lb in timeouts if to is not None]
    if _non_null:
        min_to, min_lb = min(_non_null, key=lambda p: p[0])
        return (min_to or 0, min_lb)
    return (0, None)


def _select_singlereq_timeout(
    *,
    timeout_options: FullTimeoutOptions,
    method_timeout_label: str,
    method_timeout_ms: int | None,
    request_timeout_ms: int | None = None,
    timeout_ms: int | None = None,
) -> tuple[int, str | None]:
    """
    Determine (and label) the timeout for a single-request method.

    With no per-call values, the least of the request timeout and the
    method-class timeout (`method_timeout_label` names the attribute of
    the timeout options, e.g. "general_method_timeout_ms") is used.
    Otherwise the least of the per-call values wins and the options
    are disregarded.
    """
    if all(
        iarg is None for iarg in (method_timeout_ms, request_timeout_ms, timeout_ms)
    ):
        ao_r = timeout_options.request_timeout_ms
        ao_m = getattr(timeout_options, method_timeout_label)
        if ao_r < ao_m:
            return (ao_r, "request_timeout_ms")
        return (ao_m, method_timeout_label)
    return _min_labeled_timeout(
        (method_timeout_ms, method_timeout_label),
        (request_timeout_ms, "request_timeout_ms"),
        (timeout_ms, "timeout_ms"),
    )


def _first_valid_timeout(
    *items: tuple[int | None, str | None],
) -> tuple[int, str | None]:
    # items are (timeout ms, label) pairs: the first non-None wins
    for timeout, label in items:
        if timeout is not None:
            return timeout, label
    # zero stands for 'no timeout' when it gets to the request
    return 0, None


@dataclass
class _TimeoutContext:
    """
    A timeout to obey, with the information needed to produce a helpful
    error message should it expire: the name of the setting responsible for
    it and its "nominal" value, which may differ from the time allotted to
    a given request when a single budget spans several requests.

    Args:
        nominal_ms: the timeout, in milliseconds, as set by the user.
        request_ms: the time a given HTTP request is allowed, in milliseconds.
        label: the name of the timeout setting, as known to the user.
    """

    nominal_ms: int | None
    request_ms: int | None
    label: str | None

    def __init__(
        self,
        *,
        request_ms: int | None,
        nominal_ms: int | None = None,
        label: str | None = None,
    ) -> None:
        self.nominal_ms = nominal_ms
        self.request_ms = request_ms
        self.label = label

    def __bool__(self) -> bool:
        return self.nominal_ms is not None or self.request_ms is not None


def _timeout_text(base_text: str, timeout_ms: int | None, label: str | None) -> str:
    if not timeout_ms:
        return base_text
    if label:
        return f"{base_text} (timeout honoured: {label} = {timeout_ms} ms)"
    return f"{base_text} (timeout honoured: {timeout_ms} ms)"


_HTTPX_TIMEOUT_TYPES: list[tuple[type[httpx.TimeoutException], str]] = [
    (httpx.ConnectTimeout, "connect"),
    (httpx.ReadTimeout, "read"),
    (httpx.WriteTimeout, "write"),
    (httpx.PoolTimeout, "pool"),
]


def _unpack_httpx_timeout(
    httpx_timeout: httpx.TimeoutException,
    timeout_context: _TimeoutContext,
) -> dict[str, str | None]:
    timeout_type = next(
        (
            t_type
            for t_class, t_type in _HTTPX_TIMEOUT_TYPES
            if isinstance(httpx_timeout, t_class)
        ),
        "generic",
    )
    endpoint: str | None = None
    raw_payload: str | None = None
    try:
        request = httpx_timeout.request
    except RuntimeError:
        # httpx raises if the exception was built without a request
        request = None
    if request is not None:
        endpoint = str(request.url)
        if isinstance(request.content, bytes):
            raw_payload = request.content.decode()
    return {
        "text": _timeout_text(
            str(httpx_timeout) or "timed out",
            timeout_context.nominal_ms or timeout_context.request_ms,
            timeout_context.label,
        ),
        "timeout_type": timeout_type,
        "endpoint": endpoint,
        "raw_payload": raw_payload,
    }


def to_dataapi_timeout_exception(
    httpx_timeout: httpx.TimeoutException,
    timeout_context: _TimeoutContext,
) -> DataAPITimeoutException:
    return DataAPITimeoutException(  # type: ignore[misc]
        **_unpack_httpx_timeout(httpx_timeout, timeout_context)
    )


def to_devopsapi_timeout_exception(
    httpx_timeout: httpx.TimeoutException,
    timeout_context: _TimeoutContext,
) -> DevOpsAPITimeoutException:
    return DevOpsAPITimeoutException(  # type: ignore[misc]
        **_unpack_httpx_timeout(httpx_timeout, timeout_context)
    )


class MultiCallTimeoutManager:
    """
    Keeps track of one timeout budget spanning several calls, such as the
    pages of a delete_many, the chunks of an insert_many or the status checks
    of a blocking admin operation.

    Args:
        overall_timeout_ms: the budget in milliseconds (zero or None for none).
        dev_ops_api: whether to raise the DevOps flavour of timeout exceptions.
        timeout_label: the name of the setting the budget comes from.

    Attributes:
        overall_timeout_ms: the budget in milliseconds, or None.
        started_ms: the time of construction (milliseconds since the epoch).
        deadline_ms: the deadline (milliseconds since the epoch), or None.
        timeout_label: the name of the setting the budget comes from.
    """

    overall_timeout_ms: int | None
    started_ms: int = -1
    deadline_ms: int | None
    timeout_label: str | None

    def __init__(
        self,
        overall_timeout_ms: int | None,
        dev_ops_api: bool = False,
        timeout_label: str | None = None,
    ) -> None:
        self.started_ms = int(time.time() * 1000)
        self.timeout_label = timeout_label
        self.overall_timeout_ms = overall_timeout_ms or None
        self.dev_ops_api = dev_ops_api
        if self.overall_timeout_ms is not None:
            self.deadline_ms = self.started_ms + self.overall_timeout_ms
        else:
            self.deadline_ms = None

    def elapsed_ms(self) -> int:
        """Milliseconds elapsed since the manager was created."""
        return int(time.time() * 1000) - self.started_ms

    def _raise_timeout(self) -> None:
        err_msg = _timeout_text(
            "Operation timed out.", self.overall_timeout_ms, self.timeout_label
        )
        if self.dev_ops_api:
            raise DevOpsAPITimeoutException(
                text=err_msg,
                timeout_type="generic",
                endpoint=None,
                raw_payload=None,
            )
        raise DataAPITimeoutException(
            text=err_msg,
            timeout_type="generic",
            endpoint=None,
            raw_payload=None,
        )

    def ensure_time_for(self, wait_ms: int) -> None:
        """
        Raise a timeout exception right away if waiting for `wait_ms` more
        milliseconds would bring past the deadline.
        """
        if self.deadline_ms is not None:
            if int(time.time() * 1000) + wait_ms >= self.deadline_ms:
                self._raise_timeout()

    def remaining_timeout(
        self, cap_time_ms: int | None = None, cap_timeout_label: str | None = None
    ) -> _TimeoutContext:
        """
        Return the time left for the next call, raising a timeout exception
        if the deadline is already past.

        Args:
            cap_time_ms: an upper bound to the returned timeout (typically
                the per-request timeout). Zero means no cap.
            cap_timeout_label: the name of the setting behind the cap.

        Returns:
            a _TimeoutContext for the next call.
        """
        _cap_time_ms = cap_time_ms or None
        capped = _TimeoutContext(
            nominal_ms=_cap_time_ms,
            request_ms=_cap_time_ms,
            label=cap_timeout_label,
        )
        if self.deadline_ms is None:
            if _cap_time_ms is None:
                return _TimeoutContext(
                    nominal_ms=self.overall_timeout_ms,
                    request_ms=None,
                    label=self.timeout_label,
                )
            return capped
        remaining = self.deadline_ms - int(time.time() * 1000)
        if remaining <= 0:
            self._raise_timeout()
        if _cap_time_ms is not None and remaining > _cap_time_ms:
            return capped
        return _TimeoutContext(
            nominal_ms=self.overall_timeout_ms,
            request_ms=remaining,
            label=self.timeout_label,
        )


__all__ = [
    "CollectionBulkWriteException",
    "CollectionDeleteManyException",
    "CollectionInsertManyException",
    "CollectionUpdateManyException",
    "CumulativeOperationException",
    "CursorException",
    "DataAPIDetailedErrorDescriptor",
    "DataAPIErrorDescriptor",
    "DataAPIException",
    "DataAPIHttpException",
    "DataAPIResponseException",
    "DataAPITimeoutException",
    "DataAPIUnexpectedStatusException",
    "DataAPIWarningDescriptor",
    "DevOpsAPIErrorDescriptor",
    "DevOpsAPIException",
    "DevOpsAPIHttpException",
    "DevOpsAPIResponseException",
    "DevOpsAPITimeoutException",
    "DevOpsAPIUnexpectedStatusException",
    "InvalidEnvironmentException",
    "MultiCallTimeoutManager",
    "TooManyDocumentsToCountException",
    "UnexpectedDataAPIResponseException",
    "UnexpectedDevOpsAPIResponseException",
]

__pdoc__ = {
    "to_dataapi_timeout_exception": False,
    "to_devopsapi_timeout_exception": False,
    "MultiCallTimeoutManager": False,
}

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

from dataclasses import dataclass
from typing import Any, Sequence

import httpx

from docapi.exceptions.error_descriptors import (
    DataAPIDetailedErrorDescriptor,
    DataAPIErrorDescriptor,
    DataAPIWarningDescriptor,
)


class DataAPIException(Exception):
    """
    Root of all exceptions specific to the Data API, such as a response
    carrying errors or a cursor used in the wrong state. Network failures
    surface as plain httpx exceptions instead.
    """

    pass


@dataclass
class DataAPIResponseException(DataAPIException):
    """
    The Data API returned one or more "success" (HTTP 2xx) responses which
    however contain errors. This is the "soft failure" case: partial
    successes may have occurred alongside the errors.

    For multi-request operations, the details of each failed request are kept
    separately in `detailed_error_descriptors`, while `error_descriptors`
    is the flattened list of all errors across requests.

    Attributes:
        text: a text message about the exception, from the first error found.
        error_descriptors: all DataAPIErrorDescriptor objects collected.
        detailed_error_descriptors: one DataAPIDetailedErrorDescriptor for
            each request that returned errors.
        warning_descriptors: DataAPIWarningDescriptor objects for the
            warnings found in the responses, if any.
    """

    text: str | None
    error_descriptors: list[DataAPIErrorDescriptor]
    detailed_error_descriptors: list[DataAPIDetailedErrorDescriptor]
    warning_descriptors: list[DataAPIWarningDescriptor]

    def __init__(
        self,
        text: str | None,
        *,
        error_descriptors: list[DataAPIErrorDescriptor],
        detailed_error_descriptors: list[DataAPIDetailedErrorDescriptor],
        warning_descriptors: list[DataAPIWarningDescriptor] | None = None,
    ) -> None:
        super().__init__(text)
        self.text = text
        self.error_descriptors = error_descriptors
        self.detailed_error_descriptors = detailed_error_descriptors
        self.warning_descriptors = warning_descriptors or []

    def __str__(self) -> str:
        return self.text or ""

    @classmethod
    def from_response(
        cls,
        command: dict[str, Any] | None,
        raw_response: dict[str, Any],
        **kwargs: Any,
    ) -> DataAPIResponseException:
        """Parse a single raw response from the API into this exception."""
        return cls.from_responses(
            commands=[command],
            raw_responses=[raw_response],
            **kwargs,
        )

    @classmethod
    def from_responses(
        cls,
        *,
        commands: Sequence[dict[str, Any] | None],
        raw_responses: Sequence[dict[str, Any]],
        **kwargs: Any,
    ) -> DataAPIResponseException:
        """
        Build the exception from a list of commands and the corresponding
        raw responses, in the same order. Responses without errors are
        accepted and simply contribute no descriptors.
        """
        detailed_error_descriptors: list[DataAPIDetailedErrorDescriptor] = []
        warning_descriptors: list[DataAPIWarningDescriptor] = []
        for command, raw_response in zip(commands, raw_responses):
            response_errors = [
                DataAPIErrorDescriptor(error_dict)
                for error_dict in (raw_response or {}).get("errors") or []
            ]
            warning_descriptors += [
                DataAPIWarningDescriptor(warning_dict)
                for warning_dict in ((raw_response or {}).get("status") or {}).get(
                    "warnings"
                )
                or []
            ]
            if response_errors:
                detailed_error_descriptors.append(
                    DataAPIDetailedErrorDescriptor(
                        error_descriptors=response_errors,
                        command=command,
                        raw_response=raw_response,
                    )
                )
        error_descriptors = [
            error_descriptor
            for detailed_descriptor in detailed_error_descriptors
            for error_descriptor in detailed_descriptor.error_descriptors
        ]
        text = error_descriptors[0].summary() if error_descriptors else None
        return cls(
            text,
            error_descriptors=error_descriptors,
            detailed_error_descriptors=detailed_error_descriptors,
            warning_descriptors=warning_descriptors,
            **kwargs,
        )


@dataclass
class DataAPIHttpException(DataAPIException, httpx.HTTPStatusError):
    """
    A request to the Data API resulted in an HTTP 4xx or 5xx response
    (a "hard failure"). This is still an `httpx.HTTPStatusError`, enriched
    with the error descriptors found in the response body, if any.

    Attributes:
        text: a text message about the exception.
        error_descriptors: the DataAPIErrorDescriptor objects parsed from
            the response body.
    """

    text: str | None
    error_descriptors: list[DataAPIErrorDescriptor]

    def __init__(
        self,
        text: str | None,
        *,
        httpx_error: httpx.HTTPStatusError,
        error_descriptors: list[DataAPIErrorDescriptor],
    ) -> None:
        DataAPIException.__init__(self, text)
        httpx.HTTPStatusError.__init__(
            self,
            message=str(httpx_error),
            request=httpx_error.request,
            response=httpx_error.response,
        )
        self.text = text
        self.httpx_error = httpx_error
        self.error_descriptors = error_descriptors

    def __str__(self) -> str:
        return self.text or str(self.httpx_error)

    @classmethod
    def from_httpx_error(
        cls,
        httpx_error: httpx.HTTPStatusError,
        **kwargs: Any,
    ) -> DataAPIHttpException:
        """Parse a httpx status error into this exception."""

        raw_response: dict[str, Any]
        # the response body may be anything, including not JSON at all
        try:
            raw_response = httpx_error.response.json() or {}
        except Exception:
            raw_response = {}
        if not isinstance(raw_response, dict):
            raw_response = {}
        error_descriptors = [
            DataAPIErrorDescriptor(error_dict)
            for error_dict in raw_response.get("errors") or []
        ]
        if error_descriptors:
            text = f"{error_descriptors[0].message}. {str(httpx_error)}"
        else:
            text = str(httpx_error)

        return cls(
            text=text,
            httpx_error=httpx_error,
            error_descriptors=error_descriptors,
            **kwargs,
        )


@dataclass
class DataAPITimeoutException(DataAPIException):
    """
    A Data API operation timed out, either during a single HTTP request or
    over the course of a method spanning several requests (a paginated
    delete_many, a chunked insert_many, a blocking admin call and so on).

    Attributes:
        text: a textual description of the error.
        timeout_type: the phase of the HTTP request when the timeout occurred
            ("connect", "read", "write", "pool"), or "generic" if the timeout
            is not tied to a specific request.
        endpoint: the URL of the request, if the timeout is tied to one.
        raw_payload: the payload of the request as a string, if the timeout
            is tied to one.
    """

    text: str
    timeout_type: str
    endpoint: str | None
    raw_payload: str | None

    def __init__(
        self,
        text: str,
        *,
        timeout_type: str,
        endpoint: str | None,
        raw_payload: str | None,
    ) -> None:
        super().__init__(text)
        self.text = text
        self.timeout_type = timeout_type
        self.endpoint = endpoint
        self.raw_payload = raw_payload


@dataclass
class CursorException(DataAPIException):
    """
    A cursor operation was invoked with the cursor in a state that does not
    allow it, for instance reconfiguring a cursor which is already being
    consumed.

    Attributes:
        text: a text message about the exception.
        cursor_state: the name of the cursor state at the time of the error.
    """

    text: str
    cursor_state: str

    def __init__(
        self,
        text: str,
        *,
        cursor_state: str,
    ) -> None:
        super().__init__(text)
        self.text = text
        self.cursor_state = cursor_state


@dataclass
class UnexpectedDataAPIResponseException(DataAPIException):
    """
    A Data API response lacks expected fields or has them with the wrong type.

    Attributes:
        text: a text message about the exception.
        raw_response: the response returned by the API, as a dict.
    """

    text: str
    raw_response: dict[str, Any] | None

    def __init__(
        self,
        text: str,
        raw_response: dict[str, Any] | None,
    ) -> None:
        super().__init__(text)
        self.text = text
        self.raw_response = raw_response


@dataclass
class DataAPIUnexpectedStatusException(DataAPIException):
    """
    While waiting for a long-running operation to complete, a status was
    observed that is neither the target one nor an expected intermediate one.

    Attributes:
        text: a text message about the exception.
        last_status: the last status payload received before giving up.
    """

    text: str
    last_status: Any

    def __init__(
        self,
        text: str,
        *,
        last_status: Any,
    ) -> None:
        super().__init__(text)
        self.text = text
        self.last_status = last_status

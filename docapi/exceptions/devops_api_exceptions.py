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
from typing import Any

import httpx


class DevOpsAPIException(Exception):
    """
    Root of the exceptions specific to the DevOps API, i.e. the organisation
    level management API of Astra DB.
    """

    def __init__(self, text: str | None = None):
        Exception.__init__(self, text or "")


@dataclass
class DevOpsAPIErrorDescriptor:
    """
    A single error in a DevOps API response.

    Attributes:
        id: the numeric "ID" of the error.
        message: the "message" of the error.
        attributes: a dict with any other key-value pair in the error.
    """

    id: int | None
    message: str | None
    attributes: dict[str, Any]

    def __init__(self, error_dict: dict[str, Any]) -> None:
        self.id = error_dict.get("ID")
        self.message = error_dict.get("message")
        self.attributes = {
            k: v for k, v in error_dict.items() if k not in {"ID", "message"}
        }


@dataclass
class DevOpsAPIHttpException(DevOpsAPIException, httpx.HTTPStatusError):
    """
    A request to the DevOps API resulted in an HTTP 4xx or 5xx response.
    Like its Data API counterpart, this is still an `httpx.HTTPStatusError`.

    Attributes:
        text: a text message about the exception.
        error_descriptors: the DevOpsAPIErrorDescriptor objects parsed from
            the response body.
    """

    text: str | None
    error_descriptors: list[DevOpsAPIErrorDescriptor]

    def __init__(
        self,
        text: str | None,
        *,
        httpx_error: httpx.HTTPStatusError,
        error_descriptors: list[DevOpsAPIErrorDescriptor],
    ) -> None:
        DevOpsAPIException.__init__(self, text)
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
    ) -> DevOpsAPIHttpException:
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
            DevOpsAPIErrorDescriptor(error_dict)
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
class DevOpsAPITimeoutException(DevOpsAPIException):
    """
    A DevOps API operation timed out. For the blocking admin methods, this
    may happen while polling for the completion of an operation: the
    operation itself is not cancelled and may still complete on the server.

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
class UnexpectedDevOpsAPIResponseException(DevOpsAPIException):
    """
    A DevOps API response lacks expected fields, has them with the wrong type
    or comes with an unexpected HTTP status code.

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
class DevOpsAPIUnexpectedStatusException(DevOpsAPIException):
    """
    While polling a database for the completion of an admin operation,
    the database reported a status outside of the expected ones
    (for instance "ERROR" while waiting for a keyspace to be created).

    Attributes:
        text: a text message about the exception.
        last_status: the last status payload (the database info) observed.
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


class DevOpsAPIResponseException(DevOpsAPIException):
    """
    A DevOps API response reported one or more errors.

    Attributes:
        text: a text message about the exception.
        command: the payload that was sent to the DevOps API.
        error_descriptors: the DevOpsAPIErrorDescriptor objects in the response.
    """

    text: str | None
    command: dict[str, Any] | None
    error_descriptors: list[DevOpsAPIErrorDescriptor]

    def __init__(
        self,
        text: str | None = None,
        *,
        command: dict[str, Any] | None = None,
        error_descriptors: list[DevOpsAPIErrorDescriptor] | None = None,
    ) -> None:
        super().__init__(text or self.__class__.__name__)
        self.text = text
        self.command = command
        self.error_descriptors = error_descriptors or []

    @staticmethod
    def from_response(
        command: dict[str, Any] | None,
        raw_response: dict[str, Any],
    ) -> DevOpsAPIResponseException:
        """Parse a raw response from the API into this exception."""

        error_descriptors = [
            DevOpsAPIErrorDescriptor(error_dict)
            for error_dict in raw_response.get("errors") or []
        ]
        _text = error_descriptors[0].message if error_descriptors else None
        return DevOpsAPIResponseException(
            text=_text, command=command, error_descriptors=error_descriptors
        )

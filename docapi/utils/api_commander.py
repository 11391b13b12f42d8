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

import json
import logging
from types import TracebackType
from typing import Any, Dict, Iterable, Sequence, cast

import httpx
from uuid6 import uuid7

from docapi.constants import CallerType
from docapi.event_observers.events import (
    ObservableError,
    ObservableRequest,
    ObservableResponse,
    ObservableWarning,
)
from docapi.event_observers.observers import Observer, dispatch_event
from docapi.exceptions import (
    DataAPIErrorDescriptor,
    DataAPIHttpException,
    DataAPIResponseException,
    DataAPIWarningDescriptor,
    DevOpsAPIHttpException,
    DevOpsAPIResponseException,
    UnexpectedDataAPIResponseException,
    UnexpectedDevOpsAPIResponseException,
    _TimeoutContext,
    to_dataapi_timeout_exception,
    to_devopsapi_timeout_exception,
)
from docapi.settings.defaults import (
    DEFAULT_REDACTED_HEADER_NAMES,
    FIXED_SECRET_PLACEHOLDER,
)
from docapi.utils.request_tools import (
    HttpMethod,
    log_httpx_request,
    log_httpx_response,
    to_httpx_timeout,
)
from docapi.utils.user_agents import (
    compose_full_user_agent,
    detect_docapi_user_agent,
)

user_agent_docapi = detect_docapi_user_agent()

logger = logging.getLogger(__name__)


class APICommander:
    """
    The transport shared by all objects talking to an API endpoint: it encodes
    a JSON command, sends it over HTTP and returns the parsed response.

    Hard failures (HTTP 4xx/5xx, timeouts) are raised as exceptions by every
    request method. Errors reported in an HTTP-2xx response ("soft failures")
    are raised only if `raise_api_errors` is set, otherwise they are left in the
    returned response for the caller to handle.

    The underlying `httpx.AsyncClient` can safely carry overlapping requests,
    so one commander can be used by several concurrent tasks.
    """

    def __init__(
        self,
        *,
        api_endpoint: str,
        path: str,
        headers: dict[str, str | None] = {},
        callers: Sequence[CallerType] = [],
        redacted_header_names: Iterable[str] | None = None,
        dev_ops_api: bool = False,
        event_observers: dict[str, Observer] | None = None,
        async_client: httpx.AsyncClient | None = None,
    ) -> None:
        self.async_client = async_client or httpx.AsyncClient()
        self.api_endpoint = api_endpoint.rstrip("/")
        self.path = path.lstrip("/")
        self.headers = headers
        self.callers = callers
        self.redacted_header_names = set(redacted_header_names or [])
        self.upper_full_redacted_header_names = {
            header_name.upper()
            for header_name in (
                self.redacted_header_names | DEFAULT_REDACTED_HEADER_NAMES
            )
        }
        self.dev_ops_api = dev_ops_api
        self.event_observers = event_observers or {}

        self._faulty_response_exc_class: (
            type[UnexpectedDevOpsAPIResponseException]
            | type[UnexpectedDataAPIResponseException]
        )
        self._http_exc_class: type[DataAPIHttpException] | type[DevOpsAPIHttpException]
        if self.dev_ops_api:
            self._faulty_response_exc_class = UnexpectedDevOpsAPIResponseException
            self._http_exc_class = DevOpsAPIHttpException
        else:
            self._faulty_response_exc_class = UnexpectedDataAPIResponseException
            self._http_exc_class = DataAPIHttpException
        self._api_description = "DevOps API" if self.dev_ops_api else "Data API"

        full_user_agent_string = compose_full_user_agent(
            list(self.callers) + [user_agent_docapi]
        )
        self.full_headers: dict[str, str] = {
            k: v
            for k, v in {
                "Content-Type": "application/json",
                "Accept": "application/json",
                "User-Agent": full_user_agent_string,
                **self.headers,
            }.items()
            if v is not None
        }
        self._loggable_headers = {
            k: (
                FIXED_SECRET_PLACEHOLDER
                if k.upper() in self.upper_full_redacted_header_names
                else v
            )
            for k, v in self.full_headers.items()
        }
        self.full_path = "/".join([self.api_endpoint, self.path]).rstrip("/")

    def __repr__(self) -> str:
        inner_desc = ", ".join(
            [
                f"api_endpoint={self.api_endpoint}",
                f"path={self.path}",
                f"callers={self.callers}",
                f"dev_ops_api={self.dev_ops_api}",
            ]
        )
        return f"{self.__class__.__name__}({inner_desc})"

    def __eq__(self, other: Any) -> bool:
        if isinstance(other, APICommander):
            return all(
                [
                    self.api_endpoint == other.api_endpoint,
                    self.path == other.path,
                    self.headers == other.headers,
                    self.callers == other.callers,
                    self.redacted_header_names == other.redacted_header_names,
                    self.dev_ops_api == other.dev_ops_api,
                ]
            )
        return False

    async def __aenter__(self) -> APICommander:
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None = None,
        exc_value: BaseException | None = None,
        traceback: TracebackType | None = None,
    ) -> None:
        await self.async_client.aclose()

    def _compose_request_url(self, additional_path: str | None) -> str:
        if additional_path:
            return "/".join([self.full_path.rstrip("/"), additional_path.lstrip("/")])
        return self.full_path

    def _dispatch(self, event: Any, request_id: str | None) -> None:
        if self.event_observers:
            dispatch_event(
                self.event_observers.values(),
                event,
                sender=self,
                function_name="async_request",
                request_id=request_id,
            )

    @staticmethod
    def _encode_payload(payload: dict[str, Any] | None) -> str | None:
        if payload is None:
            return None
        return json.dumps(
            payload,
            allow_nan=False,
            separators=(",", ":"),
            ensure_ascii=False,
        )

    def _raw_response_to_json(
        self,
        raw_response: httpx.Response,
        raise_api_errors: bool,
        payload: dict[str, Any] | None,
        request_id: str | None = None,
    ) -> dict[str, Any]:
        raw_response_json: dict[str, Any]
        try:
            raw_response_json = cast(Dict[str, Any], json.loads(raw_response.text))
        except ValueError:
            # e.g. an empty body
            command_desc = "/".join(sorted(payload.keys())) if payload else "(none)"
            raise self._faulty_response_exc_class(
                text=f"Unparseable response from API '{command_desc}' command.",
                raw_response={"raw_response": raw_response.text},
            )
        if not isinstance(raw_response_json, dict):
            raise self._faulty_response_exc_class(
                text="Response from API is not a JSON object.",
                raw_response={"raw_response": raw_response.text},
            )

        if self.dev_ops_api:
            if raise_api_errors and raw_response_json.get("errors"):
                raise DevOpsAPIResponseException.from_response(
                    command=payload, raw_response=raw_response_json
                )
            return raw_response_json

        for error_dict in raw_response_json.get("errors") or []:
            self._dispatch(
                ObservableError(DataAPIErrorDescriptor(error_dict)), request_id
            )
        for warning in (raw_response_json.get("status") or {}).get("warnings") or []:
            logger.warning(f"The {self._api_description} returned a warning: {warning}")
            self._dispatch(
                ObservableWarning(DataAPIWarningDescriptor(warning)), request_id
            )

        if raise_api_errors and raw_response_json.get("errors"):
            logger.warning(
                f"APICommander about to raise from: {raw_response_json['errors']}"
            )
            raise DataAPIResponseException.from_response(
                command=payload,
                raw_response=raw_response_json,
            )
        return raw_response_json

    async def async_raw_request(
        self,
        *,
        http_method: str = HttpMethod.POST,
        payload: dict[str, Any] | None = None,
        additional_path: str | None = None,
        request_params: dict[str, Any] = {},
        timeout_context: _TimeoutContext | None = None,
        request_id: str | None = None,
    ) -> httpx.Response:
        """
        Send a request and return the raw httpx response, raising on timeouts
        and on HTTP error statuses.
        """
        request_url = self._compose_request_url(additional_path)
        _timeout_context = timeout_context or _TimeoutContext(request_ms=None)
        encoded_payload = self._encode_payload(payload)
        log_httpx_request(
            http_method=http_method,
            full_url=request_url,
            request_params=request_params,
            redacted_request_headers=self._loggable_headers,
            encoded_payload=encoded_payload,
            timeout_context=_timeout_context,
        )
        self._dispatch(
            ObservableRequest(
                payload=encoded_payload,
                http_method=http_method,
                url=request_url,
                query_parameters=request_params or None,
                redacted_headers=self._loggable_headers,
                dev_ops_api=self.dev_ops_api,
            ),
            request_id,
        )

        try:
            raw_response = await self.async_client.request(
                method=http_method,
                url=request_url,
                content=(
                    encoded_payload.encode() if encoded_payload is not None else None
                ),
                params=request_params,
                timeout=to_httpx_timeout(_timeout_context),
                headers=self.full_headers,
            )
        except httpx.TimeoutException as timeout_exc:
            if self.dev_ops_api:
                raise to_devopsapi_timeout_exception(
                    timeout_exc, timeout_context=_timeout_context
                )
            raise to_dataapi_timeout_exception(
                timeout_exc, timeout_context=_timeout_context
            )

        self._dispatch(
            ObservableResponse(raw_response.text, status_code=raw_response.status_code),
            request_id,
        )
        try:
            raw_response.raise_for_status()
        except httpx.HTTPStatusError as http_exc:
            raise self._http_exc_class.from_httpx_error(http_exc)
        log_httpx_response(response=raw_response)
        return raw_response

    async def async_request(
        self,
        *,
        http_method: str = HttpMethod.POST,
        payload: dict[str, Any] | None = None,
        additional_path: str | None = None,
        request_params: dict[str, Any] = {},
        raise_api_errors: bool = True,
        timeout_context: _TimeoutContext | None = None,
    ) -> dict[str, Any]:
        """
        Send a request and return the parsed JSON response.

        Args:
            http_method: the HTTP verb, POST by default.
            payload: the command to send, if any.
            additional_path: a path to append to the commander's base URL.
            request_params: query parameters for the request.
            raise_api_errors: if True, a response carrying "errors" is raised
                as a DataAPIResponseException (or its DevOps counterpart).
                If False, the response is returned and inspecting its
                errors is the caller's business.
            timeout_context: the timeout to apply to this request.

        Returns:
            the response as a dictionary.
        """
        request_id = str(uuid7())
        raw_response = await self.async_raw_request(
            http_method=http_method,
            payload=payload,
            additional_path=additional_path,
            request_params=request_params,
            timeout_context=timeout_context,
            request_id=request_id,
        )
        return self._raw_response_to_json(
            raw_response,
            raise_api_errors=raise_api_errors,
            payload=payload,
            request_id=request_id,
        )

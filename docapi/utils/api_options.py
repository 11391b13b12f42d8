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
from typing import TYPE_CHECKING, Iterable, Sequence, TypeVar

from docapi.authentication import (
    StaticTokenProvider,
    TokenProvider,
    coerce_possible_token_provider,
)
from docapi.constants import CallerType, Environment
from docapi.settings.defaults import (
    API_PATH_ENV_MAP,
    API_VERSION_ENV_MAP,
    DEFAULT_COLLECTION_ADMIN_TIMEOUT_MS,
    DEFAULT_DATABASE_ADMIN_TIMEOUT_MS,
    DEFAULT_GENERAL_METHOD_TIMEOUT_MS,
    DEFAULT_KEYSPACE_ADMIN_TIMEOUT_MS,
    DEFAULT_REQUEST_TIMEOUT_MS,
    DEV_OPS_URL_ENV_MAP,
    DEV_OPS_VERSION_ENV_MAP,
    FIXED_SECRET_PLACEHOLDER,
)
from docapi.utils.unset import _UNSET, UnsetType

if TYPE_CHECKING:
    from docapi.event_observers.observers import Observer

T = TypeVar("T")


def _pick(override_value: T | UnsetType, inherited_value: T) -> T:
    if isinstance(override_value, UnsetType):
        return inherited_value
    return override_value


@dataclass
class TimeoutOptions:
    """
    The timeouts, in milliseconds, applied to the various kinds of operations.
    A value of zero means no timeout at all.

    Values left unset keep the setting inherited from the object these
    options are applied to. Every method issuing requests also accepts
    per-call overrides of the relevant timeouts.

    Attributes:
        request_timeout_ms: the timeout on any single HTTP request.
            Defaults to 10 s.
        general_method_timeout_ms: the timeout on the whole duration of a DML
            method. For single-request methods the least of this and the request
            timeout applies; for multi-request methods (such as `insert_many`
            or `delete_many`) this bounds the whole sequence of requests,
            each of which is still subject to `request_timeout_ms`.
            Defaults to 30 s.
        collection_admin_timeout_ms: the timeout for creating, dropping and
            listing collections. Defaults to 60 s.
        database_admin_timeout_ms: the timeout for database admin operations.
            For blocking database creation and deletion, which may take several
            minutes, this is the overall budget for waiting on completion.
            Defaults to 10 minutes.
        keyspace_admin_timeout_ms: the timeout for keyspace admin operations,
            including the time spent waiting for completion in blocking mode.
            Defaults to 30 s.
    """

    request_timeout_ms: int | UnsetType = _UNSET
    general_method_timeout_ms: int | UnsetType = _UNSET
    collection_admin_timeout_ms: int | UnsetType = _UNSET
    database_admin_timeout_ms: int | UnsetType = _UNSET
    keyspace_admin_timeout_ms: int | UnsetType = _UNSET


@dataclass
class FullTimeoutOptions(TimeoutOptions):
    """
    The fully-specified version of `TimeoutOptions`, as found in the
    `api_options` of the client, database, collection and admin objects.
    See `TimeoutOptions` for the meaning of the attributes.
    """

    request_timeout_ms: int
    general_method_timeout_ms: int
    collection_admin_timeout_ms: int
    database_admin_timeout_ms: int
    keyspace_admin_timeout_ms: int

    def __init__(
        self,
        *,
        request_timeout_ms: int,
        general_method_timeout_ms: int,
        collection_admin_timeout_ms: int,
        database_admin_timeout_ms: int,
        keyspace_admin_timeout_ms: int,
    ) -> None:
        TimeoutOptions.__init__(
            self,
            request_timeout_ms=request_timeout_ms,
            general_method_timeout_ms=general_method_timeout_ms,
            collection_admin_timeout_ms=collection_admin_timeout_ms,
            database_admin_timeout_ms=database_admin_timeout_ms,
            keyspace_admin_timeout_ms=keyspace_admin_timeout_ms,
        )

    def with_override(self, other: TimeoutOptions) -> FullTimeoutOptions:
        """
        Return a new full options object where all settings defined in `other`
        replace the ones in this object.
        """
        return FullTimeoutOptions(
            request_timeout_ms=_pick(other.request_timeout_ms, self.request_timeout_ms),
            general_method_timeout_ms=_pick(
                other.general_method_timeout_ms, self.general_method_timeout_ms
            ),
            collection_admin_timeout_ms=_pick(
                other.collection_admin_timeout_ms, self.collection_admin_timeout_ms
            ),
            database_admin_timeout_ms=_pick(
                other.database_admin_timeout_ms, self.database_admin_timeout_ms
            ),
            keyspace_admin_timeout_ms=_pick(
                other.keyspace_admin_timeout_ms, self.keyspace_admin_timeout_ms
            ),
        )


@dataclass
class DataAPIURLOptions:
    """
    The settings shaping the URL of the Data API. Rarely needs overriding.

    Attributes:
        api_path: path appended to the API endpoint ("/api/json" on Astra DB,
            empty elsewhere).
        api_version: version segment appended to the path ("v1").
    """

    api_path: str | None | UnsetType = _UNSET
    api_version: str | None | UnsetType = _UNSET


@dataclass
class FullDataAPIURLOptions(DataAPIURLOptions):
    """The fully-specified version of `DataAPIURLOptions`."""

    api_path: str | None
    api_version: str | None

    def __init__(self, *, api_path: str | None, api_version: str | None) -> None:
        DataAPIURLOptions.__init__(self, api_path=api_path, api_version=api_version)

    def with_override(self, other: DataAPIURLOptions) -> FullDataAPIURLOptions:
        return FullDataAPIURLOptions(
            api_path=_pick(other.api_path, self.api_path),
            api_version=_pick(other.api_version, self.api_version),
        )


@dataclass
class DevOpsAPIURLOptions:
    """
    The settings shaping the URL of the DevOps API (Astra DB only).

    Attributes:
        dev_ops_url: the base URL of the DevOps API.
        dev_ops_api_version: the version segment, "v2" by default.
    """

    dev_ops_url: str | UnsetType = _UNSET
    dev_ops_api_version: str | None | UnsetType = _UNSET


@dataclass
class FullDevOpsAPIURLOptions(DevOpsAPIURLOptions):
    """The fully-specified version of `DevOpsAPIURLOptions`."""

    dev_ops_url: str
    dev_ops_api_version: str | None

    def __init__(self, *, dev_ops_url: str, dev_ops_api_version: str | None) -> None:
        DevOpsAPIURLOptions.__init__(
            self, dev_ops_url=dev_ops_url, dev_ops_api_version=dev_ops_api_version
        )

    def with_override(self, other: DevOpsAPIURLOptions) -> FullDevOpsAPIURLOptions:
        return FullDevOpsAPIURLOptions(
            dev_ops_url=_pick(other.dev_ops_url, self.dev_ops_url),
            dev_ops_api_version=_pick(
                other.dev_ops_api_version, self.dev_ops_api_version
            ),
        )


@dataclass
class APIOptions:
    """
    All settings controlling how docapi objects talk to the APIs.

    Each object in the hierarchy (DataAPIClient, AsyncDatabase,
    AsyncCollection, the admin classes) holds a full set of options.
    An `APIOptions` passed to `with_options` or to a spawning method
    (`get_collection`, `get_database_admin`, ...) overrides the settings
    it defines and leaves all others as inherited.

    Additional headers, redacted header names and event observers are merged
    with the inherited ones, all other settings are replaced.

    Attributes:
        environment: the kind of backend (see `docapi.constants.Environment`).
            It can only be set on the DataAPIClient.
        callers: `(name, version)` pairs identifying the caller in the
            User-Agent header.
        database_additional_headers: extra headers for Data API requests.
            A None value suppresses a header.
        admin_additional_headers: extra headers for requests by admin objects.
        redacted_header_names: case-insensitive names of headers to mask
            when logging requests.
        token: a TokenProvider (strings and None are coerced to one).
        event_observers: a dict from names to `Observer` objects.
        timeout_options: a `TimeoutOptions` object.
        data_api_url_options: a `DataAPIURLOptions` object.
        dev_ops_api_url_options: a `DevOpsAPIURLOptions` object.

    Example:
        >>> from docapi.utils.api_options import APIOptions, TimeoutOptions
        >>> patient_collection = my_collection.with_options(
        ...     api_options=APIOptions(
        ...         timeout_options=TimeoutOptions(general_method_timeout_ms=120000),
        ...     ),
        ... )
    """

    environment: str | UnsetType = _UNSET
    callers: Sequence[CallerType] | UnsetType = _UNSET
    database_additional_headers: dict[str, str | None] | UnsetType = _UNSET
    admin_additional_headers: dict[str, str | None] | UnsetType = _UNSET
    redacted_header_names: set[str] | UnsetType = _UNSET
    token: TokenProvider | UnsetType = _UNSET
    event_observers: dict[str, Observer] | UnsetType = _UNSET

    timeout_options: TimeoutOptions | UnsetType = _UNSET
    data_api_url_options: DataAPIURLOptions | UnsetType = _UNSET
    dev_ops_api_url_options: DevOpsAPIURLOptions | UnsetType = _UNSET

    def __init__(
        self,
        *,
        callers: Sequence[CallerType] | UnsetType = _UNSET,
        database_additional_headers: dict[str, str | None] | UnsetType = _UNSET,
        admin_additional_headers: dict[str, str | None] | UnsetType = _UNSET,
        redacted_header_names: Iterable[str] | UnsetType = _UNSET,
        token: str | TokenProvider | None | UnsetType = _UNSET,
        event_observers: dict[str, Observer] | UnsetType = _UNSET,
        timeout_options: TimeoutOptions | UnsetType = _UNSET,
        data_api_url_options: DataAPIURLOptions | UnsetType = _UNSET,
        dev_ops_api_url_options: DevOpsAPIURLOptions | UnsetType = _UNSET,
    ) -> None:
        self.environment = _UNSET
        self.callers = callers
        self.database_additional_headers = database_additional_headers
        self.admin_additional_headers = admin_additional_headers
        self.redacted_header_names = (
            _UNSET
            if isinstance(redacted_header_names, UnsetType)
            else set(redacted_header_names)
        )
        self.token = coerce_possible_token_provider(token)
        self.event_observers = event_observers
        self.timeout_options = timeout_options
        self.data_api_url_options = data_api_url_options
        self.dev_ops_api_url_options = dev_ops_api_url_options

    def __repr__(self) -> str:
        _redacted = (
            set()
            if isinstance(self.redacted_header_names, UnsetType)
            else self.redacted_header_names
        )

        def _mask(headers: dict[str, str | None]) -> dict[str, str | None]:
            return {
                k: FIXED_SECRET_PLACEHOLDER if k in _redacted else v
                for k, v in headers.items()
            }

        pieces: list[str] = []
        for attr_name in (
            "callers",
            "database_additional_headers",
            "admin_additional_headers",
            "redacted_header_names",
            "token",
            "event_observers",
            "timeout_options",
            "data_api_url_options",
            "dev_ops_api_url_options",
        ):
            value = getattr(self, attr_name)
            if isinstance(value, UnsetType):
                continue
            if attr_name.endswith("_additional_headers"):
                value = _mask(value)
            pieces.append(f"{attr_name}={value}")
        return f"{self.__class__.__name__}({', '.join(pieces)})"


@dataclass
class FullAPIOptions(APIOptions):
    """
    The fully-specified version of `APIOptions`, as found in the `api_options`
    attribute of docapi objects. See `APIOptions` for details.
    """

    environment: str
    callers: Sequence[CallerType]
    database_additional_headers: dict[str, str | None]
    admin_additional_headers: dict[str, str | None]
    redacted_header_names: set[str]
    token: TokenProvider
    event_observers: dict[str, Observer]

    timeout_options: FullTimeoutOptions
    data_api_url_options: FullDataAPIURLOptions
    dev_ops_api_url_options: FullDevOpsAPIURLOptions

    def __init__(
        self,
        *,
        environment: str,
        callers: Sequence[CallerType],
        database_additional_headers: dict[str, str | None],
        admin_additional_headers: dict[str, str | None],
        redacted_header_names: set[str],
        token: str | TokenProvider | None,
        event_observers: dict[str, Observer],
        timeout_options: FullTimeoutOptions,
        data_api_url_options: FullDataAPIURLOptions,
        dev_ops_api_url_options: FullDevOpsAPIURLOptions,
    ) -> None:
        APIOptions.__init__(
            self,
            callers=callers,
            database_additional_headers=database_additional_headers,
            admin_additional_headers=admin_additional_headers,
            redacted_header_names=redacted_header_names,
            token=token,
            event_observers=event_observers,
            timeout_options=timeout_options,
            data_api_url_options=data_api_url_options,
            dev_ops_api_url_options=dev_ops_api_url_options,
        )
        self.environment = environment

    def __repr__(self) -> str:
        pieces = [
            None
            if self.environment == Environment.PROD
            else f"environment={self.environment}",
            f"token={self.token}" if self.token else None,
            f"event_observers={list(self.event_observers)}"
            if self.event_observers
            else None,
            "...",
        ]
        return f"{self.__class__.__name__}({', '.join(pc for pc in pieces if pc)})"

    def with_override(self, other: APIOptions | None | UnsetType) -> FullAPIOptions:
        """
        Return a new full options object, with the settings defined in `other`
        taking precedence. Nested option groups are overridden recursively;
        headers, redacted header names and observers are merged.
        """
        if isinstance(other, UnsetType) or other is None:
            return self

        return FullAPIOptions(
            environment=_pick(other.environment, self.environment),
            callers=_pick(other.callers, self.callers),
            database_additional_headers={
                **self.database_additional_headers,
                **_pick(other.database_additional_headers, {}),
            },
            admin_additional_headers={
                **self.admin_additional_headers,
                **_pick(other.admin_additional_headers, {}),
            },
            redacted_header_names=(
                self.redacted_header_names | _pick(other.redacted_header_names, set())
            ),
            token=_pick(other.token, self.token),
            event_observers={
                **self.event_observers,
                **_pick(other.event_observers, {}),
            },
            timeout_options=(
                self.timeout_options.with_override(other.timeout_options)
                if isinstance(other.timeout_options, TimeoutOptions)
                else self.timeout_options
            ),
            data_api_url_options=(
                self.data_api_url_options.with_override(other.data_api_url_options)
                if isinstance(other.data_api_url_options, DataAPIURLOptions)
                else self.data_api_url_options
            ),
            dev_ops_api_url_options=(
                self.dev_ops_api_url_options.with_override(
                    other.dev_ops_api_url_options
                )
                if isinstance(other.dev_ops_api_url_options, DevOpsAPIURLOptions)
                else self.dev_ops_api_url_options
            ),
        )


defaultTimeoutOptions = FullTimeoutOptions(
    request_timeout_ms=DEFAULT_REQUEST_TIMEOUT_MS,
    general_method_timeout_ms=DEFAULT_GENERAL_METHOD_TIMEOUT_MS,
    collection_admin_timeout_ms=DEFAULT_COLLECTION_ADMIN_TIMEOUT_MS,
    database_admin_timeout_ms=DEFAULT_DATABASE_ADMIN_TIMEOUT_MS,
    keyspace_admin_timeout_ms=DEFAULT_KEYSPACE_ADMIN_TIMEOUT_MS,
)


def defaultAPIOptions(environment: str) -> FullAPIOptions:
    """
    The default full options for a given environment.
    """
    dev_ops_api_url_options: FullDevOpsAPIURLOptions
    if environment in Environment.astra_db_values:
        dev_ops_api_url_options = FullDevOpsAPIURLOptions(
            dev_ops_url=DEV_OPS_URL_ENV_MAP[environment],
            dev_ops_api_version=DEV_OPS_VERSION_ENV_MAP[environment],
        )
    else:
        dev_ops_api_url_options = FullDevOpsAPIURLOptions(
            dev_ops_url="never used",
            dev_ops_api_version=None,
        )
    return FullAPIOptions(
        environment=environment,
        callers=[],
        database_additional_headers={},
        admin_additional_headers={},
        redacted_header_names=set(),
        token=StaticTokenProvider(None),
        event_observers={},
        timeout_options=defaultTimeoutOptions,
        data_api_url_options=FullDataAPIURLOptions(
            api_path=API_PATH_ENV_MAP[environment],
            api_version=API_VERSION_ENV_MAP[environment],
        ),
        dev_ops_api_url_options=dev_ops_api_url_options,
    )

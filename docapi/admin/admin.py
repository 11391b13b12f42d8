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

import dataclasses
import logging
from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, Any

from docapi.admin.endpoints import (
    api_endpoint_parsing_error_message,
    build_api_endpoint,
    parse_api_endpoint,
)
from docapi.admin.polling import (
    LongRunningOperation,
    poll_until_complete,
    status_sequence_predicate,
)
from docapi.authentication import TokenProvider
from docapi.constants import Environment
from docapi.exceptions import (
    DevOpsAPIException,
    InvalidEnvironmentException,
    MultiCallTimeoutManager,
    UnexpectedDataAPIResponseException,
    UnexpectedDevOpsAPIResponseException,
    _first_valid_timeout,
    _select_singlereq_timeout,
    _TimeoutContext,
)
from docapi.settings.defaults import (
    DEFAULT_DATA_API_AUTH_HEADER,
    DEFAULT_DEV_OPS_AUTH_HEADER,
    DEFAULT_DEV_OPS_AUTH_PREFIX,
    DEV_OPS_DATABASE_POLL_INTERVAL_S,
    DEV_OPS_DATABASE_STATUS_ACTIVE,
    DEV_OPS_DATABASE_STATUS_INITIALIZING,
    DEV_OPS_DATABASE_STATUS_MAINTENANCE,
    DEV_OPS_DATABASE_STATUS_PENDING,
    DEV_OPS_DATABASE_STATUS_TERMINATED,
    DEV_OPS_DATABASE_STATUS_TERMINATING,
    DEV_OPS_DEFAULT_DATABASES_PAGE_SIZE,
    DEV_OPS_KEYSPACE_POLL_INTERVAL_S,
    DEV_OPS_RESPONSE_HTTP_ACCEPTED,
    DEV_OPS_RESPONSE_HTTP_CREATED,
)
from docapi.utils.api_commander import APICommander
from docapi.utils.api_options import APIOptions, FullAPIOptions
from docapi.utils.meta import check_deprecated_alias
from docapi.utils.request_tools import HttpMethod
from docapi.utils.unset import _UNSET, UnsetType

if TYPE_CHECKING:
    from docapi.data.database import AsyncDatabase


logger = logging.getLogger(__name__)


def _resolve_blocking(blocking: bool | None, wait_until_active: bool | None) -> bool:
    _blocking = check_deprecated_alias(
        new_value=blocking,
        deprecated_value=wait_until_active,
        new_name="blocking",
        deprecated_name="wait_until_active",
    )
    return True if _blocking is None else _blocking


def _dev_ops_commander_headers(api_options: FullAPIOptions) -> dict[str, str | None]:
    if api_options.token:
        _token_str = api_options.token.get_token()
        return {
            DEFAULT_DEV_OPS_AUTH_HEADER: f"{DEFAULT_DEV_OPS_AUTH_PREFIX}{_token_str}",
            **api_options.admin_additional_headers,
        }
    return {**api_options.admin_additional_headers}


def _get_dev_ops_api_commander(
    api_options: FullAPIOptions, *path_components: str
) -> APICommander:
    base_path_components = [
        comp
        for comp in (
            ncomp.strip("/")
            for ncomp in (
                api_options.dev_ops_api_url_options.dev_ops_api_version,
                "databases",
                *path_components,
            )
            if ncomp is not None
        )
        if comp != ""
    ]
    return APICommander(
        api_endpoint=api_options.dev_ops_api_url_options.dev_ops_url,
        path="/".join(base_path_components),
        headers=_dev_ops_commander_headers(api_options),
        callers=api_options.callers,
        dev_ops_api=True,
        redacted_header_names=api_options.redacted_header_names,
        event_observers=api_options.event_observers,
    )


def _get_admin_data_api_commander(
    api_endpoint: str, api_options: FullAPIOptions
) -> APICommander:
    """A Data API commander for database-level admin commands (no keyspace)."""
    base_path_components = [
        comp
        for comp in (
            ncomp.strip("/")
            for ncomp in (
                api_options.data_api_url_options.api_path,
                api_options.data_api_url_options.api_version,
            )
            if ncomp is not None
        )
        if comp != ""
    ]
    return APICommander(
        api_endpoint=api_endpoint,
        path=f"/{'/'.join(base_path_components)}",
        headers={
            DEFAULT_DATA_API_AUTH_HEADER: api_options.token.get_token(),
            **api_options.admin_additional_headers,
        },
        callers=api_options.callers,
        redacted_header_names=api_options.redacted_header_names,
        event_observers=api_options.event_observers,
    )


def _admin_multicall_timeouts(
    *,
    api_options: FullAPIOptions,
    method_timeout_label: str,
    method_timeout_ms: int | None,
    request_timeout_ms: int | None,
    timeout_ms: int | None,
) -> tuple[MultiCallTimeoutManager, int, str | None]:
    _method_timeout_ms, _mt_label = _first_valid_timeout(
        (method_timeout_ms, method_timeout_label),
        (timeout_ms, "timeout_ms"),
        (
            getattr(api_options.timeout_options, method_timeout_label),
            method_timeout_label,
        ),
    )
    _request_timeout_ms, _rt_label = _first_valid_timeout(
        (request_timeout_ms, "request_timeout_ms"),
        (timeout_ms, "timeout_ms"),
        (api_options.timeout_options.request_timeout_ms, "request_timeout_ms"),
    )
    timeout_manager = MultiCallTimeoutManager(
        overall_timeout_ms=_method_timeout_ms,
        dev_ops_api=True,
        timeout_label=_mt_label,
    )
    return timeout_manager, _request_timeout_ms, _rt_label


class AstraDBAdmin:
    """
    An "admin" object, able to perform administrative tasks at the databases
    level, such as creating, listing or dropping databases.

    This class is not meant for direct instantiation by the user, rather
    it is obtained by invoking methods such as `get_admin`
    of DataAPIClient.

    Args:
        api_options: a complete specification of the API Options for this instance.

    Example:
        >>> from docapi import DataAPIClient
        >>> my_client = DataAPIClient("AstraCS:...")
        >>> my_astra_db_admin = my_client.get_admin()
        >>> database_list = await my_astra_db_admin.list_databases()
        >>> len(database_list)
        3
        >>> database_list[2]["id"]
        '01234567-...'

    Note:
        a more powerful token may be required than the one sufficient for working
        in the Database and Collection classes. Check the provided token
        if "Unauthorized" errors are encountered.
    """

    def __init__(
        self,
        *,
        api_options: FullAPIOptions,
    ) -> None:
        if api_options.environment not in Environment.astra_db_values:
            raise InvalidEnvironmentException(
                "Environments outside of Astra DB are not supported."
            )

        self.api_options = api_options
        self._dev_ops_api_commander = _get_dev_ops_api_commander(self.api_options)

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}({self.api_options})"

    def __eq__(self, other: Any) -> bool:
        if isinstance(other, AstraDBAdmin):
            return all([self.api_options == other.api_options])
        else:
            return False

    def _copy(
        self,
        *,
        token: str | TokenProvider | UnsetType = _UNSET,
        api_options: APIOptions | UnsetType = _UNSET,
    ) -> AstraDBAdmin:
        arg_api_options = APIOptions(
            token=token,
        )
        final_api_options = self.api_options.with_override(api_options).with_override(
            arg_api_options
        )
        return AstraDBAdmin(api_options=final_api_options)

    def with_options(
        self,
        *,
        token: str | TokenProvider | UnsetType = _UNSET,
        api_options: APIOptions | UnsetType = _UNSET,
    ) -> AstraDBAdmin:
        """
        Create a clone of this AstraDBAdmin with some changed attributes.

        Args:
            token: an Access Token to the database. Example: `"AstraCS:xyz..."`.
                This can be either a literal token string or a subclass of
                `docapi.authentication.TokenProvider`.
            api_options: any additional options to set for the clone, in the form of
                an APIOptions instance (where one can set just the needed attributes).
                In case the same setting is also provided as named parameter,
                the latter takes precedence.

        Returns:
            a new AstraDBAdmin instance.
        """

        return self._copy(
            token=token,
            api_options=api_options,
        )

    async def list_databases(
        self,
        *,
        include: str | None = None,
        provider: str | None = None,
        page_size: int | None = None,
        database_admin_timeout_ms: int | None = None,
        request_timeout_ms: int | None = None,
        timeout_ms: int | None = None,
    ) -> list[dict[str, Any]]:
        """
        Get the list of databases, as obtained with a request to the DevOps API.

        Args:
            include: a filter on what databases are to be returned. As per
                DevOps API, defaults to "nonterminated". Pass "all" to include
                the already terminated databases.
            provider: a filter on the cloud provider for the databases.
                As per DevOps API, defaults to "ALL". Pass e.g. "AWS" to
                restrict the results.
            page_size: number of results per page from the DevOps API.
            database_admin_timeout_ms: a timeout, in milliseconds, to impose on
                each underlying API request. If not provided, this object's
                defaults apply.
            request_timeout_ms: an alias for `database_admin_timeout_ms`.
            timeout_ms: an alias for `database_admin_timeout_ms`.

        Returns:
            A list of dictionaries, the database information exactly as
            returned by the DevOps API.
        """

        _database_admin_timeout_ms, _da_label = _select_singlereq_timeout(
            timeout_options=self.api_options.timeout_options,
            method_timeout_label="database_admin_timeout_ms",
            method_timeout_ms=database_admin_timeout_ms,
            request_timeout_ms=request_timeout_ms,
            timeout_ms=timeout_ms,
        )
        return await self._list_databases_ctx(
            include=include,
            provider=provider,
            page_size=page_size,
            timeout_context=_TimeoutContext(
                request_ms=_database_admin_timeout_ms, label=_da_label
            ),
        )

    async def _get_database_page(
        self, request_params: dict[str, Any], timeout_context: _TimeoutContext
    ) -> list[dict[str, Any]]:
        raw_response = await self._dev_ops_api_commander.async_raw_request(
            http_method=HttpMethod.GET,
            request_params=request_params,
            timeout_context=timeout_context,
        )
        try:
            page = raw_response.json()
        except ValueError:
            page = None
        if not isinstance(page, list):
            raise UnexpectedDevOpsAPIResponseException(
                text="Faulty response from get-databases DevOps API command.",
                raw_response={"raw_response": raw_response.text},
            )
        return page

    async def _list_databases_ctx(
        self,
        *,
        include: str | None,
        provider: str | None,
        page_size: int | None,
        timeout_context: _TimeoutContext,
    ) -> list[dict[str, Any]]:
        logger.info("getting databases (DevOps API)")
        request_params_0 = {
            k: v
            for k, v in {
                "include": include,
                "provider": provider,
                "limit": page_size or DEV_OPS_DEFAULT_DATABASES_PAGE_SIZE,
            }.items()
            if v is not None
        }
        responses = [await self._get_database_page(request_params_0, timeout_context)]
        while len(responses[-1]) >= request_params_0["limit"]:
            if "id" not in responses[-1][-1]:
                raise UnexpectedDevOpsAPIResponseException(
                    text="Faulty response from get-databases DevOps API command.",
                    raw_response=responses[-1][-1],
                )
            logger.info(f"request {len(responses)}, getting databases (DevOps API)")
            request_params_n = {
                **request_params_0,
                **{"starting_after": responses[-1][-1]["id"]},
            }
            responses.append(
                await self._get_database_page(request_params_n, timeout_context)
            )
        logger.info("finished getting databases (DevOps API)")
        return [db_dict for response in responses for db_dict in response]

    async def database_info(
        self,
        id: str,
        *,
        database_admin_timeout_ms: int | None = None,
        request_timeout_ms: int | None = None,
        timeout_ms: int | None = None,
    ) -> dict[str, Any]:
        """
        Get the full information on a given database, through a request
        to the DevOps API.

        Args:
            id: the ID of the target database, e. g.
                "01234567-89ab-cdef-0123-456789abcdef".
            database_admin_timeout_ms: a timeout, in milliseconds, to impose on the
                underlying API request. If not provided, this object's defaults apply.
            request_timeout_ms: an alias for `database_admin_timeout_ms`.
            timeout_ms: an alias for `database_admin_timeout_ms`.

        Returns:
            the database information, as returned by the DevOps API.
            Its "status" entry is e.g. "ACTIVE" or "MAINTENANCE".
        """

        _database_admin_timeout_ms, _da_label = _select_singlereq_timeout(
            timeout_options=self.api_options.timeout_options,
            method_timeout_label="database_admin_timeout_ms",
            method_timeout_ms=database_admin_timeout_ms,
            request_timeout_ms=request_timeout_ms,
            timeout_ms=timeout_ms,
        )
        return await self._database_info_ctx(
            id,
            timeout_context=_TimeoutContext(
                request_ms=_database_admin_timeout_ms, label=_da_label
            ),
        )

    async def _database_info_ctx(
        self,
        id: str,
        *,
        timeout_context: _TimeoutContext,
    ) -> dict[str, Any]:
        logger.info(f"getting database info for '{id}' (DevOps API)")
        gd_response = await self._dev_ops_api_commander.async_request(
            http_method=HttpMethod.GET,
            additional_path=id,
            timeout_context=timeout_context,
        )
        logger.info(f"finished getting database info for '{id}' (DevOps API)")
        return gd_response

    async def create_database(
        self,
        name: str,
        *,
        cloud_provider: str,
        region: str,
        keyspace: str | None = None,
        blocking: bool | None = None,
        wait_until_active: bool | None = None,
        poll_interval_s: float | None = None,
        database_admin_timeout_ms: int | None = None,
        request_timeout_ms: int | None = None,
        timeout_ms: int | None = None,
        token: str | TokenProvider | UnsetType = _UNSET,
        spawn_api_options: APIOptions | UnsetType = _UNSET,
    ) -> AstraDBDatabaseAdmin:
        """
        Create a database as requested, optionally waiting for it to be ready.

        Args:
            name: the desired name for the database.
            cloud_provider: one of 'aws', 'gcp' or 'azure'.
            region: any of the available cloud regions.
            keyspace: name for the one keyspace the database starts with.
                If omitted, DevOps API will use its default.
            blocking: if True (default), the method returns only after
                the newly-created database is in ACTIVE state (a few minutes,
                usually). If False, it will return right after issuing the
                creation request to the DevOps API, and it will be responsibility
                of the caller to check the database status before working with it.
            wait_until_active: a deprecated alias for `blocking`.
            poll_interval_s: the seconds between status checks while waiting.
                Defaults to 10 seconds.
            database_admin_timeout_ms: a timeout, in milliseconds, for the whole
                requested operation to complete. This is used only
                if `blocking` is true, i.e. if the method call must
                wait and keep querying the DevOps API for the status of the
                newly-created database.
            request_timeout_ms: a timeout, in milliseconds, for
                each underlying DevOps API HTTP request.
            timeout_ms: an alias for *both* the `request_timeout_ms` and
                `database_admin_timeout_ms` timeout parameters. In practice,
                regardless of `blocking`, this parameter dictates an
                overall timeout on this method call.
            token: if supplied, is passed to the returned database admin
                instead of the one set for this object.
            spawn_api_options: a specification - complete or partial - of the
                API Options to override the defaults inherited from the AstraDBAdmin.

        Returns:
            An AstraDBDatabaseAdmin instance.

        Note: a timeout event is no guarantee at all that the
        creation request has not reached the API server and is not going
        to be, in fact, honored.

        Example:
            >>> await my_astra_db_admin.create_database(
            ...     "new_database",
            ...     cloud_provider="aws",
            ...     region="ap-south-1",
            ... )
            AstraDBDatabaseAdmin(api_endpoint="https://...", ...)
        """

        _blocking = _resolve_blocking(blocking, wait_until_active)
        timeout_manager, _request_timeout_ms, _rt_label = _admin_multicall_timeouts(
            api_options=self.api_options,
            method_timeout_label="database_admin_timeout_ms",
            method_timeout_ms=database_admin_timeout_ms,
            request_timeout_ms=request_timeout_ms,
            timeout_ms=timeout_ms,
        )
        cd_payload = {
            k: v
            for k, v in {
                "name": name,
                "tier": "serverless",
                "cloudProvider": cloud_provider,
                "region": region,
                "capacityUnits": 1,
                "dbType": "vector",
                "keyspace": keyspace,
            }.items()
            if v is not None
        }
        logger.info(f"creating database {name}/({cloud_provider}, {region}) (DevOps API)")
        cd_raw_response = await self._dev_ops_api_commander.async_raw_request(
            http_method=HttpMethod.POST,
            payload=cd_payload,
            timeout_context=timeout_manager.remaining_timeout(
                cap_time_ms=_request_timeout_ms,
                cap_timeout_label=_rt_label,
            ),
        )
        if cd_raw_response.status_code != DEV_OPS_RESPONSE_HTTP_CREATED:
            raise DevOpsAPIException(
                f"DB creation ('{name}') failed: API returned HTTP "
                f"{cd_raw_response.status_code} instead of "
                f"{DEV_OPS_RESPONSE_HTTP_CREATED} - Created."
            )
        new_database_id = cd_raw_response.headers["Location"]
        logger.info(
            "DevOps API returned from creating database "
            f"{name}/({cloud_provider}, {region})"
        )

        async def _check_status() -> dict[str, Any]:
            return await self._database_info_ctx(
                new_database_id,
                timeout_context=timeout_manager.remaining_timeout(
                    cap_time_ms=_request_timeout_ms,
                    cap_timeout_label=_rt_label,
                ),
            )

        await poll_until_complete(
            LongRunningOperation(
                operation_name="create_database",
                status_predicate=status_sequence_predicate(
                    pending={
                        DEV_OPS_DATABASE_STATUS_PENDING,
                        DEV_OPS_DATABASE_STATUS_INITIALIZING,
                    },
                    complete={DEV_OPS_DATABASE_STATUS_ACTIVE},
                    key=lambda db_info: db_info.get("status"),
                ),
                poll_interval_s=(
                    DEV_OPS_DATABASE_POLL_INTERVAL_S
                    if poll_interval_s is None
                    else poll_interval_s
                ),
                blocking=_blocking,
                timeout_manager=timeout_manager,
                event_observers=list(self.api_options.event_observers.values()),
                sender=self,
            ),
            _check_status,
        )
        logger.info(
            f"finished creating database '{new_database_id}' = "
            f"{name}/({cloud_provider}, {region}) (DevOps API)"
        )
        _final_api_options = self.api_options.with_override(
            spawn_api_options
        ).with_override(APIOptions(token=token))
        return AstraDBDatabaseAdmin(
            api_endpoint=build_api_endpoint(
                environment=self.api_options.environment,
                database_id=new_database_id,
                region=region,
            ),
            api_options=_final_api_options,
            spawner_astra_db_admin=self,
        )

    async def drop_database(
        self,
        id: str,
        *,
        blocking: bool | None = None,
        wait_until_active: bool | None = None,
        poll_interval_s: float | None = None,
        database_admin_timeout_ms: int | None = None,
        request_timeout_ms: int | None = None,
        timeout_ms: int | None = None,
    ) -> None:
        """
        Drop a database, i.e. delete it completely and permanently with all its data.

        Args:
            id: The ID of the database to drop, e. g.
                "01234567-89ab-cdef-0123-456789abcdef".
            blocking: if True (default), the method returns only after
                the database has actually been deleted (generally a few minutes).
                If False, it will return right after issuing the
                drop request to the DevOps API, and it will be responsibility
                of the caller to check the database status/availability
                after that, if desired.
            wait_until_active: a deprecated alias for `blocking`.
            poll_interval_s: the seconds between status checks while waiting.
                Defaults to 10 seconds.
            database_admin_timeout_ms: a timeout, in milliseconds, for the whole
                requested operation to complete. This is used only
                if `blocking` is true.
            request_timeout_ms: a timeout, in milliseconds, for
                each underlying DevOps API HTTP request.
            timeout_ms: an alias for *both* the `request_timeout_ms` and
                `database_admin_timeout_ms` timeout parameters.

        Note: a timeout event is no guarantee at all that the
        deletion request has not reached the API server and is not going
        to be, in fact, honored.
        """

        _blocking = _resolve_blocking(blocking, wait_until_active)
        timeout_manager, _request_timeout_ms, _rt_label = _admin_multicall_timeouts(
            api_options=self.api_options,
            method_timeout_label="database_admin_timeout_ms",
            method_timeout_ms=database_admin_timeout_ms,
            request_timeout_ms=request_timeout_ms,
            timeout_ms=timeout_ms,
        )
        logger.info(f"dropping database '{id}' (DevOps API)")
        te_raw_response = await self._dev_ops_api_commander.async_raw_request(
            http_method=HttpMethod.POST,
            additional_path=f"{id}/terminate",
            timeout_context=timeout_manager.remaining_timeout(
                cap_time_ms=_request_timeout_ms,
                cap_timeout_label=_rt_label,
            ),
        )
        if te_raw_response.status_code != DEV_OPS_RESPONSE_HTTP_ACCEPTED:
            raise DevOpsAPIException(
                f"DB deletion ('{id}') failed: API returned HTTP "
                f"{te_raw_response.status_code} instead of "
                f"{DEV_OPS_RESPONSE_HTTP_ACCEPTED} - Accepted."
            )
        logger.info(f"DevOps API returned from dropping database '{id}'")

        async def _check_status() -> dict[str, Any] | None:
            detected_databases = [
                db_info
                for db_info in await self._list_databases_ctx(
                    include=None,
                    provider=None,
                    page_size=None,
                    timeout_context=timeout_manager.remaining_timeout(
                        cap_time_ms=_request_timeout_ms,
                        cap_timeout_label=_rt_label,
                    ),
                )
                if db_info.get("id") == id
            ]
            return detected_databases[0] if detected_databases else None

        await poll_until_complete(
            LongRunningOperation(
                operation_name="drop_database",
                status_predicate=status_sequence_predicate(
                    pending={DEV_OPS_DATABASE_STATUS_TERMINATING},
                    complete={None, DEV_OPS_DATABASE_STATUS_TERMINATED},
                    key=lambda db_info: None if db_info is None else db_info.get("status"),
                ),
                poll_interval_s=(
                    DEV_OPS_DATABASE_POLL_INTERVAL_S
                    if poll_interval_s is None
                    else poll_interval_s
                ),
                blocking=_blocking,
                timeout_manager=timeout_manager,
                event_observers=list(self.api_options.event_observers.values()),
                sender=self,
            ),
            _check_status,
        )
        logger.info(f"finished dropping database '{id}' (DevOps API)")

    def get_database_admin(
        self,
        api_endpoint: str,
        *,
        spawn_api_options: APIOptions | UnsetType = _UNSET,
    ) -> AstraDBDatabaseAdmin:
        """
        Create an AstraDBDatabaseAdmin object for admin work within a certain database.

        Args:
            api_endpoint: the API Endpoint for the target database
                (e.g. `https://<ID>-<REGION>.apps.astra.datastax.com`).
                The database must exist already for the resulting object
                to be effectively used.
            spawn_api_options: a specification - complete or partial - of the
                API Options to override the defaults inherited from the AstraDBAdmin.

        Returns:
            An AstraDBDatabaseAdmin object, that can be used to perform
            keyspace administration tasks on the target database.
        """

        return AstraDBDatabaseAdmin(
            api_endpoint=api_endpoint,
            api_options=self.api_options.with_override(spawn_api_options),
            spawner_astra_db_admin=self,
        )


class DatabaseAdmin(ABC):
    """
    An abstract class defining the interface for a database admin object.
    This supports generic keyspace crud, without committing to a specific
    database architecture (e.g. Astra DB).
    """

    environment: str
    spawner_database: AsyncDatabase

    @abstractmethod
    async def list_keyspaces(self, *pargs: Any, **kwargs: Any) -> list[str]:
        """Get a list of keyspaces for the database."""
        ...

    @abstractmethod
    async def create_keyspace(
        self,
        name: str,
        *,
        blocking: bool | None = None,
        **kwargs: Any,
    ) -> None:
        """
        Create a keyspace in the database.
        """
        ...

    @abstractmethod
    async def drop_keyspace(
        self,
        name: str,
        *,
        blocking: bool | None = None,
        **kwargs: Any,
    ) -> None:
        """
        Drop (delete) a keyspace from the database.
        """
        ...

    @abstractmethod
    async def find_embedding_providers(
        self, *pargs: Any, **kwargs: Any
    ) -> dict[str, Any]:
        """Query the Data API for the available embedding providers."""
        ...

    async def _find_embedding_providers(
        self,
        api_commander: APICommander,
        timeout_options_owner: FullAPIOptions,
        *,
        database_admin_timeout_ms: int | None,
        request_timeout_ms: int | None,
        timeout_ms: int | None,
    ) -> dict[str, Any]:
        _database_admin_timeout_ms, _da_label = _select_singlereq_timeout(
            timeout_options=timeout_options_owner.timeout_options,
            method_timeout_label="database_admin_timeout_ms",
            method_timeout_ms=database_admin_timeout_ms,
            request_timeout_ms=request_timeout_ms,
            timeout_ms=timeout_ms,
        )
        logger.info("findEmbeddingProviders")
        fe_response = await api_commander.async_request(
            payload={"findEmbeddingProviders": {}},
            timeout_context=_TimeoutContext(
                request_ms=_database_admin_timeout_ms, label=_da_label
            ),
        )
        if "embeddingProviders" not in fe_response.get("status", {}):
            raise UnexpectedDataAPIResponseException(
                text="Faulty response from findEmbeddingProviders API command.",
                raw_response=fe_response,
            )
        else:
            logger.info("finished findEmbeddingProviders")
            return fe_response["status"]["embeddingProviders"]  # type: ignore[no-any-return]


class AstraDBDatabaseAdmin(DatabaseAdmin):
    """
    An "admin" object, able to perform administrative tasks at the keyspaces level
    (i.e. within a certain database), such as creating/listing/dropping keyspaces.

    Keyspace creation and deletion go through the DevOps API, which completes
    them asynchronously: meanwhile the database is in MAINTENANCE status.
    With `blocking=True` the methods wait for the database to be ACTIVE again.

    This class is not meant for direct instantiation by the user, rather
    it is obtained by invoking methods such as `get_database_admin`
    of AstraDBAdmin or AsyncDatabase.

    Args:
        api_endpoint: the API Endpoint for the target database
            (i.e. `https://<ID>-<REGION>.apps.astra.datastax.com`.
            Note that no 'Custom Domain' endpoints are accepted).
        api_options: a complete specification of the API Options for this instance.
        spawner_database: an AsyncDatabase, the one that spawned this admin, if any.
        spawner_astra_db_admin: an AstraDBAdmin instance, used for database-level
            DevOps requests. If not passed, a new one is created automatically.

    Example:
        >>> admin_for_my_db = my_client.get_admin().get_database_admin(
        ...     "https://<ID>-<REGION>.apps.astra.datastax.com"
        ... )
        >>> await admin_for_my_db.list_keyspaces()
        ['default_keyspace', 'staging_keyspace']
    """

    def __init__(
        self,
        *,
        api_endpoint: str,
        api_options: FullAPIOptions,
        spawner_database: AsyncDatabase | None = None,
        spawner_astra_db_admin: AstraDBAdmin | None = None,
    ) -> None:
        # lazy import here to avoid circular dependency
        from docapi.data.database import AsyncDatabase

        if api_options.environment not in Environment.astra_db_values:
            raise InvalidEnvironmentException(
                "Environments outside of Astra DB are not supported."
            )

        self.api_options = api_options
        self.environment = api_options.environment
        self.api_endpoint = api_endpoint
        parsed_api_endpoint = parse_api_endpoint(self.api_endpoint)
        if parsed_api_endpoint is None:
            msg = api_endpoint_parsing_error_message(self.api_endpoint)
            raise ValueError(msg)
        self._database_id = parsed_api_endpoint.database_id
        self._region = parsed_api_endpoint.region
        if parsed_api_endpoint.environment != self.api_options.environment:
            raise InvalidEnvironmentException(
                "Environment mismatch between client and provided "
                "API endpoint. You can try adding "
                f'`environment="{parsed_api_endpoint.environment}"` '
                "to the class constructor."
            )
        if spawner_database is not None:
            self.spawner_database = spawner_database
        else:
            self.spawner_database = AsyncDatabase(
                api_endpoint=self.api_endpoint,
                keyspace=None,
                api_options=self.api_options,
            )
        self._api_commander = _get_admin_data_api_commander(
            self.api_endpoint, self.api_options
        )
        self._dev_ops_api_commander = _get_dev_ops_api_commander(
            self.api_options, self._database_id
        )
        if spawner_astra_db_admin is None:
            self._astra_db_admin = AstraDBAdmin(api_options=self.api_options)
        else:
            self._astra_db_admin = spawner_astra_db_admin

    def __repr__(self) -> str:
        parts = [
            f'api_endpoint="{self.api_endpoint}"',
            f"api_options={self.api_options}",
        ]
        return f"{self.__class__.__name__}({', '.join(parts)})"

    def __eq__(self, other: Any) -> bool:
        if isinstance(other, AstraDBDatabaseAdmin):
            return all(
                [
                    self.api_endpoint == other.api_endpoint,
                    self.api_options == other.api_options,
                ]
            )
        else:
            return False

    @property
    def id(self) -> str:
        """
        The ID of this database admin.

        Example:
            >>> my_db_admin.id
            '01234567-89ab-cdef-0123-456789abcdef'
        """
        return self._database_id

    @property
    def region(self) -> str:
        """
        The region for this database admin.

        Example:
            >>> my_db_admin.region
            'us-east-1'
        """
        return self._region

    async def info(
        self,
        *,
        database_admin_timeout_ms: int | None = None,
        request_timeout_ms: int | None = None,
        timeout_ms: int | None = None,
    ) -> dict[str, Any]:
        """
        Query the DevOps API for the full info on this database.

        Args:
            database_admin_timeout_ms: a timeout, in milliseconds, to impose on the
                underlying API request. If not provided, this object's defaults apply.
            request_timeout_ms: an alias for `database_admin_timeout_ms`.
            timeout_ms: an alias for `database_admin_timeout_ms`.

        Returns:
            the database information, as returned by the DevOps API.
        """

        logger.info(f"getting info ('{self._database_id}')")
        req_response = await self._astra_db_admin.database_info(
            id=self._database_id,
            database_admin_timeout_ms=database_admin_timeout_ms,
            request_timeout_ms=request_timeout_ms,
            timeout_ms=timeout_ms,
        )
        logger.info(f"finished getting info ('{self._database_id}')")
        return req_response

    async def list_keyspaces(
        self,
        *,
        keyspace_admin_timeout_ms: int | None = None,
        request_timeout_ms: int | None = None,
        timeout_ms: int | None = None,
    ) -> list[str]:
        """
        Query the DevOps API for a list of the keyspaces in the database.

        Args:
            keyspace_admin_timeout_ms: a timeout, in milliseconds, to impose on the
                underlying API request. If not provided, this object's defaults apply.
            request_timeout_ms: an alias for `keyspace_admin_timeout_ms`.
            timeout_ms: an alias for `keyspace_admin_timeout_ms`.

        Returns:
            A list of the keyspaces, each a string, in no particular order.
        """

        logger.info(f"getting keyspaces ('{self._database_id}')")
        info = await self.info(
            database_admin_timeout_ms=keyspace_admin_timeout_ms,
            request_timeout_ms=request_timeout_ms,
            timeout_ms=timeout_ms,
        )
        logger.info(f"finished getting keyspaces ('{self._database_id}')")
        return (info.get("info") or {}).get("keyspaces") or []

    async def _wait_for_maintenance_end(
        self,
        *,
        operation_name: str,
        blocking: bool,
        poll_interval_s: float | None,
        timeout_manager: MultiCallTimeoutManager,
        request_timeout_ms: int,
        request_timeout_label: str | None,
    ) -> dict[str, Any] | None:
        async def _check_status() -> dict[str, Any]:
            return await self._astra_db_admin._database_info_ctx(
                self._database_id,
                timeout_context=timeout_manager.remaining_timeout(
                    cap_time_ms=request_timeout_ms,
                    cap_timeout_label=request_timeout_label,
                ),
            )

        return await poll_until_complete(  # type: ignore[no-any-return]
            LongRunningOperation(
                operation_name=operation_name,
                status_predicate=status_sequence_predicate(
                    pending={DEV_OPS_DATABASE_STATUS_MAINTENANCE},
                    complete={DEV_OPS_DATABASE_STATUS_ACTIVE},
                    key=lambda db_info: db_info.get("status"),
                ),
                poll_interval_s=(
                    DEV_OPS_KEYSPACE_POLL_INTERVAL_S
                    if poll_interval_s is None
                    else poll_interval_s
                ),
                blocking=blocking,
                timeout_manager=timeout_manager,
                event_observers=list(self.api_options.event_observers.values()),
                sender=self,
            ),
            _check_status,
        )

    async def create_keyspace(
        self,
        name: str,
        *,
        blocking: bool | None = None,
        wait_until_active: bool | None = None,
        poll_interval_s: float | None = None,
        keyspace_admin_timeout_ms: int | None = None,
        request_timeout_ms: int | None = None,
        timeout_ms: int | None = None,
        **kwargs: Any,
    ) -> None:
        """
        Create a keyspace in this database as requested,
        optionally waiting for it to be ready.

        Args:
            name: the keyspace name. If supplying a keyspace that exists
                already, the method call proceeds as usual, no errors are
                raised, and the whole invocation is a no-op.
            blocking: if True (default), the method returns only after
                the target database is in ACTIVE state again (a few
                seconds, usually). If False, it will return right after issuing the
                creation request to the DevOps API, and it will be responsibility
                of the caller to check the database status/keyspace availability
                before working with it.
            wait_until_active: a deprecated alias for `blocking`.
            poll_interval_s: the seconds between status checks while waiting.
                Defaults to 1 second.
            keyspace_admin_timeout_ms: a timeout, in milliseconds, for the whole
                requested operation to complete. This is used only
                if `blocking` is true, i.e. if the method call must
                wait and keep querying the DevOps API for the status of the
                database during keyspace creation.
            request_timeout_ms: a timeout, in milliseconds, for
                each underlying DevOps API HTTP request.
            timeout_ms: an alias for *both* the `request_timeout_ms` and
                `keyspace_admin_timeout_ms` timeout parameters.

        Note: a timeout event is no guarantee at all that the
        creation request has not reached the API server and is not going
        to be, in fact, honored.

        Example:
            >>> await my_db_admin.create_keyspace("app_keyspace")
        """

        _blocking = _resolve_blocking(blocking, wait_until_active)
        timeout_manager, _request_timeout_ms, _rt_label = _admin_multicall_timeouts(
            api_options=self.api_options,
            method_timeout_label="keyspace_admin_timeout_ms",
            method_timeout_ms=keyspace_admin_timeout_ms,
            request_timeout_ms=request_timeout_ms,
            timeout_ms=timeout_ms,
        )
        logger.info(f"creating keyspace '{name}' on '{self._database_id}' (DevOps API)")
        cn_raw_response = await self._dev_ops_api_commander.async_raw_request(
            http_method=HttpMethod.POST,
            additional_path=f"keyspaces/{name}",
            timeout_context=timeout_manager.remaining_timeout(
                cap_time_ms=_request_timeout_ms,
                cap_timeout_label=_rt_label,
            ),
        )
        if cn_raw_response.status_code != DEV_OPS_RESPONSE_HTTP_CREATED:
            raise DevOpsAPIException(
                f"keyspace creation ('{name}') failed: API returned HTTP "
                f"{cn_raw_response.status_code} instead of "
                f"{DEV_OPS_RESPONSE_HTTP_CREATED} - Created."
            )
        logger.info(
            f"DevOps API returned from creating keyspace "
            f"'{name}' on '{self._database_id}'"
        )
        last_db_info = await self._wait_for_maintenance_end(
            operation_name="create_keyspace",
            blocking=_blocking,
            poll_interval_s=poll_interval_s,
            timeout_manager=timeout_manager,
            request_timeout_ms=_request_timeout_ms,
            request_timeout_label=_rt_label,
        )
        if last_db_info is not None:
            if name not in ((last_db_info.get("info") or {}).get("keyspaces") or []):
                raise DevOpsAPIException("Could not create the keyspace.")
        logger.info(
            f"finished creating keyspace '{name}' on "
            f"'{self._database_id}' (DevOps API)"
        )

    async def drop_keyspace(
        self,
        name: str,
        *,
        blocking: bool | None = None,
        wait_until_active: bool | None = None,
        poll_interval_s: float | None = None,
        keyspace_admin_timeout_ms: int | None = None,
        request_timeout_ms: int | None = None,
        timeout_ms: int | None = None,
        **kwargs: Any,
    ) -> None:
        """
        Delete a keyspace from the database, optionally waiting for the database
        to become active again.

        Args:
            name: the keyspace to delete. If it does not exist in this database,
                an error is raised.
            blocking: if True (default), the method returns only after
                the target database is in ACTIVE state again (a few
                seconds, usually). If False, it will return right after issuing the
                deletion request to the DevOps API.
            wait_until_active: a deprecated alias for `blocking`.
            poll_interval_s: the seconds between status checks while waiting.
                Defaults to 1 second.
            keyspace_admin_timeout_ms: a timeout, in milliseconds, for the whole
                requested operation to complete. This is used only
                if `blocking` is true.
            request_timeout_ms: a timeout, in milliseconds, for
                each underlying DevOps API HTTP request.
            timeout_ms: an alias for *both* the `request_timeout_ms` and
                `keyspace_admin_timeout_ms` timeout parameters.

        Note: a timeout event is no guarantee at all that the
        deletion request has not reached the API server and is not going
        to be, in fact, honored.
        """

        _blocking = _resolve_blocking(blocking, wait_until_active)
        timeout_manager, _request_timeout_ms, _rt_label = _admin_multicall_timeouts(
            api_options=self.api_options,
            method_timeout_label="keyspace_admin_timeout_ms",
            method_timeout_ms=keyspace_admin_timeout_ms,
            request_timeout_ms=request_timeout_ms,
            timeout_ms=timeout_ms,
        )
        logger.info(f"dropping keyspace '{name}' on '{self._database_id}' (DevOps API)")
        dk_raw_response = await self._dev_ops_api_commander.async_raw_request(
            http_method=HttpMethod.DELETE,
            additional_path=f"keyspaces/{name}",
            timeout_context=timeout_manager.remaining_timeout(
                cap_time_ms=_request_timeout_ms,
                cap_timeout_label=_rt_label,
            ),
        )
        if dk_raw_response.status_code != DEV_OPS_RESPONSE_HTTP_ACCEPTED:
            raise DevOpsAPIException(
                f"keyspace deletion ('{name}') failed: API returned HTTP "
                f"{dk_raw_response.status_code} instead of "
                f"{DEV_OPS_RESPONSE_HTTP_ACCEPTED} - Accepted."
            )
        logger.info(
            "DevOps API returned from dropping keyspace "
            f"'{name}' on '{self._database_id}'"
        )
        last_db_info = await self._wait_for_maintenance_end(
            operation_name="drop_keyspace",
            blocking=_blocking,
            poll_interval_s=poll_interval_s,
            timeout_manager=timeout_manager,
            request_timeout_ms=_request_timeout_ms,
            request_timeout_label=_rt_label,
        )
        if last_db_info is not None:
            if name in ((last_db_info.get("info") or {}).get("keyspaces") or []):
                raise DevOpsAPIException("Could not drop the keyspace.")
        logger.info(
            f"finished dropping keyspace '{name}' on "
            f"'{self._database_id}' (DevOps API)"
        )

    async def find_embedding_providers(
        self,
        *,
        database_admin_timeout_ms: int | None = None,
        request_timeout_ms: int | None = None,
        timeout_ms: int | None = None,
    ) -> dict[str, Any]:
        """
        Query the API for the full information on available embedding providers.

        Args:
            database_admin_timeout_ms: a timeout, in milliseconds, to impose on the
                underlying API request. If not provided, this object's defaults apply.
            request_timeout_ms: an alias for `database_admin_timeout_ms`.
            timeout_ms: an alias for `database_admin_timeout_ms`.

        Returns:
            A dictionary from provider names to their descriptions, as
            returned by the API.
        """

        return await self._find_embedding_providers(
            self._api_commander,
            self.api_options,
            database_admin_timeout_ms=database_admin_timeout_ms,
            request_timeout_ms=request_timeout_ms,
            timeout_ms=timeout_ms,
        )

    def get_async_database(
        self,
        *,
        keyspace: str | None = None,
        spawn_api_options: APIOptions | UnsetType = _UNSET,
    ) -> AsyncDatabase:
        """
        Create an AsyncDatabase instance for this database.

        Args:
            keyspace: an optional keyspace to set in the resulting AsyncDatabase.
                The same default logic as for `AstraDBAdmin.get_database` applies.
            spawn_api_options: a specification - complete or partial - of the
                API Options to override the defaults inherited from this admin.

        Returns:
            An AsyncDatabase object, ready to be used for working with data.
        """

        # lazy import here to avoid circular dependency
        from docapi.data.database import AsyncDatabase

        return AsyncDatabase(
            api_endpoint=self.api_endpoint,
            keyspace=keyspace,
            api_options=self.api_options.with_override(spawn_api_options),
        )


class DataAPIDatabaseAdmin(DatabaseAdmin):
    """
    An "admin" object for non-Astra Data API environments, to perform
    administrative tasks at the keyspaces level such as creating/listing/dropping
    keyspaces.

    Keyspace creation and deletion complete within the request on these
    environments: there is never anything to wait for.

    This class is not meant for direct instantiation by the user, rather
    it is obtained by invoking methods such as `get_database_admin` of
    AsyncDatabase.

    Args:
        api_endpoint: the full URI to access the Data API,
            e.g. "http://localhost:8181".
        api_options: a complete specification of the API Options for this instance.
        spawner_database: an AsyncDatabase, the one that spawned this admin, if any.

    Example:
        >>> from docapi import DataAPIClient
        >>> from docapi.authentication import UsernamePasswordTokenProvider
        >>> from docapi.constants import Environment
        >>> token_provider = UsernamePasswordTokenProvider("username", "password")
        >>> endpoint = "http://localhost:8181"
        >>>
        >>> client = DataAPIClient(
        >>>     token=token_provider,
        >>>     environment=Environment.OTHER,
        >>> )
        >>> database = client.get_async_database(endpoint)
        >>> admin_for_my_db = database.get_database_admin()
        >>>
        >>> await admin_for_my_db.list_keyspaces()
        ['keyspace1', 'keyspace2']
    """

    def __init__(
        self,
        *,
        api_endpoint: str,
        api_options: FullAPIOptions,
        spawner_database: AsyncDatabase | None = None,
    ) -> None:
        # lazy import here to avoid circular dependency
        from docapi.data.database import AsyncDatabase

        self.api_options = api_options
        self.environment = api_options.environment
        self.api_endpoint = api_endpoint
        if spawner_database is not None:
            self.spawner_database = spawner_database
        else:
            self.spawner_database = AsyncDatabase(
                api_endpoint=self.api_endpoint,
                keyspace=None,
                api_options=self.api_options,
            )
        self._api_commander = _get_admin_data_api_commander(
            self.api_endpoint, self.api_options
        )

    def __repr__(self) -> str:
        parts = [
            f'api_endpoint="{self.api_endpoint}"',
            f"api_options={self.api_options}",
        ]
        return f"{self.__class__.__name__}({', '.join(parts)})"

    def __eq__(self, other: Any) -> bool:
        if isinstance(other, DataAPIDatabaseAdmin):
            return all(
                [
                    self.api_endpoint == other.api_endpoint,
                    self.api_options == other.api_options,
                ]
            )
        else:
            return False

    def _keyspace_admin_timeout_context(
        self,
        *,
        keyspace_admin_timeout_ms: int | None,
        request_timeout_ms: int | None,
        timeout_ms: int | None,
    ) -> _TimeoutContext:
        _keyspace_admin_timeout_ms, _ka_label = _select_singlereq_timeout(
            timeout_options=self.api_options.timeout_options,
            method_timeout_label="keyspace_admin_timeout_ms",
            method_timeout_ms=keyspace_admin_timeout_ms,
            request_timeout_ms=request_timeout_ms,
            timeout_ms=timeout_ms,
        )
        return _TimeoutContext(request_ms=_keyspace_admin_timeout_ms, label=_ka_label)

    async def list_keyspaces(
        self,
        *,
        keyspace_admin_timeout_ms: int | None = None,
        request_timeout_ms: int | None = None,
        timeout_ms: int | None = None,
    ) -> list[str]:
        """
        Query the API for a list of the keyspaces in the database.

        Args:
            keyspace_admin_timeout_ms: a timeout, in milliseconds, to impose on the
                underlying API request. If not provided, this object's defaults apply.
            request_timeout_ms: an alias for `keyspace_admin_timeout_ms`.
            timeout_ms: an alias for `keyspace_admin_timeout_ms`.

        Returns:
            A list of the keyspaces, each a string, in no particular order.
        """

        logger.info("getting list of keyspaces")
        fn_response = await self._api_commander.async_request(
            payload={"findKeyspaces": {}},
            timeout_context=self._keyspace_admin_timeout_context(
                keyspace_admin_timeout_ms=keyspace_admin_timeout_ms,
                request_timeout_ms=request_timeout_ms,
                timeout_ms=timeout_ms,
            ),
        )
        if "keyspaces" not in fn_response.get("status", {}):
            raise UnexpectedDataAPIResponseException(
                text="Faulty response from findKeyspaces API command.",
                raw_response=fn_response,
            )
        else:
            logger.info("finished getting list of keyspaces")
            return fn_response["status"]["keyspaces"]  # type: ignore[no-any-return]

    async def create_keyspace(
        self,
        name: str,
        *,
        replication_options: dict[str, Any] | None = None,
        blocking: bool | None = None,
        wait_until_active: bool | None = None,
        keyspace_admin_timeout_ms: int | None = None,
        request_timeout_ms: int | None = None,
        timeout_ms: int | None = None,
        **kwargs: Any,
    ) -> None:
        """
        Create a keyspace in the database.

        Args:
            name: the keyspace name. If supplying a keyspace that exists
                already, the method call proceeds as usual, no errors are
                raised, and the whole invocation is a no-op.
            replication_options: this dictionary can specify the options about
                replication of the keyspace (across database nodes). If provided,
                it must have a structure similar to:
                `{"class": "SimpleStrategy", "replication_factor": 1}`.
            blocking: accepted for interface compatibility. The keyspace is
                ready when the request returns, regardless of this flag.
            wait_until_active: a deprecated alias for `blocking`.
            keyspace_admin_timeout_ms: a timeout, in milliseconds, to impose on the
                underlying API request. If not provided, this object's defaults apply.
            request_timeout_ms: an alias for `keyspace_admin_timeout_ms`.
            timeout_ms: an alias for `keyspace_admin_timeout_ms`.

        Example:
            >>> await admin_for_my_db.create_keyspace("that_other_one")
            >>> await admin_for_my_db.list_keyspaces()
            ['default_keyspace', 'that_other_one']
        """

        _resolve_blocking(blocking, wait_until_active)
        options = {
            k: v
            for k, v in {
                "replication": replication_options,
            }.items()
            if v
        }
        payload = {
            "createKeyspace": {
                **{"name": name},
                **({"options": options} if options else {}),
            }
        }
        logger.info(f"creating keyspace '{name}'")
        cn_response = await self._api_commander.async_request(
            payload=payload,
            timeout_context=self._keyspace_admin_timeout_context(
                keyspace_admin_timeout_ms=keyspace_admin_timeout_ms,
                request_timeout_ms=request_timeout_ms,
                timeout_ms=timeout_ms,
            ),
        )
        if (cn_response.get("status") or {}).get("ok") != 1:
            raise UnexpectedDataAPIResponseException(
                text="Faulty response from createKeyspace API command.",
                raw_response=cn_response,
            )
        else:
            logger.info(f"finished creating keyspace '{name}'")

    async def drop_keyspace(
        self,
        name: str,
        *,
        blocking: bool | None = None,
        wait_until_active: bool | None = None,
        keyspace_admin_timeout_ms: int | None = None,
        request_timeout_ms: int | None = None,
        timeout_ms: int | None = None,
        **kwargs: Any,
    ) -> None:
        """
        Drop (delete) a keyspace from the database.

        Args:
            name: the keyspace to delete. If it does not exist in this database,
                an error is raised.
            blocking: accepted for interface compatibility. The keyspace is
                gone when the request returns, regardless of this flag.
            wait_until_active: a deprecated alias for `blocking`.
            keyspace_admin_timeout_ms: a timeout, in milliseconds, to impose on the
                underlying API request. If not provided, this object's defaults apply.
            request_timeout_ms: an alias for `keyspace_admin_timeout_ms`.
            timeout_ms: an alias for `keyspace_admin_timeout_ms`.
        """

        _resolve_blocking(blocking, wait_until_active)
        logger.info(f"dropping keyspace '{name}'")
        dn_response = await self._api_commander.async_request(
            payload={"dropKeyspace": {"name": name}},
            timeout_context=self._keyspace_admin_timeout_context(
                keyspace_admin_timeout_ms=keyspace_admin_timeout_ms,
                request_timeout_ms=request_timeout_ms,
                timeout_ms=timeout_ms,
            ),
        )
        if (dn_response.get("status") or {}).get("ok") != 1:
            raise UnexpectedDataAPIResponseException(
                text="Faulty response from dropKeyspace API command.",
                raw_response=dn_response,
            )
        else:
            logger.info(f"finished dropping keyspace '{name}'")

    async def find_embedding_providers(
        self,
        *,
        database_admin_timeout_ms: int | None = None,
        request_timeout_ms: int | None = None,
        timeout_ms: int | None = None,
    ) -> dict[str, Any]:
        """
        Query the API for the full information on available embedding providers.

        Args:
            database_admin_timeout_ms: a timeout, in milliseconds, to impose on the
                underlying API request. If not provided, this object's defaults apply.
            request_timeout_ms: an alias for `database_admin_timeout_ms`.
            timeout_ms: an alias for `database_admin_timeout_ms`.

        Returns:
            A dictionary from provider names to their descriptions, as
            returned by the API.
        """

        return await self._find_embedding_providers(
            self._api_commander,
            self.api_options,
            database_admin_timeout_ms=database_admin_timeout_ms,
            request_timeout_ms=request_timeout_ms,
            timeout_ms=timeout_ms,
        )


def make_database_admin(
    *,
    api_endpoint: str,
    api_options: FullAPIOptions,
    environment: str | None = None,
    spawner_database: AsyncDatabase | None = None,
) -> DatabaseAdmin:
    """
    Build the database admin fitting an environment: `AstraDBDatabaseAdmin`
    for the Astra DB environments, `DataAPIDatabaseAdmin` for all others.

    Args:
        api_endpoint: the API Endpoint of the target database.
        api_options: a complete specification of the API Options for the admin.
        environment: one of the `docapi.constants.Environment` values. If
            omitted, the environment in `api_options` is used.
        spawner_database: the AsyncDatabase requesting the admin, if any.

    Returns:
        a DatabaseAdmin instance.
    """

    _environment = api_options.environment if environment is None else environment
    if _environment not in Environment.values:
        raise InvalidEnvironmentException(f"Unknown environment: '{_environment}'.")
    _api_options = (
        api_options
        if _environment == api_options.environment
        else dataclasses.replace(api_options, environment=_environment)
    )
    if _environment in Environment.astra_db_values:
        return AstraDBDatabaseAdmin(
            api_endpoint=api_endpoint,
            api_options=_api_options,
            spawner_database=spawner_database,
        )
    return DataAPIDatabaseAdmin(
        api_endpoint=api_endpoint,
        api_options=_api_options,
        spawner_database=spawner_database,
    )

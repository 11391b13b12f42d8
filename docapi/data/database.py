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

import logging
from types import TracebackType
from typing import TYPE_CHECKING, Any

from docapi.authentication import TokenProvider
from docapi.constants import DefaultDocumentType, Environment
from docapi.data.collection import AsyncCollection
from docapi.exceptions import (
    UnexpectedDataAPIResponseException,
    _select_singlereq_timeout,
    _TimeoutContext,
)
from docapi.settings.defaults import (
    DEFAULT_ASTRA_DB_KEYSPACE,
    DEFAULT_DATA_API_AUTH_HEADER,
)
from docapi.utils.api_commander import APICommander
from docapi.utils.api_options import APIOptions, FullAPIOptions
from docapi.utils.unset import _UNSET, UnsetType

if TYPE_CHECKING:
    from docapi.admin.admin import DatabaseAdmin


logger = logging.getLogger(__name__)

NO_KEYSPACE_MESSAGE = (
    "No keyspace specified. This operation requires a keyspace to "
    "be set, e.g. through the `with_options` method."
)


class AsyncDatabase:
    """
    A database reachable through the Data API, bound to a working keyspace.
    It spawns AsyncCollection objects and runs the collection-level admin
    commands (create, drop, list) plus arbitrary commands.

    Instances are obtained from `DataAPIClient.get_async_database` or from
    a database admin. No request is made on construction.

    Args:
        api_endpoint: the base URL of the Data API for this database.
        keyspace: the working keyspace. If None, Astra DB databases get
            "default_keyspace" while other environments stay without one, and
            keyspace-bound operations then raise ValueError until one is set.
        api_options: the complete API Options for this database.
    """

    def __init__(
        self,
        *,
        api_endpoint: str,
        keyspace: str | None,
        api_options: FullAPIOptions,
    ) -> None:
        self.api_options = api_options
        self.api_endpoint = api_endpoint.strip("/")
        self._using_keyspace: str | None
        if (
            keyspace is None
            and self.api_options.environment in Environment.astra_db_values
        ):
            self._using_keyspace = DEFAULT_ASTRA_DB_KEYSPACE
        else:
            self._using_keyspace = keyspace

        self._commander_headers = {
            DEFAULT_DATA_API_AUTH_HEADER: self.api_options.token.get_token(),
            **self.api_options.database_additional_headers,
        }
        self._api_commander = self._get_api_commander(keyspace=self.keyspace)

    def __repr__(self) -> str:
        if self._using_keyspace is None:
            keyspace_desc = "keyspace not set"
        else:
            keyspace_desc = f'keyspace="{self._using_keyspace}"'
        return (
            f'{self.__class__.__name__}(api_endpoint="{self.api_endpoint}", '
            f"{keyspace_desc}, api_options={self.api_options})"
        )

    def __eq__(self, other: Any) -> bool:
        if isinstance(other, AsyncDatabase):
            return all(
                [
                    self.api_endpoint == other.api_endpoint,
                    self.keyspace == other.keyspace,
                    self.api_options == other.api_options,
                ]
            )
        else:
            return False

    def _commander_for_path(self, *path_components: str | None) -> APICommander:
        url_options = self.api_options.data_api_url_options
        base_path_components = [
            comp
            for comp in (
                ncomp.strip("/")
                for ncomp in (
                    url_options.api_path,
                    url_options.api_version,
                    *path_components,
                )
                if ncomp is not None
            )
            if comp != ""
        ]
        return APICommander(
            api_endpoint=self.api_endpoint,
            path=f"/{'/'.join(base_path_components)}",
            headers=self._commander_headers,
            callers=self.api_options.callers,
            redacted_header_names=self.api_options.redacted_header_names,
            event_observers=self.api_options.event_observers,
        )

    def _get_api_commander(self, keyspace: str | None) -> APICommander | None:
        if keyspace is None:
            return None
        return self._commander_for_path(keyspace)

    def _keyspace_commander(self, keyspace: str | None) -> APICommander:
        """The commander for `keyspace`, or for the working keyspace if None."""
        commander = (
            self._get_api_commander(keyspace=keyspace)
            if keyspace
            else self._api_commander
        )
        if commander is None:
            raise ValueError(NO_KEYSPACE_MESSAGE)
        return commander

    async def _collection_admin_request(
        self,
        payload: dict[str, Any],
        *,
        keyspace: str | None,
        collection_admin_timeout_ms: int | None,
        request_timeout_ms: int | None,
        timeout_ms: int | None,
    ) -> dict[str, Any]:
        _ca_timeout_ms, _ca_label = _select_singlereq_timeout(
            timeout_options=self.api_options.timeout_options,
            method_timeout_label="collection_admin_timeout_ms",
            method_timeout_ms=collection_admin_timeout_ms,
            request_timeout_ms=request_timeout_ms,
            timeout_ms=timeout_ms,
        )
        commander = self._keyspace_commander(keyspace)
        command_name = next(iter(payload))
        logger.info(f"{command_name} on '{commander.path}'")
        response = await commander.async_request(
            payload=payload,
            timeout_context=_TimeoutContext(request_ms=_ca_timeout_ms, label=_ca_label),
        )
        logger.info(f"finished {command_name}")
        return response

    async def __aenter__(self) -> AsyncDatabase:
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None = None,
        exc_value: BaseException | None = None,
        traceback: TracebackType | None = None,
    ) -> None:
        if self._api_commander is not None:
            await self._api_commander.__aexit__(
                exc_type=exc_type,
                exc_value=exc_value,
                traceback=traceback,
            )

    def with_options(
        self,
        *,
        keyspace: str | None = None,
        token: str | TokenProvider | UnsetType = _UNSET,
        api_options: APIOptions | UnsetType = _UNSET,
    ) -> AsyncDatabase:
        """
        A copy of this database with a different working keyspace, token
        or API Options. A `token` given here wins over `api_options.token`.

        Example:
            >>> other_ks_db = async_database.with_options(keyspace="other_ks")
        """

        return AsyncDatabase(
            api_endpoint=self.api_endpoint,
            keyspace=keyspace or self.keyspace,
            api_options=self.api_options.with_override(api_options).with_override(
                APIOptions(token=token)
            ),
        )

    @property
    def keyspace(self) -> str | None:
        """The working keyspace, or None if not set."""
        return self._using_keyspace

    def get_collection(
        self,
        name: str,
        *,
        keyspace: str | None = None,
        spawn_api_options: APIOptions | UnsetType = _UNSET,
    ) -> AsyncCollection[DefaultDocumentType]:
        """
        An AsyncCollection for an existing collection. No request is made.

        Args:
            name: the name of the collection.
            keyspace: the keyspace of the collection, in place of the working one.
            spawn_api_options: settings overriding those of this database.

        Raises:
            ValueError: if no keyspace is given and none is set on the database.
        """

        _keyspace = keyspace or self.keyspace
        if _keyspace is None:
            raise ValueError(NO_KEYSPACE_MESSAGE)
        return AsyncCollection(
            database=self,
            name=name,
            keyspace=_keyspace,
            api_options=self.api_options.with_override(spawn_api_options),
        )

    async def create_collection(
        self,
        name: str,
        *,
        definition: dict[str, Any] | None = None,
        keyspace: str | None = None,
        collection_admin_timeout_ms: int | None = None,
        request_timeout_ms: int | None = None,
        timeout_ms: int | None = None,
        spawn_api_options: APIOptions | UnsetType = _UNSET,
    ) -> AsyncCollection[DefaultDocumentType]:
        """
        Create a collection with a `createCollection` command and return
        the AsyncCollection for it.

        Args:
            name: the name of the collection.
            definition: the collection options, sent as they are, e.g.
                `{"vector": {"dimension": 3}}`. Omitted from the payload if empty.
            keyspace: the keyspace for the collection, in place of the working one.
            collection_admin_timeout_ms: a timeout for the request, in milliseconds.
            request_timeout_ms: an alias for `collection_admin_timeout_ms`.
            timeout_ms: an alias for `collection_admin_timeout_ms`.
            spawn_api_options: settings for the returned collection, overriding
                those of this database.

        Raises:
            UnexpectedDataAPIResponseException: if the API does not answer
                with an `{"ok": 1}` status.
        """

        cc_command: dict[str, Any] = {"name": name}
        if definition:
            cc_command["options"] = definition
        cc_response = await self._collection_admin_request(
            {"createCollection": cc_command},
            keyspace=keyspace,
            collection_admin_timeout_ms=collection_admin_timeout_ms,
            request_timeout_ms=request_timeout_ms,
            timeout_ms=timeout_ms,
        )
        if cc_response.get("status") != {"ok": 1}:
            raise UnexpectedDataAPIResponseException(
                text="Faulty response from createCollection API command.",
                raw_response=cc_response,
            )
        return self.get_collection(
            name,
            keyspace=keyspace,
            spawn_api_options=spawn_api_options,
        )

    async def drop_collection(
        self,
        name: str,
        *,
        keyspace: str | None = None,
        collection_admin_timeout_ms: int | None = None,
        request_timeout_ms: int | None = None,
        timeout_ms: int | None = None,
    ) -> dict[str, Any]:
        """
        Drop a collection and all its documents with a `deleteCollection`
        command. Timeout parameters as for `create_collection`.

        Returns:
            the status of the response, i.e. `{"ok": 1}`.
        """

        dc_response = await self._collection_admin_request(
            {"deleteCollection": {"name": name}},
            keyspace=keyspace,
            collection_admin_timeout_ms=collection_admin_timeout_ms,
            request_timeout_ms=request_timeout_ms,
            timeout_ms=timeout_ms,
        )
        if dc_response.get("status") != {"ok": 1}:
            raise UnexpectedDataAPIResponseException(
                text="Faulty response from deleteCollection API command.",
                raw_response=dc_response,
            )
        return dc_response["status"]  # type: ignore[no-any-return]

    async def list_collection_names(
        self,
        *,
        keyspace: str | None = None,
        collection_admin_timeout_ms: int | None = None,
        request_timeout_ms: int | None = None,
        timeout_ms: int | None = None,
    ) -> list[str]:
        """The collection names in a keyspace, in the order the API lists them."""

        fc_response = await self._collection_admin_request(
            {"findCollections": {}},
            keyspace=keyspace,
            collection_admin_timeout_ms=collection_admin_timeout_ms,
            request_timeout_ms=request_timeout_ms,
            timeout_ms=timeout_ms,
        )
        if "collections" not in fc_response.get("status", {}):
            raise UnexpectedDataAPIResponseException(
                text="Faulty response from findCollections API command.",
                raw_response=fc_response,
            )
        return fc_response["status"]["collections"]  # type: ignore[no-any-return]

    async def command(
        self,
        body: dict[str, Any],
        *,
        keyspace: str | None | UnsetType = _UNSET,
        collection_name: str | None = None,
        raise_api_errors: bool = True,
        general_method_timeout_ms: int | None = None,
        request_timeout_ms: int | None = None,
        timeout_ms: int | None = None,
    ) -> dict[str, Any]:
        """
        Send an arbitrary command to the Data API and return the raw response.

        Args:
            body: the JSON payload.
            keyspace: the keyspace in the request path. Omit it for the working
                keyspace; pass None for a database-wide command on the bare
                API path (then `collection_name` is not allowed).
            collection_name: a collection to append to the request path.
            raise_api_errors: whether an `errors` entry in the response raises
                DataAPIResponseException.
            general_method_timeout_ms: a timeout for the request, in milliseconds.
            request_timeout_ms: an alias for `general_method_timeout_ms`.
            timeout_ms: an alias for `general_method_timeout_ms`.

        Example:
            >>> await async_database.command(
            ...     {"countDocuments": {}}, collection_name="my_coll"
            ... )
            {'status': {'count': 123}}
        """

        _request_timeout_ms, _rt_label = _select_singlereq_timeout(
            timeout_options=self.api_options.timeout_options,
            method_timeout_label="general_method_timeout_ms",
            method_timeout_ms=general_method_timeout_ms,
            request_timeout_ms=request_timeout_ms,
            timeout_ms=timeout_ms,
        )
        _keyspace: str | None
        if keyspace is None:
            if collection_name is not None:
                raise ValueError(
                    "Cannot pass collection_name to database "
                    "`command` on a no-keyspace command"
                )
            _keyspace = None
        elif isinstance(keyspace, UnsetType):
            _keyspace = self.keyspace
        else:
            _keyspace = keyspace
        command_commander = self._commander_for_path(_keyspace, collection_name)

        _cmd_desc = ",".join(sorted(body.keys()))
        logger.info(f"command={_cmd_desc} on {command_commander.path}")
        req_response = await command_commander.async_request(
            payload=body,
            raise_api_errors=raise_api_errors,
            timeout_context=_TimeoutContext(
                request_ms=_request_timeout_ms, label=_rt_label
            ),
        )
        logger.info(f"finished command={_cmd_desc}")
        return req_response

    def get_database_admin(
        self,
        *,
        token: str | TokenProvider | UnsetType = _UNSET,
        spawn_api_options: APIOptions | UnsetType = _UNSET,
    ) -> DatabaseAdmin:
        """
        The admin for this database: an `AstraDBDatabaseAdmin` on Astra DB,
        a `DataAPIDatabaseAdmin` elsewhere. The token of this database is
        used unless another is passed.
        """

        # lazy importing here to avoid circular dependency
        from docapi.admin.admin import make_database_admin

        return make_database_admin(
            api_endpoint=self.api_endpoint,
            api_options=self.api_options.with_override(
                spawn_api_options
            ).with_override(APIOptions(token=token)),
            spawner_database=self,
        )

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
from typing import TYPE_CHECKING, Any, Sequence

from docapi.constants import CallerType, Environment
from docapi.exceptions import InvalidEnvironmentException
from docapi.utils.api_options import (
    APIOptions,
    FullAPIOptions,
    defaultAPIOptions,
)
from docapi.utils.unset import _UNSET, UnsetType

if TYPE_CHECKING:
    from docapi.admin import AstraDBAdmin
    from docapi.authentication import TokenProvider
    from docapi.data.database import AsyncDatabase


logger = logging.getLogger(__name__)


def _resolve_environment(environment: str | UnsetType) -> str:
    _environment = (
        Environment.PROD if isinstance(environment, UnsetType) else environment
    ).lower()
    if _environment not in Environment.values:
        raise InvalidEnvironmentException(
            f"Unsupported `environment` value: '{_environment}'."
        )
    return _environment


class DataAPIClient:
    """
    The entry point of docapi. A client holds the settings shared by the
    databases and admin objects it spawns: environment, token, callers,
    timeouts and event observers.

    Args:
        token: the token used by default for the spawned objects, either as
            a string or as a `docapi.authentication.TokenProvider`. It can be
            overridden when spawning a database or an admin.
        environment: the kind of backend targeted, one of the
            `docapi.constants.Environment` values (default: `Environment.PROD`).
            Only the Astra DB environments (prod, dev, test) support `get_admin`.
        callers: ("caller_name", "caller_version") pairs for the user-agent.
        api_options: an APIOptions whose settings override the defaults for
            the environment. The named parameters, if given, take precedence.

    Example:
        >>> client = DataAPIClient("AstraCS:...")
        >>> database = client.get_async_database(
        ...     "https://01234567-...-us-east1.apps.astra.datastax.com",
        ... )
        >>> local_client = DataAPIClient(environment=Environment.OTHER)
    """

    api_options: FullAPIOptions

    def __init__(
        self,
        token: str | TokenProvider | UnsetType = _UNSET,
        *,
        environment: str | UnsetType = _UNSET,
        callers: Sequence[CallerType] | UnsetType = _UNSET,
        api_options: APIOptions | UnsetType = _UNSET,
    ) -> None:
        self.api_options = (
            defaultAPIOptions(_resolve_environment(environment))
            .with_override(api_options)
            .with_override(APIOptions(callers=callers, token=token))
        )

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}({self.api_options})"

    def __eq__(self, other: Any) -> bool:
        if isinstance(other, DataAPIClient):
            return self.api_options == other.api_options
        return False

    def _spawn_options(
        self,
        token: str | TokenProvider | UnsetType,
        spawn_api_options: APIOptions | UnsetType,
    ) -> FullAPIOptions:
        return self.api_options.with_override(spawn_api_options).with_override(
            APIOptions(token=token)
        )

    def with_options(
        self,
        *,
        token: str | TokenProvider | UnsetType = _UNSET,
        api_options: APIOptions | UnsetType = _UNSET,
    ) -> DataAPIClient:
        """
        A new client with the same settings as this one, except for those
        overridden by the arguments (`token` wins over `api_options.token`).
        """

        final_api_options = self._spawn_options(token, api_options)
        return DataAPIClient(
            environment=final_api_options.environment,
            api_options=final_api_options,
        )

    def get_async_database(
        self,
        api_endpoint: str,
        *,
        token: str | TokenProvider | UnsetType = _UNSET,
        keyspace: str | None = None,
        spawn_api_options: APIOptions | UnsetType = _UNSET,
    ) -> AsyncDatabase:
        """
        An AsyncDatabase for the given API endpoint. No request is made:
        the database is expected to exist.

        Args:
            api_endpoint: the base URL of the Data API for the database,
                e.g. "https://<id>-<region>.apps.astra.datastax.com" on Astra DB
                or "http://localhost:8181" for a local Data API.
            token: a token for this database only, in place of the client's.
            keyspace: the working keyspace. When omitted, Astra DB databases
                use "default_keyspace" and other environments leave it unset.
            spawn_api_options: settings overriding those of the client.

        Returns:
            an AsyncDatabase.
        """

        # lazy importing here to avoid circular dependency
        from docapi.data.database import AsyncDatabase

        logger.info(f"spawning database for '{api_endpoint}'")
        return AsyncDatabase(
            api_endpoint=api_endpoint,
            keyspace=keyspace,
            api_options=self._spawn_options(token, spawn_api_options),
        )

    def get_admin(
        self,
        *,
        token: str | TokenProvider | UnsetType = _UNSET,
        spawn_api_options: APIOptions | UnsetType = _UNSET,
    ) -> AstraDBAdmin:
        """
        An AstraDBAdmin for organization-level work on Astra DB (listing,
        creating and dropping databases). This usually calls for a token with
        more permissions than a database token, which can be passed here.

        Raises:
            InvalidEnvironmentException: if the environment is not Astra DB.
        """

        # lazy importing here to avoid circular dependency
        from docapi.admin import AstraDBAdmin

        admin_api_options = self._spawn_options(token, spawn_api_options)
        if admin_api_options.environment not in Environment.astra_db_values:
            raise InvalidEnvironmentException(
                "Method not supported outside of Astra DB."
            )
        return AstraDBAdmin(api_options=admin_api_options)

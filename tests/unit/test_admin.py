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

import asyncio
import json

import pytest
from deprecation import DeprecatedWarning
from pytest_httpserver import HTTPServer

from docapi import AsyncDatabase, DataAPIClient
from docapi.admin import (
    AstraDBAdmin,
    AstraDBDatabaseAdmin,
    DataAPIDatabaseAdmin,
    make_database_admin,
)
from docapi.event_observers import ObservableEvent, ObservableEventType
from docapi.exceptions import (
    DevOpsAPIException,
    DevOpsAPIHttpException,
    InvalidEnvironmentException,
    UnexpectedDevOpsAPIResponseException,
)
from docapi.utils.request_tools import HttpMethod

ASTRA_DB_ID = "01234567-89ab-cdef-0123-456789abcdef"
ASTRA_API_ENDPOINT = f"https://{ASTRA_DB_ID}-us-east1.apps.astra.datastax.com"
NEW_DB_ID = "fedcba98-7654-3210-fedc-ba9876543210"
FAST_POLL_S = 0.001


@pytest.fixture
def astra_admin(astra_client: DataAPIClient) -> AstraDBAdmin:
    return astra_client.get_admin()


@pytest.fixture
def astra_db_admin(astra_admin: AstraDBAdmin) -> AstraDBDatabaseAdmin:
    return astra_admin.get_database_admin(ASTRA_API_ENDPOINT)


class TestAstraDBAdmin:
    @pytest.mark.describe("test of the Astra DB admin construction")
    def test_astra_db_admin_construction(
        self,
        client: DataAPIClient,
        astra_client: DataAPIClient,
        astra_admin: AstraDBAdmin,
    ) -> None:
        assert astra_admin == astra_client.get_admin()
        assert astra_admin != astra_client.get_admin(token="AstraCS:another-token")
        with pytest.raises(InvalidEnvironmentException):
            client.get_admin()
        with pytest.raises(InvalidEnvironmentException):
            AstraDBAdmin(api_options=client.api_options)

    @pytest.mark.describe("test of list_databases across pages")
    async def test_list_databases_pagination(
        self,
        httpserver: HTTPServer,
        astra_admin: AstraDBAdmin,
    ) -> None:
        httpserver.expect_ordered_request(
            "/v2/databases",
            method=HttpMethod.GET,
            query_string={"limit": "2", "include": "all"},
        ).respond_with_json([{"id": "a"}, {"id": "b"}])
        httpserver.expect_ordered_request(
            "/v2/databases",
            method=HttpMethod.GET,
            query_string={"limit": "2", "include": "all", "starting_after": "b"},
        ).respond_with_json([{"id": "c"}])

        databases = await astra_admin.list_databases(include="all", page_size=2)
        assert [db["id"] for db in databases] == ["a", "b", "c"]
        httpserver.check_assertions()
        auth_header = httpserver.log[0][0].headers["Authorization"]
        assert auth_header == "Bearer AstraCS:test-token"

    @pytest.mark.describe("test of list_databases with a faulty response")
    async def test_list_databases_faulty(
        self,
        httpserver: HTTPServer,
        astra_admin: AstraDBAdmin,
    ) -> None:
        httpserver.expect_oneshot_request(
            "/v2/databases", method=HttpMethod.GET
        ).respond_with_json({"not": "a list"})
        with pytest.raises(UnexpectedDevOpsAPIResponseException):
            await astra_admin.list_databases()

    @pytest.mark.describe("test of a DevOps API HTTP error")
    async def test_database_info_http_error(
        self,
        httpserver: HTTPServer,
        astra_admin: AstraDBAdmin,
    ) -> None:
        httpserver.expect_oneshot_request(
            f"/v2/databases/{ASTRA_DB_ID}", method=HttpMethod.GET
        ).respond_with_json(
            {"errors": [{"ID": 2000, "message": "not found"}]}, status=404
        )
        with pytest.raises(DevOpsAPIHttpException) as exc_info:
            await astra_admin.database_info(ASTRA_DB_ID)
        assert exc_info.value.error_descriptors[0].message == "not found"

    @pytest.mark.describe("test of a blocking create_database")
    async def test_create_database(
        self,
        httpserver: HTTPServer,
        astra_admin: AstraDBAdmin,
        event_list: list[ObservableEvent],
    ) -> None:
        httpserver.expect_oneshot_request(
            "/v2/databases",
            method=HttpMethod.POST,
            json={
                "name": "my_db",
                "tier": "serverless",
                "cloudProvider": "gcp",
                "region": "us-east1",
                "capacityUnits": 1,
                "dbType": "vector",
                "keyspace": "my_ks",
            },
        ).respond_with_data("", status=201, headers={"Location": NEW_DB_ID})
        httpserver.expect_ordered_request(
            f"/v2/databases/{NEW_DB_ID}", method=HttpMethod.GET
        ).respond_with_json({"id": NEW_DB_ID, "status": "PENDING"})
        httpserver.expect_ordered_request(
            f"/v2/databases/{NEW_DB_ID}", method=HttpMethod.GET
        ).respond_with_json({"id": NEW_DB_ID, "status": "INITIALIZING"})
        httpserver.expect_ordered_request(
            f"/v2/databases/{NEW_DB_ID}", method=HttpMethod.GET
        ).respond_with_json({"id": NEW_DB_ID, "status": "ACTIVE"})

        db_admin = await astra_admin.create_database(
            "my_db",
            cloud_provider="gcp",
            region="us-east1",
            keyspace="my_ks",
            poll_interval_s=FAST_POLL_S,
        )
        assert isinstance(db_admin, AstraDBDatabaseAdmin)
        assert db_admin.id == NEW_DB_ID
        assert db_admin.region == "us-east1"
        assert len(httpserver.log) == 4

        await asyncio.sleep(0)
        polling_events = [
            ev
            for ev in event_list
            if ev.event_type == ObservableEventType.OPERATION_POLLING
        ]
        assert len(polling_events) == 2

    @pytest.mark.describe("test of a non-blocking create_database")
    async def test_create_database_non_blocking(
        self,
        httpserver: HTTPServer,
        astra_admin: AstraDBAdmin,
    ) -> None:
        httpserver.expect_oneshot_request(
            "/v2/databases", method=HttpMethod.POST
        ).respond_with_data("", status=201, headers={"Location": NEW_DB_ID})
        db_admin = await astra_admin.create_database(
            "my_db",
            cloud_provider="gcp",
            region="us-east1",
            blocking=False,
        )
        assert db_admin.id == NEW_DB_ID
        assert len(httpserver.log) == 1

    @pytest.mark.describe("test of create_database with the deprecated blocking alias")
    async def test_create_database_deprecated_alias(
        self,
        httpserver: HTTPServer,
        astra_admin: AstraDBAdmin,
    ) -> None:
        httpserver.expect_oneshot_request(
            "/v2/databases", method=HttpMethod.POST
        ).respond_with_data("", status=201, headers={"Location": NEW_DB_ID})
        with pytest.warns(DeprecatedWarning):
            db_admin = await astra_admin.create_database(
                "my_db",
                cloud_provider="gcp",
                region="us-east1",
                wait_until_active=False,
            )
        assert db_admin.id == NEW_DB_ID
        with pytest.raises(ValueError):
            await astra_admin.create_database(
                "my_db",
                cloud_provider="gcp",
                region="us-east1",
                blocking=False,
                wait_until_active=False,
            )

    @pytest.mark.describe("test of create_database with an unexpected HTTP status")
    async def test_create_database_wrong_status(
        self,
        httpserver: HTTPServer,
        astra_admin: AstraDBAdmin,
    ) -> None:
        httpserver.expect_oneshot_request(
            "/v2/databases", method=HttpMethod.POST
        ).respond_with_json({}, status=200)
        with pytest.raises(DevOpsAPIException):
            await astra_admin.create_database(
                "my_db", cloud_provider="gcp", region="us-east1"
            )

    @pytest.mark.describe("test of a blocking drop_database")
    async def test_drop_database(
        self,
        httpserver: HTTPServer,
        astra_admin: AstraDBAdmin,
    ) -> None:
        httpserver.expect_oneshot_request(
            f"/v2/databases/{ASTRA_DB_ID}/terminate", method=HttpMethod.POST
        ).respond_with_data("", status=202)
        httpserver.expect_ordered_request(
            "/v2/databases", method=HttpMethod.GET
        ).respond_with_json(
            [{"id": "other"}, {"id": ASTRA_DB_ID, "status": "TERMINATING"}]
        )
        httpserver.expect_ordered_request(
            "/v2/databases", method=HttpMethod.GET
        ).respond_with_json([{"id": "other"}])

        await astra_admin.drop_database(ASTRA_DB_ID, poll_interval_s=FAST_POLL_S)
        assert len(httpserver.log) == 3


class TestAstraDBDatabaseAdmin:
    @pytest.mark.describe("test of the Astra DB database admin construction")
    def test_astra_db_database_admin_construction(
        self,
        astra_admin: AstraDBAdmin,
        astra_db_admin: AstraDBDatabaseAdmin,
    ) -> None:
        assert astra_db_admin.id == ASTRA_DB_ID
        assert astra_db_admin.region == "us-east1"
        assert astra_db_admin == astra_admin.get_database_admin(ASTRA_API_ENDPOINT)
        with pytest.raises(ValueError):
            astra_admin.get_database_admin("https://not.an.astra.endpoint")
        with pytest.raises(InvalidEnvironmentException):
            astra_admin.get_database_admin(
                f"https://{ASTRA_DB_ID}-us-east1.apps.astra-dev.datastax.com"
            )

    @pytest.mark.describe("test of list_keyspaces through the DevOps API")
    async def test_list_keyspaces(
        self,
        httpserver: HTTPServer,
        astra_db_admin: AstraDBDatabaseAdmin,
    ) -> None:
        httpserver.expect_oneshot_request(
            f"/v2/databases/{ASTRA_DB_ID}", method=HttpMethod.GET
        ).respond_with_json(
            {
                "id": ASTRA_DB_ID,
                "status": "ACTIVE",
                "info": {"keyspaces": ["default_keyspace", "ks2"]},
            }
        )
        assert await astra_db_admin.list_keyspaces() == ["default_keyspace", "ks2"]

    @pytest.mark.describe("test of a blocking create_keyspace")
    async def test_create_keyspace(
        self,
        httpserver: HTTPServer,
        astra_db_admin: AstraDBDatabaseAdmin,
    ) -> None:
        httpserver.expect_oneshot_request(
            f"/v2/databases/{ASTRA_DB_ID}/keyspaces/new_ks", method=HttpMethod.POST
        ).respond_with_data("", status=201)
        httpserver.expect_ordered_request(
            f"/v2/databases/{ASTRA_DB_ID}", method=HttpMethod.GET
        ).respond_with_json({"id": ASTRA_DB_ID, "status": "MAINTENANCE"})
        httpserver.expect_ordered_request(
            f"/v2/databases/{ASTRA_DB_ID}", method=HttpMethod.GET
        ).respond_with_json(
            {
                "id": ASTRA_DB_ID,
                "status": "ACTIVE",
                "info": {"keyspaces": ["default_keyspace", "new_ks"]},
            }
        )
        await astra_db_admin.create_keyspace("new_ks", poll_interval_s=FAST_POLL_S)
        assert len(httpserver.log) == 3

    @pytest.mark.describe("test of create_keyspace not finding the new keyspace")
    async def test_create_keyspace_missing(
        self,
        httpserver: HTTPServer,
        astra_db_admin: AstraDBDatabaseAdmin,
    ) -> None:
        httpserver.expect_oneshot_request(
            f"/v2/databases/{ASTRA_DB_ID}/keyspaces/new_ks", method=HttpMethod.POST
        ).respond_with_data("", status=201)
        httpserver.expect_oneshot_request(
            f"/v2/databases/{ASTRA_DB_ID}", method=HttpMethod.GET
        ).respond_with_json(
            {
                "id": ASTRA_DB_ID,
                "status": "ACTIVE",
                "info": {"keyspaces": ["default_keyspace"]},
            }
        )
        with pytest.raises(DevOpsAPIException):
            await astra_db_admin.create_keyspace(
                "new_ks", poll_interval_s=FAST_POLL_S
            )

    @pytest.mark.describe("test of a blocking drop_keyspace")
    async def test_drop_keyspace(
        self,
        httpserver: HTTPServer,
        astra_db_admin: AstraDBDatabaseAdmin,
    ) -> None:
        httpserver.expect_oneshot_request(
            f"/v2/databases/{ASTRA_DB_ID}/keyspaces/old_ks", method=HttpMethod.DELETE
        ).respond_with_data("", status=202)
        httpserver.expect_oneshot_request(
            f"/v2/databases/{ASTRA_DB_ID}", method=HttpMethod.GET
        ).respond_with_json(
            {
                "id": ASTRA_DB_ID,
                "status": "ACTIVE",
                "info": {"keyspaces": ["default_keyspace"]},
            }
        )
        await astra_db_admin.drop_keyspace("old_ks", poll_interval_s=FAST_POLL_S)
        assert len(httpserver.log) == 2


class TestDataAPIDatabaseAdmin:
    @pytest.mark.describe("test of admin selection by environment")
    def test_make_database_admin(
        self,
        async_database: AsyncDatabase,
        astra_client: DataAPIClient,
    ) -> None:
        db_admin = async_database.get_database_admin()
        assert isinstance(db_admin, DataAPIDatabaseAdmin)
        assert db_admin.spawner_database is async_database

        astra_database = astra_client.get_async_database(ASTRA_API_ENDPOINT)
        assert isinstance(astra_database.get_database_admin(), AstraDBDatabaseAdmin)

        hcd_admin = make_database_admin(
            api_endpoint=async_database.api_endpoint,
            api_options=async_database.api_options,
            environment="hcd",
        )
        assert isinstance(hcd_admin, DataAPIDatabaseAdmin)
        assert hcd_admin.api_options.environment == "hcd"
        with pytest.raises(InvalidEnvironmentException):
            make_database_admin(
                api_endpoint=async_database.api_endpoint,
                api_options=async_database.api_options,
                environment="nonsense",
            )

    @pytest.mark.describe("test of keyspace management through the Data API")
    async def test_keyspace_commands(
        self,
        httpserver: HTTPServer,
        async_database: AsyncDatabase,
    ) -> None:
        db_admin = async_database.get_database_admin()
        httpserver.expect_ordered_request(
            "/v1", method=HttpMethod.POST, json={"findKeyspaces": {}}
        ).respond_with_json({"status": {"keyspaces": ["test_ks"]}})
        httpserver.expect_ordered_request(
            "/v1",
            method=HttpMethod.POST,
            json={
                "createKeyspace": {
                    "name": "ks2",
                    "options": {
                        "replication": {
                            "class": "SimpleStrategy",
                            "replication_factor": 1,
                        }
                    },
                }
            },
        ).respond_with_json({"status": {"ok": 1}})
        httpserver.expect_ordered_request(
            "/v1", method=HttpMethod.POST, json={"dropKeyspace": {"name": "ks2"}}
        ).respond_with_json({"status": {"ok": 1}})
        httpserver.expect_ordered_request(
            "/v1", method=HttpMethod.POST, json={"findEmbeddingProviders": {}}
        ).respond_with_json({"status": {"embeddingProviders": {"openai": {}}}})

        assert await db_admin.list_keyspaces() == ["test_ks"]
        await db_admin.create_keyspace(
            "ks2",
            replication_options={"class": "SimpleStrategy", "replication_factor": 1},
        )
        await db_admin.drop_keyspace("ks2")
        assert await db_admin.find_embedding_providers() == {"openai": {}}
        httpserver.check_assertions()
        assert [
            next(iter(json.loads(request.data))) for request, _ in httpserver.log
        ] == ["findKeyspaces", "createKeyspace", "dropKeyspace", "findEmbeddingProviders"]

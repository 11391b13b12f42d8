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

"""
Main conftest for shared fixtures.

All tests run against a local HTTP server standing in for the Data API
and the DevOps API (through pytest-httpserver), so no credentials are needed.
"""

from __future__ import annotations

from collections.abc import Iterator
from typing import Any

import pytest
from blockbuster import BlockBuster, blockbuster_ctx
from pytest_httpserver import HTTPServer

from docapi import AsyncCollection, AsyncDatabase, DataAPIClient
from docapi.event_observers import ObservableEvent, Observer
from docapi.utils.api_options import APIOptions, DevOpsAPIURLOptions

TEST_KEYSPACE = "test_ks"
TEST_COLLECTION = "test_coll"
COLLECTION_PATH = f"/v1/{TEST_KEYSPACE}/{TEST_COLLECTION}"
KEYSPACE_PATH = f"/v1/{TEST_KEYSPACE}"
ASTRA_DB_ID = "01234567-89ab-cdef-0123-456789abcdef"
ASTRA_DB_REGION = "us-east1"
ASTRA_API_ENDPOINT = (
    f"https://{ASTRA_DB_ID}-{ASTRA_DB_REGION}.apps.astra.datastax.com"
)


@pytest.fixture(autouse=True)
def blockbuster() -> Iterator[BlockBuster]:
    with blockbuster_ctx("docapi") as bb:
        # TODO: follow discussion in https://github.com/encode/httpx/discussions/3456
        bb.functions["os.stat"].can_block_in("httpx/_client.py", "_init_transport")
        yield bb


@pytest.fixture
def event_list() -> list[ObservableEvent]:
    return []


@pytest.fixture
def observer(event_list: list[ObservableEvent]) -> Observer:
    return Observer.from_event_list(event_list)


@pytest.fixture
def client(httpserver: HTTPServer, observer: Observer) -> DataAPIClient:
    """A client for a non-Astra deployment served by the local test server."""
    return DataAPIClient(
        "test-token",
        environment="other",
        api_options=APIOptions(event_observers={"test": observer}),
    )


@pytest.fixture
def async_database(httpserver: HTTPServer, client: DataAPIClient) -> AsyncDatabase:
    return client.get_async_database(
        httpserver.url_for("/"),
        keyspace=TEST_KEYSPACE,
    )


@pytest.fixture
def async_collection(
    async_database: AsyncDatabase,
) -> AsyncCollection[dict[str, Any]]:
    return async_database.get_collection(TEST_COLLECTION)


@pytest.fixture
def astra_client(httpserver: HTTPServer, observer: Observer) -> DataAPIClient:
    """An Astra DB client whose DevOps API is the local test server."""
    return DataAPIClient(
        "AstraCS:test-token",
        api_options=APIOptions(
            event_observers={"test": observer},
            dev_ops_api_url_options=DevOpsAPIURLOptions(
                dev_ops_url=httpserver.url_for("/"),
            ),
        ),
    )

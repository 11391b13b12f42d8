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
from typing import Any

import pytest
from pytest_httpserver import HTTPServer

from docapi import AsyncCollection, AsyncDatabase
from docapi.event_observers import (
    ObservableEvent,
    ObservableEventType,
    ObservableOperationStarted,
)
from docapi.exceptions import (
    CollectionDeleteManyException,
    CollectionInsertManyException,
    CollectionUpdateManyException,
    DataAPIHttpException,
    DataAPIResponseException,
    TooManyDocumentsToCountException,
)
from docapi.utils.request_tools import HttpMethod

COLLECTION_PATH = "/v1/test_ks/test_coll"
DUPLICATE_ERROR = {
    "errorCode": "DOCUMENT_ALREADY_EXISTS",
    "message": "Document already exists with the given _id",
}


def _im_payload(ids: list[int], ordered: bool) -> dict[str, Any]:
    return {
        "insertMany": {
            "documents": [{"_id": i} for i in ids],
            "options": {"ordered": ordered, "returnDocumentResponses": True},
        }
    }


def _im_ok_response(ids: list[int]) -> dict[str, Any]:
    return {
        "status": {"documentResponses": [{"_id": i, "status": "OK"} for i in ids]}
    }


def _sent_payloads(httpserver: HTTPServer) -> list[dict[str, Any]]:
    return [json.loads(request.data) for request, _ in httpserver.log]


class TestCollectionSetup:
    @pytest.mark.describe("test of collection naming and equality")
    async def test_collection_names(
        self,
        async_database: AsyncDatabase,
        async_collection: AsyncCollection[dict[str, Any]],
    ) -> None:
        assert async_collection.name == "test_coll"
        assert async_collection.keyspace == "test_ks"
        assert async_collection.full_name == "test_ks.test_coll"
        assert async_collection == async_database.get_collection("test_coll")
        assert async_collection != async_database.get_collection("other_coll")
        assert async_collection == async_collection.with_options()
        with pytest.raises(TypeError):
            async_collection("x")


class TestCollectionInserts:
    @pytest.mark.describe("test of insert_one")
    async def test_insert_one(
        self,
        httpserver: HTTPServer,
        async_collection: AsyncCollection[dict[str, Any]],
    ) -> None:
        httpserver.expect_oneshot_request(
            COLLECTION_PATH,
            method=HttpMethod.POST,
            json={"insertOne": {"document": {"_id": "a", "x": 1}}},
        ).respond_with_json({"status": {"insertedIds": ["a"]}})
        result = await async_collection.insert_one({"_id": "a", "x": 1})
        assert result.inserted_id == "a"
        assert len(result.raw_results) == 1

    @pytest.mark.describe("test of insert_one refused by the API")
    async def test_insert_one_soft_failure(
        self,
        httpserver: HTTPServer,
        async_collection: AsyncCollection[dict[str, Any]],
    ) -> None:
        httpserver.expect_oneshot_request(
            COLLECTION_PATH,
            method=HttpMethod.POST,
        ).respond_with_json({"errors": [DUPLICATE_ERROR]})
        with pytest.raises(DataAPIResponseException) as exc_info:
            await async_collection.insert_one({"_id": "a"})
        assert exc_info.value.error_descriptors[0].error_code == (
            "DOCUMENT_ALREADY_EXISTS"
        )
        assert "Document already exists" in str(exc_info.value)

    @pytest.mark.describe("test of insert_one with an HTTP error")
    async def test_insert_one_hard_failure(
        self,
        httpserver: HTTPServer,
        async_collection: AsyncCollection[dict[str, Any]],
    ) -> None:
        httpserver.expect_oneshot_request(
            COLLECTION_PATH,
            method=HttpMethod.POST,
        ).respond_with_data("Internal error", status=500)
        with pytest.raises(DataAPIHttpException):
            await async_collection.insert_one({"_id": "a"})

    @pytest.mark.describe("test of insert_many, chunking and order of ids")
    async def test_insert_many_chunks(
        self,
        httpserver: HTTPServer,
        async_collection: AsyncCollection[dict[str, Any]],
    ) -> None:
        for chunk in ([0, 1], [2, 3], [4]):
            httpserver.expect_oneshot_request(
                COLLECTION_PATH,
                method=HttpMethod.POST,
                json=_im_payload(chunk, ordered=False),
            ).respond_with_json(_im_ok_response(chunk))

        result = await async_collection.insert_many(
            [{"_id": i} for i in range(5)],
            chunk_size=2,
            concurrency=3,
        )
        assert result.inserted_ids == [0, 1, 2, 3, 4]
        assert len(result.raw_results) == 3
        assert len(httpserver.log) == 3

    @pytest.mark.describe("test of unordered insert_many with concurrency one")
    async def test_insert_many_single_concurrency(
        self,
        httpserver: HTTPServer,
        async_collection: AsyncCollection[dict[str, Any]],
    ) -> None:
        for doc_id in range(3):
            httpserver.expect_oneshot_request(
                COLLECTION_PATH,
                method=HttpMethod.POST,
                json=_im_payload([doc_id], ordered=False),
            ).respond_with_json(_im_ok_response([doc_id]))

        result = await async_collection.insert_many(
            [{"_id": i} for i in range(3)],
            chunk_size=1,
            concurrency=1,
        )
        assert len(result.inserted_ids) == 3
        assert _sent_payloads(httpserver) == [
            _im_payload([0], ordered=False),
            _im_payload([1], ordered=False),
            _im_payload([2], ordered=False),
        ]

    @pytest.mark.describe("test of insert_many with no documents")
    async def test_insert_many_empty(
        self,
        httpserver: HTTPServer,
        async_collection: AsyncCollection[dict[str, Any]],
    ) -> None:
        result = await async_collection.insert_many([])
        assert result.inserted_ids == []
        assert len(httpserver.log) == 0

    @pytest.mark.describe("test of insert_many with an invalid chunk size")
    async def test_insert_many_bad_chunk_size(
        self,
        async_collection: AsyncCollection[dict[str, Any]],
    ) -> None:
        with pytest.raises(ValueError):
            await async_collection.insert_many([{"_id": 0}], chunk_size=0)

    @pytest.mark.describe("test of ordered insert_many, stopping at a failed chunk")
    async def test_insert_many_ordered_failure(
        self,
        httpserver: HTTPServer,
        async_collection: AsyncCollection[dict[str, Any]],
    ) -> None:
        httpserver.expect_oneshot_request(
            COLLECTION_PATH,
            method=HttpMethod.POST,
            json=_im_payload([0, 1], ordered=True),
        ).respond_with_json(_im_ok_response([0, 1]))
        httpserver.expect_oneshot_request(
            COLLECTION_PATH,
            method=HttpMethod.POST,
            json=_im_payload([2, 3], ordered=True),
        ).respond_with_json(
            {
                "status": {
                    "documentResponses": [
                        {"_id": 2, "status": "OK"},
                        {"_id": 3, "status": "ERROR", "errorsIdx": 0},
                    ]
                },
                "errors": [DUPLICATE_ERROR],
            }
        )

        with pytest.raises(CollectionInsertManyException) as exc_info:
            await async_collection.insert_many(
                [{"_id": i} for i in range(6)],
                ordered=True,
                chunk_size=2,
            )
        assert exc_info.value.partial_result.inserted_ids == [0, 1, 2]
        assert len(exc_info.value.detailed_error_descriptors) == 1
        assert exc_info.value.detailed_error_descriptors[0].command == _im_payload(
            [2, 3], ordered=True
        )
        # the third chunk is never sent
        assert len(httpserver.log) == 2

    @pytest.mark.describe("test of unordered insert_many, going past failed chunks")
    async def test_insert_many_unordered_failure(
        self,
        httpserver: HTTPServer,
        async_collection: AsyncCollection[dict[str, Any]],
        event_list: list[ObservableEvent],
    ) -> None:
        httpserver.expect_oneshot_request(
            COLLECTION_PATH,
            method=HttpMethod.POST,
            json=_im_payload([0, 1], ordered=False),
        ).respond_with_json(
            {
                "status": {
                    "documentResponses": [
                        {"_id": 0, "status": "ERROR", "errorsIdx": 0},
                        {"_id": 1, "status": "OK"},
                    ]
                },
                "errors": [DUPLICATE_ERROR],
            }
        )
        for chunk in ([2, 3], [4, 5]):
            httpserver.expect_oneshot_request(
                COLLECTION_PATH,
                method=HttpMethod.POST,
                json=_im_payload(chunk, ordered=False),
            ).respond_with_json(_im_ok_response(chunk))

        with pytest.raises(CollectionInsertManyException) as exc_info:
            await async_collection.insert_many(
                [{"_id": i} for i in range(6)],
                chunk_size=2,
                concurrency=2,
            )
        assert exc_info.value.partial_result.inserted_ids == [1, 2, 3, 4, 5]
        assert len(httpserver.log) == 3

        await asyncio.sleep(0)
        started = [
            ev
            for ev in event_list
            if ev.event_type == ObservableEventType.OPERATION_STARTED
        ]
        assert len(started) == 1
        assert isinstance(started[0], ObservableOperationStarted)
        assert started[0].operation_name == "insert_many"
        assert any(
            ev.event_type == ObservableEventType.OPERATION_FAILED for ev in event_list
        )


class TestCollectionReads:
    @pytest.mark.describe("test of find_one")
    async def test_find_one(
        self,
        httpserver: HTTPServer,
        async_collection: AsyncCollection[dict[str, Any]],
    ) -> None:
        httpserver.expect_oneshot_request(
            COLLECTION_PATH,
            method=HttpMethod.POST,
            json={
                "findOne": {
                    "filter": {"tag": "x"},
                    "projection": {"name": True},
                }
            },
        ).respond_with_json({"data": {"document": {"_id": "a", "name": "A"}}})
        doc = await async_collection.find_one({"tag": "x"}, projection=["name"])
        assert doc == {"_id": "a", "name": "A"}

        httpserver.expect_oneshot_request(
            COLLECTION_PATH,
            method=HttpMethod.POST,
        ).respond_with_json({"data": {"document": None}})
        assert await async_collection.find_one({"tag": "y"}) is None

    @pytest.mark.describe("test of count_documents and its upper bound")
    async def test_count_documents(
        self,
        httpserver: HTTPServer,
        async_collection: AsyncCollection[dict[str, Any]],
    ) -> None:
        httpserver.expect_oneshot_request(
            COLLECTION_PATH,
            method=HttpMethod.POST,
            json={"countDocuments": {"filter": {}}},
        ).respond_with_json({"status": {"count": 12}})
        assert await async_collection.count_documents({}, upper_bound=20) == 12

        httpserver.expect_oneshot_request(
            COLLECTION_PATH,
            method=HttpMethod.POST,
        ).respond_with_json({"status": {"count": 12}})
        with pytest.raises(TooManyDocumentsToCountException) as exc_info:
            await async_collection.count_documents({}, upper_bound=10)
        assert not exc_info.value.server_max_count_exceeded

        httpserver.expect_oneshot_request(
            COLLECTION_PATH,
            method=HttpMethod.POST,
        ).respond_with_json({"status": {"count": 1000, "moreData": True}})
        with pytest.raises(TooManyDocumentsToCountException) as exc_info:
            await async_collection.count_documents({}, upper_bound=5000)
        assert exc_info.value.server_max_count_exceeded

    @pytest.mark.describe("test of estimated_document_count")
    async def test_estimated_document_count(
        self,
        httpserver: HTTPServer,
        async_collection: AsyncCollection[dict[str, Any]],
    ) -> None:
        httpserver.expect_oneshot_request(
            COLLECTION_PATH,
            method=HttpMethod.POST,
            json={"estimatedDocumentCount": {}},
        ).respond_with_json({"status": {"count": 345}})
        assert await async_collection.estimated_document_count() == 345


class TestCollectionUpdatesDeletes:
    @pytest.mark.describe("test of update_one with upsert")
    async def test_update_one(
        self,
        httpserver: HTTPServer,
        async_collection: AsyncCollection[dict[str, Any]],
    ) -> None:
        httpserver.expect_oneshot_request(
            COLLECTION_PATH,
            method=HttpMethod.POST,
            json={
                "updateOne": {
                    "filter": {"_id": "z"},
                    "update": {"$set": {"a": 1}},
                    "options": {"upsert": True},
                }
            },
        ).respond_with_json(
            {"status": {"matchedCount": 0, "modifiedCount": 0, "upsertedId": "z"}}
        )
        result = await async_collection.update_one(
            {"_id": "z"}, {"$set": {"a": 1}}, upsert=True
        )
        assert result.update_info["upserted"] == "z"
        assert result.update_info["n"] == 1
        assert result.update_info["updatedExisting"] is False

    @pytest.mark.describe("test of update_many following the page states")
    async def test_update_many_pages(
        self,
        httpserver: HTTPServer,
        async_collection: AsyncCollection[dict[str, Any]],
    ) -> None:
        base_um = {"filter": {"t": 1}, "update": {"$set": {"u": True}}}
        httpserver.expect_oneshot_request(
            COLLECTION_PATH,
            method=HttpMethod.POST,
            json={"updateMany": {**base_um, "options": {"upsert": False}}},
        ).respond_with_json(
            {
                "status": {
                    "matchedCount": 20,
                    "modifiedCount": 20,
                    "nextPageState": "PS1",
                }
            }
        )
        httpserver.expect_oneshot_request(
            COLLECTION_PATH,
            method=HttpMethod.POST,
            json={
                "updateMany": {
                    **base_um,
                    "options": {"upsert": False, "pageState": "PS1"},
                }
            },
        ).respond_with_json({"status": {"matchedCount": 5, "modifiedCount": 4}})

        result = await async_collection.update_many({"t": 1}, {"$set": {"u": True}})
        assert result.update_info["n"] == 25
        assert result.update_info["nModified"] == 24
        assert len(result.raw_results) == 2

    @pytest.mark.describe("test of update_many failing midway")
    async def test_update_many_failure(
        self,
        httpserver: HTTPServer,
        async_collection: AsyncCollection[dict[str, Any]],
    ) -> None:
        httpserver.expect_oneshot_request(
            COLLECTION_PATH,
            method=HttpMethod.POST,
        ).respond_with_json(
            {
                "status": {
                    "matchedCount": 20,
                    "modifiedCount": 20,
                    "nextPageState": "PS1",
                }
            }
        )
        httpserver.expect_oneshot_request(
            COLLECTION_PATH,
            method=HttpMethod.POST,
        ).respond_with_json({"errors": [{"message": "server overloaded"}]})

        with pytest.raises(CollectionUpdateManyException) as exc_info:
            await async_collection.update_many({}, {"$set": {"u": True}})
        assert exc_info.value.partial_result.update_info["nModified"] == 20
        assert str(exc_info.value) == "server overloaded"

    @pytest.mark.describe("test of delete_one")
    async def test_delete_one(
        self,
        httpserver: HTTPServer,
        async_collection: AsyncCollection[dict[str, Any]],
    ) -> None:
        httpserver.expect_oneshot_request(
            COLLECTION_PATH,
            method=HttpMethod.POST,
            json={"deleteOne": {"filter": {"_id": "q"}}},
        ).respond_with_json({"status": {"deletedCount": 1}})
        result = await async_collection.delete_one({"_id": "q"})
        assert result.deleted_count == 1

    @pytest.mark.describe("test of delete_many, repeated while moreData")
    async def test_delete_many(
        self,
        httpserver: HTTPServer,
        async_collection: AsyncCollection[dict[str, Any]],
    ) -> None:
        httpserver.expect_oneshot_request(
            COLLECTION_PATH, method=HttpMethod.POST
        ).respond_with_json({"status": {"deletedCount": 20, "moreData": True}})
        httpserver.expect_oneshot_request(
            COLLECTION_PATH, method=HttpMethod.POST
        ).respond_with_json({"status": {"deletedCount": 3}})
        result = await async_collection.delete_many({"k": "v"})
        assert result.deleted_count == 23
        assert _sent_payloads(httpserver) == [
            {"deleteMany": {"filter": {"k": "v"}}},
            {"deleteMany": {"filter": {"k": "v"}}},
        ]

    @pytest.mark.describe("test of delete_many failing midway")
    async def test_delete_many_failure(
        self,
        httpserver: HTTPServer,
        async_collection: AsyncCollection[dict[str, Any]],
    ) -> None:
        httpserver.expect_oneshot_request(
            COLLECTION_PATH, method=HttpMethod.POST
        ).respond_with_json({"status": {"deletedCount": 20, "moreData": True}})
        httpserver.expect_oneshot_request(
            COLLECTION_PATH, method=HttpMethod.POST
        ).respond_with_json({"errors": [{"message": "timed out on server"}]})
        with pytest.raises(CollectionDeleteManyException) as exc_info:
            await async_collection.delete_many({})
        assert exc_info.value.partial_result.deleted_count == 20

    @pytest.mark.describe("test of the raw command method")
    async def test_command(
        self,
        httpserver: HTTPServer,
        async_collection: AsyncCollection[dict[str, Any]],
    ) -> None:
        httpserver.expect_oneshot_request(
            COLLECTION_PATH, method=HttpMethod.POST
        ).respond_with_json({"errors": [{"message": "nope"}]})
        response = await async_collection.command(
            {"someCommand": {}}, raise_api_errors=False
        )
        assert response == {"errors": [{"message": "nope"}]}

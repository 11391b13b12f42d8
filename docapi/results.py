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

from abc import ABC
from dataclasses import dataclass, field
from functools import reduce
from typing import Any, Iterable


@dataclass
class OperationResult(ABC):
    """
    The result of a write operation on a collection.

    Attributes:
        raw_results: the responses from the API, one for each request issued.
    """

    raw_results: list[dict[str, Any]]

    def _piecewise_repr(self, pieces: list[str | None]) -> str:
        return f"{self.__class__.__name__}({', '.join(pc for pc in pieces if pc)})"

    def _raw_results_repr(self) -> str | None:
        return "raw_results=..." if self.raw_results is not None else None


def _short_list_repr(items: list[Any], max_items: int = 5) -> str:
    if len(items) > max_items:
        return (
            f"[{', '.join(str(item) for item in items[:max_items])} "
            f"... ({len(items)} total)]"
        )
    return str(items)


@dataclass
class CollectionDeleteResult(OperationResult):
    """
    The result of delete_one and delete_many.

    Attributes:
        deleted_count: number of deleted documents.
        raw_results: the responses from the API. For delete_many there is one
            response per page of deletions.
    """

    deleted_count: int

    def __repr__(self) -> str:
        return self._piecewise_repr(
            [f"deleted_count={self.deleted_count}", self._raw_results_repr()]
        )

    def to_bulk_write_result(self, index_in_bulk_write: int) -> BulkWriteResult:
        return BulkWriteResult(
            bulk_api_results={index_in_bulk_write: self.raw_results},
            deleted_count=self.deleted_count,
        )


@dataclass
class CollectionInsertOneResult(OperationResult):
    """
    The result of insert_one.

    Attributes:
        raw_results: one-item list with the response from the API.
        inserted_id: the ID of the inserted document (None if the insertion
            was refused by the API within a bulk write).
    """

    inserted_id: Any

    def __repr__(self) -> str:
        return self._piecewise_repr(
            [f"inserted_id={self.inserted_id}", self._raw_results_repr()]
        )

    def to_bulk_write_result(self, index_in_bulk_write: int) -> BulkWriteResult:
        if self.inserted_id is None:
            return BulkWriteResult(
                bulk_api_results={index_in_bulk_write: self.raw_results},
            )
        return BulkWriteResult(
            bulk_api_results={index_in_bulk_write: self.raw_results},
            inserted_count=1,
            inserted_ids={index_in_bulk_write: self.inserted_id},
        )


@dataclass
class CollectionInsertManyResult(OperationResult):
    """
    The result of insert_many.

    Attributes:
        raw_results: the responses from the API, one per chunk of documents,
            in the order of the chunks (regardless of the completion order).
        inserted_ids: the IDs of the inserted documents, following the
            order of the input documents.
    """

    inserted_ids: list[Any]

    def __repr__(self) -> str:
        return self._piecewise_repr(
            [
                f"inserted_ids={_short_list_repr(self.inserted_ids)}",
                self._raw_results_repr(),
            ]
        )


@dataclass
class CollectionUpdateResult(OperationResult):
    """
    The result of update_one, update_many and replace_one.

    Attributes:
        raw_results: the responses from the API.
        update_info: a dictionary reporting about the update, with keys
            "n" (matched documents, including an upserted one),
            "updatedExisting" (bool), "ok" (float), "nModified" (int)
            and, if a document was upserted, "upserted" with its ID.
    """

    update_info: dict[str, Any]

    def __repr__(self) -> str:
        return self._piecewise_repr(
            [f"update_info={self.update_info}", self._raw_results_repr()]
        )

    def to_bulk_write_result(self, index_in_bulk_write: int) -> BulkWriteResult:
        upserted_id = self.update_info.get("upserted")
        upserted_ids = {} if upserted_id is None else {index_in_bulk_write: upserted_id}
        upserted_count = len(upserted_ids)
        return BulkWriteResult(
            bulk_api_results={index_in_bulk_write: self.raw_results},
            matched_count=self.update_info.get("n", 0) - upserted_count,
            modified_count=self.update_info.get("nModified", 0),
            upserted_count=upserted_count,
            upserted_ids=upserted_ids,
        )


@dataclass
class BulkWriteResult:
    """
    The aggregated result of a bulk_write. The per-operation information
    is keyed by the position of the operation in the input list, so that
    it is independent of the completion order of concurrent operations.

    Attributes:
        bulk_api_results: a map from operation index to the raw API
            responses for that operation.
        deleted_count: total number of deleted documents.
        inserted_count: total number of inserted documents.
        matched_count: total number of documents matched by updates.
        modified_count: total number of documents modified by updates.
        upserted_count: total number of documents upserted.
        upserted_ids: a sparse map from operation index to upserted ID.
        inserted_ids: a sparse map from operation index to inserted ID.
    """

    bulk_api_results: dict[int, list[dict[str, Any]]] = field(default_factory=dict)
    deleted_count: int = 0
    inserted_count: int = 0
    matched_count: int = 0
    modified_count: int = 0
    upserted_count: int = 0
    upserted_ids: dict[int, Any] = field(default_factory=dict)
    inserted_ids: dict[int, Any] = field(default_factory=dict)

    def __repr__(self) -> str:
        pieces = [
            f"{count_name}={getattr(self, count_name)}"
            for count_name in (
                "deleted_count",
                "inserted_count",
                "matched_count",
                "modified_count",
                "upserted_count",
            )
        ]
        if self.upserted_ids:
            pieces.append(f"upserted_ids={self.upserted_ids}")
        if self.inserted_ids:
            pieces.append(f"inserted_ids={self.inserted_ids}")
        return f"{self.__class__.__name__}({', '.join(pieces)})"

    @staticmethod
    def zero() -> BulkWriteResult:
        """The neutral element for merging results."""
        return BulkWriteResult()

    def merged_with(self, other: BulkWriteResult) -> BulkWriteResult:
        """
        Combine two results. Counts are summed and index-keyed maps are
        joined: the operation is commutative for results about disjoint
        sets of operations.
        """
        return BulkWriteResult(
            bulk_api_results={**self.bulk_api_results, **other.bulk_api_results},
            deleted_count=self.deleted_count + other.deleted_count,
            inserted_count=self.inserted_count + other.inserted_count,
            matched_count=self.matched_count + other.matched_count,
            modified_count=self.modified_count + other.modified_count,
            upserted_count=self.upserted_count + other.upserted_count,
            upserted_ids={**self.upserted_ids, **other.upserted_ids},
            inserted_ids={**self.inserted_ids, **other.inserted_ids},
        )


def reduce_bulk_write_results(results: Iterable[BulkWriteResult]) -> BulkWriteResult:
    """Reduce any number of bulk write results into a single one."""
    return reduce(
        lambda acc, result: acc.merged_with(result), results, BulkWriteResult.zero()
    )


def _prepare_update_info(statuses: list[dict[str, Any]]) -> dict[str, Any]:
    """
    Build the `update_info` of a CollectionUpdateResult from the "status"
    of one or more responses (e.g. the pages of an update_many).
    """
    matched_count = sum(status.get("matchedCount", 0) for status in statuses)
    modified_count = sum(status.get("modifiedCount", 0) for status in statuses)
    upserted_ids = [
        status["upsertedId"] for status in statuses if "upsertedId" in status
    ]
    update_info: dict[str, Any] = {
        "n": matched_count + len(upserted_ids),
        "updatedExisting": modified_count > 0,
        "ok": 1.0,
        "nModified": modified_count,
    }
    if len(upserted_ids) == 1:
        update_info["upserted"] = upserted_ids[0]
    elif upserted_ids:
        update_info["upserteds"] = upserted_ids
    return update_info

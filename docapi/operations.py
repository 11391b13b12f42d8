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

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Dict, Iterable, Optional

from docapi.constants import FilterType, SortType
from docapi.data.utils.batch_executor import DispatchOutcome
from docapi.exceptions import MultiCallTimeoutManager
from docapi.results import BulkWriteResult

if TYPE_CHECKING:
    from docapi.data.collection import AsyncCollection


class AsyncBaseOperation(ABC):
    """
    Base class for all operations amenable to be used
    in bulk writes on (async) collections.

    An operation, when executed, never raises on errors reported by the API:
    it hands them back, along with the part of its effect that succeeded,
    for the bulk write to aggregate. HTTP errors and timeouts do propagate.
    """

    @abstractmethod
    async def execute(
        self,
        collection: AsyncCollection[Any],
        index_in_bulk_write: int,
        *,
        timeout_manager: MultiCallTimeoutManager,
        request_timeout_ms: int | None = None,
        request_timeout_label: str | None = None,
    ) -> DispatchOutcome[BulkWriteResult]: ...


@dataclass
class InsertOne(AsyncBaseOperation):
    """
    Represents an `insert_one` operation on a (async) collection.
    See the documentation on the collection method for more information.

    Attributes:
        document: the document to insert.
    """

    document: Dict[str, Any]

    def __init__(
        self,
        document: Dict[str, Any],
    ) -> None:
        self.document = document

    async def execute(
        self,
        collection: AsyncCollection[Any],
        index_in_bulk_write: int,
        *,
        timeout_manager: MultiCallTimeoutManager,
        request_timeout_ms: int | None = None,
        request_timeout_label: str | None = None,
    ) -> DispatchOutcome[BulkWriteResult]:
        """
        Execute this operation against a collection as part of a bulk write.

        Args:
            collection: the collection this write targets.
            index_in_bulk_write: the index in the list of bulk operations.
            timeout_manager: the time budget of the whole bulk write.
            request_timeout_ms: a cap on the timeout of the request.
            request_timeout_label: the name of the setting behind the cap.
        """

        outcome = await collection._insert_one_outcome(
            self.document,
            timeout_context=timeout_manager.remaining_timeout(
                cap_time_ms=request_timeout_ms,
                cap_timeout_label=request_timeout_label,
            ),
        )
        return DispatchOutcome(
            result=outcome.result.to_bulk_write_result(index_in_bulk_write),
            commands=outcome.commands,
            raw_responses=outcome.raw_responses,
        )


@dataclass
class InsertMany(AsyncBaseOperation):
    """
    Represents an `insert_many` operation on a (async) collection.
    See the documentation on the collection method for more information.

    Attributes:
        documents: the list document to insert.
        ordered: whether the inserts should be done in sequence.
        chunk_size: how many documents to include in a single API request.
            Exceeding the server maximum allowed value results in an error.
            Leave it unspecified (recommended) to use the system default.
        concurrency: maximum number of concurrent requests to the API at
            a given time. It cannot be more than one for ordered insertions.
    """

    documents: Iterable[Dict[str, Any]]
    ordered: bool
    chunk_size: Optional[int]
    concurrency: Optional[int]

    def __init__(
        self,
        documents: Iterable[Dict[str, Any]],
        *,
        ordered: bool = False,
        chunk_size: Optional[int] = None,
        concurrency: Optional[int] = None,
    ) -> None:
        self.documents = documents
        self.ordered = ordered
        self.chunk_size = chunk_size
        self.concurrency = concurrency

    async def execute(
        self,
        collection: AsyncCollection[Any],
        index_in_bulk_write: int,
        *,
        timeout_manager: MultiCallTimeoutManager,
        request_timeout_ms: int | None = None,
        request_timeout_label: str | None = None,
    ) -> DispatchOutcome[BulkWriteResult]:
        """
        Execute this operation against a collection as part of a bulk write.
        All inserted IDs end up under the index of this operation.

        Args:
            collection: the collection this write targets.
            index_in_bulk_write: the index in the list of bulk operations.
            timeout_manager: the time budget of the whole bulk write.
            request_timeout_ms: a cap on the timeout of each request.
            request_timeout_label: the name of the setting behind the cap.
        """

        outcome = await collection._insert_many_run(
            self.documents,
            ordered=self.ordered,
            chunk_size=self.chunk_size,
            concurrency=self.concurrency,
            timeout_manager=timeout_manager,
            request_timeout_ms=request_timeout_ms,
            request_timeout_label=request_timeout_label,
            raise_errors=False,
        )
        inserted_ids = outcome.result.inserted_ids
        return DispatchOutcome(
            result=BulkWriteResult(
                bulk_api_results={index_in_bulk_write: outcome.result.raw_results},
                inserted_count=len(inserted_ids),
                inserted_ids=(
                    {index_in_bulk_write: inserted_ids} if inserted_ids else {}
                ),
            ),
            commands=outcome.commands,
            raw_responses=outcome.raw_responses,
        )


@dataclass
class UpdateOne(AsyncBaseOperation):
    """
    Represents an `update_one` operation on a (async) collection.
    See the documentation on the collection method for more information.

    Attributes:
        filter: a filter condition to select a target document.
        update: an update prescription to apply to the document.
        sort: controls ordering of results, hence which document is affected.
        upsert: controls what to do when no documents are found.
    """

    filter: FilterType
    update: Dict[str, Any]
    sort: Optional[SortType]
    upsert: bool

    def __init__(
        self,
        filter: FilterType,
        update: Dict[str, Any],
        *,
        sort: Optional[SortType] = None,
        upsert: bool = False,
    ) -> None:
        self.filter = filter
        self.update = update
        self.sort = sort
        self.upsert = upsert

    async def execute(
        self,
        collection: AsyncCollection[Any],
        index_in_bulk_write: int,
        *,
        timeout_manager: MultiCallTimeoutManager,
        request_timeout_ms: int | None = None,
        request_timeout_label: str | None = None,
    ) -> DispatchOutcome[BulkWriteResult]:
        outcome = await collection._update_one_outcome(
            self.filter,
            self.update,
            sort=self.sort,
            upsert=self.upsert,
            timeout_context=timeout_manager.remaining_timeout(
                cap_time_ms=request_timeout_ms,
                cap_timeout_label=request_timeout_label,
            ),
        )
        return DispatchOutcome(
            result=outcome.result.to_bulk_write_result(index_in_bulk_write),
            commands=outcome.commands,
            raw_responses=outcome.raw_responses,
        )


@dataclass
class UpdateMany(AsyncBaseOperation):
    """
    Represents an `update_many` operation on a (async) collection.
    See the documentation on the collection method for more information.

    Attributes:
        filter: a filter condition to select target documents.
        update: an update prescription to apply to the documents.
        upsert: controls what to do when no documents are found.
    """

    filter: FilterType
    update: Dict[str, Any]
    upsert: bool

    def __init__(
        self,
        filter: FilterType,
        update: Dict[str, Any],
        *,
        upsert: bool = False,
    ) -> None:
        self.filter = filter
        self.update = update
        self.upsert = upsert

    async def execute(
        self,
        collection: AsyncCollection[Any],
        index_in_bulk_write: int,
        *,
        timeout_manager: MultiCallTimeoutManager,
        request_timeout_ms: int | None = None,
        request_timeout_label: str | None = None,
    ) -> DispatchOutcome[BulkWriteResult]:
        outcome = await collection._update_many_outcome(
            self.filter,
            self.update,
            upsert=self.upsert,
            timeout_manager=timeout_manager,
            request_timeout_ms=request_timeout_ms,
            request_timeout_label=request_timeout_label,
        )
        return DispatchOutcome(
            result=outcome.result.to_bulk_write_result(index_in_bulk_write),
            commands=outcome.commands,
            raw_responses=outcome.raw_responses,
        )


@dataclass
class ReplaceOne(AsyncBaseOperation):
    """
    Represents a `replace_one` operation on a (async) collection.
    See the documentation on the collection method for more information.

    Attributes:
        filter: a filter condition to select a target document.
        replacement: the replacement document.
        sort: controls ordering of results, hence which document is affected.
        upsert: controls what to do when no documents are found.
    """

    filter: FilterType
    replacement: Dict[str, Any]
    sort: Optional[SortType]
    upsert: bool

    def __init__(
        self,
        filter: FilterType,
        replacement: Dict[str, Any],
        *,
        sort: Optional[SortType] = None,
        upsert: bool = False,
    ) -> None:
        self.filter = filter
        self.replacement = replacement
        self.sort = sort
        self.upsert = upsert

    async def execute(
        self,
        collection: AsyncCollection[Any],
        index_in_bulk_write: int,
        *,
        timeout_manager: MultiCallTimeoutManager,
        request_timeout_ms: int | None = None,
        request_timeout_label: str | None = None,
    ) -> DispatchOutcome[BulkWriteResult]:
        outcome = await collection._replace_one_outcome(
            self.filter,
            self.replacement,
            sort=self.sort,
            upsert=self.upsert,
            timeout_context=timeout_manager.remaining_timeout(
                cap_time_ms=request_timeout_ms,
                cap_timeout_label=request_timeout_label,
            ),
        )
        return DispatchOutcome(
            result=outcome.result.to_bulk_write_result(index_in_bulk_write),
            commands=outcome.commands,
            raw_responses=outcome.raw_responses,
        )


@dataclass
class DeleteOne(AsyncBaseOperation):
    """
    Represents a `delete_one` operation on a (async) collection.
    See the documentation on the collection method for more information.

    Attributes:
        filter: a filter condition to select a target document.
        sort: controls ordering of results, hence which document is affected.
    """

    filter: FilterType
    sort: Optional[SortType]

    def __init__(
        self,
        filter: FilterType,
        *,
        sort: Optional[SortType] = None,
    ) -> None:
        self.filter = filter
        self.sort = sort

    async def execute(
        self,
        collection: AsyncCollection[Any],
        index_in_bulk_write: int,
        *,
        timeout_manager: MultiCallTimeoutManager,
        request_timeout_ms: int | None = None,
        request_timeout_label: str | None = None,
    ) -> DispatchOutcome[BulkWriteResult]:
        outcome = await collection._delete_one_outcome(
            self.filter,
            sort=self.sort,
            timeout_context=timeout_manager.remaining_timeout(
                cap_time_ms=request_timeout_ms,
                cap_timeout_label=request_timeout_label,
            ),
        )
        return DispatchOutcome(
            result=outcome.result.to_bulk_write_result(index_in_bulk_write),
            commands=outcome.commands,
            raw_responses=outcome.raw_responses,
        )


@dataclass
class DeleteMany(AsyncBaseOperation):
    """
    Represents a `delete_many` operation on a (async) collection.
    See the documentation on the collection method for more information.

    Attributes:
        filter: a filter condition to select target documents.
    """

    filter: FilterType

    def __init__(
        self,
        filter: FilterType,
    ) -> None:
        self.filter = filter

    async def execute(
        self,
        collection: AsyncCollection[Any],
        index_in_bulk_write: int,
        *,
        timeout_manager: MultiCallTimeoutManager,
        request_timeout_ms: int | None = None,
        request_timeout_label: str | None = None,
    ) -> DispatchOutcome[BulkWriteResult]:
        outcome = await collection._delete_many_outcome(
            self.filter,
            timeout_manager=timeout_manager,
            request_timeout_ms=request_timeout_ms,
            request_timeout_label=request_timeout_label,
        )
        return DispatchOutcome(
            result=outcome.result.to_bulk_write_result(index_in_bulk_write),
            commands=outcome.commands,
            raw_responses=outcome.raw_responses,
        )


__all__ = [
    "AsyncBaseOperation",
    "DeleteMany",
    "DeleteOne",
    "InsertMany",
    "InsertOne",
    "ReplaceOne",
    "UpdateMany",
    "UpdateOne",
]

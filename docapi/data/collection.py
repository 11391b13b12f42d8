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
from typing import TYPE_CHECKING, Any, Generic, Iterable

from docapi.constants import (
    DOC,
    DOC2,
    FilterType,
    ProjectionType,
    SortType,
    normalize_optional_projection,
)
from docapi.data.utils.batch_executor import (
    BatchOutcome,
    DispatchOutcome,
    execute_batch,
)
from docapi.exceptions import (
    CollectionBulkWriteException,
    CollectionDeleteManyException,
    CollectionInsertManyException,
    CollectionUpdateManyException,
    DataAPIResponseException,
    MultiCallTimeoutManager,
    TooManyDocumentsToCountException,
    UnexpectedDataAPIResponseException,
    _first_valid_timeout,
    _select_singlereq_timeout,
    _TimeoutContext,
)
from docapi.results import (
    BulkWriteResult,
    CollectionDeleteResult,
    CollectionInsertManyResult,
    CollectionInsertOneResult,
    CollectionUpdateResult,
    _prepare_update_info,
    reduce_bulk_write_results,
)
from docapi.settings.defaults import (
    DEFAULT_BULK_WRITE_CONCURRENCY,
    DEFAULT_DATA_API_AUTH_HEADER,
    DEFAULT_INSERT_MANY_CHUNK_SIZE,
    DEFAULT_INSERT_MANY_CONCURRENCY,
)
from docapi.utils.api_commander import APICommander
from docapi.utils.api_options import APIOptions, FullAPIOptions
from docapi.utils.unset import _UNSET, UnsetType

if TYPE_CHECKING:
    from docapi.cursors import AsyncCollectionFindCursor
    from docapi.data.database import AsyncDatabase
    from docapi.operations import AsyncBaseOperation


logger = logging.getLogger(__name__)


def _inserted_ids_from_response(response: dict[str, Any]) -> list[Any]:
    """
    The IDs of the documents actually written by an insertMany request:
    per-document responses, when present, are authoritative.
    """
    status = response.get("status") or {}
    if "documentResponses" in status:
        return [
            doc_resp["_id"]
            for doc_resp in status["documentResponses"]
            if doc_resp.get("status") == "OK"
        ]
    return list(status.get("insertedIds") or [])


def _raise_on_errors(outcome: DispatchOutcome[Any]) -> None:
    if outcome.has_errors:
        raise DataAPIResponseException.from_responses(
            commands=outcome.commands,
            raw_responses=outcome.raw_responses,
        )


class AsyncCollection(Generic[DOC]):
    """
    A Data API collection, the object to interact with the Data API for
    schemaless documents. This class has an asynchronous interface for
    use with asyncio.

    This class is not meant for direct instantiation by the user, rather
    it is obtained by invoking methods such as `get_collection` of AsyncDatabase,
    wherefrom the AsyncCollection inherits its API options such as authentication
    token and API endpoint.

    Args:
        database: an AsyncDatabase object, instantiated earlier. This represents
            the database the collection belongs to.
        name: the collection name. This parameter should match an existing
            collection on the database.
        keyspace: this is the keyspace to which the collection belongs.
            If nothing is specified, the database's working keyspace is used.
        api_options: a complete specification of the API Options for this instance.

    Example:
        >>> from docapi import DataAPIClient
        >>> client = DataAPIClient()
        >>> async_database = client.get_async_database(
        ...     "https://01234567-....apps.astra.datastax.com",
        ...     token="AstraCS:..."
        ... )
        >>> my_collection = await async_database.create_collection("my_events")
        >>> my_collection_2 = async_database.get_collection("my_events")

    Note:
        creating an instance of AsyncCollection does not trigger actual creation
        of the collection on the database. The latter should have been created
        beforehand, e.g. through the `create_collection` method of an AsyncDatabase.
    """

    def __init__(
        self,
        *,
        database: AsyncDatabase,
        name: str,
        keyspace: str | None,
        api_options: FullAPIOptions,
    ) -> None:
        self.api_options = api_options
        self._name = name
        _keyspace = keyspace if keyspace is not None else database.keyspace

        if _keyspace is None:
            raise ValueError("Attempted to create Collection with 'keyspace' unset.")

        self._database = database.with_options(
            keyspace=_keyspace, api_options=self.api_options
        )
        self._commander_headers = {
            **{DEFAULT_DATA_API_AUTH_HEADER: self.api_options.token.get_token()},
            **self.api_options.database_additional_headers,
        }
        self._api_commander = self._get_api_commander()

    def __repr__(self) -> str:
        _db_desc = f'database.api_endpoint="{self.database.api_endpoint}"'
        return (
            f'{self.__class__.__name__}(name="{self.name}", '
            f'keyspace="{self.keyspace}", {_db_desc}, '
            f"api_options={self.api_options})"
        )

    def __eq__(self, other: Any) -> bool:
        if isinstance(other, AsyncCollection):
            return all(
                [
                    self._name == other._name,
                    self._database == other._database,
                    self.api_options == other.api_options,
                ]
            )
        else:
            return False

    def __call__(self, *pargs: Any, **kwargs: Any) -> None:
        raise TypeError(
            f"'{self.__class__.__name__}' object is not callable. If you "
            f"meant to call the '{self.name}' method on a "
            f"'{self.database.__class__.__name__}' object "
            "it is failing because no such method exists."
        )

    def _get_api_commander(self) -> APICommander:
        """Instantiate a new APICommander based on the properties of this class."""

        base_path_components = [
            comp
            for comp in (
                ncomp.strip("/")
                for ncomp in (
                    self.api_options.data_api_url_options.api_path,
                    self.api_options.data_api_url_options.api_version,
                    self._database.keyspace,
                    self._name,
                )
                if ncomp is not None
            )
            if comp != ""
        ]
        base_path = f"/{'/'.join(base_path_components)}"
        return APICommander(
            api_endpoint=self._database.api_endpoint,
            path=base_path,
            headers=self._commander_headers,
            callers=self.api_options.callers,
            redacted_header_names=self.api_options.redacted_header_names,
            event_observers=self.api_options.event_observers,
        )

    async def __aenter__(self: AsyncCollection[DOC]) -> AsyncCollection[DOC]:
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None = None,
        exc_value: BaseException | None = None,
        traceback: TracebackType | None = None,
    ) -> None:
        await self._api_commander.__aexit__(
            exc_type=exc_type,
            exc_value=exc_value,
            traceback=traceback,
        )

    def _copy(
        self: AsyncCollection[DOC],
        *,
        api_options: APIOptions | UnsetType = _UNSET,
    ) -> AsyncCollection[DOC]:
        return AsyncCollection(
            database=self.database,
            name=self.name,
            keyspace=self.keyspace,
            api_options=self.api_options.with_override(api_options),
        )

    def with_options(
        self: AsyncCollection[DOC],
        *,
        api_options: APIOptions | UnsetType = _UNSET,
    ) -> AsyncCollection[DOC]:
        """
        Create a clone of this collection with some changed attributes.

        Args:
            api_options: any additional options to set for the clone, in the form of
                an APIOptions instance (where one can set just the needed attributes).

        Returns:
            a new AsyncCollection instance.

        Example:
            >>> from docapi.utils.api_options import APIOptions, TimeoutOptions
            >>> impatient_collection = my_async_coll.with_options(
            ...     api_options=APIOptions(
            ...         timeout_options=TimeoutOptions(request_timeout_ms=1000),
            ...     ),
            ... )
        """

        return self._copy(api_options=api_options)

    @property
    def database(self) -> AsyncDatabase:
        """
        an AsyncDatabase object, the database this collection belongs to.
        """

        return self._database

    @property
    def keyspace(self) -> str:
        """
        The keyspace this collection is in.
        """

        _keyspace = self.database.keyspace
        if _keyspace is None:
            raise ValueError("The collection's DB is set with keyspace=None")
        return _keyspace

    @property
    def name(self) -> str:
        """
        The name of this collection.
        """

        return self._name

    @property
    def full_name(self) -> str:
        """
        The fully-qualified collection name within the database,
        in the form "keyspace.collection_name".
        """

        return f"{self.keyspace}.{self.name}"

    def _single_request_timeout(
        self,
        *,
        general_method_timeout_ms: int | None,
        request_timeout_ms: int | None,
        timeout_ms: int | None,
    ) -> _TimeoutContext:
        _request_timeout_ms, _rt_label = _select_singlereq_timeout(
            timeout_options=self.api_options.timeout_options,
            method_timeout_label="general_method_timeout_ms",
            method_timeout_ms=general_method_timeout_ms,
            request_timeout_ms=request_timeout_ms,
            timeout_ms=timeout_ms,
        )
        return _TimeoutContext(request_ms=_request_timeout_ms, label=_rt_label)

    def _multicall_timeouts(
        self,
        *,
        general_method_timeout_ms: int | None,
        request_timeout_ms: int | None,
        timeout_ms: int | None,
    ) -> tuple[MultiCallTimeoutManager, int, str | None]:
        """
        The overall budget of a method issuing several requests, along with
        the per-request cap and its label.
        """
        _general_method_timeout_ms, _gmt_label = _first_valid_timeout(
            (general_method_timeout_ms, "general_method_timeout_ms"),
            (timeout_ms, "timeout_ms"),
            (
                self.api_options.timeout_options.general_method_timeout_ms,
                "general_method_timeout_ms",
            ),
        )
        _request_timeout_ms, _rt_label = _first_valid_timeout(
            (request_timeout_ms, "request_timeout_ms"),
            (self.api_options.timeout_options.request_timeout_ms, "request_timeout_ms"),
        )
        timeout_manager = MultiCallTimeoutManager(
            overall_timeout_ms=_general_method_timeout_ms,
            timeout_label=_gmt_label,
        )
        return timeout_manager, _request_timeout_ms, _rt_label

    async def _insert_one_outcome(
        self,
        document: DOC,
        *,
        timeout_context: _TimeoutContext,
    ) -> DispatchOutcome[CollectionInsertOneResult]:
        io_payload = {"insertOne": {"document": document}}
        logger.info(f"insertOne on '{self.name}'")
        io_response = await self._api_commander.async_request(
            payload=io_payload,
            raise_api_errors=False,
            timeout_context=timeout_context,
        )
        logger.info(f"finished insertOne on '{self.name}'")
        inserted_ids = (io_response.get("status") or {}).get("insertedIds")
        if not inserted_ids and not io_response.get("errors"):
            raise UnexpectedDataAPIResponseException(
                text="Faulty response from insert_one API command.",
                raw_response=io_response,
            )
        return DispatchOutcome(
            result=CollectionInsertOneResult(
                raw_results=[io_response],
                inserted_id=inserted_ids[0] if inserted_ids else None,
            ),
            commands=[io_payload],
            raw_responses=[io_response],
        )

    async def insert_one(
        self,
        document: DOC,
        *,
        general_method_timeout_ms: int | None = None,
        request_timeout_ms: int | None = None,
        timeout_ms: int | None = None,
    ) -> CollectionInsertOneResult:
        """
        Insert a single document in the collection in an atomic operation.

        Args:
            document: the dictionary expressing the document to insert.
                The `_id` field of the document can be left out, in which
                case it will be created automatically.
            general_method_timeout_ms: a timeout, in milliseconds, to impose on the
                underlying API request. If not provided, this object's defaults apply.
                (This method issues a single API request, hence all timeout parameters
                are treated the same.)
            request_timeout_ms: an alias for `general_method_timeout_ms`.
            timeout_ms: an alias for `general_method_timeout_ms`.

        Returns:
            a CollectionInsertOneResult object.

        Example:
            >>> await my_async_coll.insert_one({"_id": "user-123", "age": 50})
            CollectionInsertOneResult(inserted_id=user-123, raw_results=...)

        Note:
            If an `_id` is explicitly provided, which corresponds to a document
            that exists already in the collection, an error is raised and
            the insertion fails.
        """

        outcome = await self._insert_one_outcome(
            document,
            timeout_context=self._single_request_timeout(
                general_method_timeout_ms=general_method_timeout_ms,
                request_timeout_ms=request_timeout_ms,
                timeout_ms=timeout_ms,
            ),
        )
        _raise_on_errors(outcome)
        return outcome.result

    async def _insert_many_run(
        self,
        documents: Iterable[DOC],
        *,
        ordered: bool,
        chunk_size: int | None,
        concurrency: int | None,
        timeout_manager: MultiCallTimeoutManager,
        request_timeout_ms: int | None,
        request_timeout_label: str | None,
        raise_errors: bool,
    ) -> DispatchOutcome[CollectionInsertManyResult]:
        _chunk_size = DEFAULT_INSERT_MANY_CHUNK_SIZE if chunk_size is None else chunk_size
        if _chunk_size < 1:
            raise ValueError("The chunk size for insert_many must be positive.")
        _concurrency = (
            DEFAULT_INSERT_MANY_CONCURRENCY if concurrency is None else concurrency
        )
        _documents = list(documents)
        chunks = [
            _documents[i : i + _chunk_size]
            for i in range(0, len(_documents), _chunk_size)
        ]
        options = {"ordered": ordered, "returnDocumentResponses": True}

        async def _insert_chunk(
            chunk: list[DOC], chunk_index: int
        ) -> DispatchOutcome[list[Any]]:
            im_payload = {
                "insertMany": {
                    "documents": chunk,
                    "options": options,
                },
            }
            logger.info(f"insertMany(chunk {chunk_index}) on '{self.name}'")
            im_response = await self._api_commander.async_request(
                payload=im_payload,
                raise_api_errors=False,
                timeout_context=timeout_manager.remaining_timeout(
                    cap_time_ms=request_timeout_ms,
                    cap_timeout_label=request_timeout_label,
                ),
            )
            logger.info(f"finished insertMany(chunk {chunk_index}) on '{self.name}'")
            return DispatchOutcome(
                result=_inserted_ids_from_response(im_response),
                commands=[im_payload],
                raw_responses=[im_response],
            )

        def _finalize(
            batch: BatchOutcome[list[Any]],
        ) -> DispatchOutcome[CollectionInsertManyResult]:
            result = CollectionInsertManyResult(
                raw_results=batch.raw_responses(),
                inserted_ids=[
                    inserted_id
                    for chunk_ids in batch.results()
                    for inserted_id in chunk_ids
                ],
            )
            if raise_errors and batch.failed():
                commands, raw_responses = batch.failed_commands_and_responses()
                raise CollectionInsertManyException.from_responses(
                    commands=commands,
                    raw_responses=raw_responses,
                    partial_result=result,
                )
            return DispatchOutcome(
                result=result,
                commands=batch.commands(),
                raw_responses=batch.raw_responses(),
            )

        logger.info(f"inserting {len(_documents)} documents in '{self.name}'")
        outcome = await execute_batch(
            chunks,
            _insert_chunk,
            _finalize,
            ordered=ordered,
            concurrency=_concurrency,
            operation_name="insert_many",
            event_observers=self.api_options.event_observers.values(),
            sender=self,
        )
        logger.info(f"finished inserting {len(_documents)} documents in '{self.name}'")
        return outcome

    async def insert_many(
        self,
        documents: Iterable[DOC],
        *,
        ordered: bool = False,
        chunk_size: int | None = None,
        concurrency: int | None = None,
        request_timeout_ms: int | None = None,
        general_method_timeout_ms: int | None = None,
        timeout_ms: int | None = None,
    ) -> CollectionInsertManyResult:
        """
        Insert a list of documents into the collection.
        This is not an atomic operation.

        Args:
            documents: an iterable of dictionaries, each a document to insert.
                Documents may specify their `_id` field or leave it out, in which
                case it will be added automatically.
            ordered: if False (default), the insertions can occur in arbitrary order
                and possibly concurrently. If True, they are processed sequentially.
                If there are no specific reasons against it, unordered insertions are to
                be preferred as they complete much faster.
            chunk_size: how many documents to include in a single API request.
                Exceeding the server maximum allowed value results in an error.
                Leave it unspecified (recommended) to use the system default.
            concurrency: maximum number of concurrent requests to the API at
                a given time. Ignored for ordered insertions, which are sequential.
            request_timeout_ms: a timeout, in milliseconds, for each API request.
                If not passed, the collection-level setting is used instead.
            general_method_timeout_ms: a timeout, in milliseconds, for the whole
                requested operation (which may involve multiple API requests).
                If not passed, the collection-level setting is used instead.
            timeout_ms: an alias for `general_method_timeout_ms`.

        Returns:
            a CollectionInsertManyResult object.

        Example:
            >>> im_result = await my_async_coll.insert_many(
            ...     [{"seq": i} for i in range(50)],
            ...     concurrency=5,
            ... )
            >>> len(im_result.inserted_ids)
            50

        Note:
            A failure mode for this command is related to certain faulty documents
            found among those to insert: for example, a document may have an ID
            already found on the collection.

            For an ordered insertion, the method will raise an exception at
            the first such faulty document -- nevertheless, all documents processed
            until then will end up being written to the database.

            For unordered insertions, if the error stems from faulty documents
            the insertion proceeds until exhausting the input documents: then,
            an exception is raised -- and all insertable documents will have been
            written to the database, including those "after" the troublesome ones.

            In both cases a `CollectionInsertManyException` is raised, whose
            `partial_result` lists the IDs of the documents that were inserted.
            HTTP errors and timeouts, on the other hand, are raised as they are
            and stop the whole operation at once.
        """

        timeout_manager, _request_timeout_ms, _rt_label = self._multicall_timeouts(
            general_method_timeout_ms=general_method_timeout_ms,
            request_timeout_ms=request_timeout_ms,
            timeout_ms=timeout_ms,
        )
        outcome = await self._insert_many_run(
            documents,
            ordered=ordered,
            chunk_size=chunk_size,
            concurrency=concurrency,
            timeout_manager=timeout_manager,
            request_timeout_ms=_request_timeout_ms,
            request_timeout_label=_rt_label,
            raise_errors=True,
        )
        return outcome.result

    def find(
        self,
        filter: FilterType | None = None,
        *,
        projection: ProjectionType | None = None,
        document_type: type[DOC2] | None = None,
        skip: int | None = None,
        limit: int | None = None,
        include_similarity: bool | None = None,
        include_sort_vector: bool | None = None,
        sort: SortType | None = None,
        page_size: int | None = None,
        initial_page_state: str | None = None,
        request_timeout_ms: int | None = None,
        timeout_ms: int | None = None,
    ) -> AsyncCollectionFindCursor[DOC, DOC2]:
        """
        Find documents on the collection, matching a certain provided filter.

        The method returns a cursor that can then be iterated over. No API
        request is made until the cursor is consumed (or inspected through
        methods such as `has_next`).

        Args:
            filter: a predicate expressed as a dictionary according to the
                Data API filter syntax, e.g. `{"name": "John"}` or
                `{"price": {"$lt": 100}}`. It is forwarded as is.
            projection: it controls which parts of the document are returned.
                It can be an allow-list: `{"f1": True, "f2": True}`,
                or a deny-list: `{"fx": False, "fy": False}`.
                An iterable over strings will be treated implicitly as an allow-list.
            document_type: this parameter acts a formal specifier for the type checker.
                If omitted, the resulting cursor is implicitly an
                `AsyncCollectionFindCursor[DOC, DOC]`.
            skip: with this integer parameter, what would be the first `skip`
                documents returned by the query are discarded.
            limit: a maximum number of documents to return. Zero or None
                mean no limit.
            include_similarity: a boolean to request the numeric value of the
                similarity to be returned as an added "$similarity" key in each
                returned document (vector searches only).
            include_sort_vector: a boolean to request the query vector of a
                vector search. See the cursor `get_sort_vector` method.
            sort: with this dictionary parameter one can control the order
                the documents are returned, e.g. `{"field": SortMode.ASCENDING}`
                or, for vector search, `{"$vector": [0.4, 0.15, -0.5]}`.
            page_size: a hint on how many documents to get with each request.
            initial_page_state: a page state obtained from an earlier
                `fetch_next_page` on a cursor with the same query, to resume
                the iteration from there.
            request_timeout_ms: a timeout, in milliseconds, for each single one
                of the underlying API requests. If not passed, the collection-level
                setting is used instead.
            timeout_ms: an alias for `request_timeout_ms`.

        Returns:
            an AsyncCollectionFindCursor object, that can be iterated over
            (and manipulated in several ways).

        Example:
            >>> async for doc in my_async_coll.find({"tag": "x"}, limit=10):
            ...     print(doc["_id"])

        Note:
            When not sorting, the cursor can scroll through an arbitrary number
            of documents. No consistency is guaranteed across pages: documents
            written after the iteration started may or may not show up.
        """

        # lazy-import here to avoid circular import issues
        from docapi.cursors import AsyncCollectionFindCursor

        _request_timeout_ms, _rt_label = _first_valid_timeout(
            (request_timeout_ms, "request_timeout_ms"),
            (timeout_ms, "timeout_ms"),
            (self.api_options.timeout_options.request_timeout_ms, "request_timeout_ms"),
        )
        return AsyncCollectionFindCursor(
            collection=self,
            request_timeout_ms=_request_timeout_ms,
            overall_timeout_ms=None,
            request_timeout_label=_rt_label,
            filter=filter,
            projection=projection,
            sort=sort,
            limit=limit,
            include_similarity=include_similarity,
            include_sort_vector=include_sort_vector,
            skip=skip,
            page_size=page_size,
            initial_page_state=initial_page_state,
        )

    async def find_one(
        self,
        filter: FilterType | None = None,
        *,
        projection: ProjectionType | None = None,
        include_similarity: bool | None = None,
        sort: SortType | None = None,
        general_method_timeout_ms: int | None = None,
        request_timeout_ms: int | None = None,
        timeout_ms: int | None = None,
    ) -> DOC | None:
        """
        Run a search, returning the first document in the collection that matches
        provided filters, if any is found.

        Args:
            filter: a predicate expressed as a dictionary according to the
                Data API filter syntax.
            projection: it controls which parts of the document are returned.
                See the `find` method.
            include_similarity: a boolean to request the numeric value of the
                similarity to be returned as an added "$similarity" key.
            sort: with this dictionary parameter one can control which document
                is returned first. See the `find` method.
            general_method_timeout_ms: a timeout, in milliseconds, to impose on the
                underlying API request. If not provided, this object's defaults apply.
            request_timeout_ms: an alias for `general_method_timeout_ms`.
            timeout_ms: an alias for `general_method_timeout_ms`.

        Returns:
            a dictionary expressing the required document, otherwise None.
        """

        fo_options = (
            None
            if include_similarity is None
            else {"includeSimilarity": include_similarity}
        )
        fo_payload = {
            "findOne": {
                k: v
                for k, v in {
                    "filter": filter,
                    "projection": normalize_optional_projection(projection),
                    "options": fo_options,
                    "sort": sort,
                }.items()
                if v is not None
            }
        }
        fo_response = await self._api_commander.async_request(
            payload=fo_payload,
            timeout_context=self._single_request_timeout(
                general_method_timeout_ms=general_method_timeout_ms,
                request_timeout_ms=request_timeout_ms,
                timeout_ms=timeout_ms,
            ),
        )
        if "document" not in (fo_response.get("data") or {}):
            raise UnexpectedDataAPIResponseException(
                text="Faulty response from findOne API command.",
                raw_response=fo_response,
            )
        return fo_response["data"]["document"]  # type: ignore[no-any-return]

    async def count_documents(
        self,
        filter: FilterType,
        *,
        upper_bound: int,
        general_method_timeout_ms: int | None = None,
        request_timeout_ms: int | None = None,
        timeout_ms: int | None = None,
    ) -> int:
        """
        Count the documents in the collection matching the specified filter.

        Args:
            filter: a predicate expressed as a dictionary according to the
                Data API filter syntax.
            upper_bound: a required ceiling on the result of the count operation.
                If the actual number of documents exceeds this value,
                an exception will be raised.
                Furthermore, if the actual number of documents exceeds the maximum
                count that the Data API can reach (regardless of upper_bound),
                an exception will be raised.
            general_method_timeout_ms: a timeout, in milliseconds, to impose on the
                underlying API request. If not provided, this object's defaults apply.
            request_timeout_ms: an alias for `general_method_timeout_ms`.
            timeout_ms: an alias for `general_method_timeout_ms`.

        Returns:
            the exact count of matching documents.

        Example:
            >>> await my_async_coll.count_documents({"seq": {"$gt": 15}}, upper_bound=100)
            4
            >>> await my_async_coll.count_documents({}, upper_bound=10)
            Traceback (most recent call last):
                ... ...
            docapi.exceptions.TooManyDocumentsToCountException

        Note:
            Count operations are expensive: for this reason, the best practice
            is to provide a reasonable `upper_bound` according to the caller
            expectations.
        """

        cd_payload = {"countDocuments": {"filter": filter}}
        logger.info(f"countDocuments on '{self.name}'")
        cd_response = await self._api_commander.async_request(
            payload=cd_payload,
            timeout_context=self._single_request_timeout(
                general_method_timeout_ms=general_method_timeout_ms,
                request_timeout_ms=request_timeout_ms,
                timeout_ms=timeout_ms,
            ),
        )
        logger.info(f"finished countDocuments on '{self.name}'")
        if "count" in cd_response.get("status", {}):
            count: int = cd_response["status"]["count"]
            if cd_response["status"].get("moreData", False):
                raise TooManyDocumentsToCountException(
                    text=f"Document count exceeds {count}, the maximum allowed by the server",
                    server_max_count_exceeded=True,
                )
            else:
                if count > upper_bound:
                    raise TooManyDocumentsToCountException(
                        text="Document count exceeds required upper bound",
                        server_max_count_exceeded=False,
                    )
                else:
                    return count
        else:
            raise UnexpectedDataAPIResponseException(
                text="Faulty response from countDocuments API command.",
                raw_response=cd_response,
            )

    async def estimated_document_count(
        self,
        *,
        general_method_timeout_ms: int | None = None,
        request_timeout_ms: int | None = None,
        timeout_ms: int | None = None,
    ) -> int:
        """
        Query the API server for an estimate of the document count in the collection.

        Contrary to `count_documents`, this method has no filtering parameters.

        Args:
            general_method_timeout_ms: a timeout, in milliseconds, to impose on the
                underlying API request. If not provided, this object's defaults apply.
            request_timeout_ms: an alias for `general_method_timeout_ms`.
            timeout_ms: an alias for `general_method_timeout_ms`.

        Returns:
            a server-provided estimate count of the documents in the collection.
        """

        ed_payload: dict[str, Any] = {"estimatedDocumentCount": {}}
        logger.info(f"estimatedDocumentCount on '{self.name}'")
        ed_response = await self._api_commander.async_request(
            payload=ed_payload,
            timeout_context=self._single_request_timeout(
                general_method_timeout_ms=general_method_timeout_ms,
                request_timeout_ms=request_timeout_ms,
                timeout_ms=timeout_ms,
            ),
        )
        logger.info(f"finished estimatedDocumentCount on '{self.name}'")
        if "count" in ed_response.get("status", {}):
            count: int = ed_response["status"]["count"]
            return count
        else:
            raise UnexpectedDataAPIResponseException(
                text="Faulty response from estimatedDocumentCount API command.",
                raw_response=ed_response,
            )

    async def _replace_one_outcome(
        self,
        filter: FilterType,
        replacement: DOC,
        *,
        sort: SortType | None,
        upsert: bool,
        timeout_context: _TimeoutContext,
    ) -> DispatchOutcome[CollectionUpdateResult]:
        fo_payload = {
            "findOneAndReplace": {
                k: v
                for k, v in {
                    "filter": filter,
                    "replacement": replacement,
                    "options": {"upsert": upsert},
                    "sort": sort,
                }.items()
                if v is not None
            }
        }
        logger.info(f"findOneAndReplace on '{self.name}'")
        fo_response = await self._api_commander.async_request(
            payload=fo_payload,
            raise_api_errors=False,
            timeout_context=timeout_context,
        )
        logger.info(f"finished findOneAndReplace on '{self.name}'")
        if "document" not in (fo_response.get("data") or {}) and not fo_response.get(
            "errors"
        ):
            raise UnexpectedDataAPIResponseException(
                text="Faulty response from find_one_and_replace API command.",
                raw_response=fo_response,
            )
        return DispatchOutcome(
            result=CollectionUpdateResult(
                raw_results=[fo_response],
                update_info=_prepare_update_info([fo_response.get("status") or {}]),
            ),
            commands=[fo_payload],
            raw_responses=[fo_response],
        )

    async def replace_one(
        self,
        filter: FilterType,
        replacement: DOC,
        *,
        sort: SortType | None = None,
        upsert: bool = False,
        general_method_timeout_ms: int | None = None,
        request_timeout_ms: int | None = None,
        timeout_ms: int | None = None,
    ) -> CollectionUpdateResult:
        """
        Replace a single document on the collection with a new one,
        optionally inserting a new one if no match is found.

        Args:
            filter: a predicate expressed as a dictionary according to the
                Data API filter syntax.
            replacement: the new document to write into the collection.
            sort: with this dictionary parameter one can control the sorting
                order of the documents matching the filter, effectively
                determining what document will come first and hence be the
                replaced one.
            upsert: if True, `replacement` is inserted as a new document
                if no matches are found on the collection.
            general_method_timeout_ms: a timeout, in milliseconds, to impose on the
                underlying API request. If not provided, this object's defaults apply.
            request_timeout_ms: an alias for `general_method_timeout_ms`.
            timeout_ms: an alias for `general_method_timeout_ms`.

        Returns:
            a CollectionUpdateResult object summarizing the outcome of
            the replace operation.
        """

        outcome = await self._replace_one_outcome(
            filter,
            replacement,
            sort=sort,
            upsert=upsert,
            timeout_context=self._single_request_timeout(
                general_method_timeout_ms=general_method_timeout_ms,
                request_timeout_ms=request_timeout_ms,
                timeout_ms=timeout_ms,
            ),
        )
        _raise_on_errors(outcome)
        return outcome.result

    async def _update_one_outcome(
        self,
        filter: FilterType,
        update: dict[str, Any],
        *,
        sort: SortType | None,
        upsert: bool,
        timeout_context: _TimeoutContext,
    ) -> DispatchOutcome[CollectionUpdateResult]:
        uo_payload = {
            "updateOne": {
                k: v
                for k, v in {
                    "filter": filter,
                    "update": update,
                    "options": {"upsert": upsert},
                    "sort": sort,
                }.items()
                if v is not None
            }
        }
        logger.info(f"updateOne on '{self.name}'")
        uo_response = await self._api_commander.async_request(
            payload=uo_payload,
            raise_api_errors=False,
            timeout_context=timeout_context,
        )
        logger.info(f"finished updateOne on '{self.name}'")
        if "status" not in uo_response and not uo_response.get("errors"):
            raise UnexpectedDataAPIResponseException(
                text="Faulty response from updateOne API command.",
                raw_response=uo_response,
            )
        return DispatchOutcome(
            result=CollectionUpdateResult(
                raw_results=[uo_response],
                update_info=_prepare_update_info([uo_response.get("status") or {}]),
            ),
            commands=[uo_payload],
            raw_responses=[uo_response],
        )

    async def update_one(
        self,
        filter: FilterType,
        update: dict[str, Any],
        *,
        sort: SortType | None = None,
        upsert: bool = False,
        general_method_timeout_ms: int | None = None,
        request_timeout_ms: int | None = None,
        timeout_ms: int | None = None,
    ) -> CollectionUpdateResult:
        """
        Update a single document on the collection as requested,
        optionally inserting a new one if no match is found.

        Args:
            filter: a predicate expressed as a dictionary according to the
                Data API filter syntax.
            update: the update prescription to apply to the document, expressed
                as a dictionary as per Data API syntax, e.g.
                `{"$set": {"field": "value}}` or `{"$inc": {"counter": 10}}`.
            sort: controls which document is updated if several match.
            upsert: if True, a new document (resulting from applying the `update`
                to an empty document) is inserted if no matches are found.
            general_method_timeout_ms: a timeout, in milliseconds, to impose on the
                underlying API request. If not provided, this object's defaults apply.
            request_timeout_ms: an alias for `general_method_timeout_ms`.
            timeout_ms: an alias for `general_method_timeout_ms`.

        Returns:
            a CollectionUpdateResult object summarizing the outcome of
            the update operation.

        Example:
            >>> result = await my_async_coll.update_one({"Marco": {"$exists": True}}, {"$inc": {"rank": 3}})
            >>> result.update_info
            {'n': 1, 'updatedExisting': True, 'ok': 1.0, 'nModified': 1}
        """

        outcome = await self._update_one_outcome(
            filter,
            update,
            sort=sort,
            upsert=upsert,
            timeout_context=self._single_request_timeout(
                general_method_timeout_ms=general_method_timeout_ms,
                request_timeout_ms=request_timeout_ms,
                timeout_ms=timeout_ms,
            ),
        )
        _raise_on_errors(outcome)
        return outcome.result

    async def _update_many_outcome(
        self,
        filter: FilterType,
        update: dict[str, Any],
        *,
        upsert: bool,
        timeout_manager: MultiCallTimeoutManager,
        request_timeout_ms: int | None,
        request_timeout_label: str | None,
    ) -> DispatchOutcome[CollectionUpdateResult]:
        """
        Go through the pages of an updateMany, stopping at the first response
        with errors. The result only accounts for the error-free pages.
        """
        page_state_options: dict[str, str] = {}
        um_payloads: list[dict[str, Any]] = []
        um_responses: list[dict[str, Any]] = []
        um_ok_responses: list[dict[str, Any]] = []
        must_proceed = True
        logger.info(f"starting update_many on '{self.name}'")
        while must_proceed:
            this_um_payload = {
                "updateMany": {
                    k: v
                    for k, v in {
                        "filter": filter,
                        "update": update,
                        "options": {"upsert": upsert, **page_state_options},
                    }.items()
                    if v is not None
                }
            }
            logger.info(f"updateMany on '{self.name}'")
            this_um_response = await self._api_commander.async_request(
                payload=this_um_payload,
                raise_api_errors=False,
                timeout_context=timeout_manager.remaining_timeout(
                    cap_time_ms=request_timeout_ms,
                    cap_timeout_label=request_timeout_label,
                ),
            )
            logger.info(f"finished updateMany on '{self.name}'")
            um_payloads.append(this_um_payload)
            um_responses.append(this_um_response)
            if this_um_response.get("errors"):
                break
            if "status" not in this_um_response:
                raise UnexpectedDataAPIResponseException(
                    text="Faulty response from update_many API command.",
                    raw_response=this_um_response,
                )
            um_ok_responses.append(this_um_response)
            next_page_state = this_um_response["status"].get("nextPageState")
            if next_page_state is not None:
                page_state_options = {"pageState": next_page_state}
            else:
                must_proceed = False
        logger.info(f"finished update_many on '{self.name}'")
        return DispatchOutcome(
            result=CollectionUpdateResult(
                raw_results=um_ok_responses,
                update_info=_prepare_update_info(
                    [response["status"] for response in um_ok_responses]
                ),
            ),
            commands=um_payloads,
            raw_responses=um_responses,
        )

    async def update_many(
        self,
        filter: FilterType,
        update: dict[str, Any],
        *,
        upsert: bool = False,
        general_method_timeout_ms: int | None = None,
        request_timeout_ms: int | None = None,
        timeout_ms: int | None = None,
    ) -> CollectionUpdateResult:
        """
        Apply an update operation to all documents matching a condition,
        optionally inserting one documents in absence of matches.

        Args:
            filter: a predicate expressed as a dictionary according to the
                Data API filter syntax.
            update: the update prescription to apply to the documents, expressed
                as a dictionary as per Data API syntax.
            upsert: this parameter controls the behavior in absence of matches.
                If True, a single new document (resulting from applying `update`
                to an empty document) is inserted if no matches are found on
                the collection. If False, the operation silently does nothing
                in case of no matches.
            general_method_timeout_ms: a timeout, in milliseconds, for the whole
                requested operation (which may involve multiple API requests).
                If not passed, the collection-level setting is used instead.
            request_timeout_ms: a timeout, in milliseconds, for each API request.
                If not passed, the collection-level setting is used instead.
            timeout_ms: an alias for `general_method_timeout_ms`.

        Returns:
            a CollectionUpdateResult object summarizing the outcome of
            the update operation.

        Note:
            The update proceeds in pages, one request each. If a page
            fails, a `CollectionUpdateManyException` is raised, whose
            `partial_result` accounts for the pages updated before the failure.
        """

        timeout_manager, _request_timeout_ms, _rt_label = self._multicall_timeouts(
            general_method_timeout_ms=general_method_timeout_ms,
            request_timeout_ms=request_timeout_ms,
            timeout_ms=timeout_ms,
        )
        outcome = await self._update_many_outcome(
            filter,
            update,
            upsert=upsert,
            timeout_manager=timeout_manager,
            request_timeout_ms=_request_timeout_ms,
            request_timeout_label=_rt_label,
        )
        if outcome.has_errors:
            raise CollectionUpdateManyException.from_responses(
                commands=outcome.commands,
                raw_responses=outcome.raw_responses,
                partial_result=outcome.result,
            )
        return outcome.result

    async def _delete_one_outcome(
        self,
        filter: FilterType,
        *,
        sort: SortType | None,
        timeout_context: _TimeoutContext,
    ) -> DispatchOutcome[CollectionDeleteResult]:
        do_payload = {
            "deleteOne": {
                k: v
                for k, v in {
                    "filter": filter,
                    "sort": sort,
                }.items()
                if v is not None
            }
        }
        logger.info(f"deleteOne on '{self.name}'")
        do_response = await self._api_commander.async_request(
            payload=do_payload,
            raise_api_errors=False,
            timeout_context=timeout_context,
        )
        logger.info(f"finished deleteOne on '{self.name}'")
        deleted_count = (do_response.get("status") or {}).get("deletedCount")
        if deleted_count is None and not do_response.get("errors"):
            raise UnexpectedDataAPIResponseException(
                text="Faulty response from delete_one API command.",
                raw_response=do_response,
            )
        return DispatchOutcome(
            result=CollectionDeleteResult(
                deleted_count=deleted_count or 0,
                raw_results=[do_response],
            ),
            commands=[do_payload],
            raw_responses=[do_response],
        )

    async def delete_one(
        self,
        filter: FilterType,
        *,
        sort: SortType | None = None,
        general_method_timeout_ms: int | None = None,
        request_timeout_ms: int | None = None,
        timeout_ms: int | None = None,
    ) -> CollectionDeleteResult:
        """
        Delete one document matching a provided filter.

        Args:
            filter: a predicate expressed as a dictionary according to the
                Data API filter syntax.
            sort: controls which document is deleted if several match.
            general_method_timeout_ms: a timeout, in milliseconds, to impose on the
                underlying API request. If not provided, this object's defaults apply.
            request_timeout_ms: an alias for `general_method_timeout_ms`.
            timeout_ms: an alias for `general_method_timeout_ms`.

        Returns:
            a CollectionDeleteResult object summarizing the outcome of the
            delete operation.
        """

        outcome = await self._delete_one_outcome(
            filter,
            sort=sort,
            timeout_context=self._single_request_timeout(
                general_method_timeout_ms=general_method_timeout_ms,
                request_timeout_ms=request_timeout_ms,
                timeout_ms=timeout_ms,
            ),
        )
        _raise_on_errors(outcome)
        return outcome.result

    async def _delete_many_outcome(
        self,
        filter: FilterType,
        *,
        timeout_manager: MultiCallTimeoutManager,
        request_timeout_ms: int | None,
        request_timeout_label: str | None,
    ) -> DispatchOutcome[CollectionDeleteResult]:
        dm_payload = {"deleteMany": {"filter": filter}}
        dm_responses: list[dict[str, Any]] = []
        dm_ok_responses: list[dict[str, Any]] = []
        deleted_count = 0
        must_proceed = True
        logger.info(f"starting delete_many on '{self.name}'")
        while must_proceed:
            logger.info(f"deleteMany on '{self.name}'")
            this_dm_response = await self._api_commander.async_request(
                payload=dm_payload,
                raise_api_errors=False,
                timeout_context=timeout_manager.remaining_timeout(
                    cap_time_ms=request_timeout_ms,
                    cap_timeout_label=request_timeout_label,
                ),
            )
            logger.info(f"finished deleteMany on '{self.name}'")
            dm_responses.append(this_dm_response)
            if this_dm_response.get("errors"):
                break
            this_dc = (this_dm_response.get("status") or {}).get("deletedCount")
            if this_dc is None:
                raise UnexpectedDataAPIResponseException(
                    text="Faulty response from delete_many API command.",
                    raw_response=this_dm_response,
                )
            dm_ok_responses.append(this_dm_response)
            deleted_count += this_dc
            must_proceed = this_dm_response["status"].get("moreData", False)
        logger.info(f"finished delete_many on '{self.name}'")
        return DispatchOutcome(
            result=CollectionDeleteResult(
                deleted_count=deleted_count,
                raw_results=dm_ok_responses,
            ),
            commands=[dm_payload] * len(dm_responses),
            raw_responses=dm_responses,
        )

    async def delete_many(
        self,
        filter: FilterType,
        *,
        general_method_timeout_ms: int | None = None,
        request_timeout_ms: int | None = None,
        timeout_ms: int | None = None,
    ) -> CollectionDeleteResult:
        """
        Delete all documents matching a provided filter.

        Args:
            filter: a predicate expressed as a dictionary according to the
                Data API filter syntax. Passing an empty filter, `{}`,
                completely erases all contents of the collection.
            general_method_timeout_ms: a timeout, in milliseconds, for the whole
                requested operation (which may involve multiple API requests).
                If not passed, the collection-level setting is used instead.
            request_timeout_ms: a timeout, in milliseconds, for each API request.
                If not passed, the collection-level setting is used instead.
            timeout_ms: an alias for `general_method_timeout_ms`.

        Returns:
            a CollectionDeleteResult object summarizing the outcome of the
            delete operation.

        Note:
            This operation is in general not atomic. Depending on the amount
            of matching documents, it can keep running (in a blocking way)
            for a macroscopic time. If a request fails midway, a
            `CollectionDeleteManyException` is raised whose `partial_result`
            counts the documents deleted until then.
        """

        timeout_manager, _request_timeout_ms, _rt_label = self._multicall_timeouts(
            general_method_timeout_ms=general_method_timeout_ms,
            request_timeout_ms=request_timeout_ms,
            timeout_ms=timeout_ms,
        )
        outcome = await self._delete_many_outcome(
            filter,
            timeout_manager=timeout_manager,
            request_timeout_ms=_request_timeout_ms,
            request_timeout_label=_rt_label,
        )
        if outcome.has_errors:
            raise CollectionDeleteManyException.from_responses(
                commands=outcome.commands,
                raw_responses=outcome.raw_responses,
                partial_result=outcome.result,
            )
        return outcome.result

    async def bulk_write(
        self,
        requests: Iterable[AsyncBaseOperation],
        *,
        ordered: bool = False,
        concurrency: int | None = None,
        general_method_timeout_ms: int | None = None,
        request_timeout_ms: int | None = None,
        timeout_ms: int | None = None,
    ) -> BulkWriteResult:
        """
        Execute an arbitrary amount of operations such as inserts, updates, deletes
        either sequentially or concurrently.

        This method does not execute atomically, i.e. individual operations are
        each performed in the same way as the corresponding collection method,
        and certainly each one is a different and unrelated database mutation.

        Args:
            requests: an iterable over concrete subclasses of `AsyncBaseOperation`,
                such as `InsertOne` or `ReplaceOne`. Each such object
                represents an operation ready to be executed on a collection,
                and is instantiated by passing the same parameters as one
                would the corresponding collection method.
            ordered: whether to launch the `requests` one after the other
                (stopping at the first failure) or in arbitrary order, possibly
                in a concurrent fashion. For performance reasons, `ordered=False`
                should be preferred when compatible with the needs of the
                application flow.
            concurrency: maximum number of operations in flight at any time
                for unordered bulk writes.
            general_method_timeout_ms: a timeout, in milliseconds, for the whole
                bulk write. If not passed, the collection-level setting is used.
            request_timeout_ms: a timeout, in milliseconds, for each API request.
                If not passed, the collection-level setting is used instead.
            timeout_ms: an alias for `general_method_timeout_ms`.

        Returns:
            A single BulkWriteResult summarizing the whole list of requested
            operations. The keys in the map attributes of BulkWriteResult
            (when present) are the integer indices of the corresponding operation
            in the `requests` iterable.

        Example:
            >>> from docapi.operations import InsertOne, DeleteOne
            >>> await my_async_coll.bulk_write(
            ...     [InsertOne({"_id": "z"}), DeleteOne({"_id": "y"})],
            ... )
            BulkWriteResult(deleted_count=1, inserted_count=1, ...)

        Note:
            If any operation reports errors, a `CollectionBulkWriteException`
            is raised once the bulk write is over. Its `partial_result`
            reflects all operations that succeeded: in ordered mode, these
            are exactly the ones preceding the failed one.
        """

        _requests = list(requests)
        timeout_manager, _request_timeout_ms, _rt_label = self._multicall_timeouts(
            general_method_timeout_ms=general_method_timeout_ms,
            request_timeout_ms=request_timeout_ms,
            timeout_ms=timeout_ms,
        )

        async def _execute_operation(
            operation: AsyncBaseOperation, index_in_bulk_write: int
        ) -> DispatchOutcome[BulkWriteResult]:
            return await operation.execute(
                self,
                index_in_bulk_write,
                timeout_manager=timeout_manager,
                request_timeout_ms=_request_timeout_ms,
                request_timeout_label=_rt_label,
            )

        def _finalize(batch: BatchOutcome[BulkWriteResult]) -> BulkWriteResult:
            result = reduce_bulk_write_results(batch.results())
            if batch.failed():
                commands, raw_responses = batch.failed_commands_and_responses()
                raise CollectionBulkWriteException.from_responses(
                    commands=commands,
                    raw_responses=raw_responses,
                    partial_result=result,
                )
            return result

        logger.info(f"starting bulk_write of {len(_requests)} operations on '{self.name}'")
        bw_result = await execute_batch(
            _requests,
            _execute_operation,
            _finalize,
            ordered=ordered,
            concurrency=(
                DEFAULT_BULK_WRITE_CONCURRENCY if concurrency is None else concurrency
            ),
            operation_name="bulk_write",
            event_observers=self.api_options.event_observers.values(),
            sender=self,
        )
        logger.info(f"finished bulk_write on '{self.name}'")
        return bw_result

    async def drop(
        self,
        *,
        collection_admin_timeout_ms: int | None = None,
        request_timeout_ms: int | None = None,
        timeout_ms: int | None = None,
    ) -> None:
        """
        Drop the collection, i.e. delete it from the database along with
        all the documents it contains.

        Args:
            collection_admin_timeout_ms: a timeout, in milliseconds, to impose on the
                underlying API request. If not provided, this object's defaults apply.
            request_timeout_ms: an alias for `collection_admin_timeout_ms`.
            timeout_ms: an alias for `collection_admin_timeout_ms`.

        Note:
            Use with caution.
        """

        logger.info(f"dropping collection '{self.name}' (self)")
        await self.database.drop_collection(
            self.name,
            collection_admin_timeout_ms=collection_admin_timeout_ms,
            request_timeout_ms=request_timeout_ms,
            timeout_ms=timeout_ms,
        )
        logger.info(f"finished dropping collection '{self.name}' (self)")

    async def command(
        self,
        body: dict[str, Any] | None,
        *,
        raise_api_errors: bool = True,
        general_method_timeout_ms: int | None = None,
        request_timeout_ms: int | None = None,
        timeout_ms: int | None = None,
    ) -> dict[str, Any]:
        """
        Send a POST request to the Data API for this collection with
        an arbitrary, caller-provided payload.
        No transformations or type conversions are made on the provided payload.

        Args:
            body: a JSON-serializable dictionary, the payload of the request.
            raise_api_errors: if True, responses with a nonempty 'errors' field
                result in a DataAPIResponseException being raised.
            general_method_timeout_ms: a timeout, in milliseconds, to impose on the
                underlying API request. If not provided, this object's defaults apply.
            request_timeout_ms: an alias for `general_method_timeout_ms`.
            timeout_ms: an alias for `general_method_timeout_ms`.

        Returns:
            a dictionary with the response of the HTTP request.

        Example:
            >>> await my_async_coll.command({"countDocuments": {}})
            {'status': {'count': 123}}
        """

        _cmd_desc: str
        if body:
            _cmd_desc = ",".join(sorted(body.keys()))
        else:
            _cmd_desc = "(none)"
        logger.info(f"command={_cmd_desc} on '{self.name}'")
        command_result = await self._api_commander.async_request(
            payload=body,
            raise_api_errors=raise_api_errors,
            timeout_context=self._single_request_timeout(
                general_method_timeout_ms=general_method_timeout_ms,
                request_timeout_ms=request_timeout_ms,
                timeout_ms=timeout_ms,
            ),
        )
        logger.info(f"finished command={_cmd_desc} on '{self.name}'")
        return command_result

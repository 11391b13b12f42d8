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

from copy import deepcopy
from inspect import iscoroutinefunction
from types import TracebackType
from typing import (
    TYPE_CHECKING,
    Any,
    AsyncIterator,
    Awaitable,
    Callable,
    Generic,
    cast,
)

from typing_extensions import override

from docapi.constants import FilterType, ProjectionType
from docapi.data.cursors.cursor import (
    TNEW,
    TRAW,
    AbstractCursor,
    CursorState,
    MapperChain,
    T,
    _apply_mappers,
    _ensure_vector,
    _revise_timeouts_for_cursor_copy,
    logger,
)
from docapi.data.cursors.pagination import FindPage
from docapi.data.cursors.query_engine import _CollectionFindQueryEngine
from docapi.exceptions import CursorException, MultiCallTimeoutManager
from docapi.utils.unset import _UNSET, UnsetType

if TYPE_CHECKING:
    from docapi.data.collection import AsyncCollection


class AsyncCollectionFindCursor(Generic[TRAW, T], AbstractCursor[TRAW]):
    """
    An asynchronous cursor over documents, as returned by a `find` invocation on
    an AsyncCollection. A cursor can be iterated over, materialized into a list,
    and queried/manipulated in various ways.

    Some cursor operations mutate it in-place (such as consuming its documents),
    other return a new cursor without changing the original one. Configuration
    methods (`filter`, `sort`, `limit`, `map` and so on) are only allowed
    while the cursor is IDLE, i.e. before any document is consumed.

    A cursor has two type parameters: TRAW and T. The first is the type of the "raw"
    documents as they are obtained from the Data API, the second is the type of the
    items after the optional mapping steps (see the `.map()` method). If there is
    no mapping, TRAW = T. In general, consuming a cursor returns items of type T,
    except for the `consume_buffer` primitive that draws directly from the buffer
    and always returns items of type TRAW.

    Pagination is transparent: pages are fetched from the API as needed while
    the cursor is consumed. No consistency is guaranteed across pages, so that
    documents inserted or deleted while a non-sorted iteration is in progress
    may be skipped or returned twice.

    Example:
        >>> cursor = my_async_coll.find({"tag": "a"}, limit=3)
        >>> async for doc in cursor:
        ...     print(doc["_id"])
        ...
        doc1
        doc2
        doc3
        >>> cursor.state
        <CursorState.EXHAUSTED: 'exhausted'>
    """

    _query_engine: _CollectionFindQueryEngine[TRAW]
    _request_timeout_ms: int | None
    _overall_timeout_ms: int | None
    _request_timeout_label: str | None
    _overall_timeout_label: str | None
    _timeout_manager: MultiCallTimeoutManager
    _filter: FilterType | None
    _projection: ProjectionType | None
    _sort: dict[str, Any] | None
    _limit: int | None
    _include_similarity: bool | None
    _include_sort_vector: bool | None
    _skip: int | None
    _page_size: int | None
    _mappers: MapperChain
    _driver: object | None

    def __init__(
        self,
        *,
        collection: AsyncCollection[TRAW],
        request_timeout_ms: int | None,
        overall_timeout_ms: int | None,
        request_timeout_label: str | None = None,
        overall_timeout_label: str | None = None,
        filter: FilterType | None = None,
        projection: ProjectionType | None = None,
        sort: dict[str, Any] | None = None,
        limit: int | None = None,
        include_similarity: bool | None = None,
        include_sort_vector: bool | None = None,
        skip: int | None = None,
        page_size: int | None = None,
        initial_page_state: str | None = None,
        mappers: MapperChain = (),
    ) -> None:
        self._filter = deepcopy(filter)
        self._projection = projection
        self._sort = deepcopy(sort)
        self._limit = limit
        self._include_similarity = include_similarity
        self._include_sort_vector = include_sort_vector
        self._skip = skip
        self._page_size = page_size
        self._mappers = tuple(mappers)
        self._request_timeout_ms = request_timeout_ms
        self._overall_timeout_ms = overall_timeout_ms
        self._request_timeout_label = request_timeout_label
        self._overall_timeout_label = overall_timeout_label
        self._query_engine = _CollectionFindQueryEngine(
            async_collection=collection,
            filter=self._filter,
            projection=self._projection,
            sort=self._sort,
            limit=self._limit,
            include_similarity=self._include_similarity,
            include_sort_vector=self._include_sort_vector,
            skip=self._skip,
            page_size=self._page_size,
        )
        AbstractCursor.__init__(self, initial_page_state=initial_page_state)
        self._timeout_manager = self._new_timeout_manager()
        self._driver = None

    def _new_timeout_manager(self) -> MultiCallTimeoutManager:
        return MultiCallTimeoutManager(
            overall_timeout_ms=self._overall_timeout_ms,
            timeout_label=self._overall_timeout_label,
        )

    def _copy(
        self: AsyncCollectionFindCursor[TRAW, T],
        *,
        request_timeout_ms: int | None | UnsetType = _UNSET,
        overall_timeout_ms: int | None | UnsetType = _UNSET,
        request_timeout_label: str | None | UnsetType = _UNSET,
        overall_timeout_label: str | None | UnsetType = _UNSET,
        filter: FilterType | None | UnsetType = _UNSET,
        projection: ProjectionType | None | UnsetType = _UNSET,
        sort: dict[str, Any] | None | UnsetType = _UNSET,
        limit: int | None | UnsetType = _UNSET,
        include_similarity: bool | None | UnsetType = _UNSET,
        include_sort_vector: bool | None | UnsetType = _UNSET,
        skip: int | None | UnsetType = _UNSET,
        page_size: int | None | UnsetType = _UNSET,
        mappers: MapperChain | UnsetType = _UNSET,
    ) -> AsyncCollectionFindCursor[TRAW, Any]:
        return AsyncCollectionFindCursor(
            collection=self._query_engine.async_collection,
            request_timeout_ms=self._request_timeout_ms
            if isinstance(request_timeout_ms, UnsetType)
            else request_timeout_ms,
            overall_timeout_ms=self._overall_timeout_ms
            if isinstance(overall_timeout_ms, UnsetType)
            else overall_timeout_ms,
            request_timeout_label=self._request_timeout_label
            if isinstance(request_timeout_label, UnsetType)
            else request_timeout_label,
            overall_timeout_label=self._overall_timeout_label
            if isinstance(overall_timeout_label, UnsetType)
            else overall_timeout_label,
            filter=self._filter if isinstance(filter, UnsetType) else filter,
            projection=self._projection
            if isinstance(projection, UnsetType)
            else projection,
            sort=self._sort if isinstance(sort, UnsetType) else sort,
            limit=self._limit if isinstance(limit, UnsetType) else limit,
            include_similarity=self._include_similarity
            if isinstance(include_similarity, UnsetType)
            else include_similarity,
            include_sort_vector=self._include_sort_vector
            if isinstance(include_sort_vector, UnsetType)
            else include_sort_vector,
            skip=self._skip if isinstance(skip, UnsetType) else skip,
            page_size=self._page_size
            if isinstance(page_size, UnsetType)
            else page_size,
            initial_page_state=self._initial_page_state,
            mappers=self._mappers if isinstance(mappers, UnsetType) else mappers,
        )

    async def _try_ensure_fill_buffer(self) -> None:
        """
        If buffer is empty, try to fill with next page, if applicable.
        If not possible, silently do nothing.
        This method never changes the cursor state.
        """

        if self._state in {CursorState.CLOSED, CursorState.EXHAUSTED}:
            return
        if not self._buffer and self._can_fetch():
            (
                new_buffer,
                next_page_state,
                resp_status,
            ) = await self._query_engine._async_fetch_page(
                page_state=self._next_page_state,
                timeout_context=self._timeout_manager.remaining_timeout(
                    cap_time_ms=self._request_timeout_ms,
                    cap_timeout_label=self._request_timeout_label,
                ),
            )
            if self._state == CursorState.CLOSED:
                logger.info("cursor closed while fetching: discarding page")
                return
            if self._pages_retrieved == 0 and resp_status:
                self._sort_vector = _ensure_vector(resp_status.get("sortVector"))
            self._next_page_state = next_page_state
            self._last_response_status = resp_status
            self._pages_retrieved += 1
            self._buffer = new_buffer

    def __repr__(self) -> str:
        return (
            f'{self.__class__.__name__}("{self.data_source.name}", '
            f"{self._state.value}, "
            f"consumed so far: {self.consumed})"
        )

    def _close_if_abandoned(self) -> None:
        """
        Close the cursor if an earlier `async for` over it was left before
        the end and its iterator has not been finalized yet.
        """
        if self._driver is not None:
            self._driver = None
            self.close()

    def __aiter__(self) -> AsyncIterator[T]:
        self._close_if_abandoned()
        self._ensure_alive()
        driver = object()
        self._driver = driver
        return self._drive(driver)

    async def _drive(self, driver: object) -> AsyncIterator[T]:
        try:
            while True:
                try:
                    item = await self.__anext__()
                except StopAsyncIteration:
                    return
                yield item
        finally:
            # a late finalization must not touch a rewound cursor
            if self._driver is driver:
                self._driver = None
                if self._state == CursorState.STARTED:
                    self.close()

    async def __anext__(self) -> T:
        if self._state in {CursorState.CLOSED, CursorState.EXHAUSTED}:
            raise StopAsyncIteration
        await self._try_ensure_fill_buffer()
        if self._state == CursorState.CLOSED:
            raise StopAsyncIteration
        if not self._buffer:
            self._state = CursorState.EXHAUSTED
            raise StopAsyncIteration
        self._state = CursorState.STARTED
        # consume one item from buffer
        traw0, rest_buffer = self._buffer[0], self._buffer[1:]
        self._buffer = rest_buffer
        self._consumed += 1
        return cast(T, _apply_mappers(self._mappers, traw0))

    async def __aenter__(
        self: AsyncCollectionFindCursor[TRAW, T],
    ) -> AsyncCollectionFindCursor[TRAW, T]:
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None = None,
        exc_value: BaseException | None = None,
        traceback: TracebackType | None = None,
    ) -> None:
        self.close()

    @property
    def data_source(self) -> AsyncCollection[TRAW]:
        """
        The AsyncCollection object that originated this cursor through
        a `find` operation.

        Returns:
            an AsyncCollection instance.
        """

        return self._query_engine.async_collection

    def clone(self) -> AsyncCollectionFindCursor[TRAW, TRAW]:
        """
        Create a copy of this cursor with:
        - the same query parameters (timeouts, filter, projection, etc)
        - no mapping steps,
        - and the cursor is in its pristine IDLE state.

        Returns:
            a new AsyncCollectionFindCursor, similar to this one but
            rewound to its initial state and without mapping.
        """

        return cast(AsyncCollectionFindCursor[TRAW, TRAW], self._copy(mappers=()))

    @override
    def rewind(self) -> None:
        """
        Rewind the cursor, bringing it back to its pristine state of no items
        retrieved/consumed yet, regardless of its current state.
        Query settings (filter, projection, timeouts etc) are retained, while
        mapping steps are discarded: a rewound cursor yields raw documents.

        A cursor can be rewound at any time. Keep in mind that, subject to changes
        occurred on the collection, the results may be different if a cursor
        is browsed a second time after rewinding it.

        This is an in-place modification of the cursor.
        """

        self._reset_internal_state()
        self._mappers = ()
        self._timeout_manager = self._new_timeout_manager()
        self._driver = None

    def filter(self, filter: FilterType | None) -> AsyncCollectionFindCursor[TRAW, T]:
        """
        Return a copy of this cursor with a new filter setting.
        This operation is allowed only if the cursor state is still IDLE.

        Instead of explicitly invoking this method, the typical usage consists
        in passing arguments to the AsyncCollection `find` method.

        Args:
            filter: a new filter setting to apply to the returned new cursor.

        Returns:
            a new AsyncCollectionFindCursor with the same settings as this one,
                except for `filter` which is the provided value.
        """

        self._ensure_idle()
        return self._copy(filter=filter)

    def project(
        self, projection: ProjectionType | None
    ) -> AsyncCollectionFindCursor[TRAW, T]:
        """
        Return a copy of this cursor with a new projection setting.
        This operation is allowed only if the cursor state is still IDLE and if
        no mapping has been set on it.

        Args:
            projection: a new projection setting to apply to the returned new cursor.

        Returns:
            a new AsyncCollectionFindCursor with the same settings as this one,
                except for `projection` which is the provided value.
        """

        self._ensure_idle()
        if self._mappers:
            raise CursorException(
                "Cannot set projection after map.",
                cursor_state=self._state.value,
            )
        return self._copy(projection=projection)

    def sort(self, sort: dict[str, Any] | None) -> AsyncCollectionFindCursor[TRAW, T]:
        """
        Return a copy of this cursor with a new sort setting.
        This operation is allowed only if the cursor state is still IDLE.
        """

        self._ensure_idle()
        return self._copy(sort=sort)

    def limit(self, limit: int | None) -> AsyncCollectionFindCursor[TRAW, T]:
        """
        Return a copy of this cursor with a new limit setting.
        This operation is allowed only if the cursor state is still IDLE.

        Args:
            limit: a new limit setting. Zero or None mean no limit.

        Returns:
            a new AsyncCollectionFindCursor with the same settings as this one,
                except for `limit` which is the provided value.
        """

        self._ensure_idle()
        return self._copy(limit=limit)

    def skip(self, skip: int | None) -> AsyncCollectionFindCursor[TRAW, T]:
        """
        Return a copy of this cursor with a new skip setting.
        This operation is allowed only if the cursor state is still IDLE.
        """

        self._ensure_idle()
        return self._copy(skip=skip)

    def page_size(self, page_size: int | None) -> AsyncCollectionFindCursor[TRAW, T]:
        """
        Return a copy of this cursor with a new page-size hint, sent along with
        each page request. This operation is allowed only if the cursor state
        is still IDLE.

        Args:
            page_size: the number of documents to request per page. If None,
                the server default applies.

        Returns:
            a new AsyncCollectionFindCursor with the same settings as this one,
                except for `page_size` which is the provided value.
        """

        self._ensure_idle()
        return self._copy(page_size=page_size)

    def include_similarity(
        self, include_similarity: bool | None
    ) -> AsyncCollectionFindCursor[TRAW, T]:
        """
        Return a copy of this cursor with a new include_similarity setting.
        This operation is allowed only if the cursor state is still IDLE and if
        no mapping has been set on it.

        Args:
            include_similarity: a new include_similarity setting to apply
                to the returned new cursor.

        Returns:
            a new AsyncCollectionFindCursor with the same settings as this one,
                except for `include_similarity` which is the provided value.
        """

        self._ensure_idle()
        if self._mappers:
            raise CursorException(
                "Cannot set include_similarity after map.",
                cursor_state=self._state.value,
            )
        return self._copy(include_similarity=include_similarity)

    def include_sort_vector(
        self, include_sort_vector: bool | None
    ) -> AsyncCollectionFindCursor[TRAW, T]:
        """
        Return a copy of this cursor with a new include_sort_vector setting.
        This operation is allowed only if the cursor state is still IDLE.
        """

        self._ensure_idle()
        return self._copy(include_sort_vector=include_sort_vector)

    def map(self, mapper: Callable[[T], TNEW]) -> AsyncCollectionFindCursor[TRAW, TNEW]:
        """
        Return a copy of this cursor with a mapping function to transform
        the returned items. Calling this method on a cursor with a mapping
        already set appends a step to the chain: mapping functions are applied
        in the order they were given, each one on the output of the previous.

        This operation is allowed only if the cursor state is still IDLE.
        The mapping steps of an existing cursor are never modified.

        Args:
            mapper: a function transforming the objects returned by the cursor
                into something else (i.e. a function T => TNEW).

        Returns:
            a new AsyncCollectionFindCursor with the mapping step added.

        Example:
            >>> cursor = my_async_coll.find({}).map(lambda doc: doc["_id"])
            >>> await cursor.to_list()
            ['doc1', 'doc2']
        """

        self._ensure_idle()
        return cast(
            AsyncCollectionFindCursor[TRAW, TNEW],
            self._copy(mappers=self._mappers + (mapper,)),
        )

    async def for_each(
        self,
        function: Callable[[T], bool | None] | Callable[[T], Awaitable[bool | None]],
        *,
        general_method_timeout_ms: int | None = None,
        timeout_ms: int | None = None,
    ) -> None:
        """
        Consume the remaining documents in the cursor, invoking a provided callback
        function -- or coroutine -- on each of them.

        Calling this method on a CLOSED cursor results in an error.

        The callback function can return any value. The return value is generally
        discarded, with the following exception: if the function returns the boolean
        `False`, it is taken to signify that the method should quit early. The
        cursor is CLOSED when this method returns, whether it stopped early or
        ran through all documents. If a page fetch fails, the error propagates
        and the cursor is left as it was before the failed fetch.

        Args:
            function: a callback function, or a coroutine, whose only parameter is of
                the type returned by the cursor.
                This callback is invoked once per each document yielded
                by the cursor. If the callback returns a `False`, the `for_each`
                invocation stops early and returns without consuming further documents.
            general_method_timeout_ms: a timeout, in milliseconds, for the whole
                duration of this method. If not provided, there is no such timeout.
                Note that the per-request timeout set on the cursor still applies.
            timeout_ms: an alias for `general_method_timeout_ms`.
        """

        self._close_if_abandoned()
        self._ensure_alive()
        copy_req_ms, copy_ovr_ms = _revise_timeouts_for_cursor_copy(
            new_general_method_timeout_ms=general_method_timeout_ms,
            new_timeout_ms=timeout_ms,
            old_request_timeout_ms=self._request_timeout_ms,
        )
        _cursor = self._copy(
            request_timeout_ms=copy_req_ms,
            overall_timeout_ms=copy_ovr_ms,
        )
        self._imprint_internal_state(_cursor)
        is_coro = iscoroutinefunction(function)
        stopped_early = False
        try:
            while True:
                try:
                    document = await _cursor.__anext__()
                except StopAsyncIteration:
                    break
                if is_coro:
                    res = await function(document)  # type: ignore[misc]
                else:
                    res = function(document)
                if res is False:
                    stopped_early = True
                    break
        finally:
            _cursor._imprint_internal_state(self)
        if stopped_early:
            logger.info("for_each stopped early by its callback")
        self.close()

    async def to_list(
        self,
        *,
        general_method_timeout_ms: int | None = None,
        timeout_ms: int | None = None,
    ) -> list[T]:
        """
        Materialize all documents that remain to be consumed from a cursor into a list.

        Calling this method on a CLOSED cursor results in an error.

        If the cursor is IDLE, the result will be the whole set of documents returned
        by the `find` operation; otherwise, the documents already consumed by the cursor
        will not be in the resulting list. The cursor is CLOSED afterwards.

        Calling this method is not recommended if a huge list of results is anticipated:
        it would involve a large number of data exchanges with the Data API and possibly
        a massive memory usage to construct the list. In such cases, a lazy pattern
        of iterating and consuming the documents is to be preferred.

        Args:
            general_method_timeout_ms: a timeout, in milliseconds, for the whole
                duration of this method. If not provided, there is no such timeout.
                Note that the per-request timeout set on the cursor still applies.
            timeout_ms: an alias for `general_method_timeout_ms`.

        Returns:
            a list of documents (or other values depending on the mapping
                steps, if any are set). These are all items that were left
                to be consumed on the cursor when `to_list` is called.
        """

        self._close_if_abandoned()
        self._ensure_alive()
        copy_req_ms, copy_ovr_ms = _revise_timeouts_for_cursor_copy(
            new_general_method_timeout_ms=general_method_timeout_ms,
            new_timeout_ms=timeout_ms,
            old_request_timeout_ms=self._request_timeout_ms,
        )
        _cursor = self._copy(
            request_timeout_ms=copy_req_ms,
            overall_timeout_ms=copy_ovr_ms,
        )
        self._imprint_internal_state(_cursor)
        documents: list[T] = []
        try:
            while True:
                try:
                    documents.append(await _cursor.__anext__())
                except StopAsyncIteration:
                    break
        finally:
            _cursor._imprint_internal_state(self)
        self.close()
        return documents

    async def has_next(self) -> bool:
        """
        Whether the cursor actually has more documents to return.

        `has_next` can be called on any cursor, but on a CLOSED or EXHAUSTED
        cursor will always return False.

        This method can trigger the fetch operation of a new page, if the current
        buffer is empty.

        Calling `has_next` on an IDLE cursor triggers the first page fetch, but the
        cursor stays in the IDLE state until actual consumption starts.

        Returns:
            a boolean value of True if there is at least one further item
                available to consume; False otherwise.
        """

        self._close_if_abandoned()
        if self._state in {CursorState.CLOSED, CursorState.EXHAUSTED}:
            return False
        await self._try_ensure_fill_buffer()
        return len(self._buffer) > 0

    async def get_sort_vector(self) -> list[float] | None:
        """
        Return the query vector used in the vector (ANN) search that originated
        this cursor, if applicable. If this is not an ANN search, or it was invoked
        without the `include_sort_vector` flag, return None.

        Without the flag, no API call is ever made. Otherwise, calling
        `get_sort_vector` on an IDLE cursor triggers the first page fetch, but
        the cursor stays in the IDLE state until actual consumption starts.
        The vector from the first response is cached for later calls.

        Returns:
            the query vector used in the search, as a list of floats, if this was
                a vector search (otherwise None).
        """

        if not self._include_sort_vector:
            return None
        if self._pages_retrieved == 0:
            await self._try_ensure_fill_buffer()
        return self._sort_vector

    async def fetch_next_page(self) -> FindPage[T]:
        """
        Retrieve the next page of results in full, for manual pagination.

        If the buffer holds documents, these make up the returned page and no
        API call is made; otherwise, a page is requested to the API (if there
        is one). The returned `next_page_state`, if not None, can be passed as
        `initial_page_state` to a later `find` invocation to resume the
        iteration from that point.

        Calling this method on a CLOSED cursor results in an error.

        Returns:
            a FindPage with the (mapped) results, the next page state and the
                sort vector, if one was requested.
        """

        self._close_if_abandoned()
        self._ensure_alive()
        await self._try_ensure_fill_buffer()
        raw_results = self.consume_buffer()
        if self._state != CursorState.CLOSED:
            if self._next_page_state is None and self._pages_retrieved > 0:
                self._state = CursorState.EXHAUSTED
            else:
                self._state = CursorState.STARTED
        return FindPage(
            results=[_apply_mappers(self._mappers, doc) for doc in raw_results],
            next_page_state=self._next_page_state,
            sort_vector=self._sort_vector,
        )

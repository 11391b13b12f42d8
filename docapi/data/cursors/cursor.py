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
from abc import ABC
from decimal import Decimal
from enum import Enum
from typing import Any, Callable, Generic, Tuple, TypeVar

from docapi.exceptions import CursorException

# A cursor reads TRAW from the API and delivers T, through its mapping steps.
# A new cursor returned by .map will deliver TNEW
TRAW = TypeVar("TRAW")
T = TypeVar("T")
TNEW = TypeVar("TNEW")

MapperChain = Tuple[Callable[[Any], Any], ...]

logger = logging.getLogger(__name__)


def _revise_timeouts_for_cursor_copy(
    *,
    new_general_method_timeout_ms: int | None,
    new_timeout_ms: int | None,
    old_request_timeout_ms: int | None,
) -> tuple[int | None, int | None]:
    """
    Compute the (request_timeout_ms, overall_timeout_ms) pair for the copy of
    a cursor made by `to_list` or `for_each`.

    The method-level timeout (or its alias `timeout_ms`, which wins) becomes the
    overall budget of the copy, and the per-request timeout of the copy is the
    smaller between the original per-request timeout and that budget.
    """
    _general_method_timeout_ms = (
        new_timeout_ms if new_timeout_ms is not None else new_general_method_timeout_ms
    )
    _new_request_timeout_ms: int | None
    if _general_method_timeout_ms is not None:
        if old_request_timeout_ms is not None:
            _new_request_timeout_ms = min(
                _general_method_timeout_ms,
                old_request_timeout_ms,
            )
        else:
            _new_request_timeout_ms = _general_method_timeout_ms
    else:
        _new_request_timeout_ms = old_request_timeout_ms
    return (_new_request_timeout_ms, _general_method_timeout_ms)


def _ensure_vector(fvector: list[float | Decimal] | None) -> list[float] | None:
    """Bring a sort vector from a response back to a plain list of floats."""
    if fvector is None:
        return None
    return [float(x) for x in fvector]


def _apply_mappers(mappers: MapperChain, item: Any) -> Any:
    for mapper in mappers:
        item = mapper(item)
    return item


class CursorState(Enum):
    """
    This enum expresses the possible states for a `Cursor`.

    Values:
        IDLE: Iteration over results has not started yet (alive=T, started=F)
        STARTED: Iteration has started, *can* still yield results (alive=T, started=T)
        EXHAUSTED: All results have been consumed; only `rewind` brings the cursor
            back to IDLE (alive=F)
        CLOSED: Forcibly stopped. Won't return more documents (alive=F)
    """

    IDLE = "idle"
    STARTED = "started"
    EXHAUSTED = "exhausted"
    CLOSED = "closed"


class AbstractCursor(ABC, Generic[TRAW]):
    """
    A cursor obtained from the invocation of a find-type method over a collection.
    This is the main interface to scroll through the documents.

    This class is not meant to be directly instantiated by the user, rather it
    is a superclass capturing the buffer and lifecycle mechanisms common to
    all find cursors.

    Cursors provide a seamless interface to the caller code, allowing iteration
    over results while chunks of new data (pages) are exchanged periodically with
    the API. For this reason, cursors internally manage a local buffer that is
    progressively emptied and re-filled with a new page in a manner hidden from the
    user -- except, some cursor methods allow to peek into this buffer should it
    be necessary.
    """

    _state: CursorState
    _buffer: list[TRAW]
    _pages_retrieved: int
    _consumed: int
    _initial_page_state: str | None
    _next_page_state: str | None
    _last_response_status: dict[str, Any] | None
    _sort_vector: list[float] | None

    def __init__(self, initial_page_state: str | None = None) -> None:
        self._initial_page_state = initial_page_state
        self._reset_internal_state()

    def _reset_internal_state(self) -> None:
        self._state = CursorState.IDLE
        self._buffer = []
        self._pages_retrieved = 0
        self._consumed = 0
        self._next_page_state = self._initial_page_state
        self._last_response_status = None
        self._sort_vector = None

    def _imprint_internal_state(self, other: AbstractCursor[TRAW]) -> None:
        """Mutably copy the internal state of this cursor onto another one."""
        other._state = self._state
        other._buffer = self._buffer
        other._pages_retrieved = self._pages_retrieved
        other._consumed = self._consumed
        other._next_page_state = self._next_page_state
        other._last_response_status = self._last_response_status
        other._sort_vector = self._sort_vector

    def _ensure_alive(self) -> None:
        if self._state == CursorState.CLOSED:
            raise CursorException(
                text="Cursor is stopped.",
                cursor_state=self._state.value,
            )

    def _ensure_idle(self) -> None:
        if self._state != CursorState.IDLE:
            raise CursorException(
                text="Cursor is not idle anymore.",
                cursor_state=self._state.value,
            )

    def _can_fetch(self) -> bool:
        """Whether a further page may exist on the server side."""
        return self._pages_retrieved == 0 or self._next_page_state is not None

    @property
    def state(self) -> CursorState:
        """
        The current state of this cursor.

        Returns:
            a value in `docapi.cursors.CursorState`.
        """

        return self._state

    @property
    def alive(self) -> bool:
        """
        Whether the cursor may still yield items, i.e. it is neither
        exhausted nor closed.
        """

        return self._state in {CursorState.IDLE, CursorState.STARTED}

    @property
    def consumed(self) -> int:
        """
        The number of items the cursors has yielded, i.e. how many items
        have been already read by the code consuming the cursor.

        Returns:
            consumed: a non-negative integer, the count of items yielded so far.
        """

        return self._consumed

    @property
    def cursor_id(self) -> int:
        """
        An integer uniquely identifying this cursor.

        Returns:
            cursor_id: an integer number uniquely identifying the cursor.
        """

        return id(self)

    @property
    def buffered_count(self) -> int:
        """
        The number of documents currently stored in the client-side buffer of
        this cursor. Reading this property never triggers new API calls to
        re-fill the buffer.

        Returns:
            buffered_count: a non-negative integer, the amount of items currently
                stored in the local buffer.
        """

        return len(self._buffer)

    def close(self) -> None:
        """
        Close the cursor, regardless of its state. A cursor can be closed at any
        time, possibly discarding the portion of results that has not yet been
        consumed, if any. A page arriving for a fetch that was in flight when
        the cursor got closed is discarded as well.

        This is an in-place modification of the cursor.
        """

        self._state = CursorState.CLOSED
        self._buffer = []

    def rewind(self) -> None:
        """
        Rewind the cursor, bringing it back to its pristine IDLE state of no
        items retrieved/consumed yet, regardless of its current state.

        This is an in-place modification of the cursor.
        """
        self._reset_internal_state()

    def consume_buffer(self, n: int | None = None) -> list[TRAW]:
        """
        Consume (return) up to the requested number of buffered documents.
        The returned items are marked as consumed, meaning that subsequently consuming
        the cursor will start after those items.

        This method is an in-place modification of the cursor and only concerns
        the local buffer: it never triggers fetching of new pages from the Data API.
        The items are returned as they come from the API, without mapping.

        This method can be called regardless of the cursor state without exceptions
        being raised.

        Args:
            n: amount of items to return. If omitted, the whole buffer is returned.

        Returns:
            list: a list of documents. If there are fewer items than requested,
                the whole buffer is returned without errors: in particular,
                if it is empty (such as when the cursor is closed),
                an empty list is returned.
        """
        _n = n if n is not None else len(self._buffer)
        if _n < 0:
            raise ValueError("A negative amount of items was requested.")
        returned, remaining = self._buffer[:_n], self._buffer[_n:]
        self._buffer = remaining
        self._consumed += len(returned)
        return returned

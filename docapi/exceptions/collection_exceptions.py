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

from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from docapi.exceptions.data_api_exceptions import (
    DataAPIException,
    DataAPIResponseException,
)

if TYPE_CHECKING:
    from docapi.results import (
        BulkWriteResult,
        CollectionDeleteResult,
        CollectionInsertManyResult,
        CollectionUpdateResult,
        OperationResult,
    )


@dataclass
class TooManyDocumentsToCountException(DataAPIException):
    """
    A `count_documents()` found more documents than the upper bound passed
    by the caller, or more than the API is willing to count.

    Attributes:
        text: a text message about the exception.
        server_max_count_exceeded: True if the limit was imposed by the API.
            In that case, raising the upper bound in the call does not help.
    """

    text: str
    server_max_count_exceeded: bool

    def __init__(
        self,
        text: str,
        *,
        server_max_count_exceeded: bool,
    ) -> None:
        super().__init__(text)
        self.text = text
        self.server_max_count_exceeded = server_max_count_exceeded


class CumulativeOperationException(DataAPIResponseException):
    """
    One or more requests of an operation spanning several requests returned
    errors. Besides the errors, the exception carries the result accumulated
    from all successful work: for operations made of independent writes, this
    tells which parts have been applied to the database.

    Attributes:
        text: the message of the first error encountered.
        error_descriptors: all DataAPIErrorDescriptor objects, flattened
            across the failed requests.
        detailed_error_descriptors: one DataAPIDetailedErrorDescriptor
            for each failed request (command, raw response, errors).
        partial_result: the result object the method would have returned,
            holding what was accomplished before (or besides) the failures.
    """

    partial_result: OperationResult | BulkWriteResult

    def __init__(
        self,
        text: str | None,
        *,
        partial_result: OperationResult | BulkWriteResult,
        **kwargs: Any,
    ) -> None:
        super().__init__(text, **kwargs)
        self.partial_result = partial_result


class CollectionInsertManyException(CumulativeOperationException):
    """
    Errors occurred during an `insert_many`. The `partial_result` is a
    CollectionInsertManyResult listing the ids of the documents that were
    inserted nonetheless.
    """

    partial_result: CollectionInsertManyResult


class CollectionBulkWriteException(CumulativeOperationException):
    """
    Errors occurred during a `bulk_write`. The `partial_result` is a
    BulkWriteResult with the effects of all operations that succeeded.
    In ordered mode, that means exactly the operations preceding the failed one.
    """

    partial_result: BulkWriteResult


class CollectionUpdateManyException(CumulativeOperationException):
    """
    Errors occurred during an `update_many`, possibly after some pages of
    documents were already updated. The `partial_result` is a
    CollectionUpdateResult for the part that succeeded.
    """

    partial_result: CollectionUpdateResult


class CollectionDeleteManyException(CumulativeOperationException):
    """
    Errors occurred during a `delete_many`, possibly after some pages of
    documents were already deleted. The `partial_result` is a
    CollectionDeleteResult for the part that succeeded.
    """

    partial_result: CollectionDeleteResult

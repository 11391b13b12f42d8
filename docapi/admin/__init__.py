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

from docapi.admin.admin import (
    AstraDBAdmin,
    AstraDBDatabaseAdmin,
    DataAPIDatabaseAdmin,
    DatabaseAdmin,
    make_database_admin,
)
from docapi.admin.endpoints import (
    ParsedAPIEndpoint,
    api_endpoint_parser,
    build_api_endpoint,
    parse_api_endpoint,
)
from docapi.admin.polling import (
    LongRunningOperation,
    PollOutcome,
    poll_until_complete,
    status_sequence_predicate,
)

__all__ = [
    "AstraDBAdmin",
    "AstraDBDatabaseAdmin",
    "DataAPIDatabaseAdmin",
    "DatabaseAdmin",
    "LongRunningOperation",
    "ParsedAPIEndpoint",
    "PollOutcome",
    "api_endpoint_parser",
    "build_api_endpoint",
    "make_database_admin",
    "parse_api_endpoint",
    "poll_until_complete",
    "status_sequence_predicate",
]

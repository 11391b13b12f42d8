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

import importlib.metadata


def get_version() -> str:
    try:
        return importlib.metadata.version(__package__)
    except importlib.metadata.PackageNotFoundError:
        return "unknown"


__version__: str = get_version()


import docapi.constants  # noqa: E402
import docapi.cursors  # noqa: E402
import docapi.operations  # noqa: F401, E402
from docapi.admin import (  # noqa: E402
    AstraDBAdmin,
    AstraDBDatabaseAdmin,
    DataAPIDatabaseAdmin,
)
from docapi.client import DataAPIClient  # noqa: E402
from docapi.data.collection import AsyncCollection  # noqa: E402

# A circular-import issue requires this to happen at the end of this module:
from docapi.data.database import AsyncDatabase  # noqa: E402

__all__ = [
    "AstraDBAdmin",
    "AstraDBDatabaseAdmin",
    "AsyncCollection",
    "AsyncDatabase",
    "DataAPIClient",
    "DataAPIDatabaseAdmin",
    "__version__",
]

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

import warnings
from typing import TypeVar

from deprecation import DeprecatedWarning

from docapi import __version__

T = TypeVar("T")

DEPRECATED_ALIAS_REMOVAL_VERSION = "2.0.0"


def check_deprecated_alias(
    new_value: T | None,
    deprecated_value: T | None,
    *,
    new_name: str,
    deprecated_name: str,
) -> T | None:
    """
    Reconcile a parameter with its deprecated alias.

    A deprecation warning is issued whenever the alias is used; passing both
    is an error. The returned value is the one to use for the parameter.
    """

    if deprecated_value is None:
        return new_value
    warnings.warn(
        DeprecatedWarning(
            f"Parameter '{deprecated_name}'",
            deprecated_in=__version__,
            removed_in=DEPRECATED_ALIAS_REMOVAL_VERSION,
            details=f"Please use '{new_name}' instead.",
        ),
        stacklevel=3,
    )
    if new_value is not None:
        raise ValueError(
            f"Parameters `{new_name}` and `{deprecated_name}` (a deprecated alias "
            "for the former) cannot be passed at the same time."
        )
    return deprecated_value

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

from enum import Enum
from typing import TypeVar

T = TypeVar("T", bound="StrEnum")


class StrEnum(str, Enum):
    """
    A string-valued Enum whose members compare equal to their values
    and which can be built leniently from user-supplied strings.
    """

    def __str__(self) -> str:
        return str(self.value)

    @classmethod
    def _lookup(cls: type[T], value: str) -> T | None:
        u_value = value.upper()
        for member in cls:
            if member.name.upper() == u_value or member.value.upper() == u_value:
                return member
        return None

    @classmethod
    def coerce(cls: type[T], value: str | T) -> T:
        """
        Accept either a member of the enum or a string matching
        (case-insensitively) the name or the value of a member.

        Raises:
            ValueError: if no member matches the provided string.
        """
        if isinstance(value, cls):
            return value
        if isinstance(value, str):
            member = cls._lookup(value)
            if member is not None:
                return member
        raise ValueError(
            f"Invalid value '{value}' for {cls.__name__}. "
            f"Allowed values are: {[e.value for e in cls]}"
        )

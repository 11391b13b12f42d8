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

import base64
from abc import ABC, abstractmethod
from typing import Any

from typing_extensions import override

from docapi.settings.defaults import (
    FIXED_SECRET_PLACEHOLDER,
    SECRETS_REDACT_CHAR,
    SECRETS_REDACT_ENDING,
    SECRETS_REDACT_ENDING_LENGTH,
)
from docapi.utils.unset import _UNSET, UnsetType


def coerce_token_provider(token: str | TokenProvider | None) -> TokenProvider:
    if isinstance(token, TokenProvider):
        return token
    return StaticTokenProvider(token)


def coerce_possible_token_provider(
    token: str | TokenProvider | None | UnsetType,
) -> TokenProvider | UnsetType:
    if isinstance(token, UnsetType):
        return _UNSET
    return coerce_token_provider(token)


def _redact_secret(secret: str, max_length: int, hide_if_short: bool = True) -> str:
    """
    Shorten a secret string for display, ending it with an ellipsis.

    Secrets that, with the ellipsis, fit into `max_length` are either masked
    entirely (`hide_if_short=True`) or returned unchanged.
    """
    if len(secret) + SECRETS_REDACT_ENDING_LENGTH > max_length:
        return (
            secret[: max_length - SECRETS_REDACT_ENDING_LENGTH] + SECRETS_REDACT_ENDING
        )
    if hide_if_short:
        return SECRETS_REDACT_CHAR * len(secret)
    return secret


class TokenProvider(ABC):
    """
    Abstract base class for a token provider, i.e. a source of strings to use
    as authentication token in the requests.

    The string representation of a provider is redacted and must never be
    used as token: `get_token` is the only source of the actual token.

    Two providers are equal if they currently yield the same token.
    """

    def __eq__(self, other: Any) -> bool:
        if isinstance(other, TokenProvider):
            return self.get_token() == other.get_token()
        return False

    @abstractmethod
    def __repr__(self) -> str: ...

    def __bool__(self) -> bool:
        return self.get_token() is not None

    @abstractmethod
    def get_token(self) -> str | None:
        """The token to use in the next request, or None for no token."""
        ...


class StaticTokenProvider(TokenProvider):
    """
    A provider wrapping a fixed token string (or None).

    Example:
        >>> from docapi.authentication import StaticTokenProvider
        >>> token_provider = StaticTokenProvider("AstraCS:xyz...")
    """

    def __init__(self, token: str | None) -> None:
        self.token = token

    @override
    def __repr__(self) -> str:
        if self.token is None:
            return "(none)"
        return f"{self.__class__.__name__}({_redact_secret(self.token, 15)})"

    @override
    def get_token(self) -> str | None:
        return self.token


class UsernamePasswordTokenProvider(TokenProvider):
    """
    A provider for the username/password authentication of self-deployed
    backends (such as HCD or DSE): the token is "Cassandra:" followed by the
    base64-encoded username and password, separated by a colon.

    Args:
        username: the username for accessing the database.
        password: the corresponding password.
    """

    PREFIX = "Cassandra"

    def __init__(self, username: str, password: str) -> None:
        self.username = username
        self.password = password
        self.token = ":".join(
            [self.PREFIX, self._b64(self.username), self._b64(self.password)]
        )

    @override
    def __repr__(self) -> str:
        return (
            f"{self.__class__.__name__}(username={_redact_secret(self.username, 6)}, "
            f"password={FIXED_SECRET_PLACEHOLDER})"
        )

    @staticmethod
    def _b64(cleartext: str) -> str:
        return base64.b64encode(cleartext.encode()).decode()

    @override
    def get_token(self) -> str:
        return self.token

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
from typing import Any


@dataclass
class DataAPIErrorDescriptor:
    """
    A single error, as found in the "errors" list of a Data API response.

    Such errors accompany HTTP-2xx responses ("soft failures") and may come
    alongside partial successes, e.g. an insertMany writing most of a chunk
    and refusing a couple of duplicate documents.

    Attributes:
        error_code: the "errorCode" of the error, if any.
        message: the "message" of the error, if any.
        title: the "title" of the error, if any.
        family: the "family" of the error, if any.
        scope: the "scope" of the error, if any.
        id: the "id" of the error, if any.
        attributes: a dict with any other key-value pair in the error.
    """

    title: str | None
    error_code: str | None
    message: str | None
    family: str | None
    scope: str | None
    id: str | None
    attributes: dict[str, Any]

    _field_map = {
        "title": "title",
        "errorCode": "error_code",
        "message": "message",
        "family": "family",
        "scope": "scope",
        "id": "id",
    }

    def __init__(self, error_dict: dict[str, Any] | str) -> None:
        _error_dict: dict[str, Any]
        if isinstance(error_dict, str):
            _error_dict = {"message": error_dict}
        else:
            _error_dict = error_dict
        for api_name, attr_name in self._field_map.items():
            setattr(self, attr_name, _error_dict.get(api_name))
        self.attributes = {
            k: v for k, v in _error_dict.items() if k not in self._field_map
        }

    def __repr__(self) -> str:
        pieces = [
            f"{attr_name}={getattr(self, attr_name).__repr__()}"
            for attr_name in self._field_map.values()
            if getattr(self, attr_name)
        ]
        if self.attributes:
            pieces.append(f"attributes={self.attributes.__repr__()}")
        return f"{self.__class__.__name__}({', '.join(pieces)})"

    def __str__(self) -> str:
        return self.summary()

    def summary(self) -> str:
        """
        A short human-readable description of the error, built from
        whichever of title, message and error code are available.
        """
        text_parts = [part for part in (self.title, self.message) if part]
        text = ": ".join(text_parts)
        if self.error_code:
            return f"{text} ({self.error_code})" if text else self.error_code
        return text


@dataclass
class DataAPIWarningDescriptor(DataAPIErrorDescriptor):
    """
    A single warning, as found in the "status.warnings" list of a Data API
    response. Warnings never make a request fail: they are logged and
    dispatched to the event observers.

    Attributes: same as for DataAPIErrorDescriptor.
    """

    def __init__(self, error_dict: dict[str, Any] | str) -> None:
        DataAPIErrorDescriptor.__init__(self, error_dict=error_dict)


@dataclass
class DataAPIDetailedErrorDescriptor:
    """
    The full context of one failed request within an operation that may span
    several requests, such as a chunked insert_many or a bulk write.

    Attributes:
        error_descriptors: the DataAPIErrorDescriptor objects for the errors
            returned by this request.
        command: the payload sent to the API.
        raw_response: the response received from the API, as a dict.
    """

    error_descriptors: list[DataAPIErrorDescriptor]
    command: dict[str, Any] | None
    raw_response: dict[str, Any]

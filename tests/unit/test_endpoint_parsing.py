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

import pytest

from docapi.admin import build_api_endpoint, parse_api_endpoint

DB_ID = "01234567-89ab-cdef-0123-456789abcdef"


@pytest.mark.describe("should parse a production endpoint")
def test_parse_prod_endpoint() -> None:
    parsed = parse_api_endpoint(f"https://{DB_ID}-us-east1.apps.astra.datastax.com")

    assert parsed is not None
    assert parsed.database_id == DB_ID
    assert parsed.region == "us-east1"
    assert parsed.environment == "prod"


@pytest.mark.describe("should parse a dev and a test endpoint")
def test_parse_dev_test_endpoints() -> None:
    parsed_dev = parse_api_endpoint(
        f"https://{DB_ID}-europe-west4.apps.astra-dev.datastax.com"
    )
    parsed_test = parse_api_endpoint(
        f"https://{DB_ID}-us-west-2.apps.astra-test.datastax.com/"
    )

    assert parsed_dev is not None
    assert parsed_dev.region == "europe-west4"
    assert parsed_dev.environment == "dev"
    assert parsed_test is not None
    assert parsed_test.region == "us-west-2"
    assert parsed_test.environment == "test"


@pytest.mark.describe("should fail to parse a non-Astra endpoint")
def test_fail_parse_non_astra_endpoint() -> None:
    assert parse_api_endpoint("http://127.0.0.1:8181") is None
    assert parse_api_endpoint("https://not-a-uuid-us-east1.apps.astra.datastax.com") is None


@pytest.mark.describe("should build endpoints back from their parts")
def test_build_endpoint() -> None:
    for environment, region in (("prod", "us-east1"), ("dev", "eu-west1")):
        endpoint = build_api_endpoint(
            environment=environment, database_id=DB_ID, region=region
        )
        parsed = parse_api_endpoint(endpoint)
        assert parsed is not None
        assert (parsed.database_id, parsed.region, parsed.environment) == (
            DB_ID,
            region,
            environment,
        )

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

import time

import pytest

from docapi.exceptions import (
    DataAPITimeoutException,
    DevOpsAPITimeoutException,
    MultiCallTimeoutManager,
)


class TestTimeouts:
    @pytest.mark.describe("test MultiCallTimeoutManager")
    def test_multicalltimeoutmanager(self) -> None:
        mgr_n = MultiCallTimeoutManager(overall_timeout_ms=None)
        assert mgr_n.remaining_timeout().request_ms is None
        time.sleep(0.2)
        assert mgr_n.remaining_timeout().request_ms is None

        mgr_1 = MultiCallTimeoutManager(overall_timeout_ms=500)
        crt_1 = mgr_1.remaining_timeout().request_ms
        assert crt_1 is not None
        time.sleep(0.3)
        crt_2 = mgr_1.remaining_timeout().request_ms
        assert crt_2 is not None
        assert crt_2 < crt_1
        time.sleep(0.3)
        with pytest.raises(DataAPITimeoutException):
            mgr_1.remaining_timeout().request_ms

    @pytest.mark.describe("test MultiCallTimeoutManager DevOps")
    def test_multicalltimeoutmanager_devops(self) -> None:
        mgr_n = MultiCallTimeoutManager(overall_timeout_ms=None, dev_ops_api=True)
        assert mgr_n.remaining_timeout().request_ms is None

        mgr_1 = MultiCallTimeoutManager(overall_timeout_ms=300, dev_ops_api=True)
        assert mgr_1.remaining_timeout().request_ms is not None
        time.sleep(0.4)
        with pytest.raises(DevOpsAPITimeoutException):
            mgr_1.remaining_timeout().request_ms

    @pytest.mark.describe("test MultiCallTimeoutManager with per-request caps")
    def test_multicalltimeoutmanager_caps(self) -> None:
        mgr_n = MultiCallTimeoutManager(overall_timeout_ms=None)
        capped = mgr_n.remaining_timeout(
            cap_time_ms=200, cap_timeout_label="request_timeout_ms"
        )
        assert capped.request_ms == 200
        assert capped.label == "request_timeout_ms"
        # a zero cap means no cap
        assert mgr_n.remaining_timeout(cap_time_ms=0).request_ms is None

        mgr_1 = MultiCallTimeoutManager(
            overall_timeout_ms=10000, timeout_label="general_method_timeout_ms"
        )
        assert mgr_1.remaining_timeout(cap_time_ms=200).request_ms == 200
        uncapped = mgr_1.remaining_timeout(cap_time_ms=60000)
        assert uncapped.request_ms is not None
        assert uncapped.request_ms <= 10000
        assert uncapped.label == "general_method_timeout_ms"

    @pytest.mark.describe("test MultiCallTimeoutManager waiting checks")
    def test_multicalltimeoutmanager_ensure_time_for(self) -> None:
        MultiCallTimeoutManager(overall_timeout_ms=None).ensure_time_for(10**9)

        mgr_1 = MultiCallTimeoutManager(overall_timeout_ms=1000)
        mgr_1.ensure_time_for(100)
        with pytest.raises(DataAPITimeoutException) as exc_info:
            mgr_1.ensure_time_for(5000)
        assert exc_info.value.timeout_type == "generic"
        assert mgr_1.elapsed_ms() >= 0

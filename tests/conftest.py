from __future__ import annotations

from unittest.mock import AsyncMock

import pytest

from fakes import FakeSink, FakeSource


@pytest.fixture
def source() -> FakeSource:
    return FakeSource()


@pytest.fixture
def sink() -> FakeSink:
    return FakeSink()


@pytest.fixture
def mock_rpc():
    rpc = AsyncMock()
    rpc.get_logs = AsyncMock(return_value=[])
    rpc.latest_block = AsyncMock(return_value=1_500)
    rpc.block_timestamp = AsyncMock(return_value=1_700_000_000)
    rpc.aclose = AsyncMock()
    return rpc

"""
Shared fixtures for the dashboard service tests
"""

import itertools
from datetime import datetime, timedelta
from unittest.mock import AsyncMock

import pytest

from dashboard_service.services.data_fetcher import MockAnalyticsFetcher
from dashboard_service.services.dashboard_service import DashboardService
from dashboard_service.services.persistence import DashboardRepository
from dashboard_service.storage import InMemoryKeyValueStore


class FlakyStore(InMemoryKeyValueStore):
    """In-memory store whose reads and writes can be made to fail"""

    def __init__(self):
        super().__init__()
        self.fail_writes = False
        self.fail_reads = False
        self.fail_write_keys = set()

    async def get(self, key):
        if self.fail_reads:
            raise ConnectionError("storage unavailable")
        return await super().get(key)

    async def set(self, key, value):
        if self.fail_writes or key in self.fail_write_keys:
            raise ConnectionError("quota exceeded")
        await super().set(key, value)


@pytest.fixture
def clock():
    """Strictly increasing, sortable timestamps one second apart"""
    base = datetime(2024, 1, 1)
    counter = itertools.count()
    return lambda: (base + timedelta(seconds=next(counter))).isoformat() + "Z"


@pytest.fixture
def id_generator():
    counter = itertools.count(1)
    return lambda: f"dashboard-{next(counter)}"


@pytest.fixture
def sleep():
    """Awaitable stand-in for asyncio.sleep that returns immediately"""
    return AsyncMock(return_value=None)


@pytest.fixture
def store():
    return FlakyStore()


@pytest.fixture
def repository(store):
    return DashboardRepository(store)


@pytest.fixture
def service(store, clock, id_generator, sleep):
    return DashboardService(
        store=store,
        fetcher=MockAnalyticsFetcher(),
        owner_id="user-1",
        save_delay=0.5,
        clock=clock,
        id_generator=id_generator,
        sleep=sleep,
    )

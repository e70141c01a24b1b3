"""
pytest configuration for mongo-query-schema tests.

Isolates settings from the developer's environment and provides in-memory
document sources.
"""

import logging
from typing import Any

import pytest

from mongo_query_schema.config import ENV_OVERRIDES, clear_settings_cache
from mongo_query_schema.datasource import Cursor, DataSource, InMemoryDataSource


class CountingCursor(Cursor):
    """Cursor over ``total`` generated documents that records every call."""

    def __init__(self, total: int):
        self.total = total
        self.has_next_calls = 0
        self.next_calls = 0
        self.closed = False

    async def has_next(self) -> bool:
        self.has_next_calls += 1
        return self.next_calls < self.total

    async def next(self) -> dict[str, Any]:
        if self.next_calls >= self.total:
            raise AssertionError("next() called on an exhausted cursor")
        self.next_calls += 1
        return {"_id": self.next_calls, "n": self.next_calls}

    async def close(self) -> None:
        self.closed = True


class SingleCursorSource(DataSource):
    """Data source serving one pre-built cursor for any collection."""

    def __init__(self, cursor: Cursor, names: list[str] | None = None):
        self.cursor = cursor
        self.names = names or ["items"]
        self.opened: list[str] = []

    async def list_collection_names(self) -> list[str]:
        return list(self.names)

    async def open_cursor(self, collection_name: str) -> Cursor:
        self.opened.append(collection_name)
        return self.cursor


@pytest.fixture(autouse=True)
def _isolate_settings(monkeypatch):
    """Drop settings overrides from the environment and reset the settings cache."""
    for env_var in ENV_OVERRIDES:
        monkeypatch.delenv(env_var, raising=False)
    monkeypatch.delenv("MONGO_URI", raising=False)
    monkeypatch.setattr("mongo_query_schema.config.load_dotenv", lambda **_: False)
    clear_settings_cache()
    yield
    clear_settings_cache()


@pytest.fixture(autouse=True)
def _restore_root_logger():
    """Put the root logger back after tests that call setup_logging."""
    root = logging.getLogger()
    handlers, level = list(root.handlers), root.level
    yield
    for handler in root.handlers:
        if handler not in handlers:
            handler.close()
    root.handlers[:] = handlers
    root.setLevel(level)


@pytest.fixture
def user_document() -> dict[str, Any]:
    return {"_id": "a", "name": "Bob", "age": 30, "tags": ["x", "y"]}


@pytest.fixture
def users_source(user_document) -> InMemoryDataSource:
    return InMemoryDataSource({"users": [user_document]})


@pytest.fixture
def shop_source() -> InMemoryDataSource:
    return InMemoryDataSource(
        {
            "orders": [
                {
                    "_id": 1,
                    "total": 12.5,
                    "paid": True,
                    "customer": {"_id": 7, "name": "Ann", "address": {"city": "Oslo"}},
                    "items": [{"sku": "A1", "qty": 2}, {"sku": "B2", "qty": 1}],
                    "location": {"type": "Point", "coordinates": [10.7, 59.9]},
                },
            ],
            "products": [{"_id": "A1", "price": 3}],
            "empty": [],
        }
    )


@pytest.fixture
def counting_cursor() -> CountingCursor:
    return CountingCursor(total=1000)


@pytest.fixture
def make_cursor_source():
    """Factory wrapping a cursor in a data source."""

    def factory(cursor: Cursor, names: list[str] | None = None) -> SingleCursorSource:
        return SingleCursorSource(cursor, names)

    return factory


@pytest.fixture
def make_counting_cursor():
    """Factory for counting cursors of a given size."""
    return CountingCursor

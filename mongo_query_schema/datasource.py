"""
Document sources the schema service samples from.

Provides a small async interface (list collections, open a cursor) with a
MongoDB implementation on PyMongo's asyncio client and an in-memory one
that can also be loaded from JSON/JSONL files.
"""

import json
from abc import ABC, abstractmethod
from collections.abc import Iterable
from pathlib import Path
from typing import Any

from pymongo import AsyncMongoClient
from pymongo.errors import PyMongoError

from mongo_query_schema.config import get_mongo_connection_string, get_settings
from mongo_query_schema.errors import DataSourceUnavailable, SchemaResolutionError
from mongo_query_schema.logging_config import get_logger

logger = get_logger(__name__)


class Cursor(ABC):
    """Forward-only handle over the documents of one collection."""

    @abstractmethod
    async def has_next(self) -> bool:
        """Return True if another document can be fetched."""
        pass

    @abstractmethod
    async def next(self) -> dict[str, Any]:
        """Fetch the next document. Not valid once ``has_next`` returned False."""
        pass

    async def close(self) -> None:
        """Release server-side resources held by the cursor."""


class DataSource(ABC):
    """A database whose collections can be enumerated and read."""

    @abstractmethod
    async def list_collection_names(self) -> list[str]:
        """List collection names in the source's native order.

        Raises:
            DataSourceUnavailable: If the source cannot be reached
        """
        pass

    @abstractmethod
    async def open_cursor(self, collection_name: str) -> Cursor:
        """Open a cursor over every document of a collection.

        Raises:
            SchemaResolutionError: If the collection cannot be opened
        """
        pass


class MongoCursor(Cursor):
    """Adapts a PyMongo ``AsyncCursor`` to ``has_next``/``next``.

    Holds at most one prefetched document.
    """

    def __init__(self, cursor: Any):
        self._cursor = cursor
        self._buffer: list[dict[str, Any]] = []
        self._exhausted = False

    async def has_next(self) -> bool:
        if self._buffer:
            return True
        if self._exhausted:
            return False
        try:
            self._buffer.append(await self._cursor.next())
        except StopAsyncIteration:
            self._exhausted = True
            return False
        return True

    async def next(self) -> dict[str, Any]:
        if not await self.has_next():
            raise RuntimeError("Cursor is exhausted")
        return self._buffer.pop()

    async def close(self) -> None:
        await self._cursor.close()


class MongoDataSource(DataSource):
    """MongoDB database read through ``pymongo.AsyncMongoClient``."""

    def __init__(
        self,
        client: AsyncMongoClient | str,
        database_name: str,
        server_selection_timeout_ms: int | None = None,
    ):
        if isinstance(client, str):
            options = {}
            if server_selection_timeout_ms is not None:
                options["serverSelectionTimeoutMS"] = server_selection_timeout_ms
            client = AsyncMongoClient(client, **options)
        self._client = client
        self.database_name = database_name
        self._db = client[database_name]

    @classmethod
    def from_env(cls, database_name: str | None = None) -> "MongoDataSource":
        """Create a data source from the configured connection string.

        Raises:
            DataSourceUnavailable: If no connection string is configured
        """
        settings = get_settings().mongo
        connection_string = get_mongo_connection_string()
        if not connection_string:
            raise DataSourceUnavailable(
                f"No MongoDB connection string; set {settings.connection_env_var}"
            )
        return cls(
            connection_string,
            database_name or settings.database_name,
            server_selection_timeout_ms=settings.server_selection_timeout_ms,
        )

    async def list_collection_names(self) -> list[str]:
        try:
            names = await self._db.list_collection_names()
        except PyMongoError as e:
            raise DataSourceUnavailable(
                f"Failed to list collections in {self.database_name}: {e}"
            ) from e
        logger.debug(f"Found {len(names)} collections in {self.database_name}")
        return list(names)

    async def open_cursor(self, collection_name: str) -> Cursor:
        try:
            existing = await self._db.list_collection_names(
                filter={"name": collection_name}
            )
        except PyMongoError as e:
            raise SchemaResolutionError(
                f"Failed to open collection {self.database_name}.{collection_name}: {e}"
            ) from e

        if collection_name not in existing:
            raise SchemaResolutionError(
                f"Collection not found: {self.database_name}.{collection_name}"
            )
        return MongoCursor(self._db[collection_name].find())

    async def close(self) -> None:
        """Close the underlying client."""
        await self._client.close()


class InMemoryCursor(Cursor):
    """Cursor over a list of documents."""

    def __init__(self, documents: Iterable[dict[str, Any]]):
        self._documents = list(documents)
        self._position = 0

    async def has_next(self) -> bool:
        return self._position < len(self._documents)

    async def next(self) -> dict[str, Any]:
        if not await self.has_next():
            raise RuntimeError("Cursor is exhausted")
        document = self._documents[self._position]
        self._position += 1
        return document


class InMemoryDataSource(DataSource):
    """Collections held in memory, keyed by name in insertion order."""

    def __init__(self, collections: dict[str, list[dict[str, Any]]] | None = None):
        self.collections: dict[str, list[dict[str, Any]]] = dict(collections or {})

    @classmethod
    def from_directory(cls, path: str | Path) -> "InMemoryDataSource":
        """Load one collection per ``<name>.json`` or ``<name>.jsonl`` file.

        A ``.json`` file holds an array of documents or a single document;
        a ``.jsonl`` file holds one document per line.
        """
        directory = Path(path)
        if not directory.is_dir():
            raise DataSourceUnavailable(f"Data directory not found: {directory}")

        collections: dict[str, list[dict[str, Any]]] = {}
        for file_path in sorted(directory.iterdir()):
            if file_path.suffix not in (".json", ".jsonl"):
                continue
            try:
                collections[file_path.stem] = _load_documents(file_path)
            except json.JSONDecodeError as e:
                raise DataSourceUnavailable(f"Invalid JSON in {file_path}: {e}") from e

        logger.info(f"Loaded {len(collections)} collections from {directory}")
        return cls(collections)

    async def list_collection_names(self) -> list[str]:
        return list(self.collections)

    async def open_cursor(self, collection_name: str) -> Cursor:
        if collection_name not in self.collections:
            raise SchemaResolutionError(f"Collection not found: {collection_name}")
        return InMemoryCursor(self.collections[collection_name])


def _load_documents(file_path: Path) -> list[dict[str, Any]]:
    with open(file_path, encoding="utf-8") as f:
        if file_path.suffix == ".jsonl":
            return [json.loads(line) for line in f if line.strip()]
        data = json.load(f)
    return data if isinstance(data, list) else [data]

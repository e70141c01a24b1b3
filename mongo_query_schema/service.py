"""Schema service: registers collection schemas and resolves them by URI."""

import json

from mongo_query_schema.config import get_settings
from mongo_query_schema.datasource import DataSource
from mongo_query_schema.errors import DataSourceUnavailable, SchemaResolutionError
from mongo_query_schema.inference import (
    EXCLUDED_ROOT_FIELDS,
    QUERY_DOCUMENT_URI,
    QUERY_SCHEMA_PREFIX,
    build_query_schema,
    sample_documents,
)
from mongo_query_schema.logging_config import get_logger
from mongo_query_schema.models import SchemaConfiguration

logger = get_logger(__name__)


class SchemaService:
    """Serves inferred query schemas for the collections of registered data sources.

    The most recently registered data source backs every registered URI;
    registering another source replaces it. To read several sources side
    by side, pass the data source explicitly to ``resolve_schema``.
    """

    def __init__(
        self, sample_size: int | None = None, cache_schemas: bool | None = None
    ) -> None:
        """Initialize the schema service.

        Args:
            sample_size: Documents sampled per collection (default from settings)
            cache_schemas: Cache resolved schema text by URI (default from settings)
        """
        settings = get_settings().inference
        self.sample_size = (
            sample_size if sample_size is not None else settings.sample_size
        )
        self.cache_schemas = (
            cache_schemas if cache_schemas is not None else settings.cache_schemas
        )
        self._sources: dict[str, DataSource] = {}
        self._cache: dict[str, str] = {}
        logger.debug(
            f"Initialized SchemaService (sample_size={self.sample_size}, "
            f"cache={self.cache_schemas})"
        )

    @staticmethod
    def query_collection_schema(collection_name: str) -> str:
        """Schema URI of a collection's query documents."""
        return QUERY_SCHEMA_PREFIX + collection_name

    @staticmethod
    def query_document_uri() -> str:
        """URI of the query document the collection schemas apply to."""
        return QUERY_DOCUMENT_URI

    @staticmethod
    def collection_name_from_uri(uri: str) -> str | None:
        """Collection name encoded in a schema URI, or None if not ours."""
        if not uri.startswith(QUERY_SCHEMA_PREFIX):
            return None
        return uri[len(QUERY_SCHEMA_PREFIX) :]

    @property
    def registered_uris(self) -> list[str]:
        return list(self._sources)

    async def register_collections(
        self, data_source: DataSource
    ) -> list[SchemaConfiguration]:
        """Contribute one schema per collection of ``data_source``.

        Args:
            data_source: Source whose collections are enumerated

        Returns:
            Schema configurations in the source's collection listing order

        Raises:
            DataSourceUnavailable: If the collections cannot be listed
        """
        try:
            names = await data_source.list_collection_names()
        except DataSourceUnavailable:
            raise
        except Exception as e:
            raise DataSourceUnavailable(f"Failed to list collections: {e}") from e

        schemas = [
            SchemaConfiguration(
                uri=self.query_collection_schema(name),
                file_match=[self.query_document_uri()],
            )
            for name in names
        ]
        # The new source replaces every earlier binding
        self._sources = {schema.uri: data_source for schema in schemas}
        self._cache.clear()

        logger.info(f"Registered query schemas for {len(schemas)} collections")
        return schemas

    async def resolve_schema(
        self, uri: str, data_source: DataSource | None = None
    ) -> str | None:
        """Resolve a schema URI to JSON Schema text.

        Args:
            uri: Schema URI, e.g. ``mongo://query/users``
            data_source: Source to sample; defaults to the one the URI was
                registered from. An explicit source bypasses the cache.

        Returns:
            Serialized schema, or None if the URI is not a collection schema URI

        Raises:
            SchemaResolutionError: If the collection cannot be read
        """
        collection_name = self.collection_name_from_uri(uri)
        if collection_name is None:
            return None

        use_cache = self.cache_schemas and data_source is None
        if use_cache and uri in self._cache:
            logger.debug(f"Schema cache hit for {uri}")
            return self._cache[uri]

        source = data_source or self._sources.get(uri)
        if source is None:
            raise SchemaResolutionError(f"No data source registered for {uri}")

        documents = await self._sample_collection(source, collection_name)
        schema_text = json.dumps(
            build_query_schema(documents, uri, EXCLUDED_ROOT_FIELDS)
        )
        logger.info(
            f"Resolved schema for {uri} from {len(documents)} sampled documents"
        )

        if use_cache:
            self._cache[uri] = schema_text
        return schema_text

    def invalidate(self, uri: str | None = None) -> None:
        """Drop the cached schema for ``uri``, or every cached schema."""
        if uri is None:
            self._cache.clear()
        else:
            self._cache.pop(uri, None)

    async def _sample_collection(
        self, source: DataSource, collection_name: str
    ) -> list:
        try:
            cursor = await source.open_cursor(collection_name)
            try:
                return await sample_documents(cursor, self.sample_size)
            finally:
                await cursor.close()
        except SchemaResolutionError:
            raise
        except Exception as e:
            raise SchemaResolutionError(
                f"Failed to read collection {collection_name}: {e}"
            ) from e

"""
Query schema inference from sampled MongoDB documents.

Each sampled document is folded into one accumulator schema keyed by dotted
field path. A path seen again is overwritten, so the recorded type is the
one from the last document (or array element) that carried the path.
"""

from collections.abc import Iterable, Mapping
from decimal import Decimal
from typing import Any

from bson import Decimal128

from mongo_query_schema.datasource import Cursor
from mongo_query_schema.logging_config import get_logger
from mongo_query_schema.operators import (
    JSONSchema,
    global_operator_properties,
    logical_operator_properties,
    operator_properties,
)

logger = get_logger(__name__)

QUERY_SCHEMA_PREFIX = "mongo://query/"
QUERY_DOCUMENT_URI = "mongo://query.json"
SAMPLE_SIZE = 10
EXCLUDED_ROOT_FIELDS = ("_id",)


def typeof(value: Any) -> str:
    """Return the JSON Schema type name of a decoded BSON value.

    BSON values without a JSON counterpart (ObjectId, datetime, Binary, ...)
    are written as extended JSON objects in queries, so they report "object".
    """
    if isinstance(value, Mapping):
        return "object"
    if isinstance(value, list | tuple):
        return "array"
    if value is None:
        return "null"
    if isinstance(value, bool):
        return "boolean"
    if isinstance(value, int | float | Decimal | Decimal128):
        return "number"
    if isinstance(value, str):
        return "string"
    return "object"


def fold_document(
    document: Any,
    schema: JSONSchema,
    parent: str | None = None,
    excluded_root_fields: Iterable[str] = EXCLUDED_ROOT_FIELDS,
) -> None:
    """Record every field path of ``document`` in ``schema["properties"]``.

    Args:
        document: Document (or nested value) to walk; non-mappings are ignored
        schema: Accumulator schema with a ``properties`` mapping
        parent: Dotted path of ``document`` (None at the document root)
        excluded_root_fields: Fields skipped at the root only
    """
    if not isinstance(document, Mapping):
        return

    excluded = () if parent is not None else tuple(excluded_root_fields)
    for field, value in document.items():
        if field in excluded:
            continue
        path = field if parent is None else f"{parent}.{field}"
        _fold_property(path, value, schema)


def _fold_property(path: str, value: Any, schema: JSONSchema) -> None:
    value_type = typeof(value)
    schema["properties"][path] = {
        "type": [value_type, "object"],
        "properties": operator_properties(value_type),
    }

    if isinstance(value, Mapping):
        fold_document(value, schema, path)
    elif isinstance(value, list | tuple):
        # Elements share the array's path
        for element in value:
            fold_document(element, schema, path)


def build_query_schema(
    documents: Iterable[Any],
    schema_uri: str,
    excluded_root_fields: Iterable[str] = EXCLUDED_ROOT_FIELDS,
) -> JSONSchema:
    """Build the query schema for a collection from sampled documents.

    Args:
        documents: Sampled documents, folded in order
        schema_uri: URI the schema is served from; ``$or``/``$and``/``$nor``
            clauses reference it recursively
        excluded_root_fields: Root-level fields left out of the schema

    Returns:
        JSON Schema dictionary
    """
    excluded_root_fields = tuple(excluded_root_fields)
    schema: JSONSchema = {"type": "object", "properties": {}}

    count = 0
    for document in documents:
        fold_document(document, schema, excluded_root_fields=excluded_root_fields)
        count += 1

    field_count = len(schema["properties"])
    schema["properties"].update(global_operator_properties())
    schema["properties"].update(logical_operator_properties(schema_uri))

    logger.debug(
        f"Built schema for {schema_uri} from {count} documents ({field_count} fields)"
    )
    return schema


async def sample_documents(
    cursor: Cursor, sample_size: int = SAMPLE_SIZE
) -> list[Any]:
    """Read documents from ``cursor`` until ``sample_size`` or exhaustion.

    Fetches are strictly sequential and ``next`` is never called once
    ``has_next`` has reported exhaustion.
    """
    result: list[Any] = []
    while len(result) < sample_size and await cursor.has_next():
        result.append(await cursor.next())
    return result

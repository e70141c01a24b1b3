"""Exceptions raised by the query schema engine."""


class QuerySchemaError(Exception):
    """Base class for all mongo-query-schema errors."""


class DataSourceUnavailable(QuerySchemaError):
    """Collection names could not be listed (connection lost, auth failure, ...)."""


class SchemaResolutionError(QuerySchemaError):
    """A collection could not be opened or read while resolving its schema."""

"""Mongo Query Schema: infer JSON Schemas for MongoDB queries from sampled documents."""

__version__ = "0.1.0"

from .errors import DataSourceUnavailable, QuerySchemaError, SchemaResolutionError
from .models import SchemaConfiguration
from .service import SchemaService

__all__ = [
    "DataSourceUnavailable",
    "QuerySchemaError",
    "SchemaConfiguration",
    "SchemaResolutionError",
    "SchemaService",
]

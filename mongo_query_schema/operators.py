"""
Query operator catalog injected into every inferred collection schema.

The catalog is a static table built once at import. Lookups always hand
out deep copies so callers may mutate the schemas they receive.
"""

import copy
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any

JSONSchema = dict[str, Any]

# Shape marker: the operand has the same type as the field being queried.
SAME_AS_FIELD = None


@dataclass(frozen=True)
class OperatorSpec:
    """One field-level query operator.

    Attributes:
        name: Operator keyword, e.g. ``$gt``
        description: Hover text shown by the editor
        shape: JSON Schema of the operand, or ``SAME_AS_FIELD``
        applies_to: Field types the operator is offered for (None = all)
    """

    name: str
    description: str
    shape: Mapping[str, Any] | None = SAME_AS_FIELD
    applies_to: frozenset[str] | None = None

    def applies(self, field_type: str) -> bool:
        return self.applies_to is None or field_type in self.applies_to

    def to_schema(self, field_type: str) -> JSONSchema:
        """Render the operand schema for a field of ``field_type``."""
        if self.shape is SAME_AS_FIELD:
            return {"type": field_type, "description": self.description}
        shape = copy.deepcopy(dict(self.shape))
        schema: JSONSchema = {
            "type": shape.pop("type"),
            "description": self.description,
        }
        schema.update(shape)
        return schema


GEOMETRY_SCHEMA: JSONSchema = {
    "type": "object",
    "properties": {
        "type": {"type": "string", "default": "GeoJSON object type"},
        "coordinates": {"type": "array"},
        "crs": {
            "type": "object",
            "properties": {
                "type": {"type": "string"},
                "properties": {"type": "object"},
            },
        },
    },
}

_PROXIMITY_SHAPE: JSONSchema = {
    "type": "object",
    "properties": {
        "$geometry": GEOMETRY_SCHEMA,
        "$maxDistance": {"type": "number"},
        "$minDistance": {"type": "number"},
    },
}

_ARRAY_ONLY = frozenset({"array"})

EXPRESSION_OPERATORS: tuple[OperatorSpec, ...] = (
    # Comparison
    OperatorSpec("$eq", "Matches values that are equal to a specified value"),
    OperatorSpec("$gt", "Matches values that are greater than a specified value"),
    OperatorSpec(
        "$gte", "Matches values that are greater than or equal to a specified value"
    ),
    OperatorSpec("$lt", "Matches values that are less than a specified value"),
    OperatorSpec(
        "$lte", "Matches values that are less than or equal to a specified value"
    ),
    OperatorSpec("$ne", "Matches all values that are not equal to a specified value"),
    OperatorSpec(
        "$in", "Matches any of the values specified in an array", {"type": "array"}
    ),
    OperatorSpec(
        "$nin", "Matches none of the values specified in an array", {"type": "array"}
    ),
    # Element
    OperatorSpec(
        "$exists",
        "Matches documents that have the specified field",
        {"type": "boolean"},
    ),
    OperatorSpec(
        "$type",
        "Selects documents if a field is of the specified type",
        {"type": "string"},
    ),
    # Evaluation
    OperatorSpec(
        "$mod",
        "Performs a modulo operation on the value of a field and selects documents "
        "with a specified result",
        {"type": "array", "maxItems": 2, "default": [2, 0]},
    ),
    OperatorSpec(
        "$regex",
        "Selects documents where values match a specified regular expression",
        {"type": "string"},
    ),
    # Geospatial
    OperatorSpec(
        "$geoWithin",
        "Selects geometries within a bounding GeoJSON geometry. "
        "The 2dsphere and 2d indexes support $geoWithin",
        {
            "type": "object",
            "properties": {
                "$geometry": GEOMETRY_SCHEMA,
                "$box": {"type": "array"},
                "$polygon": {"type": "array"},
                "$center": {"type": "array"},
                "$centerSphere": {"type": "array"},
            },
        },
    ),
    OperatorSpec(
        "$geoIntersects",
        "Selects geometries that intersect with a GeoJSON geometry. "
        "The 2dsphere index supports $geoIntersects",
        {"type": "object", "properties": {"$geometry": GEOMETRY_SCHEMA}},
    ),
    OperatorSpec(
        "$near",
        "Returns geospatial objects in proximity to a point. Requires a geospatial "
        "index. The 2dsphere and 2d indexes support $near",
        _PROXIMITY_SHAPE,
    ),
    OperatorSpec(
        "$nearSphere",
        "Returns geospatial objects in proximity to a point. Requires a geospatial "
        "index. The 2dsphere and 2d indexes support $near",
        _PROXIMITY_SHAPE,
    ),
    # Array
    OperatorSpec(
        "$all",
        "Matches arrays that contain all elements specified in the query",
        {"type": "array"},
        _ARRAY_ONLY,
    ),
    OperatorSpec(
        "$size",
        "Selects documents if the array field is a specified size",
        {"type": "number"},
        _ARRAY_ONLY,
    ),
    # Bitwise
    OperatorSpec(
        "$bitsAllSet",
        "Matches numeric or binary values in which a set of bit positions all "
        "have a value of 1",
        {"type": "array"},
    ),
    OperatorSpec(
        "$bitsAnySet",
        "Matches numeric or binary values in which any bit from a set of bit "
        "positions has a value of 1",
        {"type": "array"},
    ),
    OperatorSpec(
        "$bitsAllClear",
        "Matches numeric or binary values in which a set of bit positions all "
        "have a value of 0",
        {"type": "array"},
    ),
    OperatorSpec(
        "$bitsAnyClear",
        "Matches numeric or binary values in which any bit from a set of bit "
        "positions has a value of 0",
        {"type": "array"},
    ),
)

NOT_DESCRIPTION = (
    "Inverts the effect of a query expression and returns documents that do not "
    "match the query expression"
)

GLOBAL_OPERATORS: JSONSchema = {
    "$text": {
        "type": "object",
        "description": "Performs text search",
        "properties": {
            "$search": {
                "type": "string",
                "description": "A string of terms that MongoDB parses and uses to "
                "query the text index. MongoDB performs a logical OR search of the "
                "terms unless specified as a phrase",
            },
            "$language": {
                "type": "string",
                "description": "Optional. The language that determines the list of "
                "stop words for the search and the rules for the stemmer and "
                "tokenizer. If not specified, the search uses the default language "
                'of the index.\nIf you specify a language value of "none", then the '
                "text search uses simple tokenization with no list of stop words "
                "and no stemming",
            },
            "$caseSensitive": {
                "type": "boolean",
                "description": "Optional. A boolean flag to enable or disable case "
                "sensitive search. Defaults to false; i.e. the search defers to the "
                "case insensitivity of the text index",
            },
            "$diacriticSensitive": {
                "type": "boolean",
                "description": "Optional. A boolean flag to enable or disable "
                "diacritic sensitive search against version 3 text indexes.Defaults "
                "to false; i.e.the search defers to the diacritic insensitivity of "
                "the text index\nText searches against earlier versions of the text "
                "index are inherently diacritic sensitive and cannot be diacritic "
                "insensitive. As such, the $diacriticSensitive option has no effect "
                "with earlier versions of the text index",
            },
        },
        "required": ["$search"],
    },
    "$where": {
        "type": "string",
        "description": "Matches documents that satisfy a JavaScript expression.\n"
        "Use the $where operator to pass either a string containing a JavaScript "
        "expression or a full JavaScript function to the query system",
    },
    "$comment": {
        "type": "string",
        "description": "Adds a comment to a query predicate",
    },
}

LOGICAL_OPERATORS: dict[str, str] = {
    "$or": "Joins query clauses with a logical OR returns all documents that match "
    "the conditions of either clause",
    "$and": "Joins query clauses with a logical AND returns all documents that "
    "match the conditions of both clauses",
    "$nor": "Joins query clauses with a logical NOR returns all documents that "
    "fail to match both clauses",
}


def expression_properties(field_type: str) -> JSONSchema:
    """Operand schemas of every expression operator offered for ``field_type``."""
    return {
        operator.name: operator.to_schema(field_type)
        for operator in EXPRESSION_OPERATORS
        if operator.applies(field_type)
    }


def operator_properties(field_type: str) -> JSONSchema:
    """Build the ``properties`` of a field schema inferred as ``field_type``.

    Every field also accepts ``$not`` (wrapping the same operator set) and
    an unconstrained ``$elemMatch``.
    """
    properties = expression_properties(field_type)
    properties["$not"] = {
        "type": "object",
        "description": NOT_DESCRIPTION,
        "properties": expression_properties(field_type),
    }
    properties["$elemMatch"] = {"type": "object"}
    return properties


def global_operator_properties() -> JSONSchema:
    """Document-level operators: ``$text``, ``$where``, ``$comment``."""
    return copy.deepcopy(GLOBAL_OPERATORS)


def logical_operator_properties(schema_uri: str) -> JSONSchema:
    """``$or``/``$and``/``$nor``: arrays of clauses validated by ``schema_uri``."""
    return {
        name: {
            "type": "array",
            "description": description,
            "items": {"$ref": schema_uri},
        }
        for name, description in LOGICAL_OPERATORS.items()
    }

"""Tests for document folding, schema assembly and sampling."""

import json
from datetime import datetime
from decimal import Decimal

import pytest
from bson import Decimal128, Int64, ObjectId

from mongo_query_schema.inference import (
    SAMPLE_SIZE,
    build_query_schema,
    fold_document,
    sample_documents,
    typeof,
)

DOCUMENT_OPERATORS = {"$text", "$where", "$comment", "$or", "$and", "$nor"}
URI = "mongo://query/items"


def field_paths(schema):
    return set(schema["properties"]) - DOCUMENT_OPERATORS


class TestTypeOf:
    """Test runtime type detection."""

    def test_json_types(self):
        assert typeof({"a": 1}) == "object"
        assert typeof([1, 2]) == "array"
        assert typeof((1, 2)) == "array"
        assert typeof("hello") == "string"
        assert typeof(None) == "null"

    def test_booleans_are_not_numbers(self):
        assert typeof(True) == "boolean"
        assert typeof(False) == "boolean"

    def test_numbers(self):
        assert typeof(0) == "number"
        assert typeof(-42) == "number"
        assert typeof(3.14) == "number"
        assert typeof(Decimal("1.5")) == "number"
        assert typeof(Int64(7)) == "number"
        assert typeof(Decimal128("2.5")) == "number"

    def test_opaque_bson_values_are_objects(self):
        assert typeof(ObjectId()) == "object"
        assert typeof(datetime(2024, 1, 1)) == "object"


class TestFoldDocument:
    """Test folding single documents into the accumulator."""

    def setup_method(self):
        self.schema = {"type": "object", "properties": {}}

    def test_flat_document(self):
        fold_document({"name": "Bob", "age": 30}, self.schema)

        assert set(self.schema["properties"]) == {"name", "age"}
        assert self.schema["properties"]["name"]["type"] == ["string", "object"]
        assert self.schema["properties"]["age"]["type"] == ["number", "object"]

    def test_root_id_excluded_nested_id_kept(self):
        """Only the root _id is skipped."""
        fold_document({"_id": 1, "profile": {"_id": 2}}, self.schema)

        assert "_id" not in self.schema["properties"]
        assert "profile" in self.schema["properties"]
        assert self.schema["properties"]["profile._id"]["type"] == ["number", "object"]

    def test_empty_field_name_is_not_the_root(self):
        """Values under an empty-named field keep their _id and a dotted path."""
        fold_document({"a": "root", "": {"_id": 5, "a": 1}}, self.schema)

        assert set(self.schema["properties"]) == {"a", "", "._id", ".a"}
        assert self.schema["properties"]["a"]["type"] == ["string", "object"]
        assert self.schema["properties"][".a"]["type"] == ["number", "object"]

    def test_nested_paths_are_dotted(self):
        fold_document({"address": {"geo": {"city": "Oslo"}}}, self.schema)

        assert set(self.schema["properties"]) == {
            "address",
            "address.geo",
            "address.geo.city",
        }
        assert self.schema["properties"]["address.geo"]["type"] == ["object", "object"]

    def test_array_elements_share_path(self):
        """Array elements are folded at the array's path, last element wins."""
        fold_document({"tags": [{"x": 1}, {"x": "s"}]}, self.schema)

        assert set(self.schema["properties"]) == {"tags", "tags.x"}
        assert self.schema["properties"]["tags"]["type"] == ["array", "object"]
        assert self.schema["properties"]["tags.x"]["type"] == ["string", "object"]

    def test_scalar_array_elements_add_no_paths(self):
        fold_document({"tags": ["x", "y"], "matrix": [[1, 2], [3]]}, self.schema)

        assert set(self.schema["properties"]) == {"tags", "matrix"}

    def test_field_node_carries_operators(self):
        fold_document({"tags": ["x"], "name": "Bob"}, self.schema)

        tags = self.schema["properties"]["tags"]["properties"]
        name = self.schema["properties"]["name"]["properties"]
        assert "$all" in tags and "$size" in tags
        assert "$all" not in name and "$size" not in name
        assert name["$eq"]["type"] == "string"

    def test_null_and_opaque_values(self):
        fold_document({"deleted": None, "created": datetime(2024, 1, 1)}, self.schema)

        assert self.schema["properties"]["deleted"]["type"] == ["null", "object"]
        assert self.schema["properties"]["created"]["type"] == ["object", "object"]
        assert "created.year" not in self.schema["properties"]

    def test_later_document_overwrites_type(self):
        """A path seen again takes the latest type, never a union."""
        fold_document({"value": 1}, self.schema)
        fold_document({"value": "one"}, self.schema)

        assert self.schema["properties"]["value"]["type"] == ["string", "object"]
        operators = self.schema["properties"]["value"]["properties"]
        assert operators["$eq"]["type"] == "string"

    def test_with_parent_prefix(self):
        fold_document({"_id": 3, "lat": 1.0}, self.schema, parent="location")

        assert set(self.schema["properties"]) == {"location._id", "location.lat"}

    def test_custom_root_exclusions(self):
        fold_document(
            {"_id": 1, "secret": "x", "name": "n"},
            self.schema,
            excluded_root_fields=("secret",),
        )

        assert set(self.schema["properties"]) == {"_id", "name"}


class TestBuildQuerySchema:
    """Test whole-schema assembly."""

    def test_users_scenario(self):
        schema = build_query_schema(
            [{"_id": "a", "name": "Bob", "age": 30, "tags": ["x", "y"]}],
            "mongo://query/users",
        )
        properties = schema["properties"]

        assert schema["type"] == "object"
        assert properties["name"]["type"] == ["string", "object"]
        assert properties["age"]["type"] == ["number", "object"]
        assert properties["tags"]["type"] == ["array", "object"]
        assert "$all" in properties["tags"]["properties"]
        assert "$size" in properties["tags"]["properties"]
        assert "_id" not in properties
        assert properties["$or"]["items"] == {"$ref": "mongo://query/users"}

    def test_root_properties_are_paths_plus_document_operators(self):
        documents = [
            {"_id": 1, "a": {"b": 1}, "c": [{"d": True}]},
            {"_id": 2, "e": "x"},
        ]
        schema = build_query_schema(documents, URI)

        expected = {"a", "a.b", "c", "c.d", "e"} | DOCUMENT_OPERATORS
        assert set(schema["properties"]) == expected

    def test_every_field_type_is_type_or_object(self):
        documents = [
            {"s": "x", "n": 1.5, "b": False, "z": None, "o": {"i": [1, {"j": 2}]}},
        ]
        schema = build_query_schema(documents, URI)

        for path in field_paths(schema):
            field_type = schema["properties"][path]["type"]
            assert len(field_type) == 2
            assert field_type[1] == "object"

    def test_empty_sample(self):
        """No documents still yields the document-level operators."""
        schema = build_query_schema([], URI)

        assert set(schema["properties"]) == DOCUMENT_OPERATORS
        assert json.loads(json.dumps(schema)) == schema

    def test_document_operators_overlay_fields(self):
        """Document-level operators replace same-named fields."""
        schema = build_query_schema([{"$comment": 5}], URI)

        assert schema["properties"]["$comment"]["type"] == "string"

    def test_schema_is_json_serializable(self):
        documents = [{"when": datetime(2024, 1, 1), "id": ObjectId()}]
        schema = build_query_schema(documents, URI)
        assert json.loads(json.dumps(schema))["properties"]["when"]["type"] == [
            "object",
            "object",
        ]


class TestSampleDocuments:
    """Test bounded cursor draining."""

    @pytest.mark.asyncio
    async def test_stops_at_sample_cap(self, counting_cursor):
        documents = await sample_documents(counting_cursor, SAMPLE_SIZE)

        assert len(documents) == 10
        assert counting_cursor.next_calls == 10
        assert counting_cursor.has_next_calls == 10

    @pytest.mark.asyncio
    async def test_stops_on_exhaustion(self, make_counting_cursor):
        cursor = make_counting_cursor(total=3)
        documents = await sample_documents(cursor, 10)

        assert [doc["n"] for doc in documents] == [1, 2, 3]
        assert cursor.next_calls == 3
        assert cursor.has_next_calls == 4

    @pytest.mark.asyncio
    async def test_empty_cursor(self, make_counting_cursor):
        cursor = make_counting_cursor(total=0)

        assert await sample_documents(cursor) == []
        assert cursor.next_calls == 0

    def test_default_sample_size(self):
        assert SAMPLE_SIZE == 10

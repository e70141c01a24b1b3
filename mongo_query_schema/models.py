"""
Pydantic models exchanged with schema-consuming editors.
"""

from pydantic import BaseModel, ConfigDict, Field


class SchemaConfiguration(BaseModel):
    """Associates a schema URI with the documents it validates.

    Serializes with the JSON language service's field names
    (``uri``, ``fileMatch``).
    """

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    uri: str = Field(description="URI the schema is resolved from")
    file_match: list[str] = Field(
        alias="fileMatch", description="Glob patterns of documents using the schema"
    )

    def to_json_dict(self) -> dict[str, object]:
        """Dump using the wire field names."""
        return self.model_dump(by_alias=True)

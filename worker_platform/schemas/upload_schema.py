"""Upload schema records as stored in the UploadSchema table."""

from __future__ import annotations

import json
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from worker_platform.errors import DeserializationError


class UploadSchemaKey(BaseModel):
    """Identifies one revision of an upload schema."""

    model_config = ConfigDict(frozen=True)

    study_id: str
    schema_id: str
    revision: int

    def __str__(self) -> str:
        # Format used as the primary key of the schema -> table mapping table.
        return f"{self.study_id}-{self.schema_id}-v{self.revision}"


class UploadSchema(BaseModel):
    model_config = ConfigDict(frozen=True)

    key: UploadSchemaKey
    name: str | None = None
    schema_type: str | None = None
    field_definitions: tuple[dict[str, Any], ...] = Field(default_factory=tuple)

    @property
    def revision(self) -> int:
        return self.key.revision

    @classmethod
    def from_ddb_item(cls, item: dict[str, Any]) -> UploadSchema:
        """
        Build a schema from a full UploadSchema table item. The hash key has the
        form "<studyId>:<schemaId>"; field definitions are a serialized JSON list.
        """
        ddb_key = item.get("key")
        if not ddb_key or ":" not in ddb_key:
            raise DeserializationError(f"Invalid upload schema key: {ddb_key!r}")
        study_id, schema_id = ddb_key.split(":", 1)

        field_defs_json = item.get("fieldDefinitions")
        field_defs: list[dict[str, Any]] = []
        if field_defs_json:
            try:
                field_defs = json.loads(field_defs_json)
            except json.JSONDecodeError as exc:
                raise DeserializationError(
                    f"Invalid field definitions for schema {ddb_key}"
                ) from exc

        try:
            return cls(
                key=UploadSchemaKey(
                    study_id=study_id, schema_id=schema_id, revision=item.get("revision")
                ),
                name=item.get("name"),
                schema_type=item.get("schemaType"),
                field_definitions=field_defs,
            )
        except ValidationError as exc:
            raise DeserializationError(f"Invalid upload schema {ddb_key}: {exc}") from exc

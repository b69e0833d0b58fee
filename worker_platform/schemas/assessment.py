"""
Assessment records and the assessment-model payloads that describe them.

Two payloads matter when summarizing results:
- the assessment config, a JSON tree of steps (questions, sections, instructions)
- the assessment result, a JSON tree of answers keyed by step identifier
"""

from __future__ import annotations

from typing import Any

from pydantic import ConfigDict, Field

from worker_platform.schemas.camel_model import CamelCaseModel


# ---------------------------------------------------------------------------
# REST client records
# ---------------------------------------------------------------------------

class Assessment(CamelCaseModel):
    guid: str | None = None
    identifier: str
    revision: int | None = None
    title: str | None = None
    framework_identifier: str | None = None


class AssessmentConfig(CamelCaseModel):
    """The config blob is kept as decoded JSON; its shape depends on the framework."""

    config: dict[str, Any] | None = None
    version: int | None = None


# ---------------------------------------------------------------------------
# Assessment-model result tree
# ---------------------------------------------------------------------------

class ResultNode(CamelCaseModel):
    """
    A node in an assessment result. Branch nodes (the assessment itself and
    sections) carry stepHistory / asyncResults; answer nodes carry a value.
    """

    model_config = ConfigDict(extra="allow")

    identifier: str
    type: str | None = None
    value: Any = None
    answer_type: dict[str, Any] | None = None
    step_history: list[ResultNode] = Field(default_factory=list)
    async_results: list[ResultNode] = Field(default_factory=list)

    @property
    def is_answer(self) -> bool:
        return "value" in self.model_fields_set or self.answer_type is not None

    @property
    def children(self) -> list[ResultNode]:
        return self.step_history + self.async_results


class AnswerColumn(CamelCaseModel):
    """A column a flattened assessment result can contain."""

    model_config = ConfigDict(frozen=True)

    column_name: str
    answer_type: str = "string"


# ---------------------------------------------------------------------------
# JSON schema for assessment configs
# ---------------------------------------------------------------------------

ASSESSMENT_CONFIG_SCHEMA: dict = {
    "$schema": "http://json-schema.org/draft-07/schema#",
    "title": "Assessment config (assessment model)",
    "description": "Structural subset needed to enumerate answer columns.",
    "type": "object",
    "required": ["identifier"],
    "properties": {
        "identifier": {"type": "string", "minLength": 1},
        "type": {"type": "string"},
        "steps": {"type": "array", "items": {"$ref": "#/definitions/node"}},
    },
    "definitions": {
        "node": {
            "type": "object",
            "required": ["identifier"],
            "properties": {
                "identifier": {"type": "string", "minLength": 1},
                "type": {"type": "string"},
                "steps": {"type": "array", "items": {"$ref": "#/definitions/node"}},
                "inputItems": {
                    "type": "array",
                    "items": {"type": "object"},
                },
                "inputItem": {"type": "object"},
                "answerType": {"type": "object"},
                "baseType": {"type": "string"},
            },
        },
    },
}

"""
Flattening of assessment-model trees.

Both the result tree and the config tree are walked the same way: answers and
questions become columns, sections only contribute a name prefix. Column names
are the step identifier, prefixed by enclosing section identifiers joined with
"_". The assessment's own identifier is never part of the name.
"""

from __future__ import annotations

import json
from typing import Any

from worker_platform.schemas.assessment import AnswerColumn, ResultNode

SEPARATOR = "_"

QUESTION_TYPES = frozenset({"question", "simpleQuestion", "choiceQuestion", "multipleInputQuestion"})


def format_value(value: Any) -> str:
    if isinstance(value, str):
        return value
    # bool before numbers: True is an int
    if isinstance(value, bool):
        return "true" if value else "false"
    return json.dumps(value, separators=(",", ":"))


# ---------------------------------------------------------------------------
# Results
# ---------------------------------------------------------------------------

def flatten_result(root: ResultNode) -> dict[str, str]:
    """Flat column -> value map for a result. Later answers overwrite earlier ones."""
    answers: dict[str, str] = {}
    for child in root.children:
        _flatten_result_node(child, "", answers)
    return answers


def _flatten_result_node(node: ResultNode, prefix: str, answers: dict[str, str]) -> None:
    if node.is_answer:
        if node.value is not None:
            answers[prefix + node.identifier] = format_value(node.value)
        return
    for child in node.children:
        _flatten_result_node(child, prefix + node.identifier + SEPARATOR, answers)


# ---------------------------------------------------------------------------
# Config
# ---------------------------------------------------------------------------

def flatten_config(config: dict[str, Any]) -> list[AnswerColumn]:
    """Every column a result for this config could produce, in step order."""
    columns: list[AnswerColumn] = []
    for step in config.get("steps", []):
        _flatten_config_node(step, "", columns)
    return columns


def _flatten_config_node(node: dict[str, Any], prefix: str, columns: list[AnswerColumn]) -> None:
    identifier = node["identifier"]
    node_type = node.get("type")
    if node_type in QUESTION_TYPES:
        columns.append(AnswerColumn(column_name=prefix + identifier, answer_type=_answer_type(node)))
    elif "steps" in node:
        for step in node["steps"]:
            _flatten_config_node(step, prefix + identifier + SEPARATOR, columns)
    # instructions, overviews, completion steps: no answer


def _answer_type(node: dict[str, Any]) -> str:
    if node.get("type") == "multipleInputQuestion":
        return "object"
    if node.get("type") == "choiceQuestion" and node.get("singleAnswer") is False:
        return "array"
    if "baseType" in node:
        return node["baseType"]
    input_item = node.get("inputItem") or {}
    if "baseType" in input_item:
        return input_item["baseType"]
    answer_type = node.get("answerType") or {}
    return answer_type.get("type") or input_item.get("type") or "string"

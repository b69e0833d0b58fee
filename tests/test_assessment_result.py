"""Tests for flattening assessment results."""

import json
import logging

import pytest

from worker_platform.errors import DeserializationError, UnsupportedAssessmentError
from worker_platform.etl.results.assessment_result import AssessmentResultSummarizer, default_registry
from worker_platform.etl.results.base import SummarizerRegistry
from worker_platform.schemas.assessment import AnswerColumn, Assessment, AssessmentConfig

FRAMEWORK = "health.bridgedigital.assessment"

CONFIG = {
    "type": "assessment",
    "identifier": "mood-survey",
    "steps": [
        {"type": "overview", "identifier": "overview", "title": "Welcome"},
        {"type": "simpleQuestion", "identifier": "mood", "inputItem": {"type": "integer"}},
        {
            "type": "section",
            "identifier": "sleep",
            "steps": [
                {"type": "simpleQuestion", "identifier": "hours", "inputItem": {"type": "decimal"}},
                {"type": "choiceQuestion", "identifier": "quality", "baseType": "string", "singleAnswer": True},
            ],
        },
        {"type": "choiceQuestion", "identifier": "symptoms", "singleAnswer": False},
        {"type": "multipleInputQuestion", "identifier": "contact", "inputItems": [{"identifier": "name"}]},
        {"type": "completion", "identifier": "done"},
    ],
}

RESULT = {
    "type": "assessment",
    "identifier": "mood-survey",
    "stepHistory": [
        {"type": "base", "identifier": "overview"},
        {"type": "answer", "identifier": "mood", "answerType": {"type": "integer"}, "value": 3},
        {
            "type": "section",
            "identifier": "sleep",
            "stepHistory": [
                {"type": "answer", "identifier": "hours", "answerType": {"type": "number"}, "value": 7.5},
                {"type": "answer", "identifier": "quality", "answerType": {"type": "string"}, "value": "good"},
            ],
        },
        {"type": "answer", "identifier": "symptoms", "answerType": {"type": "array"}, "value": ["a", "b"]},
        {"type": "answer", "identifier": "contact", "answerType": {"type": "object"}, "value": {"name": "x"}},
    ],
    "asyncResults": [
        {"type": "answer", "identifier": "consented", "value": True},
    ],
}


def _make_assessment(framework=FRAMEWORK):
    return Assessment(identifier="mood-survey", guid="guid-1", framework_identifier=framework)


def _make_summarizer(config=CONFIG):
    return AssessmentResultSummarizer(_make_assessment(), AssessmentConfig(config=config))


def test_summarize_results():
    answers = _make_summarizer().summarize_results(json.dumps(RESULT))
    assert answers == {
        "mood": "3",
        "sleep_hours": "7.5",
        "sleep_quality": "good",
        "symptoms": '["a","b"]',
        "contact": '{"name":"x"}',
        "consented": "true",
    }


def test_column_names_from_config():
    assert _make_summarizer().get_column_names() == [
        "mood", "sleep_hours", "sleep_quality", "symptoms", "contact",
    ]


def test_survey_columns_carry_answer_type():
    columns = _make_summarizer().get_survey_columns()
    assert columns[0] == AnswerColumn(column_name="mood", answer_type="integer")
    assert columns[2].answer_type == "string"
    assert columns[3].answer_type == "array"
    assert columns[4].answer_type == "object"


def test_no_config_means_no_columns():
    summarizer = _make_summarizer(config=None)
    assert summarizer.get_column_names() == []
    # results still summarize without a config
    assert summarizer.summarize_results(json.dumps(RESULT))["mood"] == "3"


def test_unexpected_columns_logged_not_rejected(caplog):
    config = {"identifier": "mood-survey", "steps": [{"type": "simpleQuestion", "identifier": "mood"}]}
    with caplog.at_level(logging.DEBUG, logger="worker_platform.etl.results.assessment_result"):
        answers = _make_summarizer(config).summarize_results(json.dumps(RESULT))

    assert "sleep_hours" in answers
    assert "Unexpected column: sleep_hours" in caplog.text


def test_null_answer_skipped():
    result = {"identifier": "a", "stepHistory": [{"identifier": "q", "answerType": {"type": "string"}, "value": None}]}
    assert _make_summarizer().summarize_results(json.dumps(result)) == {}


def test_malformed_result_json():
    with pytest.raises(DeserializationError):
        _make_summarizer().summarize_results("{not json")


def test_result_with_wrong_structure():
    with pytest.raises(DeserializationError):
        _make_summarizer().summarize_results(json.dumps([{"identifier": "x"}]))


def test_invalid_config():
    summarizer = _make_summarizer(config={"steps": [{"type": "simpleQuestion"}]})
    with pytest.raises(DeserializationError, match="identifier"):
        summarizer.get_column_names()


def test_config_with_non_object_answer_type():
    config = {
        "identifier": "mood-survey",
        "steps": [{"identifier": "mood", "type": "simpleQuestion", "answerType": "integer"}],
    }
    with pytest.raises(DeserializationError, match="answerType"):
        _make_summarizer(config).get_column_names()


def test_result_filename():
    assert _make_summarizer().result_filename == "assessmentResult.json"


def test_framework_mismatch_rejected():
    with pytest.raises(UnsupportedAssessmentError):
        AssessmentResultSummarizer(_make_assessment("other.framework"), AssessmentConfig())


def test_can_summarize():
    summarizer = _make_summarizer()
    assert summarizer.can_summarize(_make_assessment())
    assert not summarizer.can_summarize(_make_assessment("other.framework"))


# ---------------------------------------------------------------------------
# Registry
# ---------------------------------------------------------------------------

def test_default_registry_dispatch():
    summarizer = default_registry.for_assessment(_make_assessment(), AssessmentConfig(config=CONFIG))
    assert isinstance(summarizer, AssessmentResultSummarizer)


def test_registry_unknown_framework():
    assert not default_registry.supports(_make_assessment("other.framework"))
    with pytest.raises(UnsupportedAssessmentError, match="other.framework"):
        default_registry.for_assessment(_make_assessment("other.framework"), AssessmentConfig())


def test_registry_rejects_duplicates():
    registry = SummarizerRegistry()
    registry.register(FRAMEWORK, AssessmentResultSummarizer)
    with pytest.raises(ValueError, match="Duplicate"):
        registry.register(FRAMEWORK, AssessmentResultSummarizer)

from __future__ import annotations

import logging

from pydantic import ValidationError

from worker_platform.errors import DeserializationError, UnsupportedAssessmentError
from worker_platform.etl.results.base import AssessmentSummarizer, SummarizerRegistry
from worker_platform.etl.results.flatten import flatten_config, flatten_result
from worker_platform.schemas.assessment import (
    ASSESSMENT_CONFIG_SCHEMA,
    AnswerColumn,
    Assessment,
    AssessmentConfig,
    ResultNode,
)
from worker_platform.services.validation import validate_against_schema

logger = logging.getLogger(__name__)


class AssessmentResultSummarizer(AssessmentSummarizer):
    """Summarizes results produced by the assessment-model framework."""

    FRAMEWORK_IDENTIFIER = "health.bridgedigital.assessment"

    def __init__(self, assessment: Assessment, assessment_config: AssessmentConfig):
        if assessment.framework_identifier != self.FRAMEWORK_IDENTIFIER:
            raise UnsupportedAssessmentError(
                f"Assessment {assessment.identifier} has framework "
                f"{assessment.framework_identifier!r}, expected {self.FRAMEWORK_IDENTIFIER!r}"
            )
        self.assessment = assessment
        self.assessment_config = assessment_config
        self._columns: list[AnswerColumn] | None = None

    @property
    def result_filename(self) -> str:
        return "assessmentResult.json"

    def can_summarize(self, assessment: Assessment) -> bool:
        return assessment.framework_identifier == self.FRAMEWORK_IDENTIFIER

    def summarize_results(self, result_json: str) -> dict[str, str]:
        """
        Flat map of a result, column name -> string value. Columns the config
        doesn't define are kept and logged; schema drift shouldn't lose data.
        """
        try:
            result = ResultNode.model_validate_json(result_json)
        except ValidationError as exc:
            raise DeserializationError(
                f"Invalid result for assessment {self.assessment.identifier}: {exc}"
            ) from exc

        answers = flatten_result(result)
        column_names = self.get_column_names()
        for column in answers:
            if column not in column_names:
                logger.debug("Unexpected column: %s when summarizing results for assessment: %s",
                             column, self.assessment.identifier)
        unanswered = [column for column in column_names if column not in answers]
        if unanswered:
            logger.debug("No answer for columns %s in result for assessment: %s",
                         unanswered, self.assessment.identifier)
        return answers

    def get_column_names(self) -> list[str]:
        if not self.can_summarize(self.assessment):
            return []
        return [column.column_name for column in self.get_survey_columns()]

    def get_survey_columns(self) -> list[AnswerColumn]:
        """Columns defined by the assessment config; empty if there's no config."""
        if self._columns is None:
            self._columns = self._decode_config_columns()
        return self._columns

    def _decode_config_columns(self) -> list[AnswerColumn]:
        config = self.assessment_config.config
        if config is None:
            return []
        errors = validate_against_schema(config, ASSESSMENT_CONFIG_SCHEMA)
        if errors:
            raise DeserializationError(
                f"Invalid config for assessment {self.assessment.identifier}: {'; '.join(errors)}"
            )
        return flatten_config(config)


default_registry = SummarizerRegistry()
default_registry.register(AssessmentResultSummarizer.FRAMEWORK_IDENTIFIER, AssessmentResultSummarizer)

"""
Result summarizers turn an uploaded assessment result into a flat
column -> value map, one summarizer per result framework.

Dispatch goes through a registry keyed by framework identifier, so a new
framework only needs a new summarizer class and a register() call.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Callable

from worker_platform.errors import UnsupportedAssessmentError
from worker_platform.schemas.assessment import Assessment, AssessmentConfig


class AssessmentSummarizer(ABC):
    @property
    @abstractmethod
    def result_filename(self) -> str:
        """Name of the file in the upload archive that holds the result."""

    @abstractmethod
    def can_summarize(self, assessment: Assessment) -> bool:
        ...

    @abstractmethod
    def summarize_results(self, result_json: str) -> dict[str, str]:
        """Flat map of column name -> string value for one result."""

    @abstractmethod
    def get_column_names(self) -> list[str]:
        """All columns a result could produce, known before any result exists."""


SummarizerFactory = Callable[[Assessment, AssessmentConfig], AssessmentSummarizer]


class SummarizerRegistry:
    def __init__(self):
        self._factories: dict[str, SummarizerFactory] = {}

    def register(self, framework_identifier: str, factory: SummarizerFactory) -> None:
        if framework_identifier in self._factories:
            raise ValueError(f"Duplicate summarizer for framework: {framework_identifier}")
        self._factories[framework_identifier] = factory

    def supports(self, assessment: Assessment) -> bool:
        return assessment.framework_identifier in self._factories

    def for_assessment(self, assessment: Assessment,
                       assessment_config: AssessmentConfig) -> AssessmentSummarizer:
        factory = self._factories.get(assessment.framework_identifier)
        if factory is None:
            raise UnsupportedAssessmentError(
                f"No summarizer for framework {assessment.framework_identifier!r} "
                f"(assessment {assessment.identifier})"
            )
        return factory(assessment, assessment_config)

"""Participant version records, as returned by the server REST client."""

from __future__ import annotations

from datetime import datetime
from enum import Enum

from pydantic import Field

from worker_platform.schemas.camel_model import CamelCaseModel


class SharingScope(str, Enum):
    NO_SHARING = "no_sharing"
    SPONSORS_AND_PARTNERS = "sponsors_and_partners"
    ALL_QUALIFIED_RESEARCHERS = "all_qualified_researchers"


class DemographicResponse(CamelCaseModel):
    """Answer to one demographic category. Multi-select categories have several values."""

    units: str | None = None
    values: list[str] = Field(default_factory=list)


class ParticipantVersion(CamelCaseModel):
    """Immutable snapshot of a participant's profile at a point in time."""

    app_id: str | None = None
    health_code: str | None = None
    participant_version: int | None = None
    created_on: datetime | None = None
    modified_on: datetime | None = None
    data_groups: list[str] | None = None
    languages: list[str] | None = None
    sharing_scope: SharingScope | None = None
    # study ID -> external ID, or "<none>" when enrolled without one
    study_memberships: dict[str, str | None] | None = None
    time_zone: str | None = None
    app_demographics: dict[str, DemographicResponse | None] | None = None

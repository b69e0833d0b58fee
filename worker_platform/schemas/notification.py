"""Records used by the engagement notification worker."""

from __future__ import annotations

from enum import Enum

from pydantic import ConfigDict, Field

from worker_platform.schemas.camel_model import CamelCaseModel


class NotificationType(str, Enum):
    CUMULATIVE = "CUMULATIVE"
    EARLY = "EARLY"
    LATE = "LATE"
    PRE_BURST = "PRE_BURST"
    # Logs written before the type was recorded.
    UNKNOWN = "UNKNOWN"


class UserNotification(CamelCaseModel):
    """One entry of the notification log, unique per (user_id, time)."""

    user_id: str
    time: int = Field(..., description="Epoch milliseconds the notification was sent")
    message: str | None = None
    type: NotificationType = NotificationType.UNKNOWN


class WorkerConfig(CamelCaseModel):
    """Per-study notification tuning. Snapshot, never mutated after load."""

    model_config = ConfigDict(frozen=True)

    app_url: str | None = None
    burst_duration_days: int = 0
    burst_start_event_id_set: frozenset[str] = frozenset()
    burst_task_id: str | None = None
    early_late_cutoff_days: int = 0
    engagement_survey_guid: str | None = None
    excluded_data_group_set: frozenset[str] = frozenset()
    missed_cumulative_activities_messages_list: tuple[str, ...] = ()
    missed_early_activities_messages_list: tuple[str, ...] = ()
    missed_later_activities_messages_list: tuple[str, ...] = ()
    notification_blackout_days_from_start: int = 0
    notification_blackout_days_from_end: int = 0
    num_activities_to_complete_burst: int = 0
    num_missed_consecutive_days_to_notify: int = 0
    num_missed_days_to_notify: int = 0
    preburst_messages_by_data_group: dict[str, tuple[str, ...]] = Field(default_factory=dict)

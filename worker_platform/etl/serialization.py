"""
Canonical string forms for composite participant fields.

Outputs must be diff-stable: the same logical value always serializes to the
same string, regardless of input ordering where ordering carries no meaning.
"""

from __future__ import annotations

import json
import logging
from datetime import datetime, timezone

logger = logging.getLogger(__name__)

EXT_ID_NONE = "<none>"
MAX_LANGUAGES = 10
MAX_LANGUAGE_LENGTH = 5

_EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)


def to_epoch_millis(value: datetime) -> int:
    """Epoch milliseconds. Naive datetimes are taken as UTC."""
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    delta = value - _EPOCH
    return (delta.days * 86_400 + delta.seconds) * 1000 + delta.microseconds // 1000


def serialize_data_groups(data_groups: list[str]) -> str:
    """Comma-delimited, sorted; order carries no meaning for data groups."""
    return ",".join(sorted(data_groups))


def serialize_languages(languages: list[str], *, health_code: str | None = None,
                        version: int | None = None) -> str:
    """
    JSON array of languages, in the given order (order is meaningful).

    Malformed input is truncated rather than rejected: at most MAX_LANGUAGES
    entries, each cut to MAX_LANGUAGE_LENGTH characters. The input list is not
    modified.
    """
    if len(languages) > MAX_LANGUAGES:
        logger.warning(
            "Truncating language list; healthcode %s version %s has %d languages",
            health_code, version, len(languages),
        )
        languages = languages[:MAX_LANGUAGES]

    truncated = []
    for language in languages:
        if len(language) > MAX_LANGUAGE_LENGTH:
            logger.warning(
                "Truncating language; healthcode %s version %s has invalid language %s",
                health_code, version, language,
            )
            language = language[:MAX_LANGUAGE_LENGTH]
        truncated.append(language)

    return json.dumps(truncated, separators=(",", ":"))


def serialize_study_memberships(study_memberships: dict[str, str | None] | None,
                                study_id_filter: str | None = None) -> str | None:
    """
    Serialize study ID -> external ID memberships as "|studyA=extA|studyB=|".

    A missing or "<none>" external ID is written as empty. Pairs are sorted by the full
    "key=value" string. With a filter, only that study's membership is written.
    Returns None when there is nothing to write.
    """
    if not study_memberships:
        return None

    if study_id_filter is not None:
        if study_id_filter not in study_memberships:
            return None
        study_ids = [study_id_filter]
    else:
        study_ids = list(study_memberships)

    pairs = []
    for study_id in study_ids:
        ext_id = study_memberships[study_id]
        value = "" if ext_id is None or ext_id == EXT_ID_NONE else ext_id
        pairs.append(f"{study_id}={value}")
    pairs.sort()
    return "|" + "|".join(pairs) + "|"

"""
Builds Synapse table rows from participant versions.

Rows are sparse maps from column ID to string value; fields that are None are
left out of the row entirely rather than written as empty.
"""

from __future__ import annotations

import logging

from worker_platform.etl.serialization import (
    serialize_data_groups,
    serialize_languages,
    serialize_study_memberships,
    to_epoch_millis,
)
from worker_platform.schemas.participant import ParticipantVersion
from worker_platform.services.cache import PermanentCache
from worker_platform.services.synapse_helper import SynapseHelper

logger = logging.getLogger(__name__)

# Participant version table columns
COLUMN_NAME_HEALTH_CODE = "healthCode"
COLUMN_NAME_PARTICIPANT_VERSION = "participantVersion"
COLUMN_NAME_CREATED_ON = "createdOn"
COLUMN_NAME_MODIFIED_ON = "modifiedOn"
COLUMN_NAME_DATA_GROUPS = "dataGroups"
COLUMN_NAME_LANGUAGES = "languages"
COLUMN_NAME_SHARING_SCOPE = "sharingScope"
COLUMN_NAME_STUDY_MEMBERSHIPS = "studyMemberships"
COLUMN_NAME_CLIENT_TIME_ZONE = "clientTimeZone"
# Participant version demographics table columns
COLUMN_NAME_APP_ID = "appId"
COLUMN_NAME_STUDY_ID = "studyId"
COLUMN_NAME_DEMOGRAPHIC_CATEGORY_NAME = "demographicCategoryName"
COLUMN_NAME_DEMOGRAPHIC_VALUE = "demographicValue"
COLUMN_NAME_DEMOGRAPHIC_UNITS = "demographicUnits"

Row = dict[str, str]


class ParticipantVersionHelper:
    """Encapsulates exporting a single participant version."""

    def __init__(self, synapse_helper: SynapseHelper, column_cache: PermanentCache | None = None):
        self.synapse_helper = synapse_helper
        if column_cache is None:
            column_cache = PermanentCache()
        self._column_cache = column_cache

    def get_column_name_to_id_map(self, table_id: str) -> dict[str, str]:
        """
        Column name -> column ID for the table. Needs a network call, so it's
        cached, and forever: a table's columns don't change once it's created.
        """
        return self._column_cache.get_or_load(table_id, lambda: self._load_column_map(table_id))

    def _load_column_map(self, table_id: str) -> dict[str, str]:
        columns = self.synapse_helper.get_column_models_for_table_with_retry(table_id)
        return {column.name: column.id for column in columns}

    def make_row_for_participant_version(self, study_id: str | None, table_id: str,
                                         participant_version: ParticipantVersion) -> Row:
        """
        Row for the participant versions table. For the app-wide project, pass
        study_id=None; otherwise study memberships are limited to that study.
        """
        column_ids = self.get_column_name_to_id_map(table_id)
        pv = participant_version
        values: dict[str, str] = {}

        if pv.health_code is not None:
            values[COLUMN_NAME_HEALTH_CODE] = pv.health_code
        if pv.participant_version is not None:
            values[COLUMN_NAME_PARTICIPANT_VERSION] = str(pv.participant_version)
        if pv.created_on is not None:
            values[COLUMN_NAME_CREATED_ON] = str(to_epoch_millis(pv.created_on))
        if pv.modified_on is not None:
            values[COLUMN_NAME_MODIFIED_ON] = str(to_epoch_millis(pv.modified_on))
        if pv.data_groups is not None:
            values[COLUMN_NAME_DATA_GROUPS] = serialize_data_groups(pv.data_groups)
        if pv.languages is not None:
            values[COLUMN_NAME_LANGUAGES] = serialize_languages(
                pv.languages, health_code=pv.health_code, version=pv.participant_version
            )
        if pv.sharing_scope is not None:
            values[COLUMN_NAME_SHARING_SCOPE] = pv.sharing_scope.value
        # Memberships come from active enrollments only; withdrawn ones are already excluded.
        memberships = serialize_study_memberships(pv.study_memberships, study_id)
        if memberships is not None:
            values[COLUMN_NAME_STUDY_MEMBERSHIPS] = memberships
        if pv.time_zone is not None:
            values[COLUMN_NAME_CLIENT_TIME_ZONE] = pv.time_zone

        return _to_row(column_ids, values, table_id)

    def make_rows_for_demographics(self, app_id: str, study_id: str | None, table_id: str,
                                   participant_version: ParticipantVersion) -> list[Row]:
        """
        One row per demographic value. Returns [] if the health code or version
        is missing, since those rows couldn't be joined to the versions table.
        """
        pv = participant_version
        if pv.health_code is None or pv.participant_version is None:
            return []
        column_ids = self.get_column_name_to_id_map(table_id)

        rows = []
        for category_name, demographic in (pv.app_demographics or {}).items():
            if category_name is None or demographic is None:
                continue
            for value in demographic.values:
                values = {
                    COLUMN_NAME_HEALTH_CODE: pv.health_code,
                    COLUMN_NAME_PARTICIPANT_VERSION: str(pv.participant_version),
                    COLUMN_NAME_DEMOGRAPHIC_CATEGORY_NAME: category_name,
                    COLUMN_NAME_DEMOGRAPHIC_VALUE: value,
                }
                # Older demographics tables have no appId / studyId columns.
                if COLUMN_NAME_APP_ID in column_ids:
                    values[COLUMN_NAME_APP_ID] = app_id
                if study_id is not None and COLUMN_NAME_STUDY_ID in column_ids:
                    values[COLUMN_NAME_STUDY_ID] = study_id
                if demographic.units is not None:
                    values[COLUMN_NAME_DEMOGRAPHIC_UNITS] = demographic.units
                rows.append(_to_row(column_ids, values, table_id))
        return rows


def _to_row(column_ids: dict[str, str], values: dict[str, str], table_id: str) -> Row:
    row = {}
    for column_name, value in values.items():
        column_id = column_ids.get(column_name)
        if column_id is None:
            logger.warning("Table %s has no column %s, dropping value", table_id, column_name)
            continue
        row[column_id] = value
    return row

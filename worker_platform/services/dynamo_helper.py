"""
Key-value access to the worker platform's DynamoDB tables.

Each method is a single-key (or single-index) read or write. Absent optional
records come back as None / empty collections; records that must exist raise
RecordNotFoundError. boto3 errors propagate to the caller.
"""

from __future__ import annotations

import logging
import time
from collections import defaultdict
from decimal import Decimal
from typing import Any, Callable, Iterator

import boto3
from boto3.dynamodb.conditions import Key

from worker_platform.config import Settings
from worker_platform.errors import RecordNotFoundError
from worker_platform.schemas.notification import NotificationType, UserNotification, WorkerConfig
from worker_platform.schemas.study import StudyInfo
from worker_platform.schemas.upload_schema import UploadSchema, UploadSchemaKey
from worker_platform.services.cache import TTLCache
from worker_platform.services.locks import KeyedLock

logger = logging.getLogger(__name__)

# Attribute names, as stored in the tables.
ATTR_STUDY_ID = "studyId"
ATTR_TABLE_ID = "tableId"
ATTR_TABLE_ID_SET = "tableIdSet"
ATTR_TABLE_NAME = "tableName"
ATTR_SCHEMA_KEY = "schemaKey"
ATTR_IDENTIFIER = "identifier"
KEY_FINISH_TIME = "finishTime"
KEY_MESSAGE = "message"
KEY_NOTIFICATION_TIME = "notificationTime"
KEY_NOTIFICATION_TYPE = "notificationType"
KEY_TAG = "tag"
KEY_USER_ID = "userId"
KEY_WORKER_ID = "workerId"
SUFFIX_DEFAULT = "-default"


def _epoch_millis() -> int:
    return int(time.time() * 1000)


def _from_ddb(value: Any) -> Any:
    """Convert boto3's Decimal numbers back to int / float, recursively."""
    if isinstance(value, Decimal):
        return int(value) if value == value.to_integral_value() else float(value)
    if isinstance(value, dict):
        return {k: _from_ddb(v) for k, v in value.items()}
    if isinstance(value, list):
        return [_from_ddb(v) for v in value]
    if isinstance(value, set):
        return {_from_ddb(v) for v in value}
    return value


class DynamoHelper:
    """Abstracts away calls to DynamoDB."""

    def __init__(
        self,
        *,
        notification_config_table,
        notification_log_table,
        study_table,
        synapse_map_table,
        synapse_meta_table,
        synapse_survey_tables_table,
        upload_schema_table,
        worker_log_table,
        upload_schema_study_index: str = "studyId-index",
        notification_config_cache: TTLCache | None = None,
        clock: Callable[[], int] = _epoch_millis,
    ):
        self.notification_config_table = notification_config_table
        # Tracks which users have received notifications and when.
        self.notification_log_table = notification_log_table
        self.study_table = study_table
        # Upload schema key -> Synapse table ID.
        self.synapse_map_table = synapse_map_table
        # Meta tables (default / schemaless record table per study).
        self.synapse_meta_table = synapse_meta_table
        # Study -> set of survey table IDs.
        self.synapse_survey_tables_table = synapse_survey_tables_table
        self.upload_schema_table = upload_schema_table
        self.upload_schema_study_index = upload_schema_study_index
        # Worker runs; integration tests poll this to know a worker finished.
        self.worker_log_table = worker_log_table

        if notification_config_cache is None:
            notification_config_cache = TTLCache(ttl_seconds=300)
        self._notification_config_cache = notification_config_cache
        self._survey_table_locks = KeyedLock()
        self._clock = clock

    @classmethod
    def from_settings(cls, settings: Settings, dynamodb=None) -> DynamoHelper:
        """Wire boto3 Table resources for the configured environment."""
        dynamodb = dynamodb or boto3.resource("dynamodb", region_name=settings.AWS_REGION)

        def table(suffix: str):
            return dynamodb.Table(settings.table_name(suffix))

        return cls(
            notification_config_table=table(settings.NOTIFICATION_CONFIG_TABLE),
            notification_log_table=table(settings.NOTIFICATION_LOG_TABLE),
            study_table=table(settings.STUDY_TABLE),
            synapse_map_table=table(settings.SYNAPSE_MAP_TABLE),
            synapse_meta_table=table(settings.SYNAPSE_META_TABLE),
            synapse_survey_tables_table=table(settings.SYNAPSE_SURVEY_TABLES_TABLE),
            upload_schema_table=table(settings.UPLOAD_SCHEMA_TABLE),
            worker_log_table=table(settings.WORKER_LOG_TABLE),
            upload_schema_study_index=settings.UPLOAD_SCHEMA_STUDY_INDEX,
            notification_config_cache=TTLCache(
                ttl_seconds=settings.NOTIFICATION_CONFIG_CACHE_SECONDS
            ),
        )

    # ------------------------------------------------------------------
    # Default (schemaless) record table
    # ------------------------------------------------------------------

    def get_default_table_for_study(self, study_id: str) -> str | None:
        """Table ID of the study's default record table, or None if it hasn't been created yet."""
        item = self.synapse_meta_table.get_item(
            Key={ATTR_TABLE_NAME: study_id + SUFFIX_DEFAULT}
        ).get("Item")
        if item is None:
            return None
        return item.get(ATTR_TABLE_ID)

    def delete_default_table_for_study(self, study_id: str) -> None:
        """Used to clean up after the table itself has been deleted."""
        self.synapse_meta_table.delete_item(Key={ATTR_TABLE_NAME: study_id + SUFFIX_DEFAULT})

    # ------------------------------------------------------------------
    # Notifications
    # ------------------------------------------------------------------

    def get_notification_config(self, study_id: str) -> WorkerConfig:
        """Notification config for the study. Cached per study for the cache's TTL."""
        return self._notification_config_cache.get_or_load(
            study_id, lambda: self._load_notification_config(study_id)
        )

    def _load_notification_config(self, study_id: str) -> WorkerConfig:
        item = self.notification_config_table.get_item(Key={ATTR_STUDY_ID: study_id}).get("Item")
        if item is None:
            raise RecordNotFoundError(self.notification_config_table.name, study_id)
        return WorkerConfig.model_validate(_from_ddb(item))

    def get_last_notification(self, user_id: str) -> UserNotification | None:
        """The user's most recent notification, or None if they've never been sent one."""
        # Reverse sort on the range key, limited to one item.
        response = self.notification_log_table.query(
            KeyConditionExpression=Key(KEY_USER_ID).eq(user_id),
            ScanIndexForward=False,
            Limit=1,
        )
        items = response.get("Items", [])
        if not items:
            return None

        item = _from_ddb(items[0])
        return UserNotification(
            user_id=item[KEY_USER_ID],
            time=item[KEY_NOTIFICATION_TIME],
            message=item.get(KEY_MESSAGE),
            type=self._parse_notification_type(item.get(KEY_NOTIFICATION_TYPE)),
        )

    @staticmethod
    def _parse_notification_type(raw: str | None) -> NotificationType:
        # Old logs pre-date the type attribute.
        if raw is None or not raw.strip():
            return NotificationType.UNKNOWN
        try:
            return NotificationType(raw.strip())
        except ValueError:
            logger.warning("Unrecognized notification type %s, treating as UNKNOWN", raw)
            return NotificationType.UNKNOWN

    def append_notification(self, notification: UserNotification) -> None:
        """Append to the user's notification log. An existing (user, time) row is never overwritten."""
        item: dict[str, Any] = {
            KEY_USER_ID: notification.user_id,
            KEY_NOTIFICATION_TIME: notification.time,
            KEY_NOTIFICATION_TYPE: notification.type.value,
        }
        if notification.message is not None:
            item[KEY_MESSAGE] = notification.message
        self.notification_log_table.put_item(
            Item=item,
            ConditionExpression=f"attribute_not_exists({KEY_NOTIFICATION_TIME})",
        )

    # ------------------------------------------------------------------
    # Studies
    # ------------------------------------------------------------------

    def get_study(self, study_id: str) -> StudyInfo:
        item = self.study_table.get_item(Key={ATTR_IDENTIFIER: study_id}).get("Item")
        if item is None:
            raise RecordNotFoundError(self.study_table.name, study_id)
        return StudyInfo(
            study_id=study_id,
            name=item.get("name"),
            short_name=item.get("shortName"),
            support_email=item.get("supportEmail"),
        )

    # ------------------------------------------------------------------
    # Survey tables
    # ------------------------------------------------------------------

    def get_survey_table_ids(self, study_id: str) -> set[str]:
        """Survey table IDs for the study. May be empty, never None."""
        item = self.synapse_survey_tables_table.get_item(Key={ATTR_STUDY_ID: study_id}).get("Item")
        if item is None:
            return set()
        return set(item.get(ATTR_TABLE_ID_SET) or ())

    def remove_survey_table_mapping(self, study_id: str, table_id: str) -> None:
        """
        Remove a table ID from the study's survey table set, generally after the
        table itself has been deleted. Idempotent. Survey tasks run in parallel,
        so the read-modify-write is serialized per study.
        """
        with self._survey_table_locks.hold(study_id):
            table_ids = self.get_survey_table_ids(study_id)
            if table_id not in table_ids:
                return

            table_ids.discard(table_id)
            key = {ATTR_STUDY_ID: study_id}
            if table_ids:
                self.synapse_survey_tables_table.update_item(
                    Key=key,
                    UpdateExpression=f"SET {ATTR_TABLE_ID_SET} = :s",
                    ExpressionAttributeValues={":s": table_ids},
                )
            else:
                # DynamoDB can't store an empty set.
                self.synapse_survey_tables_table.update_item(
                    Key=key, UpdateExpression=f"REMOVE {ATTR_TABLE_ID_SET}"
                )
            logger.info("Removed survey table %s from study %s", table_id, study_id)

    # ------------------------------------------------------------------
    # Upload schemas and their tables
    # ------------------------------------------------------------------

    def _query_schema_index(self, study_id: str) -> Iterator[dict[str, Any]]:
        kwargs: dict[str, Any] = {
            "IndexName": self.upload_schema_study_index,
            "KeyConditionExpression": Key(ATTR_STUDY_ID).eq(study_id),
        }
        while True:
            response = self.upload_schema_table.query(**kwargs)
            yield from response.get("Items", [])
            last_key = response.get("LastEvaluatedKey")
            if not last_key:
                return
            kwargs["ExclusiveStartKey"] = last_key

    def get_table_ids_for_study(self, study_id: str) -> dict[str, UploadSchema]:
        """
        Map of table ID -> canonical upload schema for the study. Several schemas
        can map to one table (early studies did this); the one with the highest
        revision wins. Schemas with no table yet are skipped.
        """
        schemas = []
        for index_item in self._query_schema_index(study_id):
            # The index only projects studyId, key and revision.
            full_key = {"key": index_item["key"], "revision": index_item["revision"]}
            full_item = self.upload_schema_table.get_item(Key=full_key).get("Item")
            if full_item is None:
                logger.warning("Schema %s rev %s is in the study index but not the table",
                               index_item["key"], index_item["revision"])
                continue
            schemas.append(UploadSchema.from_ddb_item(_from_ddb(full_item)))

        schemas_by_table: dict[str, list[UploadSchema]] = defaultdict(list)
        for schema in schemas:
            mapping = self.synapse_map_table.get_item(Key={ATTR_SCHEMA_KEY: str(schema.key)}).get("Item")
            if mapping is None:
                # Schema was just created and its table doesn't exist yet.
                logger.info("No table for schema %s yet, skipping", schema.key)
                continue
            schemas_by_table[mapping[ATTR_TABLE_ID]].append(schema)

        return {
            table_id: max(table_schemas, key=lambda s: s.revision)
            for table_id, table_schemas in schemas_by_table.items()
        }

    def remove_table_id_mapping(self, schema_key: UploadSchemaKey) -> None:
        """Used to clean up after the table itself has been deleted."""
        self.synapse_map_table.delete_item(Key={ATTR_SCHEMA_KEY: str(schema_key)})

    # ------------------------------------------------------------------
    # Worker log
    # ------------------------------------------------------------------

    def write_worker_log(self, worker_id: str, tag: str) -> None:
        """Record a worker run with the current time and a free-text tag."""
        finish_time = self._clock()
        self.worker_log_table.put_item(
            Item={KEY_WORKER_ID: worker_id, KEY_FINISH_TIME: finish_time, KEY_TAG: tag}
        )
        logger.info("Worker log: %s finished at %d (%s)", worker_id, finish_time, tag)

"""In-memory stand-ins for boto3 DynamoDB tables – no AWS required."""

from __future__ import annotations

import copy
import re
from decimal import Decimal
from typing import Any

import pytest
from botocore.exceptions import ClientError

from worker_platform.services.cache import TTLCache
from worker_platform.services.dynamo_helper import DynamoHelper


def _to_ddb(value: Any) -> Any:
    # boto3 hands numbers back as Decimal
    if isinstance(value, bool):
        return value
    if isinstance(value, (int, float)):
        return Decimal(str(value))
    if isinstance(value, dict):
        return {k: _to_ddb(v) for k, v in value.items()}
    if isinstance(value, list):
        return [_to_ddb(v) for v in value]
    if isinstance(value, set):
        return {_to_ddb(v) for v in value}
    return value


class FakeTable:
    """Implements the subset of boto3's Table resource the helpers use."""

    def __init__(self, name: str, hash_key: str, range_key: str | None = None,
                 indexes: dict[str, tuple[str, list[str]]] | None = None, page_size: int | None = None):
        self.name = name
        self.hash_key = hash_key
        self.range_key = range_key
        # index name -> (hash key, projected attributes)
        self.indexes = indexes or {}
        self.page_size = page_size
        self.items: dict[tuple, dict[str, Any]] = {}
        self.calls: list[tuple[str, dict[str, Any]]] = []

    def _key_of(self, item: dict[str, Any]) -> tuple:
        key = (item[self.hash_key],)
        if self.range_key:
            key += (_to_ddb(item[self.range_key]),)
        return key

    def seed(self, *items: dict[str, Any]) -> None:
        for item in items:
            self.items[self._key_of(item)] = _to_ddb(copy.deepcopy(item))

    def get_item(self, Key):
        self.calls.append(("get_item", Key))
        item = self.items.get(self._key_of(Key))
        return {"Item": copy.deepcopy(item)} if item is not None else {}

    def put_item(self, Item, ConditionExpression=None):
        self.calls.append(("put_item", Item))
        key = self._key_of(Item)
        if ConditionExpression and ConditionExpression.startswith("attribute_not_exists") and key in self.items:
            raise ClientError(
                {"Error": {"Code": "ConditionalCheckFailedException", "Message": "exists"}},
                "PutItem",
            )
        self.items[key] = _to_ddb(copy.deepcopy(Item))

    def delete_item(self, Key):
        self.calls.append(("delete_item", Key))
        self.items.pop(self._key_of(Key), None)

    def update_item(self, Key, UpdateExpression, ExpressionAttributeValues=None):
        self.calls.append(("update_item", {"Key": Key, "UpdateExpression": UpdateExpression}))
        key = self._key_of(Key)
        item = self.items.setdefault(key, copy.deepcopy(Key))
        set_match = re.fullmatch(r"SET (\w+) = (:\w+)", UpdateExpression)
        remove_match = re.fullmatch(r"REMOVE (\w+)", UpdateExpression)
        if set_match:
            item[set_match.group(1)] = copy.deepcopy(ExpressionAttributeValues[set_match.group(2)])
        elif remove_match:
            item.pop(remove_match.group(1), None)
        else:
            raise ValueError(f"Unsupported update expression: {UpdateExpression}")

    def query(self, KeyConditionExpression, IndexName=None, ScanIndexForward=True, Limit=None,
              ExclusiveStartKey=None):
        self.calls.append(("query", {"IndexName": IndexName}))
        expression = KeyConditionExpression.get_expression()
        key_name = expression["values"][0].name
        key_value = expression["values"][1]

        matches = [item for item in self.items.values() if item.get(key_name) == key_value]
        projection = None
        if IndexName is not None:
            projection = self.indexes[IndexName][1]
        elif self.range_key:
            matches.sort(key=lambda item: item[self.range_key], reverse=not ScanIndexForward)

        start = ExclusiveStartKey["offset"] if ExclusiveStartKey else 0
        page_size = Limit or self.page_size or len(matches)
        page = matches[start:start + page_size]
        if projection is not None:
            page = [{attr: item[attr] for attr in projection if attr in item} for item in page]

        response: dict[str, Any] = {"Items": copy.deepcopy(page), "Count": len(page)}
        if Limit is None and start + page_size < len(matches):
            response["LastEvaluatedKey"] = {"offset": start + page_size}
        return response


class FakeClock:
    def __init__(self, now: float = 1000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def tables() -> dict[str, FakeTable]:
    return {
        "notification_config_table": FakeTable("NotificationConfig", "studyId"),
        "notification_log_table": FakeTable("NotificationLog", "userId", "notificationTime"),
        "study_table": FakeTable("Study", "identifier"),
        "synapse_map_table": FakeTable("SynapseTables", "schemaKey"),
        "synapse_meta_table": FakeTable("SynapseMetaTables", "tableName"),
        "synapse_survey_tables_table": FakeTable("SynapseSurveyTables", "studyId"),
        "upload_schema_table": FakeTable(
            "UploadSchema", "key", "revision",
            indexes={"studyId-index": ("studyId", ["key", "revision", "studyId"])},
            page_size=2,
        ),
        "worker_log_table": FakeTable("WorkerLog", "workerId", "finishTime"),
    }


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def dynamo_helper(tables, clock) -> DynamoHelper:
    return DynamoHelper(
        **tables,
        notification_config_cache=TTLCache(ttl_seconds=300, clock=clock),
        clock=lambda: 1_700_000_000_123,
    )

"""
Thin client for the Synapse table REST API.

Only the calls the exporters need: column schema introspection and appending
partial (sparse) rows. Transient failures on the column fetch are retried with
exponential backoff; everything else propagates.
"""

from __future__ import annotations

import logging
from typing import Any

import requests
from tenacity import (
    Retrying,
    before_sleep_log,
    retry_if_exception,
    stop_after_attempt,
    wait_exponential,
)

from worker_platform.config import Settings
from worker_platform.errors import SynapseError
from worker_platform.schemas.camel_model import CamelCaseModel

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT_SECONDS = 30


class ColumnModel(CamelCaseModel):
    id: str
    name: str
    column_type: str | None = None
    maximum_size: int | None = None


def _is_transient(exc: BaseException) -> bool:
    if isinstance(exc, (requests.ConnectionError, requests.Timeout)):
        return True
    return isinstance(exc, SynapseError) and exc.retryable


class SynapseHelper:
    def __init__(
        self,
        endpoint: str,
        auth_token: str,
        session: requests.Session | None = None,
        max_attempts: int = 5,
        min_wait_seconds: float = 1,
        max_wait_seconds: float = 30,
    ):
        self.endpoint = endpoint.rstrip("/")
        self.session = session or requests.Session()
        if auth_token:
            self.session.headers["Authorization"] = f"Bearer {auth_token}"
        self.max_attempts = max_attempts
        self.min_wait_seconds = min_wait_seconds
        self.max_wait_seconds = max_wait_seconds

    @classmethod
    def from_settings(cls, settings: Settings) -> SynapseHelper:
        return cls(
            settings.SYNAPSE_ENDPOINT,
            settings.SYNAPSE_AUTH_TOKEN,
            max_attempts=settings.SYNAPSE_MAX_ATTEMPTS,
        )

    def _request(self, method: str, path: str, **kwargs) -> Any:
        resp = self.session.request(
            method, f"{self.endpoint}{path}", timeout=DEFAULT_TIMEOUT_SECONDS, **kwargs
        )
        if not 200 <= resp.status_code < 300:
            raise SynapseError(resp.status_code, resp.text)
        return resp.json()

    def get_column_models_for_table(self, table_id: str) -> list[ColumnModel]:
        body = self._request("GET", f"/repo/v1/entity/{table_id}/column")
        return [ColumnModel.model_validate(c) for c in body.get("results", [])]

    def get_column_models_for_table_with_retry(self, table_id: str) -> list[ColumnModel]:
        retrying = Retrying(
            stop=stop_after_attempt(self.max_attempts),
            wait=wait_exponential(multiplier=1, min=self.min_wait_seconds, max=self.max_wait_seconds),
            retry=retry_if_exception(_is_transient),
            before_sleep=before_sleep_log(logger, logging.WARNING),
            reraise=True,
        )
        return retrying(self.get_column_models_for_table, table_id)

    def append_rows(self, table_id: str, rows: list[dict[str, str]]) -> str:
        """
        Start an async append of sparse rows (column ID -> value) to the table.
        Returns the async job token.
        """
        body = {
            "concreteType": "org.sagebionetworks.repo.model.table.AppendableRowSetRequest",
            "entityId": table_id,
            "toAppend": {
                "concreteType": "org.sagebionetworks.repo.model.table.PartialRowSet",
                "tableId": table_id,
                "rows": [{"values": row} for row in rows],
            },
        }
        result = self._request(
            "POST", f"/repo/v1/entity/{table_id}/table/append/async/start", json=body
        )
        logger.info("Appending %d rows to %s, job %s", len(rows), table_id, result.get("token"))
        return result["token"]

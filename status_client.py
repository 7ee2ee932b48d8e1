"""
Status Client
=============

Reads job status rows from the n8n data table that the workflow writes to.

Table columns used:
- jobId: identifier returned by the webhook
- status: pending | processing | done | failed
- htmlBase64: result document (done only)
- error: failure detail (failed only)
- updatedAt: last write timestamp

The client never caches: every call is a fresh query.
"""

import json
import logging
from typing import Any, Dict, Optional

import requests

from config import Config, get_config
from models import JobStatus, StatusRecord

logger = logging.getLogger(__name__)


class StatusConfigurationError(Exception):
    """Required n8n API settings are missing"""

    def __init__(self, missing: Dict[str, bool]):
        self.missing = missing
        names = ", ".join(key for key, absent in missing.items() if absent)
        super().__init__(f"n8n API is not configured (missing: {names})")

    def to_dict(self) -> Dict[str, Any]:
        return {'error': "n8n API is not configured", 'missing': self.missing}


class StatusQueryError(Exception):
    """The status table could not be queried"""

    def __init__(self, message: str, status_code: int):
        self.message = message
        self.status_code = status_code
        super().__init__(f"{message} (status {status_code})")

    def to_dict(self) -> Dict[str, Any]:
        return {'error': self.message, 'status': self.status_code}


def parse_status(value: Any) -> JobStatus:
    """Map a raw status cell to JobStatus (unknown values count as processing)"""
    try:
        status = JobStatus(str(value).strip().lower())
    except ValueError:
        logger.warning(f"Unknown job status '{value}', treating as processing")
        return JobStatus.PROCESSING
    if status == JobStatus.NOT_FOUND:
        # not_found is never stored in the table; a row exists
        return JobStatus.PENDING
    return status


class StatusClient:
    """Queries the n8n status table by job id"""

    def __init__(self, config: Optional[Config] = None):
        self.config = config or get_config()

    @property
    def rows_url(self) -> str:
        base = self.config.n8n_api_url.rstrip('/')
        table = self.config.n8n_data_table_id
        if self.config.n8n_project_id:
            return f"{base}/projects/{self.config.n8n_project_id}/data-tables/{table}/rows"
        return f"{base}/data-tables/{table}/rows"

    def fetch(self, job_id: str) -> StatusRecord:
        """
        Look up the current status of a job.

        Args:
            job_id: Identifier assigned by the workflow

        Returns:
            StatusRecord (status NOT_FOUND if the row does not exist yet)

        Raises:
            ValueError: job_id is empty
            StatusConfigurationError: API URL, key or table id missing
            StatusQueryError: the API could not be reached or refused the query
        """
        if not job_id:
            raise ValueError("Missing jobId")

        missing = self.config.missing_status_settings()
        if any(missing.values()):
            raise StatusConfigurationError(missing)

        params = {
            'limit': '1',
            'filter': json.dumps({'jobId': {'value': job_id, 'operation': '='}}),
        }
        headers = {
            'X-N8N-API-KEY': self.config.n8n_api_key,
            'Cache-Control': 'no-cache',
        }

        try:
            response = requests.get(
                self.rows_url,
                params=params,
                headers=headers,
                timeout=self.config.status_timeout_seconds,
            )
        except requests.exceptions.RequestException as e:
            logger.error(f"Cannot reach n8n API for job {job_id}: {e}")
            raise StatusQueryError(f"Cannot reach n8n API: {e}", 503) from e

        if not response.ok:
            logger.error(f"Status query for job {job_id} failed with {response.status_code}")
            raise StatusQueryError("Failed to query workflow status", response.status_code)

        try:
            payload = response.json()
        except ValueError as e:
            raise StatusQueryError("Invalid JSON from n8n API", 502) from e

        rows = payload.get('data') if isinstance(payload, dict) else None
        row = rows[0] if isinstance(rows, list) and rows else None

        if not row:
            logger.info(f"No status row yet for job {job_id}")
            return StatusRecord.not_found(job_id)

        record = StatusRecord.from_row(job_id, row, parse_status(row.get('status')))
        logger.info(f"Job {job_id} status: {record.status.value}")
        return record

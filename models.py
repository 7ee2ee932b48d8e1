"""
Workflow Models
===============

Shared data structures for the upload wizard, the submission proxy and the
status poller.

- UploadJob: what the wizard hands to the proxy
- ProxyResult: normalized outcome of one webhook call
- StatusRecord: one row of the n8n status table
"""

import base64
import binascii
import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional


PDF_MIME_TYPE = "application/pdf"

# local-part "@" domain-with-dot, no whitespace
EMAIL_PATTERN = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")


def is_valid_email(value: str) -> bool:
    """Check a single address against the email pattern"""
    return bool(value) and EMAIL_PATTERN.match(value) is not None


class ErrorKind(Enum):
    """Failure categories reported by the proxy"""
    CONFIGURATION_MISSING = "configuration_missing"
    CLIENT_INPUT_INVALID = "client_input_invalid"
    CONNECTIVITY_FAILURE = "connectivity_failure"
    REMOTE_WORKFLOW_ERROR = "remote_workflow_error"
    EMPTY_RESPONSE = "empty_response"
    UNEXPECTED_CONTENT_TYPE = "unexpected_content_type"
    MALFORMED_JSON = "malformed_json"
    MISSING_EXPECTED_FIELD = "missing_expected_field"
    UNKNOWN_ERROR = "unknown_error"


class ErrorCode:
    """Stable machine-readable error codes"""
    WEBHOOK_URL_MISSING = "WEBHOOK_URL_MISSING"
    FILE_MISSING = "FILE_MISSING"
    INVALID_FILE_TYPE = "INVALID_FILE_TYPE"
    FILE_TOO_LARGE = "FILE_TOO_LARGE"
    EMAILS_MISSING = "EMAILS_MISSING"
    INVALID_EMAILS = "INVALID_EMAILS"
    SUBMISSION_IN_PROGRESS = "SUBMISSION_IN_PROGRESS"
    SUBMISSION_NOT_READY = "SUBMISSION_NOT_READY"
    WEBHOOK_CONNECTION_FAILED = "WEBHOOK_CONNECTION_FAILED"
    WEBHOOK_NOT_AVAILABLE = "WEBHOOK_NOT_AVAILABLE"
    WORKFLOW_ERROR = "WORKFLOW_ERROR"
    EMPTY_RESPONSE = "EMPTY_RESPONSE"
    INVALID_CONTENT_TYPE = "INVALID_CONTENT_TYPE"
    JSON_SYNTAX_ERROR = "JSON_SYNTAX_ERROR"
    INVALID_JSON_FORMAT = "INVALID_JSON_FORMAT"
    MISSING_HTML_FIELD = "MISSING_HTML_FIELD"
    RESPONSE_READ_ERROR = "RESPONSE_READ_ERROR"
    UNEXPECTED_ERROR = "UNEXPECTED_ERROR"


@dataclass
class UploadJob:
    """A single PDF job as collected by the wizard"""
    file_bytes: Optional[bytes] = None
    filename: str = "document.pdf"
    mime_type: str = ""
    instructions: str = ""
    recipients: List[str] = field(default_factory=list)
    # set when the raw recipients field could not be decoded
    recipients_error: Optional[str] = None
    job_id: Optional[str] = None

    @property
    def has_file(self) -> bool:
        return self.file_bytes is not None

    @property
    def size_mb(self) -> float:
        return len(self.file_bytes or b"") / (1024 * 1024)


@dataclass
class ProxyResult:
    """
    Outcome of a submission.

    Exactly one variant is populated: `data` on success, the error fields
    (`kind`, `code`, `message`, ...) on failure.
    """
    ok: bool
    data: Optional[Dict[str, Any]] = None
    kind: Optional[ErrorKind] = None
    code: Optional[str] = None
    message: str = ""
    details: Optional[str] = None
    troubleshooting: List[str] = field(default_factory=list)
    http_status: int = 200
    extra: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def success(cls, data: Dict[str, Any]) -> 'ProxyResult':
        return cls(ok=True, data=data, http_status=200)

    @classmethod
    def failure(
        cls,
        kind: ErrorKind,
        code: str,
        message: str,
        details: Optional[str] = None,
        troubleshooting: Optional[List[str]] = None,
        http_status: int = 500,
        **extra: Any
    ) -> 'ProxyResult':
        return cls(
            ok=False,
            kind=kind,
            code=code,
            message=message,
            details=details,
            troubleshooting=list(troubleshooting or []),
            http_status=http_status,
            extra=extra,
        )

    @property
    def html(self) -> Optional[str]:
        if not self.ok or not self.data:
            return None
        return self.data.get('html')

    @property
    def job_id(self) -> Optional[str]:
        if not self.ok or not self.data:
            return None
        job_id = self.data.get('jobId')
        return str(job_id) if job_id else None

    def to_response_body(self) -> Dict[str, Any]:
        """JSON body returned by the submission endpoint"""
        if self.ok:
            return dict(self.data or {})

        body: Dict[str, Any] = {
            'error': self.message,
            'errorCode': self.code,
        }
        if self.details:
            body['details'] = self.details
        if self.troubleshooting:
            body['troubleshooting'] = self.troubleshooting
        body.update(self.extra)
        return body


class JobStatus(Enum):
    """Processing state of a job in the n8n status table"""
    PENDING = "pending"
    PROCESSING = "processing"
    DONE = "done"
    FAILED = "failed"
    NOT_FOUND = "not_found"

    @property
    def is_terminal(self) -> bool:
        return self in (JobStatus.DONE, JobStatus.FAILED)


@dataclass
class StatusRecord:
    """Status row for one job"""
    job_id: str
    status: JobStatus
    html_base64: Optional[str] = None
    error: Optional[str] = None
    updated_at: Optional[str] = None

    @classmethod
    def not_found(cls, job_id: str) -> 'StatusRecord':
        return cls(job_id=job_id, status=JobStatus.NOT_FOUND)

    @classmethod
    def from_row(cls, job_id: str, row: Dict[str, Any], status: JobStatus) -> 'StatusRecord':
        # payload only accompanies `done`, error detail only accompanies `failed`
        return cls(
            job_id=str(row.get('jobId') or job_id),
            status=status,
            html_base64=row.get('htmlBase64') if status == JobStatus.DONE else None,
            error=row.get('error') if status == JobStatus.FAILED else None,
            updated_at=row.get('updatedAt'),
        )

    def decoded_html(self) -> Optional[str]:
        """Decode the base64 result payload, None if absent or corrupt"""
        if not self.html_base64:
            return None
        try:
            # payloads may be line-wrapped
            compact = "".join(self.html_base64.split())
            return base64.b64decode(compact, validate=True).decode('utf-8')
        except (binascii.Error, UnicodeDecodeError, ValueError):
            return None

    def to_dict(self) -> Dict[str, Any]:
        """JSON body returned by the status endpoint"""
        if self.status == JobStatus.NOT_FOUND:
            return {'status': JobStatus.NOT_FOUND.value}

        body: Dict[str, Any] = {'status': self.status.value}
        if self.html_base64 is not None:
            body['htmlBase64'] = self.html_base64
        if self.error is not None:
            body['error'] = self.error
        if self.updated_at is not None:
            body['updatedAt'] = self.updated_at
        return body

"""
Workflow Proxy
==============

Forwards an upload job to the n8n webhook and normalizes its reply.

The webhook is a black box: it may answer with JSON (`{"html": ...}`), with a
raw HTML document, or with something broken. Every outcome is folded into a
single ProxyResult so callers never branch on transport details:

1. Configuration check (webhook URL)
2. Input validation (file, PDF type, size, recipients)
3. Multipart POST with an explicit timeout
4. Status-code handling (404 = workflow unavailable)
5. Body parsing, with the parser chosen by content-type

No retries are attempted; each failure is reported once.
"""

import json
import logging
from typing import Any, Dict, List, Optional

import requests

from config import Config, get_config
from models import (
    PDF_MIME_TYPE,
    ErrorCode,
    ErrorKind,
    ProxyResult,
    UploadJob,
    is_valid_email,
)

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

ERROR_TEXT_PREVIEW = 200
CONTENT_TYPE_PREVIEW = 200
JSON_PREVIEW = 300

HTML_CONTENT_TYPES = ("text/html", "application/xhtml+xml")
HTML_SUFFIXES = (".html", ".htm")


def truncate(text: str, limit: int) -> str:
    """Bounded preview of a long body"""
    return f"{text[:limit]}..." if len(text) > limit else text


def parse_emails_field(raw: Optional[str]) -> List[str]:
    """
    Decode the `emails` multipart field.

    Args:
        raw: JSON-encoded array of strings (or None)

    Returns:
        List of address strings (may be empty)

    Raises:
        ValueError: If the field is not a JSON array of strings
    """
    if raw is None or not raw.strip():
        return []
    try:
        value = json.loads(raw)
    except ValueError as e:
        raise ValueError(f"emails must be a JSON array of strings: {e}") from e
    if not isinstance(value, list) or not all(isinstance(v, str) for v in value):
        raise ValueError("emails must be a JSON array of strings")
    return value


# ==================== RESPONSE PARSERS ====================

class ResponseParser:
    """Turns a non-empty webhook body into a ProxyResult"""

    name = "base"

    def parse(self, raw_text: str) -> ProxyResult:
        raise NotImplementedError


class JsonResponseParser(ResponseParser):
    """Strict JSON; requires an `html` string field"""

    name = "json"

    def parse(self, raw_text: str) -> ProxyResult:
        try:
            data = json.loads(raw_text)
        except ValueError as e:
            logger.error(f"JSON parse error: {e}")
            logger.error(f"Response that failed to parse (first 500 chars): {raw_text[:500]}")
            return self._parse_failure(raw_text)

        logger.info(f"Successfully parsed JSON. Keys: {list(data) if isinstance(data, dict) else type(data).__name__}")
        return self._require_html(data)

    def _parse_failure(self, raw_text: str) -> ProxyResult:
        stripped = raw_text.strip()
        if stripped.startswith("{") or stripped.startswith("["):
            return ProxyResult.failure(
                ErrorKind.MALFORMED_JSON,
                ErrorCode.JSON_SYNTAX_ERROR,
                "Invalid JSON syntax in workflow response",
                details=(
                    "The response looks like JSON but has syntax errors. "
                    "This usually means unescaped quotes in the HTML content."
                ),
                troubleshooting=[
                    "In the 'Respond to Webhook' node, escape the HTML with JSON.stringify():",
                    '  Response Body: {"html":{{ JSON.stringify($json.cleaned_html) }}}',
                    "Check the response preview to see where the JSON syntax breaks",
                ],
                responsePreview=raw_text[:JSON_PREVIEW],
                responseLength=len(raw_text),
            )

        return ProxyResult.failure(
            ErrorKind.MALFORMED_JSON,
            ErrorCode.INVALID_JSON_FORMAT,
            "Invalid JSON response from workflow",
            details="The response is not valid JSON format.",
            troubleshooting=[
                "Set the 'Respond to Webhook' node to 'JSON' mode",
                'Or use \'Text\' mode with a valid JSON string: {"html": "..."}',
                "Ensure the Content-Type header is set to application/json",
            ],
            responsePreview=raw_text[:JSON_PREVIEW],
            responseLength=len(raw_text),
        )

    @staticmethod
    def _require_html(data: Any) -> ProxyResult:
        available = list(data.keys()) if isinstance(data, dict) else []
        html = data.get('html') if isinstance(data, dict) else None

        if not isinstance(html, str) or not html:
            first_field = available[0] if available else "unknown field"
            return ProxyResult.failure(
                ErrorKind.MISSING_EXPECTED_FIELD,
                ErrorCode.MISSING_HTML_FIELD,
                "Invalid response from workflow: missing html field",
                details="The response is valid JSON but doesn't contain an 'html' field.",
                troubleshooting=[
                    f"The JSON response has these fields: {', '.join(available) or 'none'}",
                    'Update the \'Respond to Webhook\' node to return: {"html": "..."}',
                    f"Or read the output from: {first_field}",
                ],
                availableFields=available,
            )

        return ProxyResult.success(data)


class HtmlResponseParser(ResponseParser):
    """Raw HTML body is wrapped as {"html": body}"""

    name = "html"

    def parse(self, raw_text: str) -> ProxyResult:
        return ProxyResult.success({'html': raw_text})


def _disposition_is_html(content_disposition: str) -> bool:
    value = content_disposition.lower()
    if 'attachment' not in value:
        return False
    for part in value.split(';'):
        part = part.strip()
        if part.startswith('filename'):
            filename = part.split('=', 1)[-1].strip().strip('"\'')
            if filename.endswith(HTML_SUFFIXES):
                return True
    return False


def select_parser(content_type: Optional[str], content_disposition: Optional[str] = None) -> Optional[ResponseParser]:
    """
    Pick a parser for the response.

    Returns:
        JsonResponseParser for application/json (or a missing content-type),
        HtmlResponseParser for HTML types or an .html attachment,
        None when the format is not recognized
    """
    media_type = (content_type or "").split(';')[0].strip().lower()

    if media_type in HTML_CONTENT_TYPES:
        return HtmlResponseParser()
    if content_disposition and _disposition_is_html(content_disposition):
        return HtmlResponseParser()
    if not media_type or media_type == "application/json":
        return JsonResponseParser()
    return None


# ==================== PROXY ====================

class WorkflowProxy:
    """Submits upload jobs to the n8n webhook"""

    def __init__(self, config: Optional[Config] = None):
        """Initialize proxy"""
        self.config = config or get_config()

    def validate_job(self, job: UploadJob) -> Optional[ProxyResult]:
        """
        Reject a job before anything is forwarded.

        Returns:
            A client-error ProxyResult, or None if the job is valid
        """
        if not job.has_file:
            return ProxyResult.failure(
                ErrorKind.CLIENT_INPUT_INVALID,
                ErrorCode.FILE_MISSING,
                "No file provided",
                details="The 'file' field is required in the form data.",
                http_status=400,
            )

        if job.mime_type != PDF_MIME_TYPE:
            return ProxyResult.failure(
                ErrorKind.CLIENT_INPUT_INVALID,
                ErrorCode.INVALID_FILE_TYPE,
                "Only PDF files are allowed",
                details=f"Received file type: {job.mime_type or 'unknown'}. Expected: {PDF_MIME_TYPE}",
                http_status=400,
            )

        if job.size_mb > self.config.max_upload_size_mb:
            return ProxyResult.failure(
                ErrorKind.CLIENT_INPUT_INVALID,
                ErrorCode.FILE_TOO_LARGE,
                f"File too large ({job.size_mb:.2f} MB)",
                details=f"Maximum upload size is {self.config.max_upload_size_mb} MB.",
                http_status=400,
            )

        if job.recipients_error:
            return ProxyResult.failure(
                ErrorKind.CLIENT_INPUT_INVALID,
                ErrorCode.INVALID_EMAILS,
                "Invalid emails field",
                details=job.recipients_error,
                http_status=400,
            )

        if not job.recipients:
            return ProxyResult.failure(
                ErrorKind.CLIENT_INPUT_INVALID,
                ErrorCode.EMAILS_MISSING,
                "No recipients provided",
                details="The 'emails' field must contain at least one email address.",
                http_status=400,
            )

        invalid = [email for email in job.recipients if not is_valid_email(email)]
        if invalid:
            return ProxyResult.failure(
                ErrorKind.CLIENT_INPUT_INVALID,
                ErrorCode.INVALID_EMAILS,
                "Invalid recipient email address",
                details=f"Invalid addresses: {', '.join(invalid)}",
                http_status=400,
                invalidEmails=invalid,
            )

        return None

    def submit(self, job: UploadJob) -> ProxyResult:
        """
        Forward a job to the webhook.

        Args:
            job: The validated upload job

        Returns:
            ProxyResult (success carries the webhook's JSON passthrough)
        """
        try:
            return self._submit(job)
        except Exception as e:
            logger.exception("Error processing workflow request")
            return ProxyResult.failure(
                ErrorKind.UNKNOWN_ERROR,
                ErrorCode.UNEXPECTED_ERROR,
                str(e) or "Unknown error occurred",
                details="An unexpected error occurred while processing the workflow request.",
                http_status=500,
            )

    def _submit(self, job: UploadJob) -> ProxyResult:
        webhook_url = self.config.webhook_url
        if not webhook_url:
            return ProxyResult.failure(
                ErrorKind.CONFIGURATION_MISSING,
                ErrorCode.WEBHOOK_URL_MISSING,
                "N8N_WEBHOOK_URL is not configured",
                details=(
                    "The N8N_WEBHOOK_URL environment variable is not set. "
                    "Add it to your .env file or .streamlit/secrets.toml."
                ),
                http_status=500,
            )

        rejection = self.validate_job(job)
        if rejection:
            logger.warning(f"Rejected upload before forwarding: {rejection.code}")
            return rejection

        files = {'file': (job.filename or "document.pdf", job.file_bytes, PDF_MIME_TYPE)}
        data = {
            'instructions': job.instructions or "",
            'emails': json.dumps(job.recipients),
        }

        logger.info(f"Calling n8n webhook: {webhook_url}")
        timeout = self.config.webhook_timeout_seconds
        try:
            response = requests.post(webhook_url, files=files, data=data, timeout=timeout)
        except requests.exceptions.Timeout as e:
            logger.error(f"Timed out calling n8n webhook after {timeout}s: {e}")
            return self._connection_failure(webhook_url, f"Request timed out after {timeout:g}s")
        except requests.exceptions.RequestException as e:
            logger.error(f"Network error calling n8n webhook: {e}")
            return self._connection_failure(webhook_url, str(e) or "Network error")

        if not response.ok:
            return self._remote_failure(response)

        return self._read_success(response)

    @staticmethod
    def _connection_failure(webhook_url: str, reason: str) -> ProxyResult:
        return ProxyResult.failure(
            ErrorKind.CONNECTIVITY_FAILURE,
            ErrorCode.WEBHOOK_CONNECTION_FAILED,
            f"Failed to connect to webhook: {reason}",
            details=f"Cannot reach n8n webhook at {webhook_url}.",
            troubleshooting=[
                "Check that the webhook URL is correct",
                "Check that the n8n workflow is active",
                "Check that the network or firewall allows the connection",
            ],
            http_status=503,
            webhookUrl=webhook_url,
        )

    @staticmethod
    def _remote_failure(response: requests.Response) -> ProxyResult:
        status = response.status_code
        message = f"Workflow failed: {response.reason or status}"

        raw_text = response.text or ""
        try:
            payload = json.loads(raw_text)
        except ValueError:
            if raw_text.strip():
                message = truncate(raw_text, ERROR_TEXT_PREVIEW)
        else:
            if isinstance(payload, dict) and (payload.get('error') or payload.get('message')):
                message = str(payload.get('error') or payload.get('message'))

        logger.error(f"n8n webhook error ({status}): {message}")

        if status == 404:
            return ProxyResult.failure(
                ErrorKind.REMOTE_WORKFLOW_ERROR,
                ErrorCode.WEBHOOK_NOT_AVAILABLE,
                "Workflow unavailable",
                details=(
                    f"n8n returned 404 ({message}). The workflow is not active, "
                    "or a single-use test webhook URL has already been consumed."
                ),
                troubleshooting=[
                    "Activate the workflow in n8n and use its production webhook URL",
                    "When testing, click 'Execute workflow' in n8n before each submission",
                ],
                http_status=404,
                statusCode=404,
            )

        return ProxyResult.failure(
            ErrorKind.REMOTE_WORKFLOW_ERROR,
            ErrorCode.WORKFLOW_ERROR,
            message,
            details=f"n8n workflow returned status {status}. Check the n8n Executions tab for workflow errors.",
            http_status=status,
            statusCode=status,
        )

    def _read_success(self, response: requests.Response) -> ProxyResult:
        content_type = response.headers.get('content-type')
        content_disposition = response.headers.get('content-disposition')
        logger.info(
            f"Response headers: content-type={content_type}, "
            f"content-length={response.headers.get('content-length')}, status={response.status_code}"
        )

        try:
            raw_text = response.text
        except (UnicodeDecodeError, LookupError) as e:
            logger.error(f"Failed to read response: {e}")
            return ProxyResult.failure(
                ErrorKind.UNKNOWN_ERROR,
                ErrorCode.RESPONSE_READ_ERROR,
                f"Failed to read response from workflow: {e}",
                details="Could not read the response body from the n8n webhook.",
                http_status=500,
            )

        logger.info(f"Raw response length: {len(raw_text)}")
        logger.debug(f"Raw response (first 1000 chars): {raw_text[:1000]}")

        if not raw_text.strip():
            logger.error("Empty response received from n8n webhook")
            return ProxyResult.failure(
                ErrorKind.EMPTY_RESPONSE,
                ErrorCode.EMPTY_RESPONSE,
                "Empty response received from workflow",
                details=f"The n8n webhook returned HTTP {response.status_code} but the response body is empty (0 bytes).",
                troubleshooting=[
                    "Check the n8n Executions tab: did the workflow complete successfully?",
                    "Open the 'Respond to Webhook' node in the execution: does it show data in INPUT?",
                    "Verify the response expression matches the field name produced upstream",
                    "Ensure the node producing the HTML is connected to 'Respond to Webhook'",
                    "Check that 'Respond to Webhook' sends a body with Content-Type: application/json",
                ],
                http_status=500,
            )

        parser = select_parser(content_type, content_disposition)
        if parser is None:
            logger.error(f"Unrecognized response format. Content-Type: {content_type}")
            return ProxyResult.failure(
                ErrorKind.UNEXPECTED_CONTENT_TYPE,
                ErrorCode.INVALID_CONTENT_TYPE,
                f"Invalid response format. Expected JSON or HTML but got {content_type}",
                details=f"n8n returned Content-Type: {content_type}",
                troubleshooting=[
                    "In the 'Respond to Webhook' node, add header: Content-Type: application/json",
                    "Or return the document with Content-Type: text/html",
                ],
                http_status=500,
                responsePreview=raw_text[:CONTENT_TYPE_PREVIEW],
            )

        logger.info(f"Parsing workflow response as {parser.name}")
        return parser.parse(raw_text)

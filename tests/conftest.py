import sys
from http import HTTPStatus
from io import BytesIO
from pathlib import Path

import pytest
import requests
from PyPDF2 import PdfWriter

# Ensure the project root is on sys.path so tests can import the flat modules.
ROOT = Path(__file__).resolve().parent.parent
sys.path.insert(0, str(ROOT))

from config import Config  # noqa: E402

WEBHOOK_URL = "https://n8n.example.com/webhook/intextive"


def build_response(status=200, body="", content_type="application/json", headers=None):
    """A real requests.Response with a canned body"""
    response = requests.Response()
    response.status_code = status
    response._content = body.encode("utf-8") if isinstance(body, str) else body
    response.encoding = "utf-8"
    response.reason = HTTPStatus(status).phrase
    response.url = WEBHOOK_URL
    if content_type is not None:
        response.headers["Content-Type"] = content_type
    response.headers.update(headers or {})
    return response


@pytest.fixture
def make_response():
    return build_response


@pytest.fixture
def config():
    return Config(
        webhook_url=WEBHOOK_URL,
        webhook_timeout_seconds=30,
        n8n_api_url="https://n8n.example.com/api/v1",
        n8n_api_key="test-api-key",
        n8n_data_table_id="tbl123",
        processing_countdown_seconds=3,
        status_poll_interval_seconds=60,
        max_upload_size_mb=5,
    )


@pytest.fixture
def pdf_bytes():
    writer = PdfWriter()
    writer.add_blank_page(width=72, height=72)
    buffer = BytesIO()
    writer.write(buffer)
    return buffer.getvalue()

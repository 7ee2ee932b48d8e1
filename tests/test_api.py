"""Tests for the HTTP endpoints"""

import json
from unittest.mock import patch

import pytest
import requests
from fastapi.testclient import TestClient

from api import app, get_settings


@pytest.fixture
def client(config):
    app.dependency_overrides[get_settings] = lambda: config
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def upload(pdf_bytes):
    return {
        'files': {'file': ("report.pdf", pdf_bytes, "application/pdf")},
        'data': {'instructions': "Be brief", 'emails': json.dumps(["a@x.com"])},
    }


class TestRunWorkflow:

    def test_success(self, client, upload, make_response):
        response = make_response(200, json.dumps({"html": "<p>hi</p>", "jobId": "job-1"}))
        with patch('workflow_proxy.requests.post', return_value=response) as post:
            resp = client.post("/api/run-workflow", **upload)

        assert resp.status_code == 200
        assert resp.json() == {"html": "<p>hi</p>", "jobId": "job-1"}
        kwargs = post.call_args[1]
        assert kwargs['data']['instructions'] == "Be brief"
        assert json.loads(kwargs['data']['emails']) == ["a@x.com"]
        assert kwargs['files']['file'][0] == "report.pdf"

    def test_missing_file(self, client):
        with patch('workflow_proxy.requests.post') as post:
            resp = client.post("/api/run-workflow", data={'emails': json.dumps(["a@x.com"])})

        assert resp.status_code == 400
        assert resp.json()['errorCode'] == "FILE_MISSING"
        post.assert_not_called()

    def test_non_pdf(self, client):
        with patch('workflow_proxy.requests.post') as post:
            resp = client.post(
                "/api/run-workflow",
                files={'file': ("photo.png", b"\x89PNG", "image/png")},
                data={'emails': json.dumps(["a@x.com"])},
            )

        assert resp.status_code == 400
        assert resp.json()['errorCode'] == "INVALID_FILE_TYPE"
        post.assert_not_called()

    def test_missing_emails(self, client, pdf_bytes):
        with patch('workflow_proxy.requests.post') as post:
            resp = client.post(
                "/api/run-workflow",
                files={'file': ("report.pdf", pdf_bytes, "application/pdf")},
            )

        assert resp.status_code == 400
        assert resp.json()['errorCode'] == "EMAILS_MISSING"
        post.assert_not_called()

    def test_malformed_emails(self, client, upload):
        upload['data']['emails'] = "a@x.com"
        resp = client.post("/api/run-workflow", **upload)

        assert resp.status_code == 400
        assert resp.json()['errorCode'] == "INVALID_EMAILS"

    def test_missing_file_reported_before_malformed_emails(self, client):
        resp = client.post("/api/run-workflow", data={'emails': "not json"})

        assert resp.status_code == 400
        assert resp.json()['errorCode'] == "FILE_MISSING"

    def test_missing_webhook_reported_before_malformed_emails(self, client, config, upload):
        config.webhook_url = ""
        upload['data']['emails'] = "not json"
        resp = client.post("/api/run-workflow", **upload)

        assert resp.status_code == 500
        assert resp.json()['errorCode'] == "WEBHOOK_URL_MISSING"

    def test_non_pdf_reported_before_malformed_emails(self, client):
        resp = client.post(
            "/api/run-workflow",
            files={'file': ("photo.png", b"\x89PNG", "image/png")},
            data={'emails': "[1, 2]"},
        )

        assert resp.json()['errorCode'] == "INVALID_FILE_TYPE"

    def test_webhook_not_configured(self, client, config, upload):
        config.webhook_url = ""
        with patch('workflow_proxy.requests.post') as post:
            resp = client.post("/api/run-workflow", **upload)

        assert resp.status_code == 500
        assert resp.json()['errorCode'] == "WEBHOOK_URL_MISSING"
        post.assert_not_called()

    def test_workflow_unavailable(self, client, upload, make_response):
        with patch('workflow_proxy.requests.post', return_value=make_response(404, "", content_type=None)):
            resp = client.post("/api/run-workflow", **upload)

        assert resp.status_code == 404
        body = resp.json()
        assert body['errorCode'] == "WEBHOOK_NOT_AVAILABLE"
        assert body['error'] == "Workflow unavailable"
        assert body['statusCode'] == 404

    def test_connection_failure(self, client, upload, config):
        with patch('workflow_proxy.requests.post', side_effect=requests.exceptions.ConnectionError("refused")):
            resp = client.post("/api/run-workflow", **upload)

        assert resp.status_code == 503
        body = resp.json()
        assert body['errorCode'] == "WEBHOOK_CONNECTION_FAILED"
        assert body['webhookUrl'] == config.webhook_url
        assert body['troubleshooting']

    def test_html_response_wrapped(self, client, upload, make_response):
        response = make_response(200, "<html>ok</html>", content_type="text/html")
        with patch('workflow_proxy.requests.post', return_value=response):
            resp = client.post("/api/run-workflow", **upload)

        assert resp.status_code == 200
        assert resp.json() == {"html": "<html>ok</html>"}


class TestWorkflowStatus:

    def test_missing_job_id(self, client):
        resp = client.get("/api/workflow-status")

        assert resp.status_code == 400
        assert resp.json() == {"error": "Missing jobId"}

    def test_not_configured(self, client, config):
        config.n8n_api_key = ""
        with patch('status_client.requests.get') as get:
            resp = client.get("/api/workflow-status", params={'jobId': "job-1"})

        assert resp.status_code == 500
        assert resp.json() == {
            "error": "n8n API is not configured",
            "missing": {"apiUrl": False, "apiKey": True, "tableId": False},
        }
        get.assert_not_called()

    def test_not_found(self, client, make_response):
        with patch('status_client.requests.get', return_value=make_response(200, json.dumps({"data": []}))):
            resp = client.get("/api/workflow-status", params={'jobId': "job-1"})

        assert resp.status_code == 200
        assert resp.json() == {"status": "not_found"}

    def test_done(self, client, make_response):
        row = {"jobId": "job-1", "status": "done", "htmlBase64": "PHA+aGk8L3A+", "updatedAt": "2024-05-01"}
        with patch('status_client.requests.get', return_value=make_response(200, json.dumps({"data": [row]}))):
            resp = client.get("/api/workflow-status", params={'jobId': "job-1"})

        assert resp.json() == {"status": "done", "htmlBase64": "PHA+aGk8L3A+", "updatedAt": "2024-05-01"}

    def test_remote_failure_status_mirrored(self, client, make_response):
        with patch('status_client.requests.get', return_value=make_response(403, "{}")):
            resp = client.get("/api/workflow-status", params={'jobId': "job-1"})

        assert resp.status_code == 403
        assert resp.json() == {"error": "Failed to query workflow status", "status": 403}


def test_health_hides_secrets(client, config):
    config.admin_password = "hunter2"
    resp = client.get("/health")

    assert resp.status_code == 200
    body = resp.json()
    assert body['status'] == "ok"
    assert body['has_webhook_url'] is True
    assert body['has_admin_password'] is True
    assert "hunter2" not in resp.text
    assert config.n8n_api_key not in resp.text
    assert config.webhook_url not in resp.text

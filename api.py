"""
Workflow API
============

HTTP surface for the submission proxy and status poller.

    POST /api/run-workflow     multipart: file, instructions, emails
    GET  /api/workflow-status  ?jobId=...
    GET  /health

Run with: uvicorn api:app --port 8000
"""

import logging
from typing import Optional

from fastapi import Depends, FastAPI, File, Form, Query, UploadFile
from fastapi.concurrency import run_in_threadpool
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from config import Config, get_config
from models import ProxyResult, UploadJob
from status_client import StatusClient, StatusConfigurationError, StatusQueryError
from workflow_proxy import WorkflowProxy, parse_emails_field

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

app = FastAPI(title="Intextive Workflow API")

app.add_middleware(
    CORSMiddleware,
    allow_origins=[origin.strip() for origin in get_config().cors_origins.split(',') if origin.strip()],
    allow_credentials=False,
    allow_methods=["GET", "POST"],
    allow_headers=["*"],
)


def get_settings() -> Config:
    return get_config()


def _json(result: ProxyResult) -> JSONResponse:
    return JSONResponse(result.to_response_body(), status_code=result.http_status)


@app.post("/api/run-workflow")
async def run_workflow(
    file: Optional[UploadFile] = File(None),
    instructions: Optional[str] = Form(None),
    emails: Optional[str] = Form(None),
    config: Config = Depends(get_settings),
):
    # decode errors are reported by the proxy after the config and file checks
    recipients, recipients_error = [], None
    try:
        recipients = parse_emails_field(emails)
    except ValueError as e:
        recipients_error = str(e)

    job = UploadJob(
        file_bytes=await file.read() if file is not None else None,
        filename=(file.filename if file is not None else None) or "document.pdf",
        mime_type=(file.content_type if file is not None else None) or "",
        instructions=instructions or "",
        recipients=recipients,
        recipients_error=recipients_error,
    )

    proxy = WorkflowProxy(config)
    # requests is blocking; keep it off the event loop
    result = await run_in_threadpool(proxy.submit, job)
    if not result.ok:
        logger.warning(f"run-workflow failed: {result.code} ({result.http_status})")
    return _json(result)


@app.get("/api/workflow-status")
async def workflow_status(
    job_id: Optional[str] = Query(None, alias="jobId"),
    config: Config = Depends(get_settings),
):
    if not job_id:
        return JSONResponse({"error": "Missing jobId"}, status_code=400)

    client = StatusClient(config)
    try:
        record = await run_in_threadpool(client.fetch, job_id)
    except StatusConfigurationError as e:
        return JSONResponse(e.to_dict(), status_code=500)
    except StatusQueryError as e:
        return JSONResponse(e.to_dict(), status_code=e.status_code)

    return JSONResponse(record.to_dict())


@app.get("/health")
async def health(config: Config = Depends(get_settings)):
    return {"status": "ok", **config.to_dict()}

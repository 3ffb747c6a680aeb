"""
SFTPGo callbacks: external auth hook and upload event notifications.

Both endpoints are unauthenticated; SFTPGo is expected to reach them over a
private network.
"""
import json
import logging
from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends, Request, Response
from pydantic import ValidationError
from sqlalchemy.orm import Session
from starlette.concurrency import run_in_threadpool

from ..db import get_db
from ..errors import RequestError
from ..schemas.hooks import AuthHookRequest
from ..services.hook_auth import authenticate
from ..services.ingest import IngestionWorker, get_ingest_worker

router = APIRouter(tags=["hooks"])
logger = logging.getLogger("sftpgo_manager.hooks")


async def _json_body(request: Request) -> Any:
    raw = await request.body()
    return json.loads(raw)


@router.post("/auth/hook")
async def auth_hook(request: Request, db: Session = Depends(get_db)):
    # SFTPGo treats any non-200 as a rejected login; the body is ignored
    try:
        payload = await _json_body(request)
        req = AuthHookRequest.model_validate(payload)
    except (ValueError, ValidationError) as e:
        logger.warning("auth hook: invalid request body", extra={"error": str(e)})
        return Response(status_code=403)

    user = await run_in_threadpool(authenticate, db, req)
    if user is None:
        return Response(status_code=403)
    return user


@router.post("/events/upload")
async def upload_event(
    request: Request,
    worker: Optional[IngestionWorker] = Depends(get_ingest_worker),
) -> Dict[str, str]:
    """Acknowledge an upload notification and hand it to the ingestion worker"""
    try:
        event = await _json_body(request)
    except ValueError:
        raise RequestError("invalid json")
    if not isinstance(event, dict):
        raise RequestError("invalid json")

    logger.info("upload event", extra={
        "action": event.get("action"),
        "username": event.get("username"),
        "virtual_path": event.get("virtual_path"),
    })

    if worker is not None:
        worker.spawn(event)
    return {"status": "ok"}

"""
API key bootstrap endpoint (no authentication)
"""
import json
import logging

from fastapi import APIRouter, Depends, Request
from sqlalchemy.orm import Session
from starlette.concurrency import run_in_threadpool

from ..db import get_db
from ..schemas.apikey import ApiKeyCreate, ApiKeyOut
from ..services.registry import RegistryService

router = APIRouter(tags=["keys"])
logger = logging.getLogger("sftpgo_manager")


@router.post("/keys", status_code=201, response_model=ApiKeyOut)
async def create_key(request: Request, db: Session = Depends(get_db)):
    """Create a new API key. The raw key is only ever returned here."""
    label = ""
    raw = await request.body()
    if raw:
        # empty or non-JSON bodies just mean "no label"
        try:
            label = ApiKeyCreate.model_validate(json.loads(raw)).label or ""
        except ValueError:
            pass

    key, raw_key = await run_in_threadpool(RegistryService.create_api_key, db, label)
    logger.info("api key created", extra={"key_id": key.id, "label": label})
    return key.to_dict(raw_key)

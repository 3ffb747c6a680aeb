# sftpgo_manager/auth/__init__.py
from typing import Optional

from fastapi import Depends, Request
from sqlalchemy.orm import Session

from ..db import get_db
from ..errors import ApiKeyNotFound, Unauthorized
from ..models.apikey import ApiKey
from ..services.registry import RegistryService

BEARER_PREFIX = "Bearer "


def _extract_api_key(request: Request) -> Optional[str]:
    """Token from `Authorization: Bearer <key>`, or None when absent/malformed"""
    auth = request.headers.get("Authorization", "")
    if not auth.startswith(BEARER_PREFIX):
        return None
    token = auth[len(BEARER_PREFIX):].strip()
    return token or None


def require_key(request: Request, db: Session = Depends(get_db)) -> ApiKey:
    token = _extract_api_key(request)
    if not token:
        raise Unauthorized("missing api key")
    try:
        key = RegistryService.validate_api_key(db, token)
    except ApiKeyNotFound:
        raise Unauthorized("invalid api key")
    request.state.key_id = key.id
    return key

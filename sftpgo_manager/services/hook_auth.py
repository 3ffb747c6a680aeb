"""
SFTPGo external authentication hook.

SFTPGo calls the hook for every login attempt and expects either a user
object (login accepted) or a non-200 status (login rejected). The registry is
the only source of truth; the S3 filesystem descriptor is rebuilt on every
call from the current configuration rather than stored with the tenant.
"""
import logging
from typing import Any, Dict, Optional

from sqlalchemy.orm import Session

from .. import config
from ..errors import TenantNotFound
from ..models.tenant import Tenant
from ..schemas.hooks import AuthHookRequest
from .registry import RegistryService
from .sftpgo import FULL_ACCESS, STATUS_ENABLED, build_filesystem

logger = logging.getLogger("sftpgo_manager.hooks")


def public_keys_match(offered: str, stored: str) -> bool:
    """Compare the base64 key material only; algorithm and comment are ignored"""
    offered_parts = (offered or "").split()
    stored_parts = (stored or "").split()
    if len(offered_parts) < 2 or len(stored_parts) < 2:
        return False
    return offered_parts[1] == stored_parts[1]


def check_credentials(tenant: Tenant, password: str, public_key: str) -> Optional[str]:
    """Return the method that authenticated ("publickey"/"password"), or None"""
    if public_key and tenant.public_key and public_keys_match(public_key, tenant.public_key):
        return "publickey"
    if password and tenant.password and password == tenant.password:
        return "password"
    return None


def build_user_descriptor(tenant: Tenant) -> Dict[str, Any]:
    user: Dict[str, Any] = {
        "status": STATUS_ENABLED,
        "username": tenant.username,
        "home_dir": tenant.home_dir,
        "permissions": FULL_ACCESS,
    }
    if tenant.password:
        user["password"] = tenant.password
    if tenant.public_key:
        user["public_keys"] = [tenant.public_key]

    s3 = config.s3_settings()
    if s3 is not None:
        user["filesystem"] = build_filesystem(s3, tenant.tenant_id)
    return user


def authenticate(db: Session, req: AuthHookRequest) -> Optional[Dict[str, Any]]:
    """Resolve a login attempt to an SFTPGo user object, or None to reject"""
    logger.info("auth hook", extra={
        "username": req.username,
        "protocol": req.protocol,
        "ip": req.ip,
        "has_password": bool(req.password),
        "has_pubkey": bool(req.public_key),
    })

    try:
        tenant = RegistryService.get_tenant_by_username(db, req.username)
    except TenantNotFound:
        logger.warning("auth hook: tenant not found", extra={"username": req.username})
        return None

    method = check_credentials(tenant, req.password, req.public_key)
    if method is None:
        logger.warning("auth hook: authentication failed", extra={"username": req.username})
        return None

    logger.info("auth hook: authenticated", extra={
        "username": req.username,
        "protocol": req.protocol,
        "method": method,
    })
    return build_user_descriptor(tenant)

"""
Tenant provisioning: keeps the local registry and SFTPGo's user registry in step.

There is no distributed transaction. Each operation is an ordered pair of
writes and the second write can fail after the first has committed:

* create: SFTPGo user first, registry row second. A registry failure leaves an
  SFTPGo user with no registry row.
* delete: registry row first, SFTPGo user second. An SFTPGo failure leaves an
  SFTPGo user whose registry row is gone.
* rotate key: registry first, SFTPGo second.

Split states are reported to the caller (never retried or hidden).
"""
import logging
import os
from typing import Any, Dict, Optional, Tuple

from sqlalchemy.orm import Session

from .. import config
from ..errors import RegistryError, RequestError, UpstreamError
from ..models.tenant import Tenant
from ..utils.crypto import random_hex
from .registry import RegistryService
from .sftpgo import STATUS_ENABLED, SFTPGoClient

logger = logging.getLogger("sftpgo_manager")

SECRET_BYTES = 16


class ProvisioningService:

    def __init__(self, client: SFTPGoClient, data_dir: Optional[str] = None):
        self.client = client
        self._data_dir = data_dir

    @property
    def data_dir(self) -> str:
        return self._data_dir or config.DATA_DIR

    def create_tenant(
        self,
        db: Session,
        username: str,
        password: Optional[str] = None,
        public_key: Optional[str] = None,
    ) -> Tuple[Tenant, str]:
        """Provision an SFTPGo user, then record it. Returns (tenant, password)."""
        if not username:
            raise RequestError("username is required")

        password = password or random_hex(SECRET_BYTES)
        tenant_id = random_hex(SECRET_BYTES)
        home_dir = os.path.join(self.data_dir, tenant_id)
        public_keys = [public_key] if public_key else []

        self.client.create_user(
            username,
            password,
            home_dir,
            public_keys=public_keys,
            s3=config.s3_settings(),
            tenant_id=tenant_id,
        )

        try:
            tenant = RegistryService.create_tenant(db, tenant_id, username, password, public_key or "", home_dir)
        except RegistryError as e:
            logger.error("tenant created in sftpgo but registry write failed", extra={
                "username": username,
                "tenant_id": tenant_id,
                "error": str(e),
            })
            raise RegistryError(f"created in sftpgo but registry write failed: {e}", cause=e)

        logger.info("tenant created", extra={"username": username, "tenant_id": tenant_id})
        return tenant, password

    def delete_tenant(self, db: Session, id: int) -> str:
        username = RegistryService.delete_tenant(db, id)
        try:
            self.client.delete_user(username)
        except UpstreamError as e:
            logger.error("tenant removed from registry but sftpgo delete failed", extra={
                "username": username,
                "error": str(e),
            })
            raise UpstreamError(f"deleted from registry but sftpgo delete failed: {e}", status=e.status, cause=e)

        logger.info("tenant deleted", extra={"username": username})
        return username

    def rotate_public_key(self, db: Session, id: int, public_key: str) -> None:
        if not public_key:
            raise RequestError("public_key is required")

        tenant = RegistryService.get_tenant(db, id)
        username = tenant.username
        RegistryService.update_tenant_public_key(db, id, public_key)
        try:
            self.client.update_user_public_keys(username, [public_key])
        except UpstreamError as e:
            raise UpstreamError(f"registry updated but sftpgo update failed: {e}", status=e.status, cause=e)

        logger.info("tenant public key rotated", extra={"username": username})

    def validate_tenant(self, db: Session, id: int) -> Dict[str, Any]:
        """Cross-check the tenant against SFTPGo without mutating either side"""
        tenant = RegistryService.get_tenant(db, id)
        try:
            user = self.client.get_user(tenant.username)
        except UpstreamError as e:
            return {"valid": False, "reason": str(e)}
        return {"valid": user.get("status") == STATUS_ENABLED, "username": tenant.username}

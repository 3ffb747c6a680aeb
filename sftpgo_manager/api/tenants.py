"""
Tenant management endpoints (API key required)
"""
from typing import Any, Dict, List

from fastapi import APIRouter, Depends, Path
from sqlalchemy.orm import Session

from ..auth import require_key
from ..db import get_db
from ..schemas.tenant import TenantCreate, TenantKeysUpdate
from ..services.provisioning import ProvisioningService
from ..services.registry import RegistryService
from ..services.sftpgo import SFTPGoClient, get_sftpgo_client

router = APIRouter(tags=["tenants"], dependencies=[Depends(require_key)])

# ids are 64-bit signed integers in the registry
MIN_ID = -(2**63)
MAX_ID = 2**63 - 1


def get_provisioning(client: SFTPGoClient = Depends(get_sftpgo_client)) -> ProvisioningService:
    return ProvisioningService(client)


@router.post("/tenants", status_code=201)
def create_tenant(
    body: TenantCreate,
    db: Session = Depends(get_db),
    provisioning: ProvisioningService = Depends(get_provisioning),
) -> Dict[str, Any]:
    """Provision a tenant in SFTPGo and the registry.

    The generated (or supplied) password is returned in this response only.
    """
    tenant, password = provisioning.create_tenant(db, body.username, body.password, body.public_key)
    return {
        "tenant": tenant.to_dict(),
        "password": password,
        "tenant_id": tenant.tenant_id,
    }


@router.get("/tenants")
def list_tenants(db: Session = Depends(get_db)) -> List[Dict[str, Any]]:
    return [t.to_dict() for t in RegistryService.list_tenants(db)]


@router.get("/tenants/{id}")
def get_tenant(
    id: int = Path(..., ge=MIN_ID, le=MAX_ID),
    db: Session = Depends(get_db),
) -> Dict[str, Any]:
    return RegistryService.get_tenant(db, id).to_dict()


@router.delete("/tenants/{id}")
def delete_tenant(
    id: int = Path(..., ge=MIN_ID, le=MAX_ID),
    db: Session = Depends(get_db),
    provisioning: ProvisioningService = Depends(get_provisioning),
):
    provisioning.delete_tenant(db, id)
    return {"status": "deleted"}


@router.post("/tenants/{id}/validate")
def validate_tenant(
    id: int = Path(..., ge=MIN_ID, le=MAX_ID),
    db: Session = Depends(get_db),
    provisioning: ProvisioningService = Depends(get_provisioning),
):
    return provisioning.validate_tenant(db, id)


@router.put("/tenants/{id}/keys")
def update_tenant_keys(
    body: TenantKeysUpdate,
    id: int = Path(..., ge=MIN_ID, le=MAX_ID),
    db: Session = Depends(get_db),
    provisioning: ProvisioningService = Depends(get_provisioning),
):
    provisioning.rotate_public_key(db, id, body.public_key)
    return {"status": "updated"}


@router.get("/tenants/{id}/records")
def list_tenant_records(
    id: int = Path(..., ge=MIN_ID, le=MAX_ID),
    db: Session = Depends(get_db),
) -> List[Dict[str, Any]]:
    tenant = RegistryService.get_tenant(db, id)
    return [r.to_dict() for r in RegistryService.list_records(db, tenant.tenant_id)]

from typing import Optional

from pydantic import BaseModel, Field


class TenantCreate(BaseModel):
    username: str = Field("", description="SFTP username (required)")
    password: Optional[str] = Field(None, description="Generated when omitted")
    public_key: Optional[str] = Field(None, description="OpenSSH public key")


class TenantKeysUpdate(BaseModel):
    public_key: str = Field("", description="Replacement OpenSSH public key")

from typing import Optional

from pydantic import BaseModel, ConfigDict


class AuthHookRequest(BaseModel):
    """Payload SFTPGo posts to the external auth hook"""
    model_config = ConfigDict(extra="ignore")

    username: str = ""
    password: Optional[str] = ""
    public_key: Optional[str] = ""
    protocol: Optional[str] = ""
    ip: Optional[str] = ""

from typing import Optional

from pydantic import BaseModel


class ApiKeyCreate(BaseModel):
    label: Optional[str] = ""


class ApiKeyOut(BaseModel):
    id: int
    key: str
    label: str
    created_at: Optional[str]

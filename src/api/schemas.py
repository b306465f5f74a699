"""
Request and response models for the commit log API.
"""

from pydantic import BaseModel, field_validator
from typing import Optional, List


def _coerce_text(v):
    # Clients occasionally send numbers or booleans; treat them as text
    if v is None or isinstance(v, str):
        return v
    return str(v)


class CommitRequest(BaseModel):
    message: Optional[str] = None
    alias: Optional[str] = None
    beer: Optional[str] = None

    @field_validator('message', 'alias', 'beer', mode='before')
    @classmethod
    def coerce_to_text(cls, v):
        return _coerce_text(v)


class CommitEntry(BaseModel):
    hash: str
    tap: str
    alias: str
    message: str
    createdAt: str
    status: str


class CommitResponse(CommitEntry):
    caption: str


class ApproveRequest(BaseModel):
    hash: Optional[str] = None
    secret: Optional[str] = None

    @field_validator('hash', 'secret', mode='before')
    @classmethod
    def coerce_to_text(cls, v):
        return _coerce_text(v)


class ApproveResponse(BaseModel):
    success: bool
    hash: str


class ErrorResponse(BaseModel):
    error: str


class CommitStatusResponse(BaseModel):
    total: int
    approved: int
    pending: int
    latest: Optional[CommitEntry] = None


class HealthResponse(BaseModel):
    status: str
    version: str
    provider: str
    store_configured: bool
    issues: List[str] = []

"""
routing-stats WebUI Pydantic Schemas
Response models for the small fixed-shape endpoints
"""

from typing import Optional

from pydantic import BaseModel, Field


class HealthStatus(BaseModel):
    """Health check body"""
    status: str = "ok"
    timestamp: str
    snapshot_loaded: bool = False
    snapshot_version: int = Field(default=0, ge=0)


class ReloadResult(BaseModel):
    """Outcome of a reload request"""
    ok: bool
    version: int = Field(..., ge=0)
    error: Optional[str] = None


class ErrorBody(BaseModel):
    """Structured error returned for rejected requests"""
    error: str
    message: str
    severity: str
    guidance: Optional[str] = None
    token: Optional[str] = None

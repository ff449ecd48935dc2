"""Response models for the conversion API."""

from __future__ import annotations

from datetime import datetime
from typing import Literal, Optional

from pydantic import BaseModel, Field


class HealthResponse(BaseModel):
    status: Literal["ok"] = "ok"
    timestamp: datetime


class ErrorResponse(BaseModel):
    error: str = Field(..., description="Human-readable failure reason")
    error_code: Optional[str] = Field(None, description="Stable machine-readable error code")
    zh_message: Optional[str] = None

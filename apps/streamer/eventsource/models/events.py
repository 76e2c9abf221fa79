"""Pydantic models for the publish API."""
from __future__ import annotations

from typing import Any, Optional

from pydantic import BaseModel, Field


class PublishRequest(BaseModel):
    event: Optional[str] = Field(default=None, min_length=1)
    data: Any = None
    id: Optional[int] = None
    comment: Optional[str] = None


class PublishResponse(BaseModel):
    routing_name: str
    delivered: int


class HealthResponse(BaseModel):
    status: str
    subscribers: int

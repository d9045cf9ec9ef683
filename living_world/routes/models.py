"""Pydantic request models for API endpoints."""

from typing import Any

from pydantic import BaseModel, Field


class GenerateBody(BaseModel):
    messages: list[dict[str, Any]] = Field(default_factory=list)
    manual: bool = True


class InterceptBody(BaseModel):
    chat: list[dict[str, Any]] = Field(default_factory=list)
    context_size: int = 0
    type: str = "normal"
    manual: bool = False

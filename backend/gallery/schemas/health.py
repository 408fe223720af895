"""Health check schemas."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class HealthResponse(BaseModel):
    """Health check response schema."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    status: str
    time: str
    version: str
    auth_mode: str  # "authenticated", "api-key" or "public-fallback"

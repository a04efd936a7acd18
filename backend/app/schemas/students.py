"""Pydantic schemas for the student list endpoints."""
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class ToggleActiveRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    is_active: bool = Field(alias="isActive")


class StudentListResponse(BaseModel):
    items: list[dict[str, Any]]
    total: int

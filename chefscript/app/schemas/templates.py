from __future__ import annotations

from datetime import datetime
from typing import Any, Optional

from pydantic import BaseModel, Field

from chefscript.app.domain.models import TemplateRecord


class TemplateSave(BaseModel):
    name: str = Field(..., min_length=1)
    canvas_data: dict[str, Any]
    activate: bool = True


class TemplateOut(BaseModel):
    id: str
    name: str
    canvas_data: dict[str, Any]
    is_active: bool
    created_at: Optional[datetime] = None

    @classmethod
    def from_record(cls, record: TemplateRecord) -> "TemplateOut":
        return cls(
            id=str(record.id),
            name=record.name,
            canvas_data=record.canvas_data,
            is_active=record.is_active,
            created_at=record.created_at,
        )

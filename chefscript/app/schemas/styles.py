from __future__ import annotations

from datetime import datetime
from typing import Optional

from pydantic import BaseModel

from chefscript.app.domain.models import Style


class StyleOut(BaseModel):
    id: str
    name: str
    custom_style_id: str
    thumbnail_url: Optional[str] = None
    base_style: str
    created_at: Optional[datetime] = None

    @classmethod
    def from_style(cls, style: Style) -> "StyleOut":
        return cls(
            id=style.id,
            name=style.name,
            custom_style_id=style.custom_style_id,
            thumbnail_url=style.thumbnail_url,
            base_style=style.base_style,
            created_at=style.created_at,
        )

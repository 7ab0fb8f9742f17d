# chefscript/app/domain/models.py
"""
Domain models for recipe generation, styles, templates and token accounting.
These are pure data structures with no infrastructure dependencies.
"""
from __future__ import annotations

from dataclasses import asdict, dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Optional


class RecipeStatus(str, Enum):
    """Lifecycle of a recipe inside a generation batch."""
    PENDING = "pending"
    COMPLETED = "completed"
    ERROR = "error"


@dataclass
class RecipeParts:
    """Structured fields parsed from the generated recipe text."""
    title: str
    description: str
    ingredients: str
    instructions: str
    image_prompt: str
    macro_prompt: str
    hashtags: str


@dataclass
class Recipe:
    """
    A recipe in the session list and in the rolling local history.
    `timestamp` is epoch milliseconds and drives the 12 hour expiry.
    """
    id: str
    name: str
    status: RecipeStatus
    timestamp: int

    image_url: Optional[str] = None
    content: Optional[str] = None
    parsed_content: Optional[RecipeParts] = None
    template_id: Optional[str] = None
    template_applied: bool = False
    error: Optional[str] = None

    @property
    def is_complete(self) -> bool:
        return self.status == RecipeStatus.COMPLETED

    def to_dict(self) -> dict[str, Any]:
        payload = asdict(self)
        payload["status"] = self.status.value
        return payload

    @classmethod
    def from_dict(cls, payload: dict[str, Any]) -> "Recipe":
        parsed = payload.get("parsed_content")
        return cls(
            id=str(payload["id"]),
            name=str(payload["name"]),
            status=RecipeStatus(payload.get("status", RecipeStatus.PENDING.value)),
            timestamp=int(payload.get("timestamp") or 0),
            image_url=payload.get("image_url"),
            content=payload.get("content"),
            parsed_content=RecipeParts(**parsed) if isinstance(parsed, dict) else None,
            template_id=payload.get("template_id"),
            template_applied=bool(payload.get("template_applied")),
            error=payload.get("error"),
        )


@dataclass
class Style:
    """A reusable image style created from reference photos."""
    id: str
    name: str
    custom_style_id: str
    thumbnail_url: Optional[str] = None
    base_style: str = "realistic_image"
    created_at: Optional[datetime] = None


@dataclass
class TemplateRecord:
    """A persisted overlay template; `canvas_data` is a serialized scene document."""
    name: str
    canvas_data: dict[str, Any]
    is_active: bool = False
    id: Optional[str] = None
    user_id: Optional[str] = None
    created_at: Optional[datetime] = None


@dataclass
class PlagiarizedSection:
    text: str
    source: str


@dataclass
class BacklinkOptions:
    website_domain: str
    words_per_link: int = 500
    max_links: int = 0


@dataclass
class PlagiarismMatchDetails:
    identical: int
    similar: int
    total: int


@dataclass
class PlagiarismMatch:
    text: str
    source: str
    similarity: float  # 0..1
    details: PlagiarismMatchDetails


@dataclass
class PlagiarismStats:
    credits_used: int
    credits_remaining: int
    word_count: int
    plagiarized_words: int


@dataclass
class PlagiarismResult:
    """Normalized plagiarism check. Transient, never persisted."""
    score: float  # 0..1
    matches: list[PlagiarismMatch] = field(default_factory=list)
    stats: Optional[PlagiarismStats] = None
    tokens_charged: int = 0


@dataclass
class ChargeResult:
    """Outcome of an atomic conditional debit."""
    allowed: bool
    balance: int
    amount: int
    reason: Optional[str] = None


@dataclass(frozen=True)
class TokenPackage:
    tokens: int
    price: int  # USD
    description: str

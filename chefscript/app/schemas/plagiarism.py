from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, Field

from chefscript.app.domain.models import PlagiarismResult


class ProxyRequest(BaseModel):
    text: Optional[str] = None
    excludedUrls: list[str] = Field(default_factory=list)


class CheckRequest(BaseModel):
    html: str = Field(..., description="Article HTML; only <p> text is checked")
    excludedUrls: list[str] = Field(default_factory=list)
    rewrite: bool = True
    websiteDomain: Optional[str] = Field(None, description="Add backlinks to this site when set")


class MatchDetails(BaseModel):
    identical: int
    similar: int
    total: int


class Match(BaseModel):
    text: str
    source: str
    similarity: float
    details: MatchDetails


class Stats(BaseModel):
    creditsUsed: int
    creditsRemaining: int
    wordCount: int
    plagiarizedWords: int


class CheckResponse(BaseModel):
    score: float
    matches: list[Match]
    stats: Optional[Stats] = None
    tokensCharged: int
    wordCount: int
    rewrittenHtml: Optional[str] = None

    @classmethod
    def build(
        cls,
        result: PlagiarismResult,
        word_count: int,
        rewritten_html: Optional[str] = None,
    ) -> "CheckResponse":
        stats = result.stats
        return cls(
            score=result.score,
            matches=[
                Match(
                    text=match.text,
                    source=match.source,
                    similarity=match.similarity,
                    details=MatchDetails(
                        identical=match.details.identical,
                        similar=match.details.similar,
                        total=match.details.total,
                    ),
                )
                for match in result.matches
            ],
            stats=Stats(
                creditsUsed=stats.credits_used,
                creditsRemaining=stats.credits_remaining,
                wordCount=stats.word_count,
                plagiarizedWords=stats.plagiarized_words,
            ) if stats else None,
            tokensCharged=result.tokens_charged,
            wordCount=word_count,
            rewrittenHtml=rewritten_html,
        )

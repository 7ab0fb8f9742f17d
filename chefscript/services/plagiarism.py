from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Optional, Sequence

import httpx
from starlette.concurrency import run_in_threadpool

from chefscript.app.domain.models import (
    BacklinkOptions,
    PlagiarismMatch,
    PlagiarismMatchDetails,
    PlagiarismResult,
    PlagiarismStats,
    PlagiarizedSection,
)
from chefscript.app.domain.pricing import calculate_required_tokens
from chefscript.app.services.token_ledger import TokenLedger
from chefscript.services.clock import Clock, SystemClock
from chefscript.services.errors import (
    InsufficientCreditsError,
    InvalidInputError,
    InvalidResponseError,
    NetworkTimeoutError,
    ProviderAuthError,
    ProviderError,
)
from chefscript.services.html_content import count_words, extract_paragraph_text
from chefscript.services.http import error_message, new_async_client
from chefscript.services.rewriter import ContentRewriter

logger = logging.getLogger(__name__)

MAX_RETRIES = 3
RETRY_DELAY_SECONDS = 1.0
TIMEOUT_SECONDS = 180.0
WORDS_PER_LINK = 500

TIMEOUT_MESSAGE = (
    "The plagiarism check is taking longer than expected. "
    "Please try with a smaller text or try again later."
)


def clean_excluded_urls(urls: Optional[Sequence[str]]) -> list[str]:
    return [url for url in (urls or []) if url and url.strip()]


def normalize_response(payload: dict[str, Any]) -> PlagiarismResult:
    """Map the provider's 0-100 scores and source list onto the 0-1 result shape."""
    try:
        matches = [
            PlagiarismMatch(
                text=" ".join(str(found.get("sequence", "")) for found in source.get("plagiarismFound") or []),
                source=str(source.get("url", "")),
                similarity=float(source.get("score") or 0) / 100,
                details=PlagiarismMatchDetails(
                    identical=int(source.get("identicalWordCounts") or 0),
                    similar=int(source.get("similarWordCounts") or 0),
                    total=int(source.get("totalNumberOfWords") or 0),
                ),
            )
            for source in payload.get("sources") or []
        ]
        return PlagiarismResult(
            score=float(payload.get("score") or 0) / 100,
            matches=matches,
            stats=PlagiarismStats(
                credits_used=int(payload.get("credits_used") or 0),
                credits_remaining=int(payload.get("credits_remaining") or 0),
                word_count=int(payload.get("textWordCounts") or 0),
                plagiarized_words=int(payload.get("totalPlagiarismWords") or 0),
            ),
        )
    except (AttributeError, TypeError, ValueError) as exc:
        raise InvalidResponseError("Invalid response from plagiarism service") from exc


@dataclass
class HtmlCheckResult:
    result: PlagiarismResult
    word_count: int
    rewritten_html: Optional[str] = None


class PlagiarismChecker:
    """
    Checks text through the plagiarism proxy endpoint.

    The balance is verified before any network call and the cost is charged
    only after the provider answered successfully.
    """

    def __init__(
        self,
        proxy_url: str,
        ledger: TokenLedger,
        http: Optional[httpx.AsyncClient] = None,
        clock: Optional[Clock] = None,
        timeout: float = TIMEOUT_SECONDS,
        max_retries: int = MAX_RETRIES,
        retry_delay: float = RETRY_DELAY_SECONDS,
    ) -> None:
        self.proxy_url = proxy_url
        self.timeout = timeout
        self.max_retries = max_retries
        self.retry_delay = retry_delay
        self._ledger = ledger
        self._http = http
        self._clock = clock or SystemClock()

    async def check(
        self,
        user_id: str,
        text: str,
        excluded_urls: Optional[Sequence[str]] = None,
    ) -> PlagiarismResult:
        if not (text or "").strip():
            raise InvalidInputError("Text is required for plagiarism check.")

        word_count = count_words(text)
        required = calculate_required_tokens(word_count)
        message = (
            f"Insufficient tokens. This check requires {required} tokens "
            f"based on word count ({word_count} words)."
        )
        await run_in_threadpool(self._ledger.ensure_balance, user_id, required, message)

        payload = await self._post_with_retry(
            {"text": text, "excludedUrls": clean_excluded_urls(excluded_urls)}
        )
        result = normalize_response(payload)

        await run_in_threadpool(self._ledger.charge, user_id, required, message)
        result.tokens_charged = required
        logger.info(
            "plagiarism.checked user=%s words=%d score=%.2f matches=%d tokens=%d",
            user_id, word_count, result.score, len(result.matches), required,
        )
        return result

    async def _post_with_retry(self, body: dict[str, Any]) -> dict[str, Any]:
        http = self._http or new_async_client(self.timeout)
        try:
            for attempt in range(1, self.max_retries + 1):
                try:
                    response = await http.post(self.proxy_url, json=body, timeout=self.timeout)
                except httpx.TimeoutException as exc:
                    raise NetworkTimeoutError(self.proxy_url, self.timeout, TIMEOUT_MESSAGE) from exc
                except httpx.HTTPError as exc:
                    failure = f"Plagiarism check failed: {exc}"
                    status = None
                else:
                    status = response.status_code
                    if not response.is_error:
                        try:
                            payload = response.json()
                        except ValueError as exc:
                            raise InvalidResponseError("Invalid response from plagiarism service") from exc
                        if not isinstance(payload, dict):
                            raise InvalidResponseError("Invalid response from plagiarism service")
                        return payload
                    failure = error_message(response)
                    if status == 401:
                        raise ProviderAuthError(failure)
                    if status == 402:
                        raise InsufficientCreditsError(failure)

                logger.warning(
                    "plagiarism.request_failed status=%s attempt=%d/%d message=%s",
                    status, attempt, self.max_retries, failure,
                )
                if attempt == self.max_retries:
                    raise ProviderError(failure, status_code=status)
                await self._clock.sleep(self.retry_delay * attempt)
        finally:
            if self._http is None:
                await http.aclose()
        raise ProviderError("Failed to check plagiarism after multiple retries.")

    async def check_html(
        self,
        user_id: str,
        html: str,
        excluded_urls: Optional[Sequence[str]] = None,
        rewriter: Optional[ContentRewriter] = None,
        website_domain: Optional[str] = None,
    ) -> HtmlCheckResult:
        """
        Check the paragraph text of an HTML article and, when something was
        flagged or backlinks were requested, rewrite the article.
        """
        text = extract_paragraph_text(html)
        result = await self.check(user_id, text, excluded_urls)
        word_count = count_words(text)

        backlinks = None
        if website_domain:
            # the provider's count wins over the local estimate
            basis = result.stats.word_count if result.stats and result.stats.word_count else word_count
            backlinks = BacklinkOptions(
                website_domain=website_domain.rstrip("/"),
                words_per_link=WORDS_PER_LINK,
                max_links=basis // WORDS_PER_LINK,
            )

        rewritten = None
        if rewriter is not None and (result.score > 0 or backlinks):
            sections = [PlagiarizedSection(text=m.text, source=m.source) for m in result.matches]
            rewritten = await rewriter.rewrite(html, sections, backlinks)

        return HtmlCheckResult(result=result, word_count=word_count, rewritten_html=rewritten)

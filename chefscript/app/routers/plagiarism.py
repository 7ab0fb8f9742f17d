# chefscript/app/routers/plagiarism.py
"""
Plagiarism routes.

`/api/plagiarism` is the key-holding proxy in front of the provider;
`/plagiarism/check` is the authenticated, token-charged check that goes
through it.
"""
from __future__ import annotations

import logging

import httpx
from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse

from chefscript.app.config import settings
from chefscript.app.deps import (
    CurrentUser,
    get_current_user,
    get_plagiarism_checker,
    get_rewriter,
)
from chefscript.app.domain.errors import ChefScriptError
from chefscript.app.http_errors import to_http_exception
from chefscript.app.schemas.plagiarism import CheckRequest, CheckResponse, ProxyRequest
from chefscript.services.errors import ConfigurationError, ServiceError
from chefscript.services.http import error_message
from chefscript.services.plagiarism import PlagiarismChecker
from chefscript.services.rewriter import ContentRewriter
from chefscript.services.winston import forward_plagiarism_request

logger = logging.getLogger(__name__)

router = APIRouter(tags=["plagiarism"])


def get_upstream_http() -> httpx.AsyncClient | None:
    """Overridden in tests with a client on a mock transport."""
    return None


@router.post("/api/plagiarism")
async def plagiarism_proxy(
    body: ProxyRequest,
    http: httpx.AsyncClient | None = Depends(get_upstream_http),
):
    if not body.text:
        return JSONResponse(status_code=400, content={"message": "Text is required"})

    try:
        payload = await forward_plagiarism_request(
            body.text,
            body.excludedUrls,
            api_key=settings.WINSTON_API_KEY,
            api_url=settings.WINSTON_API_URL,
            timeout=settings.PLAGIARISM_TIMEOUT_SECONDS,
            http=http,
        )
    except ConfigurationError as exc:
        return JSONResponse(status_code=500, content={"message": str(exc)})
    except httpx.ConnectError as exc:
        logger.error("Plagiarism check error: %s", exc)
        return JSONResponse(status_code=503, content={"message": "Service unavailable"})
    except httpx.TimeoutException as exc:
        logger.error("Plagiarism check error: %s", exc)
        return JSONResponse(status_code=504, content={"message": "Request timeout"})
    except httpx.HTTPStatusError as exc:
        logger.error("Plagiarism check error: status=%s", exc.response.status_code)
        return JSONResponse(
            status_code=exc.response.status_code,
            content={"message": error_message(exc.response)},
        )
    except httpx.HTTPError as exc:
        logger.error("Plagiarism check error: %s", exc)
        return JSONResponse(status_code=500, content={"message": str(exc) or "Internal server error"})
    except ValueError:
        logger.exception("Plagiarism check error: invalid upstream body")
        return JSONResponse(status_code=500, content={"message": "Internal server error"})
    return payload


@router.post("/plagiarism/check", response_model=CheckResponse)
async def check_plagiarism(
    body: CheckRequest,
    user: CurrentUser = Depends(get_current_user),
    checker: PlagiarismChecker = Depends(get_plagiarism_checker),
    rewriter: ContentRewriter = Depends(get_rewriter),
) -> CheckResponse:
    try:
        outcome = await checker.check_html(
            user.id,
            body.html,
            excluded_urls=body.excludedUrls,
            rewriter=rewriter if body.rewrite else None,
            website_domain=body.websiteDomain,
        )
    except (ServiceError, ChefScriptError) as exc:
        raise to_http_exception(exc) from exc
    return CheckResponse.build(outcome.result, outcome.word_count, outcome.rewritten_html)

# chefscript/app/routers/feedspy.py
from __future__ import annotations

from fastapi import APIRouter, Depends, File, Form, UploadFile

from chefscript.app.deps import CurrentUser, get_current_user, get_feedspy_extractor
from chefscript.app.domain.errors import ChefScriptError
from chefscript.app.domain.pricing import feedspy_cost
from chefscript.app.http_errors import to_http_exception
from chefscript.app.schemas.tokens import FeedSpyResponse
from chefscript.services.errors import ServiceError
from chefscript.services.feedspy import FeedSpyExtractor

router = APIRouter(prefix="/feedspy", tags=["feedspy"])


@router.post("/extract", response_model=FeedSpyResponse)
async def extract_recipes(
    file: UploadFile = File(...),
    count: int = Form(25),
    user: CurrentUser = Depends(get_current_user),
    extractor: FeedSpyExtractor = Depends(get_feedspy_extractor),
) -> FeedSpyResponse:
    content = await file.read()
    try:
        recipes = await extractor.extract(user.id, file.filename or "", content, count)
    except (ServiceError, ChefScriptError) as exc:
        raise to_http_exception(exc) from exc
    return FeedSpyResponse(recipes=recipes, tokensCharged=feedspy_cost(count))

# chefscript/app/routers/styles.py
from __future__ import annotations

from fastapi import APIRouter, Depends, File, Form, UploadFile, status
from starlette.concurrency import run_in_threadpool

from chefscript.app.deps import CurrentUser, get_current_user, get_style_service
from chefscript.app.domain.errors import ChefScriptError
from chefscript.app.http_errors import to_http_exception
from chefscript.app.schemas.styles import StyleOut
from chefscript.app.services.style_service import StyleService, read_uploads
from chefscript.services.errors import ServiceError

router = APIRouter(prefix="/styles", tags=["styles"])


@router.get("/", response_model=list[StyleOut])
async def list_styles(
    user: CurrentUser = Depends(get_current_user),
    service: StyleService = Depends(get_style_service),
) -> list[StyleOut]:
    styles = await run_in_threadpool(service.list_styles)
    return [StyleOut.from_style(style) for style in styles]


@router.post("/", response_model=StyleOut, status_code=status.HTTP_201_CREATED)
async def create_style(
    name: str = Form(...),
    images: list[UploadFile] = File(...),
    user: CurrentUser = Depends(get_current_user),
    service: StyleService = Depends(get_style_service),
) -> StyleOut:
    try:
        uploads = await read_uploads(images)
        style = await service.create_style(user.id, name, uploads)
    except (ServiceError, ChefScriptError) as exc:
        raise to_http_exception(exc) from exc
    return StyleOut.from_style(style)

# chefscript/app/routers/templates.py
from __future__ import annotations

from fastapi import APIRouter, Depends, Response, status
from starlette.concurrency import run_in_threadpool

from chefscript.app.deps import CurrentUser, get_current_user, get_template_service
from chefscript.app.domain.errors import ChefScriptError
from chefscript.app.domain.scene import CANVAS_PRESETS
from chefscript.app.http_errors import to_http_exception
from chefscript.app.schemas.templates import TemplateOut, TemplateSave
from chefscript.app.services.template_service import TemplateService
from chefscript.services.errors import ServiceError

router = APIRouter(prefix="/templates", tags=["templates"])


@router.get("/", response_model=list[TemplateOut])
async def list_templates(
    user: CurrentUser = Depends(get_current_user),
    service: TemplateService = Depends(get_template_service),
) -> list[TemplateOut]:
    records = await run_in_threadpool(service.list_templates, user.id)
    return [TemplateOut.from_record(record) for record in records]


@router.get("/presets")
async def list_presets() -> dict[str, dict[str, int]]:
    return {name: {"width": width, "height": height} for name, (width, height) in CANVAS_PRESETS.items()}


@router.get("/active", response_model=TemplateOut)
async def get_active_template(
    user: CurrentUser = Depends(get_current_user),
    service: TemplateService = Depends(get_template_service),
) -> TemplateOut:
    try:
        record = await run_in_threadpool(service.require_active_template, user.id)
    except ChefScriptError as exc:
        raise to_http_exception(exc) from exc
    return TemplateOut.from_record(record)


@router.post("/", response_model=TemplateOut, status_code=status.HTTP_201_CREATED)
async def create_template(
    payload: TemplateSave,
    user: CurrentUser = Depends(get_current_user),
    service: TemplateService = Depends(get_template_service),
) -> TemplateOut:
    try:
        record = await run_in_threadpool(
            service.save_template, user.id, payload.name, payload.canvas_data, None, payload.activate
        )
    except (ServiceError, ChefScriptError) as exc:
        raise to_http_exception(exc) from exc
    return TemplateOut.from_record(record)


@router.put("/{template_id}", response_model=TemplateOut)
async def update_template(
    template_id: str,
    payload: TemplateSave,
    user: CurrentUser = Depends(get_current_user),
    service: TemplateService = Depends(get_template_service),
) -> TemplateOut:
    try:
        record = await run_in_threadpool(
            service.save_template, user.id, payload.name, payload.canvas_data, template_id, payload.activate
        )
    except (ServiceError, ChefScriptError) as exc:
        raise to_http_exception(exc) from exc
    return TemplateOut.from_record(record)


@router.post("/{template_id}/activate", status_code=status.HTTP_204_NO_CONTENT)
async def activate_template(
    template_id: str,
    user: CurrentUser = Depends(get_current_user),
    service: TemplateService = Depends(get_template_service),
) -> Response:
    try:
        await run_in_threadpool(service.activate, user.id, template_id)
    except ChefScriptError as exc:
        raise to_http_exception(exc) from exc
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.delete("/{template_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_template(
    template_id: str,
    user: CurrentUser = Depends(get_current_user),
    service: TemplateService = Depends(get_template_service),
) -> Response:
    try:
        await run_in_threadpool(service.delete_template, user.id, template_id)
    except ChefScriptError as exc:
        raise to_http_exception(exc) from exc
    return Response(status_code=status.HTTP_204_NO_CONTENT)

# chefscript/app/routers/recipes.py
"""
Recipe batch generation, rolling history and downloads.
"""
from __future__ import annotations

import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Response, status
from starlette.concurrency import run_in_threadpool

from chefscript.app.deps import (
    CurrentUser,
    get_current_user,
    get_history,
    get_recipe_pipeline,
    get_template_renderer,
    get_template_service,
)
from chefscript.app.domain.errors import ChefScriptError
from chefscript.app.domain.pricing import recipe_image_cost
from chefscript.app.http_errors import to_http_exception
from chefscript.app.schemas.recipes import GenerateRecipesRequest, GenerateRecipesResponse, RecipeResponse
from chefscript.app.services.recipe_pipeline import RecipePipeline, split_recipe_names
from chefscript.app.services.template_service import TemplateService
from chefscript.services.errors import ServiceError
from chefscript.services.exporter import archive_name, build_recipes_zip, folder_name
from chefscript.services.history import RecipeHistory
from chefscript.services.template_renderer import TemplateRenderer

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/recipes", tags=["recipes"])


@router.post("/generate", response_model=GenerateRecipesResponse)
async def generate_recipes(
    body: GenerateRecipesRequest,
    user: CurrentUser = Depends(get_current_user),
    pipeline: RecipePipeline = Depends(get_recipe_pipeline),
) -> GenerateRecipesResponse:
    names = split_recipe_names(body.names)
    if not names:
        raise HTTPException(status_code=400, detail="At least one recipe name is required")
    try:
        recipes = await pipeline.run(user.id, names, style=body.style, apply_template=body.applyTemplate)
    except (ServiceError, ChefScriptError) as exc:
        raise to_http_exception(exc) from exc
    return GenerateRecipesResponse(
        recipes=[RecipeResponse.from_recipe(recipe) for recipe in recipes],
        tokensRequired=recipe_image_cost(body.style) * len(names),
    )


@router.get("/history", response_model=list[RecipeResponse])
async def list_history(
    user: CurrentUser = Depends(get_current_user),
    history: RecipeHistory = Depends(get_history),
) -> list[RecipeResponse]:
    recipes = await run_in_threadpool(history.load, user.id)
    return [RecipeResponse.from_recipe(recipe) for recipe in recipes]


@router.delete("/history", status_code=status.HTTP_204_NO_CONTENT)
async def clear_history(
    user: CurrentUser = Depends(get_current_user),
    history: RecipeHistory = Depends(get_history),
) -> Response:
    await run_in_threadpool(history.clear, user.id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.get("/download")
async def download_all(
    user: CurrentUser = Depends(get_current_user),
    history: RecipeHistory = Depends(get_history),
    renderer: TemplateRenderer = Depends(get_template_renderer),
) -> Response:
    recipes = [recipe for recipe in await run_in_threadpool(history.load, user.id) if recipe.is_complete]
    if not recipes:
        raise HTTPException(status_code=404, detail="No completed recipes to download")
    archive = await build_recipes_zip(
        recipes,
        proxy_url=renderer.proxy_url,
        restricted_hosts=renderer.restricted_hosts,
    )
    return Response(
        content=archive,
        media_type="application/zip",
        headers={"Content-Disposition": f'attachment; filename="{archive_name()}"'},
    )


@router.get("/{recipe_id}/templated")
async def templated_image(
    recipe_id: str,
    title: Optional[str] = Query(None, description="Title drawn into the placeholder; defaults to the parsed title"),
    user: CurrentUser = Depends(get_current_user),
    history: RecipeHistory = Depends(get_history),
    templates: TemplateService = Depends(get_template_service),
    renderer: TemplateRenderer = Depends(get_template_renderer),
) -> Response:
    recipe = await run_in_threadpool(history.get, user.id, recipe_id)
    if recipe is None or not recipe.image_url:
        raise HTTPException(status_code=404, detail="Recipe not found")

    try:
        if recipe.template_id:
            template = await run_in_threadpool(templates.get_template, user.id, recipe.template_id)
        else:
            template = await run_in_threadpool(templates.require_active_template, user.id)
        heading = title or (recipe.parsed_content.title if recipe.parsed_content else recipe.name)
        image = await renderer.compose(template.canvas_data, recipe.image_url, heading)
    except (ServiceError, ChefScriptError) as exc:
        logger.error("Failed to apply template: recipe=%s error=%s", recipe_id, exc)
        raise to_http_exception(exc) from exc

    filename = f"{folder_name(heading)}_templated.jpg"
    return Response(
        content=image,
        media_type="image/jpeg",
        headers={"Content-Disposition": f'inline; filename="{filename}"'},
    )

# chefscript/app/services/recipe_pipeline.py
"""
Batch recipe generation.

Each recipe runs text -> parse -> image -> charge, one recipe after the
other. A failure marks that recipe as `error` and the batch moves on.
"""
from __future__ import annotations

import logging
from typing import Callable, Optional
from uuid import uuid4

from starlette.concurrency import run_in_threadpool

from chefscript.app.domain.errors import InsufficientTokensError
from chefscript.app.domain.models import Recipe, RecipeStatus
from chefscript.app.domain.pricing import DEFAULT_STYLE, FLUX_STYLE, recipe_image_cost
from chefscript.app.services.template_service import TemplateService
from chefscript.app.services.token_ledger import TokenLedger
from chefscript.services.flux import FluxClient
from chefscript.services.history import RecipeHistory, now_ms
from chefscript.services.recipe_generator import RecipeGenerator
from chefscript.services.recipe_parser import parse_recipe_text
from chefscript.services.recraft import RecraftClient

logger = logging.getLogger(__name__)


def split_recipe_names(raw: str) -> list[str]:
    """One recipe per line; blank lines are ignored."""
    return [line.strip() for line in (raw or "").splitlines() if line.strip()]


def is_custom_style(style: str) -> bool:
    # Recraft custom style ids are UUIDs; built-in style names never contain a dash
    return "-" in style


class RecipePipeline:
    def __init__(
        self,
        generator: RecipeGenerator,
        flux: FluxClient,
        recraft: RecraftClient,
        ledger: TokenLedger,
        history: RecipeHistory,
        templates: Optional[TemplateService] = None,
        id_factory: Callable[[], str] = lambda: str(uuid4()),
        clock: Callable[[], int] = now_ms,
    ):
        self._generator = generator
        self._flux = flux
        self._recraft = recraft
        self._ledger = ledger
        self._history = history
        self._templates = templates
        self._id_factory = id_factory
        self._clock = clock

    async def generate_image(self, prompt: str, style: str) -> str:
        if style == FLUX_STYLE:
            return await self._flux.generate_image(prompt)
        if is_custom_style(style):
            return await self._recraft.generate_image(prompt, custom_style_id=style)
        return await self._recraft.generate_image(prompt, style=style)

    async def run(
        self,
        user_id: str,
        recipe_names: list[str],
        style: str = DEFAULT_STYLE,
        apply_template: bool = False,
    ) -> list[Recipe]:
        """
        Generate every recipe in order and return them with their final status.

        Raises:
            InsufficientTokensError: If the balance cannot cover the whole
                batch; nothing is generated in that case
        """
        names = [name.strip() for name in recipe_names if name and name.strip()]
        if not names:
            return []

        cost = recipe_image_cost(style)
        required = cost * len(names)
        await run_in_threadpool(
            self._ledger.ensure_balance,
            user_id,
            required,
            f"Insufficient tokens. You need {required} tokens to generate {len(names)} recipes.",
        )

        template_id = None
        if apply_template and self._templates is not None:
            active = await run_in_threadpool(self._templates.get_active_template, user_id)
            if active is None:
                logger.warning("Template requested but none active: user=%s", user_id)
            else:
                template_id = active.id

        recipes = [
            Recipe(id=self._id_factory(), name=name, status=RecipeStatus.PENDING, timestamp=self._clock())
            for name in names
        ]
        for recipe in recipes:
            await run_in_threadpool(self._history.upsert, user_id, recipe)

        logger.info("Batch started: user=%s recipes=%d style=%s cost=%d", user_id, len(recipes), style, required)
        for recipe in recipes:
            await self._run_one(user_id, recipe, style, cost, template_id)
            await run_in_threadpool(self._history.upsert, user_id, recipe)

        completed = sum(1 for recipe in recipes if recipe.is_complete)
        logger.info("Batch finished: user=%s completed=%d failed=%d", user_id, completed, len(recipes) - completed)
        return recipes

    async def _run_one(
        self,
        user_id: str,
        recipe: Recipe,
        style: str,
        cost: int,
        template_id: Optional[str],
    ) -> None:
        try:
            content = await self._generator.generate_recipe(recipe.name)
            parsed = parse_recipe_text(content)
            image_url = await self.generate_image(parsed.image_prompt, style)
            await run_in_threadpool(self._ledger.charge, user_id, cost)
        except InsufficientTokensError as exc:
            self._fail(recipe, str(exc))
            return
        except Exception as exc:
            logger.error("Generation error: recipe=%s error=%s", recipe.name, exc)
            self._fail(recipe, str(exc) or "An unexpected error occurred")
            return

        recipe.status = RecipeStatus.COMPLETED
        recipe.content = content
        recipe.parsed_content = parsed
        recipe.image_url = image_url
        recipe.error = None
        if template_id:
            recipe.template_id = template_id
            recipe.template_applied = True
        logger.info("Recipe completed: id=%s name=%s", recipe.id, recipe.name)

    @staticmethod
    def _fail(recipe: Recipe, message: str) -> None:
        recipe.status = RecipeStatus.ERROR
        recipe.error = message

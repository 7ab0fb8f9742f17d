from __future__ import annotations

import io
import logging
import re
import zipfile
from datetime import date
from typing import Iterable, Optional, Sequence

import httpx

from chefscript.app.domain.models import Recipe
from chefscript.services.http import new_async_client
from chefscript.services.recipe_parser import create_downloadable_text
from chefscript.services.template_renderer import (
    DEFAULT_PROXY_URL,
    DEFAULT_RESTRICTED_HOSTS,
    resolve_image_url,
)

logger = logging.getLogger(__name__)


def folder_name(recipe_name: str) -> str:
    return re.sub(r"[^a-z0-9]", "_", recipe_name, flags=re.IGNORECASE).lower()


def archive_name(today: Optional[date] = None) -> str:
    return f"recipes-{(today or date.today()).isoformat()}.zip"


async def build_recipes_zip(
    recipes: Iterable[Recipe],
    http: Optional[httpx.AsyncClient] = None,
    proxy_url: str = DEFAULT_PROXY_URL,
    restricted_hosts: Sequence[str] = DEFAULT_RESTRICTED_HOSTS,
) -> bytes:
    """
    Zip every completed recipe into its own folder with the text file and
    the image. A failed image download is logged and the text is kept.
    """
    buffer = io.BytesIO()
    client = http or new_async_client()
    try:
        with zipfile.ZipFile(buffer, "w", zipfile.ZIP_DEFLATED) as archive:
            for recipe in recipes:
                if not recipe.is_complete or recipe.parsed_content is None or not recipe.image_url:
                    continue
                folder = folder_name(recipe.name)
                archive.writestr(f"{folder}/{folder}.txt", create_downloadable_text(recipe.parsed_content))

                url = resolve_image_url(recipe.image_url, proxy_url, restricted_hosts)
                try:
                    response = await client.get(url, follow_redirects=True)
                    response.raise_for_status()
                except httpx.HTTPError as exc:
                    logger.error("Failed to download image for %s: %s", recipe.name, exc)
                    continue
                archive.writestr(f"{folder}/{folder}.jpg", response.content)
    finally:
        if http is None:
            await client.aclose()
    return buffer.getvalue()

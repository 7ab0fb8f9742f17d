from __future__ import annotations

import logging
import re

from chefscript.app.domain.models import RecipeParts

logger = logging.getLogger(__name__)

REQUIRED_SECTIONS = (
    "TITLE",
    "DESCRIPTION",
    "INGREDIENTS",
    "INSTRUCTIONS",
    "TOP_VIEW_PROMPT",
    "MACRO_PROMPT",
    "HASHTAGS",
)

# field -> (markers tried in order, default)
_FIELD_MARKERS: dict[str, tuple[tuple[str, ...], str]] = {
    "title": (("TITLE", "Recipe Title"), "Untitled Recipe"),
    "description": (("DESCRIPTION", "Description"), "No description available."),
    "ingredients": (("INGREDIENTS", "Ingredients List"), "No ingredients listed."),
    "instructions": (("INSTRUCTIONS", "Steps", "Method"), "No instructions available."),
    "image_prompt": (("TOP_VIEW_PROMPT", "Image Description"), "A beautifully plated dish from above"),
    "macro_prompt": (("MACRO_PROMPT", "Close-up Description"), "A detailed close-up of the dish"),
    "hashtags": (("HASHTAGS", "Tags"), "#food #recipe #cooking"),
}


def missing_sections(text: str) -> list[str]:
    return [section for section in REQUIRED_SECTIONS if f"[{section}]" not in text]


def extract_section(text: str, marker: str) -> str:
    escaped = re.escape(marker)

    exact = re.search(rf"\[{escaped}\]\n(.*?)(?=\n\[|\Z)", text, re.DOTALL)
    if exact and exact.group(1).strip():
        return exact.group(1).strip()

    loose = re.search(
        rf"{escaped}:?[ \t]*\n(.*?)(?=\n(?:[A-Z][A-Za-z ]+:?\n)|\Z)",
        text,
        re.DOTALL,
    )
    if loose and loose.group(1).strip():
        return loose.group(1).strip()

    return ""


def parse_recipe_text(text: str) -> RecipeParts:
    """Split generated recipe text into its fields. Never raises."""
    normalized = (text or "").replace("\r\n", "\n").strip()
    values: dict[str, str] = {}
    for field_name, (markers, default) in _FIELD_MARKERS.items():
        value = ""
        for marker in markers:
            value = extract_section(normalized, marker)
            if value:
                break
        if not value:
            logger.debug("recipe_parser.default_used field=%s", field_name)
        values[field_name] = value or default
    return RecipeParts(**values)


def create_downloadable_text(recipe: RecipeParts) -> str:
    """Plain text export without section markers."""
    return "\n\n".join(
        [
            recipe.title,
            recipe.description,
            recipe.ingredients,
            recipe.instructions,
            recipe.hashtags,
        ]
    )

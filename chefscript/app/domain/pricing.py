# chefscript/app/domain/pricing.py
"""
Token prices for every billable operation and the purchasable packages.
All costs are computed here so callers can check a balance before any
external call is made.
"""
from __future__ import annotations

import math

from chefscript.app.domain.models import TokenPackage

STYLE_CREATION_COST = 10

FLUX_STYLE = "flux"
DEFAULT_STYLE = "realistic_image"
FLUX_IMAGE_COST = 1
RECRAFT_IMAGE_COST = 2

PLAGIARISM_WORDS_PER_UNIT = 500
PLAGIARISM_TOKENS_PER_UNIT = 2

FEEDSPY_RECIPES_PER_TOKEN = 25
FEEDSPY_ALLOWED_COUNTS = (25, 50, 75, 100)

TOKEN_PACKAGES: tuple[TokenPackage, ...] = (
    TokenPackage(tokens=30, price=3, description="Perfect for trying out the service"),
    TokenPackage(tokens=200, price=17, description="Most popular for regular bloggers"),
    TokenPackage(tokens=800, price=70, description="Best value for power users"),
)


def recipe_image_cost(style: str) -> int:
    return FLUX_IMAGE_COST if style == FLUX_STYLE else RECRAFT_IMAGE_COST


def calculate_required_tokens(word_count: int) -> int:
    """Plagiarism check cost: two tokens per started block of 500 words."""
    return math.ceil(word_count / PLAGIARISM_WORDS_PER_UNIT) * PLAGIARISM_TOKENS_PER_UNIT


def feedspy_cost(count: int) -> int:
    return math.ceil(count / FEEDSPY_RECIPES_PER_TOKEN)


def find_package(tokens: int) -> TokenPackage | None:
    for package in TOKEN_PACKAGES:
        if package.tokens == tokens:
            return package
    return None

from __future__ import annotations

import pytest

from chefscript.app.domain.models import Recipe, RecipeParts, RecipeStatus, TemplateRecord
from chefscript.app.domain.pricing import (
    FEEDSPY_ALLOWED_COUNTS,
    STYLE_CREATION_COST,
    TOKEN_PACKAGES,
    calculate_required_tokens,
    feedspy_cost,
    find_package,
    recipe_image_cost,
)


def _parts() -> RecipeParts:
    return RecipeParts(
        title="Greek Salad",
        description="Fresh.",
        ingredients="Tomatoes",
        instructions="Chop.",
        image_prompt="From above",
        macro_prompt="Close up",
        hashtags="#salad",
    )


class TestRecipeStatus:
    def test_values(self) -> None:
        assert RecipeStatus.PENDING.value == "pending"
        assert RecipeStatus.COMPLETED.value == "completed"
        assert RecipeStatus.ERROR.value == "error"

    def test_is_string_enum(self) -> None:
        assert isinstance(RecipeStatus.PENDING, str)


class TestRecipe:
    def test_dict_round_trip(self) -> None:
        recipe = Recipe(
            id="r1",
            name="Greek Salad",
            status=RecipeStatus.COMPLETED,
            timestamp=1_700_000_000_000,
            image_url="https://img.example/1.jpg",
            content="[TITLE]\nGreek Salad",
            parsed_content=_parts(),
            template_id="t1",
            template_applied=True,
        )

        restored = Recipe.from_dict(recipe.to_dict())

        assert restored == recipe
        assert recipe.to_dict()["status"] == "completed"
        assert restored.is_complete

    def test_pending_is_not_complete(self) -> None:
        recipe = Recipe(id="r1", name="Soup", status=RecipeStatus.PENDING, timestamp=0)
        assert not recipe.is_complete


class TestTemplateRecord:
    def test_defaults(self) -> None:
        record = TemplateRecord(name="Post", canvas_data={})
        assert record.is_active is False
        assert record.id is None


class TestPricing:
    @pytest.mark.parametrize(
        ("words", "tokens"),
        [(1, 2), (500, 2), (501, 4), (1000, 4), (1001, 6)],
    )
    def test_plagiarism_cost(self, words: int, tokens: int) -> None:
        assert calculate_required_tokens(words) == tokens

    def test_image_cost_by_provider(self) -> None:
        assert recipe_image_cost("flux") == 1
        assert recipe_image_cost("realistic_image") == 2
        assert recipe_image_cost("2f9a7c1e-1111-2222-3333-444455556666") == 2

    def test_feedspy_cost(self) -> None:
        assert [feedspy_cost(count) for count in FEEDSPY_ALLOWED_COUNTS] == [1, 2, 3, 4]

    def test_style_cost(self) -> None:
        assert STYLE_CREATION_COST == 10

    def test_packages(self) -> None:
        assert [(p.tokens, p.price) for p in TOKEN_PACKAGES] == [(30, 3), (200, 17), (800, 70)]
        assert find_package(200).price == 17
        assert find_package(31) is None

from __future__ import annotations

import asyncio

import pytest

from chefscript.app.domain.errors import MissingSectionsError
from chefscript.services.errors import InvalidInputError
from chefscript.services.recipe_generator import RecipeGenerator

COMPLETE = "\n".join(
    f"[{marker}]\nvalue"
    for marker in (
        "TITLE",
        "DESCRIPTION",
        "INGREDIENTS",
        "INSTRUCTIONS",
        "TOP_VIEW_PROMPT",
        "MACRO_PROMPT",
        "HASHTAGS",
    )
)


class ChatClientStub:
    def __init__(self, reply: str) -> None:
        self.reply = reply
        self.calls: list[dict] = []

    async def chat(self, messages, temperature=0.7, max_tokens=None) -> str:
        self.calls.append({"messages": messages, "temperature": temperature, "max_tokens": max_tokens})
        return self.reply


class TestGenerateRecipe:
    def test_returns_text_with_all_markers(self) -> None:
        client = ChatClientStub(COMPLETE)
        text = asyncio.run(RecipeGenerator(client).generate_recipe("Greek Salad"))

        assert text == COMPLETE
        call = client.calls[0]
        assert call["temperature"] == 0.7
        assert call["max_tokens"] == 2000
        assert call["messages"][0]["role"] == "system"
        assert '"Greek Salad"' in call["messages"][1]["content"]

    def test_empty_name_rejected_before_call(self) -> None:
        client = ChatClientStub(COMPLETE)
        with pytest.raises(InvalidInputError):
            asyncio.run(RecipeGenerator(client).generate_recipe("   "))
        assert client.calls == []

    def test_missing_markers(self) -> None:
        client = ChatClientStub(COMPLETE.replace("[HASHTAGS]", ""))
        with pytest.raises(MissingSectionsError) as excinfo:
            asyncio.run(RecipeGenerator(client).generate_recipe("Soup"))
        assert excinfo.value.missing == ["HASHTAGS"]


class TestGenerateRecipeList:
    def test_prompt_contains_count_and_data(self) -> None:
        client = ChatClientStub("Soup\nSalad")
        result = asyncio.run(RecipeGenerator(client).generate_recipe_list("row one\nrow two", 25))

        assert result == "Soup\nSalad"
        call = client.calls[0]
        assert call["temperature"] == 0.8
        assert "generate 25 unique recipe ideas" in call["messages"][1]["content"]
        assert "row two" in call["messages"][1]["content"]

    def test_empty_data_rejected(self) -> None:
        with pytest.raises(InvalidInputError):
            asyncio.run(RecipeGenerator(ChatClientStub("")).generate_recipe_list(" ", 25))

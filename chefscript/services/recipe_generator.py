from __future__ import annotations

import logging

from chefscript.app.domain.errors import MissingSectionsError
from chefscript.services.errors import InvalidInputError
from chefscript.services.openai_client import OpenAIClient
from chefscript.services.recipe_parser import missing_sections

logger = logging.getLogger(__name__)

RECIPE_SYSTEM_PROMPT = (
    "You are a professional recipe writer and food photographer. Always maintain the exact "
    "format with all section markers ([TITLE], [DESCRIPTION], etc.) and include all required sections."
)

RECIPE_LIST_SYSTEM_PROMPT = (
    "You are a professional recipe developer who specializes in creating trending recipe "
    "content for social media."
)

RECIPE_PROMPT_TEMPLATE = """
Create a detailed recipe for "{name}" following this EXACT format with all sections:

[TITLE]
{name}

[DESCRIPTION]
Write 2-3 compelling sentences about the dish.

[INGREDIENTS]
List all ingredients with exact measurements.

[INSTRUCTIONS]
Provide clear step-by-step cooking instructions.

[TOP_VIEW_PROMPT]
Write a detailed prompt for AI image generation describing how the finished dish should look from above.

[MACRO_PROMPT]
Write a detailed prompt for AI image generation describing a close-up shot of the dish.

[HASHTAGS]
List 5-7 relevant hashtags.

IMPORTANT:
- Include ALL sections with their exact markers
- Keep the [TITLE] exactly as provided
- Make descriptions engaging but concise
- Use metric measurements
- Include cooking times and temperatures
- Focus on visual details in image prompts
- Make hashtags relevant and trending
- Maintain the exact format with section markers"""

RECIPE_LIST_PROMPT_TEMPLATE = """
Analyze the following FeedSpy data and generate {count} unique recipe ideas that would appeal to the same audience. Format the output as a simple list of recipe names, one per line.

FeedSpy Data:
{data}

Rules:
- Generate exactly {count} recipes
- Each recipe should be unique
- Keep names concise but descriptive
- Focus on trending and popular recipes
- Consider seasonal ingredients
- One recipe per line
- No numbers or bullet points
"""


class RecipeGenerator:
    def __init__(self, client: OpenAIClient) -> None:
        self._client = client

    async def generate_recipe(self, recipe_name: str) -> str:
        name = (recipe_name or "").strip()
        if not name:
            raise InvalidInputError("Recipe name is required.")

        content = await self._client.chat(
            [
                {"role": "system", "content": RECIPE_SYSTEM_PROMPT},
                {"role": "user", "content": RECIPE_PROMPT_TEMPLATE.format(name=name)},
            ],
            temperature=0.7,
            max_tokens=2000,
        )

        missing = missing_sections(content)
        if missing:
            logger.warning("recipe_generator.missing_sections name=%s missing=%s", name, missing)
            raise MissingSectionsError(missing)
        return content

    async def generate_recipe_list(self, feedspy_data: str, count: int) -> str:
        if not (feedspy_data or "").strip():
            raise InvalidInputError("FeedSpy data is empty.")
        return await self._client.chat(
            [
                {"role": "system", "content": RECIPE_LIST_SYSTEM_PROMPT},
                {
                    "role": "user",
                    "content": RECIPE_LIST_PROMPT_TEMPLATE.format(count=count, data=feedspy_data),
                },
            ],
            temperature=0.8,
        )

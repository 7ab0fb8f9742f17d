from __future__ import annotations

from typing import Literal, Optional

from pydantic import BaseModel, Field

from chefscript.app.domain.models import Recipe


class RecipeContent(BaseModel):
    title: str
    description: str
    ingredients: str
    instructions: str
    imagePrompt: str
    macroPrompt: str
    hashtags: str


class RecipeResponse(BaseModel):
    id: str
    name: str
    status: Literal["pending", "completed", "error"]
    timestamp: int
    imageUrl: Optional[str] = None
    content: Optional[str] = None
    parsedContent: Optional[RecipeContent] = None
    templateId: Optional[str] = None
    templateApplied: bool = False
    error: Optional[str] = None

    @classmethod
    def from_recipe(cls, recipe: Recipe) -> "RecipeResponse":
        parts = recipe.parsed_content
        return cls(
            id=recipe.id,
            name=recipe.name,
            status=recipe.status.value,
            timestamp=recipe.timestamp,
            imageUrl=recipe.image_url,
            content=recipe.content,
            parsedContent=RecipeContent(
                title=parts.title,
                description=parts.description,
                ingredients=parts.ingredients,
                instructions=parts.instructions,
                imagePrompt=parts.image_prompt,
                macroPrompt=parts.macro_prompt,
                hashtags=parts.hashtags,
            ) if parts else None,
            templateId=recipe.template_id,
            templateApplied=recipe.template_applied,
            error=recipe.error,
        )


class GenerateRecipesRequest(BaseModel):
    names: str = Field(..., description="Recipe names, one per line")
    style: str = Field(default="realistic_image", description="flux, a Recraft style or a custom style id")
    applyTemplate: bool = False


class GenerateRecipesResponse(BaseModel):
    recipes: list[RecipeResponse]
    tokensRequired: int

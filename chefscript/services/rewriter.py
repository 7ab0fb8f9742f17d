from __future__ import annotations

import asyncio
import logging
from typing import Optional, Sequence

from chefscript.app.domain.models import BacklinkOptions, PlagiarizedSection
from chefscript.services.html_content import MAX_CHUNK_LENGTH, split_html_content
from chefscript.services.openai_client import OpenAIClient

logger = logging.getLogger(__name__)

REWRITER_SYSTEM_PROMPT = (
    "You are a professional content writer and SEO expert who specializes in creating unique, "
    "engaging content with appropriate backlinks when requested."
)


def relevant_sections(chunk: str, sections: Sequence[PlagiarizedSection]) -> list[PlagiarizedSection]:
    return [section for section in sections if section.text and section.text in chunk]


def build_chunk_prompt(
    chunk: str,
    sections: Sequence[PlagiarizedSection],
    backlinks: Optional[BacklinkOptions] = None,
    chunk_index: int = 0,
    total_chunks: int = 1,
) -> str:
    matches = relevant_sections(chunk, sections)

    if backlinks:
        steps = "1. Rewrite any plagiarized sections found in this chunk\n2. " if matches else ""
        instructions = (
            "Instructions:\n"
            f"{steps}Add contextually relevant backlinks from {backlinks.website_domain}\n"
            f"- Space links evenly (aim for one link per {backlinks.words_per_link} words in this chunk)\n"
            f"- Use the sitemap at {backlinks.website_domain}/post-sitemap.xml\n"
            "- Choose relevant anchor text\n"
            "- Do not place links in the first paragraph of the article\n"
            "- Only link to topically related content"
        )
        if backlinks.max_links:
            instructions += f"\n- Add no more than {backlinks.max_links} links across the whole article"
    else:
        instructions = "Rewrite any plagiarized sections while maintaining style and structure."

    parts = [
        f"Process this chunk ({chunk_index + 1}/{total_chunks}) of an HTML article. {instructions}",
        f"Content chunk:\n{chunk}",
    ]

    if matches:
        listed = "\n".join(
            f"[Match {index}]\n{section.text}\nSource: {section.source}\n"
            for index, section in enumerate(matches, start=1)
        )
        parts.append(f"Plagiarized sections in this chunk:\n{listed}")

    rules = []
    if matches:
        rules.append("- Rewrite the plagiarized sections")
    rules += [
        "- Preserve all HTML tags and structure",
        "- Maintain the original writing style and tone",
        "- Ensure content is unique and original",
    ]
    if backlinks:
        rules += [
            "- Add contextually relevant backlinks",
            "- Use natural anchor text",
            "- Ensure links fit the context",
        ]
    parts.append("Rules:\n" + "\n".join(rules))
    parts.append(
        "Return Format:\nReturn only the processed HTML content, maintaining all original tags and structure."
    )
    return "\n\n".join(parts)


class ContentRewriter:
    def __init__(self, client: OpenAIClient, max_chunk_length: int = MAX_CHUNK_LENGTH) -> None:
        self._client = client
        self.max_chunk_length = max_chunk_length

    async def _process_chunk(
        self,
        chunk: str,
        sections: Sequence[PlagiarizedSection],
        backlinks: Optional[BacklinkOptions],
        index: int,
        total: int,
    ) -> str:
        prompt = build_chunk_prompt(chunk, sections, backlinks, index, total)
        content = await self._client.chat(
            [
                {"role": "system", "content": REWRITER_SYSTEM_PROMPT},
                {"role": "user", "content": prompt},
            ],
            temperature=0.7,
        )
        return content.strip()

    async def rewrite(
        self,
        html: str,
        sections: Sequence[PlagiarizedSection],
        backlinks: Optional[BacklinkOptions] = None,
    ) -> str:
        """
        Rewrite every chunk concurrently and join them in the original order.
        A single failed chunk fails the whole rewrite.
        """
        chunks = split_html_content(html, self.max_chunk_length)
        if not chunks:
            return ""
        logger.info("rewriter.start chunks=%d sections=%d backlinks=%s", len(chunks), len(sections), bool(backlinks))
        processed = await asyncio.gather(
            *(
                self._process_chunk(chunk, sections, backlinks, index, len(chunks))
                for index, chunk in enumerate(chunks)
            )
        )
        return "\n".join(processed)

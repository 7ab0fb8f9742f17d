from __future__ import annotations

from dataclasses import dataclass

from bs4 import BeautifulSoup

MAX_CHUNK_LENGTH = 12000  # characters per rewrite request


@dataclass(frozen=True)
class ParagraphStats:
    char_count: int
    word_count: int


def _paragraphs(html: str):
    soup = BeautifulSoup(html or "", "html.parser")
    return [p for p in soup.find_all("p") if p.find_parent("p") is None]


def count_words(text: str) -> int:
    stripped = (text or "").strip()
    return len(stripped.split()) if stripped else 0


def paragraph_stats(html: str) -> ParagraphStats:
    """Character and word counts over the visible text of `<p>` elements."""
    if not (html or "").strip():
        return ParagraphStats(char_count=0, word_count=0)
    text = "\n\n".join(p.get_text() for p in _paragraphs(html))
    return ParagraphStats(char_count=len(text), word_count=count_words(text))


def extract_paragraph_text(html: str) -> str:
    """Inner HTML of every `<p>` element, blank-line separated."""
    return "\n\n".join(p.decode_contents() for p in _paragraphs(html))


def split_html_content(html: str, max_length: int = MAX_CHUNK_LENGTH) -> list[str]:
    """
    Pack whole `<p>` elements greedily into chunks of at most `max_length`
    characters. A paragraph longer than the limit becomes its own chunk.
    """
    chunks: list[str] = []
    current = ""
    for paragraph in _paragraphs(html):
        markup = str(paragraph)
        if current and len(current) + len(markup) > max_length:
            chunks.append(current)
            current = markup
        else:
            current += markup
    if current:
        chunks.append(current)
    return chunks

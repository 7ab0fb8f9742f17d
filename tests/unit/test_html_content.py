from __future__ import annotations

from chefscript.services.html_content import (
    count_words,
    extract_paragraph_text,
    paragraph_stats,
    split_html_content,
)

ARTICLE = "<h1>Heading</h1><p>First <b>bold</b> words.</p><div><p>Second one</p></div><ul><li>skip me</li></ul>"


class TestCountWords:
    def test_whitespace_runs(self) -> None:
        assert count_words("  one\ttwo\n\nthree  ") == 3

    def test_empty(self) -> None:
        assert count_words("") == 0
        assert count_words("   ") == 0


class TestParagraphs:
    def test_stats_ignore_other_elements(self) -> None:
        stats = paragraph_stats(ARTICLE)

        assert stats.word_count == 5
        assert stats.char_count == len("First bold words.\n\nSecond one")

    def test_stats_for_empty_html(self) -> None:
        stats = paragraph_stats("   ")
        assert (stats.char_count, stats.word_count) == (0, 0)

    def test_extract_keeps_inline_markup(self) -> None:
        assert extract_paragraph_text(ARTICLE) == "First <b>bold</b> words.\n\nSecond one"


class TestSplit:
    def test_packs_whole_paragraphs(self) -> None:
        html = "<p>aaaa</p><p>bbbb</p><p>cccc</p>"

        assert split_html_content(html, max_length=22) == ["<p>aaaa</p><p>bbbb</p>", "<p>cccc</p>"]

    def test_long_paragraph_is_its_own_chunk(self) -> None:
        long_paragraph = "<p>" + "x" * 50 + "</p>"
        html = "<p>a</p>" + long_paragraph + "<p>b</p>"

        assert split_html_content(html, max_length=20) == ["<p>a</p>", long_paragraph, "<p>b</p>"]

    def test_no_paragraphs(self) -> None:
        assert split_html_content("<div>nothing</div>") == []

    def test_chunks_concatenate_to_paragraph_sequence(self) -> None:
        paragraphs = [f"<p>paragraph {index} " + "word " * index + "</p>" for index in range(12)]
        html = "<h2>Intro</h2>" + "".join(paragraphs) + "<footer>bye</footer>"

        chunks = split_html_content(html, max_length=60)

        assert "".join(chunks) == "".join(paragraphs)
        for chunk in chunks:
            assert chunk.startswith("<p>") and chunk.endswith("</p>")
            assert chunk.count("<p>") == chunk.count("</p>")

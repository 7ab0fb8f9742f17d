from __future__ import annotations

import asyncio
import io

import pytest
from PIL import Image

from chefscript.app.domain.errors import InsufficientTokensError, StyleCreationError
from chefscript.app.domain.models import ChargeResult, Style
from chefscript.app.infra.db.base import StyleRepository, TokenRepository
from chefscript.app.services.style_service import (
    TEST_PROMPT,
    StyleService,
    UploadedImage,
    process_image,
    read_uploads,
    validate_uploads,
)
from chefscript.app.services.token_ledger import TokenLedger
from chefscript.services.errors import InsufficientCreditsError, InvalidInputError


class InMemoryTokenRepository(TokenRepository):
    def __init__(self, balance: int) -> None:
        self.balance = balance

    def get_balance(self, user_id: str) -> int:
        return self.balance

    def charge(self, user_id: str, amount: int) -> ChargeResult:
        self.balance -= amount
        return ChargeResult(allowed=True, balance=self.balance, amount=amount)

    def credit(self, user_id: str, amount: int) -> int:
        self.balance += amount
        return self.balance


class InMemoryStyleRepository(StyleRepository):
    def __init__(self, fail: bool = False) -> None:
        self.styles: list[Style] = []
        self.fail = fail

    def list_styles(self) -> list[Style]:
        return list(self.styles)

    def create_style(self, user_id: str, style: Style) -> Style:
        if self.fail:
            raise ConnectionError("insert failed")
        style.id = f"s{len(self.styles) + 1}"
        self.styles.append(style)
        return style


class RecraftStub:
    def __init__(self, create_error: Exception | None = None) -> None:
        self.create_error = create_error
        self.uploaded: list = []
        self.prompts: list[tuple[str, str]] = []

    async def create_style(self, base_style, images) -> str:
        if self.create_error:
            raise self.create_error
        self.uploaded = list(images)
        return "style-abc"

    async def generate_image(self, prompt: str, *, custom_style_id=None, **kwargs) -> str:
        self.prompts.append((prompt, custom_style_id))
        return "https://img.test/thumb.png"


def _upload(size: tuple[int, int] = (2048, 1024), name: str = "photo.jpg") -> UploadedImage:
    output = io.BytesIO()
    Image.new("RGB", size, (200, 120, 40)).save(output, format="JPEG")
    return UploadedImage(filename=name, content=output.getvalue(), content_type="image/jpeg")


class TestProcessImage:
    def test_shrinks_longest_side(self) -> None:
        processed = process_image(_upload((2048, 1024)))

        image = Image.open(io.BytesIO(processed.content))
        assert image.format == "PNG"
        assert image.size == (1024, 512)
        assert processed.filename == "photo.png"

    def test_small_image_keeps_size(self) -> None:
        processed = process_image(_upload((300, 600)))
        assert Image.open(io.BytesIO(processed.content)).size == (300, 600)

    def test_unreadable(self) -> None:
        with pytest.raises(InvalidInputError):
            process_image(UploadedImage("bad.png", b"not an image", "image/png"))


class TestValidateUploads:
    def test_limits(self) -> None:
        with pytest.raises(InvalidInputError):
            validate_uploads([])
        with pytest.raises(InvalidInputError, match="At most 5"):
            validate_uploads([_upload()] * 6)
        with pytest.raises(InvalidInputError, match="PNG and JPEG"):
            validate_uploads([UploadedImage("a.gif", b"x" * 500, "image/gif")])
        with pytest.raises(InvalidInputError, match="too small"):
            validate_uploads([UploadedImage("a.png", b"x" * 10, "image/png")])
        with pytest.raises(InvalidInputError, match="exceeds 5MB"):
            validate_uploads([UploadedImage("a.png", b"x" * (5 * 1024 * 1024 + 1), "image/png")])


class FakeUpload:
    def __init__(self, filename: str, content: bytes, size: int | None = None) -> None:
        self.filename = filename
        self.content_type = "image/png"
        self.size = size
        self._buffer = io.BytesIO(content)
        self.bytes_read = 0

    async def read(self, size: int = -1) -> bytes:
        chunk = self._buffer.read(size)
        self.bytes_read += len(chunk)
        return chunk


class TestReadUploads:
    def test_reads_every_file(self) -> None:
        files = [FakeUpload("a.png", b"a" * 300), FakeUpload("b.png", b"b" * 10)]

        uploads = asyncio.run(read_uploads(files, chunk_size=64))

        assert [upload.content for upload in uploads] == [b"a" * 300, b"b" * 10]
        assert uploads[0] == UploadedImage("a.png", b"a" * 300, "image/png")

    def test_declared_size_rejected_before_reading(self) -> None:
        big = FakeUpload("a.png", b"a" * 10, size=6 * 1024 * 1024)

        with pytest.raises(InvalidInputError, match="exceeds 5MB"):
            asyncio.run(read_uploads([big]))

        assert big.bytes_read == 0

    def test_stops_reading_past_the_limit(self) -> None:
        first = FakeUpload("a.png", b"a" * 600)
        second = FakeUpload("b.png", b"b" * 600)

        with pytest.raises(InvalidInputError, match="exceeds 5MB"):
            asyncio.run(read_uploads([first, second], max_total=1000, chunk_size=100))

        assert first.bytes_read == 600
        assert second.bytes_read == 500

    def test_too_many_files(self) -> None:
        with pytest.raises(InvalidInputError, match="At most 5"):
            asyncio.run(read_uploads([FakeUpload("a.png", b"a")] * 6))


class TestStyleService:
    def test_create_style(self) -> None:
        repo = InMemoryStyleRepository()
        tokens = InMemoryTokenRepository(balance=12)
        recraft = RecraftStub()

        style = asyncio.run(StyleService(repo, recraft, TokenLedger(tokens)).create_style("u1", " Warm ", [_upload()]))

        assert style.name == "Warm"
        assert style.custom_style_id == "style-abc"
        assert style.thumbnail_url == "https://img.test/thumb.png"
        assert recraft.prompts == [(TEST_PROMPT, "style-abc")]
        assert recraft.uploaded[0].content_type == "image/png"
        assert tokens.balance == 2

    def test_insufficient_tokens(self) -> None:
        recraft = RecraftStub()
        service = StyleService(InMemoryStyleRepository(), recraft, TokenLedger(InMemoryTokenRepository(9)))

        with pytest.raises(InsufficientTokensError, match="requires 10 tokens"):
            asyncio.run(service.create_style("u1", "Warm", [_upload()]))
        assert recraft.prompts == []

    def test_provider_out_of_credits(self) -> None:
        recraft = RecraftStub(create_error=InsufficientCreditsError("not_enough_credits"))
        tokens = InMemoryTokenRepository(20)
        service = StyleService(InMemoryStyleRepository(), recraft, TokenLedger(tokens))

        with pytest.raises(InsufficientCreditsError, match="Recraft API account"):
            asyncio.run(service.create_style("u1", "Warm", [_upload()]))
        assert tokens.balance == 20

    def test_store_failure_is_not_charged(self) -> None:
        tokens = InMemoryTokenRepository(20)
        service = StyleService(InMemoryStyleRepository(fail=True), RecraftStub(), TokenLedger(tokens))

        with pytest.raises(StyleCreationError):
            asyncio.run(service.create_style("u1", "Warm", [_upload()]))
        assert tokens.balance == 20

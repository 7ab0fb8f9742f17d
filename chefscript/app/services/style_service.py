# chefscript/app/services/style_service.py
"""
Custom image styles built from reference photos.
"""
from __future__ import annotations

import io
import logging
from dataclasses import dataclass
from pathlib import PurePath
from typing import Any, Sequence

from PIL import Image, UnidentifiedImageError
from starlette.concurrency import run_in_threadpool

from chefscript.app.domain.errors import StyleCreationError
from chefscript.app.domain.models import Style
from chefscript.app.domain.pricing import DEFAULT_STYLE, STYLE_CREATION_COST
from chefscript.app.infra.db.base import StyleRepository
from chefscript.app.services.token_ledger import TokenLedger
from chefscript.services.errors import InsufficientCreditsError, InvalidInputError
from chefscript.services.recraft import RecraftClient, StyleImage

logger = logging.getLogger(__name__)

TEST_PROMPT = "A beautiful plate of food on a rustic wooden table with natural lighting"
MAX_IMAGES = 5
MAX_IMAGE_SIZE = 1024  # pixels, longest side
MIN_TOTAL_SIZE = 100  # bytes
MAX_TOTAL_SIZE = 5 * 1024 * 1024  # bytes
ALLOWED_CONTENT_TYPES = ("image/png", "image/jpeg")
READ_CHUNK_SIZE = 64 * 1024


@dataclass(frozen=True)
class UploadedImage:
    filename: str
    content: bytes
    content_type: str


def process_image(upload: UploadedImage, max_size: int = MAX_IMAGE_SIZE) -> StyleImage:
    """Shrink to `max_size` on the longest side, keep the aspect ratio, re-encode as PNG."""
    try:
        image = Image.open(io.BytesIO(upload.content))
        image.load()
    except (UnidentifiedImageError, OSError) as exc:
        raise InvalidInputError(f"Failed to process image: {upload.filename}") from exc

    width, height = image.size
    if width > height and width > max_size:
        height = round(height * max_size / width)
        width = max_size
    elif height > max_size:
        width = round(width * max_size / height)
        height = max_size
    if (width, height) != image.size:
        image = image.resize((width, height), Image.LANCZOS)

    if image.mode not in ("RGB", "RGBA"):
        image = image.convert("RGBA")
    output = io.BytesIO()
    image.save(output, format="PNG")
    return StyleImage(
        filename=str(PurePath(upload.filename or "image").with_suffix(".png")),
        content=output.getvalue(),
        content_type="image/png",
    )


def _too_large(total: int) -> InvalidInputError:
    return InvalidInputError(
        f"Total image size exceeds 5MB limit. Current total: {total / 1024 / 1024:.2f}MB"
    )


async def read_uploads(
    files: Sequence[Any],
    max_total: int = MAX_TOTAL_SIZE,
    chunk_size: int = READ_CHUNK_SIZE,
) -> list[UploadedImage]:
    """
    Read multipart uploads into memory, stopping as soon as the combined
    size passes `max_total`. Declared sizes are checked before any read.
    """
    if len(files) > MAX_IMAGES:
        raise InvalidInputError(f"At most {MAX_IMAGES} reference images are allowed")
    declared = sum(getattr(file, "size", None) or 0 for file in files)
    if declared > max_total:
        raise _too_large(declared)

    uploads = []
    total = 0
    for file in files:
        parts = []
        while True:
            chunk = await file.read(chunk_size)
            if not chunk:
                break
            total += len(chunk)
            if total > max_total:
                logger.warning("styles.upload_too_large filename=%s read=%d", file.filename, total)
                raise _too_large(total)
            parts.append(chunk)
        uploads.append(
            UploadedImage(
                filename=file.filename or "image",
                content=b"".join(parts),
                content_type=file.content_type or "",
            )
        )
    return uploads


def validate_uploads(uploads: Sequence[UploadedImage]) -> None:
    if not uploads:
        raise InvalidInputError("At least one reference image is required")
    if len(uploads) > MAX_IMAGES:
        raise InvalidInputError(f"At most {MAX_IMAGES} reference images are allowed")
    for upload in uploads:
        if upload.content_type not in ALLOWED_CONTENT_TYPES:
            raise InvalidInputError("Only PNG and JPEG images are supported")

    total = sum(len(upload.content) for upload in uploads)
    if total > MAX_TOTAL_SIZE:
        raise _too_large(total)
    if total < MIN_TOTAL_SIZE:
        raise InvalidInputError("Total image size is too small. Please add larger images.")


class StyleService:
    def __init__(self, repository: StyleRepository, recraft: RecraftClient, ledger: TokenLedger):
        self._repo = repository
        self._recraft = recraft
        self._ledger = ledger

    def list_styles(self) -> list[Style]:
        return self._repo.list_styles()

    async def create_style(self, user_id: str, name: str, uploads: Sequence[UploadedImage]) -> Style:
        """
        Create a Recraft style from the uploads, render a thumbnail with it,
        store it and charge the flat style price.
        """
        if not (name or "").strip():
            raise InvalidInputError("Style name is required")
        validate_uploads(uploads)
        await run_in_threadpool(
            self._ledger.ensure_balance,
            user_id,
            STYLE_CREATION_COST,
            f"Insufficient tokens. Style creation requires {STYLE_CREATION_COST} tokens.",
        )

        images = [await run_in_threadpool(process_image, upload) for upload in uploads]

        try:
            custom_style_id = await self._recraft.create_style(DEFAULT_STYLE, images)
        except InsufficientCreditsError as exc:
            raise InsufficientCreditsError(
                "Your Recraft API account has insufficient credits. "
                "Please add credits to your Recraft account to create custom styles."
            ) from exc
        thumbnail_url = await self._recraft.generate_image(TEST_PROMPT, custom_style_id=custom_style_id)

        try:
            style = await run_in_threadpool(
                self._repo.create_style,
                user_id,
                Style(
                    id="",
                    name=name.strip(),
                    custom_style_id=custom_style_id,
                    thumbnail_url=thumbnail_url,
                    base_style=DEFAULT_STYLE,
                ),
            )
        except Exception as exc:
            logger.error("Style creation error: user=%s style=%s error=%s", user_id, custom_style_id, exc)
            raise StyleCreationError("Failed to save style") from exc

        await run_in_threadpool(self._ledger.charge, user_id, STYLE_CREATION_COST)
        logger.info("Style created: user=%s style=%s", user_id, custom_style_id)
        return style

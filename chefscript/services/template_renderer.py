"""
Off-screen composition of a stored template onto a recipe photo.

The scene is rebuilt with Pillow: the photo is stretched over the whole
canvas, the title placeholder receives the recipe title, and every other
layer is drawn bottom to top before the result is exported as a JPEG.
"""
from __future__ import annotations

import base64
import io
import logging
import re
from typing import Any, Optional, Sequence
from urllib.parse import quote, urlparse

import httpx
from PIL import Image, ImageColor, ImageDraw, ImageFont, UnidentifiedImageError

from chefscript.app.domain.scene import (
    BackgroundLayer,
    ImageLayer,
    Layer,
    PathLayer,
    Scene,
    ShapeKind,
    ShapeLayer,
    TextLayer,
)
from chefscript.services.errors import InvalidResponseError, ProviderError
from chefscript.services.http import new_async_client

logger = logging.getLogger(__name__)

DEFAULT_PROXY_URL = "https://api.allorigins.win/raw"
DEFAULT_RESTRICTED_HOSTS = ("bfl.ai",)
JPEG_QUALITY = 90

# Font files looked up on the host; Pillow's scalable default is used when none is installed.
FONT_FILES = {
    ("Arial", "normal", "normal"): "DejaVuSans.ttf",
    ("Arial", "bold", "normal"): "DejaVuSans-Bold.ttf",
    ("Arial", "normal", "italic"): "DejaVuSans-Oblique.ttf",
    ("Arial", "bold", "italic"): "DejaVuSans-BoldOblique.ttf",
    ("Verdana", "normal", "normal"): "DejaVuSans.ttf",
    ("Verdana", "bold", "normal"): "DejaVuSans-Bold.ttf",
    ("Times New Roman", "normal", "normal"): "DejaVuSerif.ttf",
    ("Times New Roman", "bold", "normal"): "DejaVuSerif-Bold.ttf",
    ("Georgia", "normal", "normal"): "DejaVuSerif.ttf",
    ("Georgia", "bold", "normal"): "DejaVuSerif-Bold.ttf",
    ("Courier New", "normal", "normal"): "DejaVuSansMono.ttf",
    ("Courier New", "bold", "normal"): "DejaVuSansMono-Bold.ttf",
}

_PATH_TOKEN = re.compile(r"[MLHVCSQTAZmlhvcsqtaz]|-?(?:\d+\.?\d*|\.\d+)(?:[eE][-+]?\d+)?")
_PATH_ARITY = {"M": 2, "L": 2, "H": 1, "V": 1, "C": 6, "S": 4, "Q": 4, "T": 2, "A": 7, "Z": 0}


def resolve_image_url(
    url: str,
    proxy_url: str = DEFAULT_PROXY_URL,
    restricted_hosts: Sequence[str] = DEFAULT_RESTRICTED_HOSTS,
) -> str:
    """Route images from hosts that block cross-origin reads through the read-through proxy."""
    host = (urlparse(url).hostname or "").lower()
    for restricted in restricted_hosts:
        restricted = restricted.lower()
        if host == restricted or host.endswith(f".{restricted}"):
            return f"{proxy_url}?url={quote(url, safe='')}"
    return url


def _color(value: Optional[str], default: str = "#000000") -> tuple[int, int, int, int]:
    try:
        return ImageColor.getcolor(value or default, "RGBA")  # type: ignore[return-value]
    except ValueError:
        return ImageColor.getcolor(default, "RGBA")  # type: ignore[return-value]


def _load_font(layer: TextLayer) -> ImageFont.FreeTypeFont | ImageFont.ImageFont:
    key = (layer.font_family, layer.font_weight, layer.font_style)
    filename = FONT_FILES.get(key) or FONT_FILES.get((layer.font_family, layer.font_weight, "normal"))
    if filename:
        try:
            return ImageFont.truetype(filename, layer.font_size)
        except OSError:
            pass
    return ImageFont.load_default(size=layer.font_size)


def path_points(path_data: str) -> list[tuple[float, float]]:
    """
    Flatten SVG path data into a polygon. Curves and arcs contribute their
    end point only, which is enough for the simple decorative marks the
    editor offers.
    """
    tokens = _PATH_TOKEN.findall(path_data or "")
    points: list[tuple[float, float]] = []
    x = y = 0.0
    start = (0.0, 0.0)
    command = ""
    index = 0
    while index < len(tokens):
        token = tokens[index]
        if token.isalpha():
            command = token
            index += 1
            if command.upper() == "Z":
                x, y = start
                points.append(start)
                continue
        if not command:
            break
        arity = _PATH_ARITY[command.upper()]
        args = tokens[index:index + arity]
        if len(args) < arity or any(arg.isalpha() for arg in args):
            break
        values = [float(arg) for arg in args]
        index += arity
        relative = command.islower()
        upper = command.upper()
        if upper == "H":
            x = x + values[0] if relative else values[0]
        elif upper == "V":
            y = y + values[0] if relative else values[0]
        else:
            end_x, end_y = values[-2], values[-1]
            x, y = (x + end_x, y + end_y) if relative else (end_x, end_y)
        if upper == "M":
            start = (x, y)
            # implicit line-to after the first pair
            command = "l" if relative else "L"
        points.append((x, y))
    return points


class TemplateRenderer:
    def __init__(
        self,
        http: Optional[httpx.AsyncClient] = None,
        proxy_url: str = DEFAULT_PROXY_URL,
        restricted_hosts: Sequence[str] = DEFAULT_RESTRICTED_HOSTS,
    ) -> None:
        self.proxy_url = proxy_url
        self.restricted_hosts = tuple(restricted_hosts)
        self._http = http

    async def fetch_image(self, src: str) -> Image.Image:
        if src.startswith("data:"):
            try:
                raw = base64.b64decode(src.split(",", 1)[1])
            except (IndexError, ValueError) as exc:
                raise InvalidResponseError("Invalid inline image data") from exc
        else:
            url = resolve_image_url(src, self.proxy_url, self.restricted_hosts)
            http = self._http or new_async_client()
            try:
                response = await http.get(url, follow_redirects=True)
            except httpx.HTTPError as exc:
                raise ProviderError(f"Failed to load image: {exc}") from exc
            finally:
                if self._http is None:
                    await http.aclose()
            if response.is_error:
                raise ProviderError(f"Failed to load image: HTTP {response.status_code}", response.status_code)
            raw = response.content

        try:
            image = Image.open(io.BytesIO(raw))
            image.load()
        except (UnidentifiedImageError, OSError) as exc:
            raise InvalidResponseError("Downloaded file is not a readable image") from exc
        return image.convert("RGBA")

    async def compose(self, canvas_data: dict[str, Any], photo_url: str, title: Optional[str] = None) -> bytes:
        """Render the template over `photo_url` and return JPEG bytes."""
        scene = Scene.from_document(canvas_data)
        if title:
            scene = scene.with_title(title)

        size = (scene.width, scene.height)
        background = scene.background
        canvas = Image.new("RGBA", size, _color(background.fill if background else None, "#ffffff"))

        photo = await self.fetch_image(photo_url)
        canvas.alpha_composite(photo.resize(size, Image.LANCZOS))

        for layer in scene.layers:
            if isinstance(layer, BackgroundLayer):
                continue
            tile = await self._render_layer(layer)
            if tile is not None:
                self._paste(canvas, tile, layer)

        output = io.BytesIO()
        canvas.convert("RGB").save(output, format="JPEG", quality=JPEG_QUALITY)
        logger.info("template.composed size=%sx%s layers=%d", scene.width, scene.height, len(scene.layers))
        return output.getvalue()

    async def _render_layer(self, layer: Layer) -> Optional[Image.Image]:
        if isinstance(layer, ShapeLayer):
            return _render_shape(layer)
        if isinstance(layer, TextLayer):
            return _render_text(layer)
        if isinstance(layer, ImageLayer):
            image = await self.fetch_image(layer.src)
            return image.resize((max(1, round(layer.width)), max(1, round(layer.height))), Image.LANCZOS)
        if isinstance(layer, PathLayer):
            return _render_path(layer)
        return None

    @staticmethod
    def _paste(canvas: Image.Image, tile: Image.Image, layer: Layer) -> None:
        geometry = layer.geometry
        width = max(1, round(tile.width * geometry.scale_x))
        height = max(1, round(tile.height * geometry.scale_y))
        if (width, height) != tile.size:
            tile = tile.resize((width, height), Image.LANCZOS)
        if geometry.angle:
            # clockwise, like the editor
            tile = tile.rotate(-geometry.angle, expand=True, resample=Image.BICUBIC)
        if geometry.opacity < 1:
            alpha = tile.getchannel("A").point(lambda value: round(value * geometry.opacity))
            tile.putalpha(alpha)

        layer_box = Image.new("RGBA", canvas.size, (0, 0, 0, 0))
        layer_box.paste(tile, (round(geometry.left), round(geometry.top)))
        canvas.alpha_composite(layer_box)


def _render_shape(layer: ShapeLayer) -> Image.Image:
    width, height = max(1, round(layer.width)), max(1, round(layer.height))
    tile = Image.new("RGBA", (width, height), (0, 0, 0, 0))
    draw = ImageDraw.Draw(tile)
    box = (0, 0, width - 1, height - 1)
    if layer.kind is ShapeKind.CIRCLE:
        draw.ellipse(box, fill=_color(layer.fill))
    else:
        draw.rounded_rectangle(box, radius=layer.corner_radius, fill=_color(layer.fill))
    return tile


def _render_text(layer: TextLayer) -> Optional[Image.Image]:
    if not layer.text:
        return None
    font = _load_font(layer)
    probe = ImageDraw.Draw(Image.new("RGBA", (1, 1)))
    left, top, right, bottom = probe.multiline_textbbox((0, 0), layer.text, font=font, align=layer.text_align)
    tile = Image.new("RGBA", (max(1, right - left), max(1, bottom - top)), (0, 0, 0, 0))
    ImageDraw.Draw(tile).multiline_text(
        (-left, -top), layer.text, font=font, fill=_color(layer.fill), align=layer.text_align
    )
    return tile


def _render_path(layer: PathLayer) -> Optional[Image.Image]:
    points = path_points(layer.path)
    if len(points) < 3:
        return None
    min_x = min(x for x, _ in points)
    min_y = min(y for _, y in points)
    shifted = [(x - min_x, y - min_y) for x, y in points]
    width = max(1, round(max(x for x, _ in shifted)) + 1)
    height = max(1, round(max(y for _, y in shifted)) + 1)
    tile = Image.new("RGBA", (width, height), (0, 0, 0, 0))
    ImageDraw.Draw(tile).polygon(shifted, fill=_color(layer.fill))
    return tile

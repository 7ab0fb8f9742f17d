from __future__ import annotations

import asyncio
import base64
import io

import httpx
from PIL import Image

from chefscript.services.template_renderer import TemplateRenderer, path_points, resolve_image_url

PROXY = "https://proxy.test/raw"


def _png(color: tuple[int, int, int], size: tuple[int, int] = (20, 20)) -> bytes:
    output = io.BytesIO()
    Image.new("RGB", size, color).save(output, format="PNG")
    return output.getvalue()


def _data_url(content: bytes) -> str:
    return "data:image/png;base64," + base64.b64encode(content).decode("ascii")


def _close(actual: tuple[int, ...], expected: tuple[int, int, int], tolerance: int = 30) -> bool:
    return all(abs(a - e) <= tolerance for a, e in zip(actual, expected))


class TestResolveImageUrl:
    def test_restricted_host_is_proxied(self) -> None:
        url = "https://delivery.bfl.ai/result/sample.jpg?sig=a&b=c"

        resolved = resolve_image_url(url, PROXY, ("bfl.ai",))

        assert resolved == PROXY + "?url=https%3A%2F%2Fdelivery.bfl.ai%2Fresult%2Fsample.jpg%3Fsig%3Da%26b%3Dc"

    def test_other_hosts_untouched(self) -> None:
        url = "https://img.recraft.ai/a.png"
        assert resolve_image_url(url, PROXY, ("bfl.ai",)) == url
        assert resolve_image_url("https://notbfl.ai/x.png", PROXY, ("bfl.ai",)) == "https://notbfl.ai/x.png"


class TestPathPoints:
    def test_absolute_triangle(self) -> None:
        assert path_points("M 0 0 L 10 0 L 10 10 Z") == [(0, 0), (10, 0), (10, 10), (0, 0)]

    def test_relative_and_implicit_lines(self) -> None:
        assert path_points("m5,5 10,0 0,10 h-10 z") == [(5, 5), (15, 5), (15, 15), (5, 15), (5, 5)]

    def test_garbage(self) -> None:
        assert path_points("hello") == []


class TestCompose:
    def test_layers_drawn_over_photo(self) -> None:
        document = {
            "version": 1,
            "width": 100,
            "height": 100,
            "layers": [
                {"type": "background", "fill": "#ffffff"},
                {"type": "shape", "kind": "rect", "left": 10, "top": 10, "width": 30, "height": 30, "fill": "#ff0000"},
                {"type": "text", "text": "Title", "left": 50, "top": 60, "fontSize": 12, "isPlaceholder": True},
            ],
        }
        renderer = TemplateRenderer()

        jpeg = asyncio.run(renderer.compose(document, _data_url(_png((0, 0, 255))), title="Greek Salad"))

        image = Image.open(io.BytesIO(jpeg))
        assert image.format == "JPEG"
        assert image.size == (100, 100)
        assert _close(image.getpixel((25, 25)), (255, 0, 0))
        assert _close(image.getpixel((90, 10)), (0, 0, 255))

    def test_half_opacity_blends(self) -> None:
        document = {
            "width": 40,
            "height": 40,
            "layers": [
                {"type": "shape", "kind": "rect", "width": 40, "height": 40, "fill": "#ffffff", "opacity": 0.5},
            ],
        }

        jpeg = asyncio.run(TemplateRenderer().compose(document, _data_url(_png((0, 0, 0)))))

        red, green, blue = Image.open(io.BytesIO(jpeg)).getpixel((20, 20))
        assert 100 <= red <= 155

    def test_remote_photo_goes_through_proxy(self) -> None:
        seen: list[str] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(str(request.url))
            return httpx.Response(200, content=_png((0, 255, 0)))

        async def scenario() -> bytes:
            async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as http:
                renderer = TemplateRenderer(http=http, proxy_url=PROXY, restricted_hosts=("bfl.ai",))
                return await renderer.compose({"width": 10, "height": 10}, "https://delivery.bfl.ai/x.jpg")

        jpeg = asyncio.run(scenario())

        assert seen[0].startswith(PROXY + "?url=")
        assert _close(Image.open(io.BytesIO(jpeg)).getpixel((5, 5)), (0, 255, 0))

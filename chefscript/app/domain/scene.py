# chefscript/app/domain/scene.py
"""
Layer model for overlay templates.

A scene is an ordered stack of layers drawn bottom to top over a fixed-size
canvas. Layers are plain tagged variants (background, shape, text, image,
path) so the stored document does not depend on any rendering library.
At most one text layer is the title placeholder; its text is replaced by
the recipe title when the template is composed onto a photo.
"""
from __future__ import annotations

import copy
import json
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Optional, Union
from uuid import uuid4

from chefscript.app.domain.errors import InvalidSceneError, LayerNotFoundError, PlaceholderError

DOCUMENT_VERSION = 1
SAMPLE_TITLE = "Recipe Title"
DEFAULT_FILL = "#000000"
DEFAULT_BACKGROUND = "#ffffff"

CANVAS_PRESETS: dict[str, tuple[int, int]] = {
    "Post": (1024, 1024),
    "Story": (1080, 1920),
    "Cover": (820, 312),
    "Profile": (180, 180),
}

FONT_FAMILIES = ("Arial", "Times New Roman", "Courier New", "Georgia", "Verdana")
FONT_WEIGHTS = ("normal", "bold")
FONT_STYLES = ("normal", "italic")
TEXT_ALIGNMENTS = ("left", "center", "right")


class LayerType(str, Enum):
    BACKGROUND = "background"
    SHAPE = "shape"
    TEXT = "text"
    IMAGE = "image"
    PATH = "path"


class ShapeKind(str, Enum):
    RECT = "rect"
    CIRCLE = "circle"


def _new_id() -> str:
    return uuid4().hex[:12]


def _number(payload: dict[str, Any], key: str, default: float, cast: Callable[[Any], Any] = float) -> Any:
    value = payload.get(key, default)
    try:
        return cast(value)
    except (TypeError, ValueError) as exc:
        raise InvalidSceneError(f"Invalid {key}: {value!r}") from exc


@dataclass
class Geometry:
    left: float = 0.0
    top: float = 0.0
    scale_x: float = 1.0
    scale_y: float = 1.0
    angle: float = 0.0      # degrees, 0..360
    opacity: float = 1.0    # 0..1

    def validate(self) -> None:
        if not 0 <= self.angle <= 360:
            raise InvalidSceneError(f"Rotation must be between 0 and 360 degrees, got {self.angle}")
        if not 0 <= self.opacity <= 1:
            raise InvalidSceneError(f"Opacity must be between 0 and 1, got {self.opacity}")
        if self.scale_x <= 0 or self.scale_y <= 0:
            raise InvalidSceneError("Scale must be positive")

    def to_dict(self) -> dict[str, float]:
        return {
            "left": self.left,
            "top": self.top,
            "scaleX": self.scale_x,
            "scaleY": self.scale_y,
            "angle": self.angle,
            "opacity": self.opacity,
        }

    @classmethod
    def from_dict(cls, payload: dict[str, Any]) -> "Geometry":
        geometry = cls(
            left=_number(payload, "left", 0.0),
            top=_number(payload, "top", 0.0),
            scale_x=_number(payload, "scaleX", 1.0),
            scale_y=_number(payload, "scaleY", 1.0),
            angle=_number(payload, "angle", 0.0),
            opacity=_number(payload, "opacity", 1.0),
        )
        geometry.validate()
        return geometry


@dataclass
class BackgroundLayer:
    id: str = field(default_factory=_new_id)
    geometry: Geometry = field(default_factory=Geometry)
    fill: str = DEFAULT_BACKGROUND
    src: Optional[str] = None

    type = LayerType.BACKGROUND

    def extra(self) -> dict[str, Any]:
        return {"src": self.src}


@dataclass
class ShapeLayer:
    kind: ShapeKind = ShapeKind.RECT
    id: str = field(default_factory=_new_id)
    geometry: Geometry = field(default_factory=Geometry)
    fill: str = DEFAULT_FILL
    width: float = 100.0
    height: float = 100.0
    corner_radius: float = 0.0

    type = LayerType.SHAPE

    @property
    def radius(self) -> float:
        return self.width / 2

    def extra(self) -> dict[str, Any]:
        return {
            "kind": self.kind.value,
            "width": self.width,
            "height": self.height,
            "cornerRadius": self.corner_radius,
        }


@dataclass
class TextLayer:
    text: str = "Sample Text"
    id: str = field(default_factory=_new_id)
    geometry: Geometry = field(default_factory=Geometry)
    fill: str = DEFAULT_FILL
    font_family: str = "Arial"
    font_size: int = 40
    font_weight: str = "normal"
    font_style: str = "normal"
    text_align: str = "left"
    is_placeholder: bool = False

    type = LayerType.TEXT

    def extra(self) -> dict[str, Any]:
        return {
            "text": self.text,
            "fontFamily": self.font_family,
            "fontSize": self.font_size,
            "fontWeight": self.font_weight,
            "fontStyle": self.font_style,
            "textAlign": self.text_align,
            "isPlaceholder": self.is_placeholder,
        }


@dataclass
class ImageLayer:
    src: str = ""
    id: str = field(default_factory=_new_id)
    geometry: Geometry = field(default_factory=Geometry)
    fill: str = DEFAULT_FILL
    width: float = 200.0
    height: float = 200.0

    type = LayerType.IMAGE

    def extra(self) -> dict[str, Any]:
        return {"src": self.src, "width": self.width, "height": self.height}


@dataclass
class PathLayer:
    path: str = ""
    id: str = field(default_factory=_new_id)
    geometry: Geometry = field(
        default_factory=lambda: Geometry(left=100.0, top=100.0, scale_x=0.5, scale_y=0.5)
    )
    fill: str = DEFAULT_FILL

    type = LayerType.PATH

    def extra(self) -> dict[str, Any]:
        return {"path": self.path}


Layer = Union[BackgroundLayer, ShapeLayer, TextLayer, ImageLayer, PathLayer]


def _layer_to_dict(layer: Layer) -> dict[str, Any]:
    return {
        "id": layer.id,
        "type": layer.type.value,
        **layer.geometry.to_dict(),
        "fill": layer.fill,
        **layer.extra(),
    }


def _layer_from_dict(payload: dict[str, Any]) -> Layer:
    if not isinstance(payload, dict):
        raise InvalidSceneError("Layer entries must be objects")

    try:
        layer_type = LayerType(payload.get("type"))
    except ValueError as exc:
        raise InvalidSceneError(f"Unknown layer type: {payload.get('type')!r}") from exc

    layer_id = str(payload.get("id") or _new_id())
    geometry = Geometry.from_dict(payload)
    fill = str(payload.get("fill") or DEFAULT_FILL)

    if layer_type is LayerType.BACKGROUND:
        return BackgroundLayer(
            id=layer_id,
            geometry=geometry,
            fill=str(payload.get("fill") or DEFAULT_BACKGROUND),
            src=payload.get("src"),
        )
    if layer_type is LayerType.SHAPE:
        try:
            kind = ShapeKind(payload.get("kind", ShapeKind.RECT.value))
        except ValueError as exc:
            raise InvalidSceneError(f"Unknown shape kind: {payload.get('kind')!r}") from exc
        return ShapeLayer(
            kind=kind,
            id=layer_id,
            geometry=geometry,
            fill=fill,
            width=_number(payload, "width", 100.0),
            height=_number(payload, "height", 100.0),
            corner_radius=_number(payload, "cornerRadius", 0.0),
        )
    if layer_type is LayerType.TEXT:
        layer = TextLayer(
            text=str(payload.get("text", "")),
            id=layer_id,
            geometry=geometry,
            fill=fill,
            font_family=str(payload.get("fontFamily", "Arial")),
            font_size=_number(payload, "fontSize", 40, int),
            font_weight=str(payload.get("fontWeight", "normal")),
            font_style=str(payload.get("fontStyle", "normal")),
            text_align=str(payload.get("textAlign", "left")),
            is_placeholder=bool(payload.get("isPlaceholder", False)),
        )
        _validate_font(layer)
        return layer
    if layer_type is LayerType.IMAGE:
        src = payload.get("src")
        if not src:
            raise InvalidSceneError("Image layers require a src")
        return ImageLayer(
            src=str(src),
            id=layer_id,
            geometry=geometry,
            fill=fill,
            width=_number(payload, "width", 200.0),
            height=_number(payload, "height", 200.0),
        )
    return PathLayer(path=str(payload.get("path", "")), id=layer_id, geometry=geometry, fill=fill)


def _validate_font(layer: TextLayer) -> None:
    if layer.font_size <= 0:
        raise InvalidSceneError("Font size must be positive")
    if layer.font_weight not in FONT_WEIGHTS:
        raise InvalidSceneError(f"Unsupported font weight: {layer.font_weight}")
    if layer.font_style not in FONT_STYLES:
        raise InvalidSceneError(f"Unsupported font style: {layer.font_style}")
    if layer.text_align not in TEXT_ALIGNMENTS:
        raise InvalidSceneError(f"Unsupported text alignment: {layer.text_align}")


@dataclass
class Scene:
    width: int = 1024
    height: int = 1024
    layers: list[Layer] = field(default_factory=list)

    @classmethod
    def from_preset(cls, name: str) -> "Scene":
        if name not in CANVAS_PRESETS:
            raise InvalidSceneError(f"Unknown canvas preset: {name}")
        width, height = CANVAS_PRESETS[name]
        return cls(width=width, height=height)

    # ------------------------------------------------------------------
    # Layer stack
    # ------------------------------------------------------------------

    def get(self, layer_id: str) -> Layer:
        for layer in self.layers:
            if layer.id == layer_id:
                return layer
        raise LayerNotFoundError(layer_id)

    def index_of(self, layer_id: str) -> int:
        for index, layer in enumerate(self.layers):
            if layer.id == layer_id:
                return index
        raise LayerNotFoundError(layer_id)

    def add(self, layer: Layer) -> Layer:
        layer.geometry.validate()
        if isinstance(layer, BackgroundLayer):
            return self.set_background(layer)
        if isinstance(layer, TextLayer):
            _validate_font(layer)
            if layer.is_placeholder:
                self._clear_placeholders()
        self.layers.append(layer)
        return layer

    def remove(self, layer_id: str) -> Layer:
        return self.layers.pop(self.index_of(layer_id))

    def set_background(self, layer: BackgroundLayer) -> BackgroundLayer:
        self.layers = [item for item in self.layers if not isinstance(item, BackgroundLayer)]
        self.layers.insert(0, layer)
        return layer

    @property
    def background(self) -> Optional[BackgroundLayer]:
        for layer in self.layers:
            if isinstance(layer, BackgroundLayer):
                return layer
        return None

    def move_up(self, layer_id: str) -> None:
        index = self.index_of(layer_id)
        if index < len(self.layers) - 1 and not isinstance(self.layers[index], BackgroundLayer):
            self.layers[index], self.layers[index + 1] = self.layers[index + 1], self.layers[index]

    def move_down(self, layer_id: str) -> None:
        index = self.index_of(layer_id)
        floor = 1 if self.background is not None else 0
        if index > floor:
            self.layers[index], self.layers[index - 1] = self.layers[index - 1], self.layers[index]

    # ------------------------------------------------------------------
    # Convenience constructors used by the editor API
    # ------------------------------------------------------------------

    def add_text(self, text: str = "Sample Text", **options: Any) -> TextLayer:
        geometry = Geometry(left=100.0, top=100.0)
        return self.add(TextLayer(text=text, geometry=geometry, **options))  # type: ignore[return-value]

    def add_shape(self, kind: ShapeKind | str, **options: Any) -> ShapeLayer:
        shape_kind = ShapeKind(kind)
        width = float(options.pop("width", 100.0))
        height = width if shape_kind is ShapeKind.CIRCLE else float(options.pop("height", 100.0))
        options.pop("height", None)
        layer = ShapeLayer(
            kind=shape_kind,
            geometry=Geometry(left=100.0, top=100.0),
            width=width,
            height=height,
            **options,
        )
        return self.add(layer)  # type: ignore[return-value]

    def add_image(self, src: str, width: float, height: float, max_box: float = 200.0) -> ImageLayer:
        scale = min(max_box / width, max_box / height) if width and height else 1.0
        layer = ImageLayer(
            src=src,
            width=width,
            height=height,
            geometry=Geometry(left=100.0, top=100.0, scale_x=scale, scale_y=scale),
        )
        return self.add(layer)  # type: ignore[return-value]

    def add_path(self, path_data: str) -> PathLayer:
        return self.add(PathLayer(path=path_data))  # type: ignore[return-value]

    # ------------------------------------------------------------------
    # Property edits
    # ------------------------------------------------------------------

    def update_geometry(self, layer_id: str, **changes: float) -> Geometry:
        layer = self.get(layer_id)
        updated = copy.copy(layer.geometry)
        for name, value in changes.items():
            if not hasattr(updated, name):
                raise InvalidSceneError(f"Unknown geometry attribute: {name}")
            setattr(updated, name, float(value))
        updated.validate()
        layer.geometry = updated
        return updated

    def set_fill(self, layer_id: str, color: str) -> None:
        self.get(layer_id).fill = color

    def update_font(
        self,
        layer_id: str,
        *,
        family: Optional[str] = None,
        size: Optional[int] = None,
        weight: Optional[str] = None,
        style: Optional[str] = None,
        align: Optional[str] = None,
    ) -> TextLayer:
        layer = self.get(layer_id)
        if not isinstance(layer, TextLayer):
            raise InvalidSceneError("Font attributes only apply to text layers")
        updated = copy.copy(layer)
        if family is not None:
            updated.font_family = family
        if size is not None:
            updated.font_size = int(size)
        if weight is not None:
            updated.font_weight = weight
        if style is not None:
            updated.font_style = style
        if align is not None:
            updated.text_align = align
        _validate_font(updated)
        self.layers[self.index_of(layer_id)] = updated
        return updated

    # ------------------------------------------------------------------
    # Title placeholder
    # ------------------------------------------------------------------

    def _clear_placeholders(self) -> None:
        for layer in self.layers:
            if isinstance(layer, TextLayer):
                layer.is_placeholder = False

    def set_placeholder(self, layer_id: str, value: bool = True) -> TextLayer:
        layer = self.get(layer_id)
        if not isinstance(layer, TextLayer):
            raise PlaceholderError()
        self._clear_placeholders()
        layer.is_placeholder = value
        if value:
            layer.text = SAMPLE_TITLE
        return layer

    def placeholder(self) -> Optional[TextLayer]:
        for layer in self.layers:
            if isinstance(layer, TextLayer) and layer.is_placeholder:
                return layer
        return None

    def with_title(self, title: str) -> "Scene":
        """Return a copy with the placeholder text replaced by `title`."""
        scene = copy.deepcopy(self)
        placeholder = scene.placeholder()
        if placeholder is not None:
            placeholder.text = title
        return scene

    # ------------------------------------------------------------------
    # Serialization
    # ------------------------------------------------------------------

    def to_document(self) -> dict[str, Any]:
        return {
            "version": DOCUMENT_VERSION,
            "width": self.width,
            "height": self.height,
            "layers": [_layer_to_dict(layer) for layer in self.layers],
        }

    def to_json(self) -> str:
        return json.dumps(self.to_document(), sort_keys=True)

    @classmethod
    def from_document(cls, document: dict[str, Any]) -> "Scene":
        if not isinstance(document, dict):
            raise InvalidSceneError("Scene document must be an object")
        version = document.get("version", DOCUMENT_VERSION)
        if version != DOCUMENT_VERSION:
            raise InvalidSceneError(f"Unsupported scene document version: {version}")

        raw_layers = document.get("layers") or []
        if not isinstance(raw_layers, list):
            raise InvalidSceneError("Scene layers must be a list")

        layers = [_layer_from_dict(item) for item in raw_layers]

        backgrounds = [layer for layer in layers if isinstance(layer, BackgroundLayer)]
        if len(backgrounds) > 1:
            raise InvalidSceneError("A scene can only have one background")
        if backgrounds and layers[0] is not backgrounds[0]:
            raise InvalidSceneError("The background must be the first layer")

        placeholders = [layer for layer in layers if isinstance(layer, TextLayer) and layer.is_placeholder]
        if len(placeholders) > 1:
            raise InvalidSceneError("Only one text layer can be the title placeholder")

        return cls(
            width=_number(document, "width", 1024, int),
            height=_number(document, "height", 1024, int),
            layers=layers,
        )

    @classmethod
    def from_json(cls, raw: str) -> "Scene":
        try:
            document = json.loads(raw)
        except json.JSONDecodeError as exc:
            raise InvalidSceneError(f"Invalid scene JSON: {exc}") from exc
        return cls.from_document(document)

"""Overlay Compositing Stage - burn field values into the base document image.

Each field with a bounding box and a value is drawn into its box on a copy
of the base raster, in field order:
- image / signature: decoded raster, fitted (never enlarged) and centered
- checkbox: a check mark centered in the box when the value is truthy
- everything else: a single line of text, left-inset and vertically centered

Decoding is awaited step by step (base first, then each field), since all
fields draw onto one shared surface.
"""

import asyncio
import io
import logging
import math
from dataclasses import dataclass, field
from functools import lru_cache
from typing import Callable, Optional, Sequence, Union

from PIL import Image, ImageDraw, ImageFont, UnidentifiedImageError

from docreview.config import settings
from docreview.errors import BaseImageDecodeError, FieldImageDecodeError
from docreview.models import CheckboxValue, DocumentField, ImageValue, TextValue

logger = logging.getLogger(__name__)

Font = Union[ImageFont.FreeTypeFont, ImageFont.ImageFont]
Rect = tuple[float, float, float, float]

TEXT_COLOR = (0, 0, 0)

_DECODE_ERRORS = (UnidentifiedImageError, OSError, ValueError, Image.DecompressionBombError)


@dataclass(frozen=True)
class ImagePlacement:
    """Where a fitted raster lands inside its box."""

    scale: float
    width: int
    height: int
    x: int
    y: int


@dataclass
class CompositeResult:
    """Output of one composite operation."""

    image: Image.Image
    rendered_keys: list[str] = field(default_factory=list)
    failed_keys: list[str] = field(default_factory=list)

    @property
    def width(self) -> int:
        return self.image.width

    @property
    def height(self) -> int:
        return self.image.height


def font_size_for_box(
    box_height: float,
    ratio: float = 0.6,
    minimum: int = 12,
    maximum: int = 60,
) -> int:
    """Derive a font size from box height: clamp(floor(ratio * height), min, max)."""
    return max(minimum, min(maximum, math.floor(ratio * box_height)))


def fit_image(
    natural_width: int,
    natural_height: int,
    box: Rect,
) -> ImagePlacement:
    """Fit a raster into a box, preserving aspect ratio and never enlarging.

    Args:
        natural_width: Source raster width in pixels.
        natural_height: Source raster height in pixels.
        box: Target pixel rectangle (x, y, width, height).

    Returns:
        ImagePlacement centered in the box.
    """
    if natural_width <= 0 or natural_height <= 0:
        raise ValueError(f"Invalid raster size {natural_width}x{natural_height}")

    x, y, box_w, box_h = box
    scale = min(box_w / natural_width, box_h / natural_height, 1.0)
    draw_w = max(1, round(natural_width * scale))
    draw_h = max(1, round(natural_height * scale))

    return ImagePlacement(
        scale=scale,
        width=draw_w,
        height=draw_h,
        x=round(x + (box_w - draw_w) / 2),
        y=round(y + (box_h - draw_h) / 2),
    )


def truncate_to_width(text: str, max_width: float, measure: Callable[[str], float]) -> str:
    """Longest prefix of ``text`` whose measured width fits ``max_width``."""
    if max_width <= 0 or not text:
        return ""
    if measure(text) <= max_width:
        return text

    lo, hi = 0, len(text)
    while lo < hi:
        mid = (lo + hi + 1) // 2
        if measure(text[:mid]) <= max_width:
            lo = mid
        else:
            hi = mid - 1
    return text[:lo]


@lru_cache(maxsize=64)
def load_font(size: int, font_path: Optional[str] = None, font_name: Optional[str] = None) -> Font:
    """Load a scalable font at ``size`` pixels.

    Tries the explicit path, then the font name via the system font search,
    then Pillow's bundled default font.
    """
    for candidate in (font_path, font_name):
        if not candidate:
            continue
        try:
            return ImageFont.truetype(candidate, size)
        except OSError:
            logger.debug("Font %s not loadable, trying next", candidate)
    return ImageFont.load_default(size=size)


def _open_raster(data: bytes) -> Image.Image:
    img = Image.open(io.BytesIO(data))
    img.load()
    return img


async def decode_base_image(data: bytes) -> Image.Image:
    """Decode the base document raster into an RGB drawing surface.

    Raises:
        BaseImageDecodeError: If the bytes are not a decodable image.
    """
    if not data:
        raise BaseImageDecodeError("Base image is empty")
    try:
        img = await asyncio.to_thread(_open_raster, data)
    except _DECODE_ERRORS as exc:
        raise BaseImageDecodeError(f"Failed to load original image: {exc}") from exc

    if img.mode in ("RGBA", "LA") or (img.mode == "P" and "transparency" in img.info):
        rgba = img.convert("RGBA")
        surface = Image.new("RGB", rgba.size, (255, 255, 255))
        surface.paste(rgba, mask=rgba.getchannel("A"))
        return surface
    return img.convert("RGB")


async def decode_field_image(value: ImageValue) -> Image.Image:
    """Decode an image/signature field value.

    Raises:
        FieldImageDecodeError: If the payload is not a decodable image.
    """
    try:
        img = await asyncio.to_thread(_open_raster, value.data)
    except _DECODE_ERRORS as exc:
        raise FieldImageDecodeError(f"Failed to decode field image: {exc}") from exc
    return img.convert("RGBA")


class OverlayCompositor:
    """Draws current field values onto a copy of a base document image.

    Output is deterministic for identical base image, field order and values.
    """

    def __init__(
        self,
        font_path: Optional[str] = None,
        font_name: Optional[str] = None,
        min_font_size: Optional[int] = None,
        max_font_size: Optional[int] = None,
        font_height_ratio: Optional[float] = None,
        text_inset: Optional[int] = None,
        text_margin: Optional[int] = None,
    ):
        """Initialize compositor.

        Args:
            font_path: TrueType font file (default from settings)
            font_name: Font looked up on the system font path when no file is set
            min_font_size: Lower clamp for derived font size in pixels
            max_font_size: Upper clamp for derived font size in pixels
            font_height_ratio: Font size as a fraction of box height
            text_inset: Left padding between box edge and text
            text_margin: Horizontal space reserved when limiting text width
        """
        self.font_path = font_path or settings.font_path
        self.font_name = font_name or settings.font_name
        self.min_font_size = settings.min_font_size if min_font_size is None else min_font_size
        self.max_font_size = settings.max_font_size if max_font_size is None else max_font_size
        self.font_height_ratio = (
            settings.font_height_ratio if font_height_ratio is None else font_height_ratio
        )
        self.text_inset = settings.text_inset if text_inset is None else text_inset
        self.text_margin = settings.text_margin if text_margin is None else text_margin

    def font_size_for_box(self, box_height: float) -> int:
        return font_size_for_box(
            box_height,
            ratio=self.font_height_ratio,
            minimum=self.min_font_size,
            maximum=self.max_font_size,
        )

    async def composite(
        self,
        base_image: bytes,
        fields: Sequence[DocumentField],
    ) -> CompositeResult:
        """Render fields onto the base image.

        Fields without a box, without a value, or skipped are left out.
        Field-level decode failures omit that field only.

        Args:
            base_image: Encoded base raster (PNG, JPEG, ...)
            fields: Fields in z-order

        Returns:
            CompositeResult with the new RGB image

        Raises:
            BaseImageDecodeError: If the base image cannot be decoded
        """
        surface = await decode_base_image(base_image)
        draw = ImageDraw.Draw(surface)
        result = CompositeResult(image=surface)

        for doc_field in fields:
            if not doc_field.is_renderable:
                continue

            rect = doc_field.bounding_box.to_pixels(surface.width, surface.height)

            try:
                value = doc_field.typed_value()
                if isinstance(value, ImageValue):
                    drawn = await self._draw_image(surface, value, rect)
                elif isinstance(value, CheckboxValue):
                    drawn = value.checked and self._draw_check(draw, rect)
                elif isinstance(value, TextValue):
                    drawn = self._draw_text(draw, value.text, rect)
                else:
                    drawn = False
            except FieldImageDecodeError as exc:
                logger.warning("Omitting field %s from composite: %s", doc_field.key, exc)
                result.failed_keys.append(doc_field.key)
                continue

            if drawn:
                result.rendered_keys.append(doc_field.key)

        logger.debug(
            "Composited %d field(s) onto %dx%d image, %d failed",
            len(result.rendered_keys), surface.width, surface.height, len(result.failed_keys),
        )
        return result

    async def _draw_image(self, surface: Image.Image, value: ImageValue, rect: Rect) -> bool:
        x, y, w, h = rect
        if w < 1 or h < 1:
            return False

        img = await decode_field_image(value)
        placement = fit_image(img.width, img.height, rect)
        if (placement.width, placement.height) != img.size:
            img = img.resize((placement.width, placement.height), Image.Resampling.LANCZOS)
        surface.paste(img, (placement.x, placement.y), mask=img)
        return True

    def _draw_check(self, draw: ImageDraw.ImageDraw, rect: Rect) -> bool:
        x, y, w, h = rect
        side = min(w, h) * 0.8
        if side < 1:
            return False
        cx, cy = x + w / 2, y + h / 2
        points = [
            (cx - side / 2, cy),
            (cx - side / 6, cy + side / 3),
            (cx + side / 2, cy - side / 3),
        ]
        draw.line(points, fill=TEXT_COLOR, width=max(2, round(side / 8)), joint="curve")
        return True

    def _draw_text(self, draw: ImageDraw.ImageDraw, text: str, rect: Rect) -> bool:
        x, y, w, h = rect
        font = load_font(self.font_size_for_box(h), self.font_path, self.font_name)

        line = " ".join(text.split())
        line = truncate_to_width(
            line,
            w - self.text_margin,
            lambda s: draw.textlength(s, font=font),
        )
        if not line:
            return False

        text_x = x + self.text_inset
        text_y = y + h / 2
        if isinstance(font, ImageFont.FreeTypeFont):
            draw.text((text_x, text_y), line, font=font, fill=TEXT_COLOR, anchor="lm")
        else:
            # Bitmap fonts do not support anchors
            left, top, right, bottom = draw.textbbox((0, 0), line, font=font)
            draw.text((text_x, text_y - (bottom + top) / 2), line, font=font, fill=TEXT_COLOR)
        return True

"""Rendering stages for reconstructed document export.

Deterministic stages (no LLM):
1. stage_composite - draw field values onto the base image
2. stage_package - wrap the composited raster into a single-page PDF

Each stage is independent and can be used separately or through
docreview.export.
"""

from .stage_composite import (
    CompositeResult,
    ImagePlacement,
    OverlayCompositor,
    decode_base_image,
    decode_field_image,
    fit_image,
    font_size_for_box,
    load_font,
    truncate_to_width,
)
from .stage_package import DocumentPackager, page_orientation

__all__ = [
    # Composite
    "CompositeResult",
    "ImagePlacement",
    "OverlayCompositor",
    "decode_base_image",
    "decode_field_image",
    "fit_image",
    "font_size_for_box",
    "load_font",
    "truncate_to_width",
    # Package
    "DocumentPackager",
    "page_orientation",
]

"""Document Packaging Stage - wrap a composited raster into a one-page PDF.

Uses PyMuPDF (fitz) as the page encoder. The page is sized to the raster's
pixel dimensions; no rescaling to a standard paper size.
"""

import io
import logging
from typing import Optional

import fitz  # PyMuPDF
from PIL import Image

from docreview.config import settings
from docreview.errors import EncodingError
from docreview.models import Orientation

logger = logging.getLogger(__name__)


def page_orientation(width: int, height: int) -> Orientation:
    """Landscape if wider than tall, else portrait."""
    return Orientation.LANDSCAPE if width > height else Orientation.PORTRAIT


class DocumentPackager:
    """Packages a finished raster as a single-page PDF document."""

    def __init__(self, jpeg_quality: Optional[int] = None):
        """Initialize packager.

        Args:
            jpeg_quality: JPEG quality for the embedded raster (default from settings)
        """
        self.jpeg_quality = settings.jpeg_quality if jpeg_quality is None else jpeg_quality

    def encode(
        self,
        raster_bytes: bytes,
        width: int,
        height: int,
        orientation: Orientation,
    ) -> bytes:
        """Encode an already compressed raster as a one-page PDF.

        Args:
            raster_bytes: Encoded image (JPEG, PNG, ...)
            width: Page width, equal to image width in pixels
            height: Page height, equal to image height in pixels
            orientation: Must agree with width/height

        Returns:
            PDF document bytes

        Raises:
            EncodingError: If the encoder cannot process the raster
        """
        if width <= 0 or height <= 0:
            raise EncodingError(f"Invalid page size {width}x{height}")
        if orientation != page_orientation(width, height):
            raise EncodingError(
                f"Orientation {orientation.value} does not match page size {width}x{height}"
            )

        pdf_doc = fitz.open()
        try:
            page = pdf_doc.new_page(width=width, height=height)
            page.insert_image(page.rect, stream=raster_bytes, keep_proportion=False)
            return pdf_doc.tobytes(garbage=3, deflate=True)
        except Exception as exc:
            raise EncodingError(f"Failed to encode document: {exc}") from exc
        finally:
            pdf_doc.close()

    def package(self, image: Image.Image) -> bytes:
        """JPEG-compress a composited image and encode it as a PDF.

        Raises:
            EncodingError: If compression or encoding fails
        """
        buffer = io.BytesIO()
        try:
            image.convert("RGB").save(buffer, format="JPEG", quality=self.jpeg_quality)
        except (OSError, ValueError) as exc:
            raise EncodingError(f"Failed to compress raster: {exc}") from exc

        width, height = image.size
        orientation = page_orientation(width, height)
        logger.debug("Packaging %dx%d %s page", width, height, orientation.value)
        return self.encode(buffer.getvalue(), width, height, orientation)

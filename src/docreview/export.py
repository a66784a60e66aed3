"""Export artifacts: structured JSON and the reconstructed PDF."""

import logging
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from docreview.models import DocumentAnalysis, DocumentField
from docreview.pipeline import DocumentPackager, OverlayCompositor

logger = logging.getLogger(__name__)

JSON_MEDIA_TYPE = "application/json"
PDF_MEDIA_TYPE = "application/pdf"


def _timestamp_ms() -> int:
    return int(time.time() * 1000)


@dataclass(frozen=True)
class ExportArtifact:
    """A downloadable export."""

    filename: str
    media_type: str
    content: bytes

    def save(self, directory: Path) -> Path:
        """Write the artifact into ``directory`` and return its path."""
        directory = Path(directory)
        directory.mkdir(parents=True, exist_ok=True)
        path = directory / self.filename
        path.write_bytes(self.content)
        return path


def export_structured(
    analysis: DocumentAnalysis,
    timestamp_ms: Optional[int] = None,
) -> ExportArtifact:
    """Serialize a document analysis (with live field values) as JSON."""
    stamp = _timestamp_ms() if timestamp_ms is None else timestamp_ms
    return ExportArtifact(
        filename=f"docreview_export_{stamp}.json",
        media_type=JSON_MEDIA_TYPE,
        content=analysis.to_payload().encode("utf-8"),
    )


async def export_document(
    base_image: bytes,
    fields: list[DocumentField],
    compositor: Optional[OverlayCompositor] = None,
    packager: Optional[DocumentPackager] = None,
    timestamp_ms: Optional[int] = None,
) -> ExportArtifact:
    """Composite field values onto the base image and package it as a PDF.

    Raises:
        BaseImageDecodeError: If the base image cannot be decoded
        EncodingError: If PDF packaging fails
    """
    compositor = compositor or OverlayCompositor()
    packager = packager or DocumentPackager()

    result = await compositor.composite(base_image, fields)
    if result.failed_keys:
        logger.warning("Fields omitted from document: %s", ", ".join(result.failed_keys))

    content = packager.package(result.image)
    stamp = _timestamp_ms() if timestamp_ms is None else timestamp_ms
    return ExportArtifact(
        filename=f"filled_document_{stamp}.pdf",
        media_type=PDF_MEDIA_TYPE,
        content=content,
    )

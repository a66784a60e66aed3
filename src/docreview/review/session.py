"""Review session lifecycle: upload, analysis, review, export, reset."""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Optional, Protocol

from docreview.config import settings
from docreview.errors import (
    AnalysisFailed,
    BaseImageDecodeError,
    EncodingError,
    SessionNotReady,
    UploadRejected,
)
from docreview.export import ExportArtifact, export_document, export_structured
from docreview.models import DocumentAnalysis
from docreview.pipeline import DocumentPackager, OverlayCompositor

from .store import FieldStateStore

logger = logging.getLogger(__name__)

ANALYSIS_FAILED_MESSAGE = "Failed to analyze document. Please try again or check your API key."
EXPORT_FAILED_MESSAGE = "Failed to generate PDF. Please try again."


class SessionState(str, Enum):
    """Where a review session is in its lifecycle."""

    IDLE = "idle"
    ANALYZING = "analyzing"
    REVIEW = "review"
    ERROR = "error"


@dataclass(frozen=True)
class UploadedDocument:
    """A file handed in by the user."""

    name: str
    mime_type: str
    data: bytes

    @property
    def is_image(self) -> bool:
        return self.mime_type.startswith("image/")


class AnalysisClient(Protocol):
    """External extraction service. Returns the structured JSON payload."""

    async def analyze(self, upload: UploadedDocument) -> str:
        ...


def accept_upload(upload: UploadedDocument, max_bytes: Optional[int] = None) -> UploadedDocument:
    """Check that an upload is an image or PDF within the size limit.

    Raises:
        UploadRejected: If the type or size is not accepted
    """
    limit = max_bytes or settings.max_upload_bytes
    if not (upload.is_image or upload.mime_type == "application/pdf"):
        raise UploadRejected("Please upload an image (JPG, PNG) or PDF.")
    if len(upload.data) > limit:
        raise UploadRejected(f"File size exceeds {limit // (1024 * 1024)}MB.")
    return upload


class ReviewSession:
    """One in-memory review session.

    Holds the uploaded document, the field store once analysis succeeds, and
    the last error message. Resetting discards everything.
    """

    def __init__(
        self,
        compositor: Optional[OverlayCompositor] = None,
        packager: Optional[DocumentPackager] = None,
    ):
        self.compositor = compositor or OverlayCompositor()
        self.packager = packager or DocumentPackager()
        self.state = SessionState.IDLE
        self.upload: Optional[UploadedDocument] = None
        self.store: Optional[FieldStateStore] = None
        self.error_message: Optional[str] = None

    @property
    def base_image(self) -> Optional[bytes]:
        """Raster to composite onto; PDFs and missing uploads provide none."""
        if self.upload is not None and self.upload.is_image:
            return self.upload.data
        return None

    @property
    def can_export_document(self) -> bool:
        return self.state == SessionState.REVIEW and self.base_image is not None

    def reset(self) -> None:
        """Drop all session state and return to IDLE."""
        self.state = SessionState.IDLE
        self.upload = None
        self.store = None
        self.error_message = None

    def load_payload(
        self,
        payload: str,
        upload: Optional[UploadedDocument] = None,
    ) -> FieldStateStore:
        """Enter review from an extraction payload.

        Raises:
            AnalysisFailed: If the payload is unusable; the session enters ERROR
        """
        if upload is not None:
            self.upload = upload
        try:
            analysis = DocumentAnalysis.from_payload(payload)
        except AnalysisFailed as exc:
            self._fail(exc)
            raise
        return self._enter_review(analysis)

    async def analyze(self, upload: UploadedDocument, client: AnalysisClient) -> FieldStateStore:
        """Run the external extraction service on an upload.

        Client errors and unusable payloads both surface as AnalysisFailed
        with the same message; the underlying error is kept as __cause__.

        Raises:
            UploadRejected: If the upload is not accepted; state is unchanged
            AnalysisFailed: If extraction fails; the session enters ERROR
        """
        accept_upload(upload)
        self.upload = upload
        self.store = None
        self.state = SessionState.ANALYZING
        self.error_message = None

        try:
            payload = await client.analyze(upload)
            analysis = DocumentAnalysis.from_payload(payload)
        except Exception as exc:
            self._fail(exc)
            raise AnalysisFailed(ANALYSIS_FAILED_MESSAGE) from exc

        return self._enter_review(analysis)

    def _enter_review(self, analysis: DocumentAnalysis) -> FieldStateStore:
        self.store = FieldStateStore(analysis)
        self.state = SessionState.REVIEW
        self.error_message = None
        logger.info(
            "Loaded %s with %d field(s), %d%% complete",
            analysis.document_type, len(self.store), self.store.compute_completion(),
        )
        return self.store

    def _fail(self, exc: Exception) -> None:
        logger.error("Document analysis failed: %s", exc)
        self.store = None
        self.state = SessionState.ERROR
        self.error_message = ANALYSIS_FAILED_MESSAGE

    def _require_store(self) -> FieldStateStore:
        if self.state != SessionState.REVIEW or self.store is None:
            raise SessionNotReady(f"No document under review (state: {self.state.value})")
        return self.store

    def export_structured(self, timestamp_ms: Optional[int] = None) -> ExportArtifact:
        """Export the live analysis as JSON."""
        store = self._require_store()
        return export_structured(store.to_analysis(), timestamp_ms=timestamp_ms)

    async def export_document(self, timestamp_ms: Optional[int] = None) -> Optional[ExportArtifact]:
        """Export the reconstructed PDF, or None when there is no base image.

        Raises:
            BaseImageDecodeError: If the base image cannot be decoded
            EncodingError: If PDF packaging fails
        """
        store = self._require_store()
        base_image = self.base_image
        if base_image is None:
            logger.info("Document export unavailable: no base image")
            return None
        try:
            return await export_document(
                base_image,
                store.fields,
                compositor=self.compositor,
                packager=self.packager,
                timestamp_ms=timestamp_ms,
            )
        except (BaseImageDecodeError, EncodingError) as exc:
            logger.error("%s %s", EXPORT_FAILED_MESSAGE, exc)
            raise

"""Document analysis aggregate returned by the extraction service."""

from typing import Optional, Union

from pydantic import Field, ValidationError, model_validator

from docreview.errors import AnalysisFailed

from .base import BaseReviewModel
from .field import DocumentField


class DocumentAnalysis(BaseReviewModel):
    """
    Aggregate root for one analyzed document.

    Field order is significant: it is the display order and the z-order used
    when compositing. ``missing_fields`` is advisory text from the extraction
    service; the authoritative set is recomputed from field status.
    """

    document_type: str = Field(..., description="e.g. 'Invoice', 'W-2 Form'")
    summary: str = Field(default="")
    fields: list[DocumentField] = Field(default_factory=list)
    missing_fields: list[str] = Field(default_factory=list)
    security_risks: list[str] = Field(default_factory=list)
    actionable_insights: list[str] = Field(default_factory=list)

    @model_validator(mode="after")
    def _unique_keys(self) -> "DocumentAnalysis":
        seen: set[str] = set()
        for field in self.fields:
            if field.key in seen:
                raise ValueError(f"Duplicate field key: {field.key!r}")
            seen.add(field.key)
        return self

    @classmethod
    def from_payload(cls, payload: Optional[Union[str, bytes]]) -> "DocumentAnalysis":
        """Parse the structured JSON payload from the extraction service.

        Raises:
            AnalysisFailed: If the payload is absent, not JSON, or off-schema.
        """
        if payload is None or not payload.strip():
            raise AnalysisFailed("No response from extraction service")
        try:
            return cls.model_validate_json(payload)
        except ValidationError as exc:
            raise AnalysisFailed(
                f"Extraction result is not a usable document analysis: "
                f"{exc.error_count()} error(s), first: {exc.errors()[0]['msg']}"
            ) from exc

    def to_payload(self) -> str:
        """Serialize to the structured JSON payload (wire names, 2-space indent)."""
        return self.model_dump_json(by_alias=True, exclude_none=True, indent=2)

"""Field-level models for extracted form fields."""

import logging
from typing import Any, Optional

from pydantic import Field, field_serializer, field_validator, model_validator

from .base import BaseReviewModel, BoundingBox, FieldStatus, FieldType
from .values import FieldValue, decode_value

logger = logging.getLogger(__name__)


def derive_status(value: str) -> FieldStatus:
    """Status implied by a value alone: filled if non-empty, else empty."""
    return FieldStatus.FILLED if value else FieldStatus.EMPTY


class DocumentField(BaseReviewModel):
    """
    One extractable, editable unit on a document.

    ``status`` is derived from ``value`` except for ``skipped``, which is an
    explicit user override. Instances are treated as immutable; edits produce
    new instances (see :mod:`docreview.review.store`).
    """

    key: str = Field(..., min_length=1, description="Stable identifier, unique per document")
    label: str = Field(..., description="Human-readable caption")
    value: str = Field(default="", description="Raw value; data URI for image fields")
    type: FieldType = Field(default=FieldType.TEXT)
    status: FieldStatus = Field(default=FieldStatus.EMPTY)
    required: bool = False

    # Advisory only
    example: Optional[str] = None
    explanation: Optional[str] = None
    confidence: Optional[float] = Field(None, ge=0.0, le=1.0)

    bounding_box: Optional[BoundingBox] = Field(
        None, description="[ymin, xmin, ymax, xmax] normalized 0-1"
    )

    @field_validator("value", mode="before")
    @classmethod
    def _none_is_empty(cls, value: Any) -> Any:
        return "" if value is None else value

    @field_validator("bounding_box", mode="before")
    @classmethod
    def _coerce_box(cls, value: Any) -> Optional[BoundingBox]:
        return BoundingBox.coerce(value)

    @model_validator(mode="after")
    def _reconcile_status(self) -> "DocumentField":
        # filled/empty must agree with the value; uncertain and skipped are kept
        if self.status in (FieldStatus.FILLED, FieldStatus.EMPTY):
            implied = derive_status(self.value)
            if implied != self.status:
                logger.debug(
                    "Field %s reported %s with value %r; using %s",
                    self.key, self.status.value, self.value[:20], implied.value,
                )
                self.status = implied
        return self

    @field_serializer("bounding_box")
    def _serialize_box(self, box: Optional[BoundingBox]) -> Optional[list[float]]:
        return box.as_list() if box is not None else None

    @property
    def is_skipped(self) -> bool:
        """Check if the user skipped this field."""
        return self.status == FieldStatus.SKIPPED

    @property
    def is_missing(self) -> bool:
        """Check if this field blocks validation."""
        return self.required and self.status == FieldStatus.EMPTY

    @property
    def is_renderable(self) -> bool:
        """Check if this field contributes to an overlay composite."""
        return self.bounding_box is not None and bool(self.value) and not self.is_skipped

    def typed_value(self) -> Optional[FieldValue]:
        """Decode the raw value into its typed variant.

        Raises:
            FieldImageDecodeError: If an image/signature value is malformed.
        """
        return decode_value(self.type, self.value)

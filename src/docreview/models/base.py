"""Base models and common types for the review engine."""

import logging
from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator
from pydantic.alias_generators import to_camel

logger = logging.getLogger(__name__)


class FieldType(str, Enum):
    """Semantic kind of a form field. Determines rendering and input rules."""

    TEXT = "text"
    DATE = "date"
    NUMBER = "number"
    CHECKBOX = "checkbox"
    CURRENCY = "currency"
    SIGNATURE = "signature"
    EMAIL = "email"
    PHONE = "phone"
    ADDRESS = "address"
    IMAGE = "image"

    @property
    def is_raster(self) -> bool:
        """Whether the field value holds an encoded image."""
        return self in (FieldType.IMAGE, FieldType.SIGNATURE)


class FieldStatus(str, Enum):
    """Review status of a field."""

    FILLED = "filled"
    EMPTY = "empty"
    UNCERTAIN = "uncertain"
    SKIPPED = "skipped"  # explicit user override


class Orientation(str, Enum):
    """Page orientation of a packaged document."""

    PORTRAIT = "portrait"
    LANDSCAPE = "landscape"


class BaseReviewModel(BaseModel):
    """Base class for models exchanged with the extraction service.

    Attributes are snake_case in Python and camelCase on the wire.
    """

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
    )


class BoundingBox(BaseModel):
    """Normalized field location, [ymin, xmin, ymax, xmax] in 0-1 image fractions."""

    ymin: float = Field(..., ge=0.0, le=1.0)
    xmin: float = Field(..., ge=0.0, le=1.0)
    ymax: float = Field(..., ge=0.0, le=1.0)
    xmax: float = Field(..., ge=0.0, le=1.0)

    @model_validator(mode="before")
    @classmethod
    def _from_sequence(cls, data: Any) -> Any:
        if isinstance(data, (list, tuple)):
            if len(data) != 4:
                raise ValueError(f"Bounding box needs 4 coordinates, got {len(data)}")
            ymin, xmin, ymax, xmax = data
            return {"ymin": ymin, "xmin": xmin, "ymax": ymax, "xmax": xmax}
        return data

    @model_validator(mode="after")
    def _check_order(self) -> "BoundingBox":
        if self.ymin >= self.ymax or self.xmin >= self.xmax:
            raise ValueError(
                f"Degenerate bounding box {self.as_list()}: "
                "expected ymin < ymax and xmin < xmax"
            )
        return self

    @classmethod
    def coerce(cls, raw: Any) -> Optional["BoundingBox"]:
        """Build a box from untrusted extraction output.

        Coordinates are clamped into [0, 1]. Anything that is not four numbers,
        or that is still degenerate after clamping, yields None.
        """
        if raw is None:
            return None
        if isinstance(raw, BoundingBox):
            return raw
        if isinstance(raw, dict):
            raw = [raw.get("ymin"), raw.get("xmin"), raw.get("ymax"), raw.get("xmax")]
        try:
            coords = [min(max(float(c), 0.0), 1.0) for c in raw]
            return cls.model_validate(coords)
        except (TypeError, ValueError) as exc:
            logger.warning("Dropping unusable bounding box %r: %s", raw, exc)
            return None

    @property
    def width(self) -> float:
        """Box width as a fraction of image width."""
        return self.xmax - self.xmin

    @property
    def height(self) -> float:
        """Box height as a fraction of image height."""
        return self.ymax - self.ymin

    def as_list(self) -> list[float]:
        """Return the wire representation [ymin, xmin, ymax, xmax]."""
        return [self.ymin, self.xmin, self.ymax, self.xmax]

    def to_pixels(self, image_width: int, image_height: int) -> tuple[float, float, float, float]:
        """Convert to a pixel rectangle (x, y, width, height)."""
        return (
            self.xmin * image_width,
            self.ymin * image_height,
            self.width * image_width,
            self.height * image_height,
        )

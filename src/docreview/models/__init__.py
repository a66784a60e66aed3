"""Data models for the document review engine.

All models are Pydantic models that serialize to the camelCase JSON payload
exchanged with the extraction service.

Model Hierarchy:
- DocumentAnalysis → DocumentField → BoundingBox
- DocumentField.value ↔ TextValue | CheckboxValue | ImageValue
"""

from .analysis import DocumentAnalysis
from .base import (
    BaseReviewModel,
    BoundingBox,
    FieldStatus,
    FieldType,
    Orientation,
)
from .field import DocumentField, derive_status
from .values import (
    CHECKBOX_TRUTHY,
    CheckboxValue,
    FieldValue,
    ImageValue,
    TextValue,
    decode_value,
    encode_value,
    is_checked,
    parse_data_uri,
    to_data_uri,
)

__all__ = [
    # Base types
    "BaseReviewModel",
    "BoundingBox",
    "FieldStatus",
    "FieldType",
    "Orientation",
    # Fields
    "DocumentField",
    "derive_status",
    # Values
    "CHECKBOX_TRUTHY",
    "CheckboxValue",
    "FieldValue",
    "ImageValue",
    "TextValue",
    "decode_value",
    "encode_value",
    "is_checked",
    "parse_data_uri",
    "to_data_uri",
    # Analysis
    "DocumentAnalysis",
]

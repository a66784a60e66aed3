"""Typed field values.

A field's ``value`` travels as a plain string. These models give it an
explicit shape keyed by :class:`FieldType` so that renderers never have to
sniff strings for truthiness or image payloads.
"""

import base64
import binascii
import re
from typing import Annotated, Literal, Optional, Union

from pydantic import BaseModel, Field

from docreview.errors import FieldImageDecodeError

from .base import FieldType

CHECKBOX_TRUTHY = frozenset({"true", "yes", "checked"})

_DATA_URI_RE = re.compile(
    r"^data:(?P<mime>[\w.+-]+/[\w.+-]+)?(?P<params>(?:;[^;,]*)*?);base64,(?P<payload>.*)$",
    re.DOTALL,
)


class TextValue(BaseModel):
    """Free text (text, date, number, currency, email, phone, address)."""

    kind: Literal["text"] = "text"
    text: str


class CheckboxValue(BaseModel):
    """Checked / unchecked state."""

    kind: Literal["checkbox"] = "checkbox"
    checked: bool


class ImageValue(BaseModel):
    """Encoded raster for image and signature fields."""

    kind: Literal["image"] = "image"
    data: bytes
    mime_type: str = "image/png"


FieldValue = Annotated[
    Union[TextValue, CheckboxValue, ImageValue],
    Field(discriminator="kind"),
]


def is_checked(raw: str) -> bool:
    """Case-insensitive match of a raw checkbox value against the truthy set."""
    return raw.strip().lower() in CHECKBOX_TRUTHY


def parse_data_uri(raw: str) -> ImageValue:
    """Decode a base64 ``data:`` URI.

    Raises:
        FieldImageDecodeError: If the string is not a base64 data URI.
    """
    match = _DATA_URI_RE.match(raw.strip())
    if match is None:
        raise FieldImageDecodeError("Value is not a base64 data URI")

    payload = re.sub(r"\s+", "", match.group("payload"))
    try:
        data = base64.b64decode(payload, validate=True)
    except (binascii.Error, ValueError) as exc:
        raise FieldImageDecodeError(f"Invalid base64 payload: {exc}") from exc

    if not data:
        raise FieldImageDecodeError("Data URI has an empty payload")

    return ImageValue(data=data, mime_type=match.group("mime") or "application/octet-stream")


def to_data_uri(data: bytes, mime_type: str) -> str:
    """Encode raw image bytes as a base64 data URI."""
    return f"data:{mime_type};base64,{base64.b64encode(data).decode('ascii')}"


def decode_value(field_type: FieldType, raw: str) -> Optional[FieldValue]:
    """Decode a raw field value into its typed variant.

    Args:
        field_type: Semantic type of the field.
        raw: Raw string value.

    Returns:
        The typed value, or None when ``raw`` is empty.

    Raises:
        FieldImageDecodeError: If an image/signature value is malformed.
    """
    if not raw:
        return None
    if field_type == FieldType.CHECKBOX:
        return CheckboxValue(checked=is_checked(raw))
    if field_type.is_raster:
        return parse_data_uri(raw)
    return TextValue(text=raw)


def encode_value(value: Optional[FieldValue]) -> str:
    """Encode a typed value back to its raw string form."""
    if value is None:
        return ""
    if isinstance(value, CheckboxValue):
        return "true" if value.checked else "false"
    if isinstance(value, ImageValue):
        return to_data_uri(value.data, value.mime_type)
    return value.text

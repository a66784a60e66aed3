"""Field State Store - live field set for one review session.

Transitions are pure functions over :class:`DocumentField`; the store swaps
the resulting instance into its ordered list. Access is single-writer: one
reviewing user mutates the store at a time, so no locking is done.
"""

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Iterator, Optional

from docreview.config import settings
from docreview.errors import UnknownFieldError, ValidationFailed
from docreview.models import (
    CheckboxValue,
    DocumentAnalysis,
    DocumentField,
    FieldStatus,
    FieldType,
    decode_value,
    derive_status,
    encode_value,
    to_data_uri,
)

logger = logging.getLogger(__name__)

VALID_MESSAGE = "Form validated and saved successfully!"


def apply_value(current: DocumentField, new_value: str, unskip: bool = False) -> DocumentField:
    """Return a copy of ``current`` holding ``new_value``.

    Status is re-derived from the value unless the field is skipped. With
    ``unskip`` the skip override is lifted in the same step.
    """
    if current.is_skipped and not unskip:
        status = FieldStatus.SKIPPED
    else:
        status = derive_status(new_value)
    return current.model_copy(update={"value": new_value, "status": status})


def apply_toggle_skip(current: DocumentField) -> DocumentField:
    """Return a copy of ``current`` with the skip override flipped."""
    if current.is_skipped:
        status = derive_status(current.value)
    else:
        status = FieldStatus.SKIPPED
    return current.model_copy(update={"status": status})


@dataclass(frozen=True)
class ValidationReport:
    """Outcome of validating a field set."""

    missing: list[DocumentField] = field(default_factory=list)

    @property
    def valid(self) -> bool:
        return not self.missing

    @property
    def missing_keys(self) -> list[str]:
        return [f.key for f in self.missing]

    @property
    def message(self) -> str:
        """Human-readable summary for the reviewer."""
        if self.valid:
            return VALID_MESSAGE
        return f"Validation Failed: {len(self.missing)} required field(s) are empty."

    def raise_for_missing(self) -> None:
        """Raise ValidationFailed if any required field is empty."""
        if not self.valid:
            raise ValidationFailed(self.missing_keys)


class FieldStateStore:
    """Single source of truth for the live field set during review.

    Field order from the analysis is preserved. Unknown keys passed to
    mutating operations are ignored (caller logic error, logged at debug).
    """

    def __init__(self, analysis: DocumentAnalysis):
        self._analysis = analysis
        self._fields: list[DocumentField] = list(analysis.fields)
        self._positions: dict[str, int] = {f.key: i for i, f in enumerate(self._fields)}

    def __len__(self) -> int:
        return len(self._fields)

    def __iter__(self) -> Iterator[DocumentField]:
        return iter(list(self._fields))

    @property
    def fields(self) -> list[DocumentField]:
        """Snapshot of the current fields in order."""
        return list(self._fields)

    @property
    def required_fields(self) -> list[DocumentField]:
        return [f for f in self._fields if f.required]

    def get(self, key: str) -> DocumentField:
        """Look up a field by key.

        Raises:
            UnknownFieldError: If no field has this key.
        """
        try:
            return self._fields[self._positions[key]]
        except KeyError:
            raise UnknownFieldError(key) from None

    def _replace(self, updated: DocumentField) -> None:
        self._fields[self._positions[updated.key]] = updated

    def set_value(self, key: str, new_value: str, unskip: bool = False) -> None:
        """Replace a field value and re-derive its status.

        Skipped fields stay skipped unless ``unskip`` is set.
        """
        try:
            current = self.get(key)
        except UnknownFieldError:
            logger.debug("set_value ignored for unknown field %r", key)
            return
        self._replace(apply_value(current, new_value, unskip=unskip))

    def set_image(self, key: str, data: bytes, mime_type: str) -> None:
        """Store raw image bytes on an image or signature field."""
        self.set_value(key, to_data_uri(data, mime_type))

    def clear_value(self, key: str) -> None:
        """Remove a field value."""
        self.set_value(key, "")

    def toggle_checkbox(self, key: str) -> None:
        """Flip a checkbox between checked and unchecked.

        Writes the canonical "true"/"false" value; a skipped checkbox stays
        skipped. Non-checkbox fields are left alone.
        """
        try:
            current = self.get(key)
        except UnknownFieldError:
            logger.debug("toggle_checkbox ignored for unknown field %r", key)
            return
        if current.type != FieldType.CHECKBOX:
            logger.debug("toggle_checkbox ignored for %s field %r", current.type.value, key)
            return

        value = decode_value(FieldType.CHECKBOX, current.value)
        checked = isinstance(value, CheckboxValue) and value.checked
        self._replace(apply_value(current, encode_value(CheckboxValue(checked=not checked))))

    def toggle_skip(self, key: str) -> None:
        """Flip the skip override on a field.

        Permitted on non-required fields too; the effect is the same.
        """
        try:
            current = self.get(key)
        except UnknownFieldError:
            logger.debug("toggle_skip ignored for unknown field %r", key)
            return
        self._replace(apply_toggle_skip(current))

    def compute_completion(self) -> int:
        """Percentage of required fields that are filled or skipped.

        Returns:
            Integer in [0, 100]; 100 when nothing is required.
        """
        required = self.required_fields
        if not required:
            return 100
        done = sum(
            1 for f in required if f.status in (FieldStatus.FILLED, FieldStatus.SKIPPED)
        )
        # Half-up rounding; builtin round() is banker's rounding
        return int(100 * done / len(required) + 0.5)

    def missing_fields(self) -> list[DocumentField]:
        """Required fields that are still empty."""
        return [f for f in self._fields if f.is_missing]

    def validate(self) -> ValidationReport:
        """Classify the current field set as valid or invalid. Performs no I/O."""
        return ValidationReport(missing=self.missing_fields())

    async def validate_async(self, delay: Optional[float] = None) -> ValidationReport:
        """Validate after the advisory presentation delay."""
        wait = settings.validation_delay_seconds if delay is None else delay
        if wait > 0:
            await asyncio.sleep(wait)
        report = self.validate()
        logger.info(report.message)
        return report

    def to_analysis(self) -> DocumentAnalysis:
        """The ingested analysis with the live field values."""
        return self._analysis.model_copy(update={"fields": list(self._fields)})

"""Tests for the field state store."""

import asyncio
from unittest.mock import AsyncMock, patch

import pytest

from docreview.errors import UnknownFieldError, ValidationFailed
from docreview.models import DocumentAnalysis, DocumentField, FieldStatus, FieldType
from docreview.review import FieldStateStore, apply_toggle_skip, apply_value
from docreview.review.store import VALID_MESSAGE


def build_store(*fields: DocumentField) -> FieldStateStore:
    return FieldStateStore(DocumentAnalysis(document_type="Test", fields=list(fields)))


def required(key: str, value: str = "", status: str = None) -> DocumentField:
    data = {"key": key, "label": key.title(), "value": value, "required": True}
    if status:
        data["status"] = status
    return DocumentField.model_validate(data)


class TestTransitions:
    """Tests for the pure transition functions."""

    def test_apply_value_derives_status(self):
        """Non-empty value -> filled, empty value -> empty."""
        field = required("a")
        filled = apply_value(field, "x")
        assert filled.status == FieldStatus.FILLED
        assert filled.value == "x"
        assert apply_value(filled, "").status == FieldStatus.EMPTY

    def test_apply_value_returns_new_instance(self):
        """Transitions do not mutate their input."""
        field = required("a")
        apply_value(field, "x")
        assert field.value == ""
        assert field.status == FieldStatus.EMPTY

    def test_apply_value_keeps_skip(self):
        """Editing a skipped field leaves it skipped."""
        skipped = required("a", status="skipped")
        edited = apply_value(skipped, "x")
        assert edited.status == FieldStatus.SKIPPED
        assert edited.value == "x"

    def test_apply_value_unskip(self):
        """unskip lifts the override and derives status from the new value."""
        skipped = required("a", status="skipped")
        assert apply_value(skipped, "x", unskip=True).status == FieldStatus.FILLED
        assert apply_value(skipped, "", unskip=True).status == FieldStatus.EMPTY

    def test_apply_value_resolves_uncertain(self):
        """Editing an uncertain field derives a definite status."""
        uncertain = required("a", value="maybe", status="uncertain")
        assert apply_value(uncertain, "sure").status == FieldStatus.FILLED

    @pytest.mark.parametrize(
        "value,status",
        [("", "empty"), ("x", "filled"), ("x", "uncertain"), ("", "skipped"), ("x", "skipped")],
    )
    def test_toggle_skip_restores_derived_status(self, value, status):
        """Un-skipping restores filled/empty from the present value."""
        field = required("a", value=value, status=status)
        toggled = apply_toggle_skip(field)
        if status == "skipped":
            assert toggled.status == (FieldStatus.FILLED if value else FieldStatus.EMPTY)
        else:
            assert toggled.status == FieldStatus.SKIPPED

    @pytest.mark.parametrize("value,status", [("", "empty"), ("x", "filled"), ("", "skipped")])
    def test_toggle_skip_involutive(self, value, status):
        """Toggling twice returns to the original status."""
        field = required("a", value=value, status=status)
        assert apply_toggle_skip(apply_toggle_skip(field)).status == field.status


class TestFieldStateStore:
    """Tests for FieldStateStore operations."""

    def test_preserves_order(self, store):
        """Fields keep their extraction order."""
        assert [f.key for f in store] == ["fullName", "dateOfBirth", "consent", "email"]
        assert len(store) == 4

    def test_set_value(self, store):
        """set_value replaces the value and re-derives status."""
        store.set_value("dateOfBirth", "02/03/1990")
        field = store.get("dateOfBirth")
        assert field.value == "02/03/1990"
        assert field.status == FieldStatus.FILLED

        store.set_value("fullName", "")
        assert store.get("fullName").status == FieldStatus.EMPTY

    def test_set_value_on_skipped(self, store):
        """Direct edits do not clear a skip."""
        store.toggle_skip("dateOfBirth")
        store.set_value("dateOfBirth", "02/03/1990")
        assert store.get("dateOfBirth").status == FieldStatus.SKIPPED

        store.set_value("dateOfBirth", "02/03/1990", unskip=True)
        assert store.get("dateOfBirth").status == FieldStatus.FILLED

    def test_unknown_key_is_noop(self, store):
        """Unknown keys are ignored by mutating operations."""
        before = store.fields
        store.set_value("nope", "x")
        store.toggle_skip("nope")
        store.clear_value("nope")
        assert store.fields == before

    def test_get_unknown_key(self, store):
        """get raises UnknownFieldError, which is also a KeyError."""
        with pytest.raises(UnknownFieldError):
            store.get("nope")
        with pytest.raises(KeyError):
            store.get("nope")

    def test_set_image(self, store):
        """Image bytes are stored as a data URI."""
        store.set_image("fullName", b"abc", "image/png")
        assert store.get("fullName").value == "data:image/png;base64,YWJj"
        assert store.get("fullName").status == FieldStatus.FILLED

    def test_clear_value(self, store):
        """clear_value empties the field."""
        store.clear_value("fullName")
        assert store.get("fullName").value == ""
        assert store.get("fullName").status == FieldStatus.EMPTY

    def test_toggle_skip_non_required(self, store):
        """Skipping works mechanically on non-required fields too."""
        store.toggle_skip("consent")
        assert store.get("consent").status == FieldStatus.SKIPPED
        store.toggle_skip("consent")
        assert store.get("consent").status == FieldStatus.FILLED

    def test_to_analysis_reflects_edits(self, store, analysis):
        """to_analysis carries live fields and the original metadata."""
        store.set_value("dateOfBirth", "02/03/1990")
        live = store.to_analysis()
        assert live.fields[1].value == "02/03/1990"
        assert live.document_type == analysis.document_type
        assert live.missing_fields == ["dateOfBirth"]  # advisory, as ingested
        assert analysis.fields[1].value == ""


class TestToggleCheckbox:
    """Tests for FieldStateStore.toggle_checkbox."""

    @pytest.mark.parametrize(
        "value,expected",
        [("false", "true"), ("", "true"), ("no", "true"), ("true", "false"), ("Yes", "false")],
    )
    def test_flips_to_canonical_value(self, value, expected):
        """Toggling writes "true"/"false" whatever the raw form was."""
        store = build_store(
            DocumentField(key="ok", label="OK", value=value, type=FieldType.CHECKBOX)
        )
        store.toggle_checkbox("ok")
        assert store.get("ok").value == expected
        assert store.get("ok").status == FieldStatus.FILLED

    def test_sample_consent(self, store):
        """A "Yes" checkbox unchecks, then checks again."""
        store.toggle_checkbox("consent")
        assert store.get("consent").value == "false"
        store.toggle_checkbox("consent")
        assert store.get("consent").value == "true"

    def test_skipped_checkbox_stays_skipped(self):
        """Toggling a skipped checkbox changes the value but not the status."""
        store = build_store(
            DocumentField(
                key="ok", label="OK", value="false", type=FieldType.CHECKBOX, required=True
            )
        )
        store.toggle_skip("ok")
        store.toggle_checkbox("ok")
        field = store.get("ok")
        assert field.value == "true"
        assert field.status == FieldStatus.SKIPPED

    def test_unknown_key_is_noop(self, store):
        """Unknown keys are ignored."""
        before = store.fields
        store.toggle_checkbox("nope")
        assert store.fields == before

    def test_non_checkbox_unchanged(self, store):
        """Text fields are left alone."""
        before = store.get("fullName")
        store.toggle_checkbox("fullName")
        assert store.get("fullName") == before


class TestCompletion:
    """Tests for compute_completion."""

    def test_no_required_fields(self):
        """Zero required fields means 100% complete."""
        assert build_store().compute_completion() == 100
        store = build_store(DocumentField(key="a", label="A"))
        assert store.compute_completion() == 100

    def test_half_complete(self):
        """One filled + one empty required field -> 50."""
        store = build_store(required("a", "x"), required("b"))
        assert store.compute_completion() == 50

    def test_skipped_counts_as_done(self):
        """Skipped required fields count toward completion."""
        store = build_store(required("a", "x"), required("b", status="skipped"))
        assert store.compute_completion() == 100

    def test_uncertain_not_done(self):
        """Uncertain required fields do not count toward completion."""
        store = build_store(required("a", "x", status="uncertain"), required("b", "x"))
        assert store.compute_completion() == 50

    @pytest.mark.parametrize(
        "done,total,expected",
        [(1, 3, 33), (2, 3, 67), (1, 8, 13), (3, 8, 38), (0, 5, 0), (5, 5, 100)],
    )
    def test_rounding(self, done, total, expected):
        """Completion rounds half up to an integer."""
        fields = [required(f"f{i}", "x" if i < done else "") for i in range(total)]
        result = build_store(*fields).compute_completion()
        assert result == expected
        assert isinstance(result, int)
        assert 0 <= result <= 100

    def test_sample(self, store):
        """Sample has one of two required fields filled."""
        assert store.compute_completion() == 50


class TestValidation:
    """Tests for validate / validate_async."""

    def test_reports_missing(self, store):
        """One required empty field is reported."""
        report = store.validate()
        assert not report.valid
        assert report.missing_keys == ["dateOfBirth"]
        assert report.message == "Validation Failed: 1 required field(s) are empty."

    def test_valid_after_skip(self, store):
        """Skipping the missing field makes the set valid."""
        store.toggle_skip("dateOfBirth")
        report = store.validate()
        assert report.valid
        assert report.message == VALID_MESSAGE
        report.raise_for_missing()

    def test_raise_for_missing(self, store):
        """raise_for_missing carries count and keys."""
        with pytest.raises(ValidationFailed, match="1 required field") as exc_info:
            store.validate().raise_for_missing()
        assert exc_info.value.missing_keys == ["dateOfBirth"]

    def test_validate_does_not_mutate(self, store):
        """Validation is a pure read."""
        before = store.fields
        store.validate()
        assert store.fields == before

    @patch("docreview.review.store.asyncio.sleep", new_callable=AsyncMock)
    def test_validate_async_waits(self, mock_sleep, store):
        """validate_async awaits the configured delay first."""
        report = asyncio.run(store.validate_async(delay=0.8))
        mock_sleep.assert_awaited_once_with(0.8)
        assert report.missing_keys == ["dateOfBirth"]

    @patch("docreview.review.store.asyncio.sleep", new_callable=AsyncMock)
    def test_validate_async_no_delay(self, mock_sleep, store):
        """A zero delay skips sleeping."""
        asyncio.run(store.validate_async(delay=0))
        mock_sleep.assert_not_awaited()

    def test_non_required_empty_ignored(self):
        """Empty non-required fields never block validation."""
        store = build_store(DocumentField(key="a", label="A"), required("b", "x"))
        assert store.validate().valid

    def test_image_field_type(self):
        """Field type does not affect validation."""
        store = build_store(
            DocumentField(key="sig", label="Signature", type=FieldType.SIGNATURE, required=True)
        )
        assert store.validate().missing_keys == ["sig"]

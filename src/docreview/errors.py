"""Error taxonomy for the review engine.

Whole-document failures (analysis, base image, encoding) propagate to the
caller. Field-level failures are absorbed where they occur.
"""

from typing import Sequence


class DocReviewError(Exception):
    """Base class for all docreview errors."""


class UnknownFieldError(DocReviewError, KeyError):
    """A field key is not present in the store."""

    def __init__(self, key: str):
        self.key = key
        super().__init__(f"Unknown field: {key!r}")

    def __str__(self) -> str:
        return self.args[0]


class ValidationFailed(DocReviewError):
    """One or more required fields are empty."""

    def __init__(self, missing_keys: Sequence[str]):
        self.missing_keys = list(missing_keys)
        super().__init__(
            f"Validation Failed: {len(self.missing_keys)} required field(s) are empty "
            f"({', '.join(self.missing_keys)})."
        )


class BaseImageDecodeError(DocReviewError):
    """The base document image could not be decoded."""


class FieldImageDecodeError(DocReviewError):
    """An image or signature field value could not be decoded."""


class EncodingError(DocReviewError):
    """The page encoder could not produce an output document."""


class AnalysisFailed(DocReviewError):
    """The extraction service did not return a usable structured result."""


class UploadRejected(DocReviewError):
    """The uploaded file type or size is not accepted."""


class SessionNotReady(DocReviewError):
    """An operation needs a document under review but none is loaded."""

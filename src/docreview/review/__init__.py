"""Review workflow: live field state and the session around it."""

from .session import (
    ANALYSIS_FAILED_MESSAGE,
    AnalysisClient,
    ReviewSession,
    SessionState,
    UploadedDocument,
    accept_upload,
)
from .store import (
    FieldStateStore,
    ValidationReport,
    apply_toggle_skip,
    apply_value,
)

__all__ = [
    # Store
    "FieldStateStore",
    "ValidationReport",
    "apply_toggle_skip",
    "apply_value",
    # Session
    "ANALYSIS_FAILED_MESSAGE",
    "AnalysisClient",
    "ReviewSession",
    "SessionState",
    "UploadedDocument",
    "accept_upload",
]

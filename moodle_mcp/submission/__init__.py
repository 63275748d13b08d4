"""File submission workflow module."""

from .workflow import (
    SubmissionError,
    SubmissionNotAllowed,
    SubmissionOutcome,
    SubmissionSaved,
    SubmissionWarning,
    SubmissionWorkflow,
    UploadFailed,
)

__all__ = [
    "SubmissionWorkflow",
    "SubmissionOutcome",
    "SubmissionSaved",
    "SubmissionWarning",
    "SubmissionError",
    "SubmissionNotAllowed",
    "UploadFailed",
]

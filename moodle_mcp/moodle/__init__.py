"""Moodle web-service API client module."""

from .client import ClientClosedError, MoodleClient, RemoteError
from .models import (
    Assignment,
    AssignmentListing,
    CourseSummary,
    SubmissionStatus,
    UploadedFileHandle,
    UserIdentity,
)

__all__ = [
    "MoodleClient",
    "RemoteError",
    "ClientClosedError",
    "Assignment",
    "AssignmentListing",
    "CourseSummary",
    "SubmissionStatus",
    "UploadedFileHandle",
    "UserIdentity",
]

"""
File submission workflow.

Submitting a file to a Moodle assignment takes three calls that cannot
be undone as a unit:

1. upload the bytes into the user's draft area
2. take the draft item id from the upload response
3. save the submission with that item id

A fresh submission status is checked before the upload. Nothing is
retried and nothing is rolled back: an upload whose save never happens
is left in the draft area.
"""

import logging
from dataclasses import dataclass, field
from typing import Optional

from ..moodle.client import MoodleClient
from ..moodle.models import SubmissionStatus

logger = logging.getLogger(__name__)


class SubmissionError(Exception):
    """Base class for fatal submission failures. No submission took place."""
    pass


class SubmissionNotAllowed(SubmissionError):
    """Raised when Moodle reports the user can neither submit nor edit."""

    def __init__(self, assignment_id: int, status: Optional[SubmissionStatus] = None):
        self.assignment_id = assignment_id
        self.status = status
        super().__init__(
            f"Submission to assignment {assignment_id} is not allowed or locked"
        )


class UploadFailed(SubmissionError):
    """Raised when the upload endpoint returns no file handles."""

    def __init__(self, file_name: str, message: str = "No response from upload endpoint"):
        self.file_name = file_name
        super().__init__(f"Failed to upload {file_name}: {message}")


@dataclass(frozen=True)
class SubmissionOutcome:
    """
    Terminal state of a submission that reached the save step.

    Attributes:
        assignment_id: Assignment the file was submitted to
        item_id: Draft item id the upload was bound to
        file_name: Name of the uploaded file
        file_size: Uploaded size in bytes
        warnings: Raw warning texts from save-submission, verbatim
    """
    assignment_id: int
    item_id: int
    file_name: str
    file_size: int
    warnings: tuple[str, ...] = field(default_factory=tuple)

    @property
    def has_warnings(self) -> bool:
        return len(self.warnings) > 0


@dataclass(frozen=True)
class SubmissionSaved(SubmissionOutcome):
    """Save-submission returned an empty list."""
    pass


@dataclass(frozen=True)
class SubmissionWarning(SubmissionOutcome):
    """
    Upload and bind succeeded but save-submission reported warnings.

    The file is uploaded and bound regardless; this is a valid end state.
    """
    pass


class SubmissionWorkflow:
    """
    Orchestrates the check, upload, bind and save sequence.

    Usage:
        workflow = SubmissionWorkflow(client)
        outcome = workflow.submit(assignment.id, path.read_bytes(), path.name)
        if outcome.has_warnings:
            print(outcome.warnings)
    """

    def __init__(self, client: MoodleClient):
        self.client = client

    def check_allowed(self, assignment_id: int) -> SubmissionStatus:
        """
        Fetch the current status and require that submitting is possible.

        Advisory only: the server may still reject the save.

        Raises:
            SubmissionNotAllowed: If neither can_submit nor can_edit is set
        """
        status = self.client.get_submission_status(assignment_id)
        if not status.last_attempt.accepts_submission:
            logger.warning(f"Assignment {assignment_id} does not accept submissions")
            raise SubmissionNotAllowed(assignment_id, status)
        return status

    def submit(self, assignment_id: int, content: bytes, file_name: str) -> SubmissionOutcome:
        """
        Submit a file to an assignment.

        Args:
            assignment_id: Assignment instance ID
            content: File bytes
            file_name: Name to store the file under

        Returns:
            SubmissionSaved, or SubmissionWarning when save reported warnings

        Raises:
            SubmissionNotAllowed: Precondition failed, nothing uploaded
            UploadFailed: Upload returned no handles, save not attempted
            RemoteError: A call to Moodle failed
        """
        logger.info(f"Submitting {file_name} to assignment {assignment_id}")

        # Step 1: Precondition
        self.check_allowed(assignment_id)

        # Step 2: Upload
        handles = self.client.upload_file(content, file_name)
        if not handles:
            logger.error(f"Upload of {file_name} returned no file handles")
            raise UploadFailed(file_name)

        # Step 3: Bind; only the first handle is used
        item_id = handles[0].item_id
        if len(handles) > 1:
            logger.debug(f"Upload returned {len(handles)} handles, using item {item_id}")

        # Step 4: Save
        warnings = self.client.save_submission(assignment_id, item_id)

        if warnings:
            logger.warning(
                f"Submission of {file_name} to assignment {assignment_id} "
                f"saved with {len(warnings)} warning(s)"
            )
            return SubmissionWarning(
                assignment_id=assignment_id,
                item_id=item_id,
                file_name=file_name,
                file_size=len(content),
                warnings=tuple(warnings),
            )

        logger.info(f"Submission of {file_name} to assignment {assignment_id} saved")
        return SubmissionSaved(
            assignment_id=assignment_id,
            item_id=item_id,
            file_name=file_name,
            file_size=len(content),
        )

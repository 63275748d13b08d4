"""
Tool operation handlers.

Each handler validates its parameters, resolves names, calls Moodle and
renders a text result. Nothing raised by the client or the workflow
escapes a handler: failures come back as error results so the calling
agent always gets a response.
"""

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from ..resolution.resolver import NotFound
from ..submission.workflow import SubmissionNotAllowed, UploadFailed
from .formatting import (
    format_assignment_listing,
    format_not_found,
    format_submission_outcome,
    format_submission_status,
    get_timezone,
)
from .session import MoodleSession

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ToolResult:
    """Text returned to the calling agent."""
    text: str
    is_error: bool = False

    @classmethod
    def error(cls, text: str) -> "ToolResult":
        return cls(text=text, is_error=True)


@dataclass(frozen=True)
class MissingParameter:
    """A required tool parameter was absent or blank."""
    name: str

    @property
    def message(self) -> str:
        return f"The '{self.name}' parameter is required."


def require_params(**params: Optional[str]) -> Optional[MissingParameter]:
    """Return the first missing parameter in argument order, or None."""
    for name, value in params.items():
        if value is None or not str(value).strip():
            return MissingParameter(name)
    return None


def validate_file_path(path: str) -> Optional[str]:
    """Return an error message if path is not an existing regular file."""
    file_path = Path(path)
    if not file_path.exists():
        return f"File not found: {path}"
    if not file_path.is_file():
        return f"Path is not a file: {path}"
    return None


class ToolHandlers:
    """
    The three operations exposed to the calling agent.

    Resolution is strictly sequential: course, then assignment, then
    the action.
    """

    def __init__(self, session: MoodleSession):
        self.session = session
        self.tz = get_timezone(session.settings.server.timezone)

    def list_assignments(self, course_name: Optional[str]) -> ToolResult:
        """List the assignments of the course matching course_name."""
        missing = require_params(course_name=course_name)
        if missing:
            return ToolResult.error(missing.message)

        try:
            course = self.session.resolver.resolve_course(self.session.user.id, course_name)
            if isinstance(course, NotFound):
                return ToolResult.error(format_not_found(course))

            listing = self.session.client.get_assignments([course.entity.id])
            return ToolResult(format_assignment_listing(course.entity, listing, self.tz))

        except Exception as e:
            logger.exception(f"get_assignments failed for course '{course_name}'")
            return ToolResult.error(f"Error getting assignments: {e}")

    def get_submission_status(
        self,
        course_name: Optional[str],
        assignment_name: Optional[str],
    ) -> ToolResult:
        """Report the current submission status of one assignment."""
        missing = require_params(course_name=course_name, assignment_name=assignment_name)
        if missing:
            return ToolResult.error(missing.message)

        try:
            course = self.session.resolver.resolve_course(self.session.user.id, course_name)
            if isinstance(course, NotFound):
                return ToolResult.error(format_not_found(course))

            assignment = self.session.resolver.resolve_assignment(course.entity.id, assignment_name)
            if isinstance(assignment, NotFound):
                return ToolResult.error(format_not_found(assignment))

            status = self.session.client.get_submission_status(assignment.entity.id)
            return ToolResult(format_submission_status(assignment.entity, status, self.tz))

        except Exception as e:
            logger.exception(
                f"get_submission_status failed for '{course_name}' / '{assignment_name}'"
            )
            return ToolResult.error(f"Error getting submission status: {e}")

    def submit(
        self,
        course_name: Optional[str],
        assignment_name: Optional[str],
        submit_file_path: Optional[str],
    ) -> ToolResult:
        """Submit a local file to the assignment matching the given names."""
        missing = require_params(
            course_name=course_name,
            assignment_name=assignment_name,
            submit_file_path=submit_file_path,
        )
        if missing:
            return ToolResult.error(missing.message)

        path_error = validate_file_path(submit_file_path)
        if path_error:
            return ToolResult.error(path_error)

        assignment_label = assignment_name
        try:
            course = self.session.resolver.resolve_course(self.session.user.id, course_name)
            if isinstance(course, NotFound):
                return ToolResult.error(format_not_found(course))

            assignment = self.session.resolver.resolve_assignment(course.entity.id, assignment_name)
            if isinstance(assignment, NotFound):
                return ToolResult.error(format_not_found(assignment))
            assignment_label = assignment.entity.name

            file_path = Path(submit_file_path)
            outcome = self.session.workflow.submit(
                assignment.entity.id,
                file_path.read_bytes(),
                file_path.name,
            )
            return ToolResult(
                format_submission_outcome(course.entity, assignment.entity, outcome)
            )

        except SubmissionNotAllowed:
            return ToolResult.error(
                f"Cannot submit to assignment '{assignment_label}'. "
                f"Submission is not allowed or locked."
            )
        except UploadFailed as e:
            return ToolResult.error(str(e))
        except Exception as e:
            logger.exception(f"submit failed for '{course_name}' / '{assignment_name}'")
            return ToolResult.error(f"Error submitting assignment: {e}")

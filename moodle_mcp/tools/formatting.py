"""
Human-readable rendering of tool results.
"""

from datetime import datetime, tzinfo
from zoneinfo import ZoneInfo

from ..moodle.models import (
    Assignment,
    AssignmentListing,
    CourseSummary,
    GradingStatus,
    SubmissionState,
    SubmissionStatus,
)
from ..resolution.resolver import NotFound
from ..submission.workflow import SubmissionOutcome

SUBMISSION_STATE_LABELS = {
    SubmissionState.NEW: "Not submitted",
    SubmissionState.DRAFT: "Draft",
    SubmissionState.SUBMITTED: "Submitted",
    SubmissionState.REOPENED: "Reopened",
}

GRADING_STATUS_LABELS = {
    GradingStatus.NOT_GRADED: "Not graded",
    GradingStatus.GRADED: "Graded",
    GradingStatus.RELEASED: "Released",
}


def get_timezone(name: str) -> tzinfo:
    return ZoneInfo(name)


def format_timestamp(timestamp: int, tz: tzinfo) -> str:
    """Render epoch seconds as 'YYYY/MM/DD HH:MM'; zero or less means unset."""
    if timestamp is None or timestamp <= 0:
        return "Not set"
    return datetime.fromtimestamp(timestamp, tz).strftime("%Y/%m/%d %H:%M")


def submission_state_label(status: str) -> str:
    try:
        return SUBMISSION_STATE_LABELS[SubmissionState(status)]
    except ValueError:
        return status


def grading_status_label(status: str) -> str:
    try:
        return GRADING_STATUS_LABELS[GradingStatus(status)]
    except ValueError:
        return status


def format_not_found(result: NotFound) -> str:
    """Message for an unmatched course or assignment, listing the alternatives."""
    names = ", ".join(result.candidate_names)
    noun = "courses" if result.kind == "course" else "assignments"
    return f"{result.kind.capitalize()} '{result.query}' not found. Available {noun}: {names}"


def _format_assignment(assignment: Assignment, tz: tzinfo) -> list[str]:
    lines = [
        f"- {assignment.name} (ID: {assignment.id})",
        f"  Due: {format_timestamp(assignment.due_date, tz)}",
    ]
    if assignment.allow_submissions_from_date > 0:
        lines.append(
            f"  Opens: {format_timestamp(assignment.allow_submissions_from_date, tz)}"
        )
    if assignment.cutoff_date > 0:
        lines.append(f"  Cut-off: {format_timestamp(assignment.cutoff_date, tz)}")
    if assignment.time_limit > 0:
        lines.append(f"  Time limit: {assignment.time_limit} seconds")
    return lines


def format_assignment_listing(course: CourseSummary, listing: AssignmentListing, tz: tzinfo) -> str:
    assignments = listing.assignments
    lines = [f"Assignments in '{course.full_name}' ({len(assignments)}):", ""]

    if not assignments:
        lines.append("No assignments found.")
    for assignment in assignments:
        lines.extend(_format_assignment(assignment, tz))

    if listing.warnings:
        lines.append("")
        lines.append("Warnings:")
        for warning in listing.warnings:
            lines.append(f"- {warning.message} ({warning.warning_code})")

    return "\n".join(lines)


def format_submission_status(assignment: Assignment, status: SubmissionStatus, tz: tzinfo) -> str:
    attempt = status.last_attempt
    submission = attempt.submission
    lines = [f"Submission status for '{assignment.name}':", ""]

    if submission is not None:
        lines.append(f"Submission ID: {submission.id}")
        lines.append(f"Status: {submission_state_label(submission.status)}")
        lines.append(f"Attempt: {submission.attempt_number + 1}")
        lines.append(f"Created: {format_timestamp(submission.created_at, tz)}")
        lines.append(f"Last modified: {format_timestamp(submission.modified_at, tz)}")
        if submission.started_at is not None:
            lines.append(f"Started: {format_timestamp(submission.started_at, tz)}")
    else:
        lines.append("No submission has been made yet.")

    lines.append("")
    lines.append("Permissions:")
    lines.append(f"Submissions enabled: {attempt.submissions_enabled}")
    lines.append(f"Locked: {attempt.locked}")
    lines.append(f"Can submit: {attempt.can_submit}")
    lines.append(f"Can edit: {attempt.can_edit}")
    lines.append(f"Grading status: {grading_status_label(attempt.grading_status)}")
    lines.append(f"Graded: {attempt.graded}")

    if attempt.extension_due_date is not None:
        lines.append(f"Extension due date: {format_timestamp(attempt.extension_due_date, tz)}")
    if attempt.time_limit > 0:
        lines.append(f"Time limit: {attempt.time_limit} seconds")

    lines.append("")
    lines.append("Submission plugins:")
    if submission is not None:
        for plugin in submission.plugins:
            lines.append(f"- {plugin.name} ({plugin.type})")
            for area in plugin.file_areas:
                lines.append(f"  File area: {area.area} ({len(area.files)})")
                for submitted in area.files:
                    lines.append(f"    {submitted.filename} ({submitted.filesize} bytes)")

    return "\n".join(lines)


def format_submission_outcome(course: CourseSummary, assignment: Assignment, outcome: SubmissionOutcome) -> str:
    lines = [
        "File submission completed." if not outcome.has_warnings
        else "File uploaded, but saving the submission reported warnings.",
        "",
        f"Course: {course.full_name}",
        f"Assignment: {assignment.name}",
        f"File: {outcome.file_name}",
        f"File size: {outcome.file_size} bytes",
        f"Upload item ID: {outcome.item_id}",
    ]

    if outcome.has_warnings:
        lines.append("Result: warnings reported")
        for warning in outcome.warnings:
            lines.append(f"Details: {warning}")
        lines.append("")
        lines.append("Check the submission in Moodle.")
    else:
        lines.append("Result: saved")

    return "\n".join(lines)

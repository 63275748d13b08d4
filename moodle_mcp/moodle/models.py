"""
Moodle web-service data models.

These models represent the entities returned by the Moodle REST API.
The API is loosely typed: booleans arrive as 0/1, ids as strings, and
fields come and go between server versions. Every model therefore reads
only the keys it knows about and coerces values leniently.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Optional


def _as_int(value: Any, default: int = 0) -> int:
    if value is None or value == "":
        return default
    if isinstance(value, bool):
        return int(value)
    try:
        return int(value)
    except (TypeError, ValueError):
        return int(float(value))


def _as_optional_int(value: Any) -> Optional[int]:
    if value is None or value == "":
        return None
    return _as_int(value)


def _as_bool(value: Any, default: bool = False) -> bool:
    if value is None:
        return default
    if isinstance(value, str):
        return value.strip().lower() in ("1", "true", "yes")
    return bool(value)


def _as_optional_bool(value: Any) -> Optional[bool]:
    if value is None:
        return None
    return _as_bool(value)


def _as_str(value: Any, default: str = "") -> str:
    if value is None:
        return default
    return str(value)


class SubmissionState(Enum):
    """Moodle submission status values."""
    NEW = "new"
    DRAFT = "draft"
    SUBMITTED = "submitted"
    REOPENED = "reopened"


class GradingStatus(Enum):
    """Moodle grading status values."""
    NOT_GRADED = "notgraded"
    GRADED = "graded"
    RELEASED = "released"


@dataclass(frozen=True)
class UserIdentity:
    """
    The authenticated web-service user.

    Attributes:
        id: Moodle user ID
        display_name: Full name as shown by Moodle
        username: Login name, if reported
        site_name: Name of the Moodle site
    """
    id: int
    display_name: str
    username: str = ""
    site_name: str = ""

    @classmethod
    def from_api_response(cls, data: dict) -> "UserIdentity":
        """Create UserIdentity from core_webservice_get_site_info."""
        return cls(
            id=_as_int(data["userid"]),
            display_name=_as_str(data.get("fullname")),
            username=_as_str(data.get("username")),
            site_name=_as_str(data.get("sitename")),
        )


@dataclass(frozen=True)
class CourseSummary:
    """
    A course the user is enrolled in.

    Attributes:
        id: Unique Moodle course ID
        full_name: Long course name
        short_name: Course code (e.g., "OS1")
        display_name: Name as rendered by the site
    """
    id: int
    full_name: str
    short_name: str
    display_name: str
    id_number: str = ""
    visible: bool = True
    summary: str = ""
    format: str = ""
    category: Optional[int] = None
    progress: Optional[int] = None
    completed: Optional[bool] = None
    start_date: int = 0
    end_date: int = 0
    last_access: Optional[int] = None
    is_favourite: bool = False
    hidden: bool = False

    @property
    def name_fields(self) -> tuple[str, str, str]:
        """Names a free-text course query is matched against."""
        return (self.full_name, self.short_name, self.display_name)

    @classmethod
    def from_api_response(cls, data: dict) -> "CourseSummary":
        """Create CourseSummary from core_enrol_get_users_courses."""
        full_name = _as_str(data.get("fullname"))
        return cls(
            id=_as_int(data["id"]),
            full_name=full_name,
            short_name=_as_str(data.get("shortname")),
            display_name=_as_str(data.get("displayname"), full_name),
            id_number=_as_str(data.get("idnumber")),
            visible=_as_bool(data.get("visible"), True),
            summary=_as_str(data.get("summary")),
            format=_as_str(data.get("format")),
            category=_as_optional_int(data.get("category")),
            progress=_as_optional_int(data.get("progress")),
            completed=_as_optional_bool(data.get("completed")),
            start_date=_as_int(data.get("startdate")),
            end_date=_as_int(data.get("enddate")),
            last_access=_as_optional_int(data.get("lastaccess")),
            is_favourite=_as_bool(data.get("isfavourite")),
            hidden=_as_bool(data.get("hidden")),
        )


@dataclass(frozen=True)
class IntroFile:
    """A file attached to an assignment description or a submission."""
    filename: str
    filepath: str = "/"
    filesize: int = 0
    fileurl: str = ""
    timemodified: int = 0
    mimetype: str = ""
    is_external: bool = False

    @classmethod
    def from_api_response(cls, data: dict) -> "IntroFile":
        return cls(
            filename=_as_str(data.get("filename")),
            filepath=_as_str(data.get("filepath"), "/"),
            filesize=_as_int(data.get("filesize")),
            fileurl=_as_str(data.get("fileurl")),
            timemodified=_as_int(data.get("timemodified")),
            mimetype=_as_str(data.get("mimetype")),
            is_external=_as_bool(data.get("isexternalfile")),
        )


# Submission files share the shape of intro files
SubmissionFile = IntroFile


@dataclass(frozen=True)
class AssignmentConfig:
    """One plugin setting of an assignment."""
    plugin: str
    subtype: str
    name: str
    value: str

    @classmethod
    def from_api_response(cls, data: dict) -> "AssignmentConfig":
        return cls(
            plugin=_as_str(data.get("plugin")),
            subtype=_as_str(data.get("subtype")),
            name=_as_str(data.get("name")),
            value=_as_str(data.get("value")),
        )


@dataclass(frozen=True)
class Assignment:
    """
    Represents a Moodle assignment activity.

    Dates are epoch seconds; zero means "not set".

    Attributes:
        id: Assignment instance ID (used by mod_assign_* functions)
        course_id: Course this assignment belongs to
        cmid: Course module ID
        name: Assignment title
        due_date: Due date, 0 if none
    """
    id: int
    course_id: int
    name: str
    due_date: int = 0
    cmid: Optional[int] = None
    allow_submissions_from_date: int = 0
    cutoff_date: int = 0
    grading_due_date: int = 0
    max_attempts: int = -1
    time_limit: int = 0
    intro: str = ""
    no_submissions: bool = False
    submission_drafts: bool = False
    team_submission: bool = False
    configs: tuple[AssignmentConfig, ...] = ()
    intro_attachments: tuple[IntroFile, ...] = ()

    @classmethod
    def from_api_response(cls, data: dict, course_id: Optional[int] = None) -> "Assignment":
        """Create Assignment from one entry of mod_assign_get_assignments."""
        return cls(
            id=_as_int(data["id"]),
            course_id=_as_int(data.get("course"), course_id or 0),
            name=_as_str(data.get("name")),
            due_date=_as_int(data.get("duedate")),
            cmid=_as_optional_int(data.get("cmid")),
            allow_submissions_from_date=_as_int(data.get("allowsubmissionsfromdate")),
            cutoff_date=_as_int(data.get("cutoffdate")),
            grading_due_date=_as_int(data.get("gradingduedate")),
            max_attempts=_as_int(data.get("maxattempts"), -1),
            time_limit=_as_int(data.get("timelimit")),
            intro=_as_str(data.get("intro")),
            no_submissions=_as_bool(data.get("nosubmissions")),
            submission_drafts=_as_bool(data.get("submissiondrafts")),
            team_submission=_as_bool(data.get("teamsubmission")),
            configs=tuple(
                AssignmentConfig.from_api_response(c) for c in data.get("configs") or []
            ),
            intro_attachments=tuple(
                IntroFile.from_api_response(f) for f in data.get("introattachments") or []
            ),
        )


@dataclass(frozen=True)
class RemoteWarning:
    """A non-fatal diagnostic attached to a web-service response."""
    item: str
    item_id: Optional[int]
    warning_code: str
    message: str

    @classmethod
    def from_api_response(cls, data: dict) -> "RemoteWarning":
        return cls(
            item=_as_str(data.get("item")),
            item_id=_as_optional_int(data.get("itemid")),
            warning_code=_as_str(data.get("warningcode")),
            message=_as_str(data.get("message")),
        )


@dataclass(frozen=True)
class CourseAssignments:
    """Assignments of one course, as grouped by the listing call."""
    id: int
    full_name: str
    short_name: str
    assignments: tuple[Assignment, ...] = ()

    @classmethod
    def from_api_response(cls, data: dict) -> "CourseAssignments":
        course_id = _as_int(data["id"])
        return cls(
            id=course_id,
            full_name=_as_str(data.get("fullname")),
            short_name=_as_str(data.get("shortname")),
            assignments=tuple(
                Assignment.from_api_response(a, course_id=course_id)
                for a in data.get("assignments") or []
            ),
        )


@dataclass(frozen=True)
class AssignmentListing:
    """Response of mod_assign_get_assignments."""
    courses: tuple[CourseAssignments, ...] = ()
    warnings: tuple[RemoteWarning, ...] = ()

    @property
    def assignments(self) -> list[Assignment]:
        """All assignments across courses, in server order."""
        return [a for course in self.courses for a in course.assignments]

    @classmethod
    def from_api_response(cls, data: dict) -> "AssignmentListing":
        return cls(
            courses=tuple(
                CourseAssignments.from_api_response(c) for c in data.get("courses") or []
            ),
            warnings=tuple(
                RemoteWarning.from_api_response(w) for w in data.get("warnings") or []
            ),
        )


@dataclass(frozen=True)
class FileArea:
    """A named file area inside a submission plugin."""
    area: str
    files: tuple[SubmissionFile, ...] = ()

    @classmethod
    def from_api_response(cls, data: dict) -> "FileArea":
        return cls(
            area=_as_str(data.get("area")),
            files=tuple(SubmissionFile.from_api_response(f) for f in data.get("files") or []),
        )


@dataclass(frozen=True)
class SubmissionPlugin:
    """One plugin payload of a submission (file, online text, ...)."""
    type: str
    name: str
    file_areas: tuple[FileArea, ...] = ()

    @classmethod
    def from_api_response(cls, data: dict) -> "SubmissionPlugin":
        return cls(
            type=_as_str(data.get("type")),
            name=_as_str(data.get("name")),
            file_areas=tuple(
                FileArea.from_api_response(a) for a in data.get("fileareas") or []
            ),
        )


@dataclass(frozen=True)
class Submission:
    """
    A user's attempt at an assignment.

    `status` keeps the raw server value; `state` maps it onto
    SubmissionState when it is a known one.
    """
    id: int
    status: str
    attempt_number: int = 0
    created_at: int = 0
    modified_at: int = 0
    started_at: Optional[int] = None
    user_id: Optional[int] = None
    group_id: int = 0
    assignment_id: Optional[int] = None
    latest: bool = True
    plugins: tuple[SubmissionPlugin, ...] = ()

    @property
    def state(self) -> Optional[SubmissionState]:
        try:
            return SubmissionState(self.status)
        except ValueError:
            return None

    @classmethod
    def from_api_response(cls, data: dict) -> "Submission":
        return cls(
            id=_as_int(data["id"]),
            status=_as_str(data.get("status"), SubmissionState.NEW.value),
            attempt_number=_as_int(data.get("attemptnumber")),
            created_at=_as_int(data.get("timecreated")),
            modified_at=_as_int(data.get("timemodified")),
            started_at=_as_optional_int(data.get("timestarted")),
            user_id=_as_optional_int(data.get("userid")),
            group_id=_as_int(data.get("groupid")),
            assignment_id=_as_optional_int(data.get("assignment")),
            latest=_as_bool(data.get("latest"), True),
            plugins=tuple(
                SubmissionPlugin.from_api_response(p) for p in data.get("plugins") or []
            ),
        )


@dataclass(frozen=True)
class LastAttempt:
    """Permissions and state of the user's latest attempt."""
    submission: Optional[Submission]
    submissions_enabled: bool
    locked: bool
    can_submit: bool
    can_edit: bool
    grading_status: str
    graded: bool = False
    can_edit_owner: bool = False
    extension_due_date: Optional[int] = None
    time_limit: int = 0
    blind_marking: bool = False
    group_members_to_submit: tuple[str, ...] = ()

    @property
    def accepts_submission(self) -> bool:
        """Whether the server currently lets the user submit or edit."""
        return self.can_submit or self.can_edit

    @property
    def grading_state(self) -> Optional[GradingStatus]:
        try:
            return GradingStatus(self.grading_status)
        except ValueError:
            return None

    @classmethod
    def from_api_response(cls, data: dict) -> "LastAttempt":
        submission = None
        if data.get("submission"):
            submission = Submission.from_api_response(data["submission"])

        return cls(
            submission=submission,
            submissions_enabled=_as_bool(data.get("submissionsenabled")),
            locked=_as_bool(data.get("locked")),
            can_submit=_as_bool(data.get("cansubmit")),
            can_edit=_as_bool(data.get("canedit")),
            grading_status=_as_str(data.get("gradingstatus"), GradingStatus.NOT_GRADED.value),
            graded=_as_bool(data.get("graded")),
            can_edit_owner=_as_bool(data.get("caneditowner")),
            extension_due_date=_as_optional_int(data.get("extensionduedate")),
            time_limit=_as_int(data.get("timelimit")),
            blind_marking=_as_bool(data.get("blindmarking")),
            group_members_to_submit=tuple(
                _as_str(m) for m in data.get("submissiongroupmemberswhoneedtosubmit") or []
            ),
        )


@dataclass(frozen=True)
class AssignmentData:
    """Assignment-level data returned with the submission status."""
    intro_attachments: tuple[IntroFile, ...] = ()

    @classmethod
    def from_api_response(cls, data: Optional[dict]) -> "AssignmentData":
        attachments = (data or {}).get("attachments") or {}
        return cls(
            intro_attachments=tuple(
                IntroFile.from_api_response(f) for f in attachments.get("intro") or []
            ),
        )


@dataclass(frozen=True)
class SubmissionStatus:
    """
    Point-in-time snapshot from mod_assign_get_submission_status.

    Never cached; fetch again before acting on it.
    """
    last_attempt: LastAttempt
    assignment_data: AssignmentData = field(default_factory=AssignmentData)

    @classmethod
    def from_api_response(cls, data: dict) -> "SubmissionStatus":
        return cls(
            last_attempt=LastAttempt.from_api_response(data.get("lastattempt") or {}),
            assignment_data=AssignmentData.from_api_response(data.get("assignmentdata")),
        )


@dataclass(frozen=True)
class UploadedFileHandle:
    """
    A file stored in the user's draft area by the upload endpoint.

    Only item_id is consumed downstream; it binds the upload to the
    save-submission call.
    """
    item_id: int
    file_name: str
    component: str = "user"
    context_id: Optional[int] = None
    user_id: str = ""
    file_area: str = "draft"
    file_path: str = "/"
    license: str = ""
    author: str = ""
    source: str = ""

    @classmethod
    def from_api_response(cls, data: dict) -> "UploadedFileHandle":
        return cls(
            item_id=_as_int(data["itemid"]),
            file_name=_as_str(data.get("filename")),
            component=_as_str(data.get("component"), "user"),
            context_id=_as_optional_int(data.get("contextid")),
            user_id=_as_str(data.get("userid")),
            file_area=_as_str(data.get("filearea"), "draft"),
            file_path=_as_str(data.get("filepath"), "/"),
            license=_as_str(data.get("license")),
            author=_as_str(data.get("author")),
            source=_as_str(data.get("source")),
        )

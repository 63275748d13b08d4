"""
Pytest configuration and shared fixtures.

Provides sample Moodle payloads, parsed models, and client doubles.
"""

import json
from typing import Callable
from unittest.mock import MagicMock

import pytest
import requests

from config.settings import MoodleConfig, ServerConfig, Settings
from moodle_mcp.moodle.client import MoodleClient
from moodle_mcp.moodle.models import (
    AssignmentListing,
    CourseSummary,
    SubmissionStatus,
    UploadedFileHandle,
    UserIdentity,
)

MOODLE_ENV_VARS = (
    "MOODLE_TOKEN",
    "MOODLE_BASE_URL",
    "MOODLE_LANG",
    "MOODLE_TIMEZONE",
    "MCP_SERVER_NAME",
    "LOG_LEVEL",
)


# ============================================================================
# Environment Fixtures
# ============================================================================

@pytest.fixture
def clean_env(monkeypatch, tmp_path):
    """Unset all Moodle variables and run from an empty directory."""
    for name in MOODLE_ENV_VARS:
        # setenv first so monkeypatch restores the original state afterwards
        monkeypatch.setenv(name, "")
        monkeypatch.delenv(name)
    monkeypatch.chdir(tmp_path)
    return monkeypatch


@pytest.fixture
def mock_env(clean_env):
    """Set a complete, valid environment."""
    clean_env.setenv("MOODLE_TOKEN", "test_token")
    clean_env.setenv("MOODLE_BASE_URL", "https://moodle.test/moodle40a/")
    clean_env.setenv("MOODLE_LANG", "en")
    clean_env.setenv("MOODLE_TIMEZONE", "UTC")
    clean_env.setenv("MCP_SERVER_NAME", "Test Moodle")
    return clean_env


@pytest.fixture
def settings() -> Settings:
    """Settings pointing at a test site, rendering dates in UTC."""
    return Settings(
        moodle=MoodleConfig(token="test_token", base_url="https://moodle.test/moodle40a"),
        server=ServerConfig(name="test-moodle", timezone="UTC"),
    )


# ============================================================================
# API Response Fixtures
# ============================================================================

@pytest.fixture
def site_info_response() -> dict:
    """Sample core_webservice_get_site_info response."""
    return {
        "sitename": "NITech Moodle",
        "username": "cjz12345",
        "fullname": "Taro Nagoya",
        "userid": 4242,
        "release": "4.0.5",
        "functions": [{"name": "mod_assign_save_submission", "version": "2022041900"}],
    }


@pytest.fixture
def courses_response() -> list:
    """Sample core_enrol_get_users_courses response."""
    return [
        {
            "id": 101,
            "shortname": "OS1",
            "fullname": "Operating Systems I",
            "displayname": "Operating Systems I",
            "idnumber": "",
            "visible": 1,
            "summary": "<p>Processes and threads.</p>",
            "summaryformat": 1,
            "format": "topics",
            "showgrades": True,
            "lang": "",
            "enablecompletion": True,
            "category": 3,
            "progress": None,
            "completed": False,
            "startdate": 1712000000,
            "enddate": 0,
            "lastaccess": 1714000000,
            "isfavourite": False,
            "hidden": False,
            "overviewfiles": [],
        },
        {
            "id": 102,
            "shortname": "NET",
            "fullname": "Computer Networks",
            "displayname": "Computer Networks (2024)",
            "visible": "1",
            "startdate": "1712000000",
            "enddate": 1720000000,
        },
    ]


@pytest.fixture
def assignments_response() -> dict:
    """Sample mod_assign_get_assignments response for one course."""
    return {
        "courses": [
            {
                "id": 101,
                "fullname": "Operating Systems I",
                "shortname": "OS1",
                "timemodified": 1712000000,
                "assignments": [
                    {
                        "id": 501,
                        "cmid": 9001,
                        "course": 101,
                        "name": "Midterm Report",
                        "nosubmissions": 0,
                        "submissiondrafts": 1,
                        "duedate": 1715000000,
                        "allowsubmissionsfromdate": 1713000000,
                        "cutoffdate": 0,
                        "gradingduedate": 0,
                        "teamsubmission": 0,
                        "maxattempts": -1,
                        "timelimit": 0,
                        "intro": "<p>Write a report.</p>",
                        "configs": [
                            {
                                "plugin": "file",
                                "subtype": "assignsubmission",
                                "name": "maxfilesubmissions",
                                "value": "1",
                            }
                        ],
                        "introattachments": [],
                        "unknownfield": "ignored",
                    },
                    {
                        "id": 502,
                        "cmid": 9002,
                        "course": 101,
                        "name": "Final Report",
                        "duedate": 1718000000,
                    },
                ],
            }
        ],
        "warnings": [],
    }


@pytest.fixture
def submission_status_response() -> dict:
    """Sample mod_assign_get_submission_status response with a draft."""
    return {
        "lastattempt": {
            "submission": {
                "id": 7001,
                "userid": 4242,
                "attemptnumber": 0,
                "timecreated": 1714000000,
                "timemodified": 1714003600,
                "timestarted": None,
                "status": "draft",
                "groupid": 0,
                "assignment": 501,
                "latest": 1,
                "plugins": [
                    {
                        "type": "file",
                        "name": "File submissions",
                        "fileareas": [
                            {
                                "area": "submission_files",
                                "files": [
                                    {
                                        "filename": "report.pdf",
                                        "filepath": "/",
                                        "filesize": 2048,
                                        "fileurl": "https://moodle.test/pluginfile.php/1/report.pdf",
                                        "timemodified": 1714003600,
                                        "mimetype": "application/pdf",
                                        "isexternalfile": False,
                                    }
                                ],
                            }
                        ],
                    },
                    {"type": "comments", "name": "Submission comments"},
                ],
            },
            "submissiongroupmemberswhoneedtosubmit": [],
            "submissionsenabled": True,
            "locked": False,
            "graded": False,
            "canedit": True,
            "caneditowner": True,
            "cansubmit": True,
            "extensionduedate": None,
            "timelimit": 0,
            "blindmarking": False,
            "gradingstatus": "notgraded",
            "usergroups": [],
        },
        "assignmentdata": {"attachments": {"intro": []}},
    }


@pytest.fixture
def locked_status_response(submission_status_response: dict) -> dict:
    """Submission status where the user can neither submit nor edit."""
    data = json.loads(json.dumps(submission_status_response))
    data["lastattempt"].update({"locked": True, "canedit": False, "cansubmit": False})
    return data


@pytest.fixture
def upload_response() -> list:
    """Sample webservice/upload.php response."""
    return [
        {
            "component": "user",
            "contextid": 55,
            "userid": "4242",
            "filearea": "draft",
            "filename": "report.pdf",
            "filepath": "/",
            "itemid": 123456789,
            "license": "allrightsreserved",
            "author": "Taro Nagoya",
            "source": "O:8:\"stdClass\":1:{}",
        }
    ]


# ============================================================================
# Model Fixtures
# ============================================================================

@pytest.fixture
def sample_user(site_info_response: dict) -> UserIdentity:
    return UserIdentity.from_api_response(site_info_response)


@pytest.fixture
def sample_courses(courses_response: list) -> list[CourseSummary]:
    return [CourseSummary.from_api_response(c) for c in courses_response]


@pytest.fixture
def sample_listing(assignments_response: dict) -> AssignmentListing:
    return AssignmentListing.from_api_response(assignments_response)


@pytest.fixture
def sample_status(submission_status_response: dict) -> SubmissionStatus:
    return SubmissionStatus.from_api_response(submission_status_response)


@pytest.fixture
def sample_handles(upload_response: list) -> list[UploadedFileHandle]:
    return [UploadedFileHandle.from_api_response(h) for h in upload_response]


# ============================================================================
# Client Fixtures
# ============================================================================

@pytest.fixture
def make_response() -> Callable[..., requests.Response]:
    """Build a real requests.Response with the given body."""

    def _make(body, status_code: int = 200) -> requests.Response:
        response = requests.Response()
        response.status_code = status_code
        if isinstance(body, (bytes, str)):
            content = body.encode("utf-8") if isinstance(body, str) else body
        else:
            content = json.dumps(body).encode("utf-8")
        response._content = content
        response.encoding = "utf-8"
        response.url = "https://moodle.test/moodle40a/webservice/rest/server.php"
        return response

    return _make


@pytest.fixture
def moodle_client() -> MoodleClient:
    """A real client whose HTTP layer is replaced per test."""
    client = MoodleClient(
        rest_url="https://moodle.test/moodle40a/webservice/rest/server.php",
        upload_url="https://moodle.test/moodle40a/webservice/upload.php",
        token="test_token",
        lang="ja",
    )
    client._session.post = MagicMock()
    return client


@pytest.fixture
def fake_client(
    sample_user: UserIdentity,
    sample_courses: list[CourseSummary],
    sample_listing: AssignmentListing,
    sample_status: SubmissionStatus,
    sample_handles: list[UploadedFileHandle],
) -> MagicMock:
    """A client double returning parsed sample data."""
    client = MagicMock(spec=MoodleClient)
    client.get_site_info.return_value = sample_user
    client.get_user_courses.return_value = sample_courses
    client.get_assignments.return_value = sample_listing
    client.get_submission_status.return_value = sample_status
    client.upload_file.return_value = sample_handles
    client.save_submission.return_value = []
    return client

"""
Moodle web-service API client.

Handles authentication, request shaping and error handling for the
Moodle REST and upload endpoints. The token is passed via configuration
and never logged.
"""

import logging
import threading
from typing import Any, Iterable, Optional

import requests
from requests.adapters import HTTPAdapter

from config.settings import ConfigurationError, MoodleConfig

from .models import (
    AssignmentListing,
    CourseSummary,
    SubmissionStatus,
    UploadedFileHandle,
    UserIdentity,
)

logger = logging.getLogger(__name__)


class RemoteError(Exception):
    """Raised when the Moodle endpoint fails or returns a malformed response."""

    def __init__(
        self,
        message: str,
        status_code: Optional[int] = None,
        response: Optional[Any] = None,
    ):
        super().__init__(message)
        self.status_code = status_code
        self.response = response


class ClientClosedError(RemoteError):
    """Raised when an operation is issued after the client was closed."""

    def __init__(self):
        super().__init__("Moodle client is closed")


class MoodleClient:
    """
    Client for the Moodle web-service API.

    Handles:
    - Token authentication on every request
    - Form-encoded REST calls with optional standard settings
    - Multipart file upload to the draft area
    - Mapping of Moodle exception payloads onto RemoteError

    Usage:
        client = MoodleClient.from_config(settings.moodle)

        user = client.get_site_info()
        for course in client.get_user_courses(user.id):
            print(course.full_name)

        client.close()
    """

    def __init__(
        self,
        rest_url: str,
        upload_url: str,
        token: str,
        lang: str = "ja",
        timeout: Optional[float] = None,
        pool_maxsize: int = 10,
    ):
        """
        Initialize Moodle client.

        Args:
            rest_url: Full URL of webservice/rest/server.php
            upload_url: Full URL of webservice/upload.php
            token: Web-service token (never logged)
            lang: Language tag sent as moodlewssettinglang
            timeout: Request timeout in seconds, None to wait indefinitely
            pool_maxsize: Connections kept in the pool

        Raises:
            ConfigurationError: If the token is empty
        """
        if not token:
            raise ConfigurationError("MOODLE_TOKEN is required")

        self.rest_url = rest_url
        self.upload_url = upload_url
        self.lang = lang
        self.timeout = timeout
        self._token = token  # Private, never logged

        self._closed = False
        self._close_lock = threading.Lock()

        self._session = requests.Session()
        adapter = HTTPAdapter(pool_connections=1, pool_maxsize=pool_maxsize)
        self._session.mount("https://", adapter)
        self._session.mount("http://", adapter)
        self._session.headers.update({"Accept": "application/json"})

        logger.info(f"Moodle client initialized for {self.rest_url}")

    @classmethod
    def from_config(cls, config: MoodleConfig, **kwargs) -> "MoodleClient":
        return cls(
            rest_url=config.rest_url,
            upload_url=config.upload_url,
            token=config.token,
            lang=config.lang,
            **kwargs,
        )

    def __repr__(self) -> str:
        """Never expose token in repr."""
        return f"MoodleClient(rest_url='{self.rest_url}')"

    @property
    def closed(self) -> bool:
        return self._closed

    def _ensure_open(self) -> None:
        if self._closed:
            raise ClientClosedError()

    def _standard_settings(self) -> dict[str, str]:
        return {
            "moodlewssettingfilter": "true",
            "moodlewssettingfileurl": "true",
            "moodlewssettinglang": self.lang,
        }

    def _post(self, wsfunction: str, params: Optional[dict], settings: bool) -> requests.Response:
        """
        POST a form-encoded web-service call.

        Returns the raw response after checking the HTTP status.
        """
        self._ensure_open()

        data = {
            "moodlewsrestformat": "json",
            "wsfunction": wsfunction,
            "wstoken": self._token,
        }
        data.update(params or {})
        if settings:
            data.update(self._standard_settings())

        logger.debug(f"Calling {wsfunction}")

        try:
            response = self._session.post(self.rest_url, data=data, timeout=self.timeout)
            response.raise_for_status()
            return response

        except requests.exceptions.HTTPError as e:
            status = e.response.status_code if e.response is not None else None
            error_msg = f"Moodle API error in {wsfunction}: {e}"
            logger.error(error_msg)
            raise RemoteError(error_msg, status_code=status) from e

        except requests.exceptions.RequestException as e:
            error_msg = f"Moodle request failed in {wsfunction}: {e}"
            logger.error(error_msg)
            raise RemoteError(error_msg) from e

    @staticmethod
    def _decode(response: requests.Response, operation: str) -> Any:
        """Parse a JSON body and surface Moodle's in-band error payloads."""
        try:
            payload = response.json()
        except ValueError as e:
            error_msg = f"Malformed response from {operation}: {response.text[:200]!r}"
            logger.error(error_msg)
            raise RemoteError(error_msg, status_code=response.status_code) from e

        if isinstance(payload, dict) and ("exception" in payload or "error" in payload):
            message = payload.get("message") or payload.get("error") or "unknown error"
            code = payload.get("errorcode")
            error_msg = f"Moodle API error in {operation}: {message}"
            if code:
                error_msg += f" ({code})"
            logger.error(error_msg)
            raise RemoteError(error_msg, status_code=response.status_code, response=payload)

        return payload

    def call(self, wsfunction: str, params: Optional[dict] = None, settings: bool = False) -> Any:
        """
        Execute a web-service function and return the decoded JSON.

        Args:
            wsfunction: Moodle web-service function name
            params: Function-specific form parameters
            settings: Whether to send the standard filter/fileurl/lang settings

        Raises:
            RemoteError: If the call fails or Moodle reports an exception
            ClientClosedError: If the client was closed
        """
        response = self._post(wsfunction, params, settings)
        return self._decode(response, wsfunction)

    @staticmethod
    def _build(factory, payload: Any, operation: str):
        try:
            return factory(payload)
        except (KeyError, TypeError, ValueError, AttributeError) as e:
            error_msg = f"Unexpected response shape from {operation}: {e}"
            logger.error(error_msg)
            raise RemoteError(error_msg, response=payload) from e

    def get_site_info(self) -> UserIdentity:
        """Fetch the identity of the token's user."""
        operation = "core_webservice_get_site_info"
        payload = self.call(operation)
        return self._build(UserIdentity.from_api_response, payload, operation)

    def get_user_courses(self, user_id: int, return_user_count: bool = False) -> list[CourseSummary]:
        """
        Fetch the courses a user is enrolled in.

        Args:
            user_id: Moodle user ID
            return_user_count: Ask Moodle to include enrolled user counts

        Returns:
            Courses in server order
        """
        operation = "core_enrol_get_users_courses"
        payload = self.call(
            operation,
            {"userid": str(user_id), "returnusercount": "1" if return_user_count else "0"},
            settings=True,
        )
        courses = self._build(
            lambda data: [CourseSummary.from_api_response(c) for c in data],
            payload,
            operation,
        )
        logger.info(f"Found {len(courses)} enrolled courses")
        return courses

    def get_assignments(
        self,
        course_ids: Iterable[int],
        include_not_enrolled_courses: bool = True,
    ) -> AssignmentListing:
        """
        Fetch assignments for a set of courses, grouped by course.

        Args:
            course_ids: Courses to list assignments for
            include_not_enrolled_courses: Include courses the user is not enrolled in
        """
        operation = "mod_assign_get_assignments"
        params = {
            f"courseids[{index}]": str(course_id)
            for index, course_id in enumerate(course_ids)
        }
        params["includenotenrolledcourses"] = "1" if include_not_enrolled_courses else "0"

        payload = self.call(operation, params, settings=True)
        listing = self._build(AssignmentListing.from_api_response, payload, operation)

        for warning in listing.warnings:
            logger.warning(f"{operation} warning: {warning.message} ({warning.warning_code})")
        logger.info(f"Found {len(listing.assignments)} assignments")
        return listing

    def get_submission_status(self, assignment_id: int, user_id: Optional[int] = None) -> SubmissionStatus:
        """
        Fetch the submission status of an assignment.

        Args:
            assignment_id: Assignment instance ID
            user_id: User to query, defaults to the token's user
        """
        operation = "mod_assign_get_submission_status"
        params = {"assignid": str(assignment_id)}
        if user_id is not None:
            params["userid"] = str(user_id)

        payload = self.call(operation, params)
        return self._build(SubmissionStatus.from_api_response, payload, operation)

    def upload_file(self, content: bytes, file_name: str) -> list[UploadedFileHandle]:
        """
        Upload a file into the user's draft area.

        Args:
            content: Raw file bytes
            file_name: Name stored on the server

        Returns:
            Handles of the stored files; empty if the server stored nothing
        """
        self._ensure_open()

        data = {
            "token": self._token,
            "filearea": "draft",
            "itemid": "0",
        }
        files = {"file": (file_name, content, "application/octet-stream")}

        logger.debug(f"Uploading {file_name} ({len(content)} bytes)")

        try:
            response = self._session.post(
                self.upload_url,
                data=data,
                files=files,
                timeout=self.timeout,
            )
            response.raise_for_status()
        except requests.exceptions.HTTPError as e:
            status = e.response.status_code if e.response is not None else None
            error_msg = f"Moodle upload failed: {e}"
            logger.error(error_msg)
            raise RemoteError(error_msg, status_code=status) from e
        except requests.exceptions.RequestException as e:
            error_msg = f"Moodle upload request failed: {e}"
            logger.error(error_msg)
            raise RemoteError(error_msg) from e

        payload = self._decode(response, "upload")
        handles = self._build(
            lambda data: [UploadedFileHandle.from_api_response(h) for h in data],
            payload,
            "upload",
        )
        logger.info(f"Uploaded {file_name}: {len(handles)} file handle(s)")
        return handles

    def save_submission(self, assignment_id: int, item_id: Optional[int] = None) -> list[str]:
        """
        Save the user's submission for an assignment.

        Args:
            assignment_id: Assignment instance ID
            item_id: Draft item ID of previously uploaded files

        Returns:
            Empty list on success, otherwise a one-element list holding
            the raw response text
        """
        params = {"assignmentid": str(assignment_id)}
        if item_id is not None:
            params["plugindata[files_filemanager]"] = str(item_id)

        response = self._post("mod_assign_save_submission", params, settings=True)
        text = response.text
        if text.strip() == "[]":
            logger.info(f"Submission saved for assignment {assignment_id}")
            return []

        logger.warning(f"Save submission for assignment {assignment_id} returned: {text}")
        return [text]

    def close(self) -> None:
        """Close the HTTP session. Later calls raise ClientClosedError."""
        with self._close_lock:
            if self._closed:
                return
            self._closed = True
            self._session.close()
        logger.debug("Moodle client session closed")

    def __enter__(self) -> "MoodleClient":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()

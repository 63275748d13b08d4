"""
Unit tests for the Moodle API client.

The HTTP session is replaced with a mock; requests are inspected for
their form fields and responses are real requests.Response objects.
"""

from unittest.mock import MagicMock

import pytest
import requests

from config.settings import ConfigurationError, MoodleConfig
from moodle_mcp.moodle.client import ClientClosedError, MoodleClient, RemoteError

REST_URL = "https://moodle.test/moodle40a/webservice/rest/server.php"
UPLOAD_URL = "https://moodle.test/moodle40a/webservice/upload.php"


def _sent_form(client: MoodleClient, call_index: int = -1) -> dict:
    return client._session.post.call_args_list[call_index].kwargs["data"]


class TestConstruction:
    """Tests for client construction."""

    def test_empty_token_raises(self):
        """Test that a missing token is a configuration error."""
        with pytest.raises(ConfigurationError, match="MOODLE_TOKEN"):
            MoodleClient(REST_URL, UPLOAD_URL, token="")

    def test_from_config(self):
        """Test building from MoodleConfig."""
        config = MoodleConfig(token="abc", base_url="https://moodle.test/moodle40a", lang="en")
        client = MoodleClient.from_config(config)
        assert client.rest_url == REST_URL
        assert client.upload_url == UPLOAD_URL
        assert client.lang == "en"
        client.close()

    def test_repr_hides_token(self, moodle_client: MoodleClient):
        """Test that the token is never shown."""
        assert "test_token" not in repr(moodle_client)


class TestRequestShaping:
    """Tests for the form fields sent to the REST endpoint."""

    def test_control_parameters(self, moodle_client, make_response, site_info_response):
        """Test format, function and token are always sent."""
        moodle_client._session.post.return_value = make_response(site_info_response)

        moodle_client.get_site_info()

        args, kwargs = moodle_client._session.post.call_args
        assert args[0] == REST_URL
        form = kwargs["data"]
        assert form["moodlewsrestformat"] == "json"
        assert form["wsfunction"] == "core_webservice_get_site_info"
        assert form["wstoken"] == "test_token"

    def test_site_info_omits_standard_settings(self, moodle_client, make_response, site_info_response):
        """Test site info is sent without filter/fileurl/lang settings."""
        moodle_client._session.post.return_value = make_response(site_info_response)

        moodle_client.get_site_info()

        form = _sent_form(moodle_client)
        assert "moodlewssettingfilter" not in form
        assert "moodlewssettingfileurl" not in form
        assert "moodlewssettinglang" not in form

    def test_user_courses_with_standard_settings(self, moodle_client, make_response, courses_response):
        """Test course listing parameters and settings."""
        moodle_client._session.post.return_value = make_response(courses_response)

        courses = moodle_client.get_user_courses(4242)

        form = _sent_form(moodle_client)
        assert form["wsfunction"] == "core_enrol_get_users_courses"
        assert form["userid"] == "4242"
        assert form["returnusercount"] == "0"
        assert form["moodlewssettingfilter"] == "true"
        assert form["moodlewssettingfileurl"] == "true"
        assert form["moodlewssettinglang"] == "ja"
        assert [c.id for c in courses] == [101, 102]

    def test_assignments_indexed_course_ids(self, moodle_client, make_response, assignments_response):
        """Test course ids are sent as courseids[i]."""
        moodle_client._session.post.return_value = make_response(assignments_response)

        listing = moodle_client.get_assignments([101, 205])

        form = _sent_form(moodle_client)
        assert form["courseids[0]"] == "101"
        assert form["courseids[1]"] == "205"
        assert form["includenotenrolledcourses"] == "1"
        assert len(listing.assignments) == 2

    def test_submission_status_optional_user(self, moodle_client, make_response, submission_status_response):
        """Test userid is only sent when given and settings are omitted."""
        moodle_client._session.post.return_value = make_response(submission_status_response)

        moodle_client.get_submission_status(501)
        form = _sent_form(moodle_client)
        assert form["assignid"] == "501"
        assert "userid" not in form
        assert "moodlewssettinglang" not in form

        moodle_client.get_submission_status(501, user_id=7)
        assert _sent_form(moodle_client)["userid"] == "7"


class TestErrorHandling:
    """Tests for mapping failures onto RemoteError."""

    def test_http_error(self, moodle_client, make_response):
        """Test a non-2xx status raises RemoteError with the status code."""
        moodle_client._session.post.return_value = make_response("Server Error", status_code=500)

        with pytest.raises(RemoteError) as exc_info:
            moodle_client.get_site_info()

        assert exc_info.value.status_code == 500

    def test_connection_error(self, moodle_client):
        """Test transport failures raise RemoteError."""
        moodle_client._session.post.side_effect = requests.exceptions.ConnectionError("refused")

        with pytest.raises(RemoteError, match="refused"):
            moodle_client.get_site_info()

    def test_moodle_exception_payload(self, moodle_client, make_response):
        """Test Moodle's in-band exception object becomes RemoteError."""
        moodle_client._session.post.return_value = make_response({
            "exception": "moodle_exception",
            "errorcode": "invalidtoken",
            "message": "Invalid token - token not found",
        })

        with pytest.raises(RemoteError, match="Invalid token") as exc_info:
            moodle_client.get_user_courses(1)

        assert "invalidtoken" in str(exc_info.value)
        assert exc_info.value.response["errorcode"] == "invalidtoken"

    def test_malformed_json(self, moodle_client, make_response):
        """Test a non-JSON body raises RemoteError."""
        moodle_client._session.post.return_value = make_response("<html>oops</html>")

        with pytest.raises(RemoteError, match="Malformed response"):
            moodle_client.get_site_info()

    def test_unexpected_shape(self, moodle_client, make_response):
        """Test a payload missing required keys raises RemoteError."""
        moodle_client._session.post.return_value = make_response({"fullname": "No Id"})

        with pytest.raises(RemoteError, match="Unexpected response shape"):
            moodle_client.get_site_info()


class TestUpload:
    """Tests for the multipart upload call."""

    def test_upload_request(self, moodle_client, make_response, upload_response):
        """Test upload fields and file part."""
        moodle_client._session.post.return_value = make_response(upload_response)

        handles = moodle_client.upload_file(b"%PDF-1.4", "report.pdf")

        args, kwargs = moodle_client._session.post.call_args
        assert args[0] == UPLOAD_URL
        assert kwargs["data"] == {"token": "test_token", "filearea": "draft", "itemid": "0"}
        assert kwargs["files"]["file"] == ("report.pdf", b"%PDF-1.4", "application/octet-stream")
        assert handles[0].item_id == 123456789

    def test_upload_empty_list(self, moodle_client, make_response):
        """Test an empty upload response yields no handles."""
        moodle_client._session.post.return_value = make_response([])

        assert moodle_client.upload_file(b"data", "a.txt") == []

    def test_upload_error_payload(self, moodle_client, make_response):
        """Test the upload endpoint's error object becomes RemoteError."""
        moodle_client._session.post.return_value = make_response({
            "error": "Invalid token",
            "errorcode": "invalidtoken",
        })

        with pytest.raises(RemoteError, match="Invalid token"):
            moodle_client.upload_file(b"data", "a.txt")


class TestSaveSubmission:
    """Tests for save-submission result handling."""

    def test_empty_list_body_is_success(self, moodle_client, make_response):
        """Test a literal [] body means no warnings."""
        moodle_client._session.post.return_value = make_response("[]")

        assert moodle_client.save_submission(501, 123) == []

        form = _sent_form(moodle_client)
        assert form["wsfunction"] == "mod_assign_save_submission"
        assert form["assignmentid"] == "501"
        assert form["plugindata[files_filemanager]"] == "123"
        assert form["moodlewssettingfilter"] == "true"

    def test_whitespace_around_empty_list(self, moodle_client, make_response):
        """Test surrounding whitespace is ignored."""
        moodle_client._session.post.return_value = make_response("  []\n")

        assert moodle_client.save_submission(501, 123) == []

    def test_other_body_is_single_warning(self, moodle_client, make_response):
        """Test any other body is returned verbatim as one warning."""
        body = '[{"item":"assign","itemid":501,"warningcode":"couldnotsavesubmission","message":"Locked"}]'
        moodle_client._session.post.return_value = make_response(body)

        assert moodle_client.save_submission(501, 123) == [body]

    def test_without_item_id(self, moodle_client, make_response):
        """Test the file manager field is omitted without an item id."""
        moodle_client._session.post.return_value = make_response("[]")

        moodle_client.save_submission(501)

        assert "plugindata[files_filemanager]" not in _sent_form(moodle_client)


class TestClose:
    """Tests for client shutdown."""

    def test_operations_after_close_raise(self, moodle_client):
        """Test every call after close raises ClientClosedError."""
        moodle_client.close()

        assert moodle_client.closed is True
        with pytest.raises(ClientClosedError):
            moodle_client.get_site_info()
        with pytest.raises(ClientClosedError):
            moodle_client.upload_file(b"x", "x.txt")
        with pytest.raises(ClientClosedError):
            moodle_client.save_submission(1)
        moodle_client._session.post.assert_not_called()

    def test_close_is_idempotent(self, moodle_client):
        """Test closing twice releases the session once."""
        moodle_client._session.close = MagicMock()

        moodle_client.close()
        moodle_client.close()

        moodle_client._session.close.assert_called_once()

    def test_context_manager(self):
        """Test the client closes on context exit."""
        with MoodleClient(REST_URL, UPLOAD_URL, token="t") as client:
            assert client.closed is False
        assert client.closed is True

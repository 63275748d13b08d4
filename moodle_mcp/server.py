"""
Moodle MCP Server

FastMCP server exposing assignment listing, submission status and file
submission for a Moodle site, addressed by course and assignment name.
"""

import logging
from typing import Optional

from mcp.server import FastMCP
from mcp.server.fastmcp.exceptions import ToolError

from .tools.handlers import ToolHandlers, ToolResult

logger = logging.getLogger(__name__)

INSTRUCTIONS = """Tools for working with Moodle assignments by name.
Courses match on full, short or display name; assignments match on name.
Matching is a case-insensitive substring test and the first match wins."""


def _respond(result: ToolResult) -> str:
    """Return the result text, raising ToolError so failures are flagged isError."""
    if result.is_error:
        raise ToolError(result.text)
    return result.text


def create_server(handlers: ToolHandlers, name: str = "nitech-moodle") -> FastMCP:
    """
    Build the MCP server with the three tools bound to handlers.

    Parameters are declared optional so that a missing value reaches
    the handler and comes back as a readable error.
    """
    mcp = FastMCP(name=name, instructions=INSTRUCTIONS)

    @mcp.tool()
    def get_assignments(course_name: Optional[str] = None) -> str:
        """
        List the assignments of a course.

        Args:
            course_name: Course name to get assignments from

        Returns:
            Assignment names, IDs and dates
        """
        return _respond(handlers.list_assignments(course_name))

    @mcp.tool()
    def get_submission_status(
        course_name: Optional[str] = None,
        assignment_name: Optional[str] = None,
    ) -> str:
        """
        Get the submission status of an assignment.

        Args:
            course_name: Course name
            assignment_name: Assignment name

        Returns:
            Submission state, permissions and submitted files
        """
        return _respond(handlers.get_submission_status(course_name, assignment_name))

    @mcp.tool()
    def submit(
        course_name: Optional[str] = None,
        assignment_name: Optional[str] = None,
        submit_file_path: Optional[str] = None,
    ) -> str:
        """
        Submit a local file to an assignment.

        Args:
            course_name: Course name
            assignment_name: Assignment name
            submit_file_path: Path to the file to submit

        Returns:
            Submission result, including any warnings from Moodle
        """
        return _respond(handlers.submit(course_name, assignment_name, submit_file_path))

    logger.debug(f"MCP server '{name}' created with 3 tools")
    return mcp

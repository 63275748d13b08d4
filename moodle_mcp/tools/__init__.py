"""Tool surface module: session context and operation handlers."""

from .handlers import MissingParameter, ToolHandlers, ToolResult, require_params
from .session import MoodleSession, open_session

__all__ = [
    "ToolHandlers",
    "ToolResult",
    "MissingParameter",
    "require_params",
    "MoodleSession",
    "open_session",
]

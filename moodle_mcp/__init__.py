"""
Moodle Assignment MCP - tools for listing, inspecting and submitting
Moodle assignments by course and assignment name.
"""

__version__ = "0.1.0"

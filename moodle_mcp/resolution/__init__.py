"""Course and assignment name resolution module."""

from .resolver import EntityResolver, NotFound, Resolved, match_assignment, match_course

__all__ = ["EntityResolver", "Resolved", "NotFound", "match_course", "match_assignment"]

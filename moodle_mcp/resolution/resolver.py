"""
Name-to-identifier resolution for courses and assignments.

Callers know courses and assignments by what a person would type
("os1", "midterm"), not by Moodle IDs. Resolution is a plain
case-insensitive substring test; the first record in server order
wins. There is no ranking, so an ambiguous query silently picks the
earliest match.
"""

import logging
from dataclasses import dataclass, field
from typing import Generic, Optional, Sequence, TypeVar, Union

from ..moodle.client import MoodleClient
from ..moodle.models import Assignment, CourseSummary

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass(frozen=True)
class Resolved(Generic[T]):
    """A query matched a record."""
    entity: T


@dataclass(frozen=True)
class NotFound(Generic[T]):
    """
    A query matched nothing.

    Attributes:
        kind: "course" or "assignment"
        query: The text that was searched for
        candidates: Every record of the listing that was searched
    """
    kind: str
    query: str
    candidates: tuple[T, ...] = field(default_factory=tuple)

    @property
    def candidate_names(self) -> list[str]:
        """Names to offer as alternatives, in listing order."""
        names = []
        for candidate in self.candidates:
            if isinstance(candidate, CourseSummary):
                names.append(candidate.full_name)
            else:
                names.append(candidate.name)
        return names


CourseResolution = Union[Resolved[CourseSummary], NotFound[CourseSummary]]
AssignmentResolution = Union[Resolved[Assignment], NotFound[Assignment]]


def _contains(haystack: str, needle: str) -> bool:
    return needle.casefold() in haystack.casefold()


def match_course(courses: Sequence[CourseSummary], query: str) -> Optional[CourseSummary]:
    """
    Find the first course whose full, short or display name contains the query.

    Args:
        courses: Courses in server order
        query: Free-text course name

    Returns:
        The first matching course, or None
    """
    for course in courses:
        if any(_contains(name, query) for name in course.name_fields):
            return course
    return None


def match_assignment(assignments: Sequence[Assignment], query: str) -> Optional[Assignment]:
    """Find the first assignment whose name contains the query."""
    for assignment in assignments:
        if _contains(assignment.name, query):
            return assignment
    return None


class EntityResolver:
    """
    Resolves free-text names against the live Moodle listings.

    Each resolve call issues exactly one listing request; the not-found
    result reuses that same listing for its candidates.
    """

    def __init__(self, client: MoodleClient):
        self.client = client

    def resolve_course(self, user_id: int, query: str) -> CourseResolution:
        """
        Resolve a course name for a user.

        Args:
            user_id: User whose enrolments are searched
            query: Free-text course name

        Returns:
            Resolved with the course, or NotFound listing every enrolled course
        """
        courses = self.client.get_user_courses(user_id)
        course = match_course(courses, query)

        if course is None:
            logger.info(f"No course matches '{query}' among {len(courses)} courses")
            return NotFound(kind="course", query=query, candidates=tuple(courses))

        logger.debug(f"Course '{query}' resolved to {course.full_name} (ID: {course.id})")
        return Resolved(course)

    def resolve_assignment(self, course_id: int, query: str) -> AssignmentResolution:
        """
        Resolve an assignment name within one course.

        Args:
            course_id: Course to search
            query: Free-text assignment name

        Returns:
            Resolved with the assignment, or NotFound listing every assignment
        """
        listing = self.client.get_assignments([course_id])
        assignments = listing.assignments
        assignment = match_assignment(assignments, query)

        if assignment is None:
            logger.info(f"No assignment matches '{query}' in course {course_id}")
            return NotFound(kind="assignment", query=query, candidates=tuple(assignments))

        logger.debug(f"Assignment '{query}' resolved to {assignment.name} (ID: {assignment.id})")
        return Resolved(assignment)

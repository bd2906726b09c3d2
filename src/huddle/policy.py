"""Project access policy."""

from huddle.errors import AuthorizationDenied
from huddle.models import Project


def can_act(user_id: str, project: Project | None) -> bool:
    """Return True iff the user owns the project or is one of its members.

    A missing project never grants access.
    """
    if project is None:
        return False
    return user_id == project.owner_id or user_id in project.member_ids


def ensure_can_act(user_id: str, project: Project | None) -> Project:
    """Return the project, or raise AuthorizationDenied."""
    if project is None or not can_act(user_id, project):
        raise AuthorizationDenied
    return project

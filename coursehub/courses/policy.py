"""
Course authorization policy.

`can_perform` is the only place that decides who may do what to a course.
It never raises and never touches the database: callers fetch the course and
the actor's enrollment first and translate the returned Decision into
Unauthenticated / Forbidden.
"""

from enum import Enum
from typing import Optional

from coursehub.auth.auth_models import Role
from coursehub.courses.models import Action, EnrollmentStatus


class Decision(str, Enum):
    ALLOW = "allow"
    UNAUTHENTICATED = "unauthenticated"
    FORBIDDEN = "forbidden"

    @property
    def allowed(self) -> bool:
        return self is Decision.ALLOW


def _is_owner(actor_id: Optional[str], course: Optional[dict]) -> bool:
    if not course or not actor_id:
        return False
    return str(course.get("instructor")) == str(actor_id)


def _is_enrolled(enrollment: Optional[dict]) -> bool:
    return bool(enrollment)


def _has_completed(enrollment: Optional[dict]) -> bool:
    return bool(enrollment) and enrollment.get("status") == EnrollmentStatus.COMPLETED


def _owner_or_admin(role: Role, actor_id, course, enrollment) -> bool:
    if role is Role.ADMIN:
        return True
    return role is Role.INSTRUCTOR and _is_owner(actor_id, course)


# action -> rule(role, actor_id, course, enrollment) for authenticated actors
RULES = {
    Action.CREATE: lambda role, actor_id, course, enr: role in (Role.INSTRUCTOR, Role.ADMIN),
    Action.READ: lambda role, actor_id, course, enr: True,
    Action.UPDATE: _owner_or_admin,
    Action.DELETE: _owner_or_admin,
    Action.ENROLL: lambda role, actor_id, course, enr: True,
    Action.REVIEW: lambda role, actor_id, course, enr: _is_enrolled(enr),
    Action.DOWNLOAD_CERTIFICATE: lambda role, actor_id, course, enr: _has_completed(enr),
    Action.TRACK_PROGRESS: lambda role, actor_id, course, enr: _is_enrolled(enr),
    Action.ADMINISTER: lambda role, actor_id, course, enr: role is Role.ADMIN,
}


def can_perform(
    actor_role: Optional[Role],
    actor_id: Optional[str],
    course: Optional[dict],
    action: Action,
    enrollment: Optional[dict] = None,
) -> Decision:
    """
    Decide whether an actor may perform `action` on `course`.

    Args:
        actor_role: Role of the actor, None when the request is unauthenticated
        actor_id: User id of the actor
        course: Course document (None for create or when not yet fetched)
        action: Action being attempted
        enrollment: The actor's enrollment in `course`, if any

    Returns:
        Decision.ALLOW, Decision.UNAUTHENTICATED or Decision.FORBIDDEN
    """
    action = Action(action)

    if action is Action.READ:
        return Decision.ALLOW

    if actor_role is None or not actor_id:
        return Decision.UNAUTHENTICATED

    rule = RULES[action]
    if rule(Role(actor_role), actor_id, course, enrollment):
        return Decision.ALLOW
    return Decision.FORBIDDEN

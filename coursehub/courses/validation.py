"""
Course, review and progress payload validation.

Field rules live on the pydantic request schemas in models.py. These helpers
run them after the caller has been authorized and turn pydantic errors into
ValidationFailed listing every bad field at once. The status transition is
the one check that needs the stored course.
"""

from typing import Optional, Type

from pydantic import BaseModel, ValidationError

from coursehub.courses.models import (
    CourseCreate, CourseStatus, CourseUpdate, ProgressUpdate, ReviewCreate, STATUS_TRANSITIONS
)
from coursehub.errors import ValidationFailed, field_errors


def parse_payload(schema: Type[BaseModel], payload) -> BaseModel:
    try:
        return schema.parse_obj(payload)
    except ValidationError as e:
        raise ValidationFailed(field_errors(e.errors()))


def check_status_transition(current_status: Optional[str], status: CourseStatus) -> str:
    status = CourseStatus(status)
    if current_status is None:
        return status.value

    current = CourseStatus(current_status)
    if status is not current and status not in STATUS_TRANSITIONS[current]:
        raise ValidationFailed([{
            "field": "status",
            "message": f"Cannot move course from {current.value} to {status.value}",
        }])
    return status.value


def validate_course_payload(payload, is_create: bool, current_status: Optional[str] = None) -> dict:
    """
    Validate a proposed course payload before create or update.

    On create, title and description are required and price defaults to 0;
    status is not accepted (new courses start as draft).
    On update, only supplied non-null fields are returned. Identity fields
    (_id, instructor) and unknown keys are dropped without error.

    Returns:
        dict: normalized fields ready for persistence
    Raises:
        ValidationFailed: with one entry per offending field
    """
    if is_create:
        return parse_payload(CourseCreate, payload).dict()

    updates = parse_payload(CourseUpdate, payload)
    fields = {k: v for k, v in updates.dict(exclude_unset=True).items() if v is not None}
    if "status" in fields:
        fields["status"] = check_status_transition(current_status, fields["status"])
    return fields


def validate_review_payload(payload) -> dict:
    """Rating must be an integer between RATING_MIN and RATING_MAX"""
    return parse_payload(ReviewCreate, payload).dict()


def validate_progress_payload(payload) -> dict:
    return parse_payload(ProgressUpdate, payload).dict()

"""
Instructor API Router
An instructor's own courses, in every status
"""

from fastapi import APIRouter, Body, Depends
from typing import Any, Optional

from coursehub.auth.auth_models import Actor
from coursehub.courses.course_service import CourseService
from coursehub.dependencies import get_course_service, get_current_actor

router = APIRouter(prefix="/api/instructor", tags=["Instructor"])


@router.get("/courses")
async def my_courses(
    skip: int = 0,
    limit: int = 50,
    actor: Optional[Actor] = Depends(get_current_actor),
    service: CourseService = Depends(get_course_service)
):
    courses = await service.list_instructor_courses(actor, skip, limit)
    return {"success": True, "data": courses, "count": len(courses)}


@router.post("/courses", status_code=201)
async def create_my_course(
    payload: Any = Body(None),
    actor: Optional[Actor] = Depends(get_current_actor),
    service: CourseService = Depends(get_course_service)
):
    """Same rules as POST /api/courses; the caller becomes the owner"""
    course = await service.create_course(actor, payload)
    return {"success": True, "data": course}

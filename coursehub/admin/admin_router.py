"""
Admin API Router
Course oversight, role management and the audit trail
"""

from fastapi import APIRouter, Depends, Query
from typing import Optional

from coursehub.auth.auth_models import Actor, RoleChangeRequest
from coursehub.courses.course_service import CourseService
from coursehub.dependencies import get_course_service, get_current_actor

router = APIRouter(prefix="/api/admin", tags=["Admin"])


@router.get("/courses")
async def admin_list_courses(
    status: Optional[str] = None,
    instructor: Optional[str] = None,
    search: Optional[str] = None,
    skip: int = 0,
    limit: int = 100,
    actor: Optional[Actor] = Depends(get_current_actor),
    service: CourseService = Depends(get_course_service)
):
    """All courses in every status, for the admin console"""
    filters = {"status": status, "instructor": instructor, "search": search}
    courses = await service.admin_list_courses(actor, filters, skip, limit)
    return {"success": True, "data": courses, "count": len(courses)}


@router.put("/users/{user_id}/role")
async def change_user_role(
    user_id: str,
    data: RoleChangeRequest,
    actor: Optional[Actor] = Depends(get_current_actor),
    service: CourseService = Depends(get_course_service)
):
    user = await service.change_user_role(actor, user_id, data.role)
    return {"success": True, "data": user}


@router.get("/audit")
async def audit_trail(
    target_type: Optional[str] = None,
    target_id: Optional[str] = None,
    limit: int = Query(100, ge=1, le=500),
    actor: Optional[Actor] = Depends(get_current_actor),
    service: CourseService = Depends(get_course_service)
):
    logs = await service.audit_trail(actor, target_type, target_id, limit)
    return {"success": True, "data": logs, "count": len(logs)}

from fastapi import APIRouter, Body, Depends, Response
from typing import Any, Optional

from coursehub.auth.auth_models import Actor
from coursehub.courses.course_service import CourseService
from coursehub.dependencies import get_course_service, get_current_actor

router = APIRouter(prefix="/api/courses", tags=["Course Management"])

# ==================== COURSE CRUD ====================

@router.get("")
async def list_courses_endpoint(
    category: Optional[str] = None,
    level: Optional[str] = None,
    status: Optional[str] = None,
    instructor: Optional[str] = None,
    search: Optional[str] = None,
    skip: int = 0,
    limit: int = 50,
    service: CourseService = Depends(get_course_service)
):
    """List courses with filters (public)"""
    filters = {
        "category": category,
        "level": level,
        "status": status,
        "instructor": instructor,
        "search": search,
    }
    courses = await service.list_courses(filters, skip, limit)
    return {
        "success": True,
        "data": courses,
        "count": len(courses),
        "skip": skip,
        "limit": limit
    }

@router.post("", status_code=201)
async def create_course_endpoint(
    payload: Any = Body(None),
    actor: Optional[Actor] = Depends(get_current_actor),
    service: CourseService = Depends(get_course_service)
):
    """Create new course (admin/instructor only)"""
    course = await service.create_course(actor, payload)
    return {"success": True, "data": course}

@router.get("/enrolled")
async def my_enrollments_endpoint(
    actor: Optional[Actor] = Depends(get_current_actor),
    service: CourseService = Depends(get_course_service)
):
    """Courses the current user is enrolled in"""
    enrollments = await service.list_enrollments(actor)
    return {"success": True, "data": enrollments, "count": len(enrollments)}

@router.get("/{course_id}")
async def get_course_endpoint(
    course_id: str,
    service: CourseService = Depends(get_course_service)
):
    """Get course details"""
    course = await service.get_course_by_id(course_id)
    return {"success": True, "data": course}

@router.put("/{course_id}")
async def update_course_endpoint(
    course_id: str,
    payload: Any = Body(None),
    actor: Optional[Actor] = Depends(get_current_actor),
    service: CourseService = Depends(get_course_service)
):
    """Update course (owning instructor or admin)"""
    course = await service.update_course(actor, course_id, payload)
    return {"success": True, "data": course}

@router.delete("/{course_id}")
async def delete_course_endpoint(
    course_id: str,
    actor: Optional[Actor] = Depends(get_current_actor),
    service: CourseService = Depends(get_course_service)
):
    """Delete course with its enrollments and reviews"""
    deleted = await service.delete_course(actor, course_id)
    return {"success": True, "data": deleted, "message": "Course deleted"}

# ==================== ENROLLMENT ====================

@router.post("/{course_id}/enroll", status_code=201)
async def enroll_endpoint(
    course_id: str,
    actor: Optional[Actor] = Depends(get_current_actor),
    service: CourseService = Depends(get_course_service)
):
    enrollment = await service.enroll_course(actor, course_id)
    return {"success": True, "data": enrollment, "message": "Enrolled successfully"}

@router.put("/{course_id}/progress")
async def progress_endpoint(
    course_id: str,
    payload: Any = Body(None),
    actor: Optional[Actor] = Depends(get_current_actor),
    service: CourseService = Depends(get_course_service)
):
    """Record progress; 100 completes the course"""
    enrollment = await service.update_progress(actor, course_id, payload)
    return {"success": True, "data": enrollment}

# ==================== REVIEWS ====================

@router.post("/{course_id}/reviews", status_code=201)
async def review_endpoint(
    course_id: str,
    response: Response,
    payload: Any = Body(None),
    actor: Optional[Actor] = Depends(get_current_actor),
    service: CourseService = Depends(get_course_service)
):
    """Add a review, or replace the one this user already left"""
    review, created = await service.review_course(actor, course_id, payload)
    if not created:
        response.status_code = 200
    return {
        "success": True,
        "data": review,
        "message": "Review added" if created else "Review updated"
    }

@router.get("/{course_id}/reviews")
async def list_reviews_endpoint(
    course_id: str,
    service: CourseService = Depends(get_course_service)
):
    reviews = await service.list_reviews(course_id)
    return {"success": True, "data": reviews, "count": len(reviews)}

# ==================== CERTIFICATE ====================

@router.get("/{course_id}/certificate")
async def certificate_endpoint(
    course_id: str,
    actor: Optional[Actor] = Depends(get_current_actor),
    service: CourseService = Depends(get_course_service)
):
    certificate = await service.download_certificate(actor, course_id)
    return Response(
        content=certificate["content"],
        media_type="image/png",
        headers={"Content-Disposition": f'attachment; filename="{certificate["filename"]}"'}
    )

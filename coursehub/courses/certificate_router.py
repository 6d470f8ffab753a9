from fastapi import APIRouter, Depends

from coursehub.courses.course_service import CourseService
from coursehub.dependencies import get_course_service

router = APIRouter(prefix="/api/certificates", tags=["Certificates"])


@router.get("/verify/{certificate_id}")
async def verify_certificate(
    certificate_id: str,
    service: CourseService = Depends(get_course_service)
):
    """Public check that a certificate id belongs to a completed enrollment"""
    result = await service.verify_certificate(certificate_id)
    return {"success": True, "data": result}

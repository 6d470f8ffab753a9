from datetime import datetime
from typing import List, Optional, Tuple
import logging
import secrets

from pymongo.errors import DuplicateKeyError, PyMongoError
from starlette.concurrency import run_in_threadpool

from coursehub.auth.auth_models import Actor, Role, public_user
from coursehub.courses.certificate import generate_certificate_image
from coursehub.courses.models import (
    Action, AuditLog, Course, CourseStatus, Enrollment, EnrollmentStatus
)
from coursehub.courses.policy import Decision, can_perform
from coursehub.courses.validation import (
    validate_course_payload, validate_progress_payload, validate_review_payload
)
from coursehub.errors import Conflict, Forbidden, NotFound, Unauthenticated

logger = logging.getLogger(__name__)

MAX_PAGE_SIZE = 100

DENIAL_MESSAGES = {
    Action.CREATE: "Only instructors and admins can create courses",
    Action.UPDATE: "Only the course instructor or an admin can update this course",
    Action.DELETE: "Only the course instructor or an admin can delete this course",
    Action.REVIEW: "Enroll in this course before reviewing it",
    Action.DOWNLOAD_CERTIFICATE: "Complete this course to download its certificate",
    Action.TRACK_PROGRESS: "Not enrolled in this course. Please enroll first.",
    Action.ADMINISTER: "Admin privileges required",
}


def generate_id(prefix: str) -> str:
    """Generate unique ID with prefix"""
    return f"{prefix}_{secrets.token_hex(6).upper()}"


class CourseService:
    """
    Course use cases. Each call checks the policy before touching the store;
    the store is the only state the service holds.
    """

    def __init__(self, store):
        self.store = store

    # ==================== HELPERS ====================

    def _authorize(self, actor: Optional[Actor], course: Optional[dict], action: Action,
                   enrollment: Optional[dict] = None):
        decision = can_perform(
            actor.role if actor else None,
            actor.id if actor else None,
            course,
            action,
            enrollment,
        )
        if decision is Decision.UNAUTHENTICATED:
            raise Unauthenticated()
        if decision is Decision.FORBIDDEN:
            logger.info(f"Denied {action.value} for {actor!r} on course {course and course.get('_id')}")
            raise Forbidden(DENIAL_MESSAGES.get(action))

    def _require_authenticated(self, actor: Optional[Actor], action: Action):
        # Credentials are checked before the course lookup
        if actor is None:
            self._authorize(None, None, action)

    async def _load_course(self, course_id: str) -> dict:
        course = await self.store.get_course(course_id)
        if not course:
            raise NotFound("Course not found")
        return course

    async def _audit(self, actor: Actor, action: str, target_type: str, target_id: str, metadata: dict = None):
        entry = AuditLog(
            actor_user_id=actor.id,
            role=actor.role.value,
            action=action,
            target_type=target_type,
            target_id=target_id,
            metadata=metadata or {},
        )
        try:
            await self.store.log_audit(entry.dict())
        except PyMongoError as e:
            # The mutation is already committed
            logger.warning(f"Audit write failed for {action} on {target_type} {target_id}: {e}")

    # ==================== COURSE CRUD ====================

    async def create_course(self, actor: Optional[Actor], payload) -> dict:
        self._authorize(actor, None, Action.CREATE)
        fields = validate_course_payload(payload, is_create=True)

        course = Course(**fields, instructor=actor.id).dict()
        course["status"] = CourseStatus.DRAFT.value
        course = await self.store.insert_course(course)

        await self._audit(actor, "create_course", "course", course["_id"], {"title": course["title"]})
        logger.info(f"Course {course['_id']} created by {actor!r}")
        return course

    async def list_courses(self, filters: Optional[dict] = None, skip: int = 0, limit: int = 50) -> List[dict]:
        skip = max(skip, 0)
        limit = min(max(limit, 1), MAX_PAGE_SIZE)
        return await self.store.list_courses(filters or {}, skip, limit)

    async def list_instructor_courses(self, actor: Optional[Actor], skip: int = 0, limit: int = 50) -> List[dict]:
        """Courses owned by the actor, in every status"""
        self._authorize(actor, None, Action.CREATE)
        return await self.list_courses({"instructor": actor.id}, skip, limit)

    async def get_course_by_id(self, course_id: str) -> dict:
        return await self._load_course(course_id)

    async def update_course(self, actor: Optional[Actor], course_id: str, payload) -> dict:
        self._require_authenticated(actor, Action.UPDATE)
        course = await self._load_course(course_id)
        self._authorize(actor, course, Action.UPDATE)

        fields = validate_course_payload(payload, is_create=False, current_status=course.get("status"))
        now = datetime.utcnow()
        if fields.get("status") == CourseStatus.PUBLISHED and not course.get("published_at"):
            fields["published_at"] = now
        fields["updated_at"] = now

        updated = await self.store.update_course(course_id, fields)
        if not updated:
            raise NotFound("Course not found")

        await self._audit(actor, "update_course", "course", course_id,
                          {k: v for k, v in fields.items() if k not in ("updated_at", "published_at")})
        return updated

    async def delete_course(self, actor: Optional[Actor], course_id: str) -> dict:
        self._require_authenticated(actor, Action.DELETE)
        course = await self._load_course(course_id)
        self._authorize(actor, course, Action.DELETE)

        if not await self.store.delete_course(course_id):
            raise NotFound("Course not found")

        await self._audit(actor, "delete_course", "course", course_id, {"title": course.get("title")})
        logger.info(f"Course {course_id} deleted by {actor!r}")
        return {"_id": course_id}

    # ==================== ENROLLMENT ====================

    async def enroll_course(self, actor: Optional[Actor], course_id: str) -> dict:
        self._require_authenticated(actor, Action.ENROLL)
        course = await self._load_course(course_id)
        self._authorize(actor, course, Action.ENROLL)

        enrollment = Enrollment(
            enrollment_id=generate_id("ENR"),
            course_id=course["_id"],
            user_id=actor.id,
            certificate_id=generate_id("CERT"),
        ).dict()
        enrollment["status"] = EnrollmentStatus.ACTIVE.value

        try:
            enrollment = await self.store.insert_enrollment(enrollment)
        except DuplicateKeyError:
            raise Conflict("Already enrolled in this course")

        logger.info(f"{actor!r} enrolled in course {course_id}")
        return enrollment

    async def list_enrollments(self, actor: Optional[Actor]) -> List[dict]:
        """Enrollments of the actor, each with a short course summary"""
        self._require_authenticated(actor, Action.ENROLL)
        enrollments = await self.store.list_user_enrollments(actor.id)
        courses = await self.store.get_courses_by_ids([enr["course_id"] for enr in enrollments])
        by_id = {c["_id"]: c for c in courses}

        result = []
        for enr in enrollments:
            course = by_id.get(enr["course_id"])
            if not course:
                continue
            result.append({
                **enr,
                "course": {
                    "_id": course["_id"],
                    "title": course.get("title"),
                    "thumbnail": course.get("thumbnail"),
                    "duration": course.get("duration"),
                    "instructor": course.get("instructor"),
                },
            })
        return result

    async def update_progress(self, actor: Optional[Actor], course_id: str, payload) -> dict:
        self._require_authenticated(actor, Action.TRACK_PROGRESS)
        course = await self._load_course(course_id)
        enrollment = await self.store.get_enrollment(course["_id"], actor.id)
        self._authorize(actor, course, Action.TRACK_PROGRESS, enrollment)

        fields = validate_progress_payload(payload)
        if enrollment.get("status") == EnrollmentStatus.COMPLETED:
            return enrollment

        updates = {"progress": fields["progress"]}
        if fields["progress"] >= 100:
            updates["status"] = EnrollmentStatus.COMPLETED.value
            updates["completed_at"] = datetime.utcnow()
            logger.info(f"{actor!r} completed course {course_id}")

        return await self.store.update_enrollment(course["_id"], actor.id, updates)

    # ==================== REVIEWS ====================

    async def review_course(self, actor: Optional[Actor], course_id: str, payload) -> Tuple[dict, bool]:
        """Returns (review, created); a second review by the same user replaces the first"""
        self._require_authenticated(actor, Action.REVIEW)
        course = await self._load_course(course_id)
        enrollment = await self.store.get_enrollment(course["_id"], actor.id)
        self._authorize(actor, course, Action.REVIEW, enrollment)

        fields = validate_review_payload(payload)
        fields["user_name"] = actor.name

        review, created = await self.store.upsert_review(course["_id"], actor.id, fields)
        await self.store.refresh_course_rating(course["_id"])
        return review, created

    async def list_reviews(self, course_id: str) -> List[dict]:
        course = await self._load_course(course_id)
        return await self.store.list_reviews(course["_id"])

    # ==================== CERTIFICATES ====================

    async def download_certificate(self, actor: Optional[Actor], course_id: str) -> dict:
        self._require_authenticated(actor, Action.DOWNLOAD_CERTIFICATE)
        course = await self._load_course(course_id)
        enrollment = await self.store.get_enrollment(course["_id"], actor.id)
        self._authorize(actor, course, Action.DOWNLOAD_CERTIFICATE, enrollment)

        completion_date = enrollment.get("completed_at") or datetime.utcnow()
        content = await run_in_threadpool(
            generate_certificate_image,
            actor.name or actor.email,
            course["title"],
            completion_date,
            enrollment["certificate_id"],
        )
        return {
            "certificate_id": enrollment["certificate_id"],
            "filename": f"certificate_{enrollment['certificate_id']}.png",
            "content": content,
        }

    async def verify_certificate(self, certificate_id: str) -> dict:
        enrollment = await self.store.get_enrollment_by_certificate(certificate_id)
        if not enrollment or enrollment.get("status") != EnrollmentStatus.COMPLETED:
            return {"valid": False, "certificate_id": certificate_id, "message": "Certificate not found"}

        course = await self.store.get_course(enrollment["course_id"])
        user = await self.store.get_user(enrollment["user_id"])
        return {
            "valid": True,
            "certificate_id": certificate_id,
            "issued_to": user.get("name") if user else None,
            "course_id": enrollment["course_id"],
            "course_title": course.get("title") if course else None,
            "completed_at": enrollment.get("completed_at"),
            "message": "Certificate is valid",
        }

    # ==================== ADMIN ====================

    async def admin_list_courses(self, actor: Optional[Actor], filters: Optional[dict] = None,
                                 skip: int = 0, limit: int = 50) -> List[dict]:
        self._authorize(actor, None, Action.ADMINISTER)
        return await self.list_courses(filters, skip, limit)

    async def change_user_role(self, actor: Optional[Actor], user_id: str, role: Role) -> dict:
        self._authorize(actor, None, Action.ADMINISTER)
        user = await self.store.set_user_role(user_id, Role(role).value)
        if not user:
            raise NotFound("User not found")

        await self._audit(actor, "change_role", "user", user_id, {"role": Role(role).value})
        logger.info(f"{actor!r} changed role of user {user_id} to {Role(role).value}")
        return public_user(user)

    async def audit_trail(self, actor: Optional[Actor], target_type: str = None,
                          target_id: str = None, limit: int = 100) -> List[dict]:
        self._authorize(actor, None, Action.ADMINISTER)
        return await self.store.get_audit_trail(target_type, target_id, min(max(limit, 1), 500))

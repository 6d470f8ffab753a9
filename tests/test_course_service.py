"""
Tests for CourseService against the in-memory store.

These tests focus on:
- Who may create, update, delete, enroll, review and download certificates
- Unauthenticated vs Forbidden outcomes
- One enrollment and one review per user per course
- Cascading delete and course status lifecycle
"""

import unittest

from fakes import InMemoryCourseStore
from pymongo.errors import AutoReconnect

from coursehub.auth.auth_models import Actor, Role
from coursehub.courses.course_service import CourseService
from coursehub.errors import Conflict, Forbidden, NotFound, Unauthenticated, ValidationFailed

COURSE_DATA = {
    "title": "Test Course",
    "description": "A test course description",
    "category": "Technology",
    "level": "Beginner",
    "price": 999,
    "duration": "4 weeks",
    "thumbnail": "https://example.com/thumbnail.jpg",
}


class CourseServiceTestCase(unittest.IsolatedAsyncioTestCase):
    async def asyncSetUp(self) -> None:
        self.store = InMemoryCourseStore()
        self.service = CourseService(self.store)
        self.admin = await self._make_actor("Test Admin", Role.ADMIN)
        self.instructor = await self._make_actor("Test Instructor", Role.INSTRUCTOR)
        self.other_instructor = await self._make_actor("Other Instructor", Role.INSTRUCTOR)
        self.student = await self._make_actor("Test Student", Role.STUDENT)

    async def _make_actor(self, name: str, role: Role) -> Actor:
        user = await self.store.insert_user({
            "name": name,
            "email": f"{role.value}_{len(self.store.users)}@test.com",
            "password_hash": "x",
            "role": role.value,
            "is_active": True,
        })
        return Actor.from_user(user)

    async def _create_course(self, actor=None, **overrides) -> dict:
        return await self.service.create_course(actor or self.instructor, {**COURSE_DATA, **overrides})


class TestCreateAndRead(CourseServiceTestCase):
    async def test_instructor_creates_draft_course_they_own(self) -> None:
        course = await self._create_course()
        self.assertEqual(course["instructor"], self.instructor.id)
        self.assertEqual(course["status"], "draft")
        self.assertEqual(course["stats"]["enrollments"], 0)
        self.assertTrue(course["_id"])

    async def test_admin_can_create(self) -> None:
        course = await self._create_course(self.admin)
        self.assertEqual(course["instructor"], self.admin.id)

    async def test_student_is_forbidden(self) -> None:
        with self.assertRaises(Forbidden):
            await self._create_course(self.student)
        self.assertEqual(self.store.courses, {})

    async def test_anonymous_is_unauthenticated(self) -> None:
        with self.assertRaises(Unauthenticated):
            await self.service.create_course(None, dict(COURSE_DATA))

    async def test_create_then_get_round_trip(self) -> None:
        created = await self._create_course(price=1234.5)
        fetched = await self.service.get_course_by_id(created["_id"])
        self.assertEqual(fetched["title"], "Test Course")
        self.assertEqual(fetched["duration"], "4 weeks")
        self.assertEqual(fetched["price"], 1234.5)

    async def test_missing_title_and_description(self) -> None:
        with self.assertRaises(ValidationFailed) as ctx:
            await self.service.create_course(self.instructor, {"price": 5})
        self.assertEqual(sorted(ctx.exception.fields), ["description", "title"])

    async def test_get_unknown_or_malformed_id(self) -> None:
        with self.assertRaises(NotFound):
            await self.service.get_course_by_id("64c000000000000000000099")
        with self.assertRaises(NotFound):
            await self.service.get_course_by_id("not-an-id")

    async def test_list_filters(self) -> None:
        await self._create_course(title="Python Basics", category="Programming")
        await self._create_course(title="Watercolor", category="Art")
        courses = await self.service.list_courses({"category": "Art"})
        self.assertEqual([c["title"] for c in courses], ["Watercolor"])
        courses = await self.service.list_courses({"search": "python"})
        self.assertEqual([c["title"] for c in courses], ["Python Basics"])

    async def test_instructor_lists_only_own_courses(self) -> None:
        mine = await self._create_course(title="Mine")
        await self._create_course(self.other_instructor, title="Theirs")
        courses = await self.service.list_instructor_courses(self.instructor)
        self.assertEqual([c["_id"] for c in courses], [mine["_id"]])

        with self.assertRaises(Forbidden):
            await self.service.list_instructor_courses(self.student)
        with self.assertRaises(Unauthenticated):
            await self.service.list_instructor_courses(None)


class TestUpdateAndDelete(CourseServiceTestCase):
    async def test_admin_updates_any_course(self) -> None:
        course = await self._create_course()
        updated = await self.service.update_course(self.admin, course["_id"], {"price": 1999})
        self.assertEqual(updated["price"], 1999)
        self.assertEqual(updated["title"], "Test Course")

    async def test_other_instructor_is_forbidden(self) -> None:
        course = await self._create_course()
        with self.assertRaises(Forbidden):
            await self.service.update_course(self.other_instructor, course["_id"], {"price": 1})
        with self.assertRaises(Forbidden):
            await self.service.delete_course(self.other_instructor, course["_id"])

    async def test_identity_fields_are_ignored(self) -> None:
        course = await self._create_course()
        updated = await self.service.update_course(
            self.instructor, course["_id"], {"instructor": self.student.id, "_id": "x", "title": "Renamed"}
        )
        self.assertEqual(updated["instructor"], self.instructor.id)
        self.assertEqual(updated["_id"], course["_id"])
        self.assertEqual(updated["title"], "Renamed")

    async def test_unauthenticated_wins_over_not_found(self) -> None:
        with self.assertRaises(Unauthenticated):
            await self.service.update_course(None, "64c000000000000000000099", {"price": 1})
        with self.assertRaises(Unauthenticated):
            await self.service.delete_course(None, "64c000000000000000000099")

    async def test_update_missing_course(self) -> None:
        with self.assertRaises(NotFound):
            await self.service.update_course(self.admin, "64c000000000000000000099", {"price": 1})

    async def test_publish_sets_published_at_and_blocks_going_back(self) -> None:
        course = await self._create_course()
        published = await self.service.update_course(self.instructor, course["_id"], {"status": "published"})
        self.assertEqual(published["status"], "published")
        self.assertIsNotNone(published["published_at"])

        with self.assertRaises(ValidationFailed) as ctx:
            await self.service.update_course(self.instructor, course["_id"], {"status": "draft"})
        self.assertEqual(ctx.exception.fields, ["status"])

    async def test_delete_removes_enrollments_and_reviews(self) -> None:
        course = await self._create_course()
        await self.service.enroll_course(self.student, course["_id"])
        await self.service.review_course(self.student, course["_id"], {"rating": 4})

        result = await self.service.delete_course(self.instructor, course["_id"])
        self.assertEqual(result, {"_id": course["_id"]})
        self.assertEqual(self.store.enrollments, {})
        self.assertEqual(self.store.reviews, {})
        with self.assertRaises(NotFound):
            await self.service.get_course_by_id(course["_id"])

    async def test_audit_failure_does_not_fail_the_mutation(self) -> None:
        self.store.audit_fail_with = AutoReconnect("connection reset")
        course = await self._create_course()
        self.assertIn(course["_id"], self.store.courses)
        deleted = await self.service.delete_course(self.instructor, course["_id"])
        self.assertEqual(deleted, {"_id": course["_id"]})
        self.assertEqual(self.store.audit_logs, [])

    async def test_mutations_are_audited(self) -> None:
        course = await self._create_course()
        await self.service.update_course(self.admin, course["_id"], {"price": 5})
        actions = [e["action"] for e in self.store.audit_logs]
        self.assertEqual(actions, ["create_course", "update_course"])
        self.assertEqual(self.store.audit_logs[1]["actor_user_id"], self.admin.id)


class TestEnrollment(CourseServiceTestCase):
    async def test_second_enrollment_conflicts(self) -> None:
        course = await self._create_course()
        enrollment = await self.service.enroll_course(self.student, course["_id"])
        self.assertEqual(enrollment["status"], "active")
        self.assertTrue(enrollment["certificate_id"].startswith("CERT_"))

        with self.assertRaises(Conflict):
            await self.service.enroll_course(self.student, course["_id"])
        self.assertEqual(len(self.store.enrollments), 1)
        self.assertEqual(self.store.courses[course["_id"]]["stats"]["enrollments"], 1)

    async def test_list_enrollments_skips_deleted_courses(self) -> None:
        kept = await self._create_course(title="Kept")
        dropped = await self._create_course(title="Dropped")
        for course in (kept, dropped):
            await self.service.enroll_course(self.student, course["_id"])
        del self.store.courses[dropped["_id"]]

        enrollments = await self.service.list_enrollments(self.student)
        self.assertEqual([e["course"]["title"] for e in enrollments], ["Kept"])

    async def test_enroll_missing_course(self) -> None:
        with self.assertRaises(NotFound):
            await self.service.enroll_course(self.student, "64c000000000000000000099")

    async def test_list_enrollments_includes_course_summary(self) -> None:
        course = await self._create_course()
        await self.service.enroll_course(self.student, course["_id"])
        enrollments = await self.service.list_enrollments(self.student)
        self.assertEqual(len(enrollments), 1)
        self.assertEqual(enrollments[0]["course"]["title"], "Test Course")

    async def test_progress_requires_enrollment(self) -> None:
        course = await self._create_course()
        with self.assertRaises(Forbidden):
            await self.service.update_progress(self.student, course["_id"], {"progress": 50})

    async def test_full_progress_completes_and_stays_completed(self) -> None:
        course = await self._create_course()
        await self.service.enroll_course(self.student, course["_id"])
        done = await self.service.update_progress(self.student, course["_id"], {"progress": 100})
        self.assertEqual(done["status"], "completed")
        self.assertIsNotNone(done["completed_at"])

        again = await self.service.update_progress(self.student, course["_id"], {"progress": 10})
        self.assertEqual(again["status"], "completed")
        self.assertEqual(again["progress"], 100)


class TestReviews(CourseServiceTestCase):
    async def test_review_requires_enrollment(self) -> None:
        course = await self._create_course()
        with self.assertRaises(Forbidden):
            await self.service.review_course(self.student, course["_id"], {"rating": 5})

    async def test_second_review_replaces_first(self) -> None:
        course = await self._create_course()
        await self.service.enroll_course(self.student, course["_id"])

        review, created = await self.service.review_course(self.student, course["_id"], {"rating": 2})
        self.assertTrue(created)
        review, created = await self.service.review_course(
            self.student, course["_id"], {"rating": 5, "comment": "Better now"}
        )
        self.assertFalse(created)
        self.assertEqual(review["rating"], 5)
        self.assertEqual(review["user_name"], "Test Student")

        reviews = await self.service.list_reviews(course["_id"])
        self.assertEqual(len(reviews), 1)
        stats = self.store.courses[course["_id"]]["stats"]
        self.assertEqual(stats["reviews"], 1)
        self.assertEqual(stats["avg_rating"], 5)

    async def test_average_over_reviewers(self) -> None:
        course = await self._create_course()
        for actor, rating in ((self.student, 4), (self.other_instructor, 5)):
            await self.service.enroll_course(actor, course["_id"])
            await self.service.review_course(actor, course["_id"], {"rating": rating})
        self.assertEqual(self.store.courses[course["_id"]]["stats"]["avg_rating"], 4.5)

    async def test_invalid_rating(self) -> None:
        course = await self._create_course()
        await self.service.enroll_course(self.student, course["_id"])
        with self.assertRaises(ValidationFailed):
            await self.service.review_course(self.student, course["_id"], {"rating": 7})


class TestCertificates(CourseServiceTestCase):
    async def test_certificate_needs_completion(self) -> None:
        course = await self._create_course()
        with self.assertRaises(Forbidden):
            await self.service.download_certificate(self.student, course["_id"])

        enrollment = await self.service.enroll_course(self.student, course["_id"])
        with self.assertRaises(Forbidden):
            await self.service.download_certificate(self.student, course["_id"])

        await self.service.update_progress(self.student, course["_id"], {"progress": 100})
        certificate = await self.service.download_certificate(self.student, course["_id"])
        self.assertEqual(certificate["certificate_id"], enrollment["certificate_id"])
        self.assertTrue(certificate["content"].startswith(b"\x89PNG"))

    async def test_certificate_unauthenticated(self) -> None:
        with self.assertRaises(Unauthenticated):
            await self.service.download_certificate(None, "64c000000000000000000099")

    async def test_verify_certificate(self) -> None:
        course = await self._create_course()
        enrollment = await self.service.enroll_course(self.student, course["_id"])
        result = await self.service.verify_certificate(enrollment["certificate_id"])
        self.assertFalse(result["valid"])

        await self.service.update_progress(self.student, course["_id"], {"progress": 100})
        result = await self.service.verify_certificate(enrollment["certificate_id"])
        self.assertTrue(result["valid"])
        self.assertEqual(result["issued_to"], "Test Student")
        self.assertEqual(result["course_title"], "Test Course")


class TestAdministration(CourseServiceTestCase):
    async def test_admin_changes_role(self) -> None:
        user = await self.service.change_user_role(self.admin, self.student.id, Role.INSTRUCTOR)
        self.assertEqual(user["role"], "instructor")
        self.assertNotIn("password_hash", user)

    async def test_non_admin_cannot_change_roles(self) -> None:
        with self.assertRaises(Forbidden):
            await self.service.change_user_role(self.instructor, self.student.id, Role.ADMIN)
        with self.assertRaises(Unauthenticated):
            await self.service.change_user_role(None, self.student.id, Role.ADMIN)

    async def test_change_role_unknown_user(self) -> None:
        with self.assertRaises(NotFound):
            await self.service.change_user_role(self.admin, "64b000000000000000000099", Role.ADMIN)


if __name__ == "__main__":
    unittest.main()

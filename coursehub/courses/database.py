from motor.motor_asyncio import AsyncIOMotorClient, AsyncIOMotorDatabase
from pymongo import ReturnDocument
from pymongo.errors import DuplicateKeyError
from bson import ObjectId
from bson.errors import InvalidId
from datetime import datetime
from typing import List, Optional, Tuple
import logging
import re

from coursehub import config

logger = logging.getLogger(__name__)


def serialize_mongo(doc: dict) -> dict:
    if doc and "_id" in doc:
        doc["_id"] = str(doc["_id"])
    return doc

def serialize_many(docs: list[dict]) -> list[dict]:
    return [serialize_mongo(doc) for doc in docs]

def to_object_id(value) -> Optional[ObjectId]:
    """Malformed ids are treated as 'no such document'"""
    if isinstance(value, ObjectId):
        return value
    try:
        return ObjectId(str(value))
    except (InvalidId, TypeError):
        return None


def build_course_query(filters: dict) -> dict:
    query = {}
    for field in ("category", "level", "status", "instructor"):
        if filters.get(field):
            query[field] = filters[field]
    if filters.get("search"):
        query["title"] = {"$regex": re.escape(filters["search"]), "$options": "i"}
    return query


class MongoCourseStore:
    """
    Persistence for users, courses, enrollments, reviews and audit logs.
    Returned documents have their _id already converted to str.
    """

    def __init__(self, db: AsyncIOMotorDatabase, client: Optional[AsyncIOMotorClient] = None):
        self.db = db
        self.client = client

    @classmethod
    def from_config(cls) -> "MongoCourseStore":
        client = AsyncIOMotorClient(
            config.MONGO_URL,
            serverSelectionTimeoutMS=config.MONGO_TIMEOUT_MS,
        )
        return cls(client[config.MONGO_DB_NAME], client)

    def close(self):
        if self.client:
            self.client.close()

    async def ping(self) -> bool:
        await self.db.command("ping")
        return True

    # ==================== INDEXES ====================

    async def create_indexes(self):
        """Unique indexes carry the one-per-user rules"""
        await self.db.users.create_index("email", unique=True)

        await self.db.courses.create_index("instructor")
        await self.db.courses.create_index([("status", 1), ("created_at", -1)])
        await self.db.courses.create_index("category")

        await self.db.course_enrollments.create_index([("user_id", 1), ("course_id", 1)], unique=True)
        await self.db.course_enrollments.create_index("enrollment_id", unique=True)
        await self.db.course_enrollments.create_index("certificate_id", unique=True)
        await self.db.course_enrollments.create_index("course_id")

        await self.db.course_reviews.create_index([("user_id", 1), ("course_id", 1)], unique=True)
        await self.db.course_reviews.create_index("course_id")

        await self.db.audit_logs.create_index([("target_type", 1), ("target_id", 1)])
        await self.db.audit_logs.create_index("timestamp")

        logger.info("✅ Course indexes created")

    # ==================== USERS ====================

    async def insert_user(self, user: dict) -> dict:
        """Raises DuplicateKeyError when the email is taken"""
        result = await self.db.users.insert_one(user)
        user["_id"] = result.inserted_id
        return serialize_mongo(user)

    async def get_user(self, user_id: str) -> Optional[dict]:
        oid = to_object_id(user_id)
        if oid is None:
            return None
        return serialize_mongo(await self.db.users.find_one({"_id": oid}))

    async def get_user_by_email(self, email: str) -> Optional[dict]:
        return serialize_mongo(await self.db.users.find_one({"email": email.lower()}))

    async def set_user_role(self, user_id: str, role: str) -> Optional[dict]:
        oid = to_object_id(user_id)
        if oid is None:
            return None
        user = await self.db.users.find_one_and_update(
            {"_id": oid},
            {"$set": {"role": role, "updated_at": datetime.utcnow()}},
            return_document=ReturnDocument.AFTER,
        )
        return serialize_mongo(user)

    # ==================== COURSES ====================

    async def insert_course(self, course: dict) -> dict:
        result = await self.db.courses.insert_one(course)
        course["_id"] = result.inserted_id
        return serialize_mongo(course)

    async def get_course(self, course_id: str) -> Optional[dict]:
        oid = to_object_id(course_id)
        if oid is None:
            return None
        return serialize_mongo(await self.db.courses.find_one({"_id": oid}))

    async def get_courses_by_ids(self, course_ids: List[str]) -> List[dict]:
        oids = [oid for oid in (to_object_id(cid) for cid in course_ids) if oid is not None]
        if not oids:
            return []
        cursor = self.db.courses.find({"_id": {"$in": oids}})
        return serialize_many(await cursor.to_list(length=len(oids)))

    async def list_courses(self, filters: dict, skip: int = 0, limit: int = 50) -> List[dict]:
        cursor = (
            self.db.courses.find(build_course_query(filters))
            .sort("created_at", -1)
            .skip(skip)
            .limit(limit)
        )
        return serialize_many(await cursor.to_list(length=limit))

    async def update_course(self, course_id: str, updates: dict) -> Optional[dict]:
        oid = to_object_id(course_id)
        if oid is None:
            return None
        course = await self.db.courses.find_one_and_update(
            {"_id": oid},
            {"$set": updates},
            return_document=ReturnDocument.AFTER,
        )
        return serialize_mongo(course)

    async def delete_course(self, course_id: str) -> bool:
        """
        Remove the course, then its enrollments and reviews.
        The dependent cleanup is safe to repeat if a previous attempt stopped halfway.
        """
        oid = to_object_id(course_id)
        if oid is None:
            return False
        result = await self.db.courses.delete_one({"_id": oid})
        enrollments = await self.db.course_enrollments.delete_many({"course_id": course_id})
        reviews = await self.db.course_reviews.delete_many({"course_id": course_id})
        logger.debug(
            f"Course {course_id} cleanup: {enrollments.deleted_count} enrollments, "
            f"{reviews.deleted_count} reviews"
        )
        return result.deleted_count > 0

    # ==================== ENROLLMENTS ====================

    async def insert_enrollment(self, enrollment: dict) -> dict:
        """Raises DuplicateKeyError when (user, course) is already enrolled"""
        await self.db.course_enrollments.insert_one(enrollment)
        await self.db.courses.update_one(
            {"_id": to_object_id(enrollment["course_id"])},
            {"$inc": {"stats.enrollments": 1}}
        )
        enrollment.pop("_id", None)
        return enrollment

    async def get_enrollment(self, course_id: str, user_id: str) -> Optional[dict]:
        return await self.db.course_enrollments.find_one(
            {"course_id": course_id, "user_id": user_id},
            {"_id": 0}
        )

    async def get_enrollment_by_certificate(self, certificate_id: str) -> Optional[dict]:
        return await self.db.course_enrollments.find_one({"certificate_id": certificate_id}, {"_id": 0})

    async def list_user_enrollments(self, user_id: str) -> List[dict]:
        cursor = self.db.course_enrollments.find({"user_id": user_id}, {"_id": 0}).sort("enrolled_at", -1)
        return await cursor.to_list(length=None)

    async def update_enrollment(self, course_id: str, user_id: str, updates: dict) -> Optional[dict]:
        return await self.db.course_enrollments.find_one_and_update(
            {"course_id": course_id, "user_id": user_id},
            {"$set": updates},
            projection={"_id": 0},
            return_document=ReturnDocument.AFTER,
        )

    # ==================== REVIEWS ====================

    async def upsert_review(self, course_id: str, user_id: str, fields: dict) -> Tuple[dict, bool]:
        """
        Insert or replace the single review a user has for a course.
        Returns (review, created).
        """
        now = datetime.utcnow()
        key = {"course_id": course_id, "user_id": user_id}
        update = {
            "$set": {**fields, "updated_at": now},
            "$setOnInsert": {"created_at": now},
        }
        try:
            result = await self.db.course_reviews.update_one(key, update, upsert=True)
            created = result.upserted_id is not None
        except DuplicateKeyError:
            # Lost an insert race with the same user; the row exists now
            await self.db.course_reviews.update_one(key, {"$set": update["$set"]})
            created = False

        review = await self.db.course_reviews.find_one(key, {"_id": 0})
        return review, created

    async def list_reviews(self, course_id: str) -> List[dict]:
        cursor = self.db.course_reviews.find({"course_id": course_id}, {"_id": 0}).sort("updated_at", -1)
        return await cursor.to_list(length=None)

    async def refresh_course_rating(self, course_id: str) -> dict:
        pipeline = [
            {"$match": {"course_id": course_id}},
            {"$group": {"_id": None, "count": {"$sum": 1}, "avg": {"$avg": "$rating"}}},
        ]
        results = await self.db.course_reviews.aggregate(pipeline).to_list(None)
        count = results[0]["count"] if results else 0
        avg = round(results[0]["avg"], 2) if results else 0.0

        await self.db.courses.update_one(
            {"_id": to_object_id(course_id)},
            {"$set": {"stats.reviews": count, "stats.avg_rating": avg}}
        )
        return {"reviews": count, "avg_rating": avg}

    # ==================== AUDIT ====================

    async def log_audit(self, entry: dict):
        await self.db.audit_logs.insert_one(entry)

    async def get_audit_trail(self, target_type: str = None, target_id: str = None, limit: int = 100) -> List[dict]:
        query = {}
        if target_type:
            query["target_type"] = target_type
        if target_id:
            query["target_id"] = target_id
        cursor = self.db.audit_logs.find(query, {"_id": 0}).sort("timestamp", -1).limit(limit)
        return await cursor.to_list(length=limit)

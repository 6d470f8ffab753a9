from pydantic import BaseModel, Field, StrictFloat, StrictInt, StrictStr, validator
from typing import Optional, Union
from datetime import datetime
from enum import Enum

from coursehub.config import MAX_PRICE, RATING_MAX, RATING_MIN

# ==================== ENUMS ====================

class CourseStatus(str, Enum):
    DRAFT = "draft"
    PUBLISHED = "published"
    ARCHIVED = "archived"

class EnrollmentStatus(str, Enum):
    ACTIVE = "active"
    COMPLETED = "completed"

class Action(str, Enum):
    CREATE = "create"
    READ = "read"
    UPDATE = "update"
    DELETE = "delete"
    ENROLL = "enroll"
    REVIEW = "review"
    DOWNLOAD_CERTIFICATE = "download_certificate"
    TRACK_PROGRESS = "track_progress"
    ADMINISTER = "administer"

# Allowed status moves; staying on the same status is always fine
STATUS_TRANSITIONS = {
    CourseStatus.DRAFT: {CourseStatus.PUBLISHED, CourseStatus.ARCHIVED},
    CourseStatus.PUBLISHED: {CourseStatus.ARCHIVED},
    CourseStatus.ARCHIVED: {CourseStatus.PUBLISHED},
}

# ==================== DATABASE MODELS ====================

class CourseStats(BaseModel):
    enrollments: int = 0
    reviews: int = 0
    avg_rating: float = 0.0

class Course(BaseModel):
    title: str
    description: str
    category: Optional[str] = None
    level: Optional[str] = None
    price: Union[int, float] = 0
    duration: Optional[str] = None
    thumbnail: Optional[str] = None
    status: CourseStatus = CourseStatus.DRAFT
    instructor: str  # owning user _id
    stats: CourseStats = Field(default_factory=CourseStats)
    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: datetime = Field(default_factory=datetime.utcnow)
    published_at: Optional[datetime] = None

class Enrollment(BaseModel):
    enrollment_id: str  # ENR_XXXXXX
    course_id: str
    user_id: str
    certificate_id: str  # CERT_XXXXXX
    progress: float = 0.0
    status: EnrollmentStatus = EnrollmentStatus.ACTIVE
    enrolled_at: datetime = Field(default_factory=datetime.utcnow)
    completed_at: Optional[datetime] = None

class AuditLog(BaseModel):
    actor_user_id: str
    role: str
    action: str
    target_type: str
    target_id: str
    metadata: dict = {}
    timestamp: datetime = Field(default_factory=datetime.utcnow)

# ==================== REQUEST SCHEMAS ====================

def _strip_required(v):
    if v is None:
        return v
    v = v.strip()
    if not v:
        raise ValueError('must not be blank')
    return v

def _strip_optional(v):
    return v.strip() if v is not None else v

def _check_bounds(v, low, high):
    # Plain comparisons so huge ints, inf and nan fail cleanly
    if v is not None and not low <= v <= high:
        raise ValueError(f'must be between {low} and {high}')
    return v


class CourseCreate(BaseModel):
    title: StrictStr = Field(..., min_length=1, max_length=200)
    description: StrictStr = Field(..., min_length=1)
    category: Optional[StrictStr] = None
    level: Optional[StrictStr] = None
    price: Union[StrictInt, StrictFloat] = 0
    duration: Optional[StrictStr] = None
    thumbnail: Optional[StrictStr] = None

    @validator('title', 'description')
    def validate_required_text(cls, v):
        return _strip_required(v)

    @validator('category', 'level', 'duration', 'thumbnail')
    def validate_optional_text(cls, v):
        return _strip_optional(v)

    @validator('price')
    def validate_price(cls, v):
        return _check_bounds(v, 0, MAX_PRICE)


class CourseUpdate(BaseModel):
    """Only the fields present in the request body are applied"""
    title: Optional[StrictStr] = Field(None, min_length=1, max_length=200)
    description: Optional[StrictStr] = Field(None, min_length=1)
    category: Optional[StrictStr] = None
    level: Optional[StrictStr] = None
    price: Optional[Union[StrictInt, StrictFloat]] = None
    duration: Optional[StrictStr] = None
    thumbnail: Optional[StrictStr] = None
    status: Optional[CourseStatus] = None

    @validator('title', 'description')
    def validate_required_text(cls, v):
        return _strip_required(v)

    @validator('category', 'level', 'duration', 'thumbnail')
    def validate_optional_text(cls, v):
        return _strip_optional(v)

    @validator('price')
    def validate_price(cls, v):
        return _check_bounds(v, 0, MAX_PRICE)


class ReviewCreate(BaseModel):
    rating: StrictInt = Field(..., ge=RATING_MIN, le=RATING_MAX)
    comment: Optional[StrictStr] = Field("", max_length=2000)

    @validator('comment')
    def validate_comment(cls, v):
        return v.strip() if v else ""


class ProgressUpdate(BaseModel):
    progress: Union[StrictInt, StrictFloat]

    @validator('progress')
    def validate_progress(cls, v):
        return _check_bounds(v, 0, 100)

from datetime import datetime
from enum import Enum

from pydantic import BaseModel, EmailStr, Field, validator

# ==================== ENUMS ====================

class Role(str, Enum):
    STUDENT = "student"
    INSTRUCTOR = "instructor"
    ADMIN = "admin"

# ==================== ACTOR ====================

class Actor:
    """
    Authenticated user resolved for one request.
    Role comes from the users collection, not from the token.
    """
    def __init__(self, user_id: str, role: Role, name: str = "", email: str = ""):
        self.id = user_id
        self.role = role
        self.name = name
        self.email = email

    @classmethod
    def from_user(cls, user: dict) -> "Actor":
        return cls(
            user_id=str(user["_id"]),
            role=Role(user.get("role", Role.STUDENT.value)),
            name=user.get("name", ""),
            email=user.get("email", ""),
        )

    def __repr__(self):
        return f"<Actor {self.id} ({self.role.value})>"

# ==================== DATABASE MODELS ====================

class User(BaseModel):
    """users collection document"""
    name: str
    email: EmailStr
    password_hash: str
    role: Role = Role.STUDENT
    is_active: bool = True
    created_at: datetime = Field(default_factory=datetime.utcnow)

# ==================== REQUEST SCHEMAS ====================

class RegisterRequest(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)
    email: EmailStr
    password: str = Field(..., min_length=8)

    @validator('name')
    def validate_name(cls, v):
        if not v.strip():
            raise ValueError('name is required')
        return v.strip()


class LoginRequest(BaseModel):
    email: EmailStr
    password: str


class RoleChangeRequest(BaseModel):
    role: Role


def public_user(user: dict) -> dict:
    """User document without credentials"""
    return {
        "_id": str(user["_id"]),
        "name": user.get("name"),
        "email": user.get("email"),
        "role": user.get("role", Role.STUDENT.value),
        "is_active": user.get("is_active", True),
        "created_at": user.get("created_at"),
    }

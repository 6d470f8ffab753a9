from typing import Optional
import logging

from pymongo.errors import DuplicateKeyError

from coursehub.auth.auth_models import (
    Actor, LoginRequest, RegisterRequest, Role, User, public_user
)
from coursehub.auth.auth_utils import (
    create_access_token, decode_access_token, hash_password, verify_password
)
from coursehub.errors import Conflict, Unauthenticated

logger = logging.getLogger(__name__)


class AuthService:
    """Registration, login and token -> actor resolution"""

    def __init__(self, store):
        self.store = store

    async def register(self, data: RegisterRequest) -> dict:
        # Self-registration always yields a student; roles change through the admin API
        user = User(
            name=data.name,
            email=data.email.lower(),
            password_hash=hash_password(data.password),
            role=Role.STUDENT,
        ).dict()
        user["role"] = Role.STUDENT.value

        try:
            user = await self.store.insert_user(user)
        except DuplicateKeyError:
            raise Conflict("Email already registered")

        logger.info(f"Registered user {user['_id']}")
        return self._session(user)

    async def login(self, data: LoginRequest) -> dict:
        user = await self.store.get_user_by_email(data.email.lower())
        if not user or not verify_password(user.get("password_hash", ""), data.password):
            raise Unauthenticated("Invalid credentials")
        if not user.get("is_active", True):
            raise Unauthenticated("Account is disabled")
        return self._session(user)

    async def resolve_actor(self, token: Optional[str]) -> Optional[Actor]:
        """
        Map a bearer token to the current actor.
        Returns None for a missing/invalid token or an unknown/inactive user.
        """
        if not token:
            return None
        payload = decode_access_token(token)
        if not payload or not payload.get("sub"):
            return None

        user = await self.store.get_user(payload["sub"])
        if not user or not user.get("is_active", True):
            return None
        return Actor.from_user(user)

    def _session(self, user: dict) -> dict:
        return {
            "token": create_access_token(user["_id"], user.get("role", Role.STUDENT.value)),
            "user": public_user(user),
        }

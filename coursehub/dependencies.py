from typing import Optional

from fastapi import Depends, Header, Request

from coursehub.auth.auth_models import Actor
from coursehub.auth.auth_service import AuthService
from coursehub.auth.auth_utils import extract_bearer_token
from coursehub.courses.course_service import CourseService

# ==================== DEPENDENCY FUNCTIONS ====================

def get_store(request: Request):
    """Store placed on the app by create_app"""
    return request.app.state.store

def get_course_service(store=Depends(get_store)) -> CourseService:
    return CourseService(store)

def get_auth_service(store=Depends(get_store)) -> AuthService:
    return AuthService(store)

async def get_current_actor(
    authorization: Optional[str] = Header(None),
    auth: AuthService = Depends(get_auth_service),
) -> Optional[Actor]:
    """
    Resolve the bearer token to an actor.
    Anonymous requests get None; the service decides whether that is enough.
    """
    return await auth.resolve_actor(extract_bearer_token(authorization))

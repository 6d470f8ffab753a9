# coursehub/auth/auth_router.py

from typing import Optional

from fastapi import APIRouter, Depends

from coursehub.auth.auth_models import Actor, LoginRequest, RegisterRequest, public_user
from coursehub.auth.auth_service import AuthService
from coursehub.dependencies import get_auth_service, get_current_actor, get_store
from coursehub.errors import Unauthenticated, NotFound

router = APIRouter(prefix="/api/auth", tags=["Auth"])


@router.post("/register", status_code=201)
async def register(
    data: RegisterRequest,
    auth: AuthService = Depends(get_auth_service)
):
    """Create a student account and return a session token"""
    session = await auth.register(data)
    return {"success": True, **session}


@router.post("/login")
async def login(
    data: LoginRequest,
    auth: AuthService = Depends(get_auth_service)
):
    session = await auth.login(data)
    return {"success": True, **session}


@router.get("/me")
async def get_me(
    actor: Optional[Actor] = Depends(get_current_actor),
    store=Depends(get_store)
):
    if actor is None:
        raise Unauthenticated()
    user = await store.get_user(actor.id)
    if not user:
        raise NotFound("User not found")
    return {"success": True, "data": public_user(user)}

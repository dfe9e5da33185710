from __future__ import annotations
from typing import List

from fastapi import APIRouter, Depends, Response, status

from .contracts import (
    AuthenticatedIdentity, AuthResult, ChangePasswordRequest, CreateUserRequest,
    HealthResponse, LoginRequest, MessageResponse, RefreshRequest,
    UpdateUserRequest, User, UserProfile, UserStorePort, utcnow,
)
from .deps import get_auth_service, get_user_store, require_identity
from .service import AuthService

health_router = APIRouter(tags=["health"])
auth_router = APIRouter(prefix="/auth", tags=["auth"])
users_router = APIRouter(prefix="/users", tags=["users"])


# ---------- Health ----------
@health_router.get("/", response_model=HealthResponse)
def health():
    return HealthResponse(message="Account service is running!", timestamp=utcnow().isoformat())


# ---------- Auth ----------
@auth_router.post("/signup", response_model=AuthResult, status_code=status.HTTP_201_CREATED)
def signup(req: CreateUserRequest, svc: AuthService = Depends(get_auth_service)):
    return svc.signup(req)


@auth_router.post("/login", response_model=AuthResult)
def login(req: LoginRequest, svc: AuthService = Depends(get_auth_service)):
    return svc.login(req)


@auth_router.post("/refresh-token", response_model=AuthResult)
def refresh_token(req: RefreshRequest, svc: AuthService = Depends(get_auth_service)):
    return svc.refresh(req.refresh_token)


@auth_router.post("/change-password", response_model=MessageResponse)
def change_password(
    req: ChangePasswordRequest,
    svc: AuthService = Depends(get_auth_service),
    _: AuthenticatedIdentity = Depends(require_identity),
):
    # The target account comes from the body, not from the guard's identity.
    return svc.change_password(req.user_id, req)


# ---------- Users (all guarded) ----------
@users_router.post("", response_model=User, status_code=status.HTTP_201_CREATED)
def create_user(
    req: CreateUserRequest,
    store: UserStorePort = Depends(get_user_store),
    _: AuthenticatedIdentity = Depends(require_identity),
):
    return store.create(req)


@users_router.get("", response_model=List[User])
def list_users(
    store: UserStorePort = Depends(get_user_store),
    _: AuthenticatedIdentity = Depends(require_identity),
):
    return store.find_all()


@users_router.get("/profile", response_model=UserProfile)
def get_profile(
    identity: AuthenticatedIdentity = Depends(require_identity),
    store: UserStorePort = Depends(get_user_store),
):
    user = store.find_by_id(identity.id)
    return UserProfile(**user.model_dump(), age=store.age_of(user.date_of_birth))


@users_router.get("/{user_id}", response_model=User)
def get_user(
    user_id: str,
    store: UserStorePort = Depends(get_user_store),
    _: AuthenticatedIdentity = Depends(require_identity),
):
    return store.find_by_id(user_id)


@users_router.patch("/{user_id}", response_model=User)
def update_user(
    user_id: str,
    patch: UpdateUserRequest,
    store: UserStorePort = Depends(get_user_store),
    _: AuthenticatedIdentity = Depends(require_identity),
):
    return store.update(user_id, patch)


@users_router.delete("/{user_id}", status_code=status.HTTP_204_NO_CONTENT, response_class=Response)
def delete_user(
    user_id: str,
    store: UserStorePort = Depends(get_user_store),
    _: AuthenticatedIdentity = Depends(require_identity),
):
    store.remove(user_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)

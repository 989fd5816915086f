"""Registration and sign-in endpoints."""

from typing import Optional

from fastapi import APIRouter, Depends, HTTPException

from worship_chords.db.client import DuplicateEmailError
from worship_chords.db.models import User
from worship_chords.services.auth import AuthenticationError, AuthService
from worship_chords.web.deps import bearer_token, get_auth_service, require_user
from worship_chords.web.schemas import (
    LoginRequest,
    LoginResponse,
    RegisterRequest,
    RegisterResponse,
    UserResponse,
)

router = APIRouter(prefix="/auth", tags=["auth"])


@router.post("/register", response_model=RegisterResponse, status_code=201)
def register(request: RegisterRequest, auth: AuthService = Depends(get_auth_service)) -> RegisterResponse:
    """Create an account.

    Args:
        request: Name, email and password

    Returns:
        Confirmation with the public user record
    """
    try:
        user = auth.register(request.name, request.email, request.password)
    except DuplicateEmailError:
        raise HTTPException(400, "User with this email already exists")
    return RegisterResponse(message="User created successfully", user=UserResponse(**user.to_dict()))


@router.post("/login", response_model=LoginResponse)
def login(request: LoginRequest, auth: AuthService = Depends(get_auth_service)) -> LoginResponse:
    """Exchange credentials for a bearer token."""
    try:
        session, user = auth.login(request.email, request.password)
    except AuthenticationError as e:
        raise HTTPException(401, str(e))
    return LoginResponse(token=session.token, expires_at=session.expires_at, user=UserResponse(**user.to_dict()))


@router.post("/logout")
def logout(
    token: Optional[str] = Depends(bearer_token),
    auth: AuthService = Depends(get_auth_service),
) -> dict:
    if token:
        auth.logout(token)
    return {"message": "Signed out"}


@router.get("/me", response_model=UserResponse)
def me(user: User = Depends(require_user)) -> UserResponse:
    return UserResponse(**user.to_dict())

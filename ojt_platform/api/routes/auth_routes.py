"""
Authentication Routes

POST /auth/register - Register new user
POST /auth/login - Login and get JWT token
GET /auth/me - Get current user info
"""

from fastapi import APIRouter, HTTPException, Depends

from ojt_platform.core.auth import hash_password, verify_password, create_access_token, get_current_user
from ojt_platform.core.logger import logger
from ojt_platform.services.mongo_service import UserService
from ojt_platform.schemas.schemas import (
    RegisterRequest, LoginRequest, TokenResponse, UserResponse, MessageResponse
)

router = APIRouter(prefix="/auth", tags=["Authentication"])


@router.post("/register", response_model=MessageResponse, status_code=201)
async def register(request: RegisterRequest):
    """
    Register a new user account.

    After registration, login to get access token, then create profile.
    """
    user_id = UserService().create(
        email=request.email,
        password_hash=hash_password(request.password),
        role=request.role.value
    )
    logger.info(f"Registered {request.role.value} user {user_id}")

    return MessageResponse(message=f"Registered successfully as {request.role.value}. Please login.")


@router.post("/login", response_model=TokenResponse)
async def login(request: LoginRequest):
    """
    Login and receive JWT access token.

    Include token in requests: Authorization: Bearer <token>
    """
    user = UserService().get_by_email(request.email)

    if not user:
        raise HTTPException(status_code=401, detail="Invalid email or password")

    if not user.get("is_active", True):
        raise HTTPException(status_code=403, detail="Account deactivated")

    if not verify_password(request.password, user["password_hash"]):
        raise HTTPException(status_code=401, detail="Invalid email or password")

    token = create_access_token(data={"sub": user["_id"], "role": user["role"]})

    return TokenResponse(access_token=token, user_id=user["_id"], role=user["role"])


@router.get("/me", response_model=UserResponse)
async def get_me(user: dict = Depends(get_current_user)):
    """Get current authenticated user's info."""
    row = UserService().get_by_id(user["user_id"])

    return UserResponse(
        user_id=row["_id"], email=row["email"], role=row["role"],
        is_active=row.get("is_active", True), created_at=row["created_at"]
    )

import logging

from fastapi import APIRouter, Depends, HTTPException, status

from app.api.deps import get_user_store
from app.api.schemas.auth import (
    ForgotPasswordRequest,
    LoginRequest,
    LoginResponse,
    MessageResponse,
    ResetPasswordRequest,
    SignupRequest,
)
from app.core.store import UserStore
from app.services.auth_service import login_user, prepare_password_hash, signup_user
from app.services.password_reset_service import request_password_reset, reset_password

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["auth"])


@router.post("/signup", response_model=MessageResponse, status_code=status.HTTP_201_CREATED)
async def signup(
    body: SignupRequest | None = None,
    store: UserStore = Depends(get_user_store),
) -> MessageResponse:
    body = body or SignupRequest()
    if not body.email or not body.password:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Email and password are required",
        )
    password_hash = await prepare_password_hash(body.password)
    if password_hash is None:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Invalid password",
        )
    async with store.session() as session:
        user = signup_user(session, body.email, password_hash, body.name)
    if not user:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="User already exists",
        )
    return MessageResponse(message="User created successfully")


@router.post("/login", response_model=LoginResponse)
async def login(
    body: LoginRequest | None = None,
    store: UserStore = Depends(get_user_store),
) -> LoginResponse:
    body = body or LoginRequest()
    if not body.email or not body.password:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Email and password are required",
        )
    token = await login_user(store, body.email, body.password)
    if not token:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid email or password",
        )
    return LoginResponse(message="Login successful", token=token)


@router.post("/forgot-password", response_model=MessageResponse)
async def forgot_password(
    body: ForgotPasswordRequest | None = None,
    store: UserStore = Depends(get_user_store),
) -> MessageResponse:
    body = body or ForgotPasswordRequest()
    if not body.email:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Email is required",
        )
    async with store.session() as session:
        request_password_reset(session, body.email)
    return MessageResponse(message="Reset email sent")


@router.post("/reset-password", response_model=MessageResponse)
async def reset_password_route(
    body: ResetPasswordRequest | None = None,
    store: UserStore = Depends(get_user_store),
) -> MessageResponse:
    body = body or ResetPasswordRequest()
    if not body.token or not body.password:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Token and password are required",
        )
    password_hash = await prepare_password_hash(body.password)
    if password_hash is None:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Invalid password",
        )
    async with store.session() as session:
        user = reset_password(session, body.token, password_hash)
    if not user:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Invalid or expired token",
        )
    return MessageResponse(message="Password reset successful")

from fastapi import APIRouter, Depends, HTTPException, status, Request
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select
from datetime import datetime

from corpus_admin.core.database import get_db
from corpus_admin.core.exceptions import InvalidCredentialsError
from corpus_admin.core.security import verify_password, create_token_pair, decode_token
from corpus_admin.core.types import is_valid_uuid
from corpus_admin.core.logging_config import logger, set_user_id
from corpus_admin.core.rate_limiter import auth_rate_limit
from corpus_admin.models.user import User
from corpus_admin.models.security_event import SecurityEventType
from corpus_admin.schemas.auth import UserLogin, RefreshTokenRequest, Token, LoginResponse
from corpus_admin.schemas.user import UserResponse
from corpus_admin.modules.auth.dependencies import get_current_user
from corpus_admin.services.security_tracker import security_tracker, get_client_ip


router = APIRouter()


@router.post("/login", response_model=LoginResponse)
@auth_rate_limit()
async def login(
    request: Request,
    credentials: UserLogin,
    db: AsyncSession = Depends(get_db)
):
    """Login with email and password (rate limited)"""
    client_ip = get_client_ip(request)
    email = credentials.email.lower()

    result = await db.execute(
        select(User).where(User.email == email)
    )
    user = result.scalar_one_or_none()

    # Unknown, inactive and wrong-password all get the same answer
    if not user or not user.is_active or not verify_password(credentials.password, user.hashed_password):
        reason = "Account inactive" if user and not user.is_active else "Invalid credentials"
        logger.log_auth_event(
            event="login",
            success=False,
            user_email=email,
            reason=reason,
            client_ip=client_ip
        )
        security_tracker.track(SecurityEventType.LOGIN_FAILED, request, email=email, details=reason)
        raise InvalidCredentialsError()

    user.last_login = datetime.utcnow()
    await db.commit()

    set_user_id(str(user.id))

    tokens = create_token_pair(str(user.id), user.email, user.role.value)

    logger.log_auth_event(
        event="login",
        success=True,
        user_email=user.email,
        client_ip=client_ip,
        user_role=user.role.value
    )
    security_tracker.track(SecurityEventType.LOGIN_SUCCESS, request, email=user.email)

    return {
        **tokens,
        "user": UserResponse.model_validate(user),
    }


@router.post("/refresh", response_model=Token)
async def refresh_token(
    token_request: RefreshTokenRequest,
    request: Request,
    db: AsyncSession = Depends(get_db)
):
    """Exchange a refresh token for a new token pair"""
    client_ip = get_client_ip(request)

    payload = decode_token(token_request.refresh_token)

    if payload.get("type") != "refresh":
        logger.log_auth_event(
            event="token_refresh",
            success=False,
            reason="Invalid token type",
            client_ip=client_ip
        )
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid token type - expected refresh token"
        )

    user_id = payload.get("sub")
    if not user_id or not is_valid_uuid(user_id):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid token payload"
        )

    result = await db.execute(
        select(User).where(User.id == user_id)
    )
    user = result.scalar_one_or_none()

    if not user or not user.is_active:
        logger.log_auth_event(
            event="token_refresh",
            success=False,
            reason="User not found or inactive",
            client_ip=client_ip
        )
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="User not found or inactive"
        )

    logger.log_auth_event(
        event="token_refresh",
        success=True,
        user_email=user.email,
        client_ip=client_ip
    )
    return create_token_pair(str(user.id), user.email, user.role.value)


@router.get("/me", response_model=UserResponse)
async def get_me(current_user: User = Depends(get_current_user)):
    """Get current user info"""
    return current_user


@router.post("/logout")
async def logout(
    request: Request,
    current_user: User = Depends(get_current_user)
):
    """Record a logout; tokens are stateless and simply discarded by the client"""
    logger.log_auth_event(event="logout", success=True, user_email=current_user.email)
    security_tracker.track(SecurityEventType.LOGOUT, request, email=current_user.email)
    return {"success": True, "message": "Logged out"}

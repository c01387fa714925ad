from fastapi import Depends, HTTPException, Request, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select
from typing import Optional

from corpus_admin.core.database import get_db
from corpus_admin.core.logging_config import set_user_id
from corpus_admin.core.security import decode_token
from corpus_admin.core.types import is_valid_uuid
from corpus_admin.models.user import User, UserRole
from corpus_admin.models.security_event import SecurityEventType
from corpus_admin.services.security_tracker import security_tracker

# auto_error=False so a missing header is a 401 we can record, not a bare 403
security = HTTPBearer(auto_error=False)


def unauthorized(request: Request, detail: str) -> HTTPException:
    """Record an unauthorized_access event and build the 401 to raise"""
    security_tracker.track(
        SecurityEventType.UNAUTHORIZED_ACCESS,
        request,
        details=detail,
    )
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


async def get_current_user(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    db: AsyncSession = Depends(get_db)
) -> User:
    """Get current authenticated user"""

    if credentials is None:
        raise unauthorized(request, "Not authenticated")

    try:
        payload = decode_token(credentials.credentials)
    except HTTPException as e:
        raise unauthorized(request, e.detail)

    if payload.get("type") != "access":
        raise unauthorized(request, "Invalid token type")

    user_id = payload.get("sub")
    if not user_id or not is_valid_uuid(user_id):
        raise unauthorized(request, "Invalid token payload")

    result = await db.execute(
        select(User).where(User.id == user_id)
    )
    user = result.scalar_one_or_none()

    if not user:
        raise unauthorized(request, "User not found")

    if not user.is_active:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="User account is inactive"
        )

    set_user_id(str(user.id))
    request.state.user_id = str(user.id)
    return user


async def get_current_admin(
    current_user: User = Depends(get_current_user)
) -> User:
    """Get current admin user"""
    if current_user.role != UserRole.ADMIN:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Admin access required"
        )
    return current_user

"""
User administration endpoints (admin only)
"""
from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, func, and_
from datetime import datetime

from corpus_admin.core.config import settings
from corpus_admin.core.database import get_db
from corpus_admin.core.exceptions import (
    UserNotFoundError,
    InvalidIdentifierError,
    EmailAlreadyExistsError,
    LastAdminError,
)
from corpus_admin.core.logging_config import logger
from corpus_admin.core.security import get_password_hash
from corpus_admin.core.types import is_valid_uuid
from corpus_admin.models.user import User, UserRole
from corpus_admin.modules.auth.dependencies import get_current_admin
from corpus_admin.schemas.user import UserCreate, UserUpdate, UserResponse, UsersListResponse
from corpus_admin.utils.pagination import PaginationParams, paginate


router = APIRouter()


async def get_user_or_404(db: AsyncSession, user_id: str) -> User:
    if not is_valid_uuid(user_id):
        raise InvalidIdentifierError("User", user_id)

    result = await db.execute(select(User).where(User.id == user_id))
    user = result.scalar_one_or_none()
    if user is None:
        raise UserNotFoundError(user_id)
    return user


async def email_taken(db: AsyncSession, email: str) -> bool:
    result = await db.execute(select(User.id).where(User.email == email))
    return result.scalar_one_or_none() is not None


async def count_active_admins(db: AsyncSession) -> int:
    result = await db.execute(
        select(func.count(User.id)).where(
            and_(User.role == UserRole.ADMIN, User.is_active == True)  # noqa: E712
        )
    )
    return result.scalar() or 0


@router.get("", response_model=UsersListResponse)
async def list_users(
    page: int = Query(1, ge=1),
    limit: int = Query(settings.DEFAULT_PAGE_SIZE, ge=1),
    db: AsyncSession = Depends(get_db),
    admin: User = Depends(get_current_admin)
):
    """List users, newest first"""
    query = select(User).order_by(User.created_at.desc(), User.id.desc())
    users, pagination = await paginate(db, query, PaginationParams.from_query(page, limit))
    return {"users": users, "pagination": pagination}


@router.get("/{user_id}", response_model=UserResponse)
async def get_user(
    user_id: str,
    db: AsyncSession = Depends(get_db),
    admin: User = Depends(get_current_admin)
):
    return await get_user_or_404(db, user_id)


@router.post("", response_model=UserResponse, status_code=status.HTTP_201_CREATED)
async def create_user(
    user_data: UserCreate,
    db: AsyncSession = Depends(get_db),
    admin: User = Depends(get_current_admin)
):
    """Create a researcher or admin account"""
    email = user_data.email.lower()
    if await email_taken(db, email):
        raise EmailAlreadyExistsError(email)

    now = datetime.utcnow()
    user = User(
        email=email,
        name=user_data.name,
        hashed_password=get_password_hash(user_data.password),
        role=user_data.role,
        is_active=True,
        created_at=now,
        updated_at=now,
    )
    db.add(user)
    await db.commit()

    logger.info(
        f"[Users] {admin.email} created {user.role.value} account {email}",
        extra={"event_type": "user_created", "target_user_id": str(user.id)}
    )
    return user


@router.put("/{user_id}", response_model=UserResponse)
async def update_user(
    user_id: str,
    user_data: UserUpdate,
    db: AsyncSession = Depends(get_db),
    admin: User = Depends(get_current_admin)
):
    """Partially update an account; a new password is re-hashed"""
    user = await get_user_or_404(db, user_id)
    updates = user_data.model_dump(exclude_unset=True, exclude_none=True)

    if "email" in updates:
        email = updates["email"].lower()
        if email != user.email and await email_taken(db, email):
            raise EmailAlreadyExistsError(email)
        user.email = email

    if "name" in updates:
        user.name = updates["name"]
    if "role" in updates:
        user.role = updates["role"]
    if "is_active" in updates:
        user.is_active = updates["is_active"]
    if "password" in updates:
        user.hashed_password = get_password_hash(updates["password"])

    user.updated_at = datetime.utcnow()
    await db.commit()

    logger.info(
        f"[Users] {admin.email} updated account {user.email}",
        extra={"event_type": "user_updated", "target_user_id": str(user.id), "fields": sorted(updates)}
    )
    return user


@router.delete("/{user_id}")
async def delete_user(
    user_id: str,
    db: AsyncSession = Depends(get_db),
    admin: User = Depends(get_current_admin)
):
    """Delete an account; the last active admin cannot be removed"""
    user = await get_user_or_404(db, user_id)

    if user.role == UserRole.ADMIN and user.is_active and await count_active_admins(db) <= 1:
        raise LastAdminError()

    await db.delete(user)
    await db.commit()

    logger.info(
        f"[Users] {admin.email} deleted account {user.email}",
        extra={"event_type": "user_deleted", "target_user_id": user_id}
    )
    return {"message": "User deleted successfully"}

"""
Security event endpoints

Clients report page views and client-side auth events; admins read the log.
"""
from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.ext.asyncio import AsyncSession

from corpus_admin.core.config import settings
from corpus_admin.core.database import get_db
from corpus_admin.models.user import User
from corpus_admin.modules.auth.dependencies import get_current_admin
from corpus_admin.schemas.security import (
    SecurityEventCreate,
    SecurityEventsResponse,
    FailedAttemptsResponse,
)
from corpus_admin.services.security_tracker import security_tracker


router = APIRouter()


@router.post("/events")
async def record_event(event_data: SecurityEventCreate, request: Request):
    """Record a client-reported event (fire-and-forget)"""
    security_tracker.track(
        event_data.event,
        request,
        path=event_data.path,
        email=event_data.email,
        details=event_data.details,
    )
    return {"success": True}


@router.get("/events", response_model=SecurityEventsResponse)
async def recent_events(
    limit: int = Query(settings.SECURITY_EVENTS_DEFAULT_LIMIT, ge=1, le=500),
    db: AsyncSession = Depends(get_db),
    admin: User = Depends(get_current_admin)
):
    """Most recent security events, newest first"""
    events = await security_tracker.get_recent_events(db, limit=limit)
    return {"events": events}


@router.get("/failed-attempts", response_model=FailedAttemptsResponse)
async def failed_attempts(
    ip: str = Query(..., min_length=1),
    window_minutes: int = Query(settings.FAILED_LOGIN_WINDOW_MINUTES, ge=1),
    db: AsyncSession = Depends(get_db),
    admin: User = Depends(get_current_admin)
):
    """Failed logins from one IP inside the trailing window"""
    count = await security_tracker.get_failed_attempts(db, ip=ip, window_minutes=window_minutes)
    return {"ip": ip, "window_minutes": window_minutes, "failed_attempts": count}

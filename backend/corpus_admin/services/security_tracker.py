"""
Security Tracker
================
Best-effort recording of security events (page accesses, login attempts,
logouts, unauthorized access) into the security_logs table, plus the
read queries used by the admin security console.

Recording never blocks or fails the request it is attached to: track()
schedules the write on the running event loop and returns immediately.
The write opens its own session, so it survives the request session being
closed. Failures are logged and dropped, never retried.

Usage:
    from corpus_admin.services.security_tracker import security_tracker

    # Fire-and-forget from a request handler
    security_tracker.track(
        SecurityEventType.LOGIN_FAILED,
        request,
        email=credentials.email,
    )

    # Admin console queries
    events = await security_tracker.get_recent_events(db, limit=50)
    failed = await security_tracker.get_failed_attempts(db, ip="10.0.0.1")
"""

import asyncio
from datetime import datetime, timedelta
from typing import Optional, List, Set, Callable

from fastapi import Request
from sqlalchemy import select, func, and_
from sqlalchemy.ext.asyncio import AsyncSession

from corpus_admin.core.config import settings
from corpus_admin.core.database import get_session_local
from corpus_admin.core.logging_config import logger
from corpus_admin.models.security_event import (
    SecurityEvent,
    SecurityEventType,
    IP_MAX_LENGTH,
    PATH_MAX_LENGTH,
    EMAIL_MAX_LENGTH,
)


UNKNOWN_IP = "unknown"


def _clip(value: Optional[str], length: int) -> Optional[str]:
    return value[:length] if value else value


def get_client_ip(request: Request) -> str:
    """
    Resolve the client IP address.

    Priority:
    1. First entry of X-Forwarded-For (behind proxy/load balancer)
    2. X-Real-IP
    3. Socket peer address
    """
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        first = forwarded.split(",")[0].strip()
        if first:
            return first

    real_ip = request.headers.get("x-real-ip")
    if real_ip:
        return real_ip.strip()

    return request.client.host if request.client else UNKNOWN_IP


class SecurityTracker:
    """
    Service for recording and querying security events.
    """

    def __init__(self, session_factory: Optional[Callable[[], AsyncSession]] = None):
        # None means "use the application's lazily created session factory"
        self.session_factory = session_factory
        self._pending: Set[asyncio.Task] = set()

    def _open_session(self) -> AsyncSession:
        factory = self.session_factory or get_session_local()
        return factory()

    async def log_event(
        self,
        event: SecurityEventType,
        ip: str,
        path: str,
        user_agent: Optional[str] = None,
        email: Optional[str] = None,
        details: Optional[str] = None,
    ) -> bool:
        """
        Write one event in its own session.

        Returns:
            True if the row was committed, False if the write failed
        """
        try:
            async with self._open_session() as session:
                session.add(SecurityEvent(
                    event=event,
                    # Header-derived values are unbounded; cut them to the column size
                    ip=_clip(ip, IP_MAX_LENGTH) or UNKNOWN_IP,
                    path=_clip(path, PATH_MAX_LENGTH),
                    user_agent=user_agent,
                    email=_clip(email, EMAIL_MAX_LENGTH),
                    details=details,
                    timestamp=datetime.utcnow(),
                ))
                await session.commit()
        except Exception as e:
            logger.warning(
                f"[SecurityTracker] Failed to record {event.value} event: {e}",
                extra={"security_event": event.value, "http_path": path}
            )
            return False

        logger.log_security_event(event.value, ip, path, user_email=email)
        return True

    def track(
        self,
        event: SecurityEventType,
        request: Request,
        path: Optional[str] = None,
        email: Optional[str] = None,
        details: Optional[str] = None,
    ) -> Optional[asyncio.Task]:
        """
        Dispatch an event write without waiting for it.

        Returns the scheduled task (tests await it through drain()), or None
        when no event loop is running.
        """
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            logger.warning(f"[SecurityTracker] No running loop, dropping {event.value} event")
            return None

        task = loop.create_task(self.log_event(
            event=event,
            ip=get_client_ip(request),
            path=path or request.url.path,
            user_agent=request.headers.get("user-agent"),
            email=email,
            details=details,
        ))
        # Keep a strong reference until the write finishes
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)
        return task

    async def drain(self) -> None:
        """Wait for every dispatched write to finish"""
        while self._pending:
            await asyncio.gather(*list(self._pending))

    async def get_recent_events(
        self,
        db: AsyncSession,
        limit: Optional[int] = None
    ) -> List[SecurityEvent]:
        """Most recent events, newest first"""
        limit = limit or settings.SECURITY_EVENTS_DEFAULT_LIMIT
        result = await db.execute(
            select(SecurityEvent)
            .order_by(SecurityEvent.timestamp.desc())
            .limit(limit)
        )
        return list(result.scalars().all())

    async def get_failed_attempts(
        self,
        db: AsyncSession,
        ip: str,
        window_minutes: Optional[int] = None
    ) -> int:
        """Count login_failed events from an IP inside the trailing window"""
        window_minutes = window_minutes or settings.FAILED_LOGIN_WINDOW_MINUTES
        since = datetime.utcnow() - timedelta(minutes=window_minutes)
        result = await db.execute(
            select(func.count(SecurityEvent.id)).where(
                and_(
                    SecurityEvent.ip == ip,
                    SecurityEvent.event == SecurityEventType.LOGIN_FAILED,
                    SecurityEvent.timestamp >= since,
                )
            )
        )
        return result.scalar() or 0


# Singleton instance
security_tracker = SecurityTracker()

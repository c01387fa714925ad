from pydantic import BaseModel, Field
from typing import Optional, List
from datetime import datetime

from corpus_admin.models.security_event import SecurityEventType, PATH_MAX_LENGTH, EMAIL_MAX_LENGTH


class SecurityEventCreate(BaseModel):
    """Event reported by a client (page views, client-side auth failures)"""
    event: SecurityEventType
    path: str = Field(..., min_length=1, max_length=PATH_MAX_LENGTH)
    email: Optional[str] = Field(None, max_length=EMAIL_MAX_LENGTH)
    details: Optional[str] = None


class SecurityEventResponse(BaseModel):
    ip: str
    user_agent: Optional[str] = None
    event: SecurityEventType
    path: str
    email: Optional[str] = None
    details: Optional[str] = None
    timestamp: datetime

    class Config:
        from_attributes = True


class SecurityEventsResponse(BaseModel):
    events: List[SecurityEventResponse]


class FailedAttemptsResponse(BaseModel):
    ip: str
    window_minutes: int
    failed_attempts: int

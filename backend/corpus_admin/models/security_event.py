from sqlalchemy import Column, String, DateTime, Text, Enum as SQLEnum, Index
from datetime import datetime
import enum

from corpus_admin.core.database import Base
from corpus_admin.core.types import GUID, generate_uuid


IP_MAX_LENGTH = 45
PATH_MAX_LENGTH = 2048
EMAIL_MAX_LENGTH = 255


class SecurityEventType(str, enum.Enum):
    """Kinds of events written to the security log"""
    PAGE_ACCESS = "page_access"
    LOGIN_SUCCESS = "login_success"
    LOGIN_FAILED = "login_failed"
    UNAUTHORIZED_ACCESS = "unauthorized_access"
    LOGOUT = "logout"


class SecurityEvent(Base):
    """Security log entry (page accesses, login attempts, logouts)"""
    __tablename__ = "security_logs"

    __table_args__ = (
        Index('ix_security_logs_ip_event_timestamp', 'ip', 'event', 'timestamp'),
    )

    id = Column(GUID, primary_key=True, default=generate_uuid)

    # Request metadata
    ip = Column(String(IP_MAX_LENGTH), nullable=False)
    user_agent = Column(Text, nullable=True)

    # Event details
    event = Column(SQLEnum(SecurityEventType), nullable=False)
    path = Column(String(PATH_MAX_LENGTH), nullable=False)
    email = Column(String(EMAIL_MAX_LENGTH), nullable=True)
    details = Column(Text, nullable=True)

    timestamp = Column(DateTime, default=datetime.utcnow, nullable=False, index=True)

    def __repr__(self):
        return f"<SecurityEvent {self.event} from {self.ip}>"

# Re-export all models for convenient imports
from corpus_admin.models.user import User, UserRole
from corpus_admin.models.dataset import Dataset
from corpus_admin.models.security_event import SecurityEvent, SecurityEventType

__all__ = [
    # User
    "User",
    "UserRole",
    # Datasets
    "Dataset",
    # Security log
    "SecurityEvent",
    "SecurityEventType",
]

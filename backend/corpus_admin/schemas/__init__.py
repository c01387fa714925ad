# Pydantic schemas
from corpus_admin.schemas.dataset import (
    DatasetCreate,
    DatasetUpdate,
    DatasetMetadataIn,
    UtteranceIn,
)
from corpus_admin.schemas.user import (
    UserCreate,
    UserUpdate,
    UserResponse,
    UsersListResponse,
)
from corpus_admin.schemas.auth import (
    UserLogin,
    RefreshTokenRequest,
    Token,
    LoginResponse,
)
from corpus_admin.schemas.security import (
    SecurityEventCreate,
    SecurityEventResponse,
    SecurityEventsResponse,
    FailedAttemptsResponse,
)

# API endpoints
from . import auth, datasets, users, security, health

__all__ = ["auth", "datasets", "users", "security", "health"]

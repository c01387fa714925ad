"""
Custom Exceptions for Corpus Admin
==================================

Raise these from endpoints and services instead of building HTTP errors by
hand. The handler registered in main.py renders any CorpusAdminError as:

    {"success": false, "error": {"code": ..., "message": ..., "details": ...}}

with the status code carried by the exception class.

Usage:
    from corpus_admin.core.exceptions import DatasetNotFoundError

    if not dataset:
        raise DatasetNotFoundError(dataset_id)
"""

from typing import Optional, Any, Dict, List


class CorpusAdminError(Exception):
    """Base exception for all Corpus Admin errors"""

    status_code: int = 500

    def __init__(
        self,
        message: str,
        code: str = "INTERNAL_ERROR",
        details: Optional[Dict[str, Any]] = None
    ):
        self.message = message
        self.code = code
        self.details = details or {}
        super().__init__(self.message)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "code": self.code,
            "message": self.message,
            "details": self.details
        }


# ============================================
# Authentication Errors (401-type)
# ============================================

class AuthenticationError(CorpusAdminError):
    """User authentication failed"""

    status_code = 401

    def __init__(self, message: str = "Authentication failed"):
        super().__init__(message, code="AUTH_FAILED")


class InvalidCredentialsError(AuthenticationError):
    """Email/password pair did not match an active account"""

    def __init__(self):
        super().__init__("Invalid email or password")
        self.code = "INVALID_CREDENTIALS"


# ============================================
# Resource Errors (404-type)
# ============================================

class ResourceNotFoundError(CorpusAdminError):
    """Base class for not found errors"""

    status_code = 404

    def __init__(self, resource_type: str, resource_id: str):
        super().__init__(
            f"{resource_type} not found",
            code=f"{resource_type.upper()}_NOT_FOUND",
            details={"resource_type": resource_type, "resource_id": resource_id}
        )


class DatasetNotFoundError(ResourceNotFoundError):
    """Dataset not found"""

    def __init__(self, dataset_id: str):
        super().__init__("Dataset", dataset_id)


class UserNotFoundError(ResourceNotFoundError):
    """User not found"""

    def __init__(self, user_id: str):
        super().__init__("User", user_id)


# ============================================
# Validation Errors (400-type)
# ============================================

class ValidationError(CorpusAdminError):
    """Input validation failed"""

    status_code = 400

    def __init__(self, message: str, field: Optional[str] = None,
                 errors: Optional[List[Dict[str, str]]] = None):
        details: Dict[str, Any] = {}
        if field:
            details["field"] = field
        if errors:
            details["errors"] = errors
        super().__init__(message, code="VALIDATION_ERROR", details=details)


class InvalidIdentifierError(ValidationError):
    """Path identifier is not a well-formed id"""

    def __init__(self, resource_type: str, resource_id: str):
        super().__init__(f"Invalid {resource_type.lower()} ID")
        self.code = "INVALID_ID"
        self.details = {"resource_type": resource_type, "resource_id": resource_id}


class LastAdminError(ValidationError):
    """Operation would leave the system without an active admin"""

    def __init__(self):
        super().__init__("Cannot delete the last admin user")
        self.code = "LAST_ADMIN"


# ============================================
# Conflict Errors (409-type)
# ============================================

class ConflictError(CorpusAdminError):
    """Request conflicts with the current state of a resource"""

    status_code = 409

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message, code="CONFLICT", details=details)


class EmailAlreadyExistsError(ConflictError):
    """Another account already uses this email"""

    def __init__(self, email: str):
        super().__init__("User with this email already exists", details={"email": email})
        self.code = "EMAIL_EXISTS"


# ============================================
# Helper function for API responses
# ============================================

def error_response(error: CorpusAdminError) -> Dict[str, Any]:
    """Convert exception to API error response format"""
    return {
        "success": False,
        "error": error.to_dict()
    }

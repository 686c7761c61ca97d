"""
Error taxonomy for the Todo API.

Services raise these instead of building HTTP responses themselves; the
handlers registered in ``todo_api.main`` turn them into JSON bodies of the
form ``{"message": ..., "stack": ...}``.

Usage:
    from todo_api.core.exceptions import NotFoundError

    if todo is None:
        raise NotFoundError("Todo not found")
"""

from typing import Any, Dict, List, Optional


def message_from_errors(errors: List[Dict[str, Any]]) -> str:
    """Human-readable message for the first pydantic/FastAPI validation error"""
    if not errors:
        return "Invalid input"
    error = errors[0]
    # ValueErrors raised by our own validators carry the exact message
    cause = (error.get("ctx") or {}).get("error")
    if isinstance(cause, Exception):
        return str(cause)
    field = ".".join(
        str(part) for part in error.get("loc", ()) if part not in ("body", "query", "path")
    )
    return f"{field}: {error['msg']}" if field else error["msg"]


class TodoAppError(Exception):
    """Base exception for all Todo API errors"""

    status_code: int = 500
    default_message: str = "Internal server error"

    def __init__(self, message: Optional[str] = None):
        self.message = message or self.default_message
        super().__init__(self.message)

    @property
    def headers(self) -> Optional[Dict[str, str]]:
        return None


class InvalidInputError(TodoAppError):
    """Malformed, missing or oversized input"""

    status_code = 400
    default_message = "Invalid input"


class UnauthenticatedError(TodoAppError):
    """Missing, malformed, invalid or expired bearer token"""

    status_code = 401
    default_message = "Not authorized"

    @property
    def headers(self) -> Optional[Dict[str, str]]:
        return {"WWW-Authenticate": "Bearer"}


class ForbiddenError(TodoAppError):
    """Authenticated, but not the owner of the record"""

    status_code = 403
    default_message = "User not authorized"


class NotFoundError(TodoAppError):
    status_code = 404
    default_message = "Not found"


class ConflictError(TodoAppError):
    """Duplicate unique value, e.g. an already registered email"""

    status_code = 400
    default_message = "User already exists"


class InvalidCredentialsError(TodoAppError):
    """Login failure; never says whether the email or the password was wrong"""

    status_code = 400
    default_message = "Invalid credentials"


class InternalError(TodoAppError):
    """Unexpected store or IO failure"""

    status_code = 500

import logging
from fastapi import Depends
from fastapi.security import OAuth2PasswordBearer
from sqlalchemy.orm import Session
from todo_api.core.database import get_db
from todo_api.core.exceptions import UnauthenticatedError
from todo_api.core.security import decode_access_token
from todo_api.models.user import User

logger = logging.getLogger(__name__)

# Extracts the token from "Authorization: Bearer <token>"
# auto_error=False so a missing header goes through our own error body
oauth2_scheme = OAuth2PasswordBearer(tokenUrl="api/users/login", auto_error=False)


async def get_current_user(
    token: str | None = Depends(oauth2_scheme),
    db: Session = Depends(get_db)
) -> User:
    """
    Get current authenticated user from JWT token.

    Used by every protected route. Any failure ends the request with 401;
    there is no retry.
    """
    if not token:
        raise UnauthenticatedError("Not authorized, no token")

    # Returns None if token is invalid, expired, or tampered with
    payload = decode_access_token(token)
    if payload is None:
        logger.info("Rejected request with invalid or expired token")
        raise UnauthenticatedError("Not authorized, invalid token")

    # JWT standard uses 'sub' (subject) claim for user identifier
    try:
        user_id = int(payload.get("sub"))
    except (ValueError, TypeError):
        raise UnauthenticatedError("Not authorized, invalid token")

    # User may have disappeared after the token was issued
    user = db.query(User).filter(User.id == user_id).first()
    if user is None:
        logger.info(f"Rejected token for unknown user {user_id}")
        raise UnauthenticatedError("Not authorized, user not found")

    return user

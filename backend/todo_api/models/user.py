from datetime import datetime, timezone
from sqlalchemy import Column, Integer, String, DateTime
from todo_api.core.database import Base


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class User(Base):
    """
    User model representing application users.

    Stores authentication credentials and profile information.
    Passwords are stored as bcrypt hashes, never plaintext.
    """
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String, nullable=False)
    # Email is unique and indexed for fast lookups during login
    email = Column(String, unique=True, index=True, nullable=False)
    hashed_password = Column(String, nullable=False)
    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=utcnow,
                        onupdate=utcnow, nullable=False)

import logging
from datetime import datetime
from typing import Optional
from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_serializer
from todo_api.core.database import get_db
from todo_api.core.exceptions import ConflictError, InternalError, InvalidCredentialsError
from todo_api.core.security import verify_password, get_password_hash, create_user_token
from todo_api.models.user import User
from todo_api.api.dependencies import get_current_user

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/users", tags=["users"])


class UserCreate(BaseModel):
    name: str = Field(min_length=2)
    email: EmailStr
    password: str = Field(min_length=6, max_length=72)


class UserLogin(BaseModel):
    email: EmailStr
    password: str = Field(min_length=1)


class UserResponse(BaseModel):
    id: int
    name: str
    email: str
    created_at: datetime
    updated_at: Optional[datetime]

    model_config = ConfigDict(from_attributes=True)

    @field_serializer('created_at', 'updated_at')
    def serialize_timestamps(self, value: Optional[datetime], _info):
        return value.isoformat() if value else None


class AuthResponse(BaseModel):
    id: int
    name: str
    email: str
    token: str


def _auth_response(user: User) -> AuthResponse:
    return AuthResponse(
        id=user.id,
        name=user.name,
        email=user.email,
        token=create_user_token(user.id),
    )


@router.post("", response_model=AuthResponse, status_code=status.HTTP_201_CREATED)
async def register(user_data: UserCreate, db: Session = Depends(get_db)):
    """Register a new user"""
    existing_user = db.query(User).filter(
        User.email == user_data.email
    ).first()
    if existing_user:
        raise ConflictError("User already exists")

    db_user = User(
        name=user_data.name.strip(),
        email=user_data.email,
        hashed_password=get_password_hash(user_data.password),
    )
    try:
        db.add(db_user)
        db.commit()
        # Refresh to load generated fields (id, timestamps)
        db.refresh(db_user)
    except IntegrityError:
        # Two registrations for the same email raced past the check above
        db.rollback()
        raise ConflictError("User already exists")
    except SQLAlchemyError:
        db.rollback()
        logger.exception("Database error during registration")
        raise InternalError("Database error occurred")

    logger.info(f"Registered user {db_user.id}")
    return _auth_response(db_user)


@router.post("/login", response_model=AuthResponse)
async def login(credentials: UserLogin, db: Session = Depends(get_db)):
    """Login and get access token"""
    user = db.query(User).filter(User.email == credentials.email).first()

    # Same error for unknown email and wrong password
    if not user or not verify_password(credentials.password, user.hashed_password):
        logger.info(f"Failed login for {credentials.email}")
        raise InvalidCredentialsError("Invalid credentials")

    return _auth_response(user)


@router.get("/me", response_model=UserResponse)
async def get_current_user_info(current_user: User = Depends(get_current_user)):
    """Get current user information"""
    return current_user

import logging
from typing import Any, Dict, List, Optional, Tuple
from fastapi import UploadFile
from pydantic import BaseModel, Field, ValidationError, field_validator
from sqlalchemy import or_
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session
from todo_api.core.exceptions import (
    ForbiddenError,
    InternalError,
    InvalidInputError,
    NotFoundError,
    message_from_errors,
)
from todo_api.models.todo import Todo, TodoTag
from todo_api.models.user import utcnow
from todo_api.services.attachment_service import attachment_service

logger = logging.getLogger(__name__)

TODO_NOT_FOUND_MESSAGE = "Todo not found"


class TodoUpdate(BaseModel):
    """
    Normalized todo input.

    Form posts arrive as loose strings; the validators below turn them into
    typed values once, so the rest of the service only sees clean data.
    """
    title: Optional[str] = None
    description: Optional[str] = None
    completed: Optional[bool] = None
    tags: Optional[List[str]] = None

    @field_validator("title")
    @classmethod
    def check_title(cls, value: Optional[str]) -> Optional[str]:
        if value is None:
            return value
        value = value.strip()
        if not value or value == "undefined":
            raise ValueError("Title cannot be empty or 'undefined'")
        return value

    @field_validator("description")
    @classmethod
    def blank_description(cls, value: Optional[str]) -> Optional[str]:
        # Empty description clears it
        if value is None or not value.strip():
            return None
        return value

    @field_validator("completed", mode="before")
    @classmethod
    def parse_completed(cls, value: Any) -> Any:
        if value is None or isinstance(value, bool):
            return value
        if isinstance(value, str) and value.strip().lower() in ("true", "false"):
            return value.strip().lower() == "true"
        raise ValueError("Completed must be true or false")

    @field_validator("tags", mode="before")
    @classmethod
    def parse_tags(cls, value: Any) -> Any:
        if value is None:
            return value
        if isinstance(value, str):
            value = [value]
        if not isinstance(value, (list, tuple)):
            raise ValueError("Tags must be a list of strings")

        tags: List[str] = []
        for item in value:
            if not isinstance(item, str):
                raise ValueError("Tags must be a list of strings")
            item = item.strip()
            if item and item not in tags:
                tags.append(item)
        return tags


class TodoCreate(TodoUpdate):
    title: Optional[str] = Field(default=None, validate_default=True)

    @field_validator("title")
    @classmethod
    def require_title(cls, value: Optional[str]) -> str:
        if value is None:
            raise ValueError("Title is required")
        return value


def parse_todo_input(model: type, data: Dict[str, Any]):
    try:
        return model.model_validate(data)
    except ValidationError as e:
        raise InvalidInputError(message_from_errors(e.errors()))


def _like_pattern(term: str) -> str:
    # % and _ in user input are matched literally
    escaped = term.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
    return f"%{escaped}%"


class TodoService:
    @staticmethod
    def list_todos(
        db: Session,
        user_id: int,
        page: int = 1,
        limit: int = 10,
        search: Optional[str] = None,
        tag: Optional[str] = None
    ) -> Tuple[List[Todo], int]:
        """Return one page of the user's todos (newest first) and the total match count"""
        query = db.query(Todo).filter(Todo.user_id == user_id)

        if search and search.strip():
            pattern = _like_pattern(search.strip())
            query = query.filter(or_(
                Todo.title.ilike(pattern, escape="\\"),
                Todo.description.ilike(pattern, escape="\\"),
            ))

        if tag and tag.strip():
            query = query.filter(Todo.tag_entries.any(TodoTag.name == tag.strip()))

        total_count = query.count()
        offset = (page - 1) * limit
        if offset >= total_count:
            # Past the last page; also keeps huge offsets away from the database
            return [], total_count
        todos = (
            query.order_by(Todo.created_at.desc(), Todo.id.desc())
            .offset(offset)
            .limit(limit)
            .all()
        )
        return todos, total_count

    @staticmethod
    def get_owned_todo(db: Session, todo_id: int, user_id: int) -> Todo:
        """
        Load a todo and check it belongs to the requester.

        Every single-record read and every mutation goes through here, and
        the check runs before any payload is looked at.
        """
        todo = db.query(Todo).filter(Todo.id == todo_id).first()
        if todo is None:
            raise NotFoundError(TODO_NOT_FOUND_MESSAGE)
        if todo.user_id != user_id:
            logger.warning(f"User {user_id} denied access to todo {todo_id}")
            raise ForbiddenError("User not authorized")
        return todo

    @staticmethod
    async def create_todo(
        db: Session,
        user_id: int,
        data: Dict[str, Any],
        image: Optional[UploadFile] = None,
        file: Optional[UploadFile] = None
    ) -> Todo:
        payload = parse_todo_input(TodoCreate, data)
        stored = await attachment_service.store_uploads(image, file)

        todo = Todo(
            user_id=user_id,
            title=payload.title,
            description=payload.description,
            completed=bool(payload.completed),
            image_path=stored.get("image_path"),
            file_path=stored.get("file_path"),
        )
        todo.set_tags(payload.tags or [])

        try:
            db.add(todo)
            db.commit()
            db.refresh(todo)
        except SQLAlchemyError:
            db.rollback()
            attachment_service.discard(stored.values())
            logger.exception(f"Failed to create todo for user {user_id}")
            raise InternalError("Database error occurred")

        logger.info(f"User {user_id} created todo {todo.id}")
        return todo

    @staticmethod
    async def update_todo(
        db: Session,
        todo_id: int,
        user_id: int,
        data: Dict[str, Any],
        image: Optional[UploadFile] = None,
        file: Optional[UploadFile] = None
    ) -> Todo:
        todo = TodoService.get_owned_todo(db, todo_id, user_id)
        payload = parse_todo_input(TodoUpdate, data)
        stored = await attachment_service.store_uploads(image, file)

        changes = payload.model_dump(exclude_unset=True)
        # Only description may be cleared; title and completed keep their value
        for field in ("title", "completed"):
            if changes.get(field, False) is None:
                del changes[field]
        tags = changes.pop("tags", None)
        for field, value in changes.items():
            setattr(todo, field, value)
        if tags is not None:
            todo.set_tags(tags)

        # Remember what the new uploads replace; removed once the row is saved
        replaced = [getattr(todo, field) for field in stored]
        for field, filename in stored.items():
            setattr(todo, field, filename)
        todo.updated_at = utcnow()

        try:
            db.commit()
            db.refresh(todo)
        except SQLAlchemyError:
            db.rollback()
            attachment_service.discard(stored.values())
            logger.exception(f"Failed to update todo {todo_id}")
            raise InternalError("Database error occurred")

        attachment_service.discard(replaced)
        logger.info(f"User {user_id} updated todo {todo_id}")
        return todo

    @staticmethod
    def delete_todo(db: Session, todo_id: int, user_id: int) -> int:
        todo = TodoService.get_owned_todo(db, todo_id, user_id)
        attached = [todo.image_path, todo.file_path]

        try:
            db.delete(todo)
            db.commit()
        except SQLAlchemyError:
            db.rollback()
            logger.exception(f"Failed to delete todo {todo_id}")
            raise InternalError("Database error occurred")

        # Row first, then files: a crash in between only leaks files
        attachment_service.discard(attached)
        logger.info(f"User {user_id} deleted todo {todo_id}")
        return todo_id


todo_service = TodoService()

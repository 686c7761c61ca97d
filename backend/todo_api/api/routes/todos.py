import math
from datetime import datetime
from typing import Any, Dict, List, Optional
from fastapi import APIRouter, Depends, File as FastAPIFile, Form, Query, Request, UploadFile, status
from pydantic import BaseModel, ConfigDict, Field, computed_field, field_serializer
from sqlalchemy.orm import Session
from todo_api.core.database import get_db
from todo_api.api.dependencies import get_current_user
from todo_api.models.user import User
from todo_api.services.attachment_service import attachment_service
from todo_api.services.todo_service import todo_service

router = APIRouter(prefix="/todos", tags=["todos"])


class TodoResponse(BaseModel):
    id: int
    user_id: int
    title: str
    description: Optional[str]
    completed: bool
    tags: List[str]
    image_path: Optional[str]
    file_path: Optional[str]
    created_at: datetime
    updated_at: Optional[datetime]

    model_config = ConfigDict(from_attributes=True)

    @computed_field
    @property
    def image_url(self) -> Optional[str]:
        return attachment_service.public_url(self.image_path)

    @computed_field
    @property
    def file_url(self) -> Optional[str]:
        return attachment_service.public_url(self.file_path)

    @field_serializer('created_at', 'updated_at')
    def serialize_timestamps(self, value: Optional[datetime], _info):
        return value.isoformat() if value else None


class Pagination(BaseModel):
    page: int
    limit: int
    total_pages: int = Field(alias="totalPages")
    total_count: int = Field(alias="totalCount")

    model_config = ConfigDict(populate_by_name=True)


class TodoListResponse(BaseModel):
    todos: List[TodoResponse]
    pagination: Pagination


class TodoDeleteResponse(BaseModel):
    id: int


async def todo_form_data(
    request: Request,
    title: Optional[str] = Form(None),
    description: Optional[str] = Form(None),
    completed: Optional[str] = Form(None),
    tags: Optional[List[str]] = Form(None),
    bracket_tags: Optional[List[str]] = Form(None, alias="tags[]"),
) -> Dict[str, Any]:
    """
    Collect the todo fields the client actually sent.

    Tags may come as repeated "tags" or "tags[]" fields; both are merged.
    FastAPI reports an empty form value as None, so the raw form decides
    whether a field was sent empty or not at all. Typing and validation
    happen in the service.
    """
    form = await request.form()
    data: Dict[str, Any] = {}
    for field, value in (("title", title), ("description", description)):
        if value is not None:
            data[field] = value
        elif field in form:
            data[field] = ""
    if completed is not None:
        data["completed"] = completed
    if tags is not None or bracket_tags is not None:
        data["tags"] = (tags or []) + (bracket_tags or [])
    return data


@router.get("", response_model=TodoListResponse)
async def list_todos(
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    search: Optional[str] = Query(None),
    tag: Optional[str] = Query(None),
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """List the current user's todos, newest first"""
    todos, total_count = todo_service.list_todos(
        db, current_user.id, page=page, limit=limit, search=search, tag=tag
    )
    return TodoListResponse(
        todos=[TodoResponse.model_validate(todo) for todo in todos],
        pagination=Pagination(
            page=page,
            limit=limit,
            total_pages=math.ceil(total_count / limit),
            total_count=total_count,
        ),
    )


@router.post("", response_model=TodoResponse, status_code=status.HTTP_201_CREATED)
async def create_todo(
    data: Dict[str, Any] = Depends(todo_form_data),
    image: Optional[UploadFile] = FastAPIFile(None),
    file: Optional[UploadFile] = FastAPIFile(None),
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Create a todo, optionally with an image and an attached file"""
    return await todo_service.create_todo(db, current_user.id, data, image=image, file=file)


@router.get("/{todo_id}", response_model=TodoResponse)
async def get_todo(
    todo_id: int,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Get a specific todo"""
    return todo_service.get_owned_todo(db, todo_id, current_user.id)


@router.put("/{todo_id}", response_model=TodoResponse)
async def update_todo(
    todo_id: int,
    data: Dict[str, Any] = Depends(todo_form_data),
    image: Optional[UploadFile] = FastAPIFile(None),
    file: Optional[UploadFile] = FastAPIFile(None),
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Update a todo; new uploads replace and delete the old ones"""
    return await todo_service.update_todo(
        db, todo_id, current_user.id, data, image=image, file=file
    )


@router.delete("/{todo_id}", response_model=TodoDeleteResponse)
async def delete_todo(
    todo_id: int,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Delete a todo together with its stored image and file"""
    deleted_id = todo_service.delete_todo(db, todo_id, current_user.id)
    return TodoDeleteResponse(id=deleted_id)

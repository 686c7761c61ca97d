import logging
import traceback
from typing import Optional
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles
from starlette.exceptions import HTTPException as StarletteHTTPException
from todo_api.core.config import settings
from todo_api.core.database import engine, Base
from todo_api.core.exceptions import TodoAppError, message_from_errors
from todo_api.storage.local_storage import storage
from todo_api.api.routes import todos, users

logging.basicConfig(
    level=settings.LOG_LEVEL,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)

# Create database tables from all models that inherit from Base
# In production, use migrations (Alembic) instead of create_all
Base.metadata.create_all(bind=engine)


app = FastAPI(
    title="Todo API",
    description="Personal task tracking with tags and attachments",
    version="1.0.0",
)

# CORS middleware - allows the dashboard to call the API from another origin
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.get_cors_origins(),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


def error_response(
    status_code: int,
    message: str,
    exc: Optional[BaseException] = None,
    headers: Optional[dict] = None
) -> JSONResponse:
    """Every failure leaves the API as {"message", "stack"}"""
    stack = None
    if exc is not None and not settings.is_production:
        stack = "".join(traceback.format_exception(type(exc), exc, exc.__traceback__))
    return JSONResponse(
        status_code=status_code,
        content={"message": message, "stack": stack},
        headers=headers,
    )


@app.exception_handler(TodoAppError)
async def todo_app_error_handler(request: Request, exc: TodoAppError):
    return error_response(exc.status_code, exc.message, exc, exc.headers)


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError):
    return error_response(400, message_from_errors(exc.errors()), exc)


@app.exception_handler(StarletteHTTPException)
async def http_error_handler(request: Request, exc: StarletteHTTPException):
    return error_response(exc.status_code, str(exc.detail), exc, getattr(exc, "headers", None))


@app.exception_handler(Exception)
async def unhandled_error_handler(request: Request, exc: Exception):
    logger.exception(f"Unhandled error on {request.method} {request.url.path}")
    return error_response(500, "Internal server error", exc)


# Register API route modules
# All routes are prefixed with /api for consistency
app.include_router(users.router, prefix="/api")
app.include_router(todos.router, prefix="/api")

# Stored uploads are public, keyed by their generated filename
app.mount(
    settings.UPLOAD_URL_PREFIX,
    StaticFiles(directory=storage.upload_dir, check_dir=False),
    name="uploads",
)


@app.get("/")
async def root():
    """Root endpoint - API information"""
    return {"message": "Todo API", "version": "1.0.0"}


@app.get("/health")
async def health():
    """Health check endpoint - used by monitoring/deployment tools"""
    return {"status": "healthy"}

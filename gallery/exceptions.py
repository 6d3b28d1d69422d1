"""
    Centralized exception handling for the FastAPI application.
"""
from fastapi import Request
from starlette.exceptions import HTTPException
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
import logging

log = logging.getLogger(__name__)

class APIException(Exception):
    """Base class for API exceptions."""
    def __init__(self, status_code: int, detail: str):
        self.status_code = status_code
        self.detail = detail
        super().__init__(self.detail)

class ValidationException(APIException):
    """Exception for missing or invalid input."""
    def __init__(self, detail: str):
        super().__init__(status_code=400, detail=detail)

class InvalidFileTypeException(APIException):
    """Exception for uploads that are not an accepted image type."""
    def __init__(self, detail: str = "Invalid file type. Only JPEG, PNG, GIF, and WebP are allowed."):
        super().__init__(status_code=400, detail=detail)

class FileTooLargeException(APIException):
    """Exception for uploads over the configured size limit."""
    def __init__(self, size: int, limit: int):
        self.size = size
        self.limit = limit
        super().__init__(status_code=400, detail=f"File too large: {size} bytes exceeds the {limit} byte limit.")

class ImageNotFoundException(APIException):
    """Exception for when an image is not found."""
    def __init__(self, image_id: str):
        self.image_id = image_id
        super().__init__(status_code=404, detail="Image not found")

class UserNotFoundException(APIException):
    """Exception for when a user is not found."""
    def __init__(self, user_ref: str):
        self.user_ref = user_ref
        super().__init__(status_code=404, detail="User not found")

class ForbiddenException(APIException):
    """Exception for ownership violations."""
    def __init__(self, detail: str = "Not authorized to delete this image"):
        super().__init__(status_code=403, detail=detail)

class AlreadyLikedException(APIException):
    """Exception for a second like from the same user."""
    def __init__(self):
        super().__init__(status_code=400, detail="Already liked")

class AuthenticationException(APIException):
    """Exception for missing or invalid credentials."""
    def __init__(self, detail: str = "Invalid or expired token"):
        super().__init__(status_code=401, detail=detail)

class StorageException(APIException):
    """Exception for blob store failures."""
    def __init__(self, detail: str):
        super().__init__(status_code=500, detail=detail)

class DynamoDBException(APIException):
    """Exception for DynamoDB failures."""
    def __init__(self, detail: str):
        super().__init__(status_code=500, detail=detail)

async def api_exception_handler(request: Request, exc: APIException):
    """Handles API exceptions."""
    if exc.status_code >= 500:
        log.error(f"API Exception: {exc.detail}", exc_info=exc)
    else:
        log.info(f"API Exception ({exc.status_code}): {exc.detail}")
    return JSONResponse(
        status_code=exc.status_code,
        content={"error": exc.detail},
    )

async def http_exception_handler(request: Request, exc: HTTPException):
    """Handles FastAPI HTTP exceptions."""
    if exc.status_code >= 500:
        log.error(f"HTTP Exception: {exc.detail}", exc_info=exc)
    else:
        log.info(f"HTTP Exception ({exc.status_code}): {exc.detail}")
    return JSONResponse(
        status_code=exc.status_code,
        content={"error": exc.detail},
    )

async def validation_exception_handler(request: Request, exc: RequestValidationError):
    """Handles request validation errors as bad input."""
    errors = exc.errors()
    if errors:
        first = errors[0]
        field = ".".join(str(part) for part in first.get("loc", ()) if part not in ("body", "query", "path"))
        message = f"{field}: {first.get('msg')}" if field else str(first.get("msg"))
    else:
        message = "Invalid request"
    log.info(f"Request validation failed: {message}")
    return JSONResponse(
        status_code=400,
        content={"error": message},
    )

async def generic_exception_handler(request: Request, exc: Exception):
    """Handles all other exceptions."""
    log.error(f"Unhandled Exception: {str(exc)}", exc_info=exc)
    return JSONResponse(
        status_code=500,
        content={"error": "An unexpected error occurred."},
    )

def add_exception_handlers(app):
    """Adds exception handlers to the FastAPI app."""
    app.add_exception_handler(APIException, api_exception_handler)
    app.add_exception_handler(HTTPException, http_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(Exception, generic_exception_handler)

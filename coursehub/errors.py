"""
Error taxonomy and JSON error envelope.

Every error is an HTTPException so services can raise it directly, the same
way routers do. `register_error_handlers` renders them as
{"success": false, "code": ..., "message": ...}.
"""

import logging
from typing import List, Optional

from fastapi import FastAPI, HTTPException, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pymongo.errors import PyMongoError

logger = logging.getLogger(__name__)


class CourseHubError(HTTPException):
    status_code = 500
    code = "internal_error"
    default_message = "Internal server error"

    def __init__(self, message: Optional[str] = None):
        self.message = message or self.default_message
        super().__init__(status_code=self.status_code, detail=self.message)

    def to_dict(self) -> dict:
        return {"success": False, "code": self.code, "message": self.message}


class Unauthenticated(CourseHubError):
    status_code = 401
    code = "unauthenticated"
    default_message = "Authentication required"

    def __init__(self, message: Optional[str] = None):
        super().__init__(message)
        self.headers = {"WWW-Authenticate": "Bearer"}


class Forbidden(CourseHubError):
    status_code = 403
    code = "forbidden"
    default_message = "Not authorized to perform this action"


class NotFound(CourseHubError):
    status_code = 404
    code = "not_found"
    default_message = "Resource not found"


class Conflict(CourseHubError):
    status_code = 409
    code = "conflict"
    default_message = "Resource already exists"


class ValidationFailed(CourseHubError):
    """Carries every offending field, not just the first one"""
    status_code = 400
    code = "validation_failed"
    default_message = "Validation failed"

    def __init__(self, errors: List[dict], message: Optional[str] = None):
        self.errors = errors
        super().__init__(message)

    @property
    def fields(self) -> List[str]:
        return [e["field"] for e in self.errors]

    def to_dict(self) -> dict:
        body = super().to_dict()
        body["errors"] = self.errors
        return body


class Unavailable(CourseHubError):
    status_code = 503
    code = "unavailable"
    default_message = "Service temporarily unavailable"

    def __init__(self, message: Optional[str] = None, retryable: bool = False):
        self.retryable = retryable
        super().__init__(message)

    def to_dict(self) -> dict:
        body = super().to_dict()
        body["retryable"] = self.retryable
        return body


# ==================== HANDLERS ====================

def _error_response(error: CourseHubError) -> JSONResponse:
    return JSONResponse(
        status_code=error.status_code,
        content=error.to_dict(),
        headers=getattr(error, "headers", None),
    )


def _location_to_field(loc) -> str:
    # Union members add their type name to loc, so only the field name is kept
    parts = [str(p) for p in loc if p not in ("body", "query", "path", "header")]
    return parts[0] if parts else "body"


def field_errors(raw_errors) -> List[dict]:
    """pydantic error dicts -> one {field, message} entry per offending field"""
    errors = {}
    for err in raw_errors:
        field = _location_to_field(err.get("loc", ()))
        errors.setdefault(field, {"field": field, "message": err.get("msg", "Invalid value")})
    return list(errors.values())


def register_error_handlers(app: FastAPI) -> None:

    @app.exception_handler(CourseHubError)
    async def course_hub_error_handler(request: Request, exc: CourseHubError):
        if exc.status_code >= 500:
            logger.error(f"{request.method} {request.url.path} -> {exc.code}: {exc.message}")
        return _error_response(exc)

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(request: Request, exc: RequestValidationError):
        return _error_response(ValidationFailed(field_errors(exc.errors())))

    @app.exception_handler(PyMongoError)
    async def database_error_handler(request: Request, exc: PyMongoError):
        # Driver details stay in the log
        logger.error(f"Database error on {request.method} {request.url.path}", exc_info=exc)
        return _error_response(Unavailable(retryable=request.method == "GET"))

    @app.exception_handler(Exception)
    async def unhandled_error_handler(request: Request, exc: Exception):
        logger.error(f"Unhandled error on {request.method} {request.url.path}", exc_info=exc)
        return _error_response(CourseHubError())

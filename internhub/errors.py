"""
Typed API errors.

Every failure the lifecycle routers raise is one of these. They are plain
HTTPException subclasses so FastAPI renders them as usual; the handler
registered in main.py adds a machine-readable `code` next to `detail`.
"""

from fastapi import HTTPException, Request
from fastapi.responses import JSONResponse


class AppError(HTTPException):
    status_code = 500
    code = "INTERNAL_SERVER_ERROR"

    def __init__(self, detail: str):
        super().__init__(status_code=self.status_code, detail=detail)


class NotFoundError(AppError):
    """Referenced entity (or the caller's own profile) does not exist."""
    status_code = 404
    code = "NOT_FOUND"


class ForbiddenError(AppError):
    """Caller is authenticated but lacks the role or ownership required."""
    status_code = 403
    code = "FORBIDDEN"


class ConflictError(AppError):
    """A uniqueness or state-machine rule would be broken."""
    status_code = 409
    code = "CONFLICT"


class ValidationFailedError(AppError):
    """Input passed the schema but fails a rule that needs database state."""
    status_code = 422
    code = "VALIDATION"


async def app_error_handler(request: Request, exc: AppError) -> JSONResponse:
    return JSONResponse(
        status_code=exc.status_code,
        content={"detail": exc.detail, "code": exc.code},
    )

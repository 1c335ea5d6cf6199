from fastapi import Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from .exceptions import MessagingError


class ValidationErrorHandler:
    async def __call__(self, request: Request, exc: RequestValidationError):
        errors = [
            {
                "loc": err.get("loc"),
                "msg": str(err.get("msg")),
                "type": err.get("type"),
            }
            for err in exc.errors()
        ]

        return JSONResponse(
            status_code=422,
            content={
                "success": False,
                "error": "Validation failed",
                "details": errors,
            },
        )


class MessagingErrorHandler:
    async def __call__(self, request: Request, exc: MessagingError):
        headers = {"WWW-Authenticate": "Bearer"} if exc.status_code == 401 else None
        return JSONResponse(
            status_code=exc.status_code,
            content={
                "success": False,
                "error": type(exc).__name__,
                "detail": exc.detail,
            },
            headers=headers,
        )

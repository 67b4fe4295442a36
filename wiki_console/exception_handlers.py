import structlog
from fastapi import Request
from fastapi.responses import JSONResponse

from wiki_console.error_classification import classify_error
from wiki_console.exceptions import (
    AppError,
    ConflictError,
    UnauthorizedError,
    ValidationError,
)

logger = structlog.get_logger()


def _error_body(exc: AppError) -> dict:
    classified = classify_error(exc)
    return {
        "error": exc.code,
        "message": classified.message,
        "kind": classified.kind,
        "icon": classified.icon,
    }


async def app_error_handler(request: Request, exc: AppError) -> JSONResponse:
    logger.error("request_failed", path=request.url.path, code=exc.code, error=exc.message)
    return JSONResponse(status_code=500, content=_error_body(exc))


async def validation_error_handler(request: Request, exc: ValidationError) -> JSONResponse:
    return JSONResponse(status_code=422, content=_error_body(exc))


async def conflict_handler(request: Request, exc: ConflictError) -> JSONResponse:
    return JSONResponse(status_code=409, content=_error_body(exc))


async def unauthorized_handler(request: Request, exc: UnauthorizedError) -> JSONResponse:
    return JSONResponse(
        status_code=401,
        content=_error_body(exc),
        headers={"WWW-Authenticate": "Bearer"},
    )


def register_exception_handlers(app):
    app.add_exception_handler(ValidationError, validation_error_handler)
    app.add_exception_handler(ConflictError, conflict_handler)
    app.add_exception_handler(UnauthorizedError, unauthorized_handler)
    app.add_exception_handler(AppError, app_error_handler)

"""Turns any raw error into a uniform, user-facing classification."""

import traceback
from enum import StrEnum

import httpx
from pydantic import BaseModel

from wiki_console.exceptions import AppError, RpcError, ValidationError


class ErrorKind(StrEnum):
    WARNING = "warning"
    ERROR = "error"
    NETWORK = "network"
    PERMISSION = "permission"
    TIMEOUT = "timeout"
    NOT_FOUND = "not-found"
    VALIDATION = "validation"
    SERVER = "server"


ERROR_ICONS: dict[ErrorKind, str] = {
    ErrorKind.WARNING: "⚠️",
    ErrorKind.ERROR: "❌",
    ErrorKind.NETWORK: "🌐",
    ErrorKind.PERMISSION: "🔒",
    ErrorKind.TIMEOUT: "⏱️",
    ErrorKind.NOT_FOUND: "📄",
    ErrorKind.VALIDATION: "✏️",
    ErrorKind.SERVER: "🚨",
}

# Connect code -> (kind, friendly message). A None message keeps the server's own text.
_RPC_CODES: dict[str, tuple[ErrorKind, str | None]] = {
    "not_found": (ErrorKind.NOT_FOUND, "Not found"),
    "permission_denied": (ErrorKind.PERMISSION, "Permission denied"),
    "unauthenticated": (ErrorKind.PERMISSION, "Permission denied"),
    "deadline_exceeded": (ErrorKind.TIMEOUT, "Request timed out"),
    "unavailable": (ErrorKind.NETWORK, "Service unavailable"),
    "invalid_argument": (ErrorKind.VALIDATION, None),
    "internal": (ErrorKind.SERVER, None),
}


class ClassifiedError(BaseModel):
    message: str
    detail: str | None = None
    icon: str
    kind: ErrorKind
    failed_goal: str | None = None


def _classified(
    kind: ErrorKind, message: str, detail: str | None, operation: str | None
) -> ClassifiedError:
    return ClassifiedError(
        message=message,
        detail=detail,
        icon=ERROR_ICONS[kind],
        kind=kind,
        failed_goal=operation,
    )


def _format_detail(error: BaseException) -> str:
    return "".join(traceback.format_exception(error)).rstrip()


def classify_error(error: object, operation: str | None = None) -> ClassifiedError:
    """Classify an error raised while trying to perform ``operation``.

    Known transport shapes map to specific messages. Plain exceptions keep their
    own message with a traceback attached as detail. Anything that is not an
    exception at all becomes "Failed to {operation}" with the value as detail.
    """
    if isinstance(error, ClassifiedError):
        return error

    if isinstance(error, RpcError):
        kind, friendly = _RPC_CODES.get(error.rpc_code, (ErrorKind.ERROR, None))
        if friendly is None:
            return _classified(kind, error.message, None, operation)
        return _classified(kind, friendly, error.message, operation)

    if isinstance(error, httpx.TimeoutException):
        return _classified(ErrorKind.TIMEOUT, "Request timed out", str(error) or None, operation)

    if isinstance(error, httpx.TransportError):
        return _classified(ErrorKind.NETWORK, "Service unavailable", str(error) or None, operation)

    if isinstance(error, ValidationError):
        return _classified(ErrorKind.VALIDATION, error.message, None, operation)

    if isinstance(error, AppError):
        return _classified(ErrorKind.ERROR, error.message, _format_detail(error), operation)

    if isinstance(error, BaseException):
        message = str(error) or type(error).__name__
        return _classified(ErrorKind.ERROR, message, _format_detail(error), operation)

    goal = operation or "complete the operation"
    return _classified(ErrorKind.ERROR, f"Failed to {goal}", str(error), operation)

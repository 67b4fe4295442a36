class AppError(Exception):
    def __init__(self, message: str, code: str = "INTERNAL_ERROR"):
        self.message = message
        self.code = code
        super().__init__(message)


class ValidationError(AppError):
    def __init__(self, message: str):
        super().__init__(message, code="VALIDATION_ERROR")


class ConflictError(AppError):
    def __init__(self, message: str):
        super().__init__(message, code="CONFLICT")


class UnauthorizedError(AppError):
    def __init__(self, message: str):
        super().__init__(message, code="UNAUTHORIZED")


class ParseError(AppError):
    """The uploaded file could not be parsed. Retryable by re-selecting the file."""

    def __init__(self, message: str):
        super().__init__(message, code="PARSE_ERROR")


class SubmissionError(AppError):
    """The import job could not be started."""

    def __init__(self, message: str):
        super().__init__(message, code="SUBMISSION_ERROR")


class StreamError(AppError):
    """The job status stream failed. The server-side job keeps running."""

    def __init__(self, message: str):
        super().__init__(message, code="STREAM_ERROR")


class CancellationError(AppError):
    """A subscription was cancelled by its owner. Never shown to the user."""

    def __init__(self, message: str = "Operation cancelled"):
        super().__init__(message, code="CANCELLED")


class RpcError(AppError):
    """An error returned by the wiki backend, carrying its Connect error code."""

    def __init__(self, rpc_code: str, message: str, procedure: str | None = None):
        self.rpc_code = rpc_code
        self.procedure = procedure
        super().__init__(message or rpc_code, code="RPC_ERROR")

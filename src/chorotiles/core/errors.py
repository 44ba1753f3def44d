"""Application error hierarchy and error logging."""

import logging

logger = logging.getLogger(__name__)


class AppError(Exception):
    """Base class for all chorotiles errors.

    Operational errors are expected failures (bad input, a tool exiting
    non-zero); non-operational ones indicate a programming error.
    """

    def __init__(
        self,
        message: str,
        status_code: int = 500,
        is_operational: bool = True,
        cause: BaseException | None = None,
    ):
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.is_operational = is_operational
        self.cause = cause
        if cause is not None:
            self.__cause__ = cause


class ValidationError(AppError):
    def __init__(self, message: str):
        super().__init__(message, 400)


class NotFoundError(AppError):
    def __init__(self, message: str):
        super().__init__(message, 404)


class FileSystemError(AppError):
    def __init__(self, message: str, cause: BaseException | None = None):
        super().__init__(message, 500, cause=cause)


class ConversionError(AppError):
    def __init__(self, message: str, cause: BaseException | None = None):
        super().__init__(message, 500, cause=cause)


class ProcessError(AppError):
    """A child process exited non-zero or was killed by a signal."""

    def __init__(
        self,
        process_name: str,
        exit_code: int | None,
        signal: str | None = None,
        stderr: str = "",
    ):
        signal_msg = f" (signal: {signal})" if signal else ""
        stderr_msg = f"\n{stderr}" if stderr else ""
        super().__init__(
            f"{process_name} failed with exit code {exit_code}{signal_msg}{stderr_msg}",
            500,
        )
        self.process_name = process_name
        self.exit_code = exit_code
        self.signal = signal
        self.stderr = stderr


def log_error(error: BaseException | object, context: str | None = None) -> None:
    """Log an error at a level matching its kind."""
    prefix = f"[{context}] " if context else ""
    if isinstance(error, AppError):
        if error.is_operational:
            logger.warning("%sOperational error (%d): %s", prefix, error.status_code, error.message)
        else:
            logger.error(
                "%sProgramming error (%d): %s", prefix, error.status_code, error.message,
                exc_info=error,
            )
    elif isinstance(error, BaseException):
        logger.error(
            "%sUnexpected error: %s: %s", prefix, type(error).__name__, error,
            exc_info=error,
        )
    else:
        logger.error("%sUnknown error: %s", prefix, error)

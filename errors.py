"""Error kinds raised by services and rendered by the API layer."""

from typing import Optional


class AppError(Exception):
    status_code = 500

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code


class InvalidInputError(AppError):
    status_code = 400


class UnauthenticatedError(AppError):
    status_code = 401


class ForbiddenError(AppError):
    status_code = 403


class NotFoundError(AppError):
    status_code = 404


class ConflictError(AppError):
    status_code = 400


class UpstreamUnavailableError(AppError):
    """The catalog could not be reached."""
    status_code = 503


class UpstreamTimeoutError(UpstreamUnavailableError):
    """The catalog did not answer within the request timeout."""
    status_code = 504


class UpstreamRejectedError(AppError):
    """The catalog answered with a non-2xx status."""
    status_code = 502

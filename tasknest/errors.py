from __future__ import annotations

from typing import Optional


class TaskNestError(Exception):
    """Base error; converted to a ``{message, error?}`` JSON body at the request boundary."""

    status_code = 500

    def __init__(self, message: str, error: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.error = error

    def to_body(self) -> dict:
        body = {"message": self.message}
        if self.error:
            body["error"] = self.error
        return body


class AuthError(TaskNestError):
    status_code = 401


class NotFoundError(TaskNestError):
    status_code = 404


class ValidationError(TaskNestError):
    status_code = 400


class GenerationError(TaskNestError):
    """The oracle answered, but nothing usable could be extracted."""

    status_code = 500


class TransportError(TaskNestError):
    """The oracle (or another upstream) could not be reached or answered with an error."""

    status_code = 500

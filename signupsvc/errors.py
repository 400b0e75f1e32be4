"""Errors raised by the signup service."""

from __future__ import annotations


class SignupError(Exception):
    """Base class for all signup service errors."""

    reason = "Unknown"
    status = "Failure"


class NotFoundError(SignupError):
    """A requested resource does not exist."""

    reason = "NotFound"

    def __init__(self, name: str, resource: str = "") -> None:
        self.name = name
        self.resource = resource
        super().__init__(f'{resource} "{name}" not found')


class ForbiddenError(SignupError):
    """The requested operation is not permitted for this user."""

    reason = "Forbidden"

    def __init__(self, message: str, details: str = "") -> None:
        self.message = message
        self.details = details
        super().__init__(f"{message}: {details}" if details else message)


class ConflictError(SignupError):
    """The operation conflicts with the current state of a resource."""

    reason = "Conflict"

    def __init__(self, message: str, resource: str = "", name: str = "") -> None:
        self.message = message
        self.resource = resource
        self.name = name
        super().__init__(
            f'Operation cannot be fulfilled on {resource} "{name}": {message}'
        )


class InternalError(SignupError):
    """An unexpected failure, carrying its cause and a description."""

    reason = "InternalError"

    def __init__(self, cause: object, details: str) -> None:
        self.details = details
        if isinstance(cause, BaseException):
            self.__cause__ = cause
        super().__init__(f"{cause}: {details}")


def is_not_found(error: BaseException | None) -> bool:
    """Return True when the error reports a missing resource."""
    return isinstance(error, NotFoundError)
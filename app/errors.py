"""Application error types.

Services raise these; ``main.py`` renders them as ``{"status", "detail"}``
JSON responses with the matching status code.
"""


class AppError(Exception):
    """Base class for errors that map to an HTTP response."""

    status_code: int = 500
    default_message: str = "Something went wrong"

    def __init__(self, message: str | None = None) -> None:
        self.message = message or self.default_message
        super().__init__(self.message)

    @property
    def status(self) -> str:
        return "fail" if self.status_code < 500 else "error"


class BadRequest(AppError):
    status_code = 400
    default_message = "Invalid request"


class Unauthorized(AppError):
    status_code = 401
    default_message = "You are not logged in! Please log in to get access."


class Forbidden(AppError):
    status_code = 403
    default_message = "You do not have permission to perform this action"


class NotFound(AppError):
    status_code = 404
    default_message = "Not found"


class InvalidOrExpiredToken(AppError):
    """Reset token lookup failed. The message never says which check failed."""

    status_code = 400
    default_message = "Token is invalid or has expired. Please request a new one."


class InvalidCredentials(AppError):
    status_code = 400
    default_message = "Your current password is incorrect"


class EmailDeliveryError(AppError):
    status_code = 500
    default_message = "There was an error sending the email. Try again later!"


class InternalError(AppError):
    status_code = 500

"""
Application error type raised by views and helpers.

Anything raised as AppError reaches the client as
``{"success": false, "message": <message>}`` with the given status code,
via social.middleware.ApiErrorMiddleware.
"""


class AppError(Exception):
    """Operational error carrying the HTTP status to answer with."""

    def __init__(self, message, status_code=500):
        super().__init__(message)
        self.message = message
        self.status_code = status_code

    def __str__(self):
        return self.message


class BadRequest(AppError):
    def __init__(self, message="Bad request"):
        super().__init__(message, 400)


class Unauthorized(AppError):
    def __init__(self, message="Authentication required"):
        super().__init__(message, 401)


class Forbidden(AppError):
    def __init__(self, message="Access denied"):
        super().__init__(message, 403)


class NotFound(AppError):
    def __init__(self, message="Resource not found"):
        super().__init__(message, 404)


class Conflict(AppError):
    def __init__(self, message="Resource already exists"):
        super().__init__(message, 409)

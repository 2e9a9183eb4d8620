"""Errors raised by the Cartify API client."""


class CartifyError(Exception):
    """Base class for all client errors."""


class ApiError(CartifyError):
    """Non-success HTTP response from the Cartify backend."""

    def __init__(self, status_code: int, message: str, payload=None):
        self.status_code = status_code
        self.message = message
        self.payload = payload
        super().__init__(message)


class AuthenticationRequired(ApiError):
    """401: the session is gone, the user has to log in again."""

    def __init__(self, message: str = "Authentication required. Please log in again.", payload=None):
        super().__init__(401, message, payload)


class NotFound(ApiError):
    def __init__(self, message: str = "The requested resource was not found.", payload=None):
        super().__init__(404, message, payload)


class ServerError(ApiError):
    def __init__(self, status_code: int = 500, message: str = "Server error. Please try again later.", payload=None):
        super().__init__(status_code, message, payload)


class NetworkError(CartifyError):
    """The request never got an HTTP response."""

    def __init__(self, message: str = "Network error. Please check your connection."):
        self.message = message
        super().__init__(message)


class InvalidResponse(CartifyError):
    """The backend answered with a payload we cannot normalize."""

    pass

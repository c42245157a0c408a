"""
Error taxonomy for the API.

Every error carries the HTTP status it maps to; main.py renders all of them
as {"error": message}.
"""


class ApiError(Exception):
    status_code = 500
    message = "Internal server error"

    def __init__(self, message=None):
        super().__init__(message or self.message)
        if message:
            self.message = message


class NotFoundError(ApiError):
    status_code = 404
    message = "Not found"


class UnauthorizedError(ApiError):
    status_code = 401
    message = "Invalid credentials"


class ConfigurationError(ApiError):
    status_code = 500
    message = "Server configuration error"


class AggregationError(ApiError):
    # Store failures and malformed records collapse to a generic 500
    status_code = 500
    message = "Internal server error"

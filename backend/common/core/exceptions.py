class AppException(Exception):
    """Base application exception."""

    pass


class ValidationError(AppException):
    """Validation error exception."""

    pass


class ExternalServiceError(AppException):
    """A third-party service call failed."""

    pass

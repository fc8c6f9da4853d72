"""
Exceptions raised by the session and inventory services.
"""


class ServiceError(Exception):
    """Base exception for service-level errors."""

    pass


class SessionValidationError(ServiceError):
    """
    Raised when submitted form data is incomplete or invalid.

    Attributes:
        field: The form field that failed validation (optional)
        message: Detailed error message
    """

    def __init__(self, message: str, field: str | None = None):
        self.field = field
        self.message = message
        super().__init__(f"{message} (field='{field}')" if field else message)


class MutationError(ServiceError):
    """
    Raised when a create, update or delete could not be applied.

    The message includes the underlying storage error text so it can be
    shown to the user as is.
    """

    pass

"""Custom exception classes for the application."""


class AppError(Exception):
    """Base application error class."""

    def __init__(self, message, status_code=400):
        """Initialize the error."""
        super().__init__(message)
        self.status_code = status_code
        self.message = message


class ValidationError(AppError):
    """Raised when user input fails validation."""

    def __init__(self, message="Validation failed."):
        """Initialize the error."""
        super().__init__(message, 400)


class NotFoundError(AppError):
    """Raised when a resource is not found."""

    def __init__(self, message="Resource not found."):
        """Initialize the error."""
        super().__init__(message, 404)


class StateConflictError(AppError):
    """Raised when a request conflicts with the current state of a resource."""

    def __init__(self, message="The resource is not in a state that allows this."):
        """Initialize the error."""
        super().__init__(message, 409)


class DuplicateResourceError(StateConflictError):
    """Raised when trying to create a resource that already exists."""

    def __init__(self, message="Resource already exists."):
        """Initialize the error."""
        super().__init__(message)


class IntegrityError(AppError):
    """Raised when a match result is internally inconsistent."""

    def __init__(self, message="Result is inconsistent."):
        """Initialize the error."""
        super().__init__(message, 422)

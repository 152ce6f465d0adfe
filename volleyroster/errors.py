"""Custom exception classes for the application."""


class AppError(Exception):
    """Base application error class."""

    code = "app_error"

    def __init__(self, message, status_code=400):
        """Initialize the error."""
        super().__init__(message)
        self.status_code = status_code
        self.message = message


class ValidationError(AppError):
    """Raised when user input fails validation."""

    code = "validation_error"

    def __init__(self, message="Validation failed."):
        """Initialize the error."""
        super().__init__(message, 400)


class DuplicateResourceError(AppError):
    """Raised when trying to create a resource that already exists."""

    code = "duplicate_resource"

    def __init__(self, message="Resource already exists."):
        """Initialize the error."""
        super().__init__(message, 409)


class NotFoundError(AppError):
    """Raised when a resource is not found."""

    code = "not_found"

    def __init__(self, message="Resource not found."):
        """Initialize the error."""
        super().__init__(message, 404)


class UnauthorizedError(AppError):
    """Raised when the current user lacks the role an action needs."""

    code = "unauthorized"

    def __init__(self, message="You are not authorized to perform this action."):
        """Initialize the error."""
        super().__init__(message, 403)


class RosterError(AppError):
    """Base class for expected roster conditions (not system faults)."""


class AlreadyRegisteredError(RosterError):
    """Raised when a user signs up for a match they are already on."""

    code = "already_registered"

    def __init__(self, message="You are already signed up for this match."):
        """Initialize the error."""
        super().__init__(message, 409)


class NotRegisteredError(RosterError):
    """Raised when the targeted user or entry is not on the roster."""

    code = "not_registered"

    def __init__(self, message="You are not signed up for this match."):
        """Initialize the error."""
        super().__init__(message, 404)


class CapacityExceededError(RosterError):
    """Raised when a promotion would overflow the participant list."""

    code = "capacity_exceeded"

    def __init__(self, message="The participant list is full."):
        """Initialize the error."""
        super().__init__(message, 409)


class GuestLimitExceededError(ValidationError):
    """Raised when a sponsor tries to bring more guests than allowed."""

    code = "guest_limit_exceeded"

    def __init__(self, message="You cannot bring any more guests to this match."):
        """Initialize the error."""
        super().__init__(message)


class DuplicateScheduleError(DuplicateResourceError):
    """Raised when an active match already exists at the same date and time."""

    code = "duplicate_schedule"

    def __init__(self, message="A match is already scheduled at this date and time."):
        """Initialize the error."""
        super().__init__(message)


class MatchNotFoundError(NotFoundError):
    """Raised when no active match exists with the given id."""

    code = "match_not_found"

    def __init__(self, message="Match not found."):
        """Initialize the error."""
        super().__init__(message)


class SessionNotFoundError(NotFoundError):
    """Raised when no archived session exists with the given id."""

    code = "session_not_found"

    def __init__(self, message="Session not found."):
        """Initialize the error."""
        super().__init__(message)

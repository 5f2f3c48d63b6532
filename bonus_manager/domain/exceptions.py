"""Domain-specific exceptions"""

from typing import Optional


class DomainException(Exception):
    """Base exception for domain layer"""

    pass


class MissingCredentialsError(DomainException):
    """Account email/username or password is not configured"""

    pass


class LoginError(DomainException):
    """Login was rejected or blocked by site checks"""

    def __init__(self, message: str, hint: Optional[str] = None):
        super().__init__(message)
        self.hint = hint


class SessionUnauthenticatedError(DomainException):
    """Account overview redirected back to the login page"""

    pass


class NavigationError(DomainException):
    """Page failed to load within the configured timeout"""

    pass


class ExtractionError(DomainException):
    """No bonus point value could be parsed from the page"""

    pass


class StepError(DomainException):
    """Failure while executing a single plan step"""

    pass


class ActionSurfaceNotFoundError(StepError):
    """No container or control matches the requested action"""

    pass


class SubmissionError(StepError):
    """Setting a field or clicking a control failed, or the server rejected it"""

    pass


class ConfirmationError(StepError):
    """Expected confirmation prompt never appeared"""

    pass


class AcknowledgmentTimeoutError(StepError):
    """Server acknowledgment did not arrive and no success message was shown"""

    pass


class SnapshotAPIError(DomainException):
    """Snapshot service unreachable or returned an unusable response"""

    pass

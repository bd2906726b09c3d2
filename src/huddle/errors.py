"""Failure taxonomy.

Every failure is scoped to one event and reported to the connection that
sent it; none of them is fatal to the process.
"""


class HuddleError(Exception):
    """Base class for failures that are safe to report to the client.

    ``message`` is the text the initiating connection receives.
    """

    default_message = "Request failed"

    def __init__(self, message: str | None = None) -> None:
        self.message = message or self.default_message
        super().__init__(self.message)


class AuthenticationMissing(HuddleError):
    """Handshake carried no usable identity; the connection is refused."""

    default_message = "Authentication error: No token provided"


class AuthorizationDenied(HuddleError):
    """User is neither owner nor member of the project."""

    default_message = "Access denied"


class ValidationFailed(HuddleError):
    """Payload rejected before any persistence attempt."""

    default_message = "Invalid payload"


class NotFound(HuddleError):
    """Referenced project or task does not exist."""

    default_message = "Not found"


class PersistenceFailure(HuddleError):
    """Unexpected storage error.

    The cause is kept for logging; clients only ever see a generic message.

    Usage:
        raise PersistenceFailure(exc) from exc
    """

    default_message = "Internal error"

    def __init__(self, cause: Exception) -> None:
        self.cause = cause
        super().__init__()

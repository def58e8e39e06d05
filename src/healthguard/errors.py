"""Exception hierarchy for healthguard.

Every error raised on purpose by the package derives from HealthGuardError so
callers (the CLI, the server) can catch one type and report it.
"""


class HealthGuardError(Exception):
    """Base class for all healthguard errors."""


class StreamInterruptedError(HealthGuardError, ConnectionError):
    """The transport failed while a chat reply was being read.

    Whatever content was accumulated before the failure stays available
    on the reader (and on the session's in-memory transcript).
    """

    def __init__(self, message: str, partial_content: str = ""):
        super().__init__(message)
        self.partial_content = partial_content


class MalformedPayloadError(HealthGuardError, ValueError):
    """A single SSE data line could not be decoded.

    Raised by the payload decoder and always recovered by the reader.
    """


class UpstreamError(HealthGuardError):
    """The chat endpoint answered with a non-2xx status before streaming."""

    def __init__(self, status_code: int, message: str):
        super().__init__(f"Upstream error {status_code}: {message}")
        self.status_code = status_code
        self.message = message


class InsufficientCreditsError(HealthGuardError):
    """The balance check before a paid request failed."""

    def __init__(self, required: int, available: int):
        super().__init__(
            f"You need {required} credits, but only {available} are available."
        )
        self.required = required
        self.available = available


class ChatBusyError(HealthGuardError):
    """A request is already in flight for this conversation."""


class MessageFinalizedError(HealthGuardError):
    """Content was appended to a message that is no longer streaming."""


class NotAuthenticatedError(HealthGuardError):
    """An operation needed a user session and none is open."""


class PlaceLookupError(HealthGuardError):
    """The map service could not answer a nearby-place search."""

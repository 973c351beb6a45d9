class FoundError(Exception):
    """Base class for errors raised by the automation agents."""


class NotFoundError(FoundError):
    """Target job or entity is absent. Raised before any run record exists."""


class InvalidInputError(FoundError):
    """Malformed request payload. Raised before any run record exists."""


class ExternalFailureError(FoundError):
    """Browser, feed or session failure. Captured into an ``error`` step."""


class CheckpointChallengeError(ExternalFailureError):
    """LinkedIn asked for a checkpoint/challenge; needs a human, never retried."""

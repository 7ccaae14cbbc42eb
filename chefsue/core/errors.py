"""
Application errors for clean pipeline and API error handling.

Every error carries a structural ``category`` so the pipeline can pick a
user-facing apology without inspecting message text:

- ValidationFailure: a message, session id, or operation batch was rejected.
- ServiceUnavailableError: a dependency (generation backend, recipe API)
  failed or is unreachable. GenerationError and RetrievalError narrow it down;
  their *Timeout subclasses mark calls that ran out of time.
"""

VALIDATION = "validation"
UNAVAILABLE = "unavailable"
TIMEOUT = "timeout"
GENERIC = "generic"


class ValidationFailure(Exception):
    """Raised when input or a proposed operation batch breaks a validation rule."""

    category = VALIDATION

    def __init__(self, message: str, code: str = "VALIDATION_ERROR") -> None:
        self.message = message
        self.code = code
        super().__init__(message)


class ServiceUnavailableError(Exception):
    """Raised when a required service (e.g. generation backend, recipe API) is unavailable or misconfigured."""

    category = UNAVAILABLE

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(message)


class GenerationError(ServiceUnavailableError):
    """Generation call failed: network error, bad status, or an envelope with no text."""


class GenerationTimeout(GenerationError):
    category = TIMEOUT


class RetrievalError(ServiceUnavailableError):
    """A single recipe API call failed. Isolated per operation by the batch executor."""


class RetrievalTimeout(RetrievalError):
    category = TIMEOUT

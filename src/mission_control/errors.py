"""Mission Control exception hierarchy.

All Mission Control exceptions inherit from MissionControlError. Messages
carried by these exceptions are expected to be redacted before raising, so
they are safe to print or log as-is.
"""


class MissionControlError(Exception):
    """Base exception for all Mission Control errors."""

    def __init__(self, message: str = "", *, retryable: bool = False) -> None:
        super().__init__(message)
        self.retryable = retryable


class ConfigError(MissionControlError):
    """Invalid or missing configuration."""


class ValidationError(MissionControlError):
    """Caller-supplied value failed validation."""


class IdentityError(ValidationError):
    """Unknown or malformed agent name or message recipient."""


class GuardrailError(MissionControlError):
    """Operation refused by a guardrail check."""


class RateLimitError(GuardrailError):
    """Per-operation call budget exhausted for the current window."""

    def __init__(self, message: str = "", *, retryable: bool = True) -> None:
        super().__init__(message, retryable=retryable)


class SecretDetectedError(GuardrailError):
    """Structured write rejected because it appears to contain a credential."""


class ProviderError(MissionControlError):
    """Error communicating with the model backend."""

    def __init__(self, message: str = "", *, retryable: bool = True) -> None:
        super().__init__(message, retryable=retryable)


class StoreError(MissionControlError):
    """Error communicating with the coordination store."""

    def __init__(self, message: str = "", *, retryable: bool = True) -> None:
        super().__init__(message, retryable=retryable)

"""Typed errors for styledna."""

from typing import Literal

CollaboratorErrorKind = Literal["quota", "unavailable", "malformed", "failed"]


class StyleDnaError(Exception):
    """Base exception for all styledna errors."""


class ValidationError(StyleDnaError):
    """Raised when a request or payload has a malformed shape or value."""

    def __init__(self, field: str, reason: str) -> None:
        """Initialize with the offending field path and a human-readable reason."""
        self.field = field
        self.reason = reason
        super().__init__(f"{field}: {reason}")

    def details(self) -> list[dict[str, str]]:
        """Return field-level details suitable for an error response body."""
        return [{"field": self.field, "reason": self.reason}]


class NotFoundError(StyleDnaError):
    """Raised when an image or cached analysis is unknown or has expired."""

    def __init__(self, kind: str, identifier: str) -> None:
        """Initialize with the kind of missing resource and its identifier."""
        self.kind = kind
        self.identifier = identifier
        super().__init__(f"{kind.capitalize()} not found: {identifier}")


class RateLimitError(StyleDnaError):
    """Raised when a client exhausted its request window."""

    def __init__(self, client_id: str, retry_after: float) -> None:
        """Initialize with the client identifier and seconds until the window resets."""
        self.client_id = client_id
        self.retry_after = retry_after
        super().__init__("Rate limit exceeded. Please try again later.")


class CollaboratorError(StyleDnaError):
    """Raised when the external AI service fails or returns an unusable response."""

    def __init__(self, message: str, *, kind: CollaboratorErrorKind = "failed") -> None:
        """Initialize with a message and the failure kind used for fallback decisions."""
        self.kind = kind
        super().__init__(message)

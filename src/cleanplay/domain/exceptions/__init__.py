"""Domain exceptions."""

from typing import Any


class DomainException(Exception):
    """Base exception for all domain exceptions."""

    # Hey future me, message is stored as an attribute so handlers can log it without
    # parsing str(exc). Never raise this directly, always a subclass so callers can
    # catch precisely.
    def __init__(self, message: str, *args: Any) -> None:
        super().__init__(message, *args)
        self.message = message


class EntityNotFoundException(DomainException):
    """Raised when an entity is not found."""

    def __init__(self, entity_type: str, entity_id: Any) -> None:
        super().__init__(f"{entity_type} with id {entity_id} not found")
        self.entity_type = entity_type
        self.entity_id = entity_id


class ValidationException(DomainException):
    """Raised when input or payload validation fails (e.g. a malformed queue job)."""

    pass


class ConfigurationError(DomainException):
    """Application misconfiguration.

    Example:
        raise ConfigurationError("Telegram bot token not configured")
    """

    pass


class TokenRefreshException(DomainException):
    """Raised when token refresh fails.

    Hey future me - invalid_grant means the user revoked access or the refresh token
    died. That is terminal until the user re-authenticates: the error handler flips
    the user to TokenInvalid and deletes the credential. Anything else (network, 5xx
    on the token endpoint) is transient and the next tick just tries again.
    """

    def __init__(
        self,
        message: str = "Token refresh failed. Please re-authenticate with Spotify.",
        error_code: str | None = None,
        http_status: int | None = None,
    ) -> None:
        super().__init__(message)
        self.error_code = error_code  # e.g., "invalid_grant"
        self.http_status = http_status  # e.g., 400, 401

    @property
    def requires_reauth(self) -> bool:
        """Check if error requires user re-authentication."""
        return self.error_code == "invalid_grant" or self.http_status in (400, 401, 403)


class ExternalServiceError(DomainException):
    """External service (Spotify, Telegram, lyrics providers) returned an error."""

    pass


class RateLimitExceededError(DomainException):
    """A user-initiated action hit its rate-limit window.

    Carries the number of seconds the user has to wait.
    """

    def __init__(self, action: str, wait_seconds: int) -> None:
        super().__init__(f"Rate limit for '{action}' exceeded - retry in {wait_seconds}s")
        self.action = action
        self.wait_seconds = wait_seconds


# =============================================================================
# Spotify errors
# Hey future me - the checker's whole error taxonomy hangs on these being
# distinguishable. The client maps HTTP responses onto exactly one of them.
# =============================================================================


class SpotifyApiError(ExternalServiceError):
    """Any Spotify Web API error not covered by a more specific class."""

    def __init__(self, status_code: int, message: str) -> None:
        super().__init__(f"Spotify API error {status_code}: {message}")
        self.status_code = status_code
        self.api_message = message

    @property
    def is_server_error(self) -> bool:
        """5xx responses are transient noise on Spotify's side."""
        return self.status_code >= 500


class SpotifyRateLimitedError(SpotifyApiError):
    """429 Too Many Requests with the Retry-After hint in seconds."""

    def __init__(self, retry_after: int, message: str = "Too Many Requests") -> None:
        super().__init__(429, message)
        self.retry_after = retry_after


class SpotifyRegionForbiddenError(SpotifyApiError):
    """403 "Spotify is unavailable in this country"."""

    REGION_MESSAGE = "Spotify is unavailable in this country"

    def __init__(self, message: str = REGION_MESSAGE) -> None:
        super().__init__(403, message)


class SpotifyInvalidTokenError(SpotifyApiError):
    """401 - access token rejected even after refresh."""

    def __init__(self, message: str = "Invalid access token") -> None:
        super().__init__(401, message)


class NotificationBlockedError(ExternalServiceError):
    """The user blocked the bot, notifications cannot be delivered anymore."""

    def __init__(self, recipient: str, message: str = "Forbidden: bot was blocked by the user") -> None:
        super().__init__(message)
        self.recipient = recipient


__all__ = [
    "DomainException",
    "EntityNotFoundException",
    "ValidationException",
    "ConfigurationError",
    "TokenRefreshException",
    "ExternalServiceError",
    "RateLimitExceededError",
    "SpotifyApiError",
    "SpotifyRateLimitedError",
    "SpotifyRegionForbiddenError",
    "SpotifyInvalidTokenError",
    "NotificationBlockedError",
]

"""Magic link domain exceptions.

每个异常类定义自己的 http_status_code 和 error_code，
由 core/interfaces/http/exceptions.py 中的 domain_exception_handler 统一处理。
对外消息保持通用，不暴露账号是否存在。
"""

from fastapi import status

from src.core.domain.exceptions import DomainException
from src.modules.magic_auth.domain.identifiers import NotificationChannel


class UnknownGuardError(DomainException):
    """Raised when a guard name is not configured."""

    http_status_code = status.HTTP_400_BAD_REQUEST
    error_code = "UNKNOWN_GUARD"

    def __init__(self, guard: str) -> None:
        self.guard = guard
        super().__init__(f"Guard '{guard}' is not configured")


class RateLimitedError(DomainException):
    """Raised when too many links were sent to one identifier."""

    http_status_code = status.HTTP_429_TOO_MANY_REQUESTS
    error_code = "RATE_LIMITED"

    def __init__(self, retry_after_seconds: int) -> None:
        self.retry_after_seconds = retry_after_seconds
        super().__init__(
            f"Too many login links requested. Please try again in {retry_after_seconds} seconds."
        )

    @property
    def headers(self) -> dict[str, str]:
        return {"Retry-After": str(self.retry_after_seconds)}

    @property
    def details(self) -> dict[str, object]:
        return {"retry_after": self.retry_after_seconds}


class DeliveryFailedError(DomainException):
    """Raised when the link could not be delivered; the new link is already void."""

    http_status_code = status.HTTP_503_SERVICE_UNAVAILABLE
    error_code = "DELIVERY_FAILED"

    def __init__(self, reason: str) -> None:
        self.reason = reason
        super().__init__("Unable to send the login link right now. Please try again later.")


class VerificationTransactionError(DomainException):
    """Raised when redemption failed mid-transaction and was rolled back."""

    http_status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    error_code = "VERIFICATION_ERROR"

    def __init__(self, reason: str) -> None:
        self.reason = reason
        super().__init__("Unable to complete sign in. Please try again.")


class InvalidMagicLinkError(DomainException):
    """Raised by the HTTP layer for a negative verification result."""

    http_status_code = status.HTTP_400_BAD_REQUEST
    error_code = "INVALID_MAGIC_LINK"

    def __init__(self) -> None:
        super().__init__("Invalid or expired magic link")


class NotificationDeliveryError(Exception):
    """Raised by a channel sender when a message could not be delivered."""

    def __init__(self, channel: NotificationChannel | None, reason: str) -> None:
        self.channel = channel
        self.reason = reason
        label = channel.value if channel else "dispatch"
        super().__init__(f"{label}: {reason}")


class InvalidSignatureError(Exception):
    """Raised when a signed link is tampered with, mismatched or expired."""

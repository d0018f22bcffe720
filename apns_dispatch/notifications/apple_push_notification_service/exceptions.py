# --- Custom Exception Classes ---
from typing import Optional


class APNSException(Exception):
    """Base exception for Apple Push Notification service operations."""

    def __init__(self, message: str, apns_error_code: Optional[str] = None):
        super().__init__(message)
        self.apns_error_code = apns_error_code
        self.error_message = message


class APNSConfigurationError(APNSException):
    """Raised when client options or key material are missing or malformed."""

    def __init__(
        self, message: str, apns_error_code: Optional[str] = "INVALID_CONFIGURATION"
    ):
        super().__init__(message, apns_error_code)


class APNSValidationError(APNSException):
    """Raised when a device token cannot form a valid request URL."""

    def __init__(
        self, message: str, token: str, apns_error_code: Optional[str] = "BAD_REQUEST"
    ):
        super().__init__(message, apns_error_code)
        self.invalid_token = token


class APNSSerializationError(APNSException):
    """Raised when a notification payload cannot be encoded."""

    def __init__(
        self, message: str, apns_error_code: Optional[str] = "UNSERIALIZABLE_PAYLOAD"
    ):
        super().__init__(message, apns_error_code)


class APNSAuthError(APNSException):
    """Raised when a provider token cannot be produced."""

    def __init__(self, message: str, apns_error_code: Optional[str] = "AUTH_FAILED"):
        super().__init__(message, apns_error_code)


class APNSInvalidSignatureError(APNSAuthError):
    """Raised when a freshly signed provider token fails self-verification."""

    def __init__(
        self, message: str, apns_error_code: Optional[str] = "INVALID_SIGNATURE"
    ):
        super().__init__(message, apns_error_code)

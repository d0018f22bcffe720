from apns_dispatch.notifications.apple_push_notification_service.core import (
    ApplePushNotificationCore,
)
from apns_dispatch.notifications.apple_push_notification_service.exceptions import (
    APNSConfigurationError,
    APNSException,
)
from apns_dispatch.notifications.apple_push_notification_service.schema import (
    APNSErrorReason,
    AuthMode,
    AuthOptions,
    Payload,
    Priority,
    PushDeliveryError,
    PushMessage,
    PushNetworkError,
    PushResult,
    PushSuccess,
    PushType,
    ServiceStatus,
)
from apns_dispatch.settings import APNSSettings

__version__ = "1.0.0"

__all__ = [
    "APNSConfigurationError",
    "APNSErrorReason",
    "APNSException",
    "APNSSettings",
    "ApplePushNotificationCore",
    "AuthMode",
    "AuthOptions",
    "Payload",
    "Priority",
    "PushDeliveryError",
    "PushMessage",
    "PushNetworkError",
    "PushResult",
    "PushSuccess",
    "PushType",
    "ServiceStatus",
]

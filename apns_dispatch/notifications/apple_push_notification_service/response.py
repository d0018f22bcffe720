import json
from typing import Optional, Union

from apns_dispatch.notifications.apple_push_notification_service.schema import (
    APNSErrorReason,
    PushDeliveryError,
    PushSuccess,
    ServiceStatus,
)


def _reason(body: str) -> Optional[str]:
    try:
        decoded = json.loads(body)
    except ValueError:
        return None
    if isinstance(decoded, dict) and isinstance(decoded.get("reason"), str):
        return decoded["reason"]
    return None


def classify_response(
    message_id: str, device_token: str, status_code: int, body: Optional[str] = None
) -> Union[PushSuccess, PushDeliveryError]:
    """
    Turn a gateway response into a result.

    An explicit ``reason`` in the body always wins over the status code.
    Without one, 200 is a success and anything else an unknown error naming
    the status.
    """
    status = ServiceStatus.from_status_code(status_code)

    reason = _reason(body) if body else None
    if reason is not None:
        error, detail = APNSErrorReason.from_reason(reason)
        return PushDeliveryError(
            message_id=message_id,
            device_token=device_token,
            error=error,
            detail=detail,
            status=status,
        )

    if status == ServiceStatus.SUCCESS:
        return PushSuccess(message_id=message_id, device_token=device_token)

    return PushDeliveryError(
        message_id=message_id,
        device_token=device_token,
        error=APNSErrorReason.UNKNOWN_ERROR,
        detail=f"ServiceStatus: {status.value}",
        status=status,
    )

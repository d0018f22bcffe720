import json
import logging
import re
from typing import Callable, Dict, Optional

import httpx
from pydantic import BaseModel, ConfigDict

from apns_dispatch.notifications.apple_push_notification_service.exceptions import (
    APNSSerializationError,
    APNSValidationError,
)
from apns_dispatch.notifications.apple_push_notification_service.schema import (
    DEVELOPMENT_HOST,
    PRODUCTION_HOST,
    Payload,
    PushMessage,
)

logger = logging.getLogger(__name__)

# A device token must fit in a single URL path segment
_DEVICE_TOKEN_PATTERN = re.compile(r"[A-Za-z0-9._~-]+")


class APNSRequest(BaseModel):
    """Fully-formed outbound request, ready for the HTTP client."""

    model_config = ConfigDict(frozen=True)

    method: str = "POST"
    url: str
    headers: Dict[str, str]
    body: bytes


def host_url(sandbox: bool) -> str:
    return DEVELOPMENT_HOST if sandbox else PRODUCTION_HOST


def device_url(device_token: str, sandbox: bool) -> str:
    """
    Raises:
        APNSValidationError: If the token cannot be placed in the request path.
    """
    if not device_token or not _DEVICE_TOKEN_PATTERN.fullmatch(device_token):
        raise APNSValidationError(
            f"Malformed device token: {device_token!r}", token=device_token
        )
    url = f"{host_url(sandbox)}/3/device/{device_token}"
    try:
        httpx.URL(url)
    except httpx.InvalidURL as e:
        raise APNSValidationError(f"Invalid URL {url}: {e}", token=device_token)
    return url


def serialize_payload(message: PushMessage) -> bytes:
    """
    Encode the payload as compact UTF-8 JSON followed by a NUL terminator.

    Raises:
        APNSSerializationError: If the payload is not JSON-encodable.
    """
    payload = message.payload
    try:
        data = payload.to_dict() if isinstance(payload, Payload) else payload
        encoded = json.dumps(data, separators=(",", ":"), ensure_ascii=False)
    except (TypeError, ValueError, RecursionError) as e:
        logger.error(f"Could not serialize payload of {message.message_id}: {e}")
        raise APNSSerializationError(f"Could not serialize payload: {str(e)}")
    return encoded.encode("utf-8") + b"\x00"


def request_headers(
    message: PushMessage, default_topic: str, token: Optional[str] = None
) -> Dict[str, str]:
    expiration = 0
    if message.expiration is not None:
        expiration = int(round(message.expiration.timestamp()))

    headers = {
        "apns-id": message.message_id,
        "apns-expiration": str(expiration),
        "apns-priority": str(message.priority.value),
        "apns-topic": message.topic or default_topic,
    }

    if message.collapse_id:
        headers["apns-collapse-id"] = message.collapse_id

    if message.thread_id:
        headers["thread-id"] = message.thread_id

    if message.push_type:
        headers["apns-push-type"] = message.push_type.value

    if token is not None:
        headers["authorization"] = f"Bearer {token}"

    return headers


def build_request(
    message: PushMessage,
    device_token: str,
    default_topic: str,
    sandbox_default: bool = False,
    token_provider: Optional[Callable[[], str]] = None,
) -> APNSRequest:
    """
    Build the POST request for one device.

    Args:
        message: Notification to send
        device_token: Recipient device token
        default_topic: Topic used when the message has none
        sandbox_default: Gateway used when the message does not choose one
        token_provider: Returns the provider token; None for certificate
            authentication. Only called once the URL and body are built.

    Returns:
        APNSRequest with URL, headers and NUL-terminated body.

    Raises:
        APNSValidationError: Malformed device token.
        APNSSerializationError: Payload cannot be encoded.
        APNSAuthError: Raised by the token provider.
    """
    sandbox = sandbox_default if message.sandbox is None else message.sandbox
    url = device_url(device_token, sandbox)
    body = serialize_payload(message)
    token = token_provider() if token_provider is not None else None
    return APNSRequest(
        url=url,
        headers=request_headers(message, default_topic, token),
        body=body,
    )

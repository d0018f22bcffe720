import pytest

from apns_dispatch import (
    APNSErrorReason,
    PushDeliveryError,
    PushSuccess,
    ServiceStatus,
)
from apns_dispatch.notifications.apple_push_notification_service.response import (
    classify_response,
)


@pytest.mark.parametrize(
    "code, status",
    [
        (200, ServiceStatus.SUCCESS),
        (400, ServiceStatus.BAD_REQUEST),
        (401, ServiceStatus.UNAUTHORIZED),
        (403, ServiceStatus.FORBIDDEN),
        (404, ServiceStatus.NOT_FOUND),
        (405, ServiceStatus.METHOD_NOT_ALLOWED),
        (410, ServiceStatus.GONE),
        (413, ServiceStatus.PAYLOAD_TOO_LARGE),
        (429, ServiceStatus.TOO_MANY_REQUESTS),
        (500, ServiceStatus.INTERNAL_ERROR),
        (503, ServiceStatus.SERVICE_UNAVAILABLE),
        (418, ServiceStatus.UNKNOWN),
    ],
)
def test_status_codes(code, status):
    assert ServiceStatus.from_status_code(code) == status


def test_200_without_reason_is_success():
    result = classify_response("abc", "t1", 200, "")
    assert result == PushSuccess(message_id="abc", device_token="t1")
    assert result.is_success


def test_reason_wins_over_success_status():
    result = classify_response("abc", "t1", 200, '{"reason": "BadDeviceToken"}')
    assert isinstance(result, PushDeliveryError)
    assert result.error == APNSErrorReason.BAD_DEVICE_TOKEN
    assert result.status == ServiceStatus.SUCCESS


def test_reason_with_error_status():
    result = classify_response(
        "abc", "t2", 410, '{"reason": "Unregistered", "timestamp": 1700000000000}'
    )
    assert result.error == APNSErrorReason.UNREGISTERED
    assert result.detail is None
    assert result.status == ServiceStatus.GONE


def test_unknown_reason_keeps_raw_text():
    result = classify_response("abc", "t2", 400, '{"reason": "BrandNewReason"}')
    assert result.error == APNSErrorReason.UNKNOWN_ERROR
    assert result.detail == "BrandNewReason"


@pytest.mark.parametrize("body", [None, "", "not json", "[1, 2]", '{"reason": 5}'])
def test_error_status_without_reason(body):
    result = classify_response("abc", "t2", 500, body)
    assert result.error == APNSErrorReason.UNKNOWN_ERROR
    assert result.detail == "ServiceStatus: internal_error"
    assert not result.is_success


def test_unparsable_body_with_200_is_success():
    assert classify_response("abc", "t1", 200, "<html>").is_success

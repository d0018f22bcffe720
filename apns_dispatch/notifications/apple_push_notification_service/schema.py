import uuid
from datetime import datetime
from enum import Enum as PyEnum
from typing import Annotated, Any, Dict, List, Literal, Optional, Tuple, Union

from pydantic import BaseModel, ConfigDict, Field, model_validator

from apns_dispatch.authentication.provider_token.keys import (
    load_private_key,
    load_public_key,
)
from apns_dispatch.notifications.apple_push_notification_service.exceptions import (
    APNSConfigurationError,
)

PRODUCTION_HOST = "https://api.push.apple.com"
DEVELOPMENT_HOST = "https://api.development.push.apple.com"


class AuthMode(str, PyEnum):
    TOKEN = "token"
    CERTIFICATE = "certificate"


class Priority(int, PyEnum):
    """apns-priority codes."""

    IMMEDIATE = 10
    ENERGY_EFFICIENT = 5


class PushType(str, PyEnum):
    ALERT = "alert"
    BACKGROUND = "background"
    LOCATION = "location"
    VOIP = "voip"
    COMPLICATION = "complication"
    FILEPROVIDER = "fileprovider"
    MDM = "mdm"
    LIVEACTIVITY = "liveactivity"


class ServiceStatus(str, PyEnum):
    """
    Gateway status derived from the HTTP status code of a response.
    Anything APNs does not document maps to UNKNOWN.
    """

    SUCCESS = "success"
    BAD_REQUEST = "bad_request"
    UNAUTHORIZED = "unauthorized"
    FORBIDDEN = "forbidden"
    NOT_FOUND = "not_found"
    METHOD_NOT_ALLOWED = "method_not_allowed"
    GONE = "gone"
    PAYLOAD_TOO_LARGE = "payload_too_large"
    TOO_MANY_REQUESTS = "too_many_requests"
    INTERNAL_ERROR = "internal_error"
    SERVICE_UNAVAILABLE = "service_unavailable"
    UNKNOWN = "unknown"

    @classmethod
    def from_status_code(cls, status_code: int) -> "ServiceStatus":
        return _STATUS_CODES.get(status_code, cls.UNKNOWN)


_STATUS_CODES = {
    200: ServiceStatus.SUCCESS,
    400: ServiceStatus.BAD_REQUEST,
    401: ServiceStatus.UNAUTHORIZED,
    403: ServiceStatus.FORBIDDEN,
    404: ServiceStatus.NOT_FOUND,
    405: ServiceStatus.METHOD_NOT_ALLOWED,
    410: ServiceStatus.GONE,
    413: ServiceStatus.PAYLOAD_TOO_LARGE,
    429: ServiceStatus.TOO_MANY_REQUESTS,
    500: ServiceStatus.INTERNAL_ERROR,
    503: ServiceStatus.SERVICE_UNAVAILABLE,
}


class APNSErrorReason(str, PyEnum):
    """
    Reason strings returned by APNs in the response body, plus two local kinds:
    INVALID_SIGNATURE (provider token failed self-verification) and
    UNKNOWN_ERROR (anything we cannot name).
    """

    BAD_COLLAPSE_ID = "BadCollapseId"
    BAD_DEVICE_TOKEN = "BadDeviceToken"
    BAD_EXPIRATION_DATE = "BadExpirationDate"
    BAD_MESSAGE_ID = "BadMessageId"
    BAD_PRIORITY = "BadPriority"
    BAD_TOPIC = "BadTopic"
    DEVICE_TOKEN_NOT_FOR_TOPIC = "DeviceTokenNotForTopic"
    DUPLICATE_HEADERS = "DuplicateHeaders"
    IDLE_TIMEOUT = "IdleTimeout"
    INVALID_PUSH_TYPE = "InvalidPushType"
    MISSING_DEVICE_TOKEN = "MissingDeviceToken"
    MISSING_TOPIC = "MissingTopic"
    PAYLOAD_EMPTY = "PayloadEmpty"
    TOPIC_DISALLOWED = "TopicDisallowed"
    BAD_CERTIFICATE = "BadCertificate"
    BAD_CERTIFICATE_ENVIRONMENT = "BadCertificateEnvironment"
    EXPIRED_PROVIDER_TOKEN = "ExpiredProviderToken"
    FORBIDDEN = "Forbidden"
    INVALID_PROVIDER_TOKEN = "InvalidProviderToken"
    MISSING_PROVIDER_TOKEN = "MissingProviderToken"
    UNRELATED_KEY_ID_IN_TOKEN = "UnrelatedKeyIdInToken"
    BAD_PATH = "BadPath"
    METHOD_NOT_ALLOWED = "MethodNotAllowed"
    EXPIRED_TOKEN = "ExpiredToken"
    UNREGISTERED = "Unregistered"
    PAYLOAD_TOO_LARGE = "PayloadTooLarge"
    TOO_MANY_PROVIDER_TOKEN_UPDATES = "TooManyProviderTokenUpdates"
    TOO_MANY_REQUESTS = "TooManyRequests"
    INTERNAL_SERVER_ERROR = "InternalServerError"
    SERVICE_UNAVAILABLE = "ServiceUnavailable"
    SHUTDOWN = "Shutdown"

    INVALID_SIGNATURE = "InvalidSignature"
    UNKNOWN_ERROR = "UnknownError"

    @classmethod
    def from_reason(cls, reason: str) -> Tuple["APNSErrorReason", Optional[str]]:
        """Map a reason string to a member; unknown reasons keep the raw text as detail."""
        try:
            return cls(reason), None
        except ValueError:
            return cls.UNKNOWN_ERROR, reason


class AuthOptions(BaseModel):
    """Client credentials and defaults. Validated once, before any send."""

    model_config = ConfigDict(frozen=True)

    auth_mode: AuthMode = AuthMode.TOKEN
    team_id: Optional[str] = Field(None, description="Apple developer team ID")
    key_id: Optional[str] = Field(None, description="ID of the APNs auth key")
    private_key: Optional[str] = Field(None, description="PEM of the .p8 auth key")
    public_key: Optional[str] = Field(
        None, description="PEM of the matching public key, enables self-verification"
    )
    topic: str = Field(..., description="Default apns-topic, usually the bundle ID")
    sandbox: bool = Field(False, description="Default gateway for messages")
    debug_logging: bool = False

    certificate_path: Optional[str] = None
    certificate_key_path: Optional[str] = None
    certificate_password: Optional[str] = None

    @property
    def uses_certificate_authentication(self) -> bool:
        return self.auth_mode == AuthMode.CERTIFICATE

    @model_validator(mode="after")
    def validate_credentials(self):
        if self.uses_certificate_authentication:
            if not self.certificate_path:
                raise APNSConfigurationError(
                    "certificate_path is required for certificate authentication"
                )
            return self

        missing = [
            name
            for name in ("team_id", "key_id", "private_key")
            if not getattr(self, name)
        ]
        if missing:
            raise APNSConfigurationError(
                f"Token authentication requires: {', '.join(missing)}"
            )
        try:
            load_private_key(self.private_key)
            if self.public_key:
                load_public_key(self.public_key)
        except ValueError as e:
            raise APNSConfigurationError(str(e))
        return self


_ALERT_FIELDS = {
    "title",
    "subtitle",
    "body",
    "title_loc_key",
    "title_loc_args",
    "loc_key",
    "loc_args",
    "action_loc_key",
    "launch_image",
}
_APS_FIELDS = {"badge", "sound", "category", "thread_id"}


class Payload(BaseModel):
    """Typed builder for the APNs JSON dictionary."""

    model_config = ConfigDict(frozen=True, extra="forbid", populate_by_name=True)

    title: Optional[str] = None
    subtitle: Optional[str] = None
    body: Optional[str] = None
    title_loc_key: Optional[str] = Field(None, alias="title-loc-key")
    title_loc_args: Optional[List[str]] = Field(None, alias="title-loc-args")
    loc_key: Optional[str] = Field(None, alias="loc-key")
    loc_args: Optional[List[str]] = Field(None, alias="loc-args")
    action_loc_key: Optional[str] = Field(None, alias="action-loc-key")
    launch_image: Optional[str] = Field(None, alias="launch-image")

    badge: Optional[int] = None
    sound: Optional[str] = None
    content_available: bool = False
    mutable_content: bool = False
    category: Optional[str] = None
    thread_id: Optional[str] = Field(None, alias="thread-id")

    extra: Dict[str, Any] = Field(
        default_factory=dict, description="Custom keys placed beside 'aps'"
    )

    @classmethod
    def plain(cls, body: str) -> "Payload":
        return cls(body=body)

    def _alert(self) -> Union[str, Dict[str, Any], None]:
        alert = self.model_dump(include=_ALERT_FIELDS, by_alias=True, exclude_none=True)
        if not alert:
            return None
        # A bare body is sent as a simple string alert
        if list(alert) == ["body"]:
            return self.body
        return alert

    def to_dict(self) -> Dict[str, Any]:
        aps = self.model_dump(include=_APS_FIELDS, by_alias=True, exclude_none=True)
        alert = self._alert()
        if alert is not None:
            aps["alert"] = alert
        if self.content_available:
            aps["content-available"] = 1
        if self.mutable_content:
            aps["mutable-content"] = 1
        return {**self.extra, "aps": aps}


class PushMessage(BaseModel):
    """One notification; the same instance can be sent to any number of devices."""

    model_config = ConfigDict(frozen=True)

    # Plain dicts are sent as given; only Payload instances are built into "aps"
    payload: Union[Dict[str, Any], Payload] = Field(union_mode="left_to_right")
    message_id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    expiration: Optional[datetime] = None
    priority: Priority = Priority.IMMEDIATE
    topic: Optional[str] = Field(None, description="Overrides the client's topic")
    collapse_id: Optional[str] = None
    thread_id: Optional[str] = None
    push_type: Optional[PushType] = None
    sandbox: Optional[bool] = Field(
        None, description="Development gateway if True, client default if None"
    )


class CachedToken(BaseModel):
    model_config = ConfigDict(frozen=True)

    token: str
    issued_at: float


class PushSuccess(BaseModel):
    kind: Literal["success"] = "success"
    message_id: str
    device_token: str
    status: ServiceStatus = ServiceStatus.SUCCESS

    @property
    def is_success(self) -> bool:
        return True


class PushDeliveryError(BaseModel):
    kind: Literal["delivery_error"] = "delivery_error"
    message_id: str
    device_token: str
    error: APNSErrorReason
    detail: Optional[str] = Field(None, description="Raw reason or local explanation")
    status: Optional[ServiceStatus] = None

    @property
    def is_success(self) -> bool:
        return False


class PushNetworkError(BaseModel):
    kind: Literal["network_error"] = "network_error"
    message_id: Optional[str] = None
    device_token: Optional[str] = None
    cause: str
    status: Optional[ServiceStatus] = None

    @property
    def is_success(self) -> bool:
        return False


PushResult = Annotated[
    Union[PushSuccess, PushDeliveryError, PushNetworkError],
    Field(discriminator="kind"),
]

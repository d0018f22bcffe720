import asyncio
import inspect
import logging
import ssl
import time
from typing import Any, Awaitable, Callable, Iterable, Optional, Union

import httpx

from apns_dispatch.authentication.provider_token.client import (
    TokenCache,
    TokenIssuer,
)
from apns_dispatch.notifications.apple_push_notification_service.exceptions import (
    APNSAuthError,
    APNSInvalidSignatureError,
    APNSSerializationError,
    APNSValidationError,
)
from apns_dispatch.notifications.apple_push_notification_service.request import (
    APNSRequest,
    build_request,
)
from apns_dispatch.notifications.apple_push_notification_service.response import (
    classify_response,
)
from apns_dispatch.notifications.apple_push_notification_service.schema import (
    APNSErrorReason,
    AuthOptions,
    PushDeliveryError,
    PushMessage,
    PushNetworkError,
    PushSuccess,
    ServiceStatus,
)

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

USER_AGENT = "apns-dispatch/1.0.0"
DEFAULT_HEADERS = {
    "User-Agent": USER_AGENT,
    "Accept": "application/json",
    "Content-Type": "application/json",
}

Result = Union[PushSuccess, PushDeliveryError, PushNetworkError]
ResultHandler = Callable[[Result], Union[None, Awaitable[Any]]]


class ApplePushNotificationCore:
    """
    APNs sender over HTTP/2.

    Every send resolves to exactly one result, handed to the completion handler
    once and returned. Failures are never raised to the caller.
    """

    def __init__(
        self,
        options: AuthOptions,
        http_client: Optional[httpx.AsyncClient] = None,
        request_timeout: Optional[float] = None,
        clock: Callable[[], float] = time.time,
    ):
        """
        Initialize the APNs client

        Args:
            options: Validated credentials and defaults
            http_client: Client to send through; one with HTTP/2 is created lazily if omitted
            request_timeout: Seconds before httpx gives up on a request
            clock: Source of the current time, shared with the token cache
        """
        self.options = options
        self.request_timeout = request_timeout
        self._http_client = http_client
        self._owns_client = http_client is None

        if options.debug_logging:
            logging.getLogger("apns_dispatch").setLevel(logging.DEBUG)

        self.tokens: Optional[TokenCache] = None
        if not options.uses_certificate_authentication:
            issuer = TokenIssuer(
                team_id=options.team_id,
                key_id=options.key_id,
                private_key=options.private_key,
                public_key=options.public_key,
                debug_logging=options.debug_logging,
                clock=clock,
            )
            self.tokens = TokenCache(issuer, clock=clock)

    @classmethod
    def from_settings(cls, settings) -> "ApplePushNotificationCore":
        """Build a client from ``APNSSettings``."""
        return cls(settings.to_auth_options(), request_timeout=settings.REQUEST_TIMEOUT)

    @property
    def client(self) -> httpx.AsyncClient:
        if self._http_client is None:
            kwargs = {"http2": True, "headers": DEFAULT_HEADERS}
            if self.request_timeout is not None:
                kwargs["timeout"] = self.request_timeout
            if self.options.uses_certificate_authentication:
                kwargs["verify"] = self._certificate_context()
            self._http_client = httpx.AsyncClient(**kwargs)
        return self._http_client

    def _certificate_context(self) -> ssl.SSLContext:
        context = ssl.create_default_context()
        context.load_cert_chain(
            certfile=self.options.certificate_path,
            keyfile=self.options.certificate_key_path,
            password=self.options.certificate_password,
        )
        return context

    async def aclose(self) -> None:
        if self._http_client is not None and self._owns_client:
            await self._http_client.aclose()
            self._http_client = None

    async def __aenter__(self) -> "ApplePushNotificationCore":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    async def send(
        self,
        message: PushMessage,
        device_token: str,
        completion_handler: Optional[ResultHandler] = None,
    ) -> Result:
        """
        Send a notification to a single device.

        Args:
            message: Notification to send
            device_token: Recipient device token
            completion_handler: Called exactly once with the result; may be async

        Returns:
            The same result given to the handler.
        """
        try:
            result = await self._dispatch(message, device_token)
        except Exception as e:
            logger.error(
                f"An unexpected error occurred while sending APNs message: {e}",
                exc_info=True,
            )
            result = PushNetworkError(
                message_id=message.message_id,
                device_token=device_token,
                cause=str(e) or type(e).__name__,
            )
        await self._complete(completion_handler, result)
        return result

    async def send_to_many(
        self,
        message: PushMessage,
        device_tokens: Iterable[str],
        per_device_result_handler: ResultHandler,
    ) -> None:
        """
        Send one notification to many devices at once.

        Every send is started immediately; the handler is called once per
        device as results arrive, in no particular order.
        """
        tasks = [
            asyncio.create_task(
                self.send(message, device_token, per_device_result_handler)
            )
            for device_token in device_tokens
        ]
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)

    async def _complete(self, handler: Optional[ResultHandler], result: Result):
        if handler is None:
            return
        try:
            outcome = handler(result)
            if inspect.isawaitable(outcome):
                await outcome
        except Exception as e:
            logger.error(f"Result handler raised: {e}", exc_info=True)

    def _build(self, message: PushMessage, device_token: str) -> APNSRequest:
        return build_request(
            message,
            device_token,
            default_topic=self.options.topic,
            sandbox_default=self.options.sandbox,
            token_provider=self.tokens.obtain_token if self.tokens else None,
        )

    async def _dispatch(self, message: PushMessage, device_token: str) -> Result:
        message_id = message.message_id
        try:
            request = self._build(message, device_token)
        except APNSValidationError as e:
            logger.error(e.error_message)
            return PushNetworkError(
                message_id=message_id,
                device_token=device_token,
                cause=e.error_message,
                status=ServiceStatus.BAD_REQUEST,
            )
        except APNSSerializationError:
            return PushDeliveryError(
                message_id=message_id,
                device_token=device_token,
                error=APNSErrorReason.UNKNOWN_ERROR,
                detail="Could not serialize payload",
            )
        except APNSInvalidSignatureError:
            return PushDeliveryError(
                message_id=message_id,
                device_token=device_token,
                error=APNSErrorReason.INVALID_SIGNATURE,
            )
        except APNSAuthError as e:
            return PushDeliveryError(
                message_id=message_id,
                device_token=device_token,
                error=APNSErrorReason.UNKNOWN_ERROR,
                detail=e.error_message,
            )

        try:
            response = await self.client.request(
                request.method,
                request.url,
                headers=request.headers,
                content=request.body,
            )
        except httpx.HTTPError as e:
            logger.error(
                f"Network error sending to token: {device_token[:10]}... Error: {e}"
            )
            return PushNetworkError(
                message_id=message_id,
                device_token=device_token,
                cause=str(e) or type(e).__name__,
            )
        except Exception as e:
            logger.error(
                f"An unexpected error occurred while sending APNs message: {e}",
                exc_info=True,
            )
            return PushNetworkError(
                message_id=message_id,
                device_token=device_token,
                cause=str(e) or type(e).__name__,
            )

        # Custom clients may resolve without a response or an error
        if response is None:
            return PushNetworkError(
                message_id=message_id,
                device_token=device_token,
                cause="No HTTP response",
            )

        try:
            body = response.content.decode("utf-8")
        except UnicodeDecodeError:
            return PushDeliveryError(
                message_id=message_id,
                device_token=device_token,
                error=APNSErrorReason.UNKNOWN_ERROR,
                detail="No response data",
                status=ServiceStatus.from_status_code(response.status_code),
            )

        result = classify_response(
            message_id, device_token, response.status_code, body
        )
        if result.is_success:
            logger.info(
                f"Message sent successfully to token: {device_token[:10]}... Message ID: {message_id}"
            )
        else:
            logger.warning(
                f"APNs rejected message {message_id} for token: {device_token[:10]}... "
                f"Reason: {result.error.value} ({response.status_code})"
            )
        return result

# provider_token/client.py
import logging
import threading
import time
from typing import Callable, Optional

import jwt

from apns_dispatch.authentication.provider_token.keys import (
    load_private_key,
    load_public_key,
)
from apns_dispatch.notifications.apple_push_notification_service.exceptions import (
    APNSAuthError,
    APNSInvalidSignatureError,
)
from apns_dispatch.notifications.apple_push_notification_service.schema import (
    CachedToken,
)

logger = logging.getLogger(__name__)

ALGORITHM = "ES256"
# APNs rejects tokens older than an hour and throttles frequent refreshes
TOKEN_REFRESH_INTERVAL = 59 * 60


class TokenIssuer:
    """
    Signs APNs provider tokens with the team's auth key.
    """

    def __init__(
        self,
        team_id: str,
        key_id: str,
        private_key: str,
        public_key: Optional[str] = None,
        debug_logging: bool = False,
        clock: Callable[[], float] = time.time,
    ):
        """
        Args:
            team_id: Apple developer team ID, used as the ``iss`` claim
            key_id: ID of the auth key, sent as the ``kid`` header
            private_key: PEM of the .p8 auth key
            public_key: PEM of the matching public key; enables self-verification
            debug_logging: Log verification failures in full
            clock: Source of the current time in epoch seconds
        """
        self.team_id = team_id
        self.key_id = key_id
        self.debug_logging = debug_logging
        self.clock = clock
        self._private_key = load_private_key(private_key)
        self._public_key = load_public_key(public_key) if public_key else None

    def issue(self) -> CachedToken:
        """
        Create a freshly signed provider token.

        Returns:
            CachedToken holding the compact token and its issue time.

        Raises:
            APNSAuthError: If the claims cannot be signed.
            APNSInvalidSignatureError: If the token fails self-verification.
        """
        issued_at = self.clock()
        claims = {"iss": self.team_id, "iat": int(issued_at)}
        try:
            token = jwt.encode(
                claims,
                self._private_key,
                algorithm=ALGORITHM,
                headers={"kid": self.key_id},
            )
        except Exception as e:
            logger.error(f"Could not sign provider token: {e}", exc_info=True)
            raise APNSAuthError(f"Could not sign provider token: {str(e)}")

        if self._public_key is not None:
            self._verify(token)

        logger.debug(f"Issued provider token for team {self.team_id} at {issued_at}")
        return CachedToken(token=token, issued_at=issued_at)

    def _verify(self, token: str) -> None:
        try:
            jwt.decode(
                token,
                self._public_key,
                algorithms=[ALGORITHM],
                options={"verify_iat": False, "verify_exp": False},
            )
        except jwt.InvalidSignatureError as e:
            logger.error(f"Provider token failed signature verification: {e}")
            raise APNSInvalidSignatureError(
                "Provider token failed signature verification"
            )
        except Exception as e:
            logger.warning(
                "Couldn't verify token. This is a non-fatal error, "
                "the notification will be sent anyway."
            )
            if self.debug_logging:
                logger.debug(f"Token verification error: {e}", exc_info=True)


class TokenCache:
    """
    Holds the current provider token and hands it out while it is fresh.

    Refreshing happens under a lock so concurrent senders that all see a stale
    token wait for a single signing instead of each producing their own.
    """

    def __init__(
        self,
        issuer: TokenIssuer,
        refresh_interval: float = TOKEN_REFRESH_INTERVAL,
        clock: Callable[[], float] = time.time,
    ):
        self.issuer = issuer
        self.refresh_interval = refresh_interval
        self.clock = clock
        self._lock = threading.Lock()
        self._cached: Optional[CachedToken] = None

    @property
    def current(self) -> Optional[CachedToken]:
        return self._cached

    def is_fresh(self, cached: Optional[CachedToken]) -> bool:
        if cached is None:
            return False
        return abs(self.clock() - cached.issued_at) < self.refresh_interval

    def obtain_token(self) -> str:
        """
        Return the cached token if it is younger than the refresh interval,
        otherwise issue and store a new one.

        Raises:
            APNSAuthError: Propagated from the issuer; the cache keeps its old value.
        """
        cached = self._cached
        if self.is_fresh(cached):
            return cached.token

        with self._lock:
            cached = self._cached
            if self.is_fresh(cached):
                return cached.token
            fresh = self.issuer.issue()
            self._cached = fresh
            logger.info(f"Provider token refreshed (key {self.issuer.key_id})")
            return fresh.token

from pathlib import Path
from typing import Optional

from pydantic_settings import BaseSettings, SettingsConfigDict

from apns_dispatch.notifications.apple_push_notification_service.schema import (
    AuthMode,
    AuthOptions,
)


class APNSSettings(BaseSettings):
    model_config = SettingsConfigDict(case_sensitive=True, env_prefix="APNS_")

    AUTH_MODE: AuthMode = AuthMode.TOKEN
    TEAM_ID: Optional[str] = None
    KEY_ID: Optional[str] = None
    PRIVATE_KEY: Optional[str] = None
    PRIVATE_KEY_PATH: Optional[str] = None
    PUBLIC_KEY: Optional[str] = None
    PUBLIC_KEY_PATH: Optional[str] = None

    TOPIC: str
    SANDBOX: bool = False
    DEBUG: bool = False

    CERTIFICATE_PATH: Optional[str] = None
    CERTIFICATE_KEY_PATH: Optional[str] = None
    CERTIFICATE_PASSWORD: Optional[str] = None

    REQUEST_TIMEOUT: Optional[float] = None

    @property
    def private_key(self) -> Optional[str]:
        if self.PRIVATE_KEY:
            return self.PRIVATE_KEY
        if self.PRIVATE_KEY_PATH:
            return Path(self.PRIVATE_KEY_PATH).read_text()
        return None

    @property
    def public_key(self) -> Optional[str]:
        if self.PUBLIC_KEY:
            return self.PUBLIC_KEY
        if self.PUBLIC_KEY_PATH:
            return Path(self.PUBLIC_KEY_PATH).read_text()
        return None

    def to_auth_options(self) -> AuthOptions:
        return AuthOptions(
            auth_mode=self.AUTH_MODE,
            team_id=self.TEAM_ID,
            key_id=self.KEY_ID,
            private_key=self.private_key,
            public_key=self.public_key,
            topic=self.TOPIC,
            sandbox=self.SANDBOX,
            debug_logging=self.DEBUG,
            certificate_path=self.CERTIFICATE_PATH,
            certificate_key_path=self.CERTIFICATE_KEY_PATH,
            certificate_password=self.CERTIFICATE_PASSWORD,
        )

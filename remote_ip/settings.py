"""Settings for the remote IP middleware."""

import os
import re
from enum import Enum
from typing import Any, Literal

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from remote_ip.constants import DEFAULT_INTERNAL_PROXIES, FORWARDED_HEADER
from remote_ip.trust import TrustPattern


class Environment(str, Enum):
    """Application environment types."""

    DEV = "dev"
    STAGING = "staging"
    PRODUCTION = "production"


class Settings(BaseSettings):  # type: ignore[misc]
    """
    Main settings class.

    Header names are matched case-insensitively at request time, but the
    settings themselves are read from case-sensitive environment variables.
    """

    model_config = SettingsConfigDict(case_sensitive=True)

    # Environment configuration
    ENV: Environment = Environment.DEV

    # Logging settings
    LOG_FILE_PATH: str = "logs/logging_errors.log"
    LOG_LEVEL: str = "INFO"
    LOG_CONSOLE_FORMAT: Literal["human", "json"] = "human"

    # Legacy (X-Forwarded-*) header names
    REMOTE_IP_HEADER: str = "X-Forwarded-For"
    PROXIES_HEADER: str = "X-Forwarded-By"
    PROTOCOL_HEADER: str | None = None
    PROTOCOL_HEADER_HTTPS_VALUE: str = "https"
    PORT_HEADER: str | None = None
    HOST_HEADER: str | None = None

    # Proxy trust patterns (full-match regular expressions, "" = unset)
    INTERNAL_PROXIES: str = DEFAULT_INTERNAL_PROXIES
    TRUSTED_PROXIES: str = ""

    # Ports applied when a protocol claim is honoured
    HTTP_SERVER_PORT: int = 80
    HTTPS_SERVER_PORT: int = 443

    # Behaviour toggles
    SUPPORT_RFC7239_ONLY: bool = False
    REQUEST_ATTRIBUTES_ENABLED: bool = True
    CHANGE_LOCAL_NAME: bool = False
    CHANGE_LOCAL_PORT: bool = False
    ENABLE_LOOKUPS: bool = False

    def __init__(self, **kwargs: Any) -> None:
        """Initialize settings with environment-specific defaults."""
        super().__init__(**kwargs)
        self._apply_environment_defaults(kwargs)

    @field_validator("INTERNAL_PROXIES", "TRUSTED_PROXIES")
    @classmethod
    def _validate_pattern(cls, value: str) -> str:
        try:
            re.compile(value)
        except re.error as ex:
            raise ValueError(f"Invalid proxy pattern {value!r}: {ex}") from ex
        return value

    @field_validator("HTTP_SERVER_PORT", "HTTPS_SERVER_PORT")
    @classmethod
    def _validate_port(cls, value: int) -> int:
        if not 0 <= value <= 65535:
            raise ValueError(f"Port out of range: {value}")
        return value

    def _apply_environment_defaults(self, explicit: dict[str, Any]) -> None:
        """Apply environment-specific logging defaults."""

        def unset(name: str) -> bool:
            return name not in explicit and os.getenv(name) is None

        if self.ENV == Environment.PRODUCTION:
            if unset("LOG_CONSOLE_FORMAT"):
                self.LOG_CONSOLE_FORMAT = "json"
            if unset("LOG_LEVEL"):
                self.LOG_LEVEL = "WARNING"

        elif self.ENV == Environment.STAGING:
            if unset("LOG_CONSOLE_FORMAT"):
                self.LOG_CONSOLE_FORMAT = "json"
            if unset("LOG_LEVEL"):
                self.LOG_LEVEL = "INFO"

        else:  # Environment.DEV
            if unset("LOG_CONSOLE_FORMAT"):
                self.LOG_CONSOLE_FORMAT = "human"
            if unset("LOG_LEVEL"):
                self.LOG_LEVEL = "DEBUG"

    @property
    def trust_pattern(self) -> TrustPattern:
        """Get the compiled internal/trusted proxy patterns."""
        return TrustPattern.compile(
            internal=self.INTERNAL_PROXIES, trusted=self.TRUSTED_PROXIES
        )

    @property
    def managed_headers(self) -> tuple[str, ...]:
        """Headers the middleware may rewrite for the configured mode."""
        if self.SUPPORT_RFC7239_ONLY:
            return (FORWARDED_HEADER,)
        return (self.PROXIES_HEADER, self.REMOTE_IP_HEADER)


app_settings = Settings()

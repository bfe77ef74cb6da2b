"""Timeout settings configuration for sshbuddy operations.

Provides centralized timeout configuration using Pydantic BaseSettings
with environment variable support for operational tuning.
"""

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class SSHBuddyTimeoutSettings(BaseSettings):
    """Remote, probe and session timing configuration."""

    remote_http_timeout: float = Field(
        10.0, alias="REMOTE_HTTP_TIMEOUT", description="Remote inventory HTTP timeout in seconds"
    )

    probe_timeout: float = Field(
        1.0, alias="PROBE_TIMEOUT", description="Reachability probe timeout in seconds"
    )

    probe_grace: float = Field(
        1.0, alias="PROBE_GRACE", description="Extra seconds allowed for the probe process to exit"
    )

    session_expiry_skew: int = Field(
        300, alias="SESSION_EXPIRY_SKEW", description="Seconds before expiry a token is treated as stale"
    )

    default_session_lifetime: int = Field(
        86400,
        alias="DEFAULT_SESSION_LIFETIME",
        description="Session lifetime in seconds when the server sends no hint",
    )

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")


# Global settings instance
timeout_settings = SSHBuddyTimeoutSettings()

# Timeout constants for easy import
REMOTE_HTTP_TIMEOUT: float = timeout_settings.remote_http_timeout
PROBE_TIMEOUT: float = timeout_settings.probe_timeout
PROBE_GRACE: float = timeout_settings.probe_grace
SESSION_EXPIRY_SKEW: int = timeout_settings.session_expiry_skew
DEFAULT_SESSION_LIFETIME: int = timeout_settings.default_session_lifetime

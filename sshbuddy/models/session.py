"""Remote session models."""

from datetime import UTC, datetime, timedelta

from pydantic import BaseModel, SecretStr, field_validator

from ..core.settings import SESSION_EXPIRY_SKEW


class Credentials(BaseModel):
    """Username/password pair collected interactively. Never persisted."""

    username: str
    password: SecretStr


class SessionState(BaseModel):
    """Cached bearer token and its absolute expiry."""

    token: str
    expires_at: datetime

    @field_validator("expires_at")
    @classmethod
    def _ensure_aware(cls, value: datetime) -> datetime:
        if value.tzinfo is None:
            return value.replace(tzinfo=UTC)
        return value

    def is_usable(self, now: datetime | None = None, skew: int = SESSION_EXPIRY_SKEW) -> bool:
        """True while ``now`` is more than ``skew`` seconds before expiry."""
        if not self.token:
            return False
        now = now or datetime.now(UTC)
        return now < self.expires_at - timedelta(seconds=skew)

"""Client for the remote host inventory API.

The client handles token acquisition, expiry checks and a single transparent
re-authentication when the server rejects a token. It never persists anything:
the session it ends up with is handed back to the caller in ``FetchResult``.
"""

import asyncio
import json
from collections.abc import Callable
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta
from email.utils import parsedate_to_datetime
from http.cookies import Morsel
from typing import Any

import aiohttp
import structlog
from pydantic import AliasChoices, BaseModel, Field, ValidationError, field_validator

from ..constants import AUTH_PATH, HOSTS_PATH, RESPONSE_PREVIEW_LIMIT, SESSION_COOKIE
from ..models import Credentials, HostProfile, HostSource, SessionState
from .exceptions import (
    AuthenticationRequired,
    InvalidResponse,
    RemoteStatusError,
    SSHBuddyError,
    Unreachable,
)
from .settings import DEFAULT_SESSION_LIFETIME, REMOTE_HTTP_TIMEOUT, SESSION_EXPIRY_SKEW


class RemoteHostRecord(BaseModel):
    """Host record as served by the remote inventory."""

    name: str
    address: str = Field(validation_alias=AliasChoices("address", "ip"))
    port: int = 22
    username: str = ""
    tags: list[str] = Field(default_factory=list)

    model_config = {"extra": "ignore"}

    @field_validator("port", mode="before")
    @classmethod
    def _null_port(cls, value: object) -> object:
        return 22 if value is None else value

    @field_validator("username", mode="before")
    @classmethod
    def _null_username(cls, value: object) -> object:
        return "" if value is None else value

    @field_validator("tags", mode="before")
    @classmethod
    def _null_tags(cls, value: object) -> object:
        return [] if value is None else value

    def to_profile(self) -> HostProfile:
        # Remote key material is not exposed to this client; identity stays empty.
        return HostProfile(
            alias=self.name,
            hostname=self.address,
            user=self.username,
            port=str(self.port),
            tags=list(self.tags),
            source=HostSource.REMOTE,
        )


@dataclass
class FetchResult:
    """Hosts fetched from the remote inventory plus the session used."""

    hosts: list[HostProfile]
    session: SessionState
    session_changed: bool = False


def preview_body(body: str, limit: int = RESPONSE_PREVIEW_LIMIT) -> str:
    """Bounded excerpt of a response body for diagnostics."""
    if len(body) > limit:
        return body[:limit] + "..."
    return body


class RemoteInventoryClient:
    """Talks to the remote inventory API over HTTP."""

    def __init__(
        self,
        base_url: str,
        *,
        timeout: float = REMOTE_HTTP_TIMEOUT,
        auth_path: str = AUTH_PATH,
        hosts_path: str = HOSTS_PATH,
        session_skew: int = SESSION_EXPIRY_SKEW,
        logger: Any = None,
        clock: Callable[[], datetime] | None = None,
    ):
        """Initialize the remote inventory client.

        Args:
            base_url: API base address, e.g. ``https://inventory.example.com/api``
            timeout: Total client-side timeout per request in seconds
            auth_path: Path of the authentication endpoint
            hosts_path: Path of the host listing endpoint
            session_skew: Seconds before expiry a cached token is considered stale
            logger: structlog-compatible logger; defaults to the module logger
            clock: Callable returning the current aware datetime
        """
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.auth_url = f"{self.base_url}{auth_path}"
        self.hosts_url = f"{self.base_url}{hosts_path}"
        self.session_skew = session_skew
        self.logger = logger or structlog.get_logger()
        self._clock = clock or (lambda: datetime.now(UTC))
        self._http: aiohttp.ClientSession | None = None

    async def __aenter__(self) -> "RemoteInventoryClient":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()

    async def close(self) -> None:
        """Close the underlying HTTP session."""
        if self._http and not self._http.closed:
            await self._http.close()
        self._http = None

    def _get_http(self) -> aiohttp.ClientSession:
        if self._http is None or self._http.closed:
            self._http = aiohttp.ClientSession(
                timeout=aiohttp.ClientTimeout(total=self.timeout),
                cookie_jar=aiohttp.DummyCookieJar(),
            )
        return self._http

    def session_is_usable(self, session: SessionState | None) -> bool:
        return session is not None and session.is_usable(self._clock(), self.session_skew)

    async def authenticate(self, credentials: Credentials) -> SessionState:
        """Log in and return a fresh session.

        Raises:
            AuthenticationRequired: If the server rejects the credentials
            InvalidResponse: If the server answers without a usable token
            RemoteStatusError: On any other non-success status
            Unreachable: On transport failure or timeout
        """
        payload = {
            "username": credentials.username,
            "password": credentials.password.get_secret_value(),
        }
        self.logger.debug("Authenticating with remote inventory", url=self.auth_url, username=credentials.username)

        try:
            async with self._get_http().post(self.auth_url, json=payload) as response:
                body = await response.text()
                status = response.status
                cookie = response.cookies.get(SESSION_COOKIE)
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            raise Unreachable(self.auth_url, str(e) or type(e).__name__) from e

        self.logger.debug("Remote inventory auth response", status=status)

        if status in (401, 403):
            raise AuthenticationRequired(f"remote inventory rejected credentials (status {status})")
        if not 200 <= status < 300:
            raise RemoteStatusError(status, preview_body(body))

        session = self._session_from_response(cookie, body)
        self.logger.info("Remote inventory authentication succeeded", expires_at=session.expires_at.isoformat())
        return session

    def _session_from_response(self, cookie: Morsel | None, body: str) -> SessionState:
        now = self._clock()
        data: dict[str, Any] = {}
        try:
            loaded = json.loads(body) if body.strip() else {}
            if isinstance(loaded, dict):
                data = loaded
        except json.JSONDecodeError:
            pass  # cookie-only responses may carry any body

        token = cookie.value if cookie is not None and cookie.value else data.get("token")
        if not token or not isinstance(token, str):
            raise InvalidResponse("authentication response carried no session token", preview_body(body))

        expires_at = self._cookie_expiry(cookie, now)
        if expires_at is None:
            lifetime = data.get("expiresIn", data.get("expires_in"))
            if isinstance(lifetime, int | float) and lifetime > 0:
                expires_at = now + timedelta(seconds=lifetime)
        if expires_at is None:
            expires_at = now + timedelta(seconds=DEFAULT_SESSION_LIFETIME)

        return SessionState(token=token, expires_at=expires_at)

    @staticmethod
    def _cookie_expiry(cookie: Morsel | None, now: datetime) -> datetime | None:
        if cookie is None:
            return None
        max_age = cookie.get("max-age")
        if max_age:
            try:
                seconds = int(max_age)
            except ValueError:
                seconds = 0
            if seconds > 0:
                return now + timedelta(seconds=seconds)
        expires = cookie.get("expires")
        if expires:
            try:
                parsed = parsedate_to_datetime(expires)
            except (TypeError, ValueError):
                return None
            return parsed if parsed.tzinfo else parsed.replace(tzinfo=UTC)
        return None

    async def fetch_hosts(
        self,
        cached_session: SessionState | None,
        credentials: Credentials | None = None,
    ) -> FetchResult:
        """Fetch remote hosts, authenticating when needed.

        Args:
            cached_session: Previously obtained session, if any
            credentials: Optional credentials for (re-)authentication

        Returns:
            FetchResult with the hosts and the session that was used

        Raises:
            AuthenticationRequired: Session missing/expired/rejected and no way to renew it
            InvalidResponse: Body is not the expected JSON host list
            RemoteStatusError: Unexpected HTTP status
            Unreachable: Transport failure or timeout

        Errors raised after a successful login carry the new session on
        ``renewed_session``.
        """
        session = cached_session
        changed = False

        if not self.session_is_usable(session):
            if credentials is None:
                raise AuthenticationRequired("remote inventory session expired or missing")
            session = await self.authenticate(credentials)
            changed = True

        status, body = await self._get_hosts_after_login(session, changed)

        if status == 401:
            if credentials is None:
                raise AuthenticationRequired("remote inventory rejected the session token")
            self.logger.info("Remote inventory rejected token, re-authenticating")
            session = await self.authenticate(credentials)
            changed = True
            status, body = await self._get_hosts_after_login(session, changed)
            if status == 401:
                raise AuthenticationRequired("remote inventory rejected the renewed session token")

        try:
            if not 200 <= status < 300:
                raise RemoteStatusError(status, preview_body(body))
            hosts = self._decode_hosts(body)
        except SSHBuddyError as e:
            if changed:
                e.renewed_session = session
            raise

        self.logger.info("Fetched remote hosts", count=len(hosts), session_changed=changed)
        return FetchResult(hosts=hosts, session=session, session_changed=changed)

    async def _get_hosts_after_login(self, session: SessionState, renewed: bool) -> tuple[int, str]:
        try:
            return await self._get_hosts(session.token)
        except Unreachable as e:
            if renewed:
                e.renewed_session = session
            raise

    async def _get_hosts(self, token: str) -> tuple[int, str]:
        headers = {"Authorization": f"Bearer {token}", "Accept": "application/json"}
        try:
            async with self._get_http().get(self.hosts_url, headers=headers) as response:
                return response.status, await response.text()
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            raise Unreachable(self.hosts_url, str(e) or type(e).__name__) from e

    def _decode_hosts(self, body: str) -> list[HostProfile]:
        try:
            data = json.loads(body)
        except json.JSONDecodeError as e:
            self.logger.warning("Remote inventory returned invalid JSON", preview=preview_body(body, 100))
            raise InvalidResponse("remote inventory returned invalid JSON", preview_body(body)) from e

        if not isinstance(data, list):
            raise InvalidResponse("remote inventory did not return a host list", preview_body(body))

        try:
            records = [RemoteHostRecord.model_validate(item) for item in data]
        except ValidationError as e:
            raise InvalidResponse(
                f"remote host record does not match schema ({e.error_count()} errors)",
                preview_body(body),
            ) from e

        return [record.to_profile() for record in records]

"""
Inventory Service

Caller-side orchestration: drives aggregation, owns the cached remote
session, edits manual hosts and reconciles probe results.
"""

import asyncio
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

from ..constants import ALIAS
from ..core.aggregation import AggregationEngine
from ..core.config_loader import SessionCache, SSHBuddyConfig, save_config
from ..core.exceptions import AuthenticationRequired, CorruptStore, SourceFetchError, SSHBuddyError
from ..core.logging_config import get_logger
from ..core.native_config import NativeConfigAdapter
from ..core.probe import ProbeScheduler
from ..core.profile_store import ProfileStore
from ..core.remote_client import RemoteInventoryClient
from ..models import (
    Credentials,
    HostProfile,
    HostSource,
    ProbeResult,
    SessionState,
    validate_profiles,
)
from .probe_board import ProbeBoard


@dataclass
class RefreshOutcome:
    """Result of one refresh of the unified host list."""

    hosts: list[HostProfile]
    error: Exception | None = None
    native_error: Exception | None = None
    session_error: Exception | None = None
    store_error: Exception | None = None

    @property
    def needs_credentials(self) -> bool:
        return isinstance(self.error, AuthenticationRequired)

    @property
    def ok(self) -> bool:
        return self.error is None and self.native_error is None and self.store_error is None


class InventoryService:
    """Service for host inventory operations."""

    def __init__(
        self,
        config: SSHBuddyConfig,
        store: ProfileStore | None = None,
        session_cache: SessionCache | None = None,
        remote_client: RemoteInventoryClient | None = None,
        native_adapter: NativeConfigAdapter | None = None,
        engine: AggregationEngine | None = None,
        scheduler: ProbeScheduler | None = None,
    ):
        self.config = config
        self.store = store or ProfileStore(config.hosts_path)
        self.session_cache = session_cache or SessionCache(config.session_path)
        self.native_adapter = native_adapter or NativeConfigAdapter(config.ssh_config_path)
        self.remote_client = remote_client
        self.engine = engine or AggregationEngine()
        self.scheduler = scheduler or ProbeScheduler()
        self.board = ProbeBoard()
        self.hosts: list[HostProfile] = []
        self.session: SessionState | None = None
        self._session_loaded = False
        self.logger = get_logger("sshbuddy.inventory")
        self._config_lock = asyncio.Lock()

    async def close(self) -> None:
        if self.remote_client is not None:
            await self.remote_client.close()

    def _get_remote_client(self) -> RemoteInventoryClient | None:
        if self.remote_client is None and self.config.remote.base_url:
            self.remote_client = RemoteInventoryClient(self.config.remote.base_url)
        return self.remote_client

    async def _ensure_session_loaded(self) -> None:
        if not self._session_loaded:
            self.session = await self.session_cache.load()
            self._session_loaded = True

    async def _persist_session(self, session: SessionState) -> Exception | None:
        """Save the session; a failure is reported, never raised."""
        try:
            await self.session_cache.save(session)
        except OSError as e:
            self.logger.error(
                "Failed to persist session", path=str(self.session_cache.path), error=str(e)
            )
            return e
        return None

    async def refresh(self, credentials: Credentials | None = None) -> RefreshOutcome:
        """Recompute the unified host list from every enabled source.

        Args:
            credentials: Credentials collected after an AuthenticationRequired prompt

        Returns:
            RefreshOutcome with the hosts that could be computed and any errors
        """
        toggles = self.config.sources

        manual: list[HostProfile] = []
        store_error: Exception | None = None
        if toggles.manual_enabled:
            try:
                manual = await self.store.load()
            except CorruptStore as e:
                self.logger.error("Manual host store unreadable", path=e.path, error=e.reason)
                store_error = e

        native: list[HostProfile] = []
        native_error: Exception | None = None
        if toggles.ssh_config_enabled:
            try:
                native = await self.native_adapter.load()
            except (OSError, ValueError) as e:
                path = str(self.native_adapter.config_path or "~/.ssh/config")
                self.logger.warning("SSH config source failed", path=path, error=str(e))
                native_error = SourceFetchError(HostSource.SSH_CONFIG.value, path, e)

        await self._ensure_session_loaded()
        session_error: Exception | None = None
        client = self._get_remote_client() if toggles.remote_enabled else None

        async def fetch_remote() -> list[HostProfile]:
            nonlocal session_error
            try:
                result = await client.fetch_hosts(self.session, credentials)
            except SSHBuddyError as e:
                if e.renewed_session is not None:
                    self.session = e.renewed_session
                    session_error = await self._persist_session(e.renewed_session)
                raise
            if result.session_changed:
                self.session = result.session
                session_error = await self._persist_session(result.session)
            return result.hosts

        aggregation = await self.engine.aggregate(
            toggles,
            manual,
            native,
            remote_fetch=fetch_remote if client is not None else None,
            remote_base_url=self.config.remote.base_url,
        )
        self.hosts = aggregation.hosts

        return RefreshOutcome(
            hosts=aggregation.hosts,
            error=aggregation.error,
            native_error=native_error,
            session_error=session_error,
            store_error=store_error,
        )

    async def authenticate(self, credentials: Credentials) -> SessionState:
        """Log in to the remote inventory explicitly and cache the session.

        Raises:
            ValueError: If no remote base address is configured
            AuthenticationRequired: If the credentials are rejected
        """
        client = self._get_remote_client()
        if client is None:
            raise ValueError("remote inventory base address is not configured")

        session = await client.authenticate(credentials)
        self.session = session
        self._session_loaded = True
        await self._persist_session(session)
        return session

    async def set_source_enabled(self, source: HostSource, enabled: bool) -> dict[str, Any]:
        """Enable or disable a source; stored profiles are left untouched."""
        async with self._config_lock:
            self.config.sources = self.config.sources.with_source(source, enabled)
            await save_config(self.config)

        self.logger.info("Source toggled", source=source.value, enabled=enabled)
        return {
            "success": True,
            "message": f"Source {source.value} {'enabled' if enabled else 'disabled'}",
            "source": source.value,
            "enabled": enabled,
        }

    async def add_host(self, profile: HostProfile) -> dict[str, Any]:
        """Add a manual host.

        Returns:
            Operation result
        """
        profile = profile.with_source(HostSource.MANUAL)
        async with self._config_lock:
            manual = await self.store.load()
            return await self._save_manual(
                manual + [profile], profile.alias, f"Host {profile.alias} added"
            )

    async def edit_host(self, alias: str, profile: HostProfile) -> dict[str, Any]:
        """Replace the manual host stored under ``alias``."""
        profile = profile.with_source(HostSource.MANUAL)
        async with self._config_lock:
            manual = await self.store.load()
            index = _find_alias(manual, alias)
            if index is None:
                return self._not_editable(alias)
            manual[index] = profile
            return await self._save_manual(manual, profile.alias, f"Host {alias} updated")

    async def remove_host(self, alias: str) -> dict[str, Any]:
        """Delete the manual host stored under ``alias``."""
        async with self._config_lock:
            manual = await self.store.load()
            index = _find_alias(manual, alias)
            if index is None:
                return self._not_editable(alias)
            removed = manual.pop(index)
            await self.store.save(manual)

        self.logger.info("Manual host removed", alias=alias, hostname=removed.hostname)
        return {
            "success": True,
            "message": f"Host {alias} ({removed.hostname}) removed",
            ALIAS: alias,
        }

    async def _save_manual(
        self, manual: list[HostProfile], alias: str, message: str
    ) -> dict[str, Any]:
        issues = validate_profiles(manual)
        if issues:
            errors = [str(issue) for issue in issues]
            self.logger.warning("Rejected manual host change", alias=alias, errors=errors)
            return {"success": False, "error": "; ".join(errors), "errors": errors, ALIAS: alias}

        await self.store.save(manual)
        self.logger.info("Manual hosts updated", alias=alias, count=len(manual))
        return {"success": True, "message": message, ALIAS: alias}

    def _not_editable(self, alias: str) -> dict[str, Any]:
        for host in self.hosts:
            if host.alias == alias and host.source != HostSource.MANUAL:
                return {
                    "success": False,
                    "error": f"Host '{alias}' comes from {host.source.value} and is read-only",
                    ALIAS: alias,
                }
        return {"success": False, "error": f"Host '{alias}' not found", ALIAS: alias}

    def probe_all(
        self, on_result: Callable[[ProbeResult], None] | None = None
    ) -> list[asyncio.Task]:
        """Start probing every host in the current list without waiting."""
        hosts = list(self.hosts)
        self.board.mark_pending(hosts)

        def _report(result: ProbeResult) -> None:
            self.board.apply(result)
            if on_result is not None:
                on_result(result)

        return self.scheduler.start_all(hosts, _report)

    async def probe_host(self, host: HostProfile) -> ProbeResult:
        """Probe one host and record the result on the board."""
        self.board.mark_pending([host])
        result = await self.scheduler.probe(host)
        self.board.apply(result)
        return result


def _find_alias(profiles: list[HostProfile], alias: str) -> int | None:
    for index, profile in enumerate(profiles):
        if profile.alias == alias:
            return index
    return None

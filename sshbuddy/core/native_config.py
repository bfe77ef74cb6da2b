"""Adapter turning native SSH client configuration records into host profiles."""

import asyncio
import os
from collections.abc import Iterable
from pathlib import Path

import structlog

from ..constants import (
    DEFAULT_SSH_PORT,
    FALLBACK_USER,
    FORWARDING_OPTIONS,
    TAG_FORWARDING,
    TAG_KEY_AUTH,
    TAG_PROXY,
    TAG_SSH_CONFIG,
)
from ..models import HostProfile, HostSource
from .ssh_config_parser import NativeHostRecord, SSHConfigParser

logger = structlog.get_logger()


class NativeConfigAdapter:
    """Read-only source of ``ssh-config`` profiles.

    Profiles produced here are recomputed on every load and are never written
    back to the profile store.
    """

    def __init__(self, config_path: str | Path | None = None, default_user: str | None = None):
        self.config_path = config_path
        self.default_user = default_user or os.getenv("USER") or FALLBACK_USER

    def to_profile(self, record: NativeHostRecord) -> HostProfile:
        tags = [TAG_SSH_CONFIG]
        if record.identity_file:
            tags.append(TAG_KEY_AUTH)
        if record.proxy_jump:
            tags.append(TAG_PROXY)
        if any(option in record.other_options for option in FORWARDING_OPTIONS):
            tags.append(TAG_FORWARDING)

        return HostProfile(
            alias=record.alias,
            hostname=record.hostname or record.alias,
            user=record.user or self.default_user,
            port=record.port or DEFAULT_SSH_PORT,
            identity_file=record.identity_file,
            proxy_jump=record.proxy_jump,
            tags=tags,
            source=HostSource.SSH_CONFIG,
        )

    def to_profiles(self, records: Iterable[NativeHostRecord]) -> list[HostProfile]:
        """Convert already-parsed records, preserving their order."""
        return [self.to_profile(record) for record in records]

    async def load(self) -> list[HostProfile]:
        """Read the SSH client configuration from disk and convert it."""
        parser = SSHConfigParser(self.config_path)
        records = await asyncio.to_thread(parser.parse)
        profiles = self.to_profiles(records)
        logger.info("Loaded SSH config hosts", path=str(parser.config_path), count=len(profiles))
        return profiles

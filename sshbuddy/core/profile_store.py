"""Persistence for user-edited (manual) host profiles."""

import asyncio
from collections.abc import Iterable
from pathlib import Path
from typing import Any

import structlog
import yaml
from pydantic import ValidationError

from ..constants import DEFAULT_SSH_PORT
from ..models import HostProfile, HostSource
from .exceptions import CorruptStore

logger = structlog.get_logger()

# Fields written to disk; ``source`` is assigned at aggregation time.
PERSISTED_FIELDS = ("alias", "hostname", "user", "port", "identity_file", "proxy_jump", "tags")


class ProfileStore:
    """Loads and saves the ``manual`` host list as YAML."""

    def __init__(self, path: str | Path):
        self.path = Path(path)

    async def load(self) -> list[HostProfile]:
        """Load manual profiles.

        A missing file is a first run and yields an empty list.

        Raises:
            CorruptStore: If the file exists but cannot be interpreted
        """
        if not self.path.exists():
            logger.debug("Profile store not found, starting empty", path=str(self.path))
            return []

        try:
            content = await asyncio.to_thread(self.path.read_text, encoding="utf-8")
        except OSError as e:
            raise CorruptStore(str(self.path), str(e)) from e

        profiles = self._parse(content)
        logger.info("Loaded manual hosts", path=str(self.path), count=len(profiles))
        return profiles

    async def save(self, profiles: Iterable[HostProfile]) -> None:
        """Write manual profiles, dropping anything from other sources."""
        manual = [p for p in profiles if p.source == HostSource.MANUAL]
        content = self._dump(manual)

        def _write() -> None:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            self.path.write_text(content, encoding="utf-8")

        try:
            await asyncio.to_thread(_write)
        except OSError as e:
            logger.error("Failed to save manual hosts", path=str(self.path), error=str(e))
            raise

        logger.info("Manual hosts saved", path=str(self.path), count=len(manual))

    def _parse(self, content: str) -> list[HostProfile]:
        try:
            data = yaml.safe_load(content)
        except yaml.YAMLError as e:
            raise CorruptStore(str(self.path), f"invalid YAML: {e}") from e

        if data is None:
            return []
        if not isinstance(data, dict):
            raise CorruptStore(str(self.path), "expected a mapping with a 'hosts' list")

        hosts = data.get("hosts") or []
        if not isinstance(hosts, list):
            raise CorruptStore(str(self.path), "'hosts' must be a list")

        profiles = []
        for index, entry in enumerate(hosts):
            if not isinstance(entry, dict):
                raise CorruptStore(str(self.path), f"host #{index + 1} is not a mapping")
            fields = {k: v for k, v in entry.items() if k in PERSISTED_FIELDS}
            try:
                profiles.append(HostProfile(**fields, source=HostSource.MANUAL))
            except ValidationError as e:
                raise CorruptStore(str(self.path), f"host #{index + 1}: {e}") from e
        return profiles

    def _dump(self, profiles: list[HostProfile]) -> str:
        data = {"hosts": [_build_host_data(p) for p in profiles]}
        return yaml.safe_dump(data, default_flow_style=False, sort_keys=False)


def _build_host_data(profile: HostProfile) -> dict[str, Any]:
    """Build host data dictionary with non-default values."""
    host_data: dict[str, Any] = {
        "alias": profile.alias,
        "hostname": profile.hostname,
        "user": profile.user,
    }

    conditional_fields = [
        ("port", profile.port, profile.port != DEFAULT_SSH_PORT),
        ("identity_file", profile.identity_file, bool(profile.identity_file)),
        ("proxy_jump", profile.proxy_jump, bool(profile.proxy_jump)),
        ("tags", list(profile.tags), bool(profile.tags)),
    ]

    for field_name, field_value, condition in conditional_fields:
        if condition:
            host_data[field_name] = field_value

    return host_data

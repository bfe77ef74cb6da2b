"""Merges manual, native and remote hosts into one precedence-resolved list."""

from collections.abc import Awaitable, Callable, Iterable, Sequence
from dataclasses import dataclass, field

import structlog

from ..models import SOURCE_PRECEDENCE, HostProfile, HostSource, SourceToggles
from .exceptions import AuthenticationRequired, SourceFetchError

logger = structlog.get_logger()

RemoteFetch = Callable[[], Awaitable[Sequence[HostProfile]]]


@dataclass
class AggregationResult:
    """Unified host list plus the error that stopped a source, if any.

    ``hosts`` is always populated with every source that succeeded, so the
    caller can choose to continue with a partial list.
    """

    hosts: list[HostProfile] = field(default_factory=list)
    error: Exception | None = None

    @property
    def ok(self) -> bool:
        return self.error is None

    @property
    def needs_credentials(self) -> bool:
        return isinstance(self.error, AuthenticationRequired)

    def raise_for_error(self) -> None:
        if self.error is not None:
            raise self.error


class _UnifiedList:
    """Ordered host list that keeps the first profile seen for each alias."""

    def __init__(self) -> None:
        self.hosts: list[HostProfile] = []
        self.seen: set[str] = set()

    def extend(self, profiles: Iterable[HostProfile], source: HostSource) -> int:
        added = 0
        for profile in profiles:
            # Empty aliases never collide; rejecting them is the editor's job.
            if profile.alias and profile.alias in self.seen:
                logger.debug(
                    "Alias shadowed by higher-precedence source",
                    alias=profile.alias,
                    source=source.value,
                )
                continue
            self.hosts.append(profile.with_source(source))
            if profile.alias:
                self.seen.add(profile.alias)
            added += 1
        return added


class AggregationEngine:
    """Orchestrates the three host sources in precedence order.

    manual > ssh-config > remote. Sources are consulted sequentially because
    each one needs the aliases claimed by the sources before it.
    """

    async def aggregate(
        self,
        toggles: SourceToggles,
        local_profiles: Sequence[HostProfile],
        native_profiles: Sequence[HostProfile],
        remote_fetch: RemoteFetch | None = None,
        remote_base_url: str | None = None,
    ) -> AggregationResult:
        """Build the unified host list.

        Args:
            toggles: Which sources contribute
            local_profiles: Profiles from the profile store
            native_profiles: Profiles from the SSH client configuration
            remote_fetch: Awaitable factory returning remote profiles
            remote_base_url: Remote inventory address; remote is skipped when empty

        Returns:
            AggregationResult; ``error`` is ``AuthenticationRequired`` unchanged,
            or a ``SourceFetchError`` wrapping any other remote failure
        """
        unified = _UnifiedList()
        local_sources = {
            HostSource.MANUAL: local_profiles,
            HostSource.SSH_CONFIG: native_profiles,
        }

        for source in SOURCE_PRECEDENCE:
            if not toggles.is_enabled(source):
                continue
            if source in local_sources:
                unified.extend(local_sources[source], source)
                continue
            if not remote_base_url or remote_fetch is None:
                continue
            try:
                remote_profiles = await remote_fetch()
            except AuthenticationRequired as e:
                logger.info("Remote source needs credentials", endpoint=remote_base_url)
                return AggregationResult(hosts=unified.hosts, error=e)
            except Exception as e:
                logger.error(
                    "Remote source failed",
                    endpoint=remote_base_url,
                    error=str(e),
                    error_type=type(e).__name__,
                )
                wrapped = SourceFetchError(HostSource.REMOTE.value, remote_base_url, e)
                wrapped.__cause__ = e
                return AggregationResult(hosts=unified.hosts, error=wrapped)
            unified.extend(remote_profiles, HostSource.REMOTE)

        logger.info(
            "Aggregated hosts",
            total=len(unified.hosts),
            manual=toggles.manual_enabled,
            ssh_config=toggles.ssh_config_enabled,
            remote=toggles.remote_enabled and bool(remote_base_url),
        )
        return AggregationResult(hosts=unified.hosts)

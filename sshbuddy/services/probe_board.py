"""In-memory view of reachability results, keyed by host key."""

from collections.abc import Iterable
from dataclasses import dataclass

from ..models import HostProfile, ProbeResult


@dataclass(frozen=True)
class ProbeStatus:
    """What the host list shows next to a host."""

    pending: bool = False
    reachable: bool | None = None  # None until a probe has reported
    latency_ms: float | None = None


class ProbeBoard:
    """Reconciles asynchronous probe results into display state.

    Results are applied last-write-wins per host key, so duplicate or late
    results from overlapping probe rounds are harmless.
    """

    def __init__(self) -> None:
        self._results: dict[str, ProbeResult] = {}
        self._pending: set[str] = set()

    def mark_pending(self, hosts: Iterable[HostProfile]) -> None:
        for host in hosts:
            self._pending.add(host.host_key)

    def apply(self, result: ProbeResult) -> None:
        self._results[result.host_key] = result
        self._pending.discard(result.host_key)

    def status(self, host: HostProfile) -> ProbeStatus:
        key = host.host_key
        result = self._results.get(key)
        if result is None:
            return ProbeStatus(pending=key in self._pending)
        return ProbeStatus(
            pending=key in self._pending,
            reachable=result.reachable,
            latency_ms=result.latency_ms,
        )

    @property
    def pending_count(self) -> int:
        return len(self._pending)

    def clear(self) -> None:
        self._results.clear()
        self._pending.clear()

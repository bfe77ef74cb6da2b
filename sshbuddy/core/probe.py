"""Concurrent reachability probing for host profiles."""

import asyncio
import math
import re
import sys
from collections.abc import AsyncIterator, Awaitable, Callable, Iterable

import structlog

from ..models import HostProfile, ProbeResult
from .settings import PROBE_GRACE, PROBE_TIMEOUT

logger = structlog.get_logger()

KILL_TIMEOUT = 1  # Time to wait after SIGTERM before SIGKILL

# Matches "time=12.3 ms", "time=12 ms" and "time<1 ms"
LATENCY_PATTERN = re.compile(r"time[=<]\s*([\d.]+)\s*ms")

ProbeRunner = Callable[[list[str], float], Awaitable[tuple[int, str]]]


def build_ping_command(hostname: str, timeout: float) -> list[str]:
    """Single ping with a bounded wait, in the local platform's dialect."""
    seconds = max(1, math.ceil(timeout))
    if sys.platform == "darwin":
        # BSD ping takes the per-reply wait in milliseconds
        return ["ping", "-c", "1", "-W", str(seconds * 1000), hostname]
    return ["ping", "-c", "1", "-W", str(seconds), hostname]


def parse_latency(output: str) -> float | None:
    """Extract the round-trip time in milliseconds from ping output."""
    match = LATENCY_PATTERN.search(output)
    if not match:
        return None
    try:
        return float(match.group(1))
    except ValueError:
        return None


async def run_ping(cmd: list[str], timeout: float) -> tuple[int, str]:
    """Run a ping process and return its exit status and combined output.

    Raises:
        OSError: If the process cannot be started
        asyncio.TimeoutError: If it does not finish within ``timeout``
    """
    process = await asyncio.create_subprocess_exec(
        *cmd,
        stdout=asyncio.subprocess.PIPE,
        stderr=asyncio.subprocess.STDOUT,
    )
    try:
        stdout, _ = await asyncio.wait_for(process.communicate(), timeout=timeout)
    finally:
        if process.returncode is None:
            try:
                process.terminate()
                await asyncio.wait_for(process.wait(), timeout=KILL_TIMEOUT)
            except asyncio.TimeoutError:
                process.kill()
                await process.wait()
            except ProcessLookupError:
                pass
    return process.returncode or 0, stdout.decode(errors="replace") if stdout else ""


class ProbeScheduler:
    """Fires one independent reachability probe per host.

    Probes never touch host records; they only emit ``ProbeResult`` keyed by
    host key. There is no cancellation and no retry: each probe runs to
    completion or to its timeout.
    """

    def __init__(
        self,
        timeout: float = PROBE_TIMEOUT,
        grace: float = PROBE_GRACE,
        runner: ProbeRunner | None = None,
    ):
        self.timeout = timeout
        self.grace = grace
        self._runner = runner or run_ping
        self._tasks: set[asyncio.Task] = set()

    async def probe(self, host: HostProfile) -> ProbeResult:
        """Probe a single host. Never raises."""
        key = host.host_key
        if not host.hostname:
            return ProbeResult(host_key=key, reachable=False)

        cmd = build_ping_command(host.hostname, self.timeout)
        try:
            returncode, output = await asyncio.wait_for(
                self._runner(cmd, self.timeout + self.grace),
                timeout=self.timeout + self.grace + KILL_TIMEOUT,
            )
        except asyncio.TimeoutError:
            logger.debug("Probe timed out", host_key=key, timeout=self.timeout)
            return ProbeResult(host_key=key, reachable=False)
        except Exception as e:
            logger.warning("Probe could not run", host_key=key, error=str(e), error_type=type(e).__name__)
            return ProbeResult(host_key=key, reachable=False)

        if returncode != 0:
            return ProbeResult(host_key=key, reachable=False)

        return ProbeResult(host_key=key, reachable=True, latency_ms=parse_latency(output))

    async def probe_all(self, hosts: Iterable[HostProfile]) -> AsyncIterator[ProbeResult]:
        """Probe every host concurrently, yielding results as they complete."""
        tasks = [asyncio.create_task(self.probe(host)) for host in hosts]
        for next_done in asyncio.as_completed(tasks):
            yield await next_done

    def start_all(
        self,
        hosts: Iterable[HostProfile],
        on_result: Callable[[ProbeResult], None],
    ) -> list[asyncio.Task]:
        """Start probes without waiting; ``on_result`` is called per completion.

        Repeated calls are additive: earlier probes keep running and report too.
        """
        started = []
        for host in hosts:
            task = asyncio.create_task(self._probe_and_report(host, on_result))
            self._tasks.add(task)
            task.add_done_callback(self._tasks.discard)
            started.append(task)
        logger.debug("Started probes", count=len(started), in_flight=len(self._tasks))
        return started

    async def _probe_and_report(
        self, host: HostProfile, on_result: Callable[[ProbeResult], None]
    ) -> ProbeResult:
        result = await self.probe(host)
        try:
            on_result(result)
        except Exception as e:
            logger.error("Probe result handler failed", host_key=result.host_key, error=str(e))
        return result

    async def wait_idle(self) -> None:
        """Wait for every probe started via ``start_all`` to finish."""
        if self._tasks:
            await asyncio.gather(*list(self._tasks))

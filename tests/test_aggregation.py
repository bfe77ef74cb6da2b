"""
Tests for merging host sources into the unified list.
"""

import pytest

from sshbuddy.core.aggregation import AggregationEngine, AggregationResult
from sshbuddy.core.exceptions import (
    AuthenticationRequired,
    InvalidResponse,
    SourceFetchError,
    Unreachable,
)
from sshbuddy.models import HostProfile, HostSource, SourceToggles

from .conftest import make_host, manual_host

REMOTE_URL = "https://inventory.example.com/api"

ALL_SOURCES = SourceToggles(manual_enabled=True, ssh_config_enabled=True, remote_enabled=True)


def remote_returning(profiles):
    calls = []

    async def fetch():
        calls.append(1)
        return profiles

    fetch.calls = calls
    return fetch


def remote_raising(exc):
    async def fetch():
        raise exc

    return fetch


@pytest.fixture
def engine():
    return AggregationEngine()


@pytest.mark.asyncio
class TestPrecedence:
    """Test alias collisions across sources."""

    async def test_manual_shadows_native_and_remote(self, engine):
        manual = [manual_host("web", "10.0.0.1")]
        native = [make_host("web", "10.0.0.2", source=HostSource.SSH_CONFIG)]
        remote = [make_host("web", "10.0.0.3", source=HostSource.REMOTE)]

        result = await engine.aggregate(ALL_SOURCES, manual, native, remote_returning(remote), REMOTE_URL)

        assert result.ok
        assert len(result.hosts) == 1
        assert result.hosts[0].hostname == "10.0.0.1"
        assert result.hosts[0].source == HostSource.MANUAL

    async def test_manual_wins_and_native_fills_in(self, engine):
        manual = [manual_host("a", "1.1.1.1")]
        native = [make_host("a", "2.2.2.2"), make_host("b", "3.3.3.3")]

        result = await engine.aggregate(SourceToggles(), manual, native)

        assert [(h.alias, h.source, h.hostname) for h in result.hosts] == [
            ("a", HostSource.MANUAL, "1.1.1.1"),
            ("b", HostSource.SSH_CONFIG, "3.3.3.3"),
        ]

    async def test_native_shadows_remote(self, engine):
        native = [make_host("db", "native-db")]
        remote = [make_host("db", "remote-db"), make_host("cache", "remote-cache")]

        result = await engine.aggregate(ALL_SOURCES, [], native, remote_returning(remote), REMOTE_URL)

        assert [(h.alias, h.source) for h in result.hosts] == [
            ("db", HostSource.SSH_CONFIG),
            ("cache", HostSource.REMOTE),
        ]
        assert result.hosts[0].hostname == "native-db"

    async def test_order_is_source_then_input_order(self, engine):
        manual = [manual_host("m2", "h"), manual_host("m1", "h")]
        native = [make_host("n1", "h"), make_host("n2", "h")]
        remote = [make_host("r1", "h")]

        result = await engine.aggregate(ALL_SOURCES, manual, native, remote_returning(remote), REMOTE_URL)

        assert [h.alias for h in result.hosts] == ["m2", "m1", "n1", "n2", "r1"]

    async def test_duplicate_within_one_source_keeps_first(self, engine):
        native = [make_host("dup", "first"), make_host("dup", "second")]

        result = await engine.aggregate(SourceToggles(), [], native)

        assert [h.hostname for h in result.hosts] == ["first"]

    async def test_same_endpoint_different_alias_both_kept(self, engine):
        manual = [manual_host("a", "same.example.com")]
        native = [make_host("b", "same.example.com", user="ops")]

        result = await engine.aggregate(SourceToggles(), manual, native)

        assert [h.alias for h in result.hosts] == ["a", "b"]
        assert result.hosts[0].host_key == result.hosts[1].host_key

    async def test_empty_aliases_never_collide(self, engine):
        manual = [HostProfile(alias="", hostname="one", user="u")]
        native = [make_host("", "two")]

        result = await engine.aggregate(SourceToggles(), manual, native)

        assert [h.hostname for h in result.hosts] == ["one", "two"]

    async def test_source_tag_assigned_on_copy(self, engine):
        native_input = make_host("n", "h")
        result = await engine.aggregate(SourceToggles(), [], [native_input])

        assert result.hosts[0].source == HostSource.SSH_CONFIG
        assert native_input.source == HostSource.MANUAL


@pytest.mark.asyncio
class TestToggles:
    """Test disabled sources."""

    async def test_disabled_manual_excluded_and_does_not_shadow(self, engine):
        toggles = SourceToggles(manual_enabled=False, ssh_config_enabled=True)
        manual = [manual_host("web", "manual-web")]
        native = [make_host("web", "native-web")]

        result = await engine.aggregate(toggles, manual, native)

        assert [h.hostname for h in result.hosts] == ["native-web"]

    async def test_remote_disabled_is_not_called(self, engine):
        fetch = remote_returning([make_host("r", "h")])
        result = await engine.aggregate(SourceToggles(), [], [], fetch, REMOTE_URL)

        assert result.hosts == []
        assert fetch.calls == []

    async def test_remote_without_base_url_is_skipped(self, engine):
        fetch = remote_returning([make_host("r", "h")])
        result = await engine.aggregate(ALL_SOURCES, [], [], fetch, "")

        assert result.ok
        assert fetch.calls == []

    async def test_all_disabled(self, engine):
        toggles = SourceToggles(manual_enabled=False, ssh_config_enabled=False, remote_enabled=False)
        result = await engine.aggregate(toggles, [manual_host("a", "h")], [make_host("b", "h")])

        assert result.hosts == []
        assert result.ok


@pytest.mark.asyncio
class TestRemoteFailures:
    """Test that remote failures surface with the partial list."""

    async def test_authentication_required_passed_through(self, engine):
        error = AuthenticationRequired("session expired")
        manual = [manual_host("m", "h")]

        result = await engine.aggregate(ALL_SOURCES, manual, [], remote_raising(error), REMOTE_URL)

        assert result.error is error
        assert result.needs_credentials
        assert [h.alias for h in result.hosts] == ["m"]

    @pytest.mark.parametrize(
        "error",
        [
            Unreachable(REMOTE_URL, "connection refused"),
            InvalidResponse("not json", "<html>"),
            RuntimeError("boom"),
        ],
    )
    async def test_other_errors_wrapped(self, engine, error):
        native = [make_host("n", "h")]

        result = await engine.aggregate(ALL_SOURCES, [], native, remote_raising(error), REMOTE_URL)

        assert isinstance(result.error, SourceFetchError)
        assert result.error.source == "remote"
        assert result.error.endpoint == REMOTE_URL
        assert result.error.cause is error
        assert result.error.__cause__ is error
        assert not result.needs_credentials
        assert [h.alias for h in result.hosts] == ["n"]

    async def test_raise_for_error(self, engine):
        result = await engine.aggregate(
            ALL_SOURCES, [], [], remote_raising(Unreachable(REMOTE_URL, "down")), REMOTE_URL
        )

        with pytest.raises(SourceFetchError):
            result.raise_for_error()


def test_result_defaults():
    result = AggregationResult()
    assert result.hosts == []
    assert result.ok
    result.raise_for_error()

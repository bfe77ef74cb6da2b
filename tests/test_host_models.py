"""
Tests for host and session Pydantic models.
"""

from datetime import UTC, datetime, timedelta

import pytest
from pydantic import ValidationError

from sshbuddy.models import (
    SOURCE_PRECEDENCE,
    Credentials,
    HostProfile,
    HostSource,
    ProbeResult,
    SessionState,
    SourceToggles,
    make_host_key,
    validate_profile,
    validate_profiles,
)


class TestHostProfile:
    """Test HostProfile defaults and normalization."""

    def test_minimal_fields(self):
        host = HostProfile(alias="web", hostname="web.example.com", user="deploy")

        assert host.port == "22"
        assert host.identity_file is None
        assert host.proxy_jump is None
        assert host.tags == []
        assert host.source == HostSource.MANUAL

    @pytest.mark.parametrize("port", [None, "", "   "])
    def test_blank_port_defaults_to_22(self, port):
        host = HostProfile(alias="web", hostname="h", user="u", port=port)
        assert host.port == "22"

    def test_numeric_port_becomes_text(self):
        host = HostProfile(alias="web", hostname="h", user="u", port=2222)
        assert host.port == "2222"

    def test_tags_are_deduplicated(self):
        host = HostProfile(alias="web", hostname="h", user="u", tags=["prod", "web", "prod"])
        assert host.tags == ["prod", "web"]

    def test_tags_must_be_a_list(self):
        with pytest.raises(ValidationError):
            HostProfile(alias="web", hostname="h", user="u", tags=5)

    def test_host_key_ignores_alias_and_case(self):
        first = HostProfile(alias="one", hostname="Web.Example.com", user="Deploy")
        second = HostProfile(alias="two", hostname="web.example.com", user="deploy")

        assert first.host_key == second.host_key == "web.example.com:deploy"
        assert make_host_key("A", "B") == "a:b"

    def test_with_source_returns_copy(self):
        host = HostProfile(alias="web", hostname="h", user="u", tags=["x"])
        tagged = host.with_source(HostSource.REMOTE)

        assert tagged.source == HostSource.REMOTE
        assert host.source == HostSource.MANUAL
        tagged.tags.append("y")
        assert host.tags == ["x"]

    def test_source_serializes_as_tag(self):
        host = HostProfile(alias="web", hostname="h", user="u", source=HostSource.SSH_CONFIG)
        assert host.model_dump(mode="json")["source"] == "ssh-config"


class TestSourceToggles:
    def test_defaults(self):
        toggles = SourceToggles()
        assert toggles.manual_enabled is True
        assert toggles.ssh_config_enabled is True
        assert toggles.remote_enabled is False

    def test_with_source(self):
        toggles = SourceToggles().with_source(HostSource.REMOTE, True)
        assert toggles.is_enabled(HostSource.REMOTE) is True
        assert toggles.with_source(HostSource.MANUAL, False).is_enabled(HostSource.MANUAL) is False


class TestValidation:
    def test_valid_profile(self):
        assert validate_profile(HostProfile(alias="a", hostname="h", user="u", port="2222")) == []

    def test_required_fields(self):
        issues = validate_profile(HostProfile())
        assert {issue.field for issue in issues} == {"alias", "hostname", "user"}

    @pytest.mark.parametrize(
        "port,message",
        [("abc", "port must be a number"), ("0", "between 1 and 65535"), ("70000", "between 1 and 65535")],
    )
    def test_port_rules(self, port, message):
        issues = validate_profile(HostProfile(alias="a", hostname="h", user="u", port=port))
        assert len(issues) == 1
        assert message in issues[0].message

    def test_duplicate_aliases(self):
        profiles = [
            HostProfile(alias="a", hostname="h1", user="u"),
            HostProfile(alias="a", hostname="h2", user="u"),
        ]
        issues = validate_profiles(profiles)

        assert len(issues) == 1
        assert issues[0].index == 1
        assert "duplicate alias 'a' (also used in host #1)" in str(issues[0])

    def test_issue_index_is_set(self):
        issues = validate_profiles([HostProfile(alias="ok", hostname="h", user="u"), HostProfile(alias="x")])
        assert all(issue.index == 1 for issue in issues)
        assert str(issues[0]).startswith("Host #2")


class TestSessionState:
    def test_usable_before_skew(self):
        now = datetime(2026, 1, 1, 12, 0, tzinfo=UTC)
        session = SessionState(token="t", expires_at=now + timedelta(minutes=6))
        assert session.is_usable(now) is True

    def test_not_usable_within_skew(self):
        now = datetime(2026, 1, 1, 12, 0, tzinfo=UTC)
        session = SessionState(token="t", expires_at=now + timedelta(minutes=4))
        assert session.is_usable(now) is False

    def test_not_usable_when_expired(self):
        now = datetime(2026, 1, 1, 12, 0, tzinfo=UTC)
        session = SessionState(token="t", expires_at=now - timedelta(seconds=1))
        assert session.is_usable(now) is False

    def test_empty_token_not_usable(self):
        session = SessionState(token="", expires_at=datetime.now(UTC) + timedelta(days=1))
        assert session.is_usable() is False

    def test_naive_expiry_treated_as_utc(self):
        session = SessionState(token="t", expires_at=datetime(2030, 1, 1))
        assert session.expires_at.tzinfo is UTC


def test_credentials_hide_password():
    creds = Credentials(username="alice", password="hunter2")
    assert "hunter2" not in repr(creds)
    assert creds.password.get_secret_value() == "hunter2"


def test_probe_result_latency_optional():
    result = ProbeResult(host_key="h:u", reachable=True)
    assert result.latency_ms is None


def test_source_precedence_order():
    assert SOURCE_PRECEDENCE == (HostSource.MANUAL, HostSource.SSH_CONFIG, HostSource.REMOTE)

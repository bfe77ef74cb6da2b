"""Host-related data models."""

from pydantic import BaseModel, Field, field_validator

from ..constants import DEFAULT_SSH_PORT
from .enums import HostSource


def make_host_key(hostname: str, user: str) -> str:
    """Identity used to correlate probe results independent of alias."""
    return f"{hostname}:{user}".lower()


class HostProfile(BaseModel):
    """A connection target in the unified host list."""

    alias: str = ""
    hostname: str = ""
    user: str = ""
    port: str = DEFAULT_SSH_PORT
    identity_file: str | None = None
    proxy_jump: str | None = None
    tags: list[str] = Field(default_factory=list)
    source: HostSource = HostSource.MANUAL

    model_config = {"coerce_numbers_to_str": True}

    @field_validator("port", mode="before")
    @classmethod
    def _normalize_port(cls, value: object) -> str:
        if value is None:
            return DEFAULT_SSH_PORT
        text = str(value).strip()
        return text or DEFAULT_SSH_PORT

    @field_validator("tags", mode="before")
    @classmethod
    def _dedupe_tags(cls, value: object) -> list[str]:
        if value is None:
            return []
        if not isinstance(value, list | tuple | set | frozenset):
            raise ValueError("tags must be a list")
        seen: list[str] = []
        for tag in value:
            if tag not in seen:
                seen.append(tag)
        return seen

    @property
    def host_key(self) -> str:
        return make_host_key(self.hostname, self.user)

    def with_source(self, source: HostSource) -> "HostProfile":
        """Return a copy tagged with ``source``; the original is left untouched."""
        return self.model_copy(update={"source": source, "tags": list(self.tags)})


class SourceToggles(BaseModel):
    """Which sources contribute to aggregation."""

    manual_enabled: bool = True
    ssh_config_enabled: bool = True
    remote_enabled: bool = False

    def is_enabled(self, source: HostSource) -> bool:
        return {
            HostSource.MANUAL: self.manual_enabled,
            HostSource.SSH_CONFIG: self.ssh_config_enabled,
            HostSource.REMOTE: self.remote_enabled,
        }[source]

    def with_source(self, source: HostSource, enabled: bool) -> "SourceToggles":
        field = {
            HostSource.MANUAL: "manual_enabled",
            HostSource.SSH_CONFIG: "ssh_config_enabled",
            HostSource.REMOTE: "remote_enabled",
        }[source]
        return self.model_copy(update={field: enabled})


class ProbeResult(BaseModel):
    """Outcome of one reachability probe."""

    host_key: str
    reachable: bool
    latency_ms: float | None = None


class HostValidationIssue(BaseModel):
    """A problem found while validating manual host profiles."""

    field: str
    message: str
    index: int = -1

    def __str__(self) -> str:
        if self.index >= 0:
            return f"Host #{self.index + 1} ({self.field}): {self.message}"
        return f"{self.field}: {self.message}"


def validate_profile(profile: HostProfile) -> list[HostValidationIssue]:
    """Check a single manual profile before it is saved."""
    issues: list[HostValidationIssue] = []

    for field in ("alias", "hostname", "user"):
        if not getattr(profile, field).strip():
            issues.append(HostValidationIssue(field=field, message=f"{field} is required"))

    try:
        port = int(profile.port)
    except ValueError:
        issues.append(HostValidationIssue(field="port", message="port must be a number"))
    else:
        if not 1 <= port <= 65535:
            issues.append(
                HostValidationIssue(field="port", message="port must be between 1 and 65535")
            )

    return issues


def validate_profiles(profiles: list[HostProfile]) -> list[HostValidationIssue]:
    """Validate a manual host list, including alias uniqueness."""
    issues: list[HostValidationIssue] = []
    first_seen: dict[str, int] = {}

    for index, profile in enumerate(profiles):
        alias = profile.alias.strip()
        if alias:
            if alias in first_seen:
                issues.append(
                    HostValidationIssue(
                        field="alias",
                        message=f"duplicate alias '{alias}' (also used in host #{first_seen[alias] + 1})",
                        index=index,
                    )
                )
            else:
                first_seen[alias] = index

        for issue in validate_profile(profile):
            issues.append(issue.model_copy(update={"index": index}))

    return issues

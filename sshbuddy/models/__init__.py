"""Data models for sshbuddy."""

from .enums import SOURCE_PRECEDENCE, HostSource  # noqa: F401
from .host import (  # noqa: F401
    HostProfile,
    HostValidationIssue,
    ProbeResult,
    SourceToggles,
    make_host_key,
    validate_profile,
    validate_profiles,
)
from .session import Credentials, SessionState  # noqa: F401

__all__ = [
    # Enums
    "HostSource",
    "SOURCE_PRECEDENCE",
    # Host models
    "HostProfile",
    "HostValidationIssue",
    "ProbeResult",
    "SourceToggles",
    "make_host_key",
    "validate_profile",
    "validate_profiles",
    # Session models
    "Credentials",
    "SessionState",
]

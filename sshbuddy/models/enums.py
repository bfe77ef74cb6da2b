"""Enum definitions for sshbuddy."""

from enum import Enum

from ..constants import SOURCE_MANUAL, SOURCE_REMOTE, SOURCE_SSH_CONFIG


class HostSource(str, Enum):
    """Where a host profile came from, in precedence order."""

    MANUAL = SOURCE_MANUAL
    SSH_CONFIG = SOURCE_SSH_CONFIG
    REMOTE = SOURCE_REMOTE


# Highest precedence first; the first profile seen for an alias wins.
SOURCE_PRECEDENCE: tuple[HostSource, ...] = (
    HostSource.MANUAL,
    HostSource.SSH_CONFIG,
    HostSource.REMOTE,
)

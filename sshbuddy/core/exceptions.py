"""Core exceptions for sshbuddy operations."""


class SSHBuddyError(Exception):
    """Base exception for sshbuddy operations.

    ``renewed_session`` is set when a remote login succeeded before the
    failure, so the caller can still cache the new session.
    """

    renewed_session = None


class ConfigurationError(SSHBuddyError):
    """Configuration validation or loading failed."""


class AuthenticationRequired(SSHBuddyError):
    """Remote session is missing, expired or was rejected.

    Not a connectivity failure: the caller is expected to collect credentials
    and retry.
    """


class InvalidResponse(SSHBuddyError):
    """Remote inventory returned data that does not match the expected schema."""

    def __init__(self, message: str, preview: str = ""):
        super().__init__(f"{message}: {preview}" if preview else message)
        self.preview = preview


class Unreachable(SSHBuddyError):
    """Transport failure reaching the remote inventory."""

    def __init__(self, endpoint: str, reason: str):
        super().__init__(f"{endpoint} unreachable: {reason}")
        self.endpoint = endpoint
        self.reason = reason


class RemoteStatusError(SSHBuddyError):
    """Remote inventory answered with an unexpected HTTP status."""

    def __init__(self, status: int, preview: str = ""):
        super().__init__(f"remote inventory returned status {status}: {preview}")
        self.status = status
        self.preview = preview


class CorruptStore(SSHBuddyError):
    """Locally persisted profile data could not be read."""

    def __init__(self, path: str, reason: str):
        super().__init__(f"profile store {path} is unreadable: {reason}")
        self.path = path
        self.reason = reason


class SourceFetchError(SSHBuddyError):
    """A host source failed; wraps the underlying error with source context."""

    def __init__(self, source: str, endpoint: str, cause: Exception):
        super().__init__(f"{source} source ({endpoint}) failed: {cause}")
        self.source = source
        self.endpoint = endpoint
        self.cause = cause

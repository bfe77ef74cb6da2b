"""Configuration management for sshbuddy."""

import asyncio
import os
import re
from pathlib import Path
from typing import Any

import structlog
import yaml
from dotenv import load_dotenv
from pydantic import BaseModel, Field, ValidationError
from pydantic_settings import BaseSettings

from ..constants import CONFIG_DIR_NAME, CONFIG_FILE, HOSTS_FILE, LOG_DIR_NAME, SESSION_FILE
from ..models import SessionState, SourceToggles
from .exceptions import ConfigurationError

logger = structlog.get_logger()


class RemoteConfig(BaseModel):
    """Remote inventory connection settings (never credentials)."""

    base_url: str = ""


class SSHBuddyConfig(BaseSettings):
    """Main configuration for sshbuddy."""

    sources: SourceToggles = Field(default_factory=SourceToggles)
    remote: RemoteConfig = Field(default_factory=RemoteConfig)
    ssh_config_path: str | None = Field(default=None, alias="SSH_CONFIG_PATH")
    log_level: str = Field(default="INFO", alias="LOG_LEVEL")
    config_dir: str = Field(default="", alias="SSHBUDDY_CONFIG_DIR")

    model_config = {
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "extra": "ignore",
        "populate_by_name": True,
    }

    @property
    def config_path(self) -> Path:
        return Path(self.config_dir) / CONFIG_FILE

    @property
    def hosts_path(self) -> Path:
        return Path(self.config_dir) / HOSTS_FILE

    @property
    def session_path(self) -> Path:
        return Path(self.config_dir) / SESSION_FILE

    @property
    def log_dir(self) -> Path:
        return Path(self.config_dir) / LOG_DIR_NAME


def get_config_dir() -> Path:
    """Directory holding hosts, settings and the cached session."""
    if override := os.getenv("SSHBUDDY_CONFIG_DIR"):
        return Path(override).expanduser()
    base = os.getenv("XDG_CONFIG_HOME") or str(Path.home() / ".config")
    return Path(base).expanduser() / CONFIG_DIR_NAME


def load_config(config_dir: str | Path | None = None) -> SSHBuddyConfig:
    """Load configuration (synchronous interface).

    Raises:
        RuntimeError: If called from a running event loop; use load_config_async()
    """
    try:
        asyncio.get_running_loop()
    except RuntimeError:
        return asyncio.run(load_config_async(config_dir))
    raise RuntimeError(
        "load_config() cannot be called from within an async context. "
        "Use 'await load_config_async()' instead."
    )


async def load_config_async(config_dir: str | Path | None = None) -> SSHBuddyConfig:
    """Load configuration from config.yml, then apply environment overrides.

    Args:
        config_dir: Directory holding config.yml; defaults to get_config_dir()

    Returns:
        Loaded configuration

    Raises:
        ConfigurationError: If config.yml exists but is invalid
    """
    load_dotenv()

    config = SSHBuddyConfig()
    directory = Path(config_dir).expanduser() if config_dir else get_config_dir()
    config.config_dir = str(directory)

    yaml_config = await _load_yaml_config(config.config_path)
    _apply_yaml_config(config, yaml_config)
    _apply_env_overrides(config)

    logger.debug(
        "Configuration loaded",
        config_dir=str(directory),
        remote_configured=bool(config.remote.base_url),
    )
    return config


def _apply_yaml_config(config: SSHBuddyConfig, yaml_config: dict[str, Any]) -> None:
    """Apply sources, remote and ssh_config sections from YAML data."""
    try:
        if sources := yaml_config.get("sources"):
            config.sources = SourceToggles(**sources)
        if remote := yaml_config.get("remote"):
            config.remote = RemoteConfig(**remote)
    except (TypeError, ValidationError) as e:
        raise ConfigurationError(f"Invalid configuration in {config.config_path}: {e}") from e

    if ssh_config_path := yaml_config.get("ssh_config_path"):
        config.ssh_config_path = str(ssh_config_path)


def _apply_env_overrides(config: SSHBuddyConfig) -> None:
    """Apply environment variable overrides (highest priority)."""
    if remote_url := os.getenv("SSHBUDDY_REMOTE_URL"):
        config.remote.base_url = remote_url
    if ssh_config_path := os.getenv("SSH_CONFIG_PATH"):
        config.ssh_config_path = ssh_config_path
    if log_level := os.getenv("LOG_LEVEL"):
        config.log_level = log_level


async def _load_yaml_config(config_path: Path) -> dict[str, Any]:
    """Load a YAML file; a missing file is an empty configuration."""
    if not config_path.exists():
        return {}
    try:
        content = await asyncio.to_thread(config_path.read_text, encoding="utf-8")
        loaded = yaml.safe_load(_expand_yaml_config(content))
    except (OSError, yaml.YAMLError) as e:
        raise ConfigurationError(f"Failed to load config from {config_path}: {e}") from e
    if not isinstance(loaded, dict):
        return {}
    return loaded


def _expand_yaml_config(content: str) -> str:
    """Securely expand environment variables with allowlist."""
    allowed_env_vars = {
        "HOME",
        "USER",
        "XDG_CONFIG_HOME",
        "SSHBUDDY_CONFIG_DIR",
        "SSHBUDDY_REMOTE_URL",
        "SSH_CONFIG_PATH",
    }

    def replace_if_allowed(match: re.Match) -> str:
        var_name = match.group(1) or match.group(2)
        original_pattern = match.group(0)
        if var_name in allowed_env_vars:
            return os.getenv(var_name, original_pattern)
        logger.warning(
            "Environment variable not in allowlist, skipping expansion",
            variable=var_name,
            pattern=original_pattern,
        )
        return original_pattern

    return re.sub(r"\$\{([^}]+)\}|\$([A-Za-z_][A-Za-z0-9_]*)", replace_if_allowed, content)


async def save_config(config: SSHBuddyConfig) -> None:
    """Persist source toggles and remote settings to config.yml.

    Raises:
        ConfigurationError: If unable to save configuration
    """
    data: dict[str, Any] = {
        "sources": config.sources.model_dump(),
        "remote": config.remote.model_dump(),
    }
    if config.ssh_config_path:
        data["ssh_config_path"] = config.ssh_config_path

    path = config.config_path

    def _write() -> None:
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, "w", encoding="utf-8") as f:
            f.write("# sshbuddy configuration\n")
            f.write("# Manual hosts live in hosts.yml; the cached session in session.yml\n\n")
            yaml.safe_dump(data, f, default_flow_style=False, sort_keys=False)

    try:
        await asyncio.to_thread(_write)
    except OSError as e:
        logger.error("Failed to save configuration", path=str(path), error=str(e))
        raise ConfigurationError(f"Failed to save configuration to {path}: {e}") from e

    logger.info("Configuration saved", path=str(path))


class SessionCache:
    """Reads and writes the cached remote session (token + expiry)."""

    def __init__(self, path: str | Path):
        self.path = Path(path)

    async def load(self) -> SessionState | None:
        """Return the cached session, or None when absent or unreadable."""
        if not self.path.exists():
            return None
        try:
            content = await asyncio.to_thread(self.path.read_text, encoding="utf-8")
            data = yaml.safe_load(content)
            if not isinstance(data, dict):
                return None
            return SessionState(**data)
        except (OSError, yaml.YAMLError, TypeError, ValidationError) as e:
            # A stale or damaged session only means logging in again.
            logger.warning("Ignoring unreadable session cache", path=str(self.path), error=str(e))
            return None

    async def save(self, session: SessionState) -> None:
        """Persist ``session``.

        Raises:
            OSError: If the file cannot be written
        """
        data = {"token": session.token, "expires_at": session.expires_at.isoformat()}

        def _write() -> None:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            self.path.write_text(yaml.safe_dump(data, sort_keys=False), encoding="utf-8")
            os.chmod(self.path, 0o600)

        await asyncio.to_thread(_write)
        logger.debug("Session cached", path=str(self.path), expires_at=data["expires_at"])

    async def clear(self) -> None:
        await asyncio.to_thread(self.path.unlink, missing_ok=True)

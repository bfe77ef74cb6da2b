"""SSH client configuration reader producing native host records."""

from pathlib import Path

import structlog

logger = structlog.get_logger()


class NativeHostRecord:
    """Represents a single Host block from the SSH client configuration."""

    def __init__(self, alias: str):
        self.alias = alias
        self.hostname: str | None = None
        self.user: str | None = None
        self.port: str | None = None
        self.identity_file: str | None = None
        self.proxy_jump: str | None = None
        self.other_options: dict[str, str] = {}

    def is_pattern(self) -> bool:
        """Wildcard blocks match many hosts and are not connection targets."""
        return "*" in self.alias or "?" in self.alias

    def __repr__(self) -> str:
        return (
            f"NativeHostRecord(alias='{self.alias}', hostname='{self.hostname}', "
            f"user='{self.user}', port={self.port})"
        )


class SSHConfigParser:
    """Parser for SSH configuration files."""

    def __init__(self, config_path: str | Path | None = None):
        """Initialize SSH config parser.

        Args:
            config_path: Path to SSH config file. Defaults to ~/.ssh/config
        """
        if config_path is None:
            config_path = Path.home() / ".ssh" / "config"
        else:
            config_path = Path(config_path).expanduser()

        self.config_path = config_path

    def parse(self) -> list[NativeHostRecord]:
        """Parse SSH config file and return host records in file order.

        A missing file yields an empty list.

        Raises:
            ValueError: If the file exists but cannot be read
        """
        if not self.config_path.exists():
            logger.debug("SSH config file not found", path=str(self.config_path))
            return []

        try:
            content = self.config_path.read_text(encoding="utf-8")
        except OSError as e:
            raise ValueError(f"Failed to read SSH config file: {e}") from e

        return self.parse_content(content)

    def parse_content(self, content: str) -> list[NativeHostRecord]:
        """Parse SSH config text."""
        records: list[NativeHostRecord] = []
        current: NativeHostRecord | None = None

        for line_number, raw_line in enumerate(content.splitlines(), start=1):
            line = raw_line.strip()

            # Skip empty lines and comments
            if not line or line.startswith("#"):
                continue

            try:
                key, value = self._parse_line(line)
            except ValueError as e:
                logger.warning(
                    "Skipping malformed line in SSH config",
                    line_number=line_number,
                    line=line,
                    error=str(e),
                )
                continue

            if key.lower() == "host":
                if current and not current.is_pattern():
                    records.append(current)
                current = NativeHostRecord(value)
            elif current:
                self._apply_directive(current, key, value)

        if current and not current.is_pattern():
            records.append(current)

        logger.debug("SSH config parsed", path=str(self.config_path), hosts=len(records))
        return records

    def _parse_line(self, line: str) -> tuple[str, str]:
        """Parse a single SSH config line into key-value pair."""
        # Format: "Key Value", "Key=Value" or "Key value1 value2..."
        parts = line.split(None, 1)
        if "=" in parts[0] or (len(parts) == 2 and parts[1].startswith("=")):
            key, value = line.split("=", 1)
        elif len(parts) == 2:
            key, value = parts
        else:
            raise ValueError(f"Invalid SSH config line format: {line}")

        key, value = key.strip(), value.strip()
        if not key or not value:
            raise ValueError(f"Invalid SSH config line format: {line}")
        return key, value

    def _apply_directive(self, record: NativeHostRecord, key: str, value: str) -> None:
        """Apply a SSH config directive to the current record."""
        key_lower = key.lower()

        if key_lower == "hostname":
            record.hostname = value
        elif key_lower == "user":
            record.user = value
        elif key_lower == "port":
            record.port = value
        elif key_lower == "identityfile":
            record.identity_file = str(Path(value).expanduser())
        elif key_lower == "proxyjump":
            record.proxy_jump = value
        else:
            record.other_options[key_lower] = value

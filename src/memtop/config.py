"""Configuration system for memtop."""

from dataclasses import dataclass, field, fields, is_dataclass
from pathlib import Path

import tomlkit


@dataclass
class ServerConfig:
    """Which memcached server to watch."""

    host: str = "127.0.0.1"
    port: int = 11211
    timeout: float = 2.0  # Seconds allowed for connect + request + response


@dataclass
class DisplayConfig:
    """Dashboard refresh settings."""

    interval: float = 2.0  # Seconds between samples


@dataclass
class SystemConfig:
    """Log file settings."""

    log_max_bytes: int = 5 * 1024 * 1024  # Max log file size (5MB)
    log_backup_count: int = 3  # Number of backup log files to keep


def _dataclass_to_table(obj: object) -> tomlkit.items.Table:
    """Convert a dataclass instance to a tomlkit Table recursively."""
    table = tomlkit.table()
    for f in fields(obj):  # type: ignore[arg-type]
        value = getattr(obj, f.name)
        if is_dataclass(value) and not isinstance(value, type):
            table.add(f.name, _dataclass_to_table(value))
        else:
            table.add(f.name, value)
    return table


@dataclass
class Config:
    """Main configuration container."""

    server: ServerConfig = field(default_factory=ServerConfig)
    display: DisplayConfig = field(default_factory=DisplayConfig)
    system: SystemConfig = field(default_factory=SystemConfig)

    @property
    def config_dir(self) -> Path:
        """Configuration directory."""
        return Path.home() / ".config" / "memtop"

    @property
    def config_path(self) -> Path:
        """Path to config file."""
        return self.config_dir / "config.toml"

    @property
    def state_dir(self) -> Path:
        """State directory for logs."""
        return Path.home() / ".local" / "state" / "memtop"

    @property
    def log_path(self) -> Path:
        """Log file path.

        Logs are expendable persistent state, so they go in XDG_STATE_HOME.
        """
        return self.state_dir / "memtop.log"

    @property
    def address(self) -> str:
        """host:port of the configured server."""
        return f"{self.server.host}:{self.server.port}"

    def save(self, path: Path | None = None) -> None:
        """Save config to TOML file."""
        path = path or self.config_path
        path.parent.mkdir(parents=True, exist_ok=True)

        doc = tomlkit.document()
        for name in ("server", "display", "system"):
            doc.add(name, _dataclass_to_table(getattr(self, name)))
            doc.add(tomlkit.nl())

        path.write_text(tomlkit.dumps(doc))

    @classmethod
    def load(cls, path: Path | None = None) -> "Config":
        """Load config from TOML file, returning defaults for missing values.

        All defaults come from the dataclass definitions, so Config() and
        Config.load() on a missing file are identical.

        Raises:
            ValueError: If the file can't be parsed or holds invalid values
        """
        defaults = cls()
        path = path or defaults.config_path
        if not path.exists():
            return defaults

        try:
            with open(path) as f:
                data = tomlkit.load(f)
        except tomlkit.exceptions.TOMLKitError as e:
            raise ValueError(f"Failed to parse config file {path}: {e}") from e

        return cls(
            server=_load_server_config(data.get("server", {})),
            display=_load_display_config(data.get("display", {})),
            system=_load_system_config(data.get("system", {})),
        )


def _is_number(value: object) -> bool:
    """True for TOML integers and floats; booleans don't count."""
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _is_integer(value: object) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


def _load_server_config(data: dict) -> ServerConfig:
    """Load server config from TOML data, using dataclass defaults for missing fields."""
    d = ServerConfig()

    host = str(data.get("host", d.host))
    port = data.get("port", d.port)
    timeout = data.get("timeout", d.timeout)

    if not host:
        raise ValueError("server.host must not be empty")
    if not _is_integer(port) or not 1 <= port <= 65535:
        raise ValueError(f"server.port must be 1-65535, got {port!r}")
    if not _is_number(timeout) or not timeout > 0:
        raise ValueError(f"server.timeout must be a number > 0, got {timeout!r}")

    return ServerConfig(host=host, port=int(port), timeout=float(timeout))


def _load_display_config(data: dict) -> DisplayConfig:
    """Load display config from TOML data."""
    d = DisplayConfig()
    interval = data.get("interval", d.interval)
    if not _is_number(interval) or not interval > 0:
        raise ValueError(f"display.interval must be a number > 0, got {interval!r}")
    return DisplayConfig(interval=float(interval))


def _load_system_config(data: dict) -> SystemConfig:
    """Load system config from TOML data."""
    d = SystemConfig()
    log_max_bytes = data.get("log_max_bytes", d.log_max_bytes)
    log_backup_count = data.get("log_backup_count", d.log_backup_count)

    if not _is_integer(log_max_bytes) or log_max_bytes < 0:
        raise ValueError(f"system.log_max_bytes must be an integer >= 0, got {log_max_bytes!r}")
    if not _is_integer(log_backup_count) or log_backup_count < 0:
        raise ValueError(
            f"system.log_backup_count must be an integer >= 0, got {log_backup_count!r}"
        )

    return SystemConfig(log_max_bytes=int(log_max_bytes), log_backup_count=int(log_backup_count))

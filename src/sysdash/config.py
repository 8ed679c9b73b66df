"""Configuration system for sysdash."""

from dataclasses import dataclass, field, fields
from pathlib import Path

import tomlkit

from sysdash.errors import ConfigError


@dataclass
class DashboardConfig:
    """Dashboard timing and presentation."""

    title: str = "System Monitor Dashboard"
    refresh_rate_ms: int = 1000  # Sampler cadence
    frame_rate_ms: int = 100  # Redraw cadence, independent of sampling
    tab_debounce_ms: int = 150  # Minimum gap between accepted tab cycles
    max_history_entries: int = 100


@dataclass
class SystemConfig:
    """What gets sampled and how much of it is kept."""

    enable_process_monitoring: bool = True
    max_processes_displayed: int = 20  # 0 = no cap
    cpu_history_length: int = 60
    memory_history_length: int = 60


@dataclass
class DisplayConfig:
    """Feature toggles for individual widgets."""

    show_cpu_graph: bool = True
    show_memory_graph: bool = True
    show_process_list: bool = True
    show_network_info: bool = True
    show_disk_info: bool = True


_SECTIONS = ("dashboard", "system", "display")

# Lower bounds for integer settings
_MINIMUMS = {
    "refresh_rate_ms": 1,
    "frame_rate_ms": 10,
    "tab_debounce_ms": 0,
    "max_history_entries": 0,
    "max_processes_displayed": 0,
    "cpu_history_length": 0,
    "memory_history_length": 0,
}


def _dataclass_to_table(obj) -> tomlkit.items.Table:
    """Convert a flat config dataclass to a TOML table."""
    table = tomlkit.table()
    for f in fields(obj):
        table.add(f.name, getattr(obj, f.name))
    return table


def _load_section(cls, section: str, data: dict):
    """Build a config section from TOML data, using dataclass defaults for missing fields."""
    if not isinstance(data, dict):
        raise ConfigError(f"[{section}] must be a table, got {type(data).__name__}")

    defaults = cls()
    known = {f.name for f in fields(cls)}
    unknown = sorted(set(data) - known)
    if unknown:
        raise ConfigError(f"Unknown key(s) in [{section}]: {', '.join(unknown)}")

    values = {}
    for f in fields(cls):
        default = getattr(defaults, f.name)
        value = data.get(f.name, default)
        expected = type(default)
        # bool is an int subclass; keep them apart in both directions
        if isinstance(value, bool) != (expected is bool) or not isinstance(value, expected):
            raise ConfigError(
                f"{section}.{f.name} must be {expected.__name__}, got {type(value).__name__}"
            )
        minimum = _MINIMUMS.get(f.name)
        if minimum is not None and value < minimum:
            raise ConfigError(f"{section}.{f.name} must be >= {minimum}, got {value}")
        values[f.name] = value
    return cls(**values)


@dataclass
class Settings:
    """Full sysdash configuration, read once at startup."""

    dashboard: DashboardConfig = field(default_factory=DashboardConfig)
    system: SystemConfig = field(default_factory=SystemConfig)
    display: DisplayConfig = field(default_factory=DisplayConfig)
    debug: bool = False

    @property
    def config_dir(self) -> Path:
        """Directory holding the default config file."""
        return Path.home() / ".config" / "sysdash"

    @property
    def config_path(self) -> Path:
        """Default config file path."""
        return self.config_dir / "config.toml"

    @property
    def state_dir(self) -> Path:
        """Directory for runtime files such as the log."""
        return Path.home() / ".local" / "state" / "sysdash"

    @property
    def log_path(self) -> Path:
        """Log file path."""
        return self.state_dir / "sysdash.log"

    @property
    def refresh_interval(self) -> float:
        """Sampler cadence in seconds."""
        return self.dashboard.refresh_rate_ms / 1000

    @property
    def frame_interval(self) -> float:
        """Redraw cadence in seconds."""
        return self.dashboard.frame_rate_ms / 1000

    @property
    def tab_debounce(self) -> float:
        """Tab cycling debounce in seconds."""
        return self.dashboard.tab_debounce_ms / 1000

    @property
    def cpu_history_capacity(self) -> int:
        """CPU history length, capped by max_history_entries."""
        return min(self.system.cpu_history_length, self.dashboard.max_history_entries)

    @property
    def memory_history_capacity(self) -> int:
        """Memory history length, capped by max_history_entries."""
        return min(self.system.memory_history_length, self.dashboard.max_history_entries)

    @property
    def process_limit(self) -> int | None:
        """Cap on displayed processes, or None for no cap."""
        return self.system.max_processes_displayed or None

    def save(self, path: Path | None = None) -> None:
        """Save config to TOML file."""
        path = path or self.config_path
        path.parent.mkdir(parents=True, exist_ok=True)

        doc = tomlkit.document()
        doc.add(tomlkit.comment("sysdash configuration"))
        for name in _SECTIONS:
            doc.add(name, _dataclass_to_table(getattr(self, name)))

        path.write_text(tomlkit.dumps(doc), encoding="utf-8")

    @classmethod
    def load(cls, path: Path | None = None) -> "Settings":
        """Load config from a TOML file.

        An explicit path must exist. Without one the default location is used,
        and a default config file is written there if none exists yet.

        Raises:
            ConfigError: The file is missing, unreadable, not valid TOML, or
                holds values of the wrong type or range.
        """
        defaults = cls()
        if path is None:
            path = defaults.config_path
            if not path.exists():
                try:
                    defaults.save(path)
                except OSError as e:
                    raise ConfigError(f"Could not write default config {path}: {e}") from e
                return defaults
        elif not path.is_file():
            raise ConfigError(f"Config file not found: {path}")

        try:
            data = tomlkit.parse(path.read_text(encoding="utf-8")).unwrap()
        except (OSError, UnicodeDecodeError) as e:
            raise ConfigError(f"Could not read config file {path}: {e}") from e
        except tomlkit.exceptions.TOMLKitError as e:
            raise ConfigError(f"Failed to parse config file {path}: {e}") from e

        unknown = sorted(set(data) - set(_SECTIONS))
        if unknown:
            raise ConfigError(f"Unknown section(s) in {path}: {', '.join(unknown)}")

        return cls(
            dashboard=_load_section(DashboardConfig, "dashboard", data.get("dashboard", {})),
            system=_load_section(SystemConfig, "system", data.get("system", {})),
            display=_load_section(DisplayConfig, "display", data.get("display", {})),
        )

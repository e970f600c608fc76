"""XDG-compliant configuration management for sow."""

import os
import tomllib
from pathlib import Path
from typing import Optional

DEFAULTS = {
    "paths": {
        "sow_dir": ".sow",
        "state_file": "project/state.yaml",
    },
    "logging": {
        "level": "WARNING",
    },
    "project": {
        "default_type": "",
    },
}


class Config:
    """Manages sow configuration following XDG Base Directory spec.

    Attributes:
        config_dir: Path to ~/.config/sow/
        config_file: Path to ~/.config/sow/config.toml
    """

    def __init__(self, config_dir: Optional[Path] = None):
        """Initialize config paths using XDG Base Directory specification.

        Args:
            config_dir: Override for the config directory (default: XDG location)
        """
        if config_dir is None:
            # Use XDG_CONFIG_HOME if set, otherwise default to ~/.config
            xdg_config = os.getenv("XDG_CONFIG_HOME", os.path.expanduser("~/.config"))
            config_dir = Path(xdg_config) / "sow"
        self.config_dir = Path(config_dir)
        self.config_file = self.config_dir / "config.toml"

        # Load config if exists
        self._config = self._load() if self.config_file.exists() else {}

    def exists(self) -> bool:
        """Check if config file exists."""
        return self.config_file.exists()

    def _load(self) -> dict:
        """Load configuration from TOML file."""
        try:
            with open(self.config_file, "rb") as f:
                return tomllib.load(f)
        except (OSError, tomllib.TOMLDecodeError) as e:
            raise RuntimeError(f"Failed to load config: {e}") from e

    def get(self, key: str, default=None):
        """Get configuration value by key (supports dot notation).

        Falls back to the built-in default for the key, then to ``default``.

        Args:
            key: Configuration key (e.g., 'paths.sow_dir')
            default: Default value if key not found

        Returns:
            Configuration value or default
        """
        value = _lookup(self._config, key)
        if value is not None:
            return value
        value = _lookup(DEFAULTS, key)
        return value if value not in (None, "") else default

    def state_path(self, root: Path) -> Path:
        """Location of the project state file under a repository root."""
        return root / self.get("paths.sow_dir") / self.get("paths.state_file")

    @staticmethod
    def get_default_config() -> str:
        """Return default configuration TOML template."""
        return """# Sow Configuration
# Location: ~/.config/sow/config.toml
# Follows XDG Base Directory Specification

[paths]
# Project directory, relative to the repository root
sow_dir = ".sow"

# State file, relative to sow_dir
state_file = "project/state.yaml"

[logging]
# Log level when --verbose is not given (DEBUG, INFO, WARNING, ERROR)
level = "WARNING"

[project]
# Project type used by `sow new` when the branch prefix does not select one
# default_type = "standard"
"""

    def create_default(self) -> Path:
        """Create default configuration file.

        Returns:
            Path to created config file

        Raises:
            FileExistsError: If config already exists
        """
        if self.config_file.exists():
            raise FileExistsError(
                f"Configuration already exists: {self.config_file}\n"
                "Remove it first or use --force to overwrite"
            )

        # Create config directory
        self.config_dir.mkdir(parents=True, exist_ok=True)

        # Write default config
        self.config_file.write_text(self.get_default_config())

        return self.config_file


def _lookup(data: dict, key: str):
    value = data
    for k in key.split("."):
        if isinstance(value, dict) and k in value:
            value = value[k]
        else:
            return None
    return value

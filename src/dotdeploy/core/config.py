"""Configuration management for dotdeploy."""

from __future__ import annotations

import copy
from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml

from .errors import ConfigError
from .models import ConfigCatalogEntry

DEFAULT_CONFIG_FILE = "~/.config/dotdeploy/config.yaml"


def _candidates(name: str, namespace: str, *extra: str) -> List[str]:
    """Candidate layouts for a config, most specific first."""
    return [
        f"configs/{namespace}/{name}",
        f"config/{namespace}/{name}",
        f"{namespace}/{name}",
        f"configs/{name}",
        f"config/{name}",
        name,
        *extra,
    ]


DEFAULT_CONFIG: Dict[str, Any] = {
    "source_root": "~/.dotfiles",
    "backup_root": "~",
    "backup_prefix": ".config-backup-",
    "timestamp_format": "%Y%m%d_%H%M%S",
    "tools": ["zsh", "curl", "git", "wget", "unzip", "starship", "fzf", "zoxide", "bat", "lsd"],
    "catalog": {
        "zshrc": {
            "name": "ZSH",
            "candidates": _candidates(
                "zshrc", "zsh", "configs/.zshrc", "config/.zshrc", ".zshrc"
            ),
            "destination": "~/.zshrc",
        },
        "starship.toml": {
            "name": "Starship",
            "candidates": _candidates("starship.toml", "starship"),
            "destination": "~/.config/starship.toml",
        },
        "vimrc": {
            "name": "Vim",
            "candidates": _candidates("vimrc", "vim"),
            "destination": "~/.vimrc",
        },
        "gitconfig": {
            "name": "Git",
            "candidates": _candidates("gitconfig", "git"),
            "destination": "~/.gitconfig",
        },
        "tmux.conf": {
            "name": "Tmux",
            "candidates": _candidates("tmux.conf", "tmux"),
            "destination": "~/.tmux.conf",
        },
        "nvim": {
            "name": "Neovim",
            "candidates": ["configs/nvim", "config/nvim", "nvim"],
            "destination": "~/.config/nvim",
            "directory": True,
        },
        "bashrc": {
            "name": "Bash",
            "candidates": ["configs/bashrc", "config/bashrc", "bashrc", ".bashrc"],
            "destination": "~/.bashrc",
        },
        "bash_profile": {
            "name": "Bash profile",
            "candidates": [
                "configs/bash_profile",
                "config/bash_profile",
                "bash_profile",
                ".bash_profile",
            ],
            "destination": "~/.bash_profile",
        },
        "profile": {
            "name": "Login profile",
            "candidates": ["configs/profile", "config/profile", "profile", ".profile"],
            "destination": "~/.profile",
        },
        "inputrc": {
            "name": "Readline",
            "candidates": ["configs/inputrc", "config/inputrc", "inputrc", ".inputrc"],
            "destination": "~/.inputrc",
        },
    },
}


class Config:
    """Configuration class for dotdeploy.

    Holds the deployment settings and the config catalog. Starts from
    :data:`DEFAULT_CONFIG`; user files are merged on top, with catalog entries
    merged by logical name.

    Attributes:
        source_root (str): Root of the dotfiles source tree (``~`` unexpanded).
        backup_root (str): Directory under which run backups are created.
        backup_prefix (str): Name prefix of each run's backup directory.
        timestamp_format (str): strftime format of the backup directory suffix.
        tools (List[str]): Tools the package adapter installs by default.
        entries (Dict[str, Dict[str, Any]]): Raw catalog entries by logical name.
    """

    def __init__(self) -> None:
        """Initialize configuration."""
        self.config: Dict[str, Any] = {}
        self.source_root: str = ""
        self.backup_root: str = ""
        self.backup_prefix: str = ""
        self.timestamp_format: str = ""
        self.tools: List[str] = []
        self.entries: Dict[str, Dict[str, Any]] = {}
        self.load_config()

    def load_config(self, config_file: Optional[Path] = None) -> None:
        """Load configuration from file.

        Args:
            config_file: Optional YAML file merged over the defaults.

        Raises:
            ConfigError: If the file cannot be read or has an invalid shape.
        """
        self._merge_config(copy.deepcopy(DEFAULT_CONFIG))

        if config_file is not None:
            try:
                with open(Path(config_file).expanduser(), "r", encoding="utf-8") as f:
                    user_config = yaml.safe_load(f)
            except (OSError, yaml.YAMLError) as e:
                raise ConfigError(f"Error loading config file {config_file}: {e}") from e
            if user_config:
                self._merge_config(user_config)

    @classmethod
    def from_file(cls, config_file: Optional[Path] = None) -> "Config":
        """Build a configuration, falling back to the default file location.

        An explicit ``config_file`` must exist. Without one, the default
        location is used when present and the built-in defaults otherwise.
        """
        config = cls()
        if config_file is not None:
            config.load_config(config_file)
            return config
        default_file = Path(DEFAULT_CONFIG_FILE).expanduser()
        if default_file.is_file():
            config.load_config(default_file)
        return config

    def load_from_dict(self, config_data: Dict[str, Any]) -> None:
        """Merge configuration from a dictionary.

        Args:
            config_data: Dictionary shaped like a configuration file.

        Example:
            ```python
            config = Config()
            config.load_from_dict(
                {
                    "source_root": "~/src/dotfiles",
                    "catalog": {
                        "alacritty": {
                            "candidates": ["configs/alacritty/alacritty.toml"],
                            "destination": "~/.config/alacritty/alacritty.toml",
                        },
                        "inputrc": {"enabled": False},
                    },
                }
            )
            ```
        """
        self._merge_config(copy.deepcopy(config_data))

    def _merge_config(self, config: Dict[str, Any]) -> None:
        """Merge configuration with current configuration."""
        if not isinstance(config, dict):
            raise ConfigError("Configuration must be a dictionary")

        self.config.update(config)

        for key in ("source_root", "backup_root", "backup_prefix", "timestamp_format"):
            if key in config:
                if not isinstance(config[key], str) or not config[key]:
                    raise ConfigError(f"{key} must be a non-empty string")
                setattr(self, key, config[key])

        if "tools" in config:
            if not isinstance(config["tools"], list):
                raise ConfigError("tools must be a list")
            self.tools = [str(tool) for tool in config["tools"]]

        if "catalog" in config:
            if not isinstance(config["catalog"], dict):
                raise ConfigError("catalog must be a dictionary")
            for name, entry_config in config["catalog"].items():
                if not isinstance(entry_config, dict):
                    raise ConfigError(f"Catalog entry {name} must be a dictionary")

                if entry_config.get("enabled", True) is False:
                    self.entries.pop(name, None)
                    continue

                merged = dict(self.entries.get(name, {}))
                merged.update(entry_config)
                merged.pop("enabled", None)

                if "candidates" not in merged:
                    raise ConfigError(f"Catalog entry {name} must have candidates")
                if not isinstance(merged["candidates"], list) or not merged["candidates"]:
                    raise ConfigError(f"Catalog entry {name} candidates must be a non-empty list")
                if not isinstance(merged.get("destination"), str):
                    raise ConfigError(f"Catalog entry {name} must have a destination")
                if not isinstance(merged.get("directory", False), bool):
                    raise ConfigError(f"Catalog entry {name} directory must be a boolean")

                self.entries[name] = merged

    def validate(self) -> List[str]:
        """Validate configuration.

        Returns:
            List[str]: Human-readable problems; empty when the configuration
            can be turned into a catalog.
        """
        errors = []

        for key in ("source_root", "backup_root", "backup_prefix", "timestamp_format"):
            if not isinstance(getattr(self, key), str) or not getattr(self, key):
                errors.append(f"{key} must be a non-empty string")

        if "/" in self.backup_prefix:
            errors.append("backup_prefix must not contain a path separator")

        for name, entry in self.entries.items():
            candidates = entry.get("candidates")
            if not isinstance(candidates, list) or not candidates:
                errors.append(f"catalog entry {name} must have candidates")
                continue
            for candidate in candidates:
                if not isinstance(candidate, str):
                    errors.append(f"catalog entry {name} candidate {candidate} must be a string")
            try:
                self._build_entry(name, entry)
            except (ValueError, TypeError) as e:
                errors.append(str(e))

        return errors

    @staticmethod
    def _build_entry(name: str, entry: Dict[str, Any]) -> ConfigCatalogEntry:
        return ConfigCatalogEntry(
            logical_name=name,
            candidate_relative_paths=tuple(entry["candidates"]),
            destination_path=Path(entry["destination"]).expanduser(),
            is_directory=bool(entry.get("directory", False)),
            display_name=entry.get("name", name),
        )

    def catalog(self, names: Optional[List[str]] = None) -> List[ConfigCatalogEntry]:
        """Materialise the catalog.

        ``~`` in destinations is expanded at call time, so the result follows
        the current ``HOME``.

        Args:
            names: Optional subset of logical names, in catalog order.

        Raises:
            ConfigError: If an entry is invalid or a requested name is unknown.
        """
        if names:
            unknown = [name for name in names if name not in self.entries]
            if unknown:
                raise ConfigError(f"Unknown config(s): {', '.join(unknown)}")

        catalog = []
        for name, entry in self.entries.items():
            if names and name not in names:
                continue
            try:
                catalog.append(self._build_entry(name, entry))
            except (ValueError, TypeError) as e:
                raise ConfigError(str(e)) from e
        return catalog

    def get_entry_config(self, name: str) -> Optional[Dict[str, Any]]:
        """Get the raw configuration for a single catalog entry."""
        return self.entries.get(name)

    def source_root_path(self) -> Path:
        return Path(self.source_root).expanduser()

    def backup_root_path(self) -> Path:
        return Path(self.backup_root).expanduser()

    def get(self, key: str, default: Any = None) -> Any:
        """Get a raw configuration value.

        Args:
            key: The configuration key to get.
            default: The default value to return if the key is not found.
        """
        return self.config.get(key, default)

"""
Store adapter configuration.

Where the store service lives on the bus and how its entities are
labelled for the host.
"""

from __future__ import annotations

import json
import logging
import os
from dataclasses import dataclass, field, asdict
from pathlib import Path
from typing import Any, Dict, List, Optional

from common.exceptions import InvalidConfigError

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_PATH = Path.home() / ".config" / "android-store" / "config.json"
CONFIG_ENV_VAR = "ANDROID_STORE_CONFIG"

BUS_TYPES = ("session", "system")

STRING_FIELDS = (
    "bus_name", "object_path", "interface", "bus_type",
    "plugin_name", "origin_ui", "repository_sort_key",
)


@dataclass
class StoreConfig:
    """Connection and presentation settings for the store adapter."""
    bus_name: str = "io.FuriOS.AndroidStore"
    object_path: str = "/fdroid"
    interface: str = "io.FuriOS.AndroidStore.fdroid"
    bus_type: str = "session"

    # Identity used for management ownership of created apps
    plugin_name: str = "android"
    origin_ui: str = "F-Droid (Android)"
    repository_sort_key: str = "300"

    # Extra directories searched for desktop entries on launch
    desktop_dirs: List[str] = field(default_factory=list)

    def validate(self) -> List[str]:
        """
        Validate configuration.

        Returns:
            List of validation error messages (empty if valid)
        """
        errors = []

        wrong_type = [
            name for name in STRING_FIELDS if not isinstance(getattr(self, name), str)
        ]
        for name in wrong_type:
            errors.append(f"{name} must be a string, got {type(getattr(self, name)).__name__}")
        if not isinstance(self.desktop_dirs, list) or not all(
            isinstance(d, str) for d in self.desktop_dirs
        ):
            errors.append("desktop_dirs must be a list of strings")
        if wrong_type:
            return errors

        if not self.bus_name:
            errors.append("bus_name is required")
        if not self.object_path.startswith("/"):
            errors.append(f"object_path must be absolute: {self.object_path}")
        if not self.interface:
            errors.append("interface is required")
        if self.bus_type not in BUS_TYPES:
            errors.append(
                f"bus_type must be one of {', '.join(BUS_TYPES)}, got {self.bus_type}"
            )
        if not self.plugin_name:
            errors.append("plugin_name is required")

        return errors

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for serialization."""
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "StoreConfig":
        """Create from dictionary, ignoring unknown keys."""
        known = {f for f in cls.__dataclass_fields__}
        unknown = set(data) - known
        if unknown:
            logger.warning(f"Ignoring unknown config keys: {', '.join(sorted(unknown))}")
        return cls(**{k: v for k, v in data.items() if k in known})

    @classmethod
    def load(cls, path: Optional[Path] = None) -> "StoreConfig":
        """
        Load configuration from a JSON file.

        The path defaults to $ANDROID_STORE_CONFIG, then to
        ~/.config/android-store/config.json. A missing file yields
        the defaults.

        Raises:
            InvalidConfigError: If the file is unreadable or invalid
        """
        if path is None:
            env_path = os.environ.get(CONFIG_ENV_VAR)
            path = Path(env_path) if env_path else DEFAULT_CONFIG_PATH

        if not path.exists():
            logger.debug(f"No config at {path}, using defaults")
            return cls()

        try:
            with open(path) as f:
                data = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            raise InvalidConfigError("path", path, str(e)) from e

        if not isinstance(data, dict):
            raise InvalidConfigError("path", path, "top level must be an object")

        try:
            config = cls.from_dict(data)
        except TypeError as e:
            raise InvalidConfigError("path", path, str(e)) from e

        errors = config.validate()
        if errors:
            raise InvalidConfigError("path", path, "; ".join(errors))

        logger.debug(f"Loaded config from {path}")
        return config

"""
App Launcher

Finds the desktop entry of an installed app and starts it through Gio.
Entries that belong to other packaging systems are filtered out.
"""

from __future__ import annotations

import configparser
import logging
import os
from pathlib import Path
from typing import Callable, Iterable, List, Optional, Protocol

from common.exceptions import LaunchError

from .models import App

logger = logging.getLogger(__name__)

# Gio imports - will only work on Linux with PyGObject installed
try:
    import gi
    gi.require_version('Gio', '2.0')
    from gi.repository import Gio, GLib  # noqa: E402
    GIO_AVAILABLE = True
except (ImportError, ValueError):
    GIO_AVAILABLE = False
    Gio = None
    GLib = None


DESKTOP_GROUP = "Desktop Entry"
FOREIGN_RUNTIME_DIRS = ("/snapd/", "/snap/", "/flatpak/")
FOREIGN_MARKER_KEYS = ("X-Flatpak", "X-SnapInstanceName")

# Waydroid exports app entries with this prefix
DESKTOP_ID_PREFIXES = ("", "waydroid.")

DesktopFilter = Callable[[str, configparser.ConfigParser], bool]


def filter_desktop_file(filename: str, key_file: configparser.ConfigParser) -> bool:
    """
    Accept a desktop entry only if it is not owned by snap or flatpak.

    Args:
        filename: Path of the desktop file
        key_file: Parsed desktop file

    Returns:
        True if the entry may be used to launch the app
    """
    if any(marker in filename for marker in FOREIGN_RUNTIME_DIRS):
        return False
    if not key_file.has_section(DESKTOP_GROUP):
        return False
    return not any(
        key_file.has_option(DESKTOP_GROUP, key) for key in FOREIGN_MARKER_KEYS
    )


def read_desktop_file(path: Path) -> Optional[configparser.ConfigParser]:
    """Parse a desktop file, None if it cannot be read."""
    key_file = configparser.ConfigParser(interpolation=None, strict=False)
    key_file.optionxform = str  # keys are case sensitive
    try:
        with open(path, encoding="utf-8") as f:
            key_file.read_file(f)
    except (OSError, UnicodeDecodeError, configparser.Error) as e:
        logger.debug(f"Cannot read desktop file {path}: {e}")
        return None
    return key_file


def application_dirs(extra_dirs: Iterable[str] = ()) -> List[Path]:
    """Directories searched for desktop entries, most specific first."""
    dirs = [Path(d) for d in extra_dirs]

    data_home = os.environ.get("XDG_DATA_HOME") or str(Path.home() / ".local" / "share")
    dirs.append(Path(data_home) / "applications")

    data_dirs = os.environ.get("XDG_DATA_DIRS") or "/usr/local/share:/usr/share"
    dirs.extend(Path(d) / "applications" for d in data_dirs.split(":") if d)
    return dirs


class Launcher(Protocol):
    """Starts an app, using only desktop entries accepted by the filter."""

    async def launch(self, app: App, desktop_filter: DesktopFilter) -> bool:
        ...


class DesktopLauncher:
    """Default launcher backed by Gio.DesktopAppInfo."""

    def __init__(self, extra_dirs: Iterable[str] = ()):
        self._dirs = application_dirs(extra_dirs)

    def find_desktop_file(self, app: App, desktop_filter: DesktopFilter) -> Optional[Path]:
        """Return the first accepted desktop entry for the app."""
        names = {app.id}
        if app.package_name:
            names.add(app.package_name)

        for directory in self._dirs:
            for name in sorted(names):
                for prefix in DESKTOP_ID_PREFIXES:
                    path = directory / f"{prefix}{name}.desktop"
                    if not path.is_file():
                        continue
                    key_file = read_desktop_file(path)
                    if key_file is None:
                        continue
                    if desktop_filter(str(path), key_file):
                        return path
                    logger.debug(f"Desktop file {path} rejected by filter")
        return None

    async def launch(self, app: App, desktop_filter: DesktopFilter) -> bool:
        """
        Launch the app.

        Raises:
            LaunchError: If Gio is unavailable, no entry is found, or the
                launch fails
        """
        if not GIO_AVAILABLE:
            raise LaunchError(app.id, "PyGObject is not installed")

        path = self.find_desktop_file(app, desktop_filter)
        if path is None:
            raise LaunchError(app.id, "no desktop entry found")

        info = Gio.DesktopAppInfo.new_from_filename(str(path))
        if info is None:
            raise LaunchError(app.id, f"invalid desktop entry {path}")

        try:
            launched = info.launch([], None)
        except GLib.Error as e:
            raise LaunchError(app.id, e.message) from e

        logger.info(f"Launched {app.id} from {path}")
        return launched

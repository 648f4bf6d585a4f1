"""
App caches held by the plugin for its lifetime.
"""

from __future__ import annotations

import logging
from typing import Dict, Iterable, Iterator, List, Optional

from .models import App

logger = logging.getLogger(__name__)


class AppList:
    """Ordered list of apps. Adding the same app twice keeps both entries."""

    def __init__(self, apps: Optional[Iterable[App]] = None):
        self._apps: List[App] = list(apps or ())

    def add(self, app: App) -> None:
        self._apps.append(app)

    def extend(self, apps: Iterable[App]) -> None:
        self._apps.extend(apps)

    def remove_all(self) -> None:
        self._apps.clear()

    def find_by_package_name(self, package_name: str) -> Optional[App]:
        for app in self._apps:
            if app.package_name == package_name:
                return app
        return None

    def __len__(self) -> int:
        return len(self._apps)

    def __iter__(self) -> Iterator[App]:
        return iter(self._apps)

    def __getitem__(self, index: int) -> App:
        return self._apps[index]

    def __repr__(self) -> str:
        return f"AppList({self._apps!r})"


class PluginCache:
    """
    Lookup cache keyed by a stable identifier.

    Re-adding a key replaces the cached entity.
    """

    def __init__(self):
        self._entries: Dict[str, App] = {}

    def add(self, key: str, app: App) -> None:
        if key in self._entries:
            logger.debug(f"Replacing cached entry for {key}")
        self._entries[key] = app

    def lookup(self, key: str) -> Optional[App]:
        return self._entries.get(key)

    def remove(self, key: str) -> None:
        self._entries.pop(key, None)

    def invalidate(self) -> None:
        self._entries.clear()

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, key: str) -> bool:
        return key in self._entries

"""
App builders for decoded store records.

Turns the reply records of every listing call into App and
Repository entities owned by the plugin.
"""

from __future__ import annotations

import logging
from typing import Optional

from .cache import AppList
from .config import StoreConfig
from .models import (
    App, Kudo, NameQuality, Quirk, RemoteIcon, Repository, UrlKind,
    METADATA_CREATOR, METADATA_PACKAGE_NAME, METADATA_PACKAGING_FORMAT,
    METADATA_REPOSITORY, METADATA_SORT_KEY,
)
from .records import (
    InstalledRecord, RepositoryRecord, SearchRecord, UpgradableRecord,
    decode_package_info,
)
from .state_machine import AppState

logger = logging.getLogger(__name__)

PACKAGING_FORMAT = "apk"
ICON_SCHEMES = ("http://", "https://")


def add_remote_icon(app: App, icon_url: Optional[str]) -> bool:
    """
    Attach an icon if its URL has an explicit HTTP(S) scheme.

    Anything else is reported and left off the app.
    """
    if icon_url is None:
        return False
    if not icon_url.startswith(ICON_SCHEMES):
        logger.debug(f"App '{app.name}' has invalid icon URL: {icon_url}")
        return False
    app.icons.append(RemoteIcon(icon_url))
    return True


def _set_display_name(app: App, name: Optional[str], package_name: str) -> None:
    if name:
        app.set_name(NameQuality.NORMAL, name)
    else:
        app.set_name(NameQuality.LOWEST, package_name)


def _new_package_app(app_id: str, config: StoreConfig) -> App:
    app = App(app_id)
    app.allow_cancel = False
    app.management_plugin = config.plugin_name
    app.kudos.add(Kudo.SANDBOXED_SECURE)
    app.add_source(app_id)
    return app


def app_from_installed(record: InstalledRecord, config: StoreConfig) -> Optional[App]:
    """Build an installed app, or None when the entry has no package name."""
    if record.package_name is None:
        logger.debug(f"Skipping installed entry without packageName: {record}")
        return None

    app = _new_package_app(record.id or record.package_name, config)
    app.quirks.add(Quirk.HAS_SOURCE)
    _set_display_name(app, record.name, record.package_name)
    app.set_metadata(METADATA_PACKAGE_NAME, record.package_name)
    app.set_state(AppState.INSTALLED)

    logger.debug(f"Added installed Android app: {app.name} (package: {record.package_name})")
    return app


def app_from_upgradable(record: UpgradableRecord, config: StoreConfig) -> Optional[App]:
    """Build an updatable app, or None when the entry has no package name."""
    if record.package_name is None:
        logger.debug(f"Skipping upgradable entry without packageName: {record}")
        return None

    app = _new_package_app(record.id or record.package_name, config)
    _set_display_name(app, record.name, record.package_name)
    app.set_metadata(METADATA_PACKAGE_NAME, app.id)
    app.set_metadata(METADATA_REPOSITORY, record.repository)
    app.set_metadata(METADATA_PACKAGING_FORMAT, PACKAGING_FORMAT)
    app.version = record.current_version
    app.update_version = record.available_version

    package = decode_package_info(record.package)
    if package is not None:
        add_remote_icon(app, package.icon_url)

    app.set_state(AppState.UPDATABLE)

    logger.debug(
        f"Found upgrade for {record.package_name}: "
        f"{record.current_version or 'unknown'} -> {record.available_version or 'unknown'}"
    )
    return app


def app_from_search(
    record: SearchRecord,
    config: StoreConfig,
    installed: AppList,
) -> App:
    """
    Build an app from a search result.

    The app is INSTALLED when an installed app carries the same package
    name, AVAILABLE otherwise.
    """
    app = _new_package_app(record.id, config)
    app.quirks.add(Quirk.HAS_SOURCE)
    app.set_metadata(METADATA_CREATOR, config.plugin_name)
    app.set_metadata(METADATA_PACKAGE_NAME, record.id)
    app.set_metadata(METADATA_REPOSITORY, record.repository)
    app.set_metadata(METADATA_PACKAGING_FORMAT, PACKAGING_FORMAT)

    app.set_name(NameQuality.NORMAL, record.name)
    app.summary = record.summary
    app.description = record.description
    app.license = record.license
    app.developer_name = record.author
    if record.web_url:
        app.urls[UrlKind.HOMEPAGE] = record.web_url

    if record.package is not None:
        app.version = record.package.version
        add_remote_icon(app, record.package.icon_url)

    installed_app = installed.find_by_package_name(record.id)
    app.set_state(AppState.AVAILABLE if installed_app is None else AppState.INSTALLED)
    return app


def repository_from_record(record: RepositoryRecord, config: StoreConfig) -> Repository:
    """Build a repository entry; repositories are present once listed."""
    logger.debug(f"Processing {config.origin_ui} repository: {record.name} ({record.url})")

    repo = Repository(record.name, record.url)
    repo.management_plugin = config.plugin_name
    repo.set_metadata(METADATA_SORT_KEY, config.repository_sort_key)
    repo.origin_ui = config.origin_ui
    return repo

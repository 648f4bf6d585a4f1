"""
Android Store Plugin

Host-facing adapter between a software center and the Android store
service. Every operation is a coroutine; its awaited value is the
operation's result and a failure is raised as a StoreError.
"""

from __future__ import annotations

import logging
from typing import Awaitable, Callable, Iterable, List, Optional

from common.decorators import ensure_connected
from common.exceptions import (
    InvalidAppKindError, StateTransitionError, UnsupportedFlagsError,
    UnsupportedOperationError, UnsupportedQueryError, UpgradeFailedError,
)

from . import __version__
from .cache import AppList, PluginCache
from .config import StoreConfig
from .connection import StoreConnection, StoreMethod
from .decoder import (
    app_from_installed, app_from_search, app_from_upgradable,
    repository_from_record,
)
from .dispatcher import Cancellable, invoke
from .launcher import DesktopLauncher, Launcher, filter_desktop_file
from .models import (
    App, AppQuery, InstallAppsFlags, LaunchFlags, ListAppsFlags,
    ManageRepositoryFlags, PluginStatus, QueryKind, RefreshMetadataFlags,
    Repository, UninstallAppsFlags, UpdateAppsFlags,
)
from .records import (
    InstalledRecord, UpgradableRecord, decode_boolean, decode_field_maps,
    decode_repositories, decode_search,
)
from .state_machine import AppState

logger = logging.getLogger(__name__)

Connector = Callable[[StoreConfig], Awaitable[StoreConnection]]


class AndroidStorePlugin:
    """
    Software-center plugin for the Android store service.

    Holds one connection, the installed and updatable app lists and a
    lookup cache of repositories by URL. All methods must be awaited on
    the same event loop.
    """

    def __init__(
        self,
        config: Optional[StoreConfig] = None,
        connector: Optional[Connector] = None,
        launcher: Optional[Launcher] = None,
    ):
        self.config = config or StoreConfig()
        self._connector = connector or StoreConnection.open
        self._launcher = launcher or DesktopLauncher(self.config.desktop_dirs)
        self._connection: Optional[StoreConnection] = None

        self.installed_apps = AppList()
        self.updatable_apps = AppList()
        self.cache = PluginCache()

        self._status_callback: Optional[Callable[[PluginStatus], None]] = None
        self._updates_changed_callbacks: List[Callable[[], None]] = []

    @property
    def name(self) -> str:
        return self.config.plugin_name

    @property
    def connection(self) -> Optional[StoreConnection]:
        return self._connection

    # -- host notifications -------------------------------------------

    def set_status_callback(self, callback: Callable[[PluginStatus], None]) -> None:
        """Set callback for coarse progress updates."""
        self._status_callback = callback

    def connect_updates_changed(self, callback: Callable[[], None]) -> None:
        """Register a callback fired when the set of updates may have changed."""
        self._updates_changed_callbacks.append(callback)

    def _status_update(self, status: PluginStatus) -> None:
        if self._status_callback:
            self._status_callback(status)

    def _updates_changed(self) -> None:
        for callback in self._updates_changed_callbacks:
            try:
                callback()
            except Exception as e:
                logger.warning(f"Updates-changed callback error: {e}")

    def _owns(self, app: App) -> bool:
        return app.has_management_plugin(self.name)

    # -- lifecycle ----------------------------------------------------

    async def setup(self, cancellable: Optional[Cancellable] = None) -> bool:
        """
        Connect to the store service.

        A later successful setup replaces the earlier connection.

        Raises:
            StoreConnectionError: If the bus cannot be reached
        """
        logger.debug(f"Android plugin version: {__version__}")
        if cancellable is not None:
            cancellable.raise_if_cancelled("setup")

        connection = await self._connector(self.config)

        old, self._connection = self._connection, connection
        if old is not None:
            old.disconnect()
        return True

    async def dispose(self) -> None:
        """Drop the connection and every cached app."""
        if self._connection is not None:
            self._connection.disconnect()
            self._connection = None
        self.installed_apps.remove_all()
        self.updatable_apps.remove_all()
        self.cache.invalidate()

    async def __aenter__(self) -> "AndroidStorePlugin":
        await self.setup()
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.dispose()

    # -- metadata -----------------------------------------------------

    @ensure_connected()
    async def refresh_metadata(
        self,
        cache_age_secs: int = 0,
        flags: RefreshMetadataFlags = RefreshMetadataFlags.NONE,
        cancellable: Optional[Cancellable] = None,
    ) -> bool:
        """
        Ask the store to refresh its repository indexes.

        Returns:
            The store's success flag
        """
        logger.debug("Refreshing repositories")
        self._status_update(PluginStatus.DOWNLOADING)

        body = await invoke(self._connection, StoreMethod.UPDATE_CACHE, (), cancellable)
        success = decode_boolean(StoreMethod.UPDATE_CACHE.member, body)

        self._updates_changed()
        return success

    # -- listing ------------------------------------------------------

    @ensure_connected()
    async def list_apps(
        self,
        query: Optional[AppQuery],
        flags: ListAppsFlags = ListAppsFlags.NONE,
        cancellable: Optional[Cancellable] = None,
    ) -> List[App]:
        """
        Answer a host query.

        Raises:
            UnsupportedQueryError: Unless exactly one positive filter is set
        """
        if query is None:
            raise UnsupportedQueryError()

        kind = query.kind()
        if kind == QueryKind.SOURCES:
            logger.debug("Listing repositories")
            return await self._list_repositories(cancellable)
        if kind == QueryKind.INSTALLED:
            logger.debug("Listing installed apps")
            return await self._list_installed(cancellable)
        if kind == QueryKind.UPDATES:
            logger.debug("Listing updates")
            return await self._list_updatable(cancellable)
        if kind == QueryKind.SEARCH:
            logger.debug(f"Searching for apps: {query.search_string}")
            return await self._search(query.search_string, cancellable)
        raise UnsupportedQueryError("Unsupported query type")

    async def _list_repositories(self, cancellable: Optional[Cancellable]) -> List[App]:
        body = await invoke(self._connection, StoreMethod.GET_REPOSITORIES, (), cancellable)

        repos: List[App] = []
        for record in decode_repositories(body):
            repo = repository_from_record(record, self.config)
            self.cache.add(repo.url, repo)
            repos.append(repo)
        return repos

    async def _list_installed(self, cancellable: Optional[Cancellable]) -> List[App]:
        body = await invoke(self._connection, StoreMethod.GET_INSTALLED_APPS, (), cancellable)
        records = decode_field_maps(
            StoreMethod.GET_INSTALLED_APPS.member, body, InstalledRecord
        )

        apps = [
            app for app in (app_from_installed(r, self.config) for r in records)
            if app is not None
        ]

        self.installed_apps.remove_all()
        self.installed_apps.extend(apps)
        return apps

    async def _list_updatable(self, cancellable: Optional[Cancellable]) -> List[App]:
        body = await invoke(self._connection, StoreMethod.GET_UPGRADABLE, (), cancellable)
        records = decode_field_maps(
            StoreMethod.GET_UPGRADABLE.member, body, UpgradableRecord
        )

        apps = [
            app for app in (app_from_upgradable(r, self.config) for r in records)
            if app is not None
        ]

        # Accumulates across refreshes; callers reset at a higher layer
        self.updatable_apps.extend(apps)

        if apps:
            logger.debug(f"Found {len(apps)} upgradable Android apps")
        else:
            logger.debug("No upgradable Android apps found")
        return apps

    async def _search(self, search_string: str, cancellable: Optional[Cancellable]) -> List[App]:
        body = await invoke(self._connection, StoreMethod.SEARCH, (search_string,), cancellable)
        return [
            app_from_search(record, self.config, self.installed_apps)
            for record in decode_search(body)
        ]

    # -- single app operations ------------------------------------------

    def _select_single_target(self, apps: Iterable[App], operation: str) -> List[App]:
        targets = []
        for app in apps:
            if app.is_repository:
                raise InvalidAppKindError(app.id, app.kind.value, operation)

            logger.debug(f"Considering app {app.id} for {operation}")
            if not self._owns(app):
                logger.debug(f"App {app.id} is not managed by us, not {operation}ing")
                continue
            if app.package_name is None:
                logger.debug(f"No package name found for app {app.id}, skipping {operation}")
                continue
            targets.append(app)
        return targets

    async def _run_single(
        self,
        app: App,
        transient: AppState,
        final: AppState,
        method: StoreMethod,
        argument: str,
        cancellable: Optional[Cancellable],
    ) -> None:
        app.set_state(transient)
        try:
            await invoke(self._connection, method, (argument,), cancellable)
        except BaseException:
            app.set_state_recover()
            raise
        app.set_state(final)

    @ensure_connected()
    async def install_apps(
        self,
        apps: Iterable[App],
        flags: InstallAppsFlags = InstallAppsFlags.NONE,
        cancellable: Optional[Cancellable] = None,
    ) -> bool:
        """
        Install exactly one app managed by this plugin.

        Raises:
            UnsupportedFlagsError: For NO_DOWNLOAD or NO_APPLY
            InvalidAppKindError: If a repository is passed
            UnsupportedOperationError: Unless exactly one app qualifies
        """
        if flags & (InstallAppsFlags.NO_DOWNLOAD | InstallAppsFlags.NO_APPLY):
            raise UnsupportedFlagsError("install", flags)

        targets = self._select_single_target(apps, "install")
        if len(targets) != 1:
            raise UnsupportedOperationError("Can only install one app at a time", len(targets))

        app = targets[0]
        await self._run_single(
            app, AppState.INSTALLING, AppState.INSTALLED,
            StoreMethod.INSTALL, app.package_name, cancellable,
        )
        logger.debug(f"Installed Android app: {app.package_name}")

        self._updates_changed()
        return True

    @ensure_connected()
    async def uninstall_apps(
        self,
        apps: Iterable[App],
        flags: UninstallAppsFlags = UninstallAppsFlags.NONE,
        cancellable: Optional[Cancellable] = None,
    ) -> bool:
        """
        Uninstall exactly one app managed by this plugin.

        Raises:
            InvalidAppKindError: If a repository is passed
            UnsupportedOperationError: Unless exactly one app qualifies
        """
        targets = self._select_single_target(apps, "uninstall")
        if len(targets) != 1:
            raise UnsupportedOperationError("Can only uninstall one app at a time", len(targets))

        app = targets[0]
        await self._run_single(
            app, AppState.REMOVING, AppState.AVAILABLE,
            StoreMethod.UNINSTALL_APP, app.package_name, cancellable,
        )
        logger.debug(f"Uninstalled Android app: {app.package_name}")

        self._updates_changed()
        return True

    @ensure_connected()
    async def remove_repository(
        self,
        repo: App,
        flags: ManageRepositoryFlags = ManageRepositoryFlags.NONE,
        cancellable: Optional[Cancellable] = None,
    ) -> bool:
        """
        Remove a repository from the store.

        Raises:
            InvalidAppKindError: If repo is not a repository
        """
        if not repo.is_repository:
            raise InvalidAppKindError(repo.id, repo.kind.value, "remove repository")
        if not self._owns(repo):
            logger.debug(f"Repository {repo.id} is not managed by us, not removing")
            return True

        logger.debug(f"Removing {self.config.origin_ui} repository: {repo.id}")
        await self._run_single(
            repo, AppState.REMOVING, AppState.AVAILABLE,
            StoreMethod.REMOVE_REPOSITORY, repo.id, cancellable,
        )

        if isinstance(repo, Repository):
            self.cache.remove(repo.url)
        return True

    # -- batch update -------------------------------------------------

    @ensure_connected()
    async def update_apps(
        self,
        apps: Iterable[App],
        flags: UpdateAppsFlags = UpdateAppsFlags.NONE,
        cancellable: Optional[Cancellable] = None,
    ) -> bool:
        """
        Upgrade apps in one batch.

        A failed batch leaves the included apps in INSTALLING.

        Raises:
            UpgradeFailedError: If the store reports the upgrade failed
        """
        if flags & UpdateAppsFlags.NO_APPLY:
            return True

        self._status_update(PluginStatus.WAITING)

        included: List[App] = []
        for app in apps:
            if not self._owns(app):
                logger.debug(f"App {app.id} is not managed by us, not updating")
                continue
            if app.package_name is None:
                logger.debug(f"No package name found for app {app.id}, not updating")
                continue
            logger.debug(f"Adding package to upgrade: {app.package_name}")
            included.append(app)

        if not included:
            logger.debug("Nothing to upgrade")
            return True

        for app in included:
            if not app.state_machine.can_transition(AppState.INSTALLING):
                raise StateTransitionError(app.id, app.state.value, AppState.INSTALLING.value)
        for app in included:
            app.set_state(AppState.INSTALLING)

        packages = [app.package_name for app in included]
        body = await invoke(
            self._connection, StoreMethod.UPGRADE_PACKAGES, (packages,), cancellable
        )
        if not decode_boolean(StoreMethod.UPGRADE_PACKAGES.member, body):
            raise UpgradeFailedError(packages)

        for app in included:
            app.set_state(AppState.INSTALLED)
            logger.debug(f"Updated app: {app.id}")

        self._updates_changed()
        return True

    # -- launch -------------------------------------------------------

    async def launch(
        self,
        app: App,
        flags: LaunchFlags = LaunchFlags.NONE,
        cancellable: Optional[Cancellable] = None,
    ) -> bool:
        """
        Launch an app through the launcher, ignoring snap and flatpak entries.

        Raises:
            LaunchError: If the launcher cannot start the app
        """
        if not self._owns(app):
            logger.debug(f"App {app.id} is not managed by us, not launching")
            return False
        if cancellable is not None:
            cancellable.raise_if_cancelled("launch")
        return await self._launcher.launch(app, filter_desktop_file)

"""
Store Data Model

Apps, repositories and queries as seen by the software-center host.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum, Flag, auto
from typing import Dict, List, Optional, Sequence, Set

from common.exceptions import UnsupportedQueryError

from .state_machine import AppState, AppStateMachine


class AppKind(Enum):
    """What an entity represents."""
    DESKTOP_APP = "desktop-app"
    REPOSITORY = "repository"


class BundleKind(Enum):
    """How an app is shipped."""
    PACKAGE = "package"


class Scope(Enum):
    """Where an app is installed."""
    SYSTEM = "system"


class NameQuality(Enum):
    """Confidence in an app's display name."""
    LOWEST = 0
    NORMAL = 1


class UrlKind(Enum):
    """Kinds of URL attached to an app."""
    HOMEPAGE = "homepage"


class Quirk(Enum):
    """Behavioural markers for the host."""
    HAS_SOURCE = "has-source"
    NOT_LAUNCHABLE = "not-launchable"


class Kudo(Enum):
    """Positive properties shown to the user."""
    SANDBOXED_SECURE = "sandboxed-secure"


# Metadata keys
METADATA_PACKAGE_NAME = "android::package-name"
METADATA_REPOSITORY = "android-store::repository"
METADATA_REPO_URL = "fdroid::repo-url"
METADATA_PACKAGING_FORMAT = "GnomeSoftware::PackagingFormat"
METADATA_CREATOR = "GnomeSoftware::Creator"
METADATA_SORT_KEY = "GnomeSoftware::SortKey"


@dataclass(frozen=True)
class RemoteIcon:
    """Icon fetched over HTTP(S) by the host."""
    url: str


class App:
    """
    An application known to the store.

    Created fresh on every listing call; ownership is expressed as the
    name of the managing plugin.
    """

    def __init__(self, app_id: str, kind: AppKind = AppKind.DESKTOP_APP):
        self.id = app_id
        self.kind = kind
        self.bundle_kind = BundleKind.PACKAGE
        self.scope = Scope.SYSTEM
        self.name: Optional[str] = None
        self.name_quality = NameQuality.LOWEST
        self.summary: Optional[str] = None
        self.description: Optional[str] = None
        self.license: Optional[str] = None
        self.developer_name: Optional[str] = None
        self.version: Optional[str] = None
        self.update_version: Optional[str] = None
        self.origin_ui: Optional[str] = None
        self.management_plugin: Optional[str] = None
        self.allow_cancel = True
        self.urls: Dict[UrlKind, str] = {}
        self.icons: List[RemoteIcon] = []
        self.sources: List[str] = []
        self.quirks: Set[Quirk] = set()
        self.kudos: Set[Kudo] = set()
        self.metadata: Dict[str, str] = {}
        self._machine = AppStateMachine(app_id)

    def __repr__(self) -> str:
        return f"<{self.__class__.__name__} {self.id} {self.state.name}>"

    # -- state ---------------------------------------------------------

    @property
    def state(self) -> AppState:
        return self._machine.state

    @property
    def state_machine(self) -> AppStateMachine:
        return self._machine

    def set_state(self, state: AppState) -> None:
        self._machine.transition(state)

    def set_state_recover(self) -> None:
        """Undo a transient state after a failed operation."""
        self._machine.recover()

    # -- identity ------------------------------------------------------

    @property
    def package_name(self) -> Optional[str]:
        return self.metadata.get(METADATA_PACKAGE_NAME)

    @property
    def origin_repository(self) -> Optional[str]:
        return self.metadata.get(METADATA_REPOSITORY)

    @property
    def is_repository(self) -> bool:
        return self.kind == AppKind.REPOSITORY

    def set_name(self, quality: NameQuality, name: str) -> None:
        # A lower-quality name never replaces a better one
        if self.name is not None and quality.value < self.name_quality.value:
            return
        self.name = name
        self.name_quality = quality

    def set_metadata(self, key: str, value: Optional[str]) -> None:
        if value is None:
            self.metadata.pop(key, None)
        else:
            self.metadata[key] = value

    def add_source(self, source: str) -> None:
        if source not in self.sources:
            self.sources.append(source)

    def has_management_plugin(self, plugin_name: str) -> bool:
        return self.management_plugin is not None and self.management_plugin == plugin_name

    @property
    def homepage(self) -> Optional[str]:
        return self.urls.get(UrlKind.HOMEPAGE)

    def to_dict(self) -> Dict[str, object]:
        """Convert to dictionary for JSON output."""
        return {
            "id": self.id,
            "kind": self.kind.value,
            "name": self.name,
            "package_name": self.package_name,
            "state": self.state.value,
            "version": self.version,
            "update_version": self.update_version,
            "summary": self.summary,
            "license": self.license,
            "developer_name": self.developer_name,
            "homepage": self.homepage,
            "repository": self.origin_repository,
            "icons": [icon.url for icon in self.icons],
        }


class Repository(App):
    """A package source listed by the store; present once listed."""

    def __init__(self, name: str, url: str):
        super().__init__(name, kind=AppKind.REPOSITORY)
        self.set_name(NameQuality.NORMAL, name)
        self.urls[UrlKind.HOMEPAGE] = url
        self.set_metadata(METADATA_REPO_URL, url)
        self.quirks.add(Quirk.NOT_LAUNCHABLE)
        self.set_state(AppState.INSTALLED)

    @property
    def url(self) -> str:
        return self.metadata[METADATA_REPO_URL]


# =============================================================================
# Queries
# =============================================================================

class QueryKind(Enum):
    """The four query shapes the store can answer."""
    SOURCES = auto()
    INSTALLED = auto()
    UPDATES = auto()
    SEARCH = auto()


@dataclass
class AppQuery:
    """
    A filter request from the host.

    Tri-state fields use None for "not set". Exactly one dimension may be
    set, and negative filters are not implemented.
    """
    is_source: Optional[bool] = None
    is_installed: Optional[bool] = None
    is_for_update: Optional[bool] = None
    keywords: Optional[Sequence[str]] = None

    @property
    def n_properties_set(self) -> int:
        flags = (self.is_source, self.is_installed, self.is_for_update)
        count = sum(1 for value in flags if value is not None)
        if self.keywords:
            count += 1
        return count

    def kind(self) -> QueryKind:
        """
        Classify the query.

        Raises:
            UnsupportedQueryError: If not exactly one positive dimension is set
        """
        if self.n_properties_set != 1 or False in (
            self.is_source, self.is_installed, self.is_for_update
        ):
            raise UnsupportedQueryError()

        if self.is_source:
            return QueryKind.SOURCES
        if self.is_installed:
            return QueryKind.INSTALLED
        if self.is_for_update:
            return QueryKind.UPDATES
        if self.keywords:
            return QueryKind.SEARCH
        raise UnsupportedQueryError("Unsupported query type")

    @property
    def search_string(self) -> str:
        return " ".join(self.keywords or ())


# =============================================================================
# Operation flags
# =============================================================================

class RefreshMetadataFlags(Flag):
    NONE = 0
    INTERACTIVE = auto()


class ListAppsFlags(Flag):
    NONE = 0
    INTERACTIVE = auto()


class InstallAppsFlags(Flag):
    NONE = 0
    INTERACTIVE = auto()
    NO_DOWNLOAD = auto()
    NO_APPLY = auto()


class UninstallAppsFlags(Flag):
    NONE = 0
    INTERACTIVE = auto()


class UpdateAppsFlags(Flag):
    NONE = 0
    INTERACTIVE = auto()
    NO_DOWNLOAD = auto()
    NO_APPLY = auto()


class ManageRepositoryFlags(Flag):
    NONE = 0
    INTERACTIVE = auto()


class LaunchFlags(Flag):
    NONE = 0


class PluginStatus(Enum):
    """Coarse progress reported to the host."""
    DOWNLOADING = "downloading"
    WAITING = "waiting"

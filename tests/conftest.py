"""
Pytest configuration and shared fixtures for the Android store tests.

Provides a scripted stand-in for the store service connection.
"""

import asyncio
import json
import sys
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, Tuple

import pytest

# Add src to path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from dbus_fast import Variant  # noqa: E402

from android_store.config import StoreConfig  # noqa: E402
from android_store.connection import StoreMethod  # noqa: E402
from android_store.plugin import AndroidStorePlugin  # noqa: E402


class FakeStoreConnection:
    """
    Answers store calls from a table of scripted reply bodies.

    A reply may be a list (the body), a callable taking the call
    arguments, or an exception instance to raise. Methods listed in
    ``gates`` wait for their event before answering.
    """

    def __init__(self, replies: Optional[Dict[StoreMethod, Any]] = None):
        self.replies: Dict[StoreMethod, Any] = dict(replies or {})
        self.gates: Dict[StoreMethod, asyncio.Event] = {}
        self.calls: List[Tuple[StoreMethod, List[Any]]] = []
        self.connected = True

    @property
    def is_connected(self) -> bool:
        return self.connected

    async def call(self, method: StoreMethod, args=()) -> List[Any]:
        self.calls.append((method, list(args)))
        gate = self.gates.get(method)
        if gate is not None:
            await gate.wait()

        if method not in self.replies:
            raise AssertionError(f"Unexpected call to {method.member}")
        reply = self.replies[method]
        if isinstance(reply, Exception):
            raise reply
        if callable(reply):
            reply = reply(*args)
        return reply

    def disconnect(self) -> None:
        self.connected = False

    def called(self, method: StoreMethod) -> List[List[Any]]:
        """Arguments of every call to method."""
        return [args for m, args in self.calls if m == method]


def field_map(**fields) -> Dict[str, Variant]:
    """Build an a{sv} entry the way dbus_fast delivers it."""
    return {key: Variant("s", value) for key, value in fields.items()}


def search_reply(*apps: Dict[str, Any]) -> List[str]:
    return [json.dumps(list(apps))]


def search_app(app_id: str, name: str, **overrides) -> Dict[str, Any]:
    """One Search element with every field the service sends."""
    app = {
        "id": app_id,
        "name": name,
        "summary": f"{name} summary",
        "description": f"{name} description",
        "license": "GPL-3.0-or-later",
        "author": "F-Droid",
        "web_url": f"https://example.org/{app_id}",
        "repository": "F-Droid",
        "package": {
            "version": "1.0",
            "icon_url": f"https://f-droid.org/repo/icons/{app_id}.png",
        },
    }
    app.update(overrides)
    return app


# ============ Fixtures ============

@pytest.fixture
def store_config() -> StoreConfig:
    return StoreConfig()


@pytest.fixture
def fake_connection() -> FakeStoreConnection:
    return FakeStoreConnection()


@pytest.fixture
def connector(fake_connection) -> Callable:
    """Connector that hands out the fake connection."""
    async def connect(config: StoreConfig) -> FakeStoreConnection:
        return fake_connection
    return connect


@pytest.fixture
def launcher():
    from unittest.mock import AsyncMock
    mock = AsyncMock()
    mock.launch.return_value = True
    return mock


@pytest.fixture
def plugin(store_config, connector, launcher) -> AndroidStorePlugin:
    """Plugin that has not been set up yet."""
    return AndroidStorePlugin(store_config, connector=connector, launcher=launcher)


@pytest.fixture
def connected_plugin(plugin, fake_connection) -> AndroidStorePlugin:
    """Plugin holding the fake connection, as after a successful setup."""
    plugin._connection = fake_connection
    return plugin


# ============ Marker Configuration ============

def pytest_configure(config):
    """Configure custom markers."""
    config.addinivalue_line(
        "markers", "unit: fast unit tests with no external deps"
    )
    config.addinivalue_line(
        "markers", "requires_gio: tests that need PyGObject"
    )


def pytest_collection_modifyitems(config, items):
    """Skip tests based on environment."""
    from android_store.launcher import GIO_AVAILABLE

    skip_gio = pytest.mark.skip(reason="PyGObject not installed")
    for item in items:
        if "requires_gio" in item.keywords and not GIO_AVAILABLE:
            item.add_marker(skip_gio)

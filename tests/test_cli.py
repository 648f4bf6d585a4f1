"""
Tests for the android-store command line.
"""

import json
from unittest.mock import patch

import pytest

from android_store.connection import StoreMethod
from conftest import field_map, search_app, search_reply


@pytest.fixture(autouse=True)
def cli_env(tmp_path, monkeypatch):
    """Keep the CLI away from the user's config and the root logger."""
    monkeypatch.setenv("ANDROID_STORE_CONFIG", str(tmp_path / "absent.json"))
    with patch("android_store.cli.setup_logging"):
        yield


@pytest.fixture
def run_cli(connector, launcher):
    """Run main() against the fake store connection."""
    from android_store.plugin import AndroidStorePlugin

    def factory(config):
        return AndroidStorePlugin(config, connector=connector, launcher=launcher)

    def run(*argv):
        from android_store.cli import main

        with patch("android_store.cli.AndroidStorePlugin", side_effect=factory):
            return main(list(argv))
    return run


class TestParser:
    """Tests for argument parsing."""

    def test_no_command_prints_help(self, capsys):
        from android_store.cli import main

        assert main([]) == 1
        assert "android-store" in capsys.readouterr().out

    def test_search_requires_keyword(self):
        from android_store.cli import build_parser

        with pytest.raises(SystemExit):
            build_parser().parse_args(["search"])

    def test_update_packages_optional(self):
        from android_store.cli import build_parser

        args = build_parser().parse_args(["--json", "update"])
        assert args.packages == []
        assert args.json is True

    def test_bad_config(self, tmp_path, capsys):
        from android_store.cli import main

        path = tmp_path / "bad.json"
        path.write_text("{")

        assert main(["--config", str(path), "installed"]) == 1
        assert "Invalid configuration" in capsys.readouterr().err

    def test_wrongly_typed_config(self, tmp_path, capsys):
        from android_store.cli import main

        path = tmp_path / "typed.json"
        path.write_text(json.dumps({"object_path": 5}))

        assert main(["--config", str(path), "installed"]) == 1
        assert "object_path must be a string" in capsys.readouterr().err


class TestListingCommands:
    """Tests for read-only commands."""

    def test_installed(self, run_cli, fake_connection, capsys):
        fake_connection.replies[StoreMethod.GET_INSTALLED_APPS] = [[
            field_map(packageName="org.fdroid.fdroid", name="F-Droid"),
        ]]

        assert run_cli("installed") == 0
        out = capsys.readouterr().out
        assert "org.fdroid.fdroid" in out
        assert "[installed]" in out

    def test_installed_empty(self, run_cli, fake_connection, capsys):
        fake_connection.replies[StoreMethod.GET_INSTALLED_APPS] = [[]]

        assert run_cli("installed") == 0
        assert "No Android apps installed." in capsys.readouterr().out

    def test_search_json(self, run_cli, fake_connection, capsys):
        fake_connection.replies[StoreMethod.SEARCH] = search_reply(
            search_app("net.osmand.plus", "OsmAnd")
        )

        assert run_cli("--json", "search", "osm", "maps") == 0

        data = json.loads(capsys.readouterr().out)
        assert data[0]["id"] == "net.osmand.plus"
        assert data[0]["state"] == "available"
        assert fake_connection.called(StoreMethod.SEARCH) == [["osm maps"]]

    def test_updates(self, run_cli, fake_connection, capsys):
        fake_connection.replies[StoreMethod.GET_UPGRADABLE] = [[
            field_map(packageName="org.a", name="Alpha", currentVersion="1", availableVersion="2"),
        ]]

        assert run_cli("updates") == 0
        assert "1 -> 2" in capsys.readouterr().out

    def test_repos(self, run_cli, fake_connection, capsys):
        fake_connection.replies[StoreMethod.GET_REPOSITORIES] = [[
            ["F-Droid", "https://f-droid.org/repo"],
        ]]

        assert run_cli("repos") == 0
        assert "F-Droid: https://f-droid.org/repo" in capsys.readouterr().out

    def test_refresh_failure(self, run_cli, fake_connection):
        fake_connection.replies[StoreMethod.UPDATE_CACHE] = [False]

        assert run_cli("refresh") == 1


class TestManagementCommands:
    """Tests for commands that change the device."""

    def test_install(self, run_cli, fake_connection, capsys):
        fake_connection.replies[StoreMethod.GET_INSTALLED_APPS] = [[]]
        fake_connection.replies[StoreMethod.SEARCH] = search_reply(
            search_app("net.osmand", "OsmAnd"),
            search_app("net.osmand.plus", "OsmAnd+"),
        )
        fake_connection.replies[StoreMethod.INSTALL] = [True]

        assert run_cli("install", "net.osmand.plus") == 0

        assert fake_connection.called(StoreMethod.INSTALL) == [["net.osmand.plus"]]
        assert "Successfully installed OsmAnd+" in capsys.readouterr().out

    def test_install_already_installed(self, run_cli, fake_connection, capsys):
        fake_connection.replies[StoreMethod.GET_INSTALLED_APPS] = [[
            field_map(packageName="net.osmand.plus"),
        ]]
        fake_connection.replies[StoreMethod.SEARCH] = search_reply(
            search_app("net.osmand.plus", "OsmAnd+"),
        )

        assert run_cli("install", "net.osmand.plus") == 0
        assert fake_connection.called(StoreMethod.INSTALL) == []
        assert "already installed" in capsys.readouterr().out

    def test_install_not_found(self, run_cli, fake_connection, capsys):
        fake_connection.replies[StoreMethod.GET_INSTALLED_APPS] = [[]]
        fake_connection.replies[StoreMethod.SEARCH] = search_reply()

        assert run_cli("install", "org.missing") == 1
        assert "App not found" in capsys.readouterr().err

    def test_install_remote_error(self, run_cli, fake_connection, capsys):
        from common.exceptions import RemoteCallError

        fake_connection.replies[StoreMethod.GET_INSTALLED_APPS] = [[]]
        fake_connection.replies[StoreMethod.SEARCH] = search_reply(search_app("org.a", "Alpha"))
        fake_connection.replies[StoreMethod.INSTALL] = RemoteCallError(
            "Install", "org.freedesktop.DBus.Error.Failed", "Download failed"
        )

        assert run_cli("install", "org.a") == 1
        assert "Error: Download failed" in capsys.readouterr().err

    def test_uninstall(self, run_cli, fake_connection):
        fake_connection.replies[StoreMethod.GET_INSTALLED_APPS] = [[
            field_map(packageName="org.a"),
        ]]
        fake_connection.replies[StoreMethod.UNINSTALL_APP] = [True]

        assert run_cli("uninstall", "org.a") == 0
        assert fake_connection.called(StoreMethod.UNINSTALL_APP) == [["org.a"]]

    def test_update_selected(self, run_cli, fake_connection):
        fake_connection.replies[StoreMethod.GET_UPGRADABLE] = [[
            field_map(packageName="org.a"),
            field_map(packageName="org.b"),
        ]]
        fake_connection.replies[StoreMethod.UPGRADE_PACKAGES] = [True]

        assert run_cli("update", "org.b") == 0
        assert fake_connection.called(StoreMethod.UPGRADE_PACKAGES) == [[["org.b"]]]

    def test_update_unknown_package(self, run_cli, fake_connection):
        fake_connection.replies[StoreMethod.GET_UPGRADABLE] = [[]]

        assert run_cli("update", "org.missing") == 1
        assert fake_connection.called(StoreMethod.UPGRADE_PACKAGES) == []

    def test_update_failure(self, run_cli, fake_connection, capsys):
        fake_connection.replies[StoreMethod.GET_UPGRADABLE] = [[field_map(packageName="org.a")]]
        fake_connection.replies[StoreMethod.UPGRADE_PACKAGES] = [False]

        assert run_cli("update") == 1
        assert "Error: Failed to upgrade packages" in capsys.readouterr().err

    def test_remove_repo(self, run_cli, fake_connection):
        fake_connection.replies[StoreMethod.GET_REPOSITORIES] = [[
            ["IzzyOnDroid", "https://apt.izzysoft.de/fdroid/repo"],
        ]]
        fake_connection.replies[StoreMethod.REMOVE_REPOSITORY] = [True]

        assert run_cli("remove-repo", "IzzyOnDroid") == 0
        assert fake_connection.called(StoreMethod.REMOVE_REPOSITORY) == [["IzzyOnDroid"]]


class TestConnectionFailure:
    """Tests for an unreachable store service."""

    def test_setup_failure(self, launcher, capsys):
        from android_store.plugin import AndroidStorePlugin
        from android_store.cli import main
        from common.exceptions import StoreConnectionError

        async def refuse(config):
            raise StoreConnectionError(config.bus_name, "no session bus")

        def factory(config):
            return AndroidStorePlugin(config, connector=refuse, launcher=launcher)

        with patch("android_store.cli.AndroidStorePlugin", side_effect=factory):
            assert main(["installed"]) == 1
        assert "no session bus" in capsys.readouterr().err

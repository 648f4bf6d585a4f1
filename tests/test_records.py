"""
Tests for reply decoding.
"""

import json

import pytest
from dbus_fast import Variant

from conftest import field_map, search_app, search_reply


class TestBooleanReplies:
    """Tests for (b) replies."""

    def test_true_and_false(self):
        from android_store.records import decode_boolean

        assert decode_boolean("UpdateCache", [True]) is True
        assert decode_boolean("UpdateCache", [False]) is False

    def test_empty_body_rejected(self):
        from android_store.records import decode_boolean
        from common.exceptions import DecodeError

        with pytest.raises(DecodeError):
            decode_boolean("UpdateCache", [])

    def test_wrong_type_rejected(self):
        from android_store.records import decode_boolean
        from common.exceptions import DecodeError

        with pytest.raises(DecodeError) as exc_info:
            decode_boolean("UpgradePackages", ["yes"])
        assert exc_info.value.details["method"] == "UpgradePackages"


class TestRepositoryReplies:
    """Tests for GetRepositories."""

    def test_decode_pairs(self):
        from android_store.records import decode_repositories

        records = decode_repositories([[
            ["F-Droid", "https://f-droid.org/repo"],
            ["IzzyOnDroid", "https://apt.izzysoft.de/fdroid/repo"],
        ]])

        assert [r.name for r in records] == ["F-Droid", "IzzyOnDroid"]
        assert records[1].url == "https://apt.izzysoft.de/fdroid/repo"

    def test_empty_list(self):
        from android_store.records import decode_repositories

        assert decode_repositories([[]]) == []

    def test_malformed_pair(self):
        from android_store.records import decode_repositories
        from common.exceptions import DecodeError

        with pytest.raises(DecodeError):
            decode_repositories([[["only-a-name"]]])


class TestFieldMapReplies:
    """Tests for aa{sv} replies."""

    def test_variants_unwrapped(self):
        from android_store.records import InstalledRecord, decode_field_maps

        records = decode_field_maps("GetInstalledApps", [[
            field_map(packageName="org.fdroid.fdroid", name="F-Droid", id="org.fdroid.fdroid"),
        ]], InstalledRecord)

        assert len(records) == 1
        assert records[0].package_name == "org.fdroid.fdroid"
        assert records[0].name == "F-Droid"

    def test_missing_fields_are_none(self):
        from android_store.records import InstalledRecord, decode_field_maps

        records = decode_field_maps(
            "GetInstalledApps", [[field_map(name="Orphan")]], InstalledRecord
        )

        assert records[0].package_name is None
        assert records[0].id is None

    def test_unknown_keys_ignored(self):
        from android_store.records import UpgradableRecord, decode_field_maps

        entry = field_map(
            packageName="org.a", currentVersion="1", availableVersion="2",
            somethingNew="x",
        )
        records = decode_field_maps("GetUpgradable", [[entry]], UpgradableRecord)

        assert records[0].current_version == "1"
        assert records[0].available_version == "2"

    def test_badly_typed_entry_skipped(self, caplog):
        from android_store.records import InstalledRecord, decode_field_maps

        good = field_map(packageName="org.good")
        bad = {"packageName": Variant("i", 42)}
        records = decode_field_maps("GetInstalledApps", [[bad, good]], InstalledRecord)

        assert [r.package_name for r in records] == ["org.good"]
        assert "Skipping malformed GetInstalledApps entry 0" in caplog.text

    def test_not_an_array(self):
        from android_store.records import InstalledRecord, decode_field_maps
        from common.exceptions import DecodeError

        with pytest.raises(DecodeError):
            decode_field_maps("GetInstalledApps", ["oops"], InstalledRecord)


class TestSearchReplies:
    """Tests for the Search JSON document."""

    def test_decode_full_entry(self):
        from android_store.records import decode_search

        records = decode_search(search_reply(search_app("org.fdroid.fdroid", "F-Droid")))

        assert len(records) == 1
        record = records[0]
        assert record.id == "org.fdroid.fdroid"
        assert record.author == "F-Droid"
        assert record.package.version == "1.0"

    def test_null_descriptive_fields(self):
        from android_store.records import decode_search

        app = search_app("org.a", "A", summary=None, license=None, package=None)
        record = decode_search(search_reply(app))[0]

        assert record.summary is None
        assert record.license is None
        assert record.package is None

    def test_package_object_optional(self):
        from android_store.records import decode_search

        app = search_app("org.a", "A")
        del app["package"]

        assert decode_search(search_reply(app))[0].package is None

    def test_empty_array(self):
        from android_store.records import decode_search

        assert decode_search(["[]"]) == []

    @pytest.mark.parametrize("payload", [
        "not json",
        json.dumps({"id": "org.a"}),
        json.dumps([{"id": "org.a", "name": "A"}]),
        json.dumps([{"id": 5, "name": "A", "summary": None, "description": None,
                     "license": None, "author": None, "web_url": None,
                     "repository": None}]),
    ])
    def test_invalid_documents(self, payload):
        from android_store.records import decode_search
        from common.exceptions import DecodeError

        with pytest.raises(DecodeError) as exc_info:
            decode_search([payload])
        assert exc_info.value.details["method"] == "Search"


class TestPackageInfo:
    """Tests for embedded package documents."""

    def test_decode(self):
        from android_store.records import decode_package_info

        info = decode_package_info(json.dumps({
            "version": "2.0", "icon_url": "https://x/icon.png", "size": 1024,
        }))
        assert info.version == "2.0"
        assert info.icon_url == "https://x/icon.png"

    @pytest.mark.parametrize("payload", [None, "", "{broken", "[1, 2]"])
    def test_unreadable_is_none(self, payload):
        from android_store.records import decode_package_info

        assert decode_package_info(payload) is None

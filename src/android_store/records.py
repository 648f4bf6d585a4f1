"""
Reply Records

Fixed schemas for the store service's replies. Field-map replies
(``aa{sv}``) and the search document (a JSON array) are both decoded
with msgspec; absent optional fields become None.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional, Sequence, Type, TypeVar

import msgspec
from dbus_fast import Variant

from common.exceptions import DecodeError

logger = logging.getLogger(__name__)


class InstalledRecord(msgspec.Struct, rename="camel"):
    """One entry of GetInstalledApps."""
    package_name: Optional[str] = None
    name: Optional[str] = None
    id: Optional[str] = None


class UpgradableRecord(msgspec.Struct, rename="camel"):
    """One entry of GetUpgradable; ``package`` is an embedded JSON document."""
    package_name: Optional[str] = None
    name: Optional[str] = None
    id: Optional[str] = None
    current_version: Optional[str] = None
    available_version: Optional[str] = None
    repository: Optional[str] = None
    package: Optional[str] = None


class PackageInfo(msgspec.Struct):
    """Package details nested in search results and upgradable entries."""
    version: Optional[str] = None
    icon_url: Optional[str] = None


class SearchRecord(msgspec.Struct):
    """One element of the Search reply document."""
    id: str
    name: str
    summary: Optional[str]
    description: Optional[str]
    license: Optional[str]
    author: Optional[str]
    web_url: Optional[str]
    repository: Optional[str]
    package: Optional[PackageInfo] = None


class RepositoryRecord(msgspec.Struct, array_like=True):
    """One ``(ss)`` entry of GetRepositories."""
    name: str
    url: str


FieldMapRecord = TypeVar("FieldMapRecord", InstalledRecord, UpgradableRecord)


def _first(method: str, body: Sequence[Any]) -> Any:
    if not body:
        raise DecodeError(method, "empty reply")
    return body[0]


def _unwrap_variants(entry: Dict[str, Any]) -> Dict[str, Any]:
    return {
        key: value.value if isinstance(value, Variant) else value
        for key, value in entry.items()
    }


def decode_boolean(method: str, body: Sequence[Any]) -> bool:
    """Decode a ``(b)`` reply."""
    value = _first(method, body)
    if not isinstance(value, bool):
        raise DecodeError(method, f"expected boolean, got {type(value).__name__}")
    return value


def decode_repositories(body: Sequence[Any]) -> List[RepositoryRecord]:
    """Decode an ``(a(ss))`` GetRepositories reply."""
    try:
        return msgspec.convert(_first("GetRepositories", body), type=List[RepositoryRecord])
    except msgspec.ValidationError as e:
        raise DecodeError("GetRepositories", str(e), cause=e) from e


def decode_field_maps(
    method: str,
    body: Sequence[Any],
    record_type: Type[FieldMapRecord],
) -> List[FieldMapRecord]:
    """
    Decode an ``(aa{sv})`` reply into records.

    Entries whose values have the wrong type are skipped; an entry is
    never partially decoded.

    Raises:
        DecodeError: If the reply is not a sequence of maps
    """
    entries = _first(method, body)
    if not isinstance(entries, (list, tuple)):
        raise DecodeError(method, f"expected array of maps, got {type(entries).__name__}")

    records = []
    for index, entry in enumerate(entries):
        if not isinstance(entry, dict):
            raise DecodeError(method, f"entry {index} is not a map")
        try:
            records.append(msgspec.convert(_unwrap_variants(entry), type=record_type))
        except msgspec.ValidationError as e:
            logger.warning(f"Skipping malformed {method} entry {index}: {e}")
    return records


def decode_search(body: Sequence[Any]) -> List[SearchRecord]:
    """
    Decode a ``(s)`` Search reply holding a JSON array of apps.

    Raises:
        DecodeError: If the document is not valid JSON, its root is not
            an array, or an element does not match the schema
    """
    payload = _first("Search", body)
    if not isinstance(payload, (str, bytes)):
        raise DecodeError("Search", f"expected string, got {type(payload).__name__}")
    try:
        return msgspec.json.decode(payload, type=List[SearchRecord])
    except msgspec.DecodeError as e:
        raise DecodeError("Search", str(e), cause=e) from e


def decode_package_info(payload: Optional[str]) -> Optional[PackageInfo]:
    """Decode an embedded package document, None if absent or unreadable."""
    if not payload:
        return None
    try:
        return msgspec.json.decode(payload, type=PackageInfo)
    except msgspec.DecodeError as e:
        logger.debug(f"Ignoring unreadable package document: {e}")
        return None

"""
Store Service Connection

Owns the D-Bus connection to the Android store service and turns
method calls into bus messages.
"""

from __future__ import annotations

import logging
from enum import Enum
from typing import Any, List, Sequence

from dbus_fast import BusType, Message, MessageType
from dbus_fast.aio import MessageBus
from dbus_fast.errors import AuthError, DBusError, InvalidAddressError

from common.exceptions import RemoteCallError, StoreConnectionError

from .config import StoreConfig

logger = logging.getLogger(__name__)


class StoreMethod(Enum):
    """Methods exported by the store service, with their input signature."""
    UPDATE_CACHE = ("UpdateCache", "")
    GET_REPOSITORIES = ("GetRepositories", "")
    GET_INSTALLED_APPS = ("GetInstalledApps", "")
    GET_UPGRADABLE = ("GetUpgradable", "")
    SEARCH = ("Search", "s")
    INSTALL = ("Install", "s")
    UNINSTALL_APP = ("UninstallApp", "s")
    REMOVE_REPOSITORY = ("RemoveRepository", "s")
    UPGRADE_PACKAGES = ("UpgradePackages", "as")

    def __init__(self, member: str, signature: str):
        self.member = member
        self.signature = signature


class StoreConnection:
    """
    One logical connection to the store service.

    Instances are never reconnected in place: the plugin opens a new
    connection and drops the old one.
    """

    def __init__(self, bus: MessageBus, config: StoreConfig):
        self._bus = bus
        self.config = config

    @classmethod
    async def open(cls, config: StoreConfig) -> "StoreConnection":
        """
        Connect to the configured message bus.

        Raises:
            StoreConnectionError: If the bus cannot be reached
        """
        bus_type = BusType.SYSTEM if config.bus_type == "system" else BusType.SESSION
        try:
            bus = await MessageBus(bus_type=bus_type).connect()
        except (OSError, AuthError, InvalidAddressError) as e:
            raise StoreConnectionError(config.bus_name, str(e), cause=e) from e

        logger.info(
            f"Connected to {config.bus_type} bus for {config.bus_name}{config.object_path}"
        )
        return cls(bus, config)

    @property
    def is_connected(self) -> bool:
        return self._bus is not None and self._bus.connected

    async def call(self, method: StoreMethod, args: Sequence[Any] = ()) -> List[Any]:
        """
        Call a store method and wait for its reply.

        Returns:
            The reply body

        Raises:
            StoreConnectionError: If the connection was closed or dropped
            RemoteCallError: If the service answered with an error
        """
        if not self.is_connected:
            raise StoreConnectionError(self.config.bus_name, "connection closed")

        message = Message(
            destination=self.config.bus_name,
            path=self.config.object_path,
            interface=self.config.interface,
            member=method.member,
            signature=method.signature,
            body=list(args),
        )
        try:
            reply = await self._bus.call(message)
        except (OSError, EOFError, DBusError) as e:
            raise StoreConnectionError(
                self.config.bus_name, f"{method.member} failed: {e!r}", cause=e
            ) from e

        if reply is None:
            raise RemoteCallError(method.member, "org.freedesktop.DBus.Error.NoReply", "")
        if reply.message_type == MessageType.ERROR:
            raise self._unwrap_error(method, reply)
        return reply.body

    @staticmethod
    def _unwrap_error(method: StoreMethod, reply: Message) -> RemoteCallError:
        text = ""
        if reply.body and isinstance(reply.body[0], str):
            text = reply.body[0]
        return RemoteCallError(method.member, reply.error_name or "", text)

    def disconnect(self) -> None:
        """Close the bus connection."""
        if self._bus is not None:
            self._bus.disconnect()
            self._bus = None
            logger.info(f"Disconnected from {self.config.bus_name}")

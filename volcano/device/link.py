"""
Device Link - The transport boundary to the appliance.

A DeviceLink moves bytes to and from characteristics. Discovery, pairing
and reconnection belong to the concrete transport; the coordinator only
sees writes, reads and two callbacks.
"""

from __future__ import annotations
from abc import ABC, abstractmethod
from typing import Callable

from .protocol import DeviceCommandId


NotifyHandler = Callable[[DeviceCommandId, bytes], None]
ConnectionHandler = Callable[[bool], None]


class DeviceLinkError(Exception):
    """Raised by a transport when a write or read cannot be issued."""


class DeviceLink(ABC):
    """
    Abstract transport to one appliance.

    Writes are fire-and-forget: implementations must not block waiting for
    an acknowledgment. Failures to issue a write raise DeviceLinkError.
    """

    @property
    @abstractmethod
    def connected(self) -> bool:
        pass

    @abstractmethod
    def supports(self, command: DeviceCommandId) -> bool:
        """Whether the appliance exposes this characteristic."""
        pass

    @abstractmethod
    def write(self, command: DeviceCommandId, payload: bytes) -> None:
        pass

    @abstractmethod
    def read(self, command: DeviceCommandId) -> None:
        """
        Request a value.

        The result arrives through the notify handler, like a push update.
        """
        pass

    @abstractmethod
    def set_notify_handler(self, handler: NotifyHandler | None) -> None:
        pass

    @abstractmethod
    def set_connection_handler(self, handler: ConnectionHandler | None) -> None:
        pass

    def get_name(self) -> str:
        return self.__class__.__name__

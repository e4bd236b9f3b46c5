"""Data types shared across the remote."""

from dataclasses import dataclass, field
from typing import List, Optional

UNKNOWN_DEVICE_NAME = "Unknown Device"


@dataclass
class Device:
    """A Roku device on the LAN. Identity is the address."""
    address: str
    name: str = UNKNOWN_DEVICE_NAME

    def label(self) -> str:
        return f"{self.name} ({self.address})"


@dataclass
class AppEntry:
    """An installed app with the shortcut key assigned for one catalog fetch."""
    id: str
    name: str
    key: str


@dataclass
class Session:
    """
    State for one run: the known devices and the selected one.

    The selected device, when set, is always one of ``devices`` (matched by
    address); ``select`` and ``replace_devices`` keep that true.
    """
    devices: List[Device] = field(default_factory=list)
    selected: Optional[Device] = None

    def find(self, address: str) -> Optional[Device]:
        for device in self.devices:
            if device.address == address:
                return device
        return None

    def select(self, device: Optional[Device]) -> None:
        if device is None:
            self.selected = None
            return
        known = self.find(device.address)
        if known is None:
            self.devices.append(device)
            known = device
        self.selected = known

    def clear_selection(self) -> None:
        self.selected = None

    def replace_devices(self, devices: List[Device]) -> None:
        """Swap in a fresh device list, keeping the selection only if it is still present."""
        self.devices = list(devices)
        if self.selected is not None:
            self.selected = self.find(self.selected.address)

    @property
    def selected_address(self) -> Optional[str]:
        return self.selected.address if self.selected else None


@dataclass(frozen=True)
class Subnet:
    """An IPv4 network in CIDR form, derived from the local interface."""
    network: str
    prefix_length: int

    def __str__(self) -> str:
        return f"{self.network}/{self.prefix_length}"

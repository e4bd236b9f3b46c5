"""Persisted list of known devices and the selected one."""

import logging
import os
from typing import List, Optional, Tuple

from .config import SELECTED_MARKER, get_registry_path
from .models import Device, Session

logger = logging.getLogger(__name__)


class DeviceRegistry:
    """
    Tab-separated registry file, one device per line::

        address<TAB>name<TAB>marker

    The marker column is ``*`` for the selected device and empty otherwise.
    """

    def __init__(self, path: Optional[str] = None):
        self.path = path or get_registry_path()

    def exists(self) -> bool:
        return os.path.exists(self.path)

    def load(self) -> Tuple[List[Device], Optional[Device]]:
        """Read devices and the selected one. A missing file is an empty registry."""
        devices: List[Device] = []
        selected = None

        if not self.exists():
            return devices, selected

        with open(self.path, encoding='utf-8') as f:
            for line in f:
                fields = [part.strip() for part in line.rstrip('\n').split('\t')]
                if not fields or not fields[0]:
                    continue
                address = fields[0]
                name = fields[1] if len(fields) > 1 else ""
                marker = fields[2] if len(fields) > 2 else ""

                device = Device(address=address, name=name)
                devices.append(device)
                # Several marked lines: the last one read wins.
                if marker == SELECTED_MARKER:
                    selected = device

        logger.debug("Loaded %d device(s) from %s", len(devices), self.path)
        return devices, selected

    def save(self, devices: List[Device], selected_address: Optional[str]) -> None:
        """Rewrite the whole file; the marker goes on every line whose address is selected_address."""
        os.makedirs(os.path.dirname(self.path) or '.', exist_ok=True)
        seen = set()
        with open(self.path, 'w', encoding='utf-8') as f:
            for device in devices:
                if device.address in seen:
                    continue
                seen.add(device.address)
                marker = SELECTED_MARKER if device.address == selected_address else ""
                f.write(f"{device.address}\t{device.name}\t{marker}\n")
        logger.debug("Saved %d device(s) to %s", len(devices), self.path)

    def load_session(self) -> Session:
        devices, selected = self.load()
        return Session(devices=devices, selected=selected)

    def save_session(self, session: Session) -> None:
        self.save(session.devices, session.selected_address)

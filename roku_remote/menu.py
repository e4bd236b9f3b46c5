"""Interactive menus: device selection, app catalog and the help screen."""

import logging
from typing import Awaitable, Callable, List, Optional

from .apps import build_catalog, find_app
from .control import ControlClient, ControlError
from .models import AppEntry, Device, Session
from .registry import DeviceRegistry
from .utils import format_columns

logger = logging.getLogger(__name__)

ScanFunc = Callable[[], Awaitable[List[Device]]]
ClientFactory = Callable[[str], ControlClient]

HELP_LINES = [
    "Arrow Keys: Navigate, Space: Play/Pause",
    "'e' or Enter: Select, '.': Long Press Select",
    "'p': Power, '[': Power On, ']': Power Off",
    "'+': Volume Up, '-': Volume Down, 'm': Mute",
    "'r': Rewind, 'f': Fast Forward, 'i': Instant Replay",
    "'h': Home, 'b' or Backspace: Back, 'o': Options/Info",
    "'t': Send Text Input, 's': Send String of Text",
    "'a': List Apps, 'd': Select Device, 'l': Locate Remote",
    "'x' or 'Esc': Exit Remote Control, '/': Clear Screen",
]


def render_help(session: Session, shortcuts: Optional[dict] = None) -> None:
    """Print the remote's key reference."""
    print()
    print("📺 Roku Remote Control")
    print("-" * 22)
    if session.selected:
        print(f"Device Selected: {session.selected.label()}")
    else:
        print("⚠️  No device selected")
    for line in HELP_LINES:
        print(line)
    if shortcuts:
        apps = ", ".join(f"'{key}': {label}" for key, (_, label) in shortcuts.items())
        print(f"Apps: {apps}")
    print()


def _print_device_list(devices: List[Device]) -> int:
    print("Select Roku Device: ('R' to Rescan Devices)")
    for i, device in enumerate(devices, 1):
        print(f"{i}. {device.label()}")
    rescan_index = len(devices) + 1
    print(f"{rescan_index}. Rescan devices")
    print()
    return rescan_index


async def select_device(session: Session, registry: DeviceRegistry,
                        client_factory: ClientFactory, scan: ScanFunc,
                        input_func=input) -> Optional[Device]:
    """
    Let the user pick a device, rescanning on request.

    A device is only committed to the session, and the registry saved, once
    it has answered a reachability check. Returns the chosen device, or None
    when nothing was selected.
    """
    if not registry.exists():
        print(f"{registry.path} file not found. Creating {registry.path}...")
        devices = await scan()
        if not devices:
            return None
        session.replace_devices(devices)
        registry.save_session(session)
    else:
        devices, _ = registry.load()
        session.replace_devices(devices)

    if not session.devices:
        print("❌ No devices found. Please rescan.")
        return None

    while True:
        rescan_index = _print_device_list(session.devices)

        try:
            choice = input_func("Device selection: ").strip().upper()
        except (EOFError, KeyboardInterrupt):
            print()
            return None

        if choice in (str(rescan_index), 'R', '0'):
            print("🔍 Rescanning for Roku devices...")
            devices = await scan()
            if not devices:
                print("❌ No devices found after rescanning.")
                return None
            session.replace_devices(devices)
            registry.save_session(session)
            continue

        if not choice.isdecimal() or not 1 <= int(choice) <= len(session.devices):
            print("   Invalid selection. Try again.")
            continue

        candidate = session.devices[int(choice) - 1]
        if not await client_factory(candidate.address).is_reachable():
            print(f"❌ The selected device ({candidate.address}) is not reachable.")
            print("   Please select a different device.")
            continue

        session.select(candidate)
        registry.save_session(session)
        print()
        print(f"✅ Selected: {candidate.label()}")
        return candidate


async def ensure_device(session: Session, registry: DeviceRegistry,
                        client_factory: ClientFactory, scan: ScanFunc,
                        input_func=input) -> bool:
    """Startup check: keep the persisted selection only if it answers, else ask for one."""
    if session.selected:
        address = session.selected.address
        if await client_factory(address).is_reachable():
            print(f"✅ The selected device ({address}) is reachable.")
        else:
            print(f"⚠️  The selected device ({address}) is not reachable.")
            session.clear_selection()

    if not session.selected:
        print("No device selected or device is unreachable. Please select a device.")
        device = await select_device(session, registry, client_factory, scan, input_func)
        if device is None:
            session.clear_selection()
            print("❌ No device selected.")
            print("Exiting remote control.")
            return False

    return True


async def apps_menu(session: Session, client: ControlClient,
                    input_func=input) -> Optional[AppEntry]:
    """Show the installed apps with their shortcut keys and launch the chosen one."""
    device = session.selected
    if device is None:
        print("❌ No device selected. Please select a device first.")
        return None

    try:
        xml = await client.query_apps()
    except ControlError as e:
        logger.warning("App list fetch failed: %s", e)
        print(f"❌ Failed to retrieve apps from {device.address}.")
        return None

    entries = build_catalog(xml)
    if not entries:
        print(f"No apps found on {device.address}.")
        return None

    print(f"{len(entries)} Available Apps:")
    for line in format_columns([f"{e.key}: {e.name}" for e in entries]):
        print(line)
    print()

    while True:
        try:
            choice = input_func("Enter the key of the app to launch or type 'q' to return: ")
        except (EOFError, KeyboardInterrupt):
            print()
            return None
        choice = choice.strip().upper()
        print()

        if choice in ('Q', ''):
            return None

        entry = find_app(entries, choice)
        if entry is None:
            print("   Invalid app selection. Please try again.")
            continue

        print(f"🚀 Launching {entry.name} on {device.label()}...")
        await client.launch(entry.id)
        print(f"✅ {entry.name} launched.")
        return entry

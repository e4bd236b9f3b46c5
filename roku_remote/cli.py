"""Command-line interface for the Roku remote."""

import argparse
import asyncio
import ipaddress
import logging

import aiohttp

from .config import (REACHABILITY_TIMEOUT, REQUEST_TIMEOUT, get_app_shortcuts,
                     load_settings, setup_logging)
from .control import ControlClient
from .discovery import scan_devices
from .menu import apps_menu, ensure_device, select_device
from .models import Device
from .registry import DeviceRegistry
from .remote import Remote
from .terminal import Terminal

logger = logging.getLogger(__name__)


def make_client_factory(http: aiohttp.ClientSession, settings: dict):
    timeout = float(settings.get('request_timeout') or REQUEST_TIMEOUT)
    reachability_timeout = float(settings.get('reachability_timeout') or REACHABILITY_TIMEOUT)

    def factory(address: str) -> ControlClient:
        return ControlClient(address, timeout=timeout,
                             reachability_timeout=reachability_timeout, session=http)

    return factory


def make_scanner(client_factory, settings: dict):
    async def scan():
        return await scan_devices(
            client_factory=client_factory,
            use_nmap=bool(settings.get('use_nmap', True)),
            use_ssdp=bool(settings.get('use_ssdp', True)),
        )

    return scan


def show_status(registry: DeviceRegistry):
    """Show current device status."""
    session = registry.load_session()

    if session.selected:
        print(f"📺 Current device: {session.selected.name}")
        print(f"   IP: {session.selected.address}")
    else:
        print("⚠️  No device selected")
        print("   Use --scan to find devices, then --device IP to select one")

    print(f"\n📁 Registry: {registry.path} ({len(session.devices)} device(s))")


def list_devices_cli(registry: DeviceRegistry):
    """List all known devices."""
    session = registry.load_session()

    if not session.devices:
        print("⚠️  No devices discovered yet")
        print("   Use --scan to find Roku devices on the network")
        return

    print("📺 Known devices:\n")
    for dev in session.devices:
        current = " ← selected" if dev.address == session.selected_address else ""
        print(f"   {dev.address:15}  {dev.name}{current}")


async def scan_devices_cli(registry: DeviceRegistry, scan):
    """Scan and persist the result, keeping the selection if it is still present."""
    devices = await scan()
    if not devices:
        print("   Make sure your Roku is on and connected to the same network")
        return

    session = registry.load_session()
    session.replace_devices(devices)
    registry.save_session(session)
    print("💡 Use --device IP to select a device")


def set_device_by_ip(registry: DeviceRegistry, ip: str):
    """Set the current device by IP address."""
    try:
        ip = str(ipaddress.IPv4Address(ip.strip()))
    except ValueError:
        print(f"❌ Invalid IPv4 address: {ip!r}")
        return

    session = registry.load_session()
    device = session.find(ip) or Device(address=ip, name=f"Roku ({ip})")
    session.select(device)
    registry.save_session(session)
    print(f"✅ Selected: {device.label()}")


def forget_device(registry: DeviceRegistry):
    """Clear the selected device, keeping the known list."""
    session = registry.load_session()
    session.clear_selection()
    registry.save_session(session)
    print("🔌 Device forgotten")


async def one_shot(registry: DeviceRegistry, client_factory, args) -> None:
    """Run --key/--launch/--text/--apps against the selected device."""
    session = registry.load_session()
    if not session.selected:
        print("❌ No device selected. Use --scan and --device IP to set one.")
        return

    client = client_factory(session.selected.address)
    if args.key:
        ok = await client.keypress(args.key)
        print(f"{'✅' if ok else '❌'} Key {args.key} → {session.selected.label()}")
    if args.launch:
        ok = await client.launch(args.launch)
        print(f"{'✅' if ok else '❌'} Launch {args.launch} → {session.selected.label()}")
    if args.text is not None:
        sent = await client.send_text(args.text)
        print(f"✅ Text '{args.text}' sent to {session.selected.label()} ({sent}/{len(args.text)} characters).")
    if args.apps:
        await apps_menu(session, client)


async def run_async(args, settings: dict) -> None:
    registry = DeviceRegistry()

    async with aiohttp.ClientSession() as http:
        client_factory = make_client_factory(http, settings)
        scan = make_scanner(client_factory, settings)

        if args.scan:
            await scan_devices_cli(registry, scan)
        elif args.select_device:
            session = registry.load_session()
            await select_device(session, registry, client_factory, scan)
        elif args.key or args.launch or args.text is not None or args.apps:
            await one_shot(registry, client_factory, args)
        else:
            session = registry.load_session()
            if not await ensure_device(session, registry, client_factory, scan):
                return
            remote = Remote(session, registry, client_factory, scan, Terminal(),
                            shortcuts=get_app_shortcuts(settings))
            await remote.run()


def run_cli(argv=None):
    """Run the command-line interface."""
    parser = argparse.ArgumentParser(
        description="Control a Roku from your terminal",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python -m roku_remote                  # Interactive remote
  python -m roku_remote --scan           # Scan network for Roku devices
  python -m roku_remote --device 192.168.1.50  # Set device by IP address
  python -m roku_remote --select-device  # Pick a device from the list
  python -m roku_remote --key Home       # Send one keypress
  python -m roku_remote --launch 12      # Launch an app by id
  python -m roku_remote --text "hello"   # Type text on the device
  python -m roku_remote --apps           # List apps and launch one
        """
    )

    # Device management
    parser.add_argument("--scan", action="store_true",
                        help="Scan network for Roku devices")
    parser.add_argument("--select-device", action="store_true",
                        help="Interactively select a device")
    parser.add_argument("--device", metavar="IP",
                        help="Set device by IP address")
    parser.add_argument("--list-devices", action="store_true",
                        help="List all known devices")
    parser.add_argument("--status", action="store_true",
                        help="Show current device")
    parser.add_argument("--forget", action="store_true",
                        help="Forget the selected device")

    # One-shot commands
    parser.add_argument("--apps", action="store_true",
                        help="List installed apps and launch one")
    parser.add_argument("--launch", metavar="APP_ID",
                        help="Launch an app by id")
    parser.add_argument("--key", metavar="NAME",
                        help="Send a keypress (Home, Select, Play, ...)")
    parser.add_argument("--text", metavar="STRING",
                        help="Type a string on the device")

    parser.add_argument("-v", "--verbose", action="store_true",
                        help="Log debug output to stderr")

    args = parser.parse_args(argv)

    setup_logging(args.verbose)
    settings = load_settings()
    registry = DeviceRegistry()

    # Handle commands in priority order
    if args.status:
        show_status(registry)
    elif args.list_devices:
        list_devices_cli(registry)
    elif args.device:
        set_device_by_ip(registry, args.device)
    elif args.forget:
        forget_device(registry)
    else:
        asyncio.run(run_async(args, settings))

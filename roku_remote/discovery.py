"""Roku discovery via port sweep, nmap and SSDP."""

import asyncio
import concurrent.futures
import logging
import re
import shutil
import subprocess
from typing import Callable, List, Optional
from urllib.parse import urlparse

from .config import ECP_PORT, PORT_PROBE_TIMEOUT, SSDP_SEARCH_TARGET, SSDP_TIMEOUT
from .control import ControlClient, ControlError
from .models import Device, Subnet, UNKNOWN_DEVICE_NAME
from .utils import SubnetError, check_port, get_local_subnet, subnet_hosts

logger = logging.getLogger(__name__)

_NAME_RE = re.compile(r'<user-device-name>(.*?)</user-device-name>', re.DOTALL)
_LOCATION_RE = re.compile(r'<user-device-location>(.*?)</user-device-location>', re.DOTALL)
_NMAP_HOST_RE = re.compile(r'^Host:\s+(\d{1,3}(?:\.\d{1,3}){3})\s')


def parse_device_info(xml: str) -> str:
    """Display name from a device-info document: 'name (location)', or the placeholder."""
    name_match = _NAME_RE.search(xml or '')
    name = name_match.group(1).strip() if name_match else ''
    if not name:
        return UNKNOWN_DEVICE_NAME

    location_match = _LOCATION_RE.search(xml)
    location = location_match.group(1).strip() if location_match else ''
    return f"{name} ({location})" if location else name


def parse_nmap_grepable(output: str, port: int = ECP_PORT) -> List[str]:
    """Addresses reported with the port open in ``nmap -oG -`` output, in output order."""
    addresses = []
    for line in output.splitlines():
        match = _NMAP_HOST_RE.match(line)
        if not match or f"{port}/open" not in line:
            continue
        ip = match.group(1)
        if ip not in addresses:
            addresses.append(ip)
    return addresses


def nmap_probe(subnet: Subnet, port: int = ECP_PORT) -> Optional[List[str]]:
    """Probe the subnet with nmap. Returns None when nmap is not installed or fails."""
    if not shutil.which("nmap"):
        return None
    try:
        result = subprocess.run(
            ["nmap", "-p", str(port), str(subnet), "--open", "-oG", "-"],
            capture_output=True, text=True, timeout=120, check=False)
    except (subprocess.TimeoutExpired, OSError) as e:
        logger.warning("nmap failed: %s", e)
        return None
    if result.returncode != 0:
        logger.warning("nmap exited with %s: %s", result.returncode, result.stderr.strip())
        return None
    return parse_nmap_grepable(result.stdout, port)


def sweep_probe(subnet: Subnet, port: int = ECP_PORT,
                timeout: float = PORT_PROBE_TIMEOUT) -> List[str]:
    """TCP-connect every host in the subnet; open addresses in ascending order."""
    hosts = subnet_hosts(subnet)
    open_hosts = set()

    with concurrent.futures.ThreadPoolExecutor(max_workers=64) as executor:
        futures = {executor.submit(check_port, ip, port, timeout): ip for ip in hosts}
        for future in concurrent.futures.as_completed(futures):
            if future.result():
                open_hosts.add(futures[future])

    return [ip for ip in hosts if ip in open_hosts]


def probe_subnet(subnet: Subnet, use_nmap: bool = True) -> List[str]:
    """Addresses answering on the control port, via nmap when available."""
    if use_nmap:
        found = nmap_probe(subnet)
        if found is not None:
            return found
        logger.debug("nmap unavailable, falling back to TCP sweep")
    return sweep_probe(subnet)


async def discover_ssdp_addresses(timeout: int = SSDP_TIMEOUT) -> List[str]:
    """Addresses of devices answering an SSDP search for roku:ecp."""
    from async_upnp_client.search import async_search

    addresses = []

    async def on_response(response):
        location = response.get('location', '')
        try:
            ip = urlparse(location).hostname
        except ValueError:
            return
        if ip and ip not in addresses:
            addresses.append(ip)

    try:
        await async_search(
            search_target=SSDP_SEARCH_TARGET,
            timeout=timeout,
            async_callback=on_response
        )
    except OSError as e:
        logger.warning("SSDP search failed: %s", e)

    return addresses


async def fetch_device_name(client: ControlClient) -> str:
    """Query device-info; any failure degrades to the placeholder name."""
    try:
        xml = await client.query_device_info()
    except ControlError as e:
        logger.debug("device-info from %s failed: %s", client.address, e)
        return UNKNOWN_DEVICE_NAME
    return parse_device_info(xml)


async def scan_devices(
    subnet: Optional[Subnet] = None,
    client_factory: Callable[[str], ControlClient] = ControlClient,
    probe: Optional[Callable[[Subnet], List[str]]] = None,
    use_nmap: bool = True,
    use_ssdp: bool = True,
) -> List[Device]:
    """
    Find Roku devices on the local subnet and name them.

    An empty list means nothing was found, or the subnet could not be
    resolved (reported to the user); it is never raised.
    """
    if subnet is None:
        try:
            subnet = get_local_subnet()
        except SubnetError as e:
            print(f"❌ Error: {e}")
            logger.error("Subnet resolution failed: %s", e)
            return []

    print(f"The subnet for this device in CIDR notation is: {subnet}.")
    print("🔍 Scanning for Roku devices on the network...")

    loop = asyncio.get_running_loop()
    if probe is None:
        addresses = await loop.run_in_executor(None, probe_subnet, subnet, use_nmap)
    else:
        addresses = await loop.run_in_executor(None, probe, subnet)
    addresses = list(addresses)

    if use_ssdp:
        for ip in await discover_ssdp_addresses():
            if ip not in addresses:
                addresses.append(ip)

    if not addresses:
        print("❌ No Roku devices found on the network.")
        return []

    devices = []
    for ip in addresses:
        name = await fetch_device_name(client_factory(ip))
        devices.append(Device(address=ip, name=name))
        print(f"   📺 {name} ({ip})")

    print(f"✅ Scan complete. Found {len(devices)} Roku device(s).")
    print()
    return devices

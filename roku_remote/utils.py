"""Utility functions."""

import ipaddress
import logging
import re
import socket
from typing import List, Tuple

import psutil

from .models import Subnet

logger = logging.getLogger(__name__)

_DOTTED_QUAD = re.compile(r'^\d+\.\d+\.\d+\.\d+$')


class SubnetError(ValueError):
    """The local address or netmask could not be turned into a subnet."""


def get_local_ip() -> str:
    """Get local IP address."""
    with socket.socket(socket.AF_INET, socket.SOCK_DGRAM) as s:
        try:
            s.connect(('8.8.8.8', 80))
            return s.getsockname()[0]
        except OSError:
            return '127.0.0.1'


def get_interface_address() -> Tuple[str, str]:
    """
    Return (address, netmask) of the first non-loopback IPv4 interface that is up.

    The interface carrying the default route is preferred when it can be found.
    """
    addrs = psutil.net_if_addrs()
    stats = psutil.net_if_stats()
    preferred = get_local_ip()

    candidates = []
    for ifname, entries in addrs.items():
        st = stats.get(ifname)
        if st is not None and not st.isup:
            continue
        for entry in entries:
            if entry.family != socket.AF_INET or not entry.address:
                continue
            if entry.address.startswith('127.') or not entry.netmask:
                continue
            candidates.append((entry.address, entry.netmask))

    if not candidates:
        raise SubnetError("Unable to retrieve IP address.")

    for address, mask in candidates:
        if address == preferred:
            return address, mask
    return candidates[0]


def normalize_netmask(mask: str) -> str:
    """Convert a packed hex mask (0xffffff00, as ifconfig prints on macOS) to dotted-decimal."""
    mask = mask.strip()
    if not mask.lower().startswith('0x'):
        return mask

    digits = mask[2:]
    if len(digits) != 8:
        raise SubnetError(f"Invalid hexadecimal subnet mask: {mask}")
    try:
        octets = [int(digits[i:i + 2], 16) for i in range(0, 8, 2)]
    except ValueError:
        raise SubnetError(f"Invalid hexadecimal subnet mask: {mask}") from None
    return '.'.join(str(o) for o in octets)


def parse_octets(value: str) -> List[int]:
    """Split a dotted quad into four octets, each in 0..255."""
    value = value.strip()
    if not _DOTTED_QUAD.match(value):
        raise SubnetError(f"Invalid format. Must be x.x.x.x: {value!r}")

    octets = [int(part) for part in value.split('.')]
    for octet in octets:
        if octet < 0 or octet > 255:
            raise SubnetError(f"Invalid octet value: {octet}")
    return octets


def prefix_length(mask_octets: List[int]) -> int:
    """Number of set bits in the 32-bit mask."""
    mask_int = 0
    for octet in mask_octets:
        mask_int = (mask_int << 8) | octet
    bits = bin(mask_int).count('1')
    if bits > 32:
        raise SubnetError("Invalid subnet mask (CIDR prefix out of range)")
    return bits


def resolve_subnet(address: str, mask: str) -> Subnet:
    """Network (address AND mask, octet-wise) and prefix length for an address/mask pair."""
    ip_octets = parse_octets(address)
    mask_octets = parse_octets(normalize_netmask(mask))

    network = '.'.join(str(a & m) for a, m in zip(ip_octets, mask_octets))
    return Subnet(network=network, prefix_length=prefix_length(mask_octets))


def get_local_subnet() -> Subnet:
    """Get the local subnet for scanning."""
    address, mask = get_interface_address()
    logger.debug("Local interface %s mask %s", address, mask)
    return resolve_subnet(address, mask)


def subnet_hosts(subnet: Subnet) -> List[str]:
    """Every host address in the subnet, in ascending order."""
    network = ipaddress.IPv4Network(str(subnet), strict=False)
    if network.prefixlen >= 31:
        return [str(ip) for ip in network]
    return [str(ip) for ip in network.hosts()]


def check_port(ip: str, port: int, timeout: float = 0.3) -> bool:
    """Check if a port is open on a host."""
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as sock:
        sock.settimeout(timeout)
        try:
            result = sock.connect_ex((ip, port))
            return result == 0
        except OSError:
            return False


def encode_literal(char: str) -> str:
    """Percent-encode every UTF-8 byte of a character, e.g. 'a' -> '%61'."""
    return ''.join(f'%{b:02X}' for b in char.encode('utf-8'))


def format_columns(entries: List[str], columns: int = 3, width: int = 40) -> List[str]:
    """Lay entries out column-major in fixed-width columns."""
    total = len(entries)
    rows = (total + columns - 1) // columns
    lines = []
    for i in range(rows):
        line = ''
        for j in range(columns):
            idx = i + j * rows
            if idx < total:
                line += f"{entries[idx]:<{width}}"
        lines.append(line.rstrip())
    return lines

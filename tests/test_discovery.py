from __future__ import annotations

import asyncio

from fakes import FakeNetwork

from roku_remote import discovery
from roku_remote.models import Device, Subnet, UNKNOWN_DEVICE_NAME
from roku_remote.utils import SubnetError

DEVICE_INFO = """<?xml version="1.0" encoding="UTF-8" ?>
<device-info>
\t<udn>29380007-0800-1025-80a4-d83134a3a4c2</udn>
\t<user-device-name>Living Room</user-device-name>
\t<user-device-location>Den</user-device-location>
\t<model-name>Roku Ultra</model-name>
</device-info>
"""

NMAP_OUTPUT = """# Nmap 7.94 scan initiated as: nmap -p 8060 192.168.1.0/24 --open -oG -
Host: 192.168.1.20 ()\tStatus: Up
Host: 192.168.1.20 ()\tPorts: 8060/open/tcp//unknown///
Host: 192.168.1.35 (roku.lan)\tStatus: Up
Host: 192.168.1.35 (roku.lan)\tPorts: 8060/open/tcp//unknown///
Host: 192.168.1.50 ()\tPorts: 8060/closed/tcp//unknown///
# Nmap done at Sat Oct 17 10:00:00 2026 -- 256 IP addresses (2 hosts up) scanned
"""

SUBNET = Subnet("192.168.1.0", 24)


def test_parse_device_info_combines_name_and_location():
    assert discovery.parse_device_info(DEVICE_INFO) == "Living Room (Den)"


def test_parse_device_info_without_location():
    xml = "<device-info><user-device-name>Bedroom</user-device-name></device-info>"
    assert discovery.parse_device_info(xml) == "Bedroom"


def test_parse_device_info_falls_back_to_placeholder():
    assert discovery.parse_device_info("") == UNKNOWN_DEVICE_NAME
    assert discovery.parse_device_info("<device-info><user-device-name></user-device-name>") == UNKNOWN_DEVICE_NAME
    assert discovery.parse_device_info("garbage") == UNKNOWN_DEVICE_NAME


def test_parse_nmap_grepable_keeps_open_hosts_in_order():
    assert discovery.parse_nmap_grepable(NMAP_OUTPUT) == ["192.168.1.20", "192.168.1.35"]


def test_nmap_probe_without_nmap(monkeypatch):
    monkeypatch.setattr(discovery.shutil, "which", lambda name: None)
    assert discovery.nmap_probe(SUBNET) is None


def test_probe_subnet_falls_back_to_sweep(monkeypatch):
    monkeypatch.setattr(discovery, "nmap_probe", lambda subnet: None)
    monkeypatch.setattr(discovery, "sweep_probe", lambda subnet: ["192.168.1.9"])
    assert discovery.probe_subnet(SUBNET) == ["192.168.1.9"]


def test_sweep_probe_returns_open_hosts_in_address_order(monkeypatch):
    open_hosts = {"192.168.1.3", "192.168.1.1"}
    monkeypatch.setattr(discovery, "check_port", lambda ip, port, timeout: ip in open_hosts)

    assert discovery.sweep_probe(Subnet("192.168.1.0", 29)) == ["192.168.1.1", "192.168.1.3"]


def test_scan_names_each_responder_in_order():
    network = FakeNetwork(device_info={"192.168.1.20": DEVICE_INFO})

    devices = asyncio.run(discovery.scan_devices(
        SUBNET, client_factory=network,
        probe=lambda subnet: ["192.168.1.35", "192.168.1.20"], use_ssdp=False))

    assert devices == [
        Device("192.168.1.35", UNKNOWN_DEVICE_NAME),
        Device("192.168.1.20", "Living Room (Den)"),
    ]


def test_scan_with_no_responders_is_empty_not_an_error(capsys):
    devices = asyncio.run(discovery.scan_devices(
        SUBNET, client_factory=FakeNetwork(), probe=lambda subnet: [], use_ssdp=False))

    assert devices == []
    assert "No Roku devices found" in capsys.readouterr().out


def test_scan_merges_ssdp_responders(monkeypatch):
    async def fake_ssdp(timeout=3):
        return ["192.168.1.20", "192.168.1.77"]

    monkeypatch.setattr(discovery, "discover_ssdp_addresses", fake_ssdp)

    devices = asyncio.run(discovery.scan_devices(
        SUBNET, client_factory=FakeNetwork(), probe=lambda subnet: ["192.168.1.20"]))

    assert [d.address for d in devices] == ["192.168.1.20", "192.168.1.77"]


def test_scan_aborts_gracefully_when_subnet_unknown(monkeypatch, capsys):
    def broken():
        raise SubnetError("Invalid octet value: 300")

    monkeypatch.setattr(discovery, "get_local_subnet", broken)

    devices = asyncio.run(discovery.scan_devices(
        client_factory=FakeNetwork(), probe=lambda subnet: ["192.168.1.20"], use_ssdp=False))

    assert devices == []
    assert "Invalid octet value" in capsys.readouterr().out

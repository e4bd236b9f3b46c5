from __future__ import annotations

import asyncio

import pytest
from fakes import FakeClient, FakeNetwork, FakeSource, FakeTerminal, ScriptedInput, make_scan

from roku_remote import remote
from roku_remote.models import Device, Session
from roku_remote.registry import DeviceRegistry
from roku_remote.remote import Action, InputDecoder
from roku_remote.terminal import DEL, ESC

DEN = Device("192.168.1.20", "Den")
BEDROOM = Device("192.168.1.21", "Bedroom")


def _decode(chars):
    decoder = InputDecoder(FakeSource(chars))
    return decoder, decoder.next_action()


def test_arrow_sequence_yields_one_direction():
    decoder, action = _decode([ESC, "[", "A"])
    assert action == Action(remote.KEY, "Up")
    assert decoder.state == InputDecoder.NORMAL


@pytest.mark.parametrize("final, key", [("A", "Up"), ("B", "Down"), ("C", "Right"), ("D", "Left")])
def test_all_arrows(final, key):
    assert _decode([ESC, "[", final])[1] == Action(remote.KEY, key)


def test_unknown_csi_final_is_ignored():
    decoder, action = _decode([ESC, "[", "Z", "h"])
    assert action is None
    assert decoder.state == InputDecoder.NORMAL
    assert decoder.next_action() == Action(remote.KEY, "Home")


def test_lone_escape_means_exit():
    decoder, action = _decode([ESC, None])
    assert action == Action(remote.EXIT)
    assert decoder.state == InputDecoder.NORMAL
    assert decoder.source.timeouts == [None, remote.ESCAPE_TIMEOUT]


def test_escape_followed_by_other_byte_is_ignored():
    decoder, action = _decode([ESC, "O", "e"])
    assert action is None
    assert decoder.state == InputDecoder.NORMAL
    assert decoder.next_action() == Action(remote.KEY, "Select")


@pytest.mark.parametrize("char, expected", [
    ("\n", Action(remote.KEY, "Select")),
    ("\r", Action(remote.KEY, "Select")),
    ("e", Action(remote.KEY, "Select")),
    (".", Action(remote.KEYDOWN, "Select")),
    (" ", Action(remote.KEY, "Play")),
    ("p", Action(remote.KEY, "Power")),
    ("[", Action(remote.KEY, "PowerOn")),
    ("]", Action(remote.KEY, "PowerOff")),
    ("+", Action(remote.KEY, "VolumeUp")),
    ("-", Action(remote.KEY, "VolumeDown")),
    ("m", Action(remote.KEY, "VolumeMute")),
    ("r", Action(remote.KEY, "Rev")),
    ("f", Action(remote.KEY, "Fwd")),
    ("i", Action(remote.KEY, "InstantReplay")),
    ("h", Action(remote.KEY, "Home")),
    ("b", Action(remote.KEY, "Back")),
    (DEL, Action(remote.KEY, "Back")),
    ("o", Action(remote.KEY, "Info")),
    ("l", Action(remote.KEY, "FindRemote")),
    ("a", Action(remote.APPS)),
    ("d", Action(remote.DEVICES)),
    ("s", Action(remote.STRING)),
    ("t", Action(remote.TEXT)),
    ("/", Action(remote.CLEAR)),
    ("x", Action(remote.EXIT)),
    ("q", Action(remote.EXIT)),
    ("1", Action(remote.LAUNCH, "13535")),
    ("y", Action(remote.LAUNCH, "837")),
    ("3", Action(remote.LAUNCH, "12")),
    ("Z", Action(remote.INVALID, "Z")),
])
def test_key_table(char, expected):
    assert _decode([char])[1] == expected


def test_custom_shortcuts_replace_defaults():
    decoder = InputDecoder(FakeSource(["7", "1"]), shortcuts={"7": ("2285", "Roku Channel")})
    assert decoder.next_action() == Action(remote.LAUNCH, "2285")
    assert decoder.next_action() == Action(remote.INVALID, "1")


def test_end_of_input_exits():
    assert _decode([])[1] == Action(remote.EXIT)


def test_text_entry_sends_literals_backspace_and_stops_at_escape():
    network = FakeNetwork()
    source = FakeSource(["a", "b", DEL, ESC, "[", "A", "c"])

    asyncio.run(remote.text_entry(source, network(DEN.address)))

    assert [v for _, _, v in network.log] == ["Lit_a", "Lit_b", "Backspace"]
    assert source.chars == []
    assert source.timeouts[-3:] == [remote.TEXT_FLUSH_TIMEOUT] * 3


def test_text_entry_enter_keys():
    network = FakeNetwork()

    asyncio.run(remote.text_entry(FakeSource(["\r", "\n", ESC, None]), network(DEN.address)))

    assert [v for _, _, v in network.log] == ["Enter", "Enter"]


def _remote(tmp_path, chars, answers=(), network=None, devices=(DEN, BEDROOM), selected=DEN):
    registry = DeviceRegistry(str(tmp_path / "devices.tsv"))
    registry.save(list(devices), selected.address if selected else None)
    session = registry.load_session()
    terminal = FakeTerminal(chars)
    network = network or FakeNetwork()
    rc = remote.Remote(session, registry, network, make_scan(), terminal,
                       input_func=ScriptedInput(list(answers)), pause=0)
    return rc, network, terminal, registry


def test_remote_dispatches_keys_until_exit(tmp_path):
    rc, network, terminal, _ = _remote(tmp_path, ["h", ESC, "[", "B", ".", "2", "x", "h"])

    asyncio.run(rc.run())

    assert network.log == [
        (DEN.address, "keypress", "Home"),
        (DEN.address, "keypress", "Down"),
        (DEN.address, "keydown", "Select"),
        (DEN.address, "launch", "837"),
    ]
    assert terminal.mode == "cooked"
    assert terminal.chars == ["h"]


def test_remote_exits_on_lone_escape(tmp_path, capsys):
    rc, network, terminal, _ = _remote(tmp_path, [ESC, None, "h"])

    asyncio.run(rc.run())

    assert network.log == []
    assert terminal.mode == "cooked"
    assert "Exiting remote control." in capsys.readouterr().out


def test_failed_sends_do_not_stop_the_loop(tmp_path):
    log = []
    rc, _, _, _ = _remote(tmp_path, ["h", "b", "q"])
    rc.client_factory = lambda address: FakeClient(address, log, fail_sends=True)

    asyncio.run(rc.run())

    assert [v for _, _, v in log] == ["Home", "Back"]


def test_remote_sends_string_in_order(tmp_path, capsys):
    rc, network, _, _ = _remote(tmp_path, ["s", "q"], answers=["hi!"])

    asyncio.run(rc.run())

    assert [v for _, _, v in network.log] == ["Lit_h", "Lit_i", "Lit_!"]
    assert "Text 'hi!' sent to Den (192.168.1.20)." in capsys.readouterr().out


def test_remote_text_mode_restores_cooked_terminal(tmp_path):
    rc, network, terminal, _ = _remote(tmp_path, ["t", "a", "b", DEL, ESC, None, "q"])

    asyncio.run(rc.run())

    assert [v for _, _, v in network.log] == ["Lit_a", "Lit_b", "Backspace"]
    assert terminal.mode == "cooked"


def test_remote_invalid_key_reports_and_continues(tmp_path, capsys):
    rc, network, _, _ = _remote(tmp_path, ["Z", "h", "q"])

    asyncio.run(rc.run())

    assert "Invalid command. Try again." in capsys.readouterr().out
    assert [v for _, _, v in network.log] == ["Home"]


def test_remote_switches_device(tmp_path, capsys):
    rc, network, _, registry = _remote(tmp_path, ["d", "h", "q"], answers=["2"])

    asyncio.run(rc.run())

    assert rc.session.selected == BEDROOM
    assert registry.load()[1] == BEDROOM
    assert network.sent("keypress") == [(BEDROOM.address, "keypress", "Home")]
    assert "Device switched to Bedroom (192.168.1.21)." in capsys.readouterr().out


def test_remote_keeps_previous_device_when_selection_cancelled(tmp_path, capsys):
    rc, network, _, registry = _remote(tmp_path, ["d", "h", "q"], answers=[])

    asyncio.run(rc.run())

    assert rc.session.selected == DEN
    assert network.sent("keypress") == [(DEN.address, "keypress", "Home")]
    assert "Continuing with previous device" in capsys.readouterr().out


def test_remote_opens_app_catalog(tmp_path):
    network = FakeNetwork(apps_xml='<apps><app id="12">Netflix</app></apps>')
    rc, _, _, _ = _remote(tmp_path, ["a", "q"], answers=["n"], network=network)

    asyncio.run(rc.run())

    assert network.sent("launch") == [(DEN.address, "launch", "12")]


def test_remote_without_device_skips_sends(tmp_path, capsys):
    rc, network, _, _ = _remote(tmp_path, ["h", "q"], selected=None)

    asyncio.run(rc.run())

    assert network.log == []
    assert "No device selected" in capsys.readouterr().out


def test_remote_stays_raw_while_sending_and_cooked_for_prompts(tmp_path):
    rc, network, terminal, _ = _remote(tmp_path, ["h", "s", "b", "q"])
    send_modes = []
    prompt_modes = []

    def factory(address):
        send_modes.append(terminal.mode)
        return network(address)

    def answer(prompt=""):
        prompt_modes.append(terminal.mode)
        return "ok"

    rc.client_factory = factory
    rc.input_func = answer

    asyncio.run(rc.run())

    assert terminal.raw_entries == 1
    assert set(send_modes) == {"raw"}
    assert prompt_modes == ["cooked"]
    assert [v for _, _, v in network.log] == ["Home", "Lit_o", "Lit_k", "Back"]
    assert terminal.mode == "cooked"

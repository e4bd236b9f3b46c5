"""Keystroke decoding and the interactive control loop."""

import asyncio
import logging
from typing import Dict, NamedTuple, Optional

from .config import DEFAULT_APP_SHORTCUTS, ESCAPE_TIMEOUT, TEXT_FLUSH_TIMEOUT
from .control import ControlClient
from .menu import ClientFactory, ScanFunc, apps_menu, render_help, select_device
from .models import Session
from .registry import DeviceRegistry
from .terminal import DEL, ESC

logger = logging.getLogger(__name__)

# Action kinds
KEY = 'key'
KEYDOWN = 'keydown'
LAUNCH = 'launch'
APPS = 'apps'
DEVICES = 'devices'
STRING = 'string'
TEXT = 'text'
CLEAR = 'clear'
EXIT = 'exit'
INVALID = 'invalid'


class Action(NamedTuple):
    kind: str
    value: str = ''


ARROWS = {'A': 'Up', 'B': 'Down', 'C': 'Right', 'D': 'Left'}

KEY_BINDINGS: Dict[str, Action] = {
    '\n': Action(KEY, 'Select'),
    '\r': Action(KEY, 'Select'),
    'e': Action(KEY, 'Select'),
    '.': Action(KEYDOWN, 'Select'),
    ' ': Action(KEY, 'Play'),
    '+': Action(KEY, 'VolumeUp'),
    '=': Action(KEY, 'VolumeUp'),
    '-': Action(KEY, 'VolumeDown'),
    '_': Action(KEY, 'VolumeDown'),
    'm': Action(KEY, 'VolumeMute'),
    'o': Action(KEY, 'Info'),
    'p': Action(KEY, 'Power'),
    '\\': Action(KEY, 'Power'),
    '[': Action(KEY, 'PowerOn'),
    ']': Action(KEY, 'PowerOff'),
    'r': Action(KEY, 'Rev'),
    'f': Action(KEY, 'Fwd'),
    'l': Action(KEY, 'FindRemote'),
    'i': Action(KEY, 'InstantReplay'),
    'h': Action(KEY, 'Home'),
    'b': Action(KEY, 'Back'),
    DEL: Action(KEY, 'Back'),
    'a': Action(APPS),
    'd': Action(DEVICES),
    's': Action(STRING),
    't': Action(TEXT),
    '/': Action(CLEAR),
    '?': Action(CLEAR),
    'x': Action(EXIT),
    'q': Action(EXIT),
}


class InputDecoder:
    """
    Turns single characters from a terminal into remote actions.

    States: NORMAL, ESCAPE_PENDING (an ESC was read and a follow-up is
    awaited for at most ``escape_timeout``) and CSI_PENDING (``ESC [`` was
    read and the final byte selects an arrow). A lone ESC means exit.

    ``source.read_char(timeout)`` returns a character, ``None`` on timeout
    and ``''`` at end of input.
    """

    NORMAL = 'normal'
    ESCAPE_PENDING = 'escape_pending'
    CSI_PENDING = 'csi_pending'

    def __init__(self, source, shortcuts: Optional[dict] = None,
                 escape_timeout: float = ESCAPE_TIMEOUT):
        self.source = source
        self.escape_timeout = escape_timeout
        self.state = self.NORMAL
        self.bindings = dict(KEY_BINDINGS)
        table = DEFAULT_APP_SHORTCUTS if shortcuts is None else shortcuts
        for key, (app_id, _) in table.items():
            self.bindings[key] = Action(LAUNCH, app_id)

    def next_action(self) -> Optional[Action]:
        """
        Consume input up to the next complete action.

        Returns None when the characters read amount to nothing (an ignored
        escape sequence); the decoder is back in NORMAL either way.
        """
        while True:
            if self.state == self.NORMAL:
                char = self.source.read_char()
                if char == '':
                    return Action(EXIT)
                if char == ESC:
                    self.state = self.ESCAPE_PENDING
                    continue
                return self.bindings.get(char, Action(INVALID, char))

            if self.state == self.ESCAPE_PENDING:
                char = self.source.read_char(timeout=self.escape_timeout)
                if char is None:
                    self.state = self.NORMAL
                    return Action(EXIT)
                if char == '[':
                    self.state = self.CSI_PENDING
                    continue
                self.state = self.NORMAL
                return None

            if self.state == self.CSI_PENDING:
                char = self.source.read_char()
                self.state = self.NORMAL
                if char in ARROWS:
                    return Action(KEY, ARROWS[char])
                return None


async def text_entry(source, client: ControlClient,
                     flush_timeout: float = TEXT_FLUSH_TIMEOUT) -> None:
    """
    Forward typed characters as literal keypresses until ESC.

    DEL sends Backspace, CR/LF send Enter. Up to three bytes following the
    ESC (the tail of an escape sequence) are discarded.
    """
    while True:
        char = source.read_char()
        if char == '':
            return
        if char == ESC:
            for _ in range(3):
                if source.read_char(timeout=flush_timeout) is None:
                    break
            return
        if char == DEL:
            await client.keypress("Backspace")
        elif char in ('\n', '\r'):
            await client.keypress("Enter")
        else:
            await client.send_literal(char)


class Remote:
    """The interactive control loop for the selected device."""

    def __init__(self, session: Session, registry: DeviceRegistry,
                 client_factory: ClientFactory, scan: ScanFunc, terminal,
                 shortcuts: Optional[dict] = None, input_func=input,
                 pause: float = 1.0):
        self.session = session
        self.registry = registry
        self.client_factory = client_factory
        self.scan = scan
        self.terminal = terminal
        self.shortcuts = DEFAULT_APP_SHORTCUTS if shortcuts is None else shortcuts
        self.input_func = input_func
        self.pause = pause
        self.decoder = InputDecoder(terminal, self.shortcuts)

    def _client(self) -> Optional[ControlClient]:
        if self.session.selected is None:
            print("⚠️  No device selected. Press 'd' to select a device.")
            return None
        return self.client_factory(self.session.selected.address)

    def show_help(self) -> None:
        self.terminal.clear()
        render_help(self.session, self.shortcuts)

    async def run(self) -> None:
        """
        Read and dispatch keys until the user exits.

        The terminal stays in raw mode while keys are read and sent, so keys
        typed during a slow request are not echoed. Prompts and menus run in
        cooked mode. The terminal is left in cooked mode.
        """
        self.show_help()
        try:
            with self.terminal.raw():
                while True:
                    action = self.decoder.next_action()
                    if action is None:
                        continue
                    if action.kind == EXIT:
                        print("👋 Exiting remote control.")
                        print()
                        return
                    await self.dispatch(action)
        finally:
            self.terminal.restore()

    async def dispatch(self, action: Action) -> None:
        logger.debug("Dispatching %s", action)

        if action.kind == INVALID:
            print("   Invalid command. Try again.")
        elif action.kind == CLEAR:
            self.show_help()
        elif action.kind == DEVICES:
            with self.terminal.cooked():
                await self.switch_device()
        elif action.kind in (KEY, KEYDOWN, LAUNCH):
            client = self._client()
            if client is None:
                return
            if action.kind == KEY:
                await client.keypress(action.value)
            elif action.kind == KEYDOWN:
                await client.keydown(action.value)
            else:
                await client.launch(action.value)
        elif action.kind == STRING:
            await self.send_string()
        elif action.kind == TEXT:
            await self.text_mode()
        elif action.kind == APPS:
            client = self._client()
            if client is None:
                return
            with self.terminal.cooked():
                entry = await apps_menu(self.session, client, self.input_func)
            if entry is not None:
                await asyncio.sleep(self.pause)
            self.show_help()

    async def send_string(self) -> None:
        client = self._client()
        if client is None:
            return
        try:
            with self.terminal.cooked():
                text = self.input_func("Enter string of text to send: ")
        except (EOFError, KeyboardInterrupt):
            print()
            return
        await client.send_text(text)
        print(f"✅ Text '{text}' sent to {self.session.selected.label()}.")

    async def text_mode(self) -> None:
        client = self._client()
        if client is None:
            return
        print("⌨️  Entering text mode. Press Esc to exit.")
        await text_entry(self.terminal, client)
        self.show_help()

    async def switch_device(self) -> None:
        previous = self.session.selected
        device = await select_device(self.session, self.registry, self.client_factory,
                                     self.scan, self.input_func)

        if device is None:
            if self.session.selected is None and previous is not None:
                self.session.select(previous)
            print("No device selected. Continuing with previous device.")
        elif not await self.client_factory(device.address).is_reachable():
            print(f"❌ The selected device ({device.address}) is not reachable.")
            self.session.clear_selection()
        else:
            print(f"✅ Device switched to {device.label()}.")
            self.registry.save_session(self.session)

        await asyncio.sleep(self.pause)
        self.show_help()

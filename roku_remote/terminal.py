"""Raw terminal input for the remote."""

import codecs
import logging
import os
import select
import sys
from contextlib import contextmanager
from typing import Optional

logger = logging.getLogger(__name__)

ESC = '\x1b'
DEL = '\x7f'

CLEAR_SCREEN = "\033[2J\033[H"


class Terminal:
    """
    Single-character reads from stdin in cbreak mode (no echo, no line buffering).

    ``read_char`` returns the next character, ``None`` when ``timeout`` elapses
    first, and ``''`` at end of input. Outside of ``raw()`` the terminal is in
    its normal cooked mode, so ``input()`` prompts work as usual.
    """

    def __init__(self, fd: Optional[int] = None):
        self.fd = sys.stdin.fileno() if fd is None else fd
        self.is_tty = os.isatty(self.fd)
        self._saved = None
        self._decoder = codecs.getincrementaldecoder('utf-8')(errors='replace')

    @contextmanager
    def raw(self):
        if not self.is_tty:
            yield self
            return

        import termios
        import tty

        self._saved = termios.tcgetattr(self.fd)
        try:
            tty.setcbreak(self.fd)
            yield self
        finally:
            self.restore()

    @contextmanager
    def cooked(self):
        """Leave raw mode for the duration of an input() prompt or menu, then re-enter it."""
        if self._saved is None:
            yield self
            return

        import termios
        import tty

        termios.tcsetattr(self.fd, termios.TCSADRAIN, self._saved)
        try:
            yield self
        finally:
            tty.setcbreak(self.fd)

    def restore(self) -> None:
        """Put the terminal back in the mode it had before raw()."""
        if self._saved is None:
            return

        import termios

        try:
            termios.tcsetattr(self.fd, termios.TCSADRAIN, self._saved)
        except termios.error as e:
            logger.warning("Could not restore terminal mode: %s", e)
        self._saved = None

    def read_char(self, timeout: Optional[float] = None) -> Optional[str]:
        while True:
            try:
                ready, _, _ = select.select([self.fd], [], [], timeout)
            except InterruptedError:
                continue
            if not ready:
                return None

            data = os.read(self.fd, 1)
            if not data:
                return ''
            char = self._decoder.decode(data)
            if char:
                return char
            # Partial multi-byte character: the rest follows immediately.
            timeout = None

    def clear(self) -> None:
        sys.stdout.write(CLEAR_SCREEN)
        sys.stdout.flush()

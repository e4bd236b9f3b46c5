"""Entry point for running as a module: python -m roku_remote"""

import signal
from typing import Any

from .cli import run_cli


def signal_handler(sig: int, frame: Any) -> None:
    """Unwind on SIGTERM so the terminal mode is restored on the way out."""
    raise SystemExit(0)


def main() -> None:
    """Main entry point."""
    signal.signal(signal.SIGTERM, signal_handler)

    try:
        run_cli()
    except KeyboardInterrupt:
        print("\n👋 Goodbye!")


if __name__ == "__main__":
    main()

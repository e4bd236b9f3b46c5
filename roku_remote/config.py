"""Configuration management and constants."""

import json
import logging
import os
import sys
from logging.handlers import RotatingFileHandler
from typing import Dict, Any

# Control protocol
ECP_PORT = 8060
DEVICE_INFO_TIMEOUT = 3.0
REACHABILITY_TIMEOUT = 2.0
REQUEST_TIMEOUT = 2.0
PORT_PROBE_TIMEOUT = 0.3
SSDP_TIMEOUT = 3
SSDP_SEARCH_TARGET = "roku:ecp"

# Terminal input
ESCAPE_TIMEOUT = 0.1
TEXT_FLUSH_TIMEOUT = 0.1

# Registry marker for the selected device
SELECTED_MARKER = "*"

# Preconfigured app shortcuts: key -> (app id, label)
DEFAULT_APP_SHORTCUTS = {
    '1': ('13535', 'Plex'),
    '2': ('837', 'YouTube'),
    'y': ('837', 'YouTube'),
    '3': ('12', 'Netflix'),
    'n': ('12', 'Netflix'),
    '4': ('61322', 'Max'),
    '5': ('551012', 'Apple TV'),
}

# App info
APP_VERSION = "0.1.0"

DEFAULT_SETTINGS: Dict[str, Any] = {
    'app_shortcuts': None,
    'request_timeout': REQUEST_TIMEOUT,
    'reachability_timeout': REACHABILITY_TIMEOUT,
    'use_nmap': True,
    'use_ssdp': True,
}

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def get_config_dir() -> str:
    """Per-user directory holding the registry, settings and logs."""
    return os.environ.get("ROKU_REMOTE_HOME") or os.path.expanduser("~/.roku_remote")


def get_registry_path() -> str:
    return os.path.join(get_config_dir(), "devices.tsv")


def get_settings_path() -> str:
    return os.path.join(get_config_dir(), "settings.json")


def get_logs_dir() -> str:
    return os.path.join(get_config_dir(), "logs")


def load_settings() -> Dict[str, Any]:
    """Load settings.json merged over the defaults. Missing or broken files give defaults."""
    settings = dict(DEFAULT_SETTINGS)
    path = get_settings_path()

    if os.path.exists(path):
        try:
            with open(path, encoding='utf-8') as f:
                data = json.load(f)
            if isinstance(data, dict):
                settings.update(data)
        except (json.JSONDecodeError, OSError) as e:
            logging.getLogger(__name__).warning("Ignoring unreadable settings %s: %s", path, e)

    return settings


def save_settings(settings: Dict[str, Any]) -> None:
    """Save settings to settings.json."""
    os.makedirs(get_config_dir(), exist_ok=True)
    with open(get_settings_path(), 'w', encoding='utf-8') as f:
        json.dump(settings, f, indent=2)


def get_app_shortcuts(settings: Dict[str, Any]) -> Dict[str, tuple]:
    """Resolve the key -> (app id, label) table, honoring an override in settings."""
    custom = settings.get('app_shortcuts')
    if not isinstance(custom, dict) or not custom:
        return dict(DEFAULT_APP_SHORTCUTS)

    shortcuts = {}
    for key, app_id in custom.items():
        key = str(key)
        if len(key) != 1:
            logging.getLogger(__name__).warning("Ignoring app shortcut %r: key must be one character", key)
            continue
        shortcuts[key] = (str(app_id), str(app_id))
    return shortcuts


def setup_logging(verbose: bool = False) -> None:
    """Log to a rotating file, plus stderr when verbose."""
    root = logging.getLogger("roku_remote")
    root.setLevel(logging.DEBUG)

    if any(isinstance(h, RotatingFileHandler) for h in root.handlers):
        return

    try:
        os.makedirs(get_logs_dir(), exist_ok=True)
        file_handler = RotatingFileHandler(
            os.path.join(get_logs_dir(), "roku_remote.log"),
            maxBytes=1_000_000, backupCount=3, encoding='utf-8')
        file_handler.setFormatter(logging.Formatter(LOG_FORMAT))
        file_handler.setLevel(logging.DEBUG)
        root.addHandler(file_handler)
    except OSError:
        pass

    if verbose:
        stream_handler = logging.StreamHandler(sys.stderr)
        stream_handler.setFormatter(logging.Formatter(LOG_FORMAT))
        stream_handler.setLevel(logging.DEBUG)
        root.addHandler(stream_handler)

"""Installed-app catalog with generated shortcut keys."""

import logging
import re
from typing import Iterable, List, Optional, Tuple

from .models import AppEntry

logger = logging.getLogger(__name__)

_APP_RE = re.compile(r'<app\s+id="([^"]*)"[^>]*>([^<]*)</app>')


def parse_apps(xml: str) -> List[Tuple[str, str]]:
    """(id, raw name) pairs from a /query/apps document, in document order."""
    return [(app_id.strip(), name) for app_id, name in _APP_RE.findall(xml or '')]


def clean_name(name: str) -> str:
    """Display name: trimmed, ampersand decoded, leading 'The '/'A ' removed."""
    name = ' '.join(name.split()).replace('&amp;', '&')
    if name.startswith('The '):
        name = name[4:]
    if name.startswith('A '):
        name = name[2:]
    return name


def key_alphabet(name: str) -> str:
    """Letters available for a shortcut: ASCII alphabetic characters, upper-cased."""
    return ''.join(c for c in name if c.isascii() and c.isalpha()).upper()


def assign_shortcuts(apps: Iterable[Tuple[str, str]]) -> Tuple[List[AppEntry], List[str]]:
    """
    Give each app the shortest unused prefix of its key alphabet.

    Apps are handled first come, first served in the order given, so the
    result depends on that order. An app whose every prefix is taken gets
    no key and is returned in the skipped list instead.
    """
    used = set()
    entries: List[AppEntry] = []
    skipped: List[str] = []

    for app_id, raw_name in apps:
        name = clean_name(raw_name)
        letters = key_alphabet(name)

        key = None
        for length in range(1, len(letters) + 1):
            candidate = letters[:length]
            if candidate not in used:
                key = candidate
                break

        if key is None:
            skipped.append(name)
            continue

        used.add(key)
        entries.append(AppEntry(id=app_id, name=name, key=key))

    return entries, skipped


def build_catalog(xml: str) -> List[AppEntry]:
    entries, skipped = assign_shortcuts(parse_apps(xml))
    for name in skipped:
        print(f"⚠️  Warning: Unable to generate a unique key for app '{name}'. Skipping.")
        logger.warning("No unique shortcut key for app %r", name)
    return entries


def find_app(entries: List[AppEntry], key: str) -> Optional[AppEntry]:
    key = key.strip().upper()
    for entry in entries:
        if entry.key == key:
            return entry
    return None

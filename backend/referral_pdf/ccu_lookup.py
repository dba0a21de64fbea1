"""
ZIP → care-coordination-unit (CCU) lookup.

The table lives in a static `ccu_lookup.json` keyed by 5-digit ZIP:

    {"60148": {"ccu_name": "...", "ccu_email": "...", "ccu_phone": "630-555-0100 or 630-555-0101"}}

A missing or unreadable file degrades to an empty table so the consent form is
still produced, just without CCU contacts.
"""

from __future__ import annotations

import json
import logging
import re
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Iterable, List, Optional

from cachetools import TTLCache

from .config import CCU_LOOKUP_FILE, REPO_ROOT, IntakeSettings

logger = logging.getLogger(__name__)

_PHONE_SEPARATORS = re.compile(r"[,;/]|\s+or\s+|\s*&\s*", re.IGNORECASE)

# ttl -> (path -> parsed table)
_LOOKUP_CACHES: Dict[int, TTLCache] = {}


@dataclass(frozen=True)
class CcuContact:
    name: str = ""
    contact: str = ""
    contact2: str = ""


def normalize_zip(value) -> str:
    """Keep only digits and return the first five."""
    if not value:
        return ""
    return re.sub(r"\D", "", str(value))[:5]


def split_phones(value) -> List[str]:
    """Split "a, b or c & d" style phone strings into an ordered list."""
    if not value:
        return []
    return [part.strip() for part in _PHONE_SEPARATORS.split(str(value)) if part and part.strip()]


def ccu_outputs_from_zip(zip_code: str, lookup: Dict[str, Dict]) -> CcuContact:
    record = lookup.get(zip_code) if zip_code else None
    if not record:
        return CcuContact()

    name = (record.get("ccu_name") or "").strip()
    email = (record.get("ccu_email") or "").strip()
    phones = split_phones(record.get("ccu_phone"))

    if email:
        return CcuContact(name, email, phones[0] if phones else "")
    return CcuContact(
        name,
        phones[0] if len(phones) > 0 else "",
        phones[1] if len(phones) > 1 else "",
    )


def lookup_candidates(settings: Optional[IntakeSettings] = None) -> List[Path]:
    settings = settings or IntakeSettings()
    candidates = [d / CCU_LOOKUP_FILE for d in settings.asset_dirs()]
    candidates.extend([Path.cwd() / CCU_LOOKUP_FILE, REPO_ROOT / CCU_LOOKUP_FILE])
    return candidates


def load_ccu_lookup(
    settings: Optional[IntakeSettings] = None,
    candidates: Optional[Iterable[Path]] = None,
) -> Dict[str, Dict]:
    """Return the first readable lookup table, or {} when none can be read."""
    paths = list(candidates) if candidates is not None else lookup_candidates(settings)
    ttl = settings.lookup_cache_ttl if settings else None

    cache = _cache_for(ttl)

    for path in paths:
        key = str(path)
        if cache is not None and key in cache:
            return cache[key]
        if not path.exists():
            continue
        try:
            with path.open("r", encoding="utf-8") as f:
                table = json.load(f)
        except (OSError, ValueError) as exc:
            logger.warning("Could not read CCU lookup %s: %s", path, exc)
            continue
        if not isinstance(table, dict):
            logger.warning("CCU lookup %s is not a JSON object; ignoring", path)
            continue
        if cache is not None:
            cache[key] = table
        return table

    logger.warning("No CCU lookup table found; CCU fields will be left empty")
    return {}


def _cache_for(ttl: Optional[int]) -> Optional[TTLCache]:
    if not ttl or ttl <= 0:
        return None
    if ttl not in _LOOKUP_CACHES:
        _LOOKUP_CACHES[ttl] = TTLCache(maxsize=8, ttl=ttl)
    return _LOOKUP_CACHES[ttl]


def clear_lookup_cache() -> None:
    _LOOKUP_CACHES.clear()

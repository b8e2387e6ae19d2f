"""Utility functions for flashround."""

import json
import logging
from datetime import datetime, timezone

from .errors import PersistenceFailure
from .interfaces import KeyValueStore


def utc_now_iso() -> str:
    """Current UTC time as an ISO-8601 string."""
    return datetime.now(timezone.utc).isoformat()


def clamp(value: float, lo: float, hi: float) -> float:
    return max(lo, min(hi, value))


def read_record(store: KeyValueStore, key: str, logger: logging.Logger) -> dict | None:
    """Load a JSON record from the store. Read or decode errors yield None."""
    try:
        raw = store.get(key)
        if raw is None:
            return None
        data = json.loads(raw)
        return data if isinstance(data, dict) else None
    except Exception as e:
        logger.warning("%s", PersistenceFailure('read', key, e))
        return None


def write_record(store: KeyValueStore, key: str, data: dict, logger: logging.Logger) -> bool:
    """Save a JSON record. Returns False (after logging) if the store failed."""
    try:
        store.set(key, json.dumps(data, ensure_ascii=False, sort_keys=True))
        return True
    except Exception as e:
        logger.warning("%s", PersistenceFailure('write', key, e))
        return False

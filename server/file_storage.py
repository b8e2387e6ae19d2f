"""File-based key-value store."""

import json
import logging
import os
import threading

from core.interfaces import KeyValueStore

logger = logging.getLogger(__name__)

# Project root is one level up from server/
DEFAULT_STATE_DIR = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))


class FileStorage(KeyValueStore):
    """Key-value store kept in one JSON document per user.

    The whole document is rewritten on every set().
    """

    def __init__(self, state_dir: str = None, user_id: str = "default"):
        self.state_dir = state_dir or DEFAULT_STATE_DIR
        self.user_id = user_id
        self._lock = threading.Lock()
        self._cache = None

    @property
    def state_file(self) -> str:
        if self.user_id == "default":
            return os.path.join(self.state_dir, 'flashround_stats.json')
        return os.path.join(self.state_dir, f'flashround_stats_{self.user_id}.json')

    def _load(self) -> dict:
        if self._cache is None:
            if os.path.exists(self.state_file):
                try:
                    with open(self.state_file, 'r', encoding='utf-8') as f:
                        data = json.load(f)
                    self._cache = data if isinstance(data, dict) else {}
                except (OSError, json.JSONDecodeError) as e:
                    logger.warning(f"Unreadable stats file {self.state_file}: {e}")
                    self._cache = {}
            else:
                self._cache = {}
        return self._cache

    def get(self, key: str) -> str | None:
        with self._lock:
            return self._load().get(key)

    def set(self, key: str, value: str) -> None:
        with self._lock:
            data = dict(self._load())
            data[key] = value
            os.makedirs(self.state_dir, exist_ok=True)
            tmp_file = self.state_file + '.tmp'
            with open(tmp_file, 'w', encoding='utf-8') as f:
                json.dump(data, f, indent=2, ensure_ascii=False)
            os.replace(tmp_file, self.state_file)
            self._cache = data

    def keys(self, prefix: str = '') -> list[str]:
        with self._lock:
            return [k for k in self._load() if k.startswith(prefix)]


def list_users(state_dir: str = None) -> list[str]:
    """List user IDs that have a stats file in state_dir."""
    state_dir = state_dir or DEFAULT_STATE_DIR
    users = []
    if os.path.exists(state_dir):
        for filename in os.listdir(state_dir):
            if filename == 'flashround_stats.json':
                users.append('default')
            elif filename.startswith('flashround_stats_') and filename.endswith('.json'):
                users.append(filename[len('flashround_stats_'):-len('.json')])
    return users

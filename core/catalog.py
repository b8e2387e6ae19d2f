"""In-memory term catalog."""

import json
from pathlib import Path

from .config import DEFAULT_TOPIC, ALL_TOPICS_KEY
from .errors import CatalogError
from .models import Term


class Catalog:
    """Immutable list of terms plus the topic names they belong to."""

    def __init__(self, entries: list[Term], topics: list[str] | None = None):
        self.entries = tuple(entries)
        derived = []
        for term in self.entries:
            if term.topic not in derived:
                derived.append(term.topic)
        self.topics = list(topics) if topics else derived

    def __len__(self) -> int:
        return len(self.entries)

    def by_topic(self, topic: str | None) -> list[Term]:
        """Entries for a topic, in catalog order. None or 'All' means every entry."""
        if is_all_topics(topic):
            return list(self.entries)
        return [t for t in self.entries if t.topic == topic]

    def find(self, source_text: str, topic: str | None = None) -> Term | None:
        needle = source_text.lower()
        for term in self.by_topic(topic):
            if term.source_text.lower() == needle:
                return term
        return None

    @classmethod
    def from_dict(cls, data: dict) -> 'Catalog':
        """Parse {topics, entries}. Entries accept en/de or source_text/target_text keys."""
        if not isinstance(data, dict):
            raise CatalogError("catalog must be a JSON object")
        raw_entries = data.get('entries')
        if not isinstance(raw_entries, list):
            raw_entries = []
        entries = []
        for i, raw in enumerate(raw_entries):
            if not isinstance(raw, dict):
                raise CatalogError(f"entry {i} is not an object")
            source = str(raw.get('source_text', raw.get('en')) or '').strip()
            target = str(raw.get('target_text', raw.get('de')) or '').strip()
            topic = str(raw.get('topic') or DEFAULT_TOPIC).strip()
            hint = raw.get('hint')
            if not source:
                raise CatalogError(f"entry {i} has no source text")
            entries.append(Term(source, target, topic, '' if hint is None else str(hint)))
        topics = data.get('topics') or None
        return cls(entries, topics)


def is_all_topics(topic: str | None) -> bool:
    return not topic or topic.lower() == ALL_TOPICS_KEY.lower()


def load_catalog(path: str | Path) -> Catalog:
    """Read a catalog JSON file."""
    path = Path(path)
    try:
        data = json.loads(path.read_text(encoding='utf-8'))
    except (OSError, json.JSONDecodeError) as e:
        raise CatalogError(f"cannot read catalog {path}: {e}") from e
    return Catalog.from_dict(data)

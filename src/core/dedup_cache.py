"""
Dedup Cache
Per event-kind sets of ids that were alerted on or suppressed at indexing time
"""

from typing import Dict, Iterable

from core.models import EventKind


class DedupCache:
    """
    Not thread-safe; callers mutate it only from the event loop while holding
    the pipeline lock.
    """

    def __init__(self):
        self._seen: Dict[EventKind, set] = {kind: set() for kind in EventKind}

    def contains(self, kind: EventKind, event_id: str) -> bool:
        return event_id in self._seen[kind]

    def add(self, kind: EventKind, event_id: str) -> None:
        self._seen[kind].add(event_id)

    def add_many(self, kind: EventKind, event_ids: Iterable[str]) -> int:
        """Returns how many ids were new"""
        bucket = self._seen[kind]
        before = len(bucket)
        bucket.update(event_ids)
        return len(bucket) - before

    def sizes(self) -> Dict[EventKind, int]:
        return {kind: len(ids) for kind, ids in self._seen.items()}

    def clear(self) -> Dict[EventKind, int]:
        """Empty both sets. Returns their sizes before clearing."""
        prior = self.sizes()
        for ids in self._seen.values():
            ids.clear()
        return prior

"""
Per (level, skill[, category]) memory of recently generated items.

The orchestrator records a short fingerprint of every item it generates
and appends an "avoid these" fragment to the next prompt for the same key.
Buckets are bounded FIFO queues; only the event loop touches them.
"""

from collections import deque
from typing import Deque, Dict, List

from .logger import logger
from .models import GenerationKey, Skill

HISTORY_CAP = 10


class HistoryCache:
    def __init__(self, capacity: int = HISTORY_CAP):
        self.capacity = capacity
        self._buckets: Dict[str, Deque[str]] = {}

    def record(self, key: GenerationKey, item: str) -> None:
        """Append item to the key's bucket, evicting the oldest beyond capacity."""
        if not item or not item.strip():
            return
        bucket = self._buckets.setdefault(key.bucket_id, deque(maxlen=self.capacity))
        bucket.append(item.strip())
        logger.debug(f"History {key.bucket_id}: {len(bucket)}/{self.capacity} items")

    def items(self, key: GenerationKey) -> List[str]:
        """Oldest first."""
        return list(self._buckets.get(key.bucket_id, ()))

    def prompt_fragment(self, key: GenerationKey, item_noun: str) -> str:
        history = self._buckets.get(key.bucket_id)
        if history:
            shown = '", "'.join(history)
            return (
                f"To ensure variety, generate a completely new and different {item_noun} "
                f"from these that were already shown: \"{shown}\"."
            )
        return "Please generate a unique item."

    def clear(self, level_id: str, skill: Skill) -> int:
        """Drop every bucket for level+skill, whatever its category. Returns how many."""
        return self.clear_prefix(GenerationKey(level_id, skill).prefix)

    def clear_prefix(self, prefix: str) -> int:
        stale = [bucket_id for bucket_id in self._buckets if bucket_id.startswith(prefix)]
        for bucket_id in stale:
            del self._buckets[bucket_id]
        if stale:
            logger.gen(f"Cleared {len(stale)} history bucket(s) for {prefix}")
        return len(stale)

    def bucket_ids(self) -> List[str]:
        return list(self._buckets)

    def __len__(self) -> int:
        return len(self._buckets)

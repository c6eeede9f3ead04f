import time
import logging
from collections import OrderedDict

logger = logging.getLogger(__name__)


class DedupWindow(object):
    """
    Remembers the keys forwarded in the last `window_seconds`, but never more than `max_entries` of them.
    A key seen again inside the window is a duplicate.
    Only the relay worker touches this; no locking.
    """
    def __init__(self, window_seconds, max_entries, clock=time.monotonic):
        if window_seconds <= 0 or max_entries <= 0:
            raise ValueError("The dedup window needs a positive duration and size")
        self.window_seconds = window_seconds
        self.max_entries = max_entries
        self.clock = clock
        self.entries = OrderedDict()

    def __len__(self):
        return len(self.entries)

    def __expire__(self, now):
        # Entries are kept in insertion order, so the oldest are always at the front.
        while self.entries:
            key, seen_at = next(iter(self.entries.items()))
            if now - seen_at < self.window_seconds:
                break
            self.entries.popitem(last=False)

    def seen(self, key):
        self.__expire__(self.clock())
        return key in self.entries

    def record(self, key):
        now = self.clock()
        self.__expire__(now)
        self.entries.pop(key, None)
        self.entries[key] = now
        while len(self.entries) > self.max_entries:
            evicted, _ = self.entries.popitem(last=False)
            logger.debug("Dedup window full; evicting %s", evicted)

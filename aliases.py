"""In-memory alias table shared by every request thread."""

import threading
from typing import Dict, Optional


class AliasTable:
    """Maps an alias to its target URL.

    Contents live only as long as the process. Every access takes the same
    lock, so the threaded dev server and any WSGI server with worker threads
    can share one instance.
    """

    def __init__(self):
        self._targets: Dict[str, str] = {}
        self._lock = threading.Lock()

    def get(self, alias: str) -> Optional[str]:
        with self._lock:
            return self._targets.get(alias)

    def set(self, alias: str, url: str) -> Optional[str]:
        """Store ``alias -> url``, returning the URL it replaced (last write wins)."""
        with self._lock:
            previous = self._targets.get(alias)
            self._targets[alias] = url
            return previous

    def __len__(self) -> int:
        with self._lock:
            return len(self._targets)

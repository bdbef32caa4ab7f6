"""
In-memory repository for the most recently completed scan.
Writers swap the whole result under a lock so readers never see a partial one.
"""

from __future__ import annotations

import logging
import threading
from typing import Optional

from core.models import ScanResult

log = logging.getLogger(__name__)


class ScanRepository:
    def __init__(self):
        self._lock = threading.Lock()
        self._last: Optional[ScanResult] = None

    def save(self, result: ScanResult) -> None:
        with self._lock:
            self._last = result
        log.debug("stored scan result for %s (%d ports)", result.target, len(result.ports))

    def last(self) -> Optional[ScanResult]:
        with self._lock:
            return self._last

    def require_last(self) -> ScanResult:
        result = self.last()
        if result is None:
            raise LookupError("no scan result available")
        return result

    def clear(self) -> None:
        with self._lock:
            self._last = None

"""
Scan policy: the tunable budget of one scan, and the admission gate that
bounds how many probes may be in flight at the same time.
"""

import asyncio
from dataclasses import dataclass

from core.config import settings


@dataclass(frozen=True)
class ScanPolicy:
    concurrency: int = settings.scan_concurrency
    connect_timeout_s: float = settings.connect_timeout_s
    read_timeout_s: float = settings.read_timeout_s
    deadline_s: float = settings.scan_deadline_s
    banner_bytes: int = settings.banner_bytes

    def __post_init__(self):
        if self.concurrency < 1:
            raise ValueError("concurrency must be >= 1")
        if self.banner_bytes < 1:
            raise ValueError("banner_bytes must be >= 1")
        for name in ("connect_timeout_s", "read_timeout_s", "deadline_s"):
            if getattr(self, name) <= 0:
                raise ValueError(f"{name} must be > 0")


class AdmissionGate:
    """
    Counting gate around asyncio.Semaphore. Tracks how many holders are
    inside and the highest value seen, so callers can check the cap held.
    Only touched from the event loop thread.
    """

    def __init__(self, limit: int):
        if limit < 1:
            raise ValueError("limit must be >= 1")
        self.limit = limit
        self._sem = asyncio.Semaphore(limit)
        self.in_flight = 0
        self.peak = 0
        self.admitted = 0

    async def __aenter__(self) -> "AdmissionGate":
        await self._sem.acquire()
        self.in_flight += 1
        self.admitted += 1
        if self.in_flight > self.peak:
            self.peak = self.in_flight
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        self.in_flight -= 1
        self._sem.release()

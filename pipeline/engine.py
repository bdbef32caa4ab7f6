"""
Concurrent scan engine.

One asyncio task per port, admitted through the AdmissionGate, results
funnelled into a lock-guarded accumulator. The whole fan-out races an
overall deadline; tasks still running when it fires are cancelled and
awaited, and whatever was collected until then is returned.
"""

from __future__ import annotations

import asyncio
import logging
import threading
import time
from dataclasses import dataclass
from typing import Awaitable, Callable, List, Optional, Tuple

from core.models import MAX_PORT, MIN_PORT, PortDetail
from policy.policy_engine import AdmissionGate, ScanPolicy
from probers.l4_tcp import tcp_probe

log = logging.getLogger(__name__)

# probe(target, port, connect_timeout, read_timeout, banner_bytes)
ProbeFn = Callable[[str, int, float, float, int], Awaitable[Optional[PortDetail]]]


class ResultAccumulator:
    def __init__(self):
        self._lock = threading.Lock()
        self._items: List[PortDetail] = []

    def add(self, detail: PortDetail) -> None:
        with self._lock:
            self._items.append(detail)

    def snapshot(self) -> Tuple[PortDetail, ...]:
        with self._lock:
            return tuple(self._items)

    def __len__(self) -> int:
        with self._lock:
            return len(self._items)


@dataclass(frozen=True)
class ScanOutcome:
    ports: Tuple[PortDetail, ...]
    spawned: int
    completed: int
    timed_out: bool
    duration_ms: int


async def run_scan(
    target: str,
    start_port: int,
    end_port: int,
    policy: Optional[ScanPolicy] = None,
    probe: ProbeFn = tcp_probe,
    gate: Optional[AdmissionGate] = None,
) -> ScanOutcome:
    if not (MIN_PORT <= start_port <= end_port <= MAX_PORT):
        raise ValueError(f"invalid port range {start_port}-{end_port}")
    policy = policy or ScanPolicy()
    gate = gate or AdmissionGate(policy.concurrency)
    results = ResultAccumulator()

    async def unit(port: int) -> None:
        async with gate:
            try:
                detail = await probe(
                    target,
                    port,
                    policy.connect_timeout_s,
                    policy.read_timeout_s,
                    policy.banner_bytes,
                )
            except asyncio.CancelledError:
                raise
            except Exception:  # noqa: BLE001
                log.exception("probe %s:%d crashed", target, port)
                return
        if detail is not None:
            results.add(detail)

    started = time.monotonic()
    tasks = [asyncio.create_task(unit(port)) for port in range(start_port, end_port + 1)]
    try:
        done, pending = await asyncio.wait(tasks, timeout=policy.deadline_s)
    finally:
        # covers both the deadline and the caller being cancelled
        leftover = [t for t in tasks if not t.done()]
        for t in leftover:
            t.cancel()
        if leftover:
            await asyncio.gather(*leftover, return_exceptions=True)

    outcome = ScanOutcome(
        ports=results.snapshot(),
        spawned=len(tasks),
        completed=len(done),
        timed_out=bool(pending),
        duration_ms=int((time.monotonic() - started) * 1000),
    )
    if outcome.timed_out:
        log.info(
            "scan %s %d-%d hit %.1fs deadline: %d/%d probes finished, %d open",
            target, start_port, end_port, policy.deadline_s,
            outcome.completed, outcome.spawned, len(outcome.ports),
        )
    else:
        log.info(
            "scan %s %d-%d finished in %dms: %d open",
            target, start_port, end_port, outcome.duration_ms, len(outcome.ports),
        )
    return outcome

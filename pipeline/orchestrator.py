"""
Request-level orchestrator: validate, enrich, run the engine, store the result.
Holds the repository of the last completed scan consumed by the exporters.
"""

import asyncio
import logging
from typing import Any, Dict, Optional, Union

from core.config import settings
from core.models import ScanRequest, ScanResult
from core.state import ScanRepository
from pipeline import engine, exports
from policy.policy_engine import ScanPolicy
from probers.geoip import lookup_geoip

log = logging.getLogger(__name__)


class Orchestrator:
    def __init__(
        self,
        policy: Optional[ScanPolicy] = None,
        repository: Optional[ScanRepository] = None,
        probe: engine.ProbeFn = engine.tcp_probe,
        geoip_lookup=lookup_geoip,
        geoip_enabled: Optional[bool] = None,
    ) -> None:
        self.policy = policy or ScanPolicy()
        self.repository = repository or ScanRepository()
        self.probe = probe
        self.geoip_lookup = geoip_lookup
        self.geoip_enabled = settings.geoip_enabled if geoip_enabled is None else geoip_enabled

    async def _enrich(self, target: str, timeout: float):
        if not self.geoip_enabled:
            return None
        try:
            return await asyncio.wait_for(self.geoip_lookup(target), timeout=timeout)
        except asyncio.CancelledError:
            raise
        except asyncio.TimeoutError:
            log.warning("geoip enrichment for %s exceeded the %.1fs scan deadline", target, timeout)
            return None
        except Exception:  # noqa: BLE001
            log.warning("geoip enrichment failed for %s", target, exc_info=True)
            return None

    async def scan(
        self,
        request: Union[ScanRequest, Dict[str, Any]],
        policy: Optional[ScanPolicy] = None,
    ) -> ScanResult:
        if not isinstance(request, ScanRequest):
            request = ScanRequest.model_validate(request)
        policy = policy or self.policy

        log.info(
            "scanning %s ports %d-%d (%d probes, concurrency %d)",
            request.target, request.start, request.end, request.port_count, policy.concurrency,
        )
        geoip, outcome = await asyncio.gather(
            self._enrich(request.target, policy.deadline_s),
            engine.run_scan(
                request.target,
                request.start,
                request.end,
                policy=policy,
                probe=self.probe,
            ),
        )
        result = ScanResult(target=request.target, geoip=geoip, ports=outcome.ports)
        self.repository.save(result)
        return result

    def last_result(self) -> ScanResult:
        return self.repository.require_last()

    def export(self, fmt: str) -> str:
        return exports.render(self.last_result(), fmt)

import asyncio
import time

import pytest
from pydantic import ValidationError

from core.models import GeoIPInfo, ScanRequest
from pipeline.orchestrator import Orchestrator
from policy.policy_engine import ScanPolicy
from scan_helpers import fake_probe

POLICY = ScanPolicy(concurrency=20, connect_timeout_s=0.3, read_timeout_s=0.2, deadline_s=5.0)


def test_scan_builds_and_stores_result(no_geoip):
    probe = fake_probe(open_ports=[22, 80], banner="hello")
    orch = Orchestrator(policy=POLICY, probe=probe, geoip_lookup=no_geoip)
    result = asyncio.run(orch.scan(ScanRequest(target="scanme.example", start=20, end=85)))

    assert result.target == "scanme.example"
    assert result.geoip is None
    assert {p.port: p.service for p in result.ports} == {22: "SSH", 80: "HTTP"}
    assert len(probe.calls) == 66
    assert orch.last_result() is result


def test_scan_accepts_plain_payload(no_geoip):
    orch = Orchestrator(policy=POLICY, probe=fake_probe(open_ports=[]), geoip_lookup=no_geoip)
    result = asyncio.run(orch.scan({"target": "h", "start": 1, "end": 10}))
    assert result.ports == ()


def test_malformed_request_never_probes(no_geoip):
    probe = fake_probe(open_ports=[])
    orch = Orchestrator(policy=POLICY, probe=probe, geoip_lookup=no_geoip)
    with pytest.raises(ValidationError):
        asyncio.run(orch.scan({"target": "h", "start": 90, "end": 80}))
    assert probe.calls == []
    assert orch.repository.last() is None


def test_geoip_is_embedded():
    async def lookup(target):
        return GeoIPInfo(query="1.2.3.4", country="Germany")

    orch = Orchestrator(policy=POLICY, probe=fake_probe(open_ports=[443]), geoip_lookup=lookup)
    result = asyncio.run(orch.scan(ScanRequest(target="1.2.3.4", start=440, end=445)))
    assert result.geoip.country == "Germany"


def test_geoip_failure_is_not_fatal():
    async def lookup(target):
        raise RuntimeError("provider down")

    orch = Orchestrator(policy=POLICY, probe=fake_probe(open_ports=[80]), geoip_lookup=lookup)
    result = asyncio.run(orch.scan(ScanRequest(target="h", start=80, end=80)))
    assert result.geoip is None
    assert [p.port for p in result.ports] == [80]


def test_geoip_can_be_disabled():
    called = []

    async def lookup(target):
        called.append(target)

    orch = Orchestrator(policy=POLICY, probe=fake_probe(open_ports=[]), geoip_lookup=lookup, geoip_enabled=False)
    asyncio.run(orch.scan(ScanRequest(target="h", start=1, end=2)))
    assert called == []


def test_per_call_policy_overrides_default(no_geoip):
    probe = fake_probe(open_ports=range(1, 100), delay=0.2)
    orch = Orchestrator(policy=POLICY, probe=probe, geoip_lookup=no_geoip)
    tight = ScanPolicy(concurrency=1, connect_timeout_s=0.3, read_timeout_s=0.2, deadline_s=0.3)
    result = asyncio.run(orch.scan(ScanRequest(target="h", start=1, end=50), policy=tight))
    assert 0 < len(result.ports) < 50


def test_export_before_scan():
    orch = Orchestrator(policy=POLICY)
    with pytest.raises(LookupError):
        orch.export("json")


def test_export_twice_is_identical(no_geoip):
    orch = Orchestrator(policy=POLICY, probe=fake_probe(open_ports=[21, 25]), geoip_lookup=no_geoip)
    asyncio.run(orch.scan(ScanRequest(target="h", start=20, end=30)))
    assert orch.export("csv") == orch.export("csv")
    assert orch.export("json") == orch.export("json")


def test_slow_geoip_does_not_outlast_the_deadline():
    async def slow_lookup(target):
        await asyncio.sleep(3)
        return GeoIPInfo(country="late")

    tight = ScanPolicy(concurrency=5, connect_timeout_s=0.3, read_timeout_s=0.2, deadline_s=0.3)
    orch = Orchestrator(policy=tight, probe=fake_probe(open_ports=[22]), geoip_lookup=slow_lookup)
    t0 = time.monotonic()
    result = asyncio.run(orch.scan(ScanRequest(target="h", start=1, end=20)))
    assert time.monotonic() - t0 < 1.0
    assert result.geoip is None
    assert [p.port for p in result.ports] == [22]

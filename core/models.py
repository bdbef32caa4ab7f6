"""
Shared data models for scan requests, results and export payloads.
Lightweight on purpose: ScanRequest -> PortDetail* -> ScanResult (+ GeoIPInfo).
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

MIN_PORT = 1
MAX_PORT = 65535


class ScanRequest(BaseModel):
    target: str
    start: int = Field(ge=MIN_PORT, le=MAX_PORT)
    end: int = Field(ge=MIN_PORT, le=MAX_PORT)

    @field_validator("target")
    @classmethod
    def validate_target(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("target must not be empty")
        return v

    @model_validator(mode="after")
    def validate_range(self) -> "ScanRequest":
        if self.start > self.end:
            raise ValueError(f"start port {self.start} is greater than end port {self.end}")
        return self

    @property
    def port_count(self) -> int:
        return self.end - self.start + 1


class PortDetail(BaseModel):
    model_config = ConfigDict(frozen=True)

    port: int = Field(ge=MIN_PORT, le=MAX_PORT)
    service: str = ""
    response_ms: int = Field(0, ge=0)
    # best-effort decode of raw bytes, not guaranteed to be meaningful text
    banner: str = ""


class GeoIPInfo(BaseModel):
    model_config = ConfigDict(frozen=True, populate_by_name=True, extra="ignore")

    query: Optional[str] = None
    country: Optional[str] = None
    region_name: Optional[str] = Field(None, alias="regionName")
    city: Optional[str] = None
    isp: Optional[str] = None
    org: Optional[str] = None
    lat: Optional[float] = None
    lon: Optional[float] = None


class ScanResult(BaseModel):
    model_config = ConfigDict(frozen=True)

    target: str
    geoip: Optional[GeoIPInfo] = None
    # completion order, not port order
    ports: Tuple[PortDetail, ...] = ()

    def sorted_ports(self) -> List[PortDetail]:
        return sorted(self.ports, key=lambda p: p.port)

    def to_doc(self) -> Dict[str, Any]:
        doc = self.model_dump(mode="json", by_alias=True)
        if doc.get("geoip") is None:
            doc.pop("geoip", None)
        return doc

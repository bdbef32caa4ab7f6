"""
GeoIP enrichment against an ip-api.com compatible endpoint.
Lookup failures degrade to None; they never abort a scan.
"""

from __future__ import annotations

import logging
from typing import Optional
from urllib.parse import quote

import httpx
from pydantic import ValidationError

from core.config import settings
from core.models import GeoIPInfo

log = logging.getLogger(__name__)


async def lookup_geoip(target: str, client: Optional[httpx.AsyncClient] = None) -> Optional[GeoIPInfo]:
    url = settings.geoip_url.format(target=quote(target, safe=""))
    try:
        if client is None:
            async with httpx.AsyncClient(timeout=settings.geoip_timeout_s) as own_client:
                resp = await own_client.get(url)
        else:
            resp = await client.get(url)
        resp.raise_for_status()
        data = resp.json()
    except (httpx.HTTPError, ValueError) as exc:
        log.warning("geoip lookup failed for %s: %s", target, exc)
        return None

    if not isinstance(data, dict) or data.get("status") == "fail":
        log.warning("geoip lookup returned no data for %s", target)
        return None
    try:
        return GeoIPInfo.model_validate(data)
    except ValidationError as exc:
        log.warning("geoip payload for %s not understood: %s", target, exc)
        return None

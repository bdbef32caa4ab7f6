from __future__ import annotations

import csv
import io
import json
from typing import List

from core.models import ScanResult

CSV_HEADER = [
    "Target",
    "Country",
    "Region",
    "City",
    "ISP",
    "Organization",
    "Port",
    "Service",
    "ResponseMs",
    "Banner",
]

FORMATS = ("json", "csv")


def render_json(result: ScanResult) -> str:
    return json.dumps(result.to_doc(), indent=2) + "\n"


def _geo_columns(result: ScanResult) -> List[str]:
    geo = result.geoip
    if geo is None:
        return ["", "", "", "", ""]
    return [geo.country or "", geo.region_name or "", geo.city or "", geo.isp or "", geo.org or ""]


def render_csv(result: ScanResult) -> str:
    buf = io.StringIO()
    w = csv.writer(buf)
    w.writerow(CSV_HEADER)
    geo = _geo_columns(result)
    for pd in result.ports:
        w.writerow([result.target, *geo, pd.port, pd.service, pd.response_ms, pd.banner])
    return buf.getvalue()


def render(result: ScanResult, fmt: str) -> str:
    if fmt == "json":
        return render_json(result)
    if fmt == "csv":
        return render_csv(result)
    raise ValueError(f"Unsupported format: {fmt}")

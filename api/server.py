"""
FastAPI front-end: accepts scan requests, serves exports of the last scan
and the static UI. The orchestrator lives on app.state, one per app.
"""

from __future__ import annotations

import logging
import os
from typing import Optional

import uvicorn
from fastapi import FastAPI, HTTPException, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse, Response
from fastapi.staticfiles import StaticFiles

from core.config import settings
from core.models import ScanRequest
from pipeline.orchestrator import Orchestrator

log = logging.getLogger(__name__)

EXPORT_MEDIA_TYPES = {"json": "application/json", "csv": "text/csv"}


def _orch(request: Request) -> Orchestrator:
    return request.app.state.orchestrator


async def _validation_error(request: Request, exc: RequestValidationError):
    detail = [f"{'.'.join(str(p) for p in err.get('loc', ()))}: {err.get('msg')}" for err in exc.errors()]
    return JSONResponse(status_code=400, content={"detail": detail})


def create_app(orchestrator: Optional[Orchestrator] = None, static_dir: Optional[str] = None) -> FastAPI:
    logging.basicConfig(level=settings.log_level)
    app = FastAPI(title="portscope", version="0.1.0")
    app.state.orchestrator = orchestrator or Orchestrator()
    app.add_exception_handler(RequestValidationError, _validation_error)

    @app.post("/scan")
    async def api_scan(payload: ScanRequest, request: Request):
        try:
            result = await _orch(request).scan(payload)
        except ValueError as exc:
            raise HTTPException(status_code=400, detail=str(exc)) from exc
        except Exception as exc:  # noqa: BLE001
            log.exception("scan failed")
            raise HTTPException(status_code=500, detail="scan failed") from exc
        return JSONResponse(result.to_doc())

    def _export(request: Request, fmt: str) -> Response:
        try:
            body = _orch(request).export(fmt)
        except LookupError as exc:
            raise HTTPException(status_code=404, detail="No scan result available") from exc
        return Response(
            content=body,
            media_type=EXPORT_MEDIA_TYPES[fmt],
            headers={"Content-Disposition": f"attachment; filename=scan_result.{fmt}"},
        )

    @app.get("/export/json")
    def api_export_json(request: Request):
        return _export(request, "json")

    @app.get("/export/csv")
    def api_export_csv(request: Request):
        return _export(request, "csv")

    @app.get("/health")
    def api_health(request: Request):
        return {"status": "ok", "has_result": _orch(request).repository.last() is not None}

    static_dir = static_dir if static_dir is not None else settings.static_dir
    if static_dir and os.path.isdir(static_dir):
        app.mount("/", StaticFiles(directory=static_dir, html=True), name="static")
    elif static_dir:
        log.debug("static dir %s not found, UI not served", static_dir)

    return app


app = create_app()


def main():
    uvicorn.run(app, host=settings.api_host, port=settings.api_port)


if __name__ == "__main__":
    main()

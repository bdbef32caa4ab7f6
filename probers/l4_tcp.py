"""
TCP connect prober using plain connect() without crafting raw packets.
One call handles one port: bounded connect, one bounded banner read, close.
"""

import asyncio
import logging
import time
from typing import Optional

from core.models import PortDetail
from probers.services import service_for

log = logging.getLogger(__name__)

DEFAULT_BANNER_BYTES = 256


async def _read_banner(reader: asyncio.StreamReader, timeout: float, size: int) -> str:
    try:
        data = await asyncio.wait_for(reader.read(size), timeout=timeout)
    except (asyncio.TimeoutError, OSError):
        return ""
    if not data:
        return ""
    return data.decode("utf-8", errors="replace")


async def _close(writer: asyncio.StreamWriter) -> None:
    writer.close()
    try:
        await writer.wait_closed()
    except OSError:
        pass


async def tcp_probe(
    target: str,
    port: int,
    connect_timeout: float = 1.0,
    read_timeout: float = 0.5,
    banner_bytes: int = DEFAULT_BANNER_BYTES,
) -> Optional[PortDetail]:
    """
    Returns a PortDetail for an open port, None for anything else.
    Refused, timed out, unreachable and unresolvable all collapse to None.
    """
    start = time.monotonic()
    try:
        reader, writer = await asyncio.wait_for(
            asyncio.open_connection(target, port), timeout=connect_timeout
        )
    except (asyncio.TimeoutError, OSError, UnicodeError) as exc:
        log.debug("port %s:%d closed (%s)", target, port, type(exc).__name__)
        return None
    response_ms = int((time.monotonic() - start) * 1000)

    try:
        banner = await _read_banner(reader, read_timeout, banner_bytes)
    finally:
        await _close(writer)

    return PortDetail(
        port=port,
        service=service_for(port),
        response_ms=response_ms,
        banner=banner,
    )

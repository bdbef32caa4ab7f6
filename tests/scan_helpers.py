import asyncio
import socket
from typing import Iterable, Optional

from core.models import PortDetail
from probers.services import service_for


async def start_listener(banner: bytes = b"", close_after_banner: bool = False, closed_event: Optional[asyncio.Event] = None):
    async def handle(reader: asyncio.StreamReader, writer: asyncio.StreamWriter):
        if banner:
            writer.write(banner)
            await writer.drain()
        if not close_after_banner:
            # wait for the client to hang up
            await reader.read()
            if closed_event is not None:
                closed_event.set()
        writer.close()

    server = await asyncio.start_server(handle, "127.0.0.1", 0)
    port = server.sockets[0].getsockname()[1]
    return server, port


def closed_port() -> int:
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as s:
        s.bind(("127.0.0.1", 0))
        return s.getsockname()[1]


def fake_probe(open_ports: Iterable[int], delay: float = 0.0, banner: str = ""):
    open_set = set(open_ports)
    calls = []

    async def probe(target, port, connect_timeout, read_timeout, banner_bytes):
        calls.append(port)
        if delay:
            await asyncio.sleep(delay)
        if port not in open_set:
            return None
        return PortDetail(port=port, service=service_for(port), response_ms=1, banner=banner)

    probe.calls = calls
    return probe



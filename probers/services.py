"""
Static port -> service label table. Read-only after import.
"""

from types import MappingProxyType
from typing import Mapping

WELL_KNOWN_SERVICES: Mapping[int, str] = MappingProxyType(
    {
        21: "FTP",
        22: "SSH",
        23: "Telnet",
        25: "SMTP",
        53: "DNS",
        80: "HTTP",
        110: "POP3",
        143: "IMAP",
        443: "HTTPS",
        3306: "MySQL",
        3389: "RDP",
        8080: "HTTP-alt",
    }
)


def service_for(port: int) -> str:
    return WELL_KNOWN_SERVICES.get(port, "")

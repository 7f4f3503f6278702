"""
SSDP discovery engine: request rendering, datagram parsing, answer filtering,
the multicast socket, and the discovery loop tying them together.
"""

from .discovery_service import SSDPDiscoveryService
from .filters import accept_message, admit_answer, get_header
from .network import SSDPSocket
from .parser import parse_datagram
from .request import build_msearch_request

__all__ = [
    "SSDPDiscoveryService",
    "SSDPSocket",
    "accept_message",
    "admit_answer",
    "build_msearch_request",
    "get_header",
    "parse_datagram",
]

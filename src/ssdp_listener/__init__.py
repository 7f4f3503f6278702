"""SSDP Listener - continuous SSDP/UPnP service discovery.

Sends SSDP "M-SEARCH" queries on the standard multicast group, listens for
answers and unsolicited NOTIFY announcements, and hands each distinct answer
to the latest caller of ``SSDPListener.listen``.
"""

__version__ = "0.1.0"

from .config import Config
from .listener import SSDPListener

__all__ = ["Config", "SSDPListener"]

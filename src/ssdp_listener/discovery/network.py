"""Network interface utilities and the SSDP multicast socket."""

import asyncio
import socket
import struct
from collections.abc import Iterator
from contextlib import contextmanager
from typing import Optional, Protocol

import netifaces
import structlog

from ..config import DiscoveryConfig
from ..exceptions import (
    BindError,
    JoinGroupError,
    ReceiveError,
    SendError,
    SocketCreationError,
)

logger = structlog.get_logger(__name__)

ANY_ADDRESS = "0.0.0.0"


def get_interface_ipv4(interface: str) -> Optional[str]:
    """Get the first IPv4 address of an interface.

    Args:
        interface: Network interface name.

    Returns:
        Optional[str]: The address, or None if the interface has none or does not exist.
    """
    try:
        addr_info = netifaces.ifaddresses(interface)
    except (ValueError, KeyError, OSError) as e:
        logger.error("Failed to get addresses for interface", interface=interface, error=str(e))
        return None
    for addr in addr_info.get(netifaces.AF_INET, []):
        if 'addr' in addr:
            return addr['addr']
    return None


class MulticastLock(Protocol):
    """Platform hook keeping multicast reception enabled (e.g. a Wi-Fi multicast lock)."""

    def acquire(self) -> None: ...

    def release(self) -> None: ...


class SSDPSocket:
    """
    Owns the UDP endpoint used to send M-SEARCH requests and to receive
    answers and NOTIFY announcements.

    The socket is bound to the SSDP port on all local addresses and joined to
    the multicast group, so unsolicited announcements arrive as well as replies.
    It is opened lazily and lives until ``close()``.
    """

    def __init__(self, discovery_config: DiscoveryConfig, multicast_lock: MulticastLock | None = None):
        self.discovery_config = discovery_config
        self.multicast_lock = multicast_lock
        self.group = (str(discovery_config.multicast_address), discovery_config.multicast_port)
        self.logger = logger.bind(group=f"{self.group[0]}:{self.group[1]}")
        self._sock: socket.socket | None = None
        self._membership: bytes | None = None

    @property
    def is_open(self) -> bool:
        return self._sock is not None

    def open(self) -> None:
        """Creates, binds and joins the socket. Does nothing if already open.

        Raises:
            SocketCreationError: the socket could not be created or configured.
            BindError: binding to the SSDP port failed.
            JoinGroupError: the interface could not be resolved or joining the group failed.
        """
        if self._sock is not None:
            return

        interface_ip = ANY_ADDRESS
        if self.discovery_config.interface:
            resolved = get_interface_ipv4(self.discovery_config.interface)
            if resolved is None:
                raise JoinGroupError(
                    f"No IPv4 address found for interface '{self.discovery_config.interface}'",
                    group=self.group[0],
                )
            interface_ip = resolved

        try:
            sock = socket.socket(socket.AF_INET, socket.SOCK_DGRAM, socket.IPPROTO_UDP)
        except OSError as e:
            raise SocketCreationError(f"Failed to create SSDP socket: {e}") from e

        try:
            sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
            if self.discovery_config.reuse_port and hasattr(socket, "SO_REUSEPORT"):
                sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEPORT, 1)
            sock.setsockopt(socket.IPPROTO_IP, socket.IP_MULTICAST_TTL, self.discovery_config.multicast_ttl)
            if interface_ip != ANY_ADDRESS:
                sock.setsockopt(socket.IPPROTO_IP, socket.IP_MULTICAST_IF, socket.inet_aton(interface_ip))
            sock.setblocking(False)
        except OSError as e:
            sock.close()
            raise SocketCreationError(f"Failed to configure SSDP socket: {e}") from e

        try:
            sock.bind(("", self.discovery_config.multicast_port))
        except OSError as e:
            sock.close()
            raise BindError(f"Failed to bind SSDP socket to port {self.discovery_config.multicast_port}: {e}") from e

        try:
            membership = struct.pack("4s4s", socket.inet_aton(self.group[0]), socket.inet_aton(interface_ip))
            sock.setsockopt(socket.IPPROTO_IP, socket.IP_ADD_MEMBERSHIP, membership)
        except OSError as e:
            sock.close()
            raise JoinGroupError(f"Failed to join multicast group {self.group[0]}: {e}", group=self.group[0]) from e

        self._sock = sock
        self._membership = membership
        self.logger.info("SSDP socket opened.", interface=interface_ip)

    async def send(self, data: bytes) -> None:
        """Sends ``data`` to the multicast group. A failure leaves the socket open.

        Raises:
            SendError: the socket is not open or the send failed.
        """
        if self._sock is None:
            raise SendError("SSDP socket is not open")
        loop = asyncio.get_running_loop()
        try:
            await loop.sock_sendto(self._sock, data, self.group)
        except OSError as e:
            raise SendError(f"Failed to send to {self.group[0]}:{self.group[1]}: {e}") from e

    async def receive_with_deadline(self, timeout: float) -> bytes | None:
        """Waits up to ``timeout`` seconds for one datagram.

        Returns:
            The datagram bytes, or None if the timeout elapsed first.

        Raises:
            ReceiveError: the socket is not open or reading failed.
        """
        if self._sock is None:
            raise ReceiveError("SSDP socket is not open")
        loop = asyncio.get_running_loop()
        try:
            data, addr = await asyncio.wait_for(
                loop.sock_recvfrom(self._sock, self.discovery_config.receive_buffer_size), timeout
            )
        except TimeoutError:
            return None
        except OSError as e:
            raise ReceiveError(f"Failed to receive SSDP datagram: {e}") from e
        self.logger.debug("Datagram received", source=addr, size=len(data))
        return data

    @contextmanager
    def multicast_lock_held(self) -> Iterator[None]:
        """Holds the platform multicast lock, if one was given, for the enclosed block."""
        if self.multicast_lock is None:
            yield
            return
        self.multicast_lock.acquire()
        try:
            yield
        finally:
            self.multicast_lock.release()

    def close(self) -> None:
        """Leaves the multicast group and closes the socket. Safe to call when not open."""
        sock, self._sock = self._sock, None
        if sock is None:
            return
        if self._membership is not None:
            try:
                sock.setsockopt(socket.IPPROTO_IP, socket.IP_DROP_MEMBERSHIP, self._membership)
            except OSError:
                pass # Closing anyway.
            self._membership = None
        sock.close()
        self.logger.info("SSDP socket closed.")

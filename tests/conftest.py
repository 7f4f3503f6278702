"""
Shared fixtures: an in-memory stand-in for the SSDP socket and small helpers
for waiting on the background worker.
"""
import asyncio
from contextlib import contextmanager

import pytest

from ssdp_listener.config import Config, DiscoveryConfig


class FakeSSDPSocket:
    """Feeds queued datagrams to the discovery loop and records what it sends."""

    def __init__(self):
        self.inbox: asyncio.Queue[bytes] = asyncio.Queue()
        self.sent: list[bytes] = []
        self.is_open = False
        self.open_calls = 0
        self.close_calls = 0
        self.open_error: Exception | None = None
        self.send_error: Exception | None = None
        self.receive_error: Exception | None = None
        self.lock_events: list[str] = []

    def open(self) -> None:
        self.open_calls += 1
        if self.open_error is not None:
            raise self.open_error
        self.is_open = True

    async def send(self, data: bytes) -> None:
        if self.send_error is not None:
            raise self.send_error
        self.sent.append(data)

    async def receive_with_deadline(self, timeout: float) -> bytes | None:
        if self.receive_error is not None:
            raise self.receive_error
        try:
            return await asyncio.wait_for(self.inbox.get(), timeout)
        except TimeoutError:
            return None

    @contextmanager
    def multicast_lock_held(self):
        self.lock_events.append("acquire")
        try:
            yield
        finally:
            self.lock_events.append("release")

    def close(self) -> None:
        self.close_calls += 1
        self.is_open = False

    def feed(self, *datagrams: bytes) -> None:
        for datagram in datagrams:
            self.inbox.put_nowait(datagram)


async def wait_until(predicate, timeout: float = 2.0, interval: float = 0.01) -> None:
    """Polls ``predicate`` until it is true, failing the test after ``timeout`` seconds."""
    loop = asyncio.get_running_loop()
    deadline = loop.time() + timeout
    while not predicate():
        if loop.time() > deadline:
            pytest.fail("Condition not met in time")
        await asyncio.sleep(interval)


RESPONSE_ROOTDEVICE = (
    b"HTTP/1.1 200 OK\r\n"
    b"USN: uuid:abc::upnp:rootdevice\r\n"
    b"ST: upnp:rootdevice\r\n"
    b"\r\n"
)

RESPONSE_MEDIA_SERVER = (
    b"HTTP/1.1 200 OK\r\n"
    b"CACHE-CONTROL: max-age=1800\r\n"
    b"LOCATION: http://192.168.1.20:8200/rootDesc.xml\r\n"
    b"ST: urn:schemas-upnp-org:device:MediaServer:1\r\n"
    b"USN: uuid:4d696e69-444c-164e-9d41-b827eb54e939::urn:schemas-upnp-org:device:MediaServer:1\r\n"
    b"\r\n"
)

NOTIFY_OTHER = (
    b"NOTIFY * HTTP/1.1\r\n"
    b"HOST: 239.255.255.250:1900\r\n"
    b"NT: urn:other\r\n"
    b"NTS: ssdp:alive\r\n"
    b"USN: uuid:notify-1::urn:other\r\n"
    b"\r\n"
)

MSEARCH_ALL = (
    b"M-SEARCH * HTTP/1.1\r\n"
    b"HOST: 239.255.255.250:1900\r\n"
    b'MAN: "ssdp:discover"\r\n'
    b"ST: ssdp:all\r\n"
    b"USN: uuid:should-never-be-delivered\r\n"
    b"MX: 2\r\n"
    b"\r\n"
)


@pytest.fixture
def fake_socket():
    return FakeSSDPSocket()


@pytest.fixture
def app_config():
    return Config(discovery=DiscoveryConfig(read_timeout_ms=50))

"""
Service running the SSDP discovery loop: one background worker that sends
M-SEARCH requests, receives answers and NOTIFY announcements, and delivers
each distinct answer to the currently installed subscription.
"""
import asyncio
import contextlib
from typing import Protocol

import structlog

from ..config import Config, DiscoveryConfig
from ..exceptions import SSDPNetworkError
from ..models.common import WorkerState
from ..models.ssdp import Answer, Subscription
from .filters import SeenSet, accept_message, admit_answer, get_header
from .network import SSDPSocket
from .parser import parse_datagram
from .request import build_msearch_request

logger = structlog.get_logger(__name__)


class SocketManager(Protocol):
    """What the discovery loop needs from the network endpoint."""

    def open(self) -> None: ...

    async def send(self, data: bytes) -> None: ...

    async def receive_with_deadline(self, timeout: float) -> bytes | None: ...

    def multicast_lock_held(self) -> contextlib.AbstractContextManager[None]: ...

    def close(self) -> None: ...


class ActiveSubscription:
    """A subscription paired with the answers already delivered to it.

    Replacing the active subscription replaces both at once, so a new
    subscription always starts with an empty SeenSet.
    """

    __slots__ = ("subscription", "seen")

    def __init__(self, subscription: Subscription):
        self.subscription = subscription
        self.seen: SeenSet = {}


class SSDPDiscoveryService:
    """
    Supervises the single discovery worker and the current subscription.

    ``install_subscription`` and ``cancel`` are synchronous and must be called
    from the event loop thread. The worker re-reads the current subscription
    before every delivery, so a replaced or cancelled subscription stops
    receiving answers immediately, even in the middle of a receive burst.
    """

    def __init__(self, app_config: Config, socket_manager: SocketManager | None = None):
        self.app_config = app_config
        self.discovery_config: DiscoveryConfig = app_config.discovery
        self.logger = logger.bind(service="SSDPDiscoveryService")
        self._socket: SocketManager = socket_manager or SSDPSocket(self.discovery_config)
        self._active: ActiveSubscription | None = None
        self._worker: asyncio.Task | None = None

    @property
    def worker_state(self) -> WorkerState:
        return WorkerState.NOT_RUNNING if self._worker is None else WorkerState.RUNNING

    @property
    def current_subscription(self) -> Subscription | None:
        active = self._active
        return active.subscription if active else None

    def seen_answers(self) -> dict[str, Answer]:
        """Returns a copy of the answers delivered to the current subscription, keyed by USN."""
        active = self._active
        return dict(active.seen) if active else {}

    def install_subscription(self, subscription: Subscription) -> None:
        """Makes ``subscription`` the current one and ensures the worker is running.

        The previous subscription, if any, receives nothing further.

        Raises:
            RuntimeError: if called outside a running event loop. Nothing is installed.
        """
        loop = asyncio.get_running_loop()
        self._active = ActiveSubscription(subscription)
        self.logger.info("Subscription installed.", worker_state=self.worker_state.value, **subscription.describe())

        if self._worker is None:
            self._worker = loop.create_task(self._run(), name="ssdp-discovery-worker")

    def cancel(self) -> None:
        """Clears the current subscription. Returns immediately; idempotent.

        The worker notices at the end of its current receive burst, closes the
        socket and exits.
        """
        self._active = None
        self.logger.info("Subscription cancelled.", worker_state=self.worker_state.value)

    async def shutdown(self) -> None:
        """Cancels the subscription and stops the worker without waiting for the read timeout."""
        self.cancel()
        worker, self._worker = self._worker, None
        if worker is not None and not worker.done():
            worker.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await worker
        if self._worker is None:
            self._socket.close()
        self.logger.info("Discovery service shut down.")

    async def _run(self) -> None:
        self.logger.info("Discovery worker started.")
        try:
            while (active := self._active) is not None:
                await self._run_cycle(active)
        finally:
            # No await between the loop condition and here, so a subscription
            # installed concurrently always finds either a running loop or no worker.
            if self._worker is asyncio.current_task():
                self._worker = None
                self._socket.close()
            self.logger.info("Discovery worker stopped.")

    async def _run_cycle(self, active: ActiveSubscription) -> None:
        """One iteration: optional M-SEARCH, then a receive burst until the read timeout."""
        subscription = active.subscription
        failed = False

        try:
            self._socket.open()
        except SSDPNetworkError as e:
            self._report_error(e)
            await asyncio.sleep(self.discovery_config.error_backoff_seconds)
            return

        if subscription.broadcast_msearch:
            request = build_msearch_request(
                subscription.service_type,
                host=str(self.discovery_config.multicast_address),
                port=self.discovery_config.multicast_port,
                mx=self.discovery_config.mx_seconds,
            )
            try:
                await self._socket.send(request)
                self.logger.debug("M-SEARCH sent.", service_type=subscription.service_type)
            except SSDPNetworkError as e:
                self._report_error(e)
                failed = True

        try:
            with self._socket.multicast_lock_held():
                while self._active is not None:
                    data = await self._socket.receive_with_deadline(subscription.read_timeout_seconds)
                    if data is None:
                        break
                    self._handle_datagram(data)
        except SSDPNetworkError as e:
            self._report_error(e)
            failed = True

        if failed:
            # Keep loop frequency below 1/s under persistent failure.
            await asyncio.sleep(self.discovery_config.error_backoff_seconds)

    def _handle_datagram(self, data: bytes) -> None:
        active = self._active
        if active is None:
            return
        subscription = active.subscription

        message = parse_datagram(data, normalize_headers=subscription.normalize_headers)
        if not accept_message(message, subscription):
            return

        answer = message.to_answer()
        if not admit_answer(answer, active.seen):
            return

        self._deliver(active, answer)

    def _deliver(self, active: ActiveSubscription, answer: Answer) -> None:
        if self._active is not active:
            self.logger.debug("Subscription replaced before delivery, dropping answer.")
            return
        try:
            active.subscription.sink(answer)
        except Exception as e:
            self.logger.exception("Answer sink raised", error=str(e))
            return
        self.logger.debug("Answer delivered.", usn=get_header(answer, "USN"))

    def _report_error(self, error: SSDPNetworkError) -> None:
        self.logger.warning("SSDP network error", error=str(error), error_type=type(error).__name__)
        active = self._active
        if active is None:
            return
        try:
            active.subscription.error_sink(str(error))
        except Exception as e:
            self.logger.exception("Error sink raised", error=str(e))

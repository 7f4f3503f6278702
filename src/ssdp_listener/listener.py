"""
SSDPListener: the public listen/stop interface over the discovery service.
"""
import asyncio
from collections.abc import AsyncGenerator, Callable
from typing import Any, Optional

import structlog
from pydantic import ValidationError

from .config import Config
from .discovery.discovery_service import SocketManager, SSDPDiscoveryService
from .exceptions import InvalidArgumentError
from .models.ssdp import Answer, AnswerSink, ErrorSink, Subscription
from .utils.log import setup_logging

logger = structlog.get_logger(__name__)


class SSDPListener:
    """
    Listens for SSDP service answers on behalf of one caller at a time.

    Each ``listen`` call supersedes the previous one: only the last caller
    receives answers. Network errors are passed to the error callback and do
    not stop listening; call ``stop`` to do that.
    """

    def __init__(
        self,
        app_config: Config | None = None,
        discovery_service: SSDPDiscoveryService | None = None,
        socket_manager: SocketManager | None = None,
        configure_logging: bool = False,
    ):
        """
        Args:
            app_config: Application configuration. Loaded from the environment if omitted.
            discovery_service: Service to drive. Built from ``app_config`` if omitted.
            socket_manager: Network endpoint for a service built here (mainly for tests).
            configure_logging: Apply ``app_config.logging`` to global structlog/stdlib logging.
        """
        self.app_config = app_config or Config()
        if configure_logging:
            setup_logging(self.app_config.logging)
        self.discovery_service = discovery_service or SSDPDiscoveryService(
            app_config=self.app_config, socket_manager=socket_manager
        )
        self.logger = logger.bind(component="SSDPListener")

    def listen(
        self,
        service_type: str,
        on_answer: AnswerSink,
        on_error: ErrorSink,
        normalize_headers: bool = False,
        read_timeout_ms: Optional[int] = None,
        listen_for_notifies: bool = False,
        broadcast_msearch: bool = True,
    ) -> None:
        """Starts (or redirects) discovery of ``service_type``.

        Must be called from within a running event loop. ``on_answer`` receives
        one header map per distinct answer; ``on_error`` receives error messages.

        Args:
            service_type: SSDP service type, e.g. "ssdp:all" or
                "urn:schemas-upnp-org:service:ContentDirectory:1".
            on_answer: Callback receiving each answer.
            on_error: Callback receiving network error messages.
            normalize_headers: Capitalize header names ("usn" -> "Usn").
            read_timeout_ms: Read timeout; a new M-SEARCH is sent after each timeout.
                Defaults to ``DiscoveryConfig.read_timeout_ms`` (4000).
            listen_for_notifies: Also deliver matching NOTIFY announcements.
            broadcast_msearch: Send M-SEARCH requests; if False, only listen.

        Raises:
            InvalidArgumentError: if ``service_type`` is empty or an option is invalid.
                No subscription is installed in that case.
            RuntimeError: if no event loop is running. No subscription is installed.
        """
        if not service_type:
            raise InvalidArgumentError("serviceType must not be an empty string!")

        if read_timeout_ms is None:
            read_timeout_ms = self.app_config.discovery.read_timeout_ms

        try:
            subscription = Subscription(
                service_type=service_type,
                normalize_headers=normalize_headers,
                read_timeout_ms=read_timeout_ms,
                listen_for_notifies=listen_for_notifies,
                broadcast_msearch=broadcast_msearch,
                sink=on_answer,
                error_sink=on_error,
            )
        except ValidationError as e:
            raise InvalidArgumentError(f"Invalid listen arguments: {e}") from e

        self.discovery_service.install_subscription(subscription)

    def stop(self, on_done: Callable[[], Any] | None = None) -> None:
        """Stops delivering answers and acknowledges through ``on_done``.

        The worker exits at the end of its current read timeout. Safe to call
        before any ``listen`` and more than once.
        """
        self.discovery_service.cancel()
        if on_done is not None:
            on_done()

    def on_reset(self) -> None:
        """Host lifecycle reset (e.g. the embedding application reloads): stop listening."""
        self.logger.info("Host reset received, cancelling subscription.")
        self.discovery_service.cancel()

    async def close(self) -> None:
        """Stops listening and shuts the worker and socket down right away."""
        await self.discovery_service.shutdown()

    async def iter_answers(
        self,
        service_type: str,
        on_error: ErrorSink | None = None,
        **options: Any,
    ) -> AsyncGenerator[Answer, None]:
        """
        Listens for ``service_type`` and yields answers until the caller stops
        iterating or another ``listen`` call takes over.

        ``options`` are passed to ``listen``. Stopping the iteration cancels
        the subscription if it is still the current one.
        """
        queue: asyncio.Queue[Answer] = asyncio.Queue()
        log = self.logger.bind(service_type=service_type)

        def forward_error(message: str) -> None:
            log.warning("Discovery error while iterating answers", error=message)
            if on_error is not None:
                on_error(message)

        self.listen(service_type, queue.put_nowait, forward_error, **options)
        subscription = self.discovery_service.current_subscription
        try:
            while self.discovery_service.current_subscription is subscription:
                try:
                    answer = await asyncio.wait_for(queue.get(), timeout=0.5)
                except TimeoutError:
                    continue
                yield answer
        finally:
            if self.discovery_service.current_subscription is subscription:
                self.discovery_service.cancel()
            log.debug("Answer iteration ended.")

"""
Backend health monitor.

Background task that polls GET /health on a flat interval and republishes a
binary reachability signal. Runs independently of the upscale workflow and
never touches workflow state.
"""

from __future__ import annotations

import asyncio
import contextlib

from collections.abc import Callable
from datetime import UTC, datetime
from typing import TYPE_CHECKING

from upscale_juicer.core.constants import (
    HEALTH_POLL_INTERVAL_SECONDS,
    MSG_BACKEND_OFFLINE,
    MSG_BACKEND_ONLINE,
)
from upscale_juicer.models.error_models import UpscalerError
from upscale_juicer.models.workflow_models import HealthState, Severity
from upscale_juicer.utils.logger import logger

if TYPE_CHECKING:
    from upscale_juicer.app.notifications import NotificationChannel
    from upscale_juicer.integrations.gateway import BackendGateway

HealthListener = Callable[[HealthState], None]


class HealthMonitor:
    """Periodic liveness poller with an explicit start/stop lifecycle.

    One check runs immediately on start(), then one every ``interval``
    seconds until stop(). A failed check is the only way ``reachable``
    becomes False; the next successful check sets it back to True.
    """

    def __init__(
        self,
        gateway: BackendGateway,
        interval: float = HEALTH_POLL_INTERVAL_SECONDS,
        notifications: NotificationChannel | None = None,
    ) -> None:
        """Initialize health monitor.

        Args:
            gateway: Gateway used for the health call
            interval: Seconds between checks
            notifications: Optional channel for offline/online transition messages
        """
        self.gateway = gateway
        self.interval = interval
        self.notifications = notifications
        self._state = HealthState()
        self._listeners: list[HealthListener] = []
        self._task: asyncio.Task[None] | None = None

    @property
    def state(self) -> HealthState:
        return self._state

    @property
    def reachable(self) -> bool:
        return self._state.reachable

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def add_listener(self, listener: HealthListener) -> Callable[[], None]:
        """Register a callback for every completed check. Returns an unsubscribe function."""
        self._listeners.append(listener)
        return lambda: self._listeners.remove(listener)

    async def start(self) -> None:
        """Start the polling task."""
        if self.running:
            logger.warning("Health monitor already running")
            return

        self._task = asyncio.create_task(self._run_loop())
        logger.info(f"Health monitor started (interval: {self.interval}s)")

    async def stop(self) -> None:
        """Stop the polling task and wait for it to finish."""
        if self._task:
            self._task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await self._task
            self._task = None
            logger.info("Health monitor stopped")

    async def _run_loop(self) -> None:
        """Main polling loop."""
        while True:
            try:
                await self.check_now()
            except Exception as e:
                logger.error(f"Health check cycle failed: {e}", exc_info=True)

            await asyncio.sleep(self.interval)

    async def check_now(self) -> HealthState:
        """Run a single health check and publish the result."""
        try:
            await self.gateway.check_health()
            reachable = True
        except UpscalerError as e:
            logger.debug(f"Health check failed: {e}")
            reachable = False
        except Exception as e:
            logger.error(f"Health check raised unexpectedly: {e}", exc_info=True)
            reachable = False

        previous = self._state
        self._state = HealthState(reachable=reachable, last_checked_at=datetime.now(UTC))

        if previous.reachable != reachable:
            self._announce_transition(reachable)

        for listener in list(self._listeners):
            try:
                listener(self._state)
            except Exception as e:
                logger.error(f"Health listener failed: {e}", exc_info=True)

        return self._state

    def _announce_transition(self, reachable: bool) -> None:
        if reachable:
            logger.info("Backend reachable again", origin=self.gateway.origin)
            if self.notifications:
                self.notifications.post(MSG_BACKEND_ONLINE, Severity.SUCCESS)
        else:
            logger.warning(f"Backend unreachable at {self.gateway.origin}", origin=self.gateway.origin)
            if self.notifications:
                self.notifications.post(MSG_BACKEND_OFFLINE, Severity.WARNING)

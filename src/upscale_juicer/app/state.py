"""Application state management for Upscale Juicer.

This module provides the state containers that serve as the single source of
truth for the application. State is passed explicitly to the components that
own it rather than living in module-level globals.

WorkflowStore
-------------
Holds the current WorkflowState variant plus a generation counter. Every
reset or file selection bumps the generation; a network call captures the
generation when it starts and its result is only applied if the generation is
still current. This is what keeps a late upload/upscale completion from
writing into a workflow the user has already reset.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from upscale_juicer.models.workflow_models import IdleState, WorkflowState
from upscale_juicer.utils.file_utils import PreviewHandle
from upscale_juicer.utils.logger import logger

if TYPE_CHECKING:
    from upscale_juicer.app.notifications import NotificationChannel
    from upscale_juicer.app.orchestrator import UpscaleOrchestrator
    from upscale_juicer.core.constants import Settings
    from upscale_juicer.integrations.gateway import BackendGateway
    from upscale_juicer.integrations.health_monitor import HealthMonitor

StateListener = Callable[[WorkflowState], None]


@dataclass
class WorkflowStore:
    """Owned container for the workflow state variant.

    Attributes:
        state: Active WorkflowState variant
        generation: Bumped on every reset/selection; guards late completions
        preview: Preview file for the selected image (None when no file)
    """

    state: WorkflowState = field(default_factory=IdleState)
    generation: int = 0
    preview: PreviewHandle | None = None
    listeners: list[StateListener] = field(default_factory=list)

    def begin_generation(self, state: WorkflowState) -> int:
        """Start a new generation with the given state. Returns the new generation."""
        self.generation += 1
        self._set(state)
        return self.generation

    def apply(self, state: WorkflowState, generation: int) -> bool:
        """Apply a state produced by work started in ``generation``.

        Returns:
            False (and leaves state untouched) if the generation is stale
        """
        if generation != self.generation:
            logger.info(
                f"Discarding stale {state.status} transition",
                captured_generation=generation,
                current_generation=self.generation,
            )
            return False
        self._set(state)
        return True

    def replace_preview(self, preview: PreviewHandle | None) -> None:
        """Swap the preview handle, releasing the previous one."""
        if self.preview is not None and self.preview is not preview:
            self.preview.release()
        self.preview = preview

    def _set(self, state: WorkflowState) -> None:
        previous = self.state.status
        self.state = state
        if previous != state.status:
            logger.debug(f"Workflow {previous} -> {state.status}", generation=self.generation)
        for listener in list(self.listeners):
            try:
                listener(state)
            except Exception as e:
                logger.error(f"Workflow listener failed: {e}", exc_info=True)


@dataclass
class AppState:
    """Application state container - wires the core components together.

    Attributes:
        settings: Validated environment settings
        gateway: Backend gateway client (sole network boundary)
        notifications: Transient message channel
        monitor: Backend health monitor
        orchestrator: Upscale workflow state machine
    """

    settings: Settings
    gateway: BackendGateway
    notifications: NotificationChannel
    monitor: HealthMonitor
    orchestrator: UpscaleOrchestrator

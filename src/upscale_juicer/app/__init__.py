"""
App Module - Workflow Orchestration and Lifecycle
=================================================

Modules:
    orchestrator: UpscaleOrchestrator state machine
    notifications: Auto-expiring notification channel
    state: WorkflowStore and AppState containers
    bootstrap: Settings loading, component wiring and shutdown
"""

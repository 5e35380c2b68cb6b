"""
Upscale Juicer - Client for a RealESRGAN image upscaling backend
================================================================

Uploads a local image to an HTTP upscaling service, asks it to run a 4x
super-resolution pass and fetches the result.

Key Features:
    - **Workflow State Machine**: Idle -> Uploading -> Processing -> Complete/Error
    - **Stale-result Guard**: Late completions after reset or reselection are discarded
    - **Health Polling**: Background reachability signal, independent of the workflow
    - **Typed Errors**: Every failure surfaces as an UpscalerError with a user-ready message
    - **Structured Logging**: Console plus rotating JSON error log with session correlation

Modules:
    core: Constants and Pydantic settings
    models: Wire models, workflow state variants and the error taxonomy
    integrations: Backend gateway client and health monitor
    app: Orchestrator, notification channel, state containers and bootstrap
    utils: Logging, HTTP client factory, file and validation helpers

Example:
    Run one upscale::

        from upscale_juicer.app.bootstrap import initialize_application, shutdown_application
        from upscale_juicer.utils.file_utils import load_selected_file

        app_state = initialize_application()
        orchestrator = app_state.orchestrator
        if orchestrator.select_file(await load_selected_file("photo.jpg")):
            state = await orchestrator.start()
            if state.status == "complete":
                print(state.result.upscaled)
        await shutdown_application(app_state)
"""

__version__ = "0.1.0"

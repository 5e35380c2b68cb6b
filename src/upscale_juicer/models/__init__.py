"""
Models Module - Data Models and Type Definitions
=================================================

Pydantic v2 models for backend responses and workflow state, plus the
exception taxonomy shared by every layer.

Modules:
    api_models: Backend response/request models (/upload, /upscale)
    workflow_models: SelectedFile, workflow state variants, health and notifications
    error_models: UpscalerError hierarchy and ErrorCode enum
"""

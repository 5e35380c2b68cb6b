"""
Integrations Module - Upscaling Backend
=======================================

Modules:
    gateway: BackendGateway, the only code that talks to the backend
    health_monitor: Background GET /health poller
"""

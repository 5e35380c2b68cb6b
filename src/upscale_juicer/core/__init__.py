"""
Core Layer - Configuration
==========================

Modules:
    constants: Wire routes, timeouts, user-facing messages and Pydantic settings
"""

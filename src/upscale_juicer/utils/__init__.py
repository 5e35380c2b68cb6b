"""
Utils Module - Infrastructure Utilities
=======================================

Modules:
    logger: Structured logging with console and rotating JSON error log
    http_logger: httpx event hooks for request/response logging
    client_factory: httpx.AsyncClient and timeout construction
    file_utils: Local file loading, preview files and atomic saves
    validation: Client-side image type and size checks
"""

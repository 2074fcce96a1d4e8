"""
Tadoku Backend — Middleware Package
====================================

Middleware Chain (last added runs first):
    Request → [Request ID] → [Logging] → [GZip] → [CORS] → Route Handler

    - request_id.py:  assigns X-Request-ID and exposes it through a ContextVar
    - logging.py:     one access log line per request with status and duration
"""

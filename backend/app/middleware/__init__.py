# Middleware package init
"""
IoT Tech Backend — Middleware Package
=======================================

Middleware Chain (request direction):
    Request → [Request ID] → [Logging] → [GZip] → [CORS] → Route Handler

    Request ID runs first so the access log line and any error body carry the
    same correlation ID. Responses travel back through the chain in reverse.
"""

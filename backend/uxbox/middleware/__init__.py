# Middleware package init
"""
UXBOX Backend - Middleware Package
===================================

Middleware Chain (order matters!):
    Request → [Request ID] → [Rate Limit] → [Logging] → [GZip] → [CORS] → Route

    1. Request ID first: every response, a 429 included, carries the ID
    2. Rate Limit: reject over-budget clients before any work
    3. Logging: access line with status and duration
"""

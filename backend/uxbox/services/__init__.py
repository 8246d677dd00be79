# Services package init
"""
UXBOX Backend - Dispatcher Layer
=================================

What:  Clients for the external services layer that executes page messages.

Service Inventory:
    - Dispatcher (abstract): query/novelty contract consumed by the routes
    - RemoteDispatcher: HTTP transport with retries and a circuit breaker
"""

# Routes package init
"""
UXBOX Backend - API Routes Package
===================================

Route Inventory:
    - pages.py:   /api/pages...              (pages CRUD + history)
    - health.py:  GET /health                (service health check)

Routes are THIN: they declare parameter schemas, build the dispatch
message, await the dispatcher and map the result to a response.
"""

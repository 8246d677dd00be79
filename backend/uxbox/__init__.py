"""
UXBOX Backend - Application Package Initializer
================================================

What: Marks the `uxbox` directory as a Python package.
Who:  Used implicitly by Python's import system and explicitly by pytest and uvicorn.

Architecture Note:
    The backend is a thin contract layer in front of the services layer:

    ┌─────────────────────────────────────┐
    │           Routes (API Layer)        │  ← validate, build message, map response
    ├─────────────────────────────────────┤
    │     Dispatcher (query / novelty)    │  ← pluggable, awaited once per request
    ├─────────────────────────────────────┤
    │   Services layer (external process) │  ← business logic, persistence, history
    └─────────────────────────────────────┘

    Routes never persist anything and never interpret dispatch failures;
    failures bubble up to the global exception handlers in main.py.
"""

__version__ = "1.0.0"

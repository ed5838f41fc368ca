"""
Inkwell Backend: Application Package Initializer
=================================================

What: Marks the `inkwell` directory as a Python package.
Who:  Used by uvicorn, Alembic, pytest and the `inkwell` console script.

Architecture Note:
    The backend follows a layered request path:

    ┌─────────────────────────────────────┐
    │   Middleware (recovery, CORS, log,  │  ← cross-cutting gates
    │   rate limit) + auth dependency     │
    ├─────────────────────────────────────┤
    │           Routes (API Layer)        │  ← HTTP concerns only
    ├─────────────────────────────────────┤
    │         Services (Business Logic)   │  ← rules, error wrapping
    ├─────────────────────────────────────┤
    │   Repositories (Persistence ports)  │  ← SQL users, Mongo articles
    ├─────────────────────────────────────┤
    │   Stores (engine, Mongo, Redis)     │  ← long-lived pooled handles
    └─────────────────────────────────────┘

    Every layer receives its collaborators from the AppContainer built in
    `inkwell.container`; nothing reaches for module-level state.
"""

__version__ = "2.0.0"

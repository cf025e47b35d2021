"""
IoT Tech Backend — Application Package Initializer
====================================================

What: Marks the `app` directory as a Python package.
Who:  Imported by uvicorn (`uvicorn app.main:app`), pytest, and every module
      through absolute imports like `from app.config import settings`.

Architecture Note:
    The backend is layered the same way for every resource:

    ┌─────────────────────────────────────┐
    │           Routes (API Layer)        │  ← HTTP concerns only
    ├─────────────────────────────────────┤
    │  Repository / Services (Logic)      │  ← validation, attachment lifecycle
    ├─────────────────────────────────────┤
    │   Persistence Adapter + Stores      │  ← database or JSON file, per call
    ├─────────────────────────────────────┤
    │  Database (async SQLAlchemy) │ File │  ← whichever is available
    └─────────────────────────────────────┘

    Routes never branch on the storage backend; the persistence adapter
    picks a store for each repository call from the live connection state.
"""

__version__ = "1.0.0"

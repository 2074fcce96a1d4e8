"""
Tadoku Backend — Application Package Initializer
=================================================

What: Marks the `tadoku` directory as a Python package.
Why:  Enables module imports like `from tadoku.config import settings`.
Who:  Used by uvicorn (`tadoku.main:app`), Alembic, and pytest.

Architecture Note:
    ┌─────────────────────────────────────┐
    │           Routes (API Layer)        │  ← HTTP concerns, user/clock injection
    ├─────────────────────────────────────┤
    │  Services (Quota, Ledger, Stats)    │  ← usage accounting rules
    ├─────────────────────────────────────┤
    │     Ledger Store (adapter)          │  ← the only layer that speaks SQL
    ├─────────────────────────────────────┤
    │   Models & Database (Persistence)   │  ← async SQLAlchemy sessions
    └─────────────────────────────────────┘

    Services never see SQLAlchemy exceptions; the store adapter translates
    them into StoreUnavailableError and "no row" into None.
"""

__version__ = "1.0.0"

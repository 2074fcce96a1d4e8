"""
Tadoku Backend — Services Package
==================================

Business logic, independent of HTTP. Every service is stateless: the
request's AsyncSession (and the reference-clock `now`) are passed in.

Service Inventory:
    - ledger_store.py:    persistence adapter (one statement per call,
                          Optional results, StoreUnavailableError on failure)
    - quota_tracker.py:   daily generation gate and best-effort counter commit
    - reading_ledger.py:  mark as read / undo last read / read count
    - statistics.py:      today / week / month / year / total / last N days
    - pagination.py:      page metadata for story listing
    - story_service.py:   generation orchestration and story queries
    - llm_base.py:        StoryGenerator interface
    - gemini_service.py:  Gemini StoryGenerator with retries and circuit breaker
"""

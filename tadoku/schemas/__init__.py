"""
Tadoku Backend — Pydantic Request/Response Schemas
===================================================

    - story.py:   story generation, listing, detail and read status
    - stats.py:   reading statistics and generation quota status
    - common.py:  error envelope and health check
"""

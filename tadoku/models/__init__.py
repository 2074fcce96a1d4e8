"""
Tadoku Backend — ORM Models
============================

Importing this package registers every table with `Base.metadata`
(used by Alembic and by the test suite's `create_all`).
"""

from tadoku.models.user import User
from tadoku.models.story import Story
from tadoku.models.reading_event import ReadingEvent

__all__ = ["User", "Story", "ReadingEvent"]

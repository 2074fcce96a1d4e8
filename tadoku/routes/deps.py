"""
Tadoku Backend — Shared Route Dependencies
===========================================

get_current_user_id:
    The caller's identity comes from the X-User-ID header, set by the
    authenticating gateway in front of this service. A missing or
    non-positive value is rejected with 401.

get_now:
    The request's "now" in the reference timezone. Routes never call the
    clock themselves, so tests override this one dependency to pin time.
"""

from datetime import datetime

from fastapi import Header, HTTPException, status

from tadoku.timeutil import now_in


async def get_current_user_id(
    x_user_id: str | None = Header(default=None, alias="X-User-ID"),
) -> int:
    try:
        user_id = int(x_user_id) if x_user_id is not None else 0
    except ValueError:
        user_id = 0
    if user_id <= 0:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="A valid X-User-ID header is required",
        )
    return user_id


async def get_now() -> datetime:
    return now_in()

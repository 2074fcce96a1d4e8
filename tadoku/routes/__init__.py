"""
Tadoku Backend — API Routes Package
====================================

Route Inventory:
    - stories.py:  POST   /api/v1/stories                     (generate)
                   GET    /api/v1/stories                     (paginated list)
                   GET    /api/v1/stories/{id}                (detail + read count)
                   POST   /api/v1/stories/{id}/read           (mark as read)
                   DELETE /api/v1/stories/{id}/read/latest    (undo last read)
    - users.py:    GET    /api/v1/users/me/stats              (reading statistics)
                   GET    /api/v1/users/me/generation-status  (quota status)
    - health.py:   GET    /health
    - deps.py:     shared dependencies (caller identity, reference clock)

Routes stay THIN: extract input, call one service, shape the response.
Errors propagate to the global handlers in tadoku.main.
"""

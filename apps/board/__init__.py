# apps/board/__init__.py

"""
Board - Fallo kanban

- Card reordering within and across lists
- Time tracking driven by in-progress lists
- Quality-review cycles and reviewer notifications
- WebSockets for realtime updates
"""

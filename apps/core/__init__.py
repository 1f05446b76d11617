# apps/core/__init__.py

"""
Core - Fallo base app

Contains:
- Models (User, Board, List, Card, TimeLog, ReviewCycle, Notification)
- Permission checks and JSON API helpers
- Slack client
- Management commands (seed, repair_positions)
"""

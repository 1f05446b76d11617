# apps/__init__.py

"""
Fallo - Django applications

- core: models, permissions, notifications API and management commands
- board: card reorder, time tracking, review cycles and WebSockets
- reports: time reports and XLSX/CSV export
"""

__version__ = '0.1.0'

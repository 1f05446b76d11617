# apps/reports/__init__.py

"""
Reports - time reports of Fallo

- Per-user time summary (total, this week, this month, by list phase)
- XLSX and CSV export of closed time logs
"""

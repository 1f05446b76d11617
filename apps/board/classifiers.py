# apps/board/classifiers.py

"""
Name-based list classification

Lists carry no persisted "work in progress" flag; the board infers it
from the list name. Callers must tolerate the odd false positive or
negative from creative naming.
"""

# Case-insensitive substring matches
IN_PROGRESS_NAME_HINTS = ('in progress', 'in-progress', 'doing', 'working')

# Case-insensitive whole-name matches
IN_PROGRESS_EXACT_NAMES = ('wip',)

REVIEW_NAME_HINTS = ('review',)


def _normalize(name):
    return (name or '').strip().lower()


def is_in_progress_list(name: str) -> bool:
    """True if a list with this name represents active work"""
    normalized = _normalize(name)
    if not normalized:
        return False
    if normalized in IN_PROGRESS_EXACT_NAMES:
        return True
    return any(hint in normalized for hint in IN_PROGRESS_NAME_HINTS)


def is_review_list_name(name: str) -> bool:
    """True if a list with this name collects cards awaiting review"""
    normalized = _normalize(name)
    return any(hint in normalized for hint in REVIEW_NAME_HINTS)

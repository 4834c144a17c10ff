from .versions import compare_versions, in_range, is_newer
from .locks import ReadWriteLock

__all__ = [
    "compare_versions",
    "in_range",
    "is_newer",
    "ReadWriteLock",
]

"""
TODO ENGINE - Error Taxonomy
============================
Every failure the engine reports to a caller derives from TodoError, so a
front end can catch one type and show the message.
"""


class TodoError(Exception):
    """Base class for all engine errors"""


class ValidationError(TodoError, ValueError):
    """Input rejected before any mutation (empty text, unknown category...)"""


class DuplicateError(TodoError):
    """Category name already exists"""


class ProtectedCategoryError(TodoError):
    """Default categories cannot be removed or renamed"""


class CategoryNotFoundError(TodoError, KeyError):
    """No custom category with that name"""

    def __str__(self) -> str:
        # KeyError quotes its argument; keep the plain message
        return str(self.args[0]) if self.args else ""


class StorageError(TodoError):
    """Reading or writing a file failed for a reason other than capacity"""


class QuotaExceededError(StorageError):
    """
    Storage capacity exhausted.

    The in-memory state is still authoritative; the caller should prompt the
    user to export or delete data.
    """


class MalformedDataError(TodoError):
    """Import payload does not have the expected top-level shape"""

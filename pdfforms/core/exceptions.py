"""Domain-specific exceptions for the field identity engine."""


class FieldEngineError(Exception):
    """Base exception for field engine operations."""

    pass


class ValidationFailure(FieldEngineError):
    """Raised when a merge is rejected. Carries every violated rule."""

    def __init__(self, issues: list[str], message: str = "Fields are not compatible for merging"):
        super().__init__(message)
        self.message = message
        self.issues = list(issues)


class NotFound(FieldEngineError):
    """Raised when a referenced template, field or group does not exist."""

    def __init__(self, message: str, missing_ids: list[str] | None = None):
        super().__init__(message)
        self.message = message
        self.missing_ids = list(missing_ids or [])


class ConcurrentModification(FieldEngineError):
    """Raised when a field row was changed by another writer mid-operation."""

    pass


class CatalogCorruption(FieldEngineError):
    """Raised when stored group metadata violates catalog invariants.

    Fatal for a fill: no partially filled document is produced.
    """

    pass


class RenderFailure(FieldEngineError):
    """Raised when the renderer cannot apply a draw instruction or read the input."""

    pass

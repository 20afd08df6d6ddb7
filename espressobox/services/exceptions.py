"""Domain-specific exceptions for EspressoBox services."""


class EspressoBoxError(Exception):
    """Base exception for EspressoBox services."""
    pass


# =============================================================================
# Import
# =============================================================================


class DataImportError(EspressoBoxError):
    """Base exception for import failures. The store is left unchanged."""
    pass


class ImportParseError(DataImportError):
    """Raised when an export document is malformed or fails schema validation."""
    pass


class ImportConflictError(DataImportError):
    """Raised when an insert-mode import reuses identifiers already in the store."""

    def __init__(self, conflicts: dict[str, list[str]]):
        self.conflicts = conflicts
        total = sum(len(ids) for ids in conflicts.values())
        detail = ", ".join(f"{kind}: {len(ids)}" for kind, ids in conflicts.items() if ids)
        super().__init__(f"{total} identifier(s) already exist ({detail}); use merge mode to update them")


class ImportCommitError(DataImportError):
    """Raised when writing an import batch fails and the batch was rolled back."""
    pass


# =============================================================================
# Persistence
# =============================================================================


class PersistenceError(EspressoBoxError):
    """Raised when a storage operation fails."""
    pass


class InvalidDataError(EspressoBoxError):
    """Raised when edited values fail model validation."""
    pass


class NotFoundError(EspressoBoxError):
    """Raised when a requested document does not exist."""

    entity = "Document"

    def __init__(self, identifier: str):
        self.identifier = identifier
        super().__init__(f"{self.entity} not found: {identifier}")


class BeanNotFoundError(NotFoundError):
    entity = "Bean"


class GrinderNotFoundError(NotFoundError):
    entity = "Grinder"


class MachineNotFoundError(NotFoundError):
    entity = "Machine"


class SessionNotFoundError(NotFoundError):
    entity = "Brewing session"


class BrewMethodNotFoundError(NotFoundError):
    entity = "Brew method"


# =============================================================================
# Images
# =============================================================================


class ImageStorageError(EspressoBoxError):
    """Base exception for rejected image files."""
    pass


class FileSizeExceededError(ImageStorageError):
    """Raised when an image exceeds the size limit."""
    pass


class InvalidFileTypeError(ImageStorageError):
    """Raised when an image has a disallowed extension."""
    pass


class InvalidMagicBytesError(ImageStorageError):
    """Raised when file content doesn't match a valid image format."""
    pass

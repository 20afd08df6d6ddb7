"""ImportBatch document model for tracking data imports."""

from enum import Enum
from typing import Optional

from beanie import Document
from pydantic import Field

from espressobox.models.base import UTCDatetime, new_id, utc_now


class ImportStatus(str, Enum):
    """Status of an import batch."""

    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"


class ImportBatch(Document):
    """Log entry for one import of an export document."""

    id: str = Field(default_factory=new_id)
    filename: Optional[str] = None
    file_format: str  # "json" or "yaml"
    mode: str  # "insert" or "merge"
    imported_at: UTCDatetime = Field(default_factory=utc_now)
    status: ImportStatus = ImportStatus.PROCESSING

    # Processing results
    beans_imported: int = 0
    grinders_imported: int = 0
    machines_imported: int = 0
    sessions_imported: int = 0
    unresolved_references: int = 0
    errors: list[str] = Field(default_factory=list)

    class Settings:
        name = "import_batches"

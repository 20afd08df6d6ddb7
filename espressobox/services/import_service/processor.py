"""Committing staged imports to the store as a single unit."""

import logging
from enum import Enum
from typing import Optional

from beanie import Document
from pydantic import BaseModel

from espressobox.models import Bean, BrewingSession, Grinder, Machine
from espressobox.models.base import utc_now
from espressobox.models.import_batch import ImportBatch, ImportStatus
from espressobox.schemas.export import ExportFormat
from espressobox.services.exceptions import (
    EspressoBoxError,
    ImportCommitError,
    ImportConflictError,
)
from espressobox.services.persistence import storage_errors

from .parsers import parse_export_document
from .staging import StagedImport, stage_import

logger = logging.getLogger(__name__)


class ImportMode(str, Enum):
    """How imported identifiers that already exist are treated."""

    INSERT = "insert"  # refuse the whole import
    MERGE = "merge"  # replace the stored document


class ImportSummary(BaseModel):
    mode: ImportMode
    beans: int = 0
    grinders: int = 0
    machines: int = 0
    sessions: int = 0
    replaced: int = 0
    unresolved_references: int = 0
    batch_id: Optional[str] = None

    @property
    def total(self) -> int:
        return self.beans + self.grinders + self.machines + self.sessions


async def find_conflicts(staged: StagedImport) -> dict[str, list[str]]:
    """Identifiers in the staged import that already exist in the store."""
    conflicts: dict[str, list[str]] = {}
    for kind, model, documents in (
        ("beans", Bean, staged.beans),
        ("grinders", Grinder, staged.grinders),
        ("machines", Machine, staged.machines),
        ("sessions", BrewingSession, staged.sessions),
    ):
        ids = [d.id for d in documents]
        if not ids:
            continue
        with storage_errors(f"check existing {kind}"):
            existing = await model.find({"_id": {"$in": ids}}).to_list()
        if existing:
            conflicts[kind] = sorted(d.id for d in existing)
    return conflicts


async def _rollback(inserted: list[Document], replaced: list[Document]) -> None:
    for doc in reversed(inserted):
        await doc.delete()
    for previous in reversed(replaced):
        await previous.save()


async def commit_import(
    staged: StagedImport,
    mode: ImportMode = ImportMode.INSERT,
) -> ImportSummary:
    """Write a staged import so that it either fully applies or not at all.

    In insert mode any identifier that already exists aborts the import
    before anything is written. In merge mode existing documents are
    replaced. If a write fails part way, documents written so far are
    removed and replaced documents are restored.

    Raises:
        ImportConflictError: Insert mode found existing identifiers.
        ImportCommitError: A write failed; the store was rolled back.
    """
    mode = ImportMode(mode)
    if mode == ImportMode.INSERT:
        conflicts = await find_conflicts(staged)
        if conflicts:
            raise ImportConflictError(conflicts)

    inserted: list[Document] = []
    replaced: list[Document] = []
    try:
        for doc in staged.documents():
            previous = None
            if mode == ImportMode.MERGE:
                previous = await type(doc).get(doc.id)
            if previous is None:
                await doc.insert()
                inserted.append(doc)
            else:
                # Export records carry no photo; keep the stored one
                doc.image_path = previous.image_path
                if hasattr(doc, "updated_at"):
                    doc.updated_at = utc_now()
                replaced.append(previous)
                await doc.replace()
    except Exception as e:
        logger.warning(
            "Import failed after %d writes, rolling back: %s",
            len(inserted) + len(replaced),
            e,
        )
        try:
            await _rollback(inserted, replaced)
        except Exception as rollback_error:
            logger.error("Rollback incomplete: %s", rollback_error)
            raise ImportCommitError(
                f"Import failed ({e}) and the rollback did not complete ({rollback_error})"
            ) from e
        raise ImportCommitError(f"Import failed and was rolled back: {e}") from e

    return ImportSummary(
        mode=mode,
        beans=len(staged.beans),
        grinders=len(staged.grinders),
        machines=len(staged.machines),
        sessions=len(staged.sessions),
        replaced=len(replaced),
        unresolved_references=len(staged.unresolved),
    )


async def import_data(
    content: bytes | str,
    file_format: ExportFormat | str = ExportFormat.JSON,
    mode: ImportMode | str = ImportMode.INSERT,
    filename: Optional[str] = None,
) -> ImportSummary:
    """Parse, stage and commit an export document.

    Each run that gets past parsing is logged as an ``ImportBatch``.

    Raises:
        ImportParseError: The document could not be read.
        ImportConflictError: Insert mode found existing identifiers.
        ImportCommitError: A write failed; the store was rolled back.
        PersistenceError: The store could not be read or the batch log written.
    """
    file_format = ExportFormat(file_format)
    mode = ImportMode(mode)

    document = parse_export_document(content, file_format)
    staged = stage_import(document)

    batch = ImportBatch(filename=filename, file_format=file_format.value, mode=mode.value)
    with storage_errors("log import batch"):
        await batch.insert()

    try:
        with storage_errors("import data"):
            summary = await commit_import(staged, mode)
    except EspressoBoxError as e:
        batch.status = ImportStatus.FAILED
        batch.errors.append(str(e))
        with storage_errors("log import batch"):
            await batch.save()
        raise

    batch.status = ImportStatus.COMPLETED
    batch.beans_imported = summary.beans
    batch.grinders_imported = summary.grinders
    batch.machines_imported = summary.machines
    batch.sessions_imported = summary.sessions
    batch.unresolved_references = summary.unresolved_references
    with storage_errors("log import batch"):
        await batch.save()

    summary.batch_id = batch.id
    logger.info(
        "Imported %d beans, %d grinders, %d machines, %d sessions (%s mode, %d unresolved references)",
        summary.beans,
        summary.grinders,
        summary.machines,
        summary.sessions,
        mode.value,
        summary.unresolved_references,
    )
    return summary

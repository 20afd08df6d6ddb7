"""Parsing of export documents for import."""

import json
from pathlib import Path

import yaml
from pydantic import ValidationError

from espressobox.schemas.export import ExportDocument, ExportFormat
from espressobox.services.exceptions import ImportParseError


def detect_format(filename: str | Path) -> ExportFormat:
    """Pick JSON or YAML from a file extension. Anything else is read as JSON."""
    suffix = Path(filename).suffix.lower()
    if suffix in (".yaml", ".yml"):
        return ExportFormat.YAML
    return ExportFormat.JSON


def parse_export_document(
    content: bytes | str,
    file_format: ExportFormat | str = ExportFormat.JSON,
) -> ExportDocument:
    """Decode and validate an export document.

    Args:
        content: Raw file content.
        file_format: ``json`` or ``yaml``.

    Returns:
        The validated document.

    Raises:
        ImportParseError: The content is not valid JSON/YAML, or does not
            match the export schema.
    """
    file_format = ExportFormat(file_format)
    if not file_format.is_hierarchical:
        raise ImportParseError(f"Cannot import {file_format.value} files; use a JSON or YAML export")

    if isinstance(content, bytes):
        try:
            content = content.decode("utf-8")
        except UnicodeDecodeError as e:
            raise ImportParseError(f"File is not UTF-8 text: {e}") from e

    try:
        if file_format == ExportFormat.JSON:
            data = json.loads(content)
        else:
            data = yaml.safe_load(content)
    except (json.JSONDecodeError, yaml.YAMLError) as e:
        raise ImportParseError(f"Malformed {file_format.value} document: {e}") from e

    if not isinstance(data, dict):
        raise ImportParseError("Export document must be a mapping at the top level")

    try:
        document = ExportDocument.model_validate(data)
    except ValidationError as e:
        raise ImportParseError(f"Export document does not match the expected schema: {e}") from e

    _check_unique_ids(document)
    return document


def _check_unique_ids(document: ExportDocument) -> None:
    for kind, records in (
        ("beans", document.beans),
        ("grinders", document.grinders),
        ("machines", document.machines),
        ("sessions", document.sessions),
    ):
        seen: set[str] = set()
        for record in records:
            if record.id in seen:
                raise ImportParseError(f"Duplicate identifier in {kind}: {record.id}")
            seen.add(record.id)

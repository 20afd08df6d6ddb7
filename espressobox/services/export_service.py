"""Export service for writing the diary to JSON, YAML, CSV or Excel."""

import csv
import io
import json
import logging
from datetime import datetime
from pathlib import Path
from typing import Any

import aiofiles
import yaml
from openpyxl import Workbook
from openpyxl.styles import Alignment, Font, PatternFill
from openpyxl.utils import get_column_letter

from espressobox import __version__
from espressobox.config import settings
from espressobox.config.schema import MetricsConfig
from espressobox.models import Bean, BrewingSession, Grinder, Machine
from espressobox.models.base import utc_now
from espressobox.schemas.export import (
    BeanExport,
    ExportDocument,
    ExportFormat,
    GrinderExport,
    MachineExport,
    SessionExport,
    SessionFlatExport,
)
from espressobox.services.metrics import DEFAULT_METRICS
from espressobox.services.persistence import storage_errors

logger = logging.getLogger(__name__)


def _format_datetime(dt: datetime | None) -> str:
    """Format datetime for export."""
    if dt is None:
        return ""
    return dt.strftime("%Y-%m-%d %H:%M:%S")


def generate_filename(export_format: ExportFormat, now: datetime | None = None) -> str:
    """Generate the filename for an export.

    Hierarchical exports are named ``EspressoBox_Export_<yyyy-MM-dd_HHmmss>``;
    flat spreadsheet exports use ``EspressoBox_History_`` instead.
    """
    timestamp = (now or utc_now()).strftime("%Y-%m-%d_%H%M%S")
    kind = "Export" if export_format.is_hierarchical else "History"
    return f"EspressoBox_{kind}_{timestamp}.{export_format.value}"


# =============================================================================
# Hierarchical export
# =============================================================================


def build_export_document(
    beans: list[Any],
    grinders: list[Any],
    machines: list[Any],
    sessions: list[Any],
    export_date: datetime | None = None,
) -> ExportDocument:
    """Snapshot the entity graph into an export document."""
    return ExportDocument(
        beans=[BeanExport.from_bean(b) for b in beans],
        grinders=[GrinderExport.from_grinder(g) for g in grinders],
        machines=[MachineExport.from_machine(m) for m in machines],
        sessions=[SessionExport.from_session(s) for s in sessions],
        export_date=export_date or utc_now(),
        app_version=__version__,
    )


def serialize_document(
    document: ExportDocument,
    export_format: ExportFormat = ExportFormat.JSON,
) -> bytes:
    """Render an export document as pretty-printed JSON or YAML."""
    data = document.to_dict()
    if export_format == ExportFormat.JSON:
        return json.dumps(data, indent=2, ensure_ascii=False).encode("utf-8")
    if export_format == ExportFormat.YAML:
        return yaml.dump(data, default_flow_style=False, allow_unicode=True, sort_keys=False).encode("utf-8")
    raise ValueError(f"{export_format.value} is not a hierarchical export format")


async def load_export_document() -> ExportDocument:
    """Read every bean, grinder, machine and session from the store."""
    with storage_errors("load export data"):
        beans = await Bean.find_all().sort("+created_at").to_list()
        grinders = await Grinder.find_all().sort("+created_at").to_list()
        machines = await Machine.find_all().sort("+created_at").to_list()
        sessions = await BrewingSession.find_all().sort("+start_time").to_list()
    return build_export_document(beans, grinders, machines, sessions)


# =============================================================================
# Flat session history
# =============================================================================

SESSION_HEADERS = [
    "id",
    "start_time",
    "brew_method",
    "bean_name",
    "roaster",
    "grinder_name",
    "machine_name",
    "grind_setting",
    "dose_in",
    "yield_out",
    "brew_ratio",
    "brew_time",
    "extraction",
    "quality",
    "water_temp",
    "pressure",
    "rating",
    "acidity",
    "sweetness",
    "bitterness",
    "body_weight",
    "aftertaste",
    "taste_balance",
    "puck_prep_wdt",
    "puck_prep_rdt",
    "notes",
]


def _session_to_row(row: SessionFlatExport) -> list[Any]:
    """Convert a flat session schema to a row for CSV/Excel."""
    return [
        row.id,
        _format_datetime(row.start_time),
        row.brew_method,
        row.bean_name or "",
        row.roaster or "",
        row.grinder_name or "",
        row.machine_name or "",
        row.grind_setting,
        row.dose_in,
        row.yield_out,
        row.brew_ratio,
        row.brew_time,
        row.extraction,
        row.quality,
        row.water_temp,
        row.pressure,
        row.rating,
        row.acidity,
        row.sweetness,
        row.bitterness,
        row.body_weight,
        row.aftertaste,
        row.taste_balance,
        row.puck_prep_wdt,
        row.puck_prep_rdt,
        row.notes,
    ]


def export_sessions_to_csv(sessions: list[SessionFlatExport]) -> bytes:
    """Export brewing sessions to CSV format."""
    output = io.StringIO()
    writer = csv.writer(output)

    writer.writerow(SESSION_HEADERS)
    for row in sessions:
        writer.writerow(_session_to_row(row))

    return output.getvalue().encode("utf-8")


def export_sessions_to_xlsx(sessions: list[SessionFlatExport]) -> bytes:
    """Export brewing sessions to Excel (XLSX) format.

    Args:
        sessions: List of flat session export schemas

    Returns:
        XLSX content as bytes
    """
    wb = Workbook()
    ws = wb.active
    ws.title = "Sessions"

    # Header styling
    header_font = Font(bold=True, color="FFFFFF")
    header_fill = PatternFill(start_color="6F4E37", end_color="6F4E37", fill_type="solid")
    header_alignment = Alignment(horizontal="center")

    for col_idx, header in enumerate(SESSION_HEADERS, 1):
        cell = ws.cell(row=1, column=col_idx, value=header)
        cell.font = header_font
        cell.fill = header_fill
        cell.alignment = header_alignment

    for row_idx, row in enumerate(sessions, 2):
        for col_idx, value in enumerate(_session_to_row(row), 1):
            ws.cell(row=row_idx, column=col_idx, value=value)

    # Auto-adjust column widths
    for col_idx, header in enumerate(SESSION_HEADERS, 1):
        col_letter = get_column_letter(col_idx)
        max_length = len(header)
        for row_idx in range(2, len(sessions) + 2):
            cell_value = ws.cell(row=row_idx, column=col_idx).value
            if cell_value:
                max_length = max(max_length, len(str(cell_value)))
        ws.column_dimensions[col_letter].width = min(max_length + 2, 50)

    ws.freeze_panes = "A2"

    output = io.BytesIO()
    wb.save(output)
    return output.getvalue()


async def load_session_history(config: MetricsConfig = DEFAULT_METRICS) -> list[SessionFlatExport]:
    """Flatten every session, newest first, with its references resolved."""
    with storage_errors("load session history"):
        beans = {b.id: b for b in await Bean.find_all().to_list()}
        grinders = {g.id: g for g in await Grinder.find_all().to_list()}
        machines = {m.id: m for m in await Machine.find_all().to_list()}
        sessions = await BrewingSession.find_all().sort("-start_time").to_list()
    return [
        SessionFlatExport.from_session(
            s,
            bean=beans.get(s.bean_id),
            grinder=grinders.get(s.grinder_id),
            machine=machines.get(s.machine_id),
            config=config,
        )
        for s in sessions
    ]


# =============================================================================
# Entry point
# =============================================================================


async def render_export(
    export_format: ExportFormat = ExportFormat.JSON,
    config: MetricsConfig = DEFAULT_METRICS,
) -> bytes:
    """Read the store and render it in the requested format."""
    if export_format.is_hierarchical:
        document = await load_export_document()
        logger.info(
            "Exporting %d beans, %d grinders, %d machines, %d sessions",
            len(document.beans),
            len(document.grinders),
            len(document.machines),
            len(document.sessions),
        )
        return serialize_document(document, export_format)

    rows = await load_session_history(config)
    logger.info("Exporting %d sessions to %s", len(rows), export_format.value)
    if export_format == ExportFormat.CSV:
        return export_sessions_to_csv(rows)
    return export_sessions_to_xlsx(rows)


async def export_all_data(
    export_format: ExportFormat = ExportFormat.JSON,
    output_dir: Path | None = None,
    config: MetricsConfig = DEFAULT_METRICS,
) -> Path:
    """Export the whole diary to a timestamped file and return its path."""
    output_dir = output_dir or settings.export_path
    output_dir.mkdir(parents=True, exist_ok=True)

    content = await render_export(export_format, config)
    path = output_dir / generate_filename(export_format)
    async with aiofiles.open(path, "wb") as f:
        await f.write(content)

    logger.info("Wrote export to %s", path)
    return path

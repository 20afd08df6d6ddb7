"""Tests for data export."""

import csv
import io
import json
from datetime import datetime, timezone

import pytest
import yaml
from openpyxl import load_workbook
from pymongo.errors import PyMongoError

from espressobox import __version__
from espressobox.models import Bean
from espressobox.schemas.export import ExportDocument, ExportFormat, SessionFlatExport
from espressobox.services.exceptions import PersistenceError
from espressobox.services.export_service import (
    SESSION_HEADERS,
    build_export_document,
    export_all_data,
    export_sessions_to_csv,
    export_sessions_to_xlsx,
    generate_filename,
    render_export,
    serialize_document,
)
from espressobox.services.session_management import create_session

NOW = datetime(2026, 10, 19, 8, 30, 0, tzinfo=timezone.utc)


class TestGenerateFilename:
    def test_hierarchical_names(self):
        assert generate_filename(ExportFormat.JSON, NOW) == "EspressoBox_Export_2026-10-19_083000.json"
        assert generate_filename(ExportFormat.YAML, NOW) == "EspressoBox_Export_2026-10-19_083000.yaml"

    def test_history_names(self):
        assert generate_filename(ExportFormat.CSV, NOW) == "EspressoBox_History_2026-10-19_083000.csv"
        assert generate_filename(ExportFormat.XLSX, NOW) == "EspressoBox_History_2026-10-19_083000.xlsx"


class TestSerializeDocument:
    def test_empty_document(self):
        document = ExportDocument(export_date=NOW)
        data = json.loads(serialize_document(document))
        assert data == {
            "beans": [],
            "grinders": [],
            "machines": [],
            "sessions": [],
            "exportDate": "2026-10-19T08:30:00Z",
            "appVersion": __version__,
        }

    def test_json_is_pretty_printed(self):
        content = serialize_document(ExportDocument(export_date=NOW)).decode("utf-8")
        assert '\n  "beans": []' in content

    def test_rejects_flat_formats(self):
        with pytest.raises(ValueError):
            serialize_document(ExportDocument(), ExportFormat.CSV)


async def test_export_document_uses_camel_case_keys(sample_session, sample_bean, sample_grinder, sample_machine):
    document = build_export_document(
        [sample_bean], [sample_grinder], [sample_machine], [sample_session], export_date=NOW
    )
    data = json.loads(serialize_document(document))

    bean = data["beans"][0]
    assert bean["id"] == sample_bean.id
    assert bean["roastLevel"] == "Medium"
    assert bean["tastingNotes"] == "Blueberry, jasmine"
    assert bean["batchNumber"] == 1
    assert bean["isArchived"] is False
    assert "image_path" not in bean and "imagePath" not in bean

    session = data["sessions"][0]
    assert session["doseIn"] == 18.0
    assert session["yieldOut"] == 36.0
    assert session["bodyWeight"] == 3
    assert session["puckPrepWDT"] is True
    assert session["puckPrepRDT"] is False
    assert session["beanId"] == sample_bean.id
    assert session["grinderId"] == sample_grinder.id
    assert session["machineId"] == sample_machine.id
    assert session["startTime"] == "2026-10-18T08:30:00Z"

    assert data["grinders"][0]["burrSize"] == 63
    assert data["machines"][0]["groupHeadType"] == "Saturated"
    assert document.total_count == 4


async def test_yaml_export_keeps_key_order(sample_session):
    content = await render_export(ExportFormat.YAML)
    data = yaml.safe_load(content)
    assert list(data) == ["beans", "grinders", "machines", "sessions", "exportDate", "appVersion"]
    assert len(data["sessions"]) == 1


class TestFlatExport:
    def test_csv_headers_only_when_empty(self):
        rows = list(csv.reader(io.StringIO(export_sessions_to_csv([]).decode("utf-8"))))
        assert rows == [SESSION_HEADERS]

    def test_xlsx_headers_only_when_empty(self):
        wb = load_workbook(io.BytesIO(export_sessions_to_xlsx([])))
        ws = wb.active
        assert ws.title == "Sessions"
        assert [c.value for c in ws[1]] == SESSION_HEADERS
        assert ws.max_row == 1


async def test_flat_row_resolves_references(sample_session, sample_bean, sample_grinder, sample_machine):
    row = SessionFlatExport.from_session(sample_session, sample_bean, sample_grinder, sample_machine)
    assert row.bean_name == "Ethiopia Guji"
    assert row.roaster == "Square Mile"
    assert row.grinder_name == "Niche Zero"
    assert row.machine_name == "Linea Micra"
    assert row.brew_ratio == 2.0
    assert row.extraction == "Optimal"
    assert row.quality == "On Target"
    assert row.taste_balance == "Balanced"


async def test_csv_history_is_newest_first(sample_session):
    await create_session(dose_in=18, yield_out=40, brew_time=31, start_time=NOW)

    content = await render_export(ExportFormat.CSV)
    rows = list(csv.DictReader(io.StringIO(content.decode("utf-8"))))

    assert len(rows) == 2
    assert rows[0]["yield_out"] == "40.0"
    assert rows[0]["bean_name"] == ""
    assert rows[1]["bean_name"] == "Ethiopia Guji"
    assert rows[1]["start_time"] == "2026-10-18 08:30:00"


async def test_xlsx_history(sample_session):
    content = await render_export(ExportFormat.XLSX)
    ws = load_workbook(io.BytesIO(content)).active
    assert ws.max_row == 2
    assert ws.cell(row=1, column=1).font.bold
    assert ws.cell(row=2, column=1).value == sample_session.id


async def test_export_all_data_writes_file(sample_session, tmp_path):
    path = await export_all_data(ExportFormat.JSON, output_dir=tmp_path / "exports")
    assert path.parent == tmp_path / "exports"
    assert path.name.startswith("EspressoBox_Export_")
    assert path.suffix == ".json"

    data = json.loads(path.read_text(encoding="utf-8"))
    assert [s["id"] for s in data["sessions"]] == [sample_session.id]


async def test_export_all_data_defaults_to_configured_dir(init_test_db, tmp_path):
    path = await export_all_data(ExportFormat.CSV)
    assert path.parent == tmp_path / "data" / "exports"
    assert path.name.startswith("EspressoBox_History_")


@pytest.mark.parametrize("export_format", [ExportFormat.JSON, ExportFormat.CSV])
async def test_export_read_failure_becomes_persistence_error(init_test_db, monkeypatch, tmp_path, export_format):
    def failing_find_all(*args, **kwargs):
        raise PyMongoError("connection reset")

    monkeypatch.setattr(Bean, "find_all", failing_find_all)

    with pytest.raises(PersistenceError, match="connection reset"):
        await export_all_data(export_format, output_dir=tmp_path)
    assert list(tmp_path.iterdir()) == []

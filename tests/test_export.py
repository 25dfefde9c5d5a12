"""Tests for CSV/XLSX export encoding and the export job registry."""

from __future__ import annotations

import asyncio
import csv
from datetime import date
from io import BytesIO, StringIO

import pytest
from openpyxl import load_workbook

from adminportal.export import (
    CsvExporter,
    ExportCancelled,
    ExportColumn,
    ExportJobRegistry,
    XlsxExporter,
    export_filename,
    run_export,
)

COLUMNS = (
    ExportColumn("Name", "name", width=30),
    ExportColumn("Proxied", "proxied", width=10, kind="bool"),
    ExportColumn("Expression", "filter.expression", width=40),
)

TODAY = date(2024, 3, 9)


def _records(count: int) -> list[dict]:
    return [{"name": f"row{i}", "proxied": i % 2 == 0, "filter": {"expression": f"ip.src eq {i}"}} for i in range(count)]


def test_export_filename_uses_iso_date():
    assert export_filename("dns_records", "csv", TODAY) == "dns_records_2024-03-09.csv"


def test_csv_quotes_every_cell_and_doubles_embedded_quotes():
    records = [
        {"name": 'say "hi", ok', "proxied": True, "filter": {"expression": "a\nb"}},
        {"name": None, "proxied": None},
    ]
    result = asyncio.run(run_export(CsvExporter(COLUMNS), records, stem="rules", today=TODAY))

    text = result.content.decode("utf-8")
    assert text.startswith('"Name","Proxied","Expression"\n')
    assert '"say ""hi"", ok","Yes","a\nb"' in text
    assert text.endswith('"","",""')
    assert not text.endswith("\n")
    assert result.filename == "rules_2024-03-09.csv"
    assert result.media_type.startswith("text/csv")


def test_csv_parses_back_to_the_rendered_cells():
    records = _records(5) + [{"name": "comma, and \"quote\"", "proxied": "no"}]
    result = asyncio.run(run_export(CsvExporter(COLUMNS, placeholder="-"), records, stem="x", today=TODAY))

    rows = list(csv.reader(StringIO(result.content.decode("utf-8"))))
    assert rows[0] == ["Name", "Proxied", "Expression"]
    assert rows[1] == ["row0", "Yes", "ip.src eq 0"]
    assert rows[-1] == ['comma, and "quote"', "No", "-"]
    assert len(rows) == 7


def test_csv_is_byte_identical_across_runs():
    records = _records(450)
    first = asyncio.run(run_export(CsvExporter(COLUMNS), records, stem="x", chunk_size=100, today=TODAY))
    second = asyncio.run(run_export(CsvExporter(COLUMNS), records, stem="x", chunk_size=7, today=TODAY))
    assert first.content == second.content


def test_xlsx_workbook_reads_back_with_styled_header():
    result = asyncio.run(
        run_export(XlsxExporter(COLUMNS, sheet_name="Firewall Rules"), _records(3), stem="fw", today=TODAY)
    )

    assert result.filename == "fw_2024-03-09.xlsx"
    wb = load_workbook(BytesIO(result.content))
    ws = wb["Firewall Rules"]
    values = [[cell.value for cell in row] for row in ws.iter_rows()]
    assert values[0] == ["Name", "Proxied", "Expression"]
    assert values[1] == ["row0", "Yes", "ip.src eq 0"]
    assert len(values) == 4
    assert ws["A1"].font.bold is True
    assert ws.column_dimensions["C"].width == 40


def test_xlsx_uses_dash_placeholder_for_missing_values():
    result = asyncio.run(
        run_export(XlsxExporter(COLUMNS, sheet_name="S"), [{"name": "only"}], stem="s", today=TODAY)
    )
    ws = load_workbook(BytesIO(result.content)).active
    assert [c.value for c in ws[2]] == ["only", "-", "-"]


def test_progress_reports_each_chunk():
    seen = []
    asyncio.run(run_export(CsvExporter(COLUMNS), _records(450), stem="x", progress=seen.append, chunk_size=200))

    assert [(p.rows_done, p.rows_total) for p in seen] == [(200, 450), (400, 450), (450, 450)]
    assert seen[-1].percent == 100
    assert seen[0].bytes_done and seen[0].bytes_done < seen[-1].bytes_done


def test_csv_progress_bytes_reach_the_known_total():
    seen = []
    result = asyncio.run(run_export(CsvExporter(COLUMNS), _records(5), stem="x", progress=seen.append, chunk_size=2))

    assert [p.rows_done for p in seen] == [2, 4, 5]
    assert {p.bytes_total for p in seen} == {len(result.content)}
    assert seen[0].bytes_done < seen[-1].bytes_done == seen[-1].bytes_total


def test_xlsx_progress_has_no_byte_total():
    seen = []
    asyncio.run(
        run_export(XlsxExporter(COLUMNS, sheet_name="S"), _records(3), stem="s", progress=seen.append, chunk_size=2)
    )
    assert [(p.bytes_done, p.bytes_total) for p in seen] == [(None, None), (None, None)]


def test_progress_for_empty_export_is_complete():
    seen = []
    result = asyncio.run(run_export(CsvExporter(COLUMNS), [], stem="x", progress=seen.append))
    assert seen[-1].percent == 100
    assert result.content == b'"Name","Proxied","Expression"'


def test_cancel_between_chunks_raises_and_returns_nothing():
    cancel = asyncio.Event()

    def on_progress(progress):
        if progress.rows_done >= 10:
            cancel.set()

    with pytest.raises(ExportCancelled) as exc_info:
        asyncio.run(
            run_export(CsvExporter(COLUMNS), _records(100), stem="x", progress=on_progress, cancel=cancel, chunk_size=10)
        )
    assert exc_info.value.message == "Export canceled."


@pytest.mark.asyncio
async def test_job_registry_completes_and_reports_progress():
    registry = ExportJobRegistry()

    async def build(job):
        return await run_export(CsvExporter(COLUMNS), _records(30), stem="j", progress=job.on_progress, chunk_size=10)

    job = registry.start("dns", "csv", build)
    await job.task

    state = registry.get(job.job_id).to_dict()
    assert state["status"] == "completed"
    assert state["percent"] == 100
    assert state["rowsDone"] == state["rowsTotal"] == 30
    assert state["bytesDone"] == state["bytesTotal"] == len(job.result.content)
    assert state["filename"].startswith("j_")
    assert job.result.content.startswith(b'"Name"')


@pytest.mark.asyncio
async def test_job_registry_cancel_marks_job_canceled():
    registry = ExportJobRegistry()
    started = asyncio.Event()

    async def build(job):
        started.set()
        await job.cancel_event.wait()
        return await run_export(CsvExporter(COLUMNS), _records(5), stem="j", cancel=job.cancel_event)

    job = registry.start("users", "xlsx", build)
    await started.wait()
    assert registry.cancel(job.job_id) is job
    await job.task

    assert job.status == "canceled"
    assert job.to_dict()["error"] == "Export canceled."
    assert registry.cancel("missing") is None


@pytest.mark.asyncio
async def test_job_registry_records_failures():
    registry = ExportJobRegistry()

    async def build(job):
        raise RuntimeError("source unavailable")

    job = registry.start("activity", "csv", build)
    await job.task
    assert job.status == "failed"
    assert job.error == "source unavailable"
    await registry.close()

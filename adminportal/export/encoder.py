"""Chunked, cancellable CSV / XLSX encoding of filtered list records."""

from __future__ import annotations

import asyncio
import csv
import logging
from dataclasses import dataclass
from datetime import date
from io import BytesIO, StringIO
from typing import Any, Callable, Iterable, Mapping, Optional, Sequence

from openpyxl import Workbook
from openpyxl.styles import Font, PatternFill
from openpyxl.utils import get_column_letter

from ..pipeline.listing import get_field
from ..pipeline.timestamps import format_local

logger = logging.getLogger(__name__)

CSV_MEDIA_TYPE = "text/csv; charset=utf-8"
XLSX_MEDIA_TYPE = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"

DEFAULT_CHUNK_SIZE = 200


class ExportCancelled(Exception):
    """The user canceled an export before it completed."""

    def __init__(self, message: str = "Export canceled."):
        super().__init__(message)
        self.message = message


@dataclass(slots=True, frozen=True)
class ExportColumn:
    header: str
    key: str
    width: Optional[int] = None
    kind: str = "text"  # text | timestamp | bool

    def render(self, record: Mapping[str, Any], placeholder: str) -> str:
        value = get_field(record, self.key)
        if self.kind == "bool":
            if value is None or value == "":
                return placeholder
            return "Yes" if _truthy(value) else "No"
        if self.kind == "timestamp":
            return format_local(value, placeholder)
        if value is None or value == "":
            return placeholder
        return str(value)


def _truthy(value: Any) -> bool:
    if isinstance(value, str):
        return value.strip().lower() in {"1", "true", "yes", "y", "on"}
    return bool(value)


@dataclass(slots=True)
class ExportProgress:
    rows_done: int
    rows_total: int
    bytes_done: Optional[int] = None
    bytes_total: Optional[int] = None

    @property
    def percent(self) -> int:
        if self.rows_total <= 0:
            return 100
        return int(self.rows_done * 100 / self.rows_total)


@dataclass(slots=True)
class ExportResult:
    filename: str
    content: bytes
    media_type: str


def export_filename(stem: str, extension: str, today: date | None = None) -> str:
    day = (today or date.today()).isoformat()
    return f"{stem}_{day}.{extension}"


class CsvExporter:
    """All cells quoted, embedded quotes doubled, rows joined with ``\\n``."""

    extension = "csv"
    media_type = CSV_MEDIA_TYPE

    def __init__(self, columns: Sequence[ExportColumn], *, placeholder: str = ""):
        self.columns = list(columns)
        self.placeholder = placeholder
        self._lines: list[str] = []
        self.bytes_done = 0

    def _encode(self, values: Iterable[str]) -> str:
        buf = StringIO()
        writer = csv.writer(buf, quoting=csv.QUOTE_ALL, lineterminator="\n")
        writer.writerow(list(values))
        return buf.getvalue()[:-1]

    def measure(self, records: Sequence[Mapping[str, Any]]) -> int:
        """Encoded size of the finished file, header and separators included."""
        lines = [self._encode(c.header for c in self.columns)]
        lines.extend(self._encode(c.render(r, self.placeholder) for c in self.columns) for r in records)
        return sum(len(line.encode("utf-8")) for line in lines) + len(lines) - 1

    def _push(self, line: str) -> None:
        if self._lines:
            self.bytes_done += 1  # separator
        self._lines.append(line)
        self.bytes_done += len(line.encode("utf-8"))

    def begin(self) -> None:
        self._lines = []
        self.bytes_done = 0
        self._push(self._encode(c.header for c in self.columns))

    def write_rows(self, records: Sequence[Mapping[str, Any]]) -> None:
        for record in records:
            self._push(self._encode(c.render(record, self.placeholder) for c in self.columns))

    def finish(self) -> bytes:
        return "\n".join(self._lines).encode("utf-8")


class XlsxExporter:
    """Single-sheet workbook with a styled header row and fixed column widths."""

    extension = "xlsx"
    media_type = XLSX_MEDIA_TYPE

    def __init__(self, columns: Sequence[ExportColumn], *, sheet_name: str, placeholder: str = "-"):
        self.columns = list(columns)
        self.sheet_name = sheet_name[:31]
        self.placeholder = placeholder
        self.bytes_done = None
        self._wb: Workbook | None = None

    def measure(self, records: Sequence[Mapping[str, Any]]) -> None:
        # zip container size is unknown until save
        return None

    def begin(self) -> None:
        self._wb = Workbook()
        ws = self._wb.active
        ws.title = self.sheet_name
        ws.append([c.header for c in self.columns])

        header_fill = PatternFill(start_color="366092", end_color="366092", fill_type="solid")
        header_font = Font(bold=True, color="FFFFFF")
        for cell in ws[1]:
            cell.fill = header_fill
            cell.font = header_font

        for idx, column in enumerate(self.columns, start=1):
            if column.width:
                ws.column_dimensions[get_column_letter(idx)].width = column.width

    def write_rows(self, records: Sequence[Mapping[str, Any]]) -> None:
        ws = self._wb.active
        for record in records:
            ws.append([c.render(record, self.placeholder) for c in self.columns])

    def finish(self) -> bytes:
        output = BytesIO()
        self._wb.save(output)
        self._wb = None
        return output.getvalue()


async def run_export(
    exporter,
    records: Sequence[Mapping[str, Any]],
    *,
    stem: str,
    progress: Callable[[ExportProgress], None] | None = None,
    cancel: asyncio.Event | None = None,
    chunk_size: int = DEFAULT_CHUNK_SIZE,
    today: date | None = None,
) -> ExportResult:
    """Encode ``records`` in chunks, yielding to the loop between chunks.

    Raises ``ExportCancelled`` when ``cancel`` is set; no partial output is
    returned in that case.
    """
    rows = list(records)
    total = len(rows)
    chunk_size = max(1, int(chunk_size))

    bytes_total = exporter.measure(rows)
    exporter.begin()
    done = 0
    for start in range(0, total, chunk_size):
        if cancel is not None and cancel.is_set():
            raise ExportCancelled()
        chunk = rows[start:start + chunk_size]
        exporter.write_rows(chunk)
        done += len(chunk)
        if progress:
            progress(
                ExportProgress(
                    rows_done=done,
                    rows_total=total,
                    bytes_done=exporter.bytes_done,
                    bytes_total=bytes_total,
                )
            )
        await asyncio.sleep(0)

    if cancel is not None and cancel.is_set():
        raise ExportCancelled()
    if total == 0 and progress:
        progress(ExportProgress(rows_done=0, rows_total=0, bytes_done=exporter.bytes_done, bytes_total=bytes_total))

    content = exporter.finish()
    filename = export_filename(stem, exporter.extension, today)
    logger.info("Export %s complete (%d rows, %d bytes)", filename, total, len(content))
    return ExportResult(filename=filename, content=content, media_type=exporter.media_type)

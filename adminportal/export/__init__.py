"""CSV / XLSX export of filtered list records."""

from .encoder import (
    CsvExporter,
    ExportCancelled,
    ExportColumn,
    ExportProgress,
    ExportResult,
    XlsxExporter,
    export_filename,
    run_export,
)
from .jobs import ExportJob, ExportJobRegistry

__all__ = [
    "CsvExporter",
    "ExportCancelled",
    "ExportColumn",
    "ExportJob",
    "ExportJobRegistry",
    "ExportProgress",
    "ExportResult",
    "XlsxExporter",
    "export_filename",
    "run_export",
]

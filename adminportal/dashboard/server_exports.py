"""CSV/XLSX export downloads and the background export job API."""

from __future__ import annotations

import asyncio
import logging
from typing import Callable, Mapping, Optional

from aiohttp import web

from ..export.encoder import (
    CsvExporter,
    ExportCancelled,
    ExportProgress,
    ExportResult,
    XlsxExporter,
    run_export,
)
from ..export.jobs import ExportJob
from ..pipeline.pages import PageDefinition, get_page
from .server_helpers import _json_error, _json_http_error

logger = logging.getLogger(__name__)


class ExportSourceError(RuntimeError):
    """The page's records could not be fetched, so nothing was encoded."""


def _attachment(result: ExportResult) -> web.Response:
    return web.Response(
        body=result.content,
        headers={
            "Content-Type": result.media_type,
            "Content-Disposition": f'attachment; filename="{result.filename}"',
        },
    )


class PortalServerExportsMixin:
    """Export endpoints."""

    def _resolve_export(self, page_name: object, fmt: object) -> tuple[PageDefinition, str]:
        page_def = get_page(str(page_name or ""))
        fmt = str(fmt or "").strip().lower()
        if page_def is None or fmt not in page_def.exports:
            raise _json_http_error(web.HTTPNotFound, "Unknown export.")
        return page_def, fmt

    async def _build_export(
        self,
        page_def: PageDefinition,
        fmt: str,
        query: Mapping[str, str],
        *,
        progress: Callable[[ExportProgress], None] | None = None,
        cancel: Optional[asyncio.Event] = None,
    ) -> ExportResult:
        """Encode the page's filtered, sorted records (every page, not just the visible one)."""
        spec = page_def.exports[fmt]
        pipeline = await self._load_pipeline(page_def, query)
        if pipeline.error is not None:
            raise ExportSourceError(pipeline.error.message)
        if fmt == "csv":
            exporter = CsvExporter(spec.columns, placeholder=spec.placeholder)
        else:
            exporter = XlsxExporter(
                spec.columns,
                sheet_name=spec.sheet_name or page_def.title,
                placeholder=spec.placeholder or "-",
            )
        return await run_export(
            exporter,
            pipeline.sorted_filtered(),
            stem=spec.stem,
            progress=progress,
            cancel=cancel,
        )

    async def _admin_export(self, request: web.Request) -> web.Response:
        page_def, fmt = self._resolve_export(request.match_info.get("page"), request.match_info.get("fmt"))
        cancel = asyncio.Event()

        def _watch_client(_progress: ExportProgress) -> None:
            transport = request.transport
            if transport is None or transport.is_closing():
                cancel.set()

        try:
            result = await self._build_export(page_def, fmt, request.query, progress=_watch_client, cancel=cancel)
        except ExportSourceError as exc:
            return _json_error(500, str(exc))
        except ExportCancelled as exc:
            logger.info("Export %s.%s canceled: client disconnected", page_def.name, fmt)
            return _json_error(409, exc.message)
        except asyncio.CancelledError:
            logger.info("Export %s.%s canceled: request aborted", page_def.name, fmt)
            raise
        return _attachment(result)

    async def _admin_api_export_start(self, request: web.Request) -> web.Response:
        self._require_csrf_header(request)
        body = await self._read_json(request)
        page_def, fmt = self._resolve_export(body.get("page"), body.get("format"))
        raw_query = body.get("query")
        query = (
            {str(k): str(v) for k, v in raw_query.items() if v is not None}
            if isinstance(raw_query, dict)
            else {}
        )

        async def _build(job: ExportJob) -> ExportResult:
            return await self._build_export(
                page_def,
                fmt,
                query,
                progress=job.on_progress,
                cancel=job.cancel_event,
            )

        job = self.exports.start(page_def.name, fmt, _build)
        logger.info("Export job %s started for %s.%s", job.job_id, page_def.name, fmt)
        return web.json_response({"success": True, "data": job.to_dict()}, status=202)

    def _get_export_job(self, request: web.Request) -> ExportJob:
        job = self.exports.get(request.match_info.get("job_id", ""))
        if job is None:
            raise _json_http_error(web.HTTPNotFound, "Export job not found.")
        return job

    async def _admin_api_export_status(self, request: web.Request) -> web.Response:
        job = self._get_export_job(request)
        return web.json_response({"success": True, "data": job.to_dict()})

    async def _admin_api_export_cancel(self, request: web.Request) -> web.Response:
        self._require_csrf_header(request)
        job = self._get_export_job(request)
        self.exports.cancel(job.job_id)
        return web.json_response({"success": True, "data": job.to_dict()})

    async def _admin_api_export_download(self, request: web.Request) -> web.Response:
        job = self._get_export_job(request)
        if job.status != "completed" or job.result is None:
            return _json_error(409, f"Export is {job.status}.")
        return _attachment(job.result)

"""Server-rendered admin list pages and their bulk actions."""

from __future__ import annotations

import logging
from typing import Any, Awaitable, Mapping, Optional

import aiosqlite
from aiohttp import web

from ..cloudflare.aggregation import analytics_totals
from ..config import ConfigurationError
from ..export.encoder import ExportColumn
from ..mutations import apply_quota_updates, plan_quota_fixes
from ..pipeline.listing import ListPipeline
from ..pipeline.pages import (
    ANALYTICS_PAGE,
    APPLICATIONS_PAGE,
    APPLICATIONS_TABLE_PAGE_SIZE,
    PageDefinition,
    get_page,
)
from ..storage.db.users import company_for_email, convert_email_address
from ..storage.enums import TransferKind
from .server_helpers import (
    CLOUDFLARE_PAGES,
    RECORD_PAGES,
    _build_query_link,
    _escape,
    _flash,
    _format_bytes,
    _format_number,
    _hidden_inputs,
)
from .server_layout import _layout
from .server_render import (
    _pipeline_query,
    _render_cards,
    _render_filter_bar,
    _render_notifications,
    _render_pagination,
    _render_table,
)

logger = logging.getLogger(__name__)

TABLE_COLUMNS: dict[str, tuple[ExportColumn, ...]] = {
    "dns": (
        ExportColumn("Name", "name"),
        ExportColumn("Type", "type"),
        ExportColumn("Content", "content"),
        ExportColumn("TTL", "ttl"),
        ExportColumn("Status", "status"),
        ExportColumn("Zone", "zoneName"),
        ExportColumn("Last Modified", "lastModified", kind="timestamp"),
    ),
    "firewall": (
        ExportColumn("Description", "description"),
        ExportColumn("Action", "action"),
        ExportColumn("Expression", "filter.expression"),
        ExportColumn("Paused", "paused", kind="bool"),
        ExportColumn("Zone", "zone_id"),
        ExportColumn("Modified", "modified_on", kind="timestamp"),
    ),
    "zones": (
        ExportColumn("Name", "name"),
        ExportColumn("Status", "status"),
        ExportColumn("Paused", "paused", kind="bool"),
        ExportColumn("Created", "created_on", kind="timestamp"),
        ExportColumn("ID", "id"),
    ),
    "analytics": (
        ExportColumn("Zone", "zoneId"),
        ExportColumn("Day", "data.dimensions.datetime", kind="timestamp"),
        ExportColumn("Requests", "data.sum.requests"),
        ExportColumn("Cached", "data.sum.cachedRequests"),
        ExportColumn("Bandwidth (bytes)", "data.sum.bandwidth"),
        ExportColumn("Threats", "data.sum.threats"),
    ),
    "sessions": (
        ExportColumn("Status", "status"),
        ExportColumn("Email", "email"),
        ExportColumn("Department", "department"),
        ExportColumn("Timestamp", "timestamp", kind="timestamp"),
        ExportColumn("IP Address", "ipAddress"),
        ExportColumn("Device ID", "deviceId"),
        ExportColumn("User Agent", "userAgent"),
    ),
    "activity": (
        ExportColumn("Activity #", "activitynumber"),
        ExportColumn("Reference ID", "referenceid"),
        ExportColumn("Company", "companyname"),
        ExportColumn("Contact", "contactperson"),
        ExportColumn("Project", "projectname"),
        ExportColumn("Source", "source"),
        ExportColumn("Target Quota", "targetquota"),
        ExportColumn("CSR Agent", "csragent"),
        ExportColumn("Created", "date_created", kind="timestamp"),
    ),
    "users": (
        ExportColumn("Reference ID", "referenceid"),
        ExportColumn("First Name", "firstname"),
        ExportColumn("Last Name", "lastname"),
        ExportColumn("Email", "email"),
        ExportColumn("Company", "company"),
        ExportColumn("Department", "department"),
        ExportColumn("Role", "role"),
        ExportColumn("Status", "status"),
        ExportColumn("TSM", "tsm"),
        ExportColumn("Manager", "manager"),
        ExportColumn("Target Quota", "targetquota"),
        ExportColumn("Updated", "updated_at", kind="timestamp"),
    ),
    "applications": (
        ExportColumn("Title", "title"),
        ExportColumn("Description", "description"),
    ),
}

# (action, button label, destructive)
PAGE_ACTIONS: dict[str, tuple[tuple[str, str, bool], ...]] = {
    "sessions": (("delete", "Delete selected", True),),
    "users": (
        ("delete", "Delete selected", True),
        ("transfer", "Transfer", False),
        ("convert-email", "Convert emails", False),
    ),
    "activity": (
        ("delete", "Delete selected", True),
        ("fix-quota", "Fix missing quotas", False),
        ("set-quota", "Set quota", False),
    ),
}

_ACTION_INPUTS = {
    "users": (
        '<select class="pt-select" name="type">'
        '<option value="TSM">TSM</option><option value="Manager">Manager</option>'
        "</select>"
        '<input class="pt-input" type="text" name="targetId" placeholder="Target reference ID" />'
    ),
    "activity": '<input class="pt-input" type="text" name="targetquota" placeholder="Target quota" />',
}


class PortalServerPagesMixin:
    """List pages driven by the shared pipeline."""

    def _render_html(self, request: web.Request, *, title: str, body: str, show_account: bool = True) -> web.Response:
        session = request.get("session") if show_account else None
        html = _layout(
            title=title,
            body=body,
            theme=self.preferences.theme,
            user_email=(session or {}).get("email"),
            show_nav=show_account,
        )
        resp = web.Response(text=html, content_type="text/html")
        csrf = self._get_or_set_csrf(request, resp)
        resp.text = resp.text.replace("__SET_COOKIE__", csrf)
        return resp

    # ------------------------------------------------------------------
    # Data loading
    # ------------------------------------------------------------------

    async def _page_envelope(self, page_name: str) -> tuple[int, dict]:
        """The same envelope the page's JSON route answers with."""
        if page_name in CLOUDFLARE_PAGES:
            return await self._cloudflare_envelope(page_name)
        if page_name == APPLICATIONS_PAGE.name:
            return 200, {"success": True, "data": list(self.applications)}

        try:
            db = self._require_database()
            if page_name == "sessions":
                data = await db.list_session_logs()
            elif page_name == "activity":
                data = await db.list_activities()
            else:
                data = await db.list_users()
        except ConfigurationError as exc:
            return 500, {"success": False, "error": str(exc)}
        except aiosqlite.Error as exc:
            logger.warning("Loading %s failed: %s", page_name, exc)
            return 500, {"success": False, "error": f"Database error: {exc}"}
        return 200, {"success": True, "data": data}

    async def _load_pipeline(
        self,
        page_def: PageDefinition,
        query: Mapping[str, str],
        *,
        page_size: Optional[int] = None,
    ) -> ListPipeline:
        pipeline = ListPipeline(page_def.list_config)
        if page_size:
            pipeline.state.page_size = page_size
        status, payload = await self._page_envelope(page_def.name)
        pipeline.load(status, payload)
        pipeline.apply_query(query)
        return pipeline

    async def _api_applications(self, request: web.Request) -> web.Response:
        status, body = await self._page_envelope(APPLICATIONS_PAGE.name)
        return web.json_response(body, status=status)

    # ------------------------------------------------------------------
    # Rendering
    # ------------------------------------------------------------------

    def _render_records(self, page_def: PageDefinition, pipeline: ListPipeline) -> str:
        columns = TABLE_COLUMNS[page_def.name]
        actions = PAGE_ACTIONS.get(page_def.name)
        table = _render_table(
            columns,
            pipeline.visible(),
            id_field=page_def.list_config.id_field if actions else None,
            selected=pipeline.state.selected_ids,
            all_selected=pipeline.all_selected(),
        )
        if not actions:
            return table

        hidden = _hidden_inputs(
            [("csrf", "__SET_COOKIE__")]
            + list(_pipeline_query(pipeline, page=pipeline.state.current_page).items())
        )
        buttons = "".join(
            f'<button class="pt-btn{" pt-btn-danger" if destructive else ""}" type="submit" '
            f'formaction="/admin/{page_def.name}/{action}">{_escape(label)}</button>'
            for action, label, destructive in actions
        )
        return f"""
        <form method="post" action="/admin/{page_def.name}/{actions[0][0]}">
          {hidden}
          <div class="pt-row" style="margin-bottom: 8px;">{_ACTION_INPUTS.get(page_def.name, "")}{buttons}</div>
          {table}
        </form>
        """

    def _render_list_page(
        self,
        request: web.Request,
        page_def: PageDefinition,
        pipeline: ListPipeline,
        *,
        base: str,
        extra: Optional[Mapping[str, object]] = None,
        before: str = "",
        content: Optional[str] = None,
    ) -> web.Response:
        msg = request.query.get("msg")
        body = "".join(
            [
                _flash(msg, error=request.query.get("error") == "1"),
                _render_notifications(pipeline.notifications),
                _render_filter_bar(page_def, pipeline, base=base, extra=extra),
                before,
                content if content is not None else self._render_records(page_def, pipeline),
                _render_pagination(pipeline, base=base, extra=extra),
            ]
        )
        return self._render_html(request, title=page_def.title, body=body)

    # ------------------------------------------------------------------
    # Pages
    # ------------------------------------------------------------------

    async def _admin_cloudflare_page(self, request: web.Request) -> web.Response:
        resource = request.match_info.get("resource", "")
        page_def = get_page(resource)
        if page_def is None or resource not in CLOUDFLARE_PAGES:
            raise web.HTTPNotFound(text="Page not found.")
        pipeline = await self._load_pipeline(page_def, request.query)

        before = ""
        if page_def is ANALYTICS_PAGE and pipeline.error is None:
            totals = analytics_totals(pipeline.filtered())
            before = f"""
            <div class="pt-panel pt-row">
              <span>Requests: <strong>{_format_number(totals["requests"])}</strong></span>
              <span>Cached: <strong>{_format_number(totals["cachedRequests"])}</strong></span>
              <span>Bandwidth: <strong>{_format_bytes(totals["bandwidth"])}</strong></span>
              <span>Threats: <strong>{_format_number(totals["threats"])}</strong></span>
            </div>
            """
        return self._render_list_page(
            request,
            page_def,
            pipeline,
            base=f"/admin/cloudflare/{page_def.name}",
            before=before,
        )

    async def _admin_records_page(self, request: web.Request) -> web.Response:
        page_def = get_page(request.match_info.get("page", ""))
        if page_def is None or page_def.name not in RECORD_PAGES:
            raise web.HTTPNotFound(text="Page not found.")
        pipeline = await self._load_pipeline(page_def, request.query)
        return self._render_list_page(request, page_def, pipeline, base=f"/admin/{page_def.name}")

    async def _admin_applications_page(self, request: web.Request) -> web.Response:
        table_view = request.query.get("view") == "table"
        pipeline = await self._load_pipeline(
            APPLICATIONS_PAGE,
            request.query,
            page_size=APPLICATIONS_TABLE_PAGE_SIZE if table_view else None,
        )
        base = "/admin/applications"
        extra = {"view": "table"} if table_view else {}
        toggle_href = _build_query_link(base, q=pipeline.state.search_text, view="" if table_view else "table")
        toggle = (
            f'<div class="pt-row" style="margin-bottom: 8px;">'
            f'<a class="pt-btn" href="{_escape(toggle_href)}">{"Card view" if table_view else "Table view"}</a>'
            f"</div>"
        )
        if table_view:
            content = _render_table(TABLE_COLUMNS["applications"], pipeline.visible())
        else:
            content = _render_cards(pipeline.visible())
        return self._render_list_page(
            request,
            APPLICATIONS_PAGE,
            pipeline,
            base=base,
            extra=extra,
            before=toggle,
            content=content,
        )

    # ------------------------------------------------------------------
    # Bulk actions
    # ------------------------------------------------------------------

    async def _admin_page_action(self, request: web.Request) -> web.Response:
        page_name = request.match_info.get("page", "")
        action = request.match_info.get("action", "")
        known = {a for a, _label, _destructive in PAGE_ACTIONS.get(page_name, ())}
        if action not in known:
            raise web.HTTPNotFound(text="Unknown action.")

        data = await self._require_csrf(request)
        page_def = get_page(page_name)
        pipeline = await self._load_pipeline(page_def, data)
        if data.get("select_all"):
            pipeline.toggle_select_all()
        for record_id in data.getall("ids", []):
            if record_id not in pipeline.state.selected_ids:
                pipeline.toggle_select(record_id)

        if pipeline.error is None:
            handler = getattr(self, f"_action_{page_name}_{action.replace('-', '_')}")
            await handler(pipeline, data)
        return self._render_list_page(request, page_def, pipeline, base=f"/admin/{page_name}")

    async def _guarded_write(self, pipeline: ListPipeline, failure: str, write: Awaitable[Any]) -> Any:
        """Await a store write; a failure becomes an error notice and returns None."""
        try:
            return await write
        except aiosqlite.Error as exc:
            logger.warning("%s: %s", failure, exc)
            pipeline.notify("error", f"{failure}: {exc}")
            return None

    async def _remove_selected(self, pipeline: ListPipeline, *, noun: str, delete) -> None:
        ids = sorted(pipeline.state.selected_ids)
        if not ids:
            pipeline.notify("error", f"Please select at least one {noun} to delete.")
            return
        count = await self._guarded_write(pipeline, f"Error deleting {noun}s", delete(ids))
        if count is None:
            return
        if count == 0:
            pipeline.notify("error", f"No {noun}s found to delete.")
            return
        pipeline.apply_confirmed_removal(ids)
        pipeline.notify("success", f"{count} {noun}(s) deleted.")

    async def _action_sessions_delete(self, pipeline: ListPipeline, data) -> None:
        db = self._require_database()
        await self._remove_selected(pipeline, noun="session log", delete=db.delete_session_logs)

    async def _action_users_delete(self, pipeline: ListPipeline, data) -> None:
        db = self._require_database()
        await self._remove_selected(pipeline, noun="user", delete=db.delete_users)

    async def _action_activity_delete(self, pipeline: ListPipeline, data) -> None:
        db = self._require_database()
        await self._remove_selected(pipeline, noun="activity record", delete=db.delete_activities)

    async def _action_users_transfer(self, pipeline: ListPipeline, data) -> None:
        db = self._require_database()
        ids = sorted(pipeline.state.selected_ids)
        if not ids:
            pipeline.notify("error", "Please select at least one user to transfer.")
            return
        try:
            kind = TransferKind(str(data.get("type") or ""))
        except ValueError:
            pipeline.notify("error", "Invalid transfer type.")
            return
        target_id = str(data.get("targetId") or "").strip()
        if not target_id:
            pipeline.notify("error", "No target ID provided.")
            return

        count = await self._guarded_write(
            pipeline, "Error transferring users", db.transfer_users(ids, kind, target_id)
        )
        if count is None:
            return
        pipeline.apply_confirmed_update({rid: {kind.column: target_id} for rid in ids})
        pipeline.notify("success", f"Successfully transferred {count} user(s) to {kind.value}.")

    async def _action_users_convert_email(self, pipeline: ListPipeline, data) -> None:
        db = self._require_database()
        ids = sorted(pipeline.state.selected_ids)
        if not ids:
            pipeline.notify("error", "Please select at least one user to convert.")
            return

        domain = self.config.email_domain
        companies = self.config.company_by_email_domain
        count = await self._guarded_write(
            pipeline,
            "Error converting emails",
            db.convert_emails(ids, domain=domain, company_by_domain=companies),
        )
        if count is None:
            return
        changes = {}
        for record in pipeline.state.raw_records:
            rid = str(record.get("id"))
            if rid in ids:
                original = record.get("email") or ""
                changes[rid] = {
                    "email": convert_email_address(original, domain),
                    "company": company_for_email(original, companies, record.get("company")),
                }
        pipeline.apply_confirmed_update(changes)
        pipeline.notify("success", f"{count} emails updated successfully")

    async def _action_activity_set_quota(self, pipeline: ListPipeline, data) -> None:
        db = self._require_database()
        ids = sorted(pipeline.state.selected_ids)
        if not ids:
            pipeline.notify("error", "Please select at least one activity to update.")
            return
        quota = str(data.get("targetquota") or "").strip()
        if not quota:
            pipeline.notify("error", "Please enter a target quota.")
            return

        rows = await self._guarded_write(pipeline, "Error updating backend", db.bulk_set_quota(ids, quota))
        if rows is None:
            return
        pipeline.apply_confirmed_update({str(row["id"]): {"targetquota": row.get("targetquota")} for row in rows})
        pipeline.notify("success", f"{len(rows)} selected activities updated with target quota {quota}.")

    async def _action_activity_fix_quota(self, pipeline: ListPipeline, data) -> None:
        """Fill empty quotas on the selected activities from their owner's user record."""
        db = self._require_database()
        ids = sorted(pipeline.state.selected_ids)
        if not ids:
            pipeline.notify("error", "Please select at least one activity to update.")
            return

        quotas = await self._guarded_write(pipeline, "Error fetching user quotas", db.list_user_quotas())
        if quotas is None:
            return
        plan = plan_quota_fixes(pipeline.state.raw_records, quotas, ids)
        if plan.missing == 0:
            pipeline.notify("info", "No selected activities with missing target quota.")
            return
        if not plan.updates:
            pipeline.notify("info", "No matching user target quotas found for selected activities.")
            return

        count = await self._guarded_write(pipeline, "Error updating backend", apply_quota_updates(db, plan.updates))
        if count is None:
            return
        pipeline.apply_confirmed_update(plan.local_changes)
        pipeline.notify("success", f"{count} selected activities updated with target quotas.")

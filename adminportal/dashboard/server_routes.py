"""Route registration for the portal server."""

from __future__ import annotations


class PortalServerRoutesMixin:
    """Route registration helper."""

    def _register_routes(self) -> None:
        # Health check
        self._app.router.add_get("/healthz", self._healthz)
        self._app.router.add_get("/", self._index)

        # Login / logout
        self._app.router.add_get("/login", self._login_page)
        self._app.router.add_post("/login", self._login_submit)
        self._app.router.add_post("/logout", self._logout_submit)
        self._app.router.add_post("/api/login", self._api_login)
        self._app.router.add_post("/api/logout", self._api_logout)

        # Aggregation routes
        self._app.router.add_get(
            "/api/cloudflare/{resource:dns|firewall|zones|analytics}",
            self._api_cloudflare,
        )

        # Record reads
        self._app.router.add_get("/api/users", self._api_users)
        self._app.router.add_get("/api/users/quotas", self._api_user_quotas)
        self._app.router.add_get("/api/sessions", self._api_sessions)
        self._app.router.add_get("/api/activity", self._api_activity)
        self._app.router.add_get("/api/applications", self._api_applications)

        # Mutation routes
        self._app.router.add_post("/api/users/delete", self._api_users_delete)
        self._app.router.add_post("/api/users/transfer", self._api_users_transfer)
        self._app.router.add_post("/api/users/convert-email", self._api_users_convert_email)
        self._app.router.add_post("/api/sessions/delete", self._api_sessions_delete)
        self._app.router.add_post("/api/activity/update-quota-batch", self._api_activity_update_quota_batch)
        self._app.router.add_put("/api/activity/bulk-edit", self._api_activity_bulk_edit)
        self._app.router.add_post("/api/activity/delete", self._api_activity_delete)

        # Admin pages
        self._app.router.add_get(
            "/admin/cloudflare/{resource:dns|firewall|zones|analytics}",
            self._admin_cloudflare_page,
        )
        self._app.router.add_get("/admin/{page:sessions|activity|users}", self._admin_records_page)
        self._app.router.add_post(
            "/admin/{page:sessions|activity|users}/{action:[a-z-]+}",
            self._admin_page_action,
        )
        self._app.router.add_get("/admin/applications", self._admin_applications_page)
        self._app.router.add_get("/admin/settings", self._admin_settings)
        self._app.router.add_post("/admin/settings", self._admin_settings_save)

        # Exports
        self._app.router.add_get("/admin/export/{page:[a-z]+}.{fmt:csv|xlsx}", self._admin_export)
        self._app.router.add_post("/admin/api/exports", self._admin_api_export_start)
        self._app.router.add_get("/admin/api/exports/{job_id}", self._admin_api_export_status)
        self._app.router.add_post("/admin/api/exports/{job_id}/cancel", self._admin_api_export_cancel)
        self._app.router.add_get("/admin/api/exports/{job_id}/download", self._admin_api_export_download)

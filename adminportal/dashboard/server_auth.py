"""Login/logout handlers and the account lockout policy."""

from __future__ import annotations

import logging
from datetime import datetime, timedelta, timezone
from typing import Optional

from aiohttp import web

from ..passwords import check_password
from ..pipeline.timestamps import format_local, parse_timestamp
from ..storage.enums import SessionEvent, UserStatus
from .server_helpers import SESSION_COOKIE, _build_query_link, _escape, _flash

logger = logging.getLogger(__name__)

DEFAULT_AFTER_LOGIN = "/admin/cloudflare/dns"

LoginOutcome = tuple[int, dict, Optional[str]]


def _safe_next(value: object) -> str:
    target = str(value or "").strip()
    if not target.startswith("/") or target.startswith("//"):
        return DEFAULT_AFTER_LOGIN
    return target


class PortalServerAuthMixin:
    """Session cookie issue/revoke."""

    async def _attempt_login(self, request: web.Request, email: object, password: object) -> LoginOutcome:
        """Check credentials and apply the lockout policy.

        Returns ``(status, body, token)``; ``token`` is set only on success.
        """
        db = self._require_database()
        email = str(email or "").strip()
        password = str(password or "")
        if not email or not password:
            return 400, {"success": False, "message": "Email and password are required."}, None

        user = await db.get_user_by_email(email)
        if not user:
            return 401, {"success": False, "message": "Invalid credentials."}, None

        now = datetime.now(timezone.utc)
        lock_until = parse_timestamp(user.get("lock_until"))
        if user.get("status") == UserStatus.LOCKED.value and lock_until and lock_until > now:
            return (
                403,
                {
                    "success": False,
                    "message": f"Account is locked. Try again after {format_local(lock_until)}.",
                    "lockUntil": lock_until.isoformat(),
                },
                None,
            )

        if not check_password(password, user.get("password_hash")):
            attempts = await db.record_failed_login(user["id"])
            threshold = self.config.lockout_threshold
            if attempts >= threshold:
                until = now + timedelta(days=365 * self.config.lockout_years)
                await db.lock_user(user["id"], until)
                logger.warning("Locked account %s after %d failed login attempts", email, attempts)
                return (
                    403,
                    {
                        "success": False,
                        "message": (
                            f"Account locked after {threshold} failed attempts. "
                            f"Try again after {format_local(until)}."
                        ),
                        "lockUntil": until.isoformat(),
                    },
                    None,
                )
            logger.info("Failed login for %s (attempt %d)", email, attempts)
            return 401, {"success": False, "message": "Invalid credentials."}, None

        await db.reset_login_state(user["id"])
        token = await db.create_auth_session(user["id"], self.config.session_ttl_seconds)
        await db.add_session_log(
            email=user["email"],
            status=SessionEvent.LOGIN.value,
            department=user.get("department"),
            ip_address=self._client_ip(request),
            user_agent=request.headers.get("User-Agent"),
        )
        logger.info("Login succeeded for %s", email)
        return 200, {"success": True, "message": "Login successful", "userId": user["id"]}, token

    def _set_session_cookie(self, response: web.StreamResponse, token: str) -> None:
        response.set_cookie(
            SESSION_COOKIE,
            token,
            max_age=self.config.session_ttl_seconds,
            path="/",
            httponly=True,
            samesite="Strict",
            secure=self.config.secure_cookies,
        )

    async def _end_session(self, request: web.Request) -> None:
        token = (request.cookies.get(SESSION_COOKIE) or "").strip()
        if not token or self.database is None:
            return
        session = request.get("session") or await self.database.get_auth_session(token)
        await self.database.delete_auth_session(token)
        if session:
            await self.database.add_session_log(
                email=session.get("email") or "",
                status=SessionEvent.LOGOUT.value,
                department=session.get("department"),
                ip_address=self._client_ip(request),
                user_agent=request.headers.get("User-Agent"),
            )
            logger.info("Logout for %s", session.get("email"))

    async def _api_login(self, request: web.Request) -> web.Response:
        payload = await self._read_payload(request)
        status, body, token = await self._attempt_login(
            request,
            payload.get("Email") or payload.get("email"),
            payload.get("Password") or payload.get("password"),
        )
        resp = web.json_response(body, status=status)
        if token:
            self._set_session_cookie(resp, token)
        return resp

    async def _api_logout(self, request: web.Request) -> web.Response:
        await self._end_session(request)
        resp = web.json_response({"success": True, "message": "Logged out"})
        resp.del_cookie(SESSION_COOKIE, path="/")
        return resp

    async def _login_page(self, request: web.Request) -> web.Response:
        msg = request.query.get("msg")
        error = request.query.get("error") == "1"
        next_path = _safe_next(request.query.get("next"))
        body = f"""
        {_flash(msg, error=error)}
        <div class="pt-panel" style="max-width: 420px;">
          <form method="post" action="/login">
            <input type="hidden" name="csrf" value="__SET_COOKIE__" />
            <input type="hidden" name="next" value="{_escape(next_path)}" />
            <p><label>Email<br /><input class="pt-input" type="email" name="email" required /></label></p>
            <p><label>Password<br /><input class="pt-input" type="password" name="password" required /></label></p>
            <button class="pt-btn" type="submit">Sign in</button>
          </form>
        </div>
        """
        return self._render_html(request, title="Sign in", body=body, show_account=False)

    async def _login_submit(self, request: web.Request) -> web.Response:
        data = await self._require_csrf(request)
        next_path = _safe_next(data.get("next"))
        _status, body, token = await self._attempt_login(request, data.get("email"), data.get("password"))
        if not token:
            raise web.HTTPSeeOther(
                location=_build_query_link("/login", msg=body.get("message"), error=1, next=next_path)
            )
        resp = web.Response(status=303, headers={"Location": next_path})
        self._set_session_cookie(resp, token)
        return resp

    async def _logout_submit(self, request: web.Request) -> web.Response:
        await self._require_csrf(request)
        await self._end_session(request)
        resp = web.Response(status=303, headers={"Location": _build_query_link("/login", msg="Signed out.")})
        resp.del_cookie(SESSION_COOKIE, path="/")
        return resp

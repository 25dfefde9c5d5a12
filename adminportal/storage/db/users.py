"""User account operations."""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Mapping, Optional

from ...passwords import hash_password
from ..enums import TransferKind, UserStatus
from .helpers import clean_ids, new_record_id, placeholders, utcnow_iso

logger = logging.getLogger(__name__)

USER_FIELDS = (
    "referenceid",
    "firstname",
    "lastname",
    "company",
    "department",
    "role",
    "status",
    "tsm",
    "manager",
    "targetquota",
)

# Columns never returned to list views.
_PRIVATE_COLUMNS = ("password_hash",)


def normalize_reference_id(value: object) -> str:
    return str(value or "").strip().lower()


def convert_email_address(email: str, domain: str) -> str:
    """Keep the local part of ``email`` and move it to ``domain``."""
    local = (email or "").split("@", 1)[0]
    return f"{local}@{domain}"


def company_for_email(email: str, company_by_domain: Mapping[str, str], current: Optional[str]) -> Optional[str]:
    """Company implied by the email's domain, or ``current`` when unmapped."""
    _, _, domain = (email or "").rpartition("@")
    return company_by_domain.get(domain.strip().lower(), current)


def _public(row: dict) -> dict:
    for key in _PRIVATE_COLUMNS:
        row.pop(key, None)
    return row


class UsersMixin:
    """User account reads and bulk writes."""

    async def add_user(
        self,
        email: str,
        *,
        password: Optional[str] = None,
        **fields,
    ) -> str:
        user_id = new_record_id()
        now = utcnow_iso()
        values = {key: fields.get(key) for key in USER_FIELDS}
        values["status"] = values["status"] or UserStatus.ACTIVE.value
        async with self._lock:
            await self._connection.execute(
                f"""
                INSERT INTO users (id, email, password_hash, {", ".join(USER_FIELDS)}, created_at, updated_at)
                VALUES (?, ?, ?, {placeholders(USER_FIELDS)}, ?, ?)
                """,
                (
                    user_id,
                    email,
                    hash_password(password) if password else None,
                    *[values[key] for key in USER_FIELDS],
                    now,
                    now,
                ),
            )
            await self._connection.commit()
        return user_id

    async def list_users(self) -> list[dict]:
        async with self._lock:
            cursor = await self._connection.execute("SELECT * FROM users ORDER BY created_at DESC")
            rows = await self._fetchall_dicts(cursor)
        return [_public(row) for row in rows]

    async def get_user_by_id(self, user_id: str) -> Optional[dict]:
        async with self._lock:
            cursor = await self._connection.execute("SELECT * FROM users WHERE id = ?", (user_id,))
            return await self._fetchone_dict(cursor)

    async def get_user_by_email(self, email: str) -> Optional[dict]:
        """Exact email lookup, including the password hash for login checks."""
        async with self._lock:
            cursor = await self._connection.execute(
                "SELECT * FROM users WHERE email = ? ORDER BY created_at LIMIT 1",
                ((email or "").strip(),),
            )
            return await self._fetchone_dict(cursor)

    async def delete_users(self, ids: list[str]) -> int:
        user_ids = clean_ids(ids)
        if not user_ids:
            return 0
        async with self._lock:
            cursor = await self._connection.execute(
                f"DELETE FROM users WHERE id IN ({placeholders(user_ids)})",
                user_ids,
            )
            await self._connection.commit()
            deleted = cursor.rowcount or 0
        logger.info("Deleted %d user(s)", deleted)
        return deleted

    async def transfer_users(self, ids: list[str], kind: TransferKind | str, target_id: str) -> int:
        """Reassign users to a new TSM or Manager."""
        transfer = TransferKind(kind)
        user_ids = clean_ids(ids)
        if not user_ids:
            return 0
        async with self._lock:
            cursor = await self._connection.execute(
                f"""
                UPDATE users
                SET {transfer.column} = ?, updated_at = ?
                WHERE id IN ({placeholders(user_ids)})
                """,
                (target_id, utcnow_iso(), *user_ids),
            )
            await self._connection.commit()
            modified = cursor.rowcount or 0
        logger.info("Transferred %d user(s) to %s %s", modified, transfer.value, target_id)
        return modified

    async def convert_emails(
        self,
        ids: list[str],
        *,
        domain: str,
        company_by_domain: Mapping[str, str],
    ) -> int:
        """Move users' emails onto ``domain``; company follows the original domain.

        Returns the number of rows whose email or company actually changed.
        """
        user_ids = clean_ids(ids)
        if not user_ids:
            return 0
        modified = 0
        async with self._lock:
            cursor = await self._connection.execute(
                f"SELECT id, email, company FROM users WHERE id IN ({placeholders(user_ids)})",
                user_ids,
            )
            rows = await self._fetchall_dicts(cursor)
            now = utcnow_iso()
            for row in rows:
                original = row.get("email") or ""
                email = convert_email_address(original, domain)
                company = company_for_email(original, company_by_domain, row.get("company"))
                if email == original and company == row.get("company"):
                    continue
                await self._connection.execute(
                    "UPDATE users SET email = ?, company = ?, updated_at = ? WHERE id = ?",
                    (email, company, now, row["id"]),
                )
                modified += 1
            await self._connection.commit()
        logger.info("Converted %d user email(s) to @%s", modified, domain)
        return modified

    async def record_failed_login(self, user_id: str) -> int:
        """Increment and return the user's failed login counter."""
        async with self._lock:
            await self._connection.execute(
                "UPDATE users SET login_attempts = COALESCE(login_attempts, 0) + 1 WHERE id = ?",
                (user_id,),
            )
            await self._connection.commit()
            cursor = await self._connection.execute(
                "SELECT login_attempts FROM users WHERE id = ?",
                (user_id,),
            )
            row = await cursor.fetchone()
        return int(row["login_attempts"] or 0) if row else 0

    async def lock_user(self, user_id: str, until: datetime) -> None:
        async with self._lock:
            await self._connection.execute(
                "UPDATE users SET status = ?, lock_until = ? WHERE id = ?",
                (UserStatus.LOCKED.value, until.isoformat(), user_id),
            )
            await self._connection.commit()

    async def reset_login_state(self, user_id: str) -> None:
        async with self._lock:
            await self._connection.execute(
                "UPDATE users SET login_attempts = 0, status = ?, lock_until = NULL WHERE id = ?",
                (UserStatus.ACTIVE.value, user_id),
            )
            await self._connection.commit()

    async def list_user_quotas(self) -> list[dict]:
        """Every user's normalized reference id and target quota."""
        async with self._lock:
            cursor = await self._connection.execute("SELECT referenceid, targetquota FROM users")
            rows = await self._fetchall_dicts(cursor)
        return [
            {
                "referenceid": normalize_reference_id(row.get("referenceid")),
                "targetquota": row.get("targetquota") or "",
            }
            for row in rows
        ]

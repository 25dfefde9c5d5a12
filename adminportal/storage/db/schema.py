"""Database schema creation helpers."""

from __future__ import annotations


class DatabaseSchemaMixin:
    """Database schema creation helpers."""

    async def _create_tables(self) -> None:
        """Create database tables if they don't exist."""
        async with self._lock:
            await self._connection.executescript(
                """
                    CREATE TABLE IF NOT EXISTS users (
                        id TEXT PRIMARY KEY,
                        referenceid TEXT,
                        firstname TEXT,
                        lastname TEXT,
                        email TEXT NOT NULL,
                        password_hash TEXT,
                        company TEXT,
                        department TEXT,
                        role TEXT,
                        status TEXT DEFAULT 'Active',
                        tsm TEXT,
                        manager TEXT,
                        targetquota TEXT,
                        login_attempts INTEGER DEFAULT 0,
                        lock_until TIMESTAMP,
                        created_at TIMESTAMP,
                        updated_at TIMESTAMP
                    );

                    -- Opaque login sessions referenced by the session cookie
                    CREATE TABLE IF NOT EXISTS auth_sessions (
                        token TEXT PRIMARY KEY,
                        user_id TEXT NOT NULL,
                        created_at TIMESTAMP NOT NULL,
                        expires_at TIMESTAMP NOT NULL
                    );

                    CREATE TABLE IF NOT EXISTS session_logs (
                        id TEXT PRIMARY KEY,
                        email TEXT,
                        department TEXT,
                        status TEXT,
                        timestamp TIMESTAMP,
                        ip_address TEXT,
                        device_id TEXT,
                        latitude REAL,
                        longitude REAL,
                        user_agent TEXT
                    );

                    CREATE TABLE IF NOT EXISTS activity (
                        id TEXT PRIMARY KEY,
                        activitynumber TEXT,
                        referenceid TEXT,
                        companyname TEXT,
                        contactperson TEXT,
                        contactnumber TEXT,
                        emailaddress TEXT,
                        address TEXT,
                        projectname TEXT,
                        projectcategory TEXT,
                        projecttype TEXT,
                        source TEXT,
                        targetquota TEXT,
                        csragent TEXT,
                        date_created TIMESTAMP,
                        date_updated TIMESTAMP
                    );
                """
            )
            await self._connection.commit()
            await self._create_indexes()

    async def _create_indexes(self) -> None:
        statements = [
            "CREATE INDEX IF NOT EXISTS idx_users_email ON users(email)",
            "CREATE INDEX IF NOT EXISTS idx_auth_sessions_expires ON auth_sessions(expires_at)",
            "CREATE INDEX IF NOT EXISTS idx_session_logs_timestamp ON session_logs(timestamp)",
            "CREATE INDEX IF NOT EXISTS idx_activity_referenceid ON activity(referenceid)",
            "CREATE INDEX IF NOT EXISTS idx_activity_activitynumber ON activity(activitynumber)",
        ]
        for statement in statements:
            await self._connection.execute(statement)
        await self._connection.commit()

"""
Async database access helpers (raw SQL) using asyncpg.

`Database` owns one connection pool. The app lifespan constructs it, starts
it on startup and closes it on shutdown (see `api/main.py`); every consumer
receives the handle explicitly instead of reaching for a module global.

SQL parameter style:
- asyncpg uses positional placeholders: $1, $2, $3, ...
"""

from __future__ import annotations

from typing import Any

import asyncpg


class Database:
    def __init__(
        self,
        dsn: str,
        *,
        max_size: int = 3,
        acquire_timeout_s: float = 1.0,
        command_timeout_s: float = 30.0,
    ) -> None:
        self._dsn = dsn
        self._max_size = max_size
        self._acquire_timeout_s = acquire_timeout_s
        self._command_timeout_s = command_timeout_s
        self._pool: asyncpg.Pool | None = None

    async def start(self) -> None:
        if self._pool is not None:
            return None
        pool = await asyncpg.create_pool(
            dsn=self._dsn,
            min_size=1,
            max_size=self._max_size,
            command_timeout=self._command_timeout_s,
        )
        # Fail at startup, not on the first request.
        try:
            async with pool.acquire(timeout=self._acquire_timeout_s) as conn:  # type: asyncpg.Connection
                await conn.fetchrow("SELECT 1 AS ok")
        except BaseException:
            await pool.close()
            raise
        self._pool = pool

    async def close(self) -> None:
        if self._pool is None:
            return None
        pool, self._pool = self._pool, None
        await pool.close()

    def pool(self) -> asyncpg.Pool:
        if self._pool is None:
            raise RuntimeError("DB pool is not initialized. Call start() on startup.")
        return self._pool

    async def fetch_one(self, sql: str, *args: Any) -> dict[str, Any] | None:
        """
        Run a query and return a single row as a dict (or None).

        Waits at most `acquire_timeout_s` for a free connection when the
        pool is exhausted; asyncio.TimeoutError propagates after that.
        """
        async with self.pool().acquire(timeout=self._acquire_timeout_s) as conn:  # type: asyncpg.Connection
            row = await conn.fetchrow(sql, *args)
        return dict(row) if row is not None else None

"""
PostgreSQL database service.
Handles connection pooling and schema creation for notifications and
device tokens.
"""

import json
import asyncpg
from typing import Optional, Any, List
from fleet_notify.config import settings
import logging

logger = logging.getLogger(__name__)


async def _init_connection(conn: asyncpg.Connection) -> None:
    """Decode JSONB columns to Python objects"""
    await conn.set_type_codec(
        'jsonb',
        encoder=json.dumps,
        decoder=json.loads,
        schema='pg_catalog'
    )


class DatabasePool:
    """Async PostgreSQL connection pool manager"""

    def __init__(self, dsn: Optional[str] = None):
        self.dsn = dsn or settings.database_url
        self.pool: Optional[asyncpg.Pool] = None

    @property
    def is_connected(self) -> bool:
        return self.pool is not None

    async def connect(self) -> None:
        """Initialize connection pool"""
        try:
            self.pool = await asyncpg.create_pool(
                self.dsn,
                min_size=5,
                max_size=20,
                command_timeout=60,
                init=_init_connection
            )
            logger.info("Connected to PostgreSQL")
        except Exception as e:
            logger.error(f"Failed to connect to PostgreSQL: {e}")
            raise

    async def disconnect(self) -> None:
        """Close connection pool"""
        if self.pool:
            await self.pool.close()
            self.pool = None
            logger.info("PostgreSQL connection pool closed")

    async def execute(self, query: str, *args) -> str:
        """Execute a query, returning the command status (e.g. 'UPDATE 3')"""
        async with self.pool.acquire() as conn:
            return await conn.execute(query, *args)

    async def fetch(self, query: str, *args) -> List[dict]:
        """Fetch rows from query"""
        async with self.pool.acquire() as conn:
            rows = await conn.fetch(query, *args)
            return [dict(row) for row in rows]

    async def fetchone(self, query: str, *args) -> Optional[dict]:
        """Fetch single row from query"""
        async with self.pool.acquire() as conn:
            row = await conn.fetchrow(query, *args)
            return dict(row) if row else None

    async def fetchval(self, query: str, *args) -> Any:
        """Fetch the first column of the first row"""
        async with self.pool.acquire() as conn:
            return await conn.fetchval(query, *args)


def affected_rows(status: str) -> int:
    """Row count from an asyncpg command status such as 'UPDATE 3'"""
    try:
        return int(status.rsplit(" ", 1)[-1])
    except (AttributeError, ValueError):
        return 0


# Global pool instance
db_pool = DatabasePool()


async def init_db(pool: DatabasePool = db_pool) -> None:
    """Connect and create tables"""
    await pool.connect()

    async with pool.pool.acquire() as conn:
        await conn.execute("""
            CREATE TABLE IF NOT EXISTS notifications (
                id VARCHAR(36) PRIMARY KEY,
                type VARCHAR(100) NOT NULL,
                title TEXT,
                message TEXT,
                data JSONB NOT NULL DEFAULT '{}'::jsonb,
                recipient_type VARCHAR(50),
                recipient_id VARCHAR(255),
                read BOOLEAN NOT NULL DEFAULT FALSE,
                created_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
                updated_at TIMESTAMPTZ NOT NULL DEFAULT NOW()
            )
        """)

        await conn.execute("""
            CREATE INDEX IF NOT EXISTS idx_notifications_recipient
            ON notifications(recipient_type, recipient_id)
        """)
        await conn.execute("""
            CREATE INDEX IF NOT EXISTS idx_notifications_created_at
            ON notifications(created_at DESC)
        """)

        await conn.execute("""
            CREATE TABLE IF NOT EXISTS device_tokens (
                token TEXT PRIMARY KEY,
                platform VARCHAR(20),
                user_type VARCHAR(50),
                user_id VARCHAR(255),
                last_seen TIMESTAMPTZ NOT NULL DEFAULT NOW(),
                created_at TIMESTAMPTZ NOT NULL DEFAULT NOW()
            )
        """)
        await conn.execute("""
            CREATE INDEX IF NOT EXISTS idx_device_tokens_user
            ON device_tokens(user_type, user_id)
        """)

        logger.info("Database tables initialized")

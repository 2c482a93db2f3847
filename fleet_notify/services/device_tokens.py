import logging
from typing import List, Optional

from fleet_notify.models.schemas import DeviceToken
from fleet_notify.services.database import DatabasePool, affected_rows

logger = logging.getLogger(__name__)


class DeviceTokenStore:
    """Device token registry; the push path only reads from it"""

    def __init__(self, db: DatabasePool):
        self.db = db

    async def upsert(
        self,
        token: str,
        platform: Optional[str] = None,
        user_type: Optional[str] = None,
        user_id: Optional[str] = None
    ) -> DeviceToken:
        """Register a token, or refresh its owner and last_seen if known"""
        row = await self.db.fetchone(
            """
            INSERT INTO device_tokens (token, platform, user_type, user_id, last_seen)
            VALUES ($1, $2, $3, $4, NOW())
            ON CONFLICT (token) DO UPDATE SET
                platform = EXCLUDED.platform,
                user_type = EXCLUDED.user_type,
                user_id = EXCLUDED.user_id,
                last_seen = NOW()
            RETURNING *
            """,
            token,
            platform,
            user_type,
            None if user_id is None else str(user_id)
        )
        logger.info(f"Registered device token {token[:20]}... for {user_type}:{user_id}")
        return DeviceToken.model_validate(row)

    async def delete(self, token: str) -> bool:
        status = await self.db.execute("DELETE FROM device_tokens WHERE token = $1", token)
        deleted = affected_rows(status) > 0
        if deleted:
            logger.info(f"Removed device token {token[:20]}...")
        return deleted

    async def list(
        self,
        user_type: Optional[str] = None,
        user_id: Optional[str] = None,
        limit: int = 100
    ) -> List[DeviceToken]:
        clauses, params = [], []
        if user_type:
            params.append(user_type)
            clauses.append(f"user_type = ${len(params)}")
        if user_id:
            params.append(str(user_id))
            clauses.append(f"user_id = ${len(params)}")
        where = " AND ".join(clauses) or "TRUE"
        params.append(limit)
        rows = await self.db.fetch(
            f"SELECT * FROM device_tokens WHERE {where} ORDER BY last_seen DESC LIMIT ${len(params)}",
            *params
        )
        return [DeviceToken.model_validate(r) for r in rows]

    async def tokens_for_scope(
        self,
        user_type: Optional[str] = None,
        user_id: Optional[str] = None
    ) -> List[str]:
        """
        Distinct tokens for an exact (user_type, user_id) pair, or every
        registered token when the scope is incomplete.
        """
        if user_type and user_id:
            rows = await self.db.fetch(
                "SELECT DISTINCT token FROM device_tokens WHERE user_type = $1 AND user_id = $2",
                user_type,
                str(user_id)
            )
        else:
            rows = await self.db.fetch("SELECT DISTINCT token FROM device_tokens")
        return [r["token"] for r in rows]

"""
Notification persistence: create, list by scope, mark read, count unread.
"""

import logging
import math
import uuid
from typing import Any, Dict, Optional

from fleet_notify.models.schemas import BulkUpdateResult, Notification, NotificationPage, Pagination
from fleet_notify.services.database import DatabasePool
from fleet_notify.services.scope import ScopeQuery, list_filter, mark_filter

logger = logging.getLogger(__name__)


class NotificationStore:
    """Owns the notifications table"""

    def __init__(self, db: DatabasePool):
        self.db = db

    async def insert(
        self,
        type: str,
        title: Optional[str] = None,
        message: Optional[str] = None,
        data: Optional[Dict[str, Any]] = None,
        recipient_type: Optional[str] = None,
        recipient_id: Optional[str] = None
    ) -> Notification:
        """Insert a new unread notification and return the stored row"""
        query = """
            INSERT INTO notifications
            (id, type, title, message, data, recipient_type, recipient_id, read)
            VALUES ($1, $2, $3, $4, $5, $6, $7, FALSE)
            RETURNING *
        """
        row = await self.db.fetchone(
            query,
            str(uuid.uuid4()),
            type,
            title,
            message,
            data or {},
            recipient_type,
            None if recipient_id is None else str(recipient_id)
        )
        return Notification.model_validate(row)

    async def list(self, scope: ScopeQuery, page: int = 1, limit: int = 20) -> NotificationPage:
        """Page through notifications visible to scope, newest first"""
        skip = (page - 1) * limit
        where, params = list_filter(scope).to_sql()
        logger.debug("Listing notifications", extra={"where": where, "params": params})

        total = await self.db.fetchval(f"SELECT COUNT(*) FROM notifications WHERE {where}", *params)
        n = len(params)
        rows = await self.db.fetch(
            f"SELECT * FROM notifications WHERE {where} "
            f"ORDER BY created_at DESC LIMIT ${n + 1} OFFSET ${n + 2}",
            *params,
            limit,
            skip
        )
        total = total or 0
        return NotificationPage(
            items=[Notification.model_validate(r) for r in rows],
            pagination=Pagination(
                total=total,
                page=page,
                limit=limit,
                totalPages=math.ceil(total / limit) if limit else 0
            )
        )

    async def mark_as_read(self, notification_id: str) -> Optional[Notification]:
        """Set read on one notification; None when the id is unknown"""
        row = await self.db.fetchone(
            """
            UPDATE notifications SET read = TRUE, updated_at = NOW()
            WHERE id = $1
            RETURNING *
            """,
            notification_id
        )
        return Notification.model_validate(row) if row else None

    async def mark_all_as_read(
        self,
        recipient_type: Optional[str] = None,
        recipient_id: Optional[str] = None
    ) -> BulkUpdateResult:
        where, params = mark_filter(recipient_type, recipient_id).to_sql()
        row = await self.db.fetchone(
            f"""
            WITH matched AS (
                SELECT id, read FROM notifications WHERE {where}
            ), updated AS (
                UPDATE notifications n SET read = TRUE, updated_at = NOW()
                FROM matched m
                WHERE n.id = m.id AND m.read IS NOT TRUE
                RETURNING n.id
            )
            SELECT
                (SELECT COUNT(*) FROM matched) AS matched_count,
                (SELECT COUNT(*) FROM updated) AS modified_count
            """,
            *params
        )
        return BulkUpdateResult.model_validate(row or {})

    async def count_unread(
        self,
        recipient_type: Optional[str] = None,
        recipient_id: Optional[str] = None
    ) -> int:
        where, params = mark_filter(recipient_type, recipient_id).to_sql()
        count = await self.db.fetchval(
            f"SELECT COUNT(*) FROM notifications WHERE read IS NOT TRUE AND {where}",
            *params
        )
        return count or 0

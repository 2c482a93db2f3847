"""
Notification fan-out.

create() persists a notification, then broadcasts it to dashboard sessions
and pushes it to registered devices. Only the store write can fail the call;
broadcast and push each produce an Outcome that is logged and discarded.
"""

import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

from fleet_notify.config import settings
from fleet_notify.logging_config import set_context
from fleet_notify.models.schemas import BulkUpdateResult, Notification, NotificationPage, PushPayload
from fleet_notify.services.device_tokens import DeviceTokenStore
from fleet_notify.services.notification_store import NotificationStore
from fleet_notify.services.push_provider import PushDispatcher
from fleet_notify.services.realtime import RealtimeBroadcaster
from fleet_notify.services.scope import ScopeQuery, room_key

logger = logging.getLogger(__name__)

OK = "ok"
SKIPPED = "skipped"
FAILED = "failed"


@dataclass
class Outcome:
    """Result of one best-effort side effect"""
    step: str
    status: str
    detail: str = ""
    value: Any = None

    @property
    def ok(self) -> bool:
        return self.status == OK


class NotificationService:
    def __init__(
        self,
        store: NotificationStore,
        tokens: DeviceTokenStore,
        broadcaster: RealtimeBroadcaster,
        dispatcher: PushDispatcher,
        event: str = settings.realtime_event
    ):
        self.store = store
        self.tokens = tokens
        self.broadcaster = broadcaster
        self.dispatcher = dispatcher
        self.event = event

    async def create(
        self,
        type: str,
        title: Optional[str] = None,
        message: Optional[str] = None,
        data: Optional[Dict[str, Any]] = None,
        recipient_type: Optional[str] = None,
        recipient_id: Optional[str] = None
    ) -> Notification:
        """
        Persist a notification and fan it out.

        Raises whatever the store raises; broadcast and push failures are
        logged only.
        """
        note = await self.store.insert(
            type=type,
            title=title,
            message=message,
            data=data,
            recipient_type=recipient_type,
            recipient_id=recipient_id
        )
        set_context(notification_id=note.id, recipient_type=note.recipient_type, recipient_id=note.recipient_id)
        logger.info(f"Notification created: {note.type} {note.title!r}")

        for outcome in await self.fan_out(note):
            self._log_outcome(outcome)
        return note

    async def fan_out(self, note: Notification) -> List[Outcome]:
        """Broadcast, then push; push is only attempted after a successful broadcast"""
        broadcast = await self._broadcast(note)
        if not broadcast.ok:
            return [broadcast]
        return [broadcast, await self._push(note)]

    async def _broadcast(self, note: Notification) -> Outcome:
        if not self.broadcaster.is_ready:
            return Outcome("broadcast", SKIPPED, "realtime broadcaster not started")
        try:
            reached = await self.broadcaster.emit_global(self.event, note)
            room = room_key(note.recipient_type, note.recipient_id)
            if room:
                reached += await self.broadcaster.emit_to_room(room, self.event, note)
            return Outcome("broadcast", OK, f"room={room or '-'}", reached)
        except Exception as e:
            return Outcome("broadcast", FAILED, str(e))

    async def _push(self, note: Notification) -> Outcome:
        try:
            tokens = await self.tokens.tokens_for_scope(note.recipient_type, note.recipient_id)
            if not tokens:
                return Outcome("push", SKIPPED, "no device tokens")

            payload = PushPayload(
                title=note.title or "Notification",
                body=note.message or "",
                data={"noteId": note.id, **note.data}
            )
            result = await self.dispatcher.send_batch(tokens, payload)
            return Outcome(
                "push", OK,
                f"{result.successCount} delivered, {result.failureCount} failed",
                result
            )
        except Exception as e:
            return Outcome("push", FAILED, str(e))

    @staticmethod
    def _log_outcome(outcome: Outcome) -> None:
        if outcome.status == FAILED:
            logger.warning(f"{outcome.step} failed: {outcome.detail}")
        else:
            logger.info(f"{outcome.step} {outcome.status}: {outcome.detail}")

    async def list(
        self,
        page: int = 1,
        limit: int = 20,
        driver_id: Optional[str] = None,
        investor_id: Optional[str] = None,
        recipient_type: Optional[str] = None,
        recipient_id: Optional[str] = None
    ) -> NotificationPage:
        scope = ScopeQuery(
            driver_id=driver_id,
            investor_id=investor_id,
            recipient_type=recipient_type,
            recipient_id=recipient_id
        )
        return await self.store.list(scope, page=page, limit=limit)

    async def mark_as_read(self, notification_id: str) -> Optional[Notification]:
        return await self.store.mark_as_read(notification_id)

    async def mark_all_as_read(
        self,
        recipient_type: Optional[str] = None,
        recipient_id: Optional[str] = None
    ) -> BulkUpdateResult:
        result = await self.store.mark_all_as_read(recipient_type, recipient_id)
        logger.info(
            f"Marked {result.modified_count}/{result.matched_count} notifications read "
            f"for {recipient_type or '*'}:{recipient_id or '*'}"
        )
        return result

    async def count_unread(
        self,
        recipient_type: Optional[str] = None,
        recipient_id: Optional[str] = None
    ) -> int:
        return await self.store.count_unread(recipient_type, recipient_id)

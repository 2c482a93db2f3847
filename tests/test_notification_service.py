"""
Tests for notification fan-out: persist, broadcast, push.
"""

from unittest.mock import AsyncMock, MagicMock

import pytest

from fleet_notify.errors import BroadcasterNotReadyError
from fleet_notify.models.schemas import BatchResult, Notification, NotificationPage
from fleet_notify.services.notification_service import NotificationService
from fleet_notify.services.scope import ScopeQuery


@pytest.fixture
def store(notification_row):
    store = MagicMock()
    store.insert = AsyncMock(side_effect=lambda **kw: Notification.model_validate(notification_row(
        title=kw["title"],
        message=kw["message"],
        data=kw["data"] or {},
        recipient_type=kw["recipient_type"],
        recipient_id=kw["recipient_id"]
    )))
    store.list = AsyncMock(return_value=NotificationPage())
    return store


@pytest.fixture
def tokens():
    tokens = MagicMock()
    tokens.tokens_for_scope = AsyncMock(return_value=[])
    return tokens


@pytest.fixture
def dispatcher():
    dispatcher = MagicMock()
    dispatcher.send_batch = AsyncMock(return_value=BatchResult(successCount=1, failureCount=0))
    return dispatcher


@pytest.fixture
def service(store, tokens, mock_broadcaster, dispatcher):
    return NotificationService(store, tokens, mock_broadcaster, dispatcher, event="dashboard:notification")


class TestCreate:
    @pytest.mark.asyncio
    async def test_scoped_create_without_tokens_skips_push(self, service, store, tokens, mock_broadcaster, dispatcher):
        note = await service.create(
            type="payment", title="Paid", message="Rent paid",
            recipient_type="driver", recipient_id="D1"
        )

        assert note.read is False
        store.insert.assert_awaited_once()
        mock_broadcaster.emit_global.assert_awaited_once_with("dashboard:notification", note)
        mock_broadcaster.emit_to_room.assert_awaited_once_with("driver:D1", "dashboard:notification", note)
        tokens.tokens_for_scope.assert_awaited_once_with("driver", "D1")
        dispatcher.send_batch.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_global_create_pushes_to_all_tokens(self, service, tokens, mock_broadcaster, dispatcher):
        tokens.tokens_for_scope = AsyncMock(return_value=["t1", "t2"])

        note = await service.create(type="system", message="Office closed on Friday", data={"priority": 1})

        mock_broadcaster.emit_to_room.assert_not_awaited()
        tokens.tokens_for_scope.assert_awaited_once_with(None, None)
        sent_tokens, payload = dispatcher.send_batch.call_args[0]
        assert sent_tokens == ["t1", "t2"]
        assert payload.title == "Notification"
        assert payload.body == "Office closed on Friday"
        assert payload.data == {"noteId": note.id, "priority": 1}

    @pytest.mark.asyncio
    async def test_missing_message_pushes_empty_body(self, service, tokens, dispatcher):
        tokens.tokens_for_scope = AsyncMock(return_value=["t1"])

        await service.create(type="vehicle", title="Vehicle assigned", recipient_type="driver", recipient_id="D1")

        payload = dispatcher.send_batch.call_args[0][1]
        assert payload.title == "Vehicle assigned"
        assert payload.body == ""

    @pytest.mark.asyncio
    async def test_store_failure_fails_create(self, service, store, mock_broadcaster):
        store.insert = AsyncMock(side_effect=ConnectionError("database unavailable"))

        with pytest.raises(ConnectionError):
            await service.create(type="payment", title="Paid")
        mock_broadcaster.emit_global.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_unready_broadcaster_skips_broadcast_and_push(self, service, tokens, mock_broadcaster, dispatcher):
        mock_broadcaster.is_ready = False

        note = await service.create(type="payment", title="Paid", recipient_type="driver", recipient_id="D1")

        assert note.id
        mock_broadcaster.emit_global.assert_not_awaited()
        tokens.tokens_for_scope.assert_not_awaited()
        dispatcher.send_batch.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_broadcast_error_is_contained(self, service, tokens, mock_broadcaster):
        mock_broadcaster.emit_global = AsyncMock(side_effect=BroadcasterNotReadyError("stopped"))

        note = await service.create(type="payment", title="Paid")

        assert note.type == "payment"
        tokens.tokens_for_scope.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_push_error_is_contained(self, service, tokens, dispatcher):
        tokens.tokens_for_scope = AsyncMock(return_value=["t1"])
        dispatcher.send_batch = AsyncMock(side_effect=TimeoutError())

        note = await service.create(type="payment", title="Paid", recipient_type="investor", recipient_id="I1")

        assert note.recipient_type == "investor"
        dispatcher.send_batch.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_token_lookup_error_is_contained(self, service, tokens):
        tokens.tokens_for_scope = AsyncMock(side_effect=ConnectionError("pool closed"))
        note = await service.create(type="payment", title="Paid")
        assert note.read is False


class TestFanOutOutcomes:
    @pytest.mark.asyncio
    async def test_outcomes_reported(self, service, tokens, notification_row):
        tokens.tokens_for_scope = AsyncMock(return_value=["t1"])
        note = Notification.model_validate(notification_row())

        broadcast, push = await service.fan_out(note)

        assert broadcast.ok and broadcast.value == 2
        assert push.ok
        assert push.value.successCount == 1

    @pytest.mark.asyncio
    async def test_skipped_push_outcome(self, service, notification_row):
        note = Notification.model_validate(notification_row())
        outcomes = await service.fan_out(note)
        assert [o.status for o in outcomes] == ["ok", "skipped"]

    @pytest.mark.asyncio
    async def test_not_ready_outcome(self, service, mock_broadcaster, notification_row):
        mock_broadcaster.is_ready = False
        note = Notification.model_validate(notification_row())
        outcomes = await service.fan_out(note)
        assert len(outcomes) == 1
        assert outcomes[0].status == "skipped"

    @pytest.mark.asyncio
    async def test_failed_push_outcome(self, service, tokens, dispatcher, notification_row):
        tokens.tokens_for_scope = AsyncMock(return_value=["t1"])
        dispatcher.send_batch = AsyncMock(side_effect=ConnectionError("FCM unreachable"))
        note = Notification.model_validate(notification_row())

        push = (await service.fan_out(note))[-1]

        assert push.status == "failed"
        assert "FCM unreachable" in push.detail


class TestQueries:
    @pytest.mark.asyncio
    async def test_list_passes_scope(self, service, store):
        await service.list(page=2, limit=10, driver_id="D1")
        store.list.assert_awaited_once_with(ScopeQuery(driver_id="D1"), page=2, limit=10)

    @pytest.mark.asyncio
    async def test_mark_as_read_not_found(self, service, store):
        store.mark_as_read = AsyncMock(return_value=None)
        assert await service.mark_as_read("nonexistent-id") is None

    @pytest.mark.asyncio
    async def test_count_unread_delegates(self, service, store):
        store.count_unread = AsyncMock(return_value=0)
        assert await service.count_unread("driver", "5") == 0
        store.count_unread.assert_awaited_once_with("driver", "5")

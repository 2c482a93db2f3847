"""
Pytest fixtures and configuration for the notification service tests.
"""

from datetime import datetime, timezone
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock

import pytest

from fleet_notify.services.device_tokens import DeviceTokenStore
from fleet_notify.services.notification_store import NotificationStore
from fleet_notify.services.push_provider import FirebaseGateway


@pytest.fixture
def mock_db():
    """Mock DatabasePool; each query method is an AsyncMock"""
    db = MagicMock()
    db.is_connected = True
    db.execute = AsyncMock(return_value="DELETE 1")
    db.fetch = AsyncMock(return_value=[])
    db.fetchone = AsyncMock(return_value=None)
    db.fetchval = AsyncMock(return_value=0)
    return db


@pytest.fixture
def notification_row():
    """Factory for rows as returned by the notifications table"""
    def make(**overrides):
        row = {
            "id": "0b7e7c1e-2f4a-4a4e-9c55-1f7f3f1d0a01",
            "type": "payment",
            "title": "Paid",
            "message": "Rent paid",
            "data": {},
            "recipient_type": "driver",
            "recipient_id": "D1",
            "read": False,
            "created_at": datetime(2026, 3, 1, 9, 30, tzinfo=timezone.utc),
            "updated_at": datetime(2026, 3, 1, 9, 30, tzinfo=timezone.utc),
        }
        row.update(overrides)
        return row
    return make


@pytest.fixture
def token_row():
    def make(**overrides):
        row = {
            "token": "fcm-token-driver-d1",
            "platform": "android",
            "user_type": "driver",
            "user_id": "D1",
            "last_seen": datetime(2026, 3, 1, 8, 0, tzinfo=timezone.utc),
            "created_at": datetime(2026, 2, 1, 8, 0, tzinfo=timezone.utc),
        }
        row.update(overrides)
        return row
    return make


@pytest.fixture
def notification_store(mock_db):
    return NotificationStore(mock_db)


@pytest.fixture
def device_token_store(mock_db):
    return DeviceTokenStore(mock_db)


def batch_response(results):
    """Build an object shaped like firebase_admin.messaging.BatchResponse"""
    responses = [
        SimpleNamespace(
            success=ok,
            message_id=f"projects/fleet/messages/{i}" if ok else None,
            exception=None if ok else Exception("Requested entity was not found.")
        )
        for i, ok in enumerate(results)
    ]
    return SimpleNamespace(
        success_count=sum(1 for ok in results if ok),
        failure_count=sum(1 for ok in results if not ok),
        responses=responses
    )


@pytest.fixture
def make_batch_response():
    return batch_response


@pytest.fixture
def mock_gateway():
    """Initialized gateway whose multicast succeeds for every token"""
    gateway = MagicMock(spec=FirebaseGateway)
    gateway.initialized = True
    gateway.send_multicast = MagicMock(
        side_effect=lambda tokens, title, body, data: batch_response([True] * len(tokens))
    )
    return gateway


@pytest.fixture
def mock_broadcaster():
    broadcaster = MagicMock()
    broadcaster.is_ready = True
    broadcaster.emit_global = AsyncMock(return_value=1)
    broadcaster.emit_to_room = AsyncMock(return_value=1)
    return broadcaster


@pytest.fixture
def mock_websocket():
    """Factory for fake WebSocket sessions"""
    def make():
        ws = MagicMock()
        ws.accept = AsyncMock()
        ws.send_text = AsyncMock()
        ws.close = AsyncMock()
        return ws
    return make

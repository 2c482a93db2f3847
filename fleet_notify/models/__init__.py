"""
Data models and schemas for notifications and device tokens
"""

from .schemas import (
    BatchResult,
    BulkUpdateResult,
    DeviceToken,
    DeviceTokenRegister,
    Notification,
    NotificationCreate,
    NotificationPage,
    Pagination,
    PushPayload,
)

__all__ = [
    "BatchResult",
    "BulkUpdateResult",
    "DeviceToken",
    "DeviceTokenRegister",
    "Notification",
    "NotificationCreate",
    "NotificationPage",
    "Pagination",
    "PushPayload",
]

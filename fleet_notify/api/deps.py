from typing import Optional

from fastapi import Request

from fleet_notify.config import settings
from fleet_notify.services.device_tokens import DeviceTokenStore
from fleet_notify.services.notification_service import NotificationService


def get_notification_service(request: Request) -> NotificationService:
    return request.app.state.notification_service


def get_device_token_store(request: Request) -> DeviceTokenStore:
    return request.app.state.device_tokens


def _positive_int(value: Optional[str]) -> Optional[int]:
    try:
        number = int(value)
    except (TypeError, ValueError):
        return None
    return number if number >= 1 else None


def page_number(page: Optional[str]) -> int:
    """Missing, non-numeric or non-positive pages fall back to the first page"""
    return _positive_int(page) or 1


def page_limit(limit: Optional[str]) -> int:
    """Page size with DEFAULT_PAGE_LIMIT fallback, clamped to MAX_PAGE_LIMIT"""
    return min(_positive_int(limit) or settings.default_page_limit, settings.max_page_limit)

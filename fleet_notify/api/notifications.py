"""
Notification endpoints for the admin dashboard and the driver/investor apps.
"""

from typing import Optional

from fastapi import APIRouter, Depends, Query, status
from fastapi.responses import JSONResponse

from fleet_notify.api.deps import get_notification_service, page_limit, page_number
from fleet_notify.errors import NotificationNotFoundError
from fleet_notify.logging_config import get_logger
from fleet_notify.models.response import error_body
from fleet_notify.models.schemas import Notification, NotificationCreate, NotificationPage
from fleet_notify.services.notification_service import NotificationService

router = APIRouter(prefix="/notifications", tags=["notifications"])
logger = get_logger(__name__)


@router.get("", response_model=NotificationPage)
async def list_notifications(
    page: Optional[str] = Query(None),
    limit: Optional[str] = Query(None),
    driver_id: Optional[str] = Query(None, alias="driverId"),
    investor_id: Optional[str] = Query(None, alias="investorId"),
    recipient_type: Optional[str] = Query(None, alias="recipientType"),
    recipient_id: Optional[str] = Query(None, alias="recipientId"),
    service: NotificationService = Depends(get_notification_service)
):
    """List notifications; with no scope filter every notification is returned"""
    try:
        return await service.list(
            page=page_number(page),
            limit=page_limit(limit),
            driver_id=driver_id,
            investor_id=investor_id,
            recipient_type=recipient_type,
            recipient_id=recipient_id
        )
    except Exception as e:
        logger.error(f"Error fetching notifications: {e}", exc_info=True)
        return JSONResponse(status_code=500, content=error_body("Failed to fetch notifications", e))


@router.post("", response_model=Notification, status_code=status.HTTP_201_CREATED)
async def create_notification(
    body: NotificationCreate,
    service: NotificationService = Depends(get_notification_service)
):
    try:
        return await service.create(
            type=body.type,
            title=body.title,
            message=body.message,
            data=body.data,
            recipient_type=body.recipient_type,
            recipient_id=body.recipient_id
        )
    except Exception as e:
        logger.error(f"Failed to create notification: {e}", exc_info=True)
        return JSONResponse(status_code=500, content=error_body("Failed to create notification", e))


@router.post("/read-all")
async def mark_all_read(
    recipient_type: Optional[str] = Query(None, alias="recipientType"),
    recipient_id: Optional[str] = Query(None, alias="recipientId"),
    service: NotificationService = Depends(get_notification_service)
):
    """Admin mark-all; narrows to a type, or a type and id, when given"""
    return await _mark_all(service, recipient_type, recipient_id)


@router.get("/unread-count")
async def unread_count(
    recipient_type: Optional[str] = Query(None, alias="recipientType"),
    recipient_id: Optional[str] = Query(None, alias="recipientId"),
    service: NotificationService = Depends(get_notification_service)
):
    return await _count_unread(service, recipient_type, recipient_id)


@router.post("/{notification_id}/read", response_model=Notification)
async def mark_read(
    notification_id: str,
    service: NotificationService = Depends(get_notification_service)
):
    try:
        updated = await service.mark_as_read(notification_id)
    except Exception as e:
        logger.error(f"Error marking notification as read: {e}", exc_info=True)
        return JSONResponse(status_code=500, content=error_body("Failed to mark notification as read", e))
    if updated is None:
        raise NotificationNotFoundError(notification_id)
    return updated


# Driver-specific endpoints

@router.get("/driver/{driver_id}", response_model=NotificationPage)
async def list_driver_notifications(
    driver_id: str,
    page: Optional[str] = Query(None),
    limit: Optional[str] = Query(None),
    service: NotificationService = Depends(get_notification_service)
):
    try:
        return await service.list(page=page_number(page), limit=page_limit(limit), driver_id=driver_id)
    except Exception as e:
        logger.error(f"Error fetching driver notifications: {e}", exc_info=True)
        return JSONResponse(status_code=500, content=error_body("Failed to fetch driver notifications", e))


@router.post("/driver/{driver_id}/read-all")
async def mark_driver_read(
    driver_id: str,
    service: NotificationService = Depends(get_notification_service)
):
    return await _mark_all(service, "driver", driver_id)


@router.get("/driver/{driver_id}/unread-count")
async def driver_unread_count(
    driver_id: str,
    service: NotificationService = Depends(get_notification_service)
):
    return await _count_unread(service, "driver", driver_id)


# Investor-specific endpoints

@router.get("/investor/{investor_id}", response_model=NotificationPage)
async def list_investor_notifications(
    investor_id: str,
    page: Optional[str] = Query(None),
    limit: Optional[str] = Query(None),
    service: NotificationService = Depends(get_notification_service)
):
    try:
        return await service.list(page=page_number(page), limit=page_limit(limit), investor_id=investor_id)
    except Exception as e:
        logger.error(f"Error fetching investor notifications: {e}", exc_info=True)
        return JSONResponse(status_code=500, content=error_body("Failed to fetch investor notifications", e))


@router.post("/investor/{investor_id}/read-all")
async def mark_investor_read(
    investor_id: str,
    service: NotificationService = Depends(get_notification_service)
):
    return await _mark_all(service, "investor", investor_id)


@router.get("/investor/{investor_id}/unread-count")
async def investor_unread_count(
    investor_id: str,
    service: NotificationService = Depends(get_notification_service)
):
    return await _count_unread(service, "investor", investor_id)


async def _mark_all(service: NotificationService, recipient_type: Optional[str], recipient_id: Optional[str]):
    try:
        result = await service.mark_all_as_read(recipient_type, recipient_id)
        return {"success": True, "result": result.model_dump(by_alias=True)}
    except Exception as e:
        logger.error(f"Error marking {recipient_type or 'all'} notifications read: {e}", exc_info=True)
        return JSONResponse(status_code=500, content=error_body("Failed to mark notifications as read", e))


async def _count_unread(service: NotificationService, recipient_type: Optional[str], recipient_id: Optional[str]):
    try:
        return {"unread": await service.count_unread(recipient_type, recipient_id)}
    except Exception as e:
        logger.error(f"Error counting {recipient_type or 'all'} unread notifications: {e}", exc_info=True)
        return JSONResponse(status_code=500, content=error_body("Failed to count notifications", e))

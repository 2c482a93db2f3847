from typing import Optional

from fastapi import APIRouter, Depends, Query
from fastapi.responses import JSONResponse

from fleet_notify.api.deps import get_device_token_store
from fleet_notify.logging_config import get_logger
from fleet_notify.models.response import error_body
from fleet_notify.models.schemas import DeviceTokenRegister
from fleet_notify.services.device_tokens import DeviceTokenStore

router = APIRouter(prefix="/device-tokens", tags=["device-tokens"])
logger = get_logger(__name__)


@router.post("")
async def register_token(
    body: DeviceTokenRegister,
    store: DeviceTokenStore = Depends(get_device_token_store)
):
    """Register or refresh a device token"""
    try:
        doc = await store.upsert(body.token, body.platform, body.user_type, body.user_id)
        return {"success": True, "token": doc.model_dump(by_alias=True, mode="json")}
    except Exception as e:
        logger.error(f"device-token upsert failed: {e}", exc_info=True)
        return JSONResponse(status_code=500, content=error_body("failed to register token", e))


@router.delete("/{token}")
async def remove_token(
    token: str,
    store: DeviceTokenStore = Depends(get_device_token_store)
):
    try:
        await store.delete(token)
        return {"success": True}
    except Exception as e:
        logger.error(f"device-token delete failed: {e}", exc_info=True)
        return JSONResponse(status_code=500, content=error_body("failed to delete token", e))


@router.get("")
async def list_tokens(
    user_type: Optional[str] = Query(None, alias="userType"),
    user_id: Optional[str] = Query(None, alias="userId"),
    limit: int = Query(100, ge=1, le=1000),
    store: DeviceTokenStore = Depends(get_device_token_store)
):
    try:
        items = await store.list(user_type, user_id, limit)
        return {"items": [t.model_dump(by_alias=True, mode="json") for t in items]}
    except Exception as e:
        logger.error(f"device-token list failed: {e}", exc_info=True)
        return JSONResponse(status_code=500, content=error_body("failed to list tokens", e))

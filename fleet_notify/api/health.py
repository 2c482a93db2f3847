from fastapi import APIRouter, Request

from fleet_notify.logging_config import get_logger
from fleet_notify.models.response import success_response, error_response

router = APIRouter()
logger = get_logger(__name__)


@router.get("/health")
async def health_check(request: Request):
    """
    Health of the service and its collaborators.
    Only the database is required; push and realtime are reported but do
    not degrade the status since notifications are still stored without them.
    """
    state = request.app.state
    health_data = {
        "service": "fleet-notify",
        "database": "unknown",
        "push_gateway": "unknown",
        "realtime": "unknown"
    }

    all_healthy = True

    try:
        db = state.db
        if not db.is_connected:
            health_data["database"] = "disconnected: pool not initialized"
            all_healthy = False
        else:
            await db.fetchval("SELECT 1")
            health_data["database"] = "connected"
            logger.debug("PostgreSQL health check: OK")
    except Exception as e:
        health_data["database"] = f"disconnected: {str(e)}"
        all_healthy = False
        logger.error(f"PostgreSQL health check failed: {e}")

    dispatcher = state.dispatcher
    health_data["push_gateway"] = "initialized" if dispatcher.gateway.initialized else "disabled"
    health_data["push_circuit"] = dispatcher.breaker.get_state()

    broadcaster = state.broadcaster
    health_data["realtime"] = "ready" if broadcaster.is_ready else "not started"
    health_data["realtime_sessions"] = len(broadcaster.connections)

    if all_healthy:
        return success_response(data=health_data, message="All services healthy")
    return error_response(
        error="Database unavailable",
        message="Service health check degraded",
        data=health_data
    )

import uuid
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from fleet_notify.api.device_tokens import router as device_tokens_router
from fleet_notify.api.health import router as health_router
from fleet_notify.api.notifications import router as notifications_router
from fleet_notify.api.websocket import router as websocket_router
from fleet_notify.config import settings
from fleet_notify.errors import NotificationNotFoundError
from fleet_notify.logging_config import clear_context, configure_logging, get_logger, set_context
from fleet_notify.models.response import error_body
from fleet_notify.services.circuit_breaker import CircuitBreaker
from fleet_notify.services.database import db_pool, init_db
from fleet_notify.services.device_tokens import DeviceTokenStore
from fleet_notify.services.notification_service import NotificationService
from fleet_notify.services.notification_store import NotificationStore
from fleet_notify.services.push_provider import FirebaseGateway, PushDispatcher, init_firebase
from fleet_notify.services.realtime import RealtimeBroadcaster

configure_logging(settings.log_level)
logger = get_logger(__name__)


def build_services(app: FastAPI, db=db_pool, gateway: FirebaseGateway = None) -> None:
    """Wire stores, broadcaster and dispatcher into app.state"""
    broadcaster = RealtimeBroadcaster()
    dispatcher = PushDispatcher(
        gateway or FirebaseGateway(),
        batch_limit=settings.push_batch_limit,
        timeout=settings.push_timeout_seconds,
        breaker=CircuitBreaker(
            max_failures=settings.push_breaker_max_failures,
            reset_timeout=settings.push_breaker_reset_seconds
        )
    )
    device_tokens = DeviceTokenStore(db)

    app.state.db = db
    app.state.broadcaster = broadcaster
    app.state.dispatcher = dispatcher
    app.state.device_tokens = device_tokens
    app.state.notification_service = NotificationService(
        store=NotificationStore(db),
        tokens=device_tokens,
        broadcaster=broadcaster,
        dispatcher=dispatcher
    )


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup and shutdown event handler"""
    logger.info("Starting fleet-notify")
    try:
        await init_db(db_pool)
        logger.info("Database initialization complete")
    except Exception as e:
        logger.error(f"Database initialization failed: {e}")
        raise

    build_services(app, db_pool, FirebaseGateway(init_firebase(settings)))
    app.state.broadcaster.start()

    yield

    logger.info("Shutting down fleet-notify")
    await app.state.broadcaster.stop()
    await db_pool.disconnect()


app = FastAPI(
    title="fleet-notify",
    version="1.0.0",
    lifespan=lifespan
)


@app.middleware("http")
async def request_context(request: Request, call_next):
    """Tag every log line of a request with its request id"""
    request_id = request.headers.get("X-Request-ID") or str(uuid.uuid4())
    clear_context()
    set_context(request_id=request_id)
    response = await call_next(request)
    response.headers["X-Request-ID"] = request_id
    return response


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError):
    messages = []
    for err in exc.errors():
        cause = err.get("ctx", {}).get("error")
        if cause is not None:
            messages.append(str(cause))
        else:
            loc = ".".join(str(part) for part in err.get("loc", ()) if part != "body")
            messages.append(f"{loc}: {err.get('msg')}" if loc else err.get("msg", "invalid request"))
    logger.info(f"Rejected invalid request to {request.url.path}: {messages}")
    return JSONResponse(status_code=400, content=error_body("; ".join(messages) or "Invalid request"))


@app.exception_handler(NotificationNotFoundError)
async def not_found_handler(request: Request, exc: NotificationNotFoundError):
    return JSONResponse(status_code=404, content=error_body("Notification not found"))


@app.get("/")
def index():
    return {"message": "fleet-notify API running"}


app.include_router(health_router)
app.include_router(notifications_router)
app.include_router(device_tokens_router)
app.include_router(websocket_router)

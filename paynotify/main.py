"""
FastAPI application main module.
Hosts the Slack event endpoint, liveness routes and the staged-job sweeper.
"""
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse, PlainTextResponse
from starlette.exceptions import HTTPException as StarletteHTTPException
import time
import uuid
import os
from contextlib import asynccontextmanager
from slack_bolt.adapter.fastapi.async_handler import AsyncSlackRequestHandler
from paynotify.utils import setup_logging, get_logger
from paynotify.config import EXPIRATION_SETTINGS, JOB_STORE_SETTINGS, STORE_SETTINGS
from paynotify.jobs.job_store import create_job_store
from paynotify.jobs.redis_store import create_expiring_store
from paynotify.jobs.sweeper import StagedJobSweeper
from paynotify.services.ack_tracker import AckTracker
from paynotify.services.dispatcher import NotificationDispatcher
from paynotify.services.lifecycle import JobLifecycleController
from paynotify.services.slack_bot import build_slack_app, register_handlers, slack_configured
from paynotify.services.slack_gateway import SlackGateway

# Setup logging before creating the app
setup_logging(
    log_level=os.getenv("LOG_LEVEL", "INFO"),
    log_file=os.getenv("LOG_FILE", "logs/paynotify.log"),
    enable_console=True
)

logger = get_logger(__name__)

SERVICE_NAME = "paynotify"
VERSION = "1.0.0"


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan manager.
    Builds the stores, the Slack app and the controller, and runs the sweeper.
    """
    logger.info("Application startup initiated")
    app.state.slack_handler = None
    app.state.controller = None
    sweeper: StagedJobSweeper | None = None
    try:
        if slack_configured():
            expiration = EXPIRATION_SETTINGS["message_expiration_seconds"]
            slack_app = build_slack_app()
            gateway = SlackGateway(slack_app.client)
            ack_tracker = AckTracker(create_expiring_store("acks", default_ttl=expiration))
            controller = JobLifecycleController(
                gateway,
                create_job_store(),
                NotificationDispatcher(gateway, ack_tracker),
                ack_tracker,
                create_expiring_store("processed", default_ttl=expiration),
            )
            register_handlers(slack_app, controller)
            app.state.controller = controller
            app.state.slack_handler = AsyncSlackRequestHandler(slack_app)
            sweeper = StagedJobSweeper(controller)
            sweeper.start()
        else:
            logger.warning("Slack credentials missing; SLACK_BOT_TOKEN and SLACK_SIGNING_SECRET are required")
        logger.info("Application startup completed successfully")
        yield
    except Exception as e:  # pragma: no cover
        logger.error("Application startup failed", error=str(e), exc_info=True)
        raise
    finally:
        logger.info("Application shutdown initiated")
        if sweeper is not None:
            await sweeper.stop()
        logger.info("Application shutdown completed")


app = FastAPI(
    title="Payment Notification Bot",
    description="Sends per-recipient payment notifications from spreadsheets shared in Slack.",
    version=VERSION,
    lifespan=lifespan,
)


# Request ID and logging middleware
@app.middleware("http")
async def add_request_context_and_logging(request: Request, call_next):
    """
    Add request ID, timing, and request/response logging.
    """
    request_id = request.headers.get("X-Request-ID") or str(uuid.uuid4())
    request.state.request_id = request_id
    request.state.start_time = time.time()

    logger.debug(
        "Request started",
        method=request.method,
        url=str(request.url),
        remote_addr=request.client.host if request.client else "unknown",
        request_id=request_id
    )

    response = await call_next(request)

    process_time = time.time() - request.state.start_time
    response.headers["X-Request-ID"] = request_id
    response.headers["X-Process-Time"] = str(round(process_time * 1000, 2))

    logger.info(
        "Request completed",
        method=request.method,
        url=str(request.url),
        status_code=response.status_code,
        process_time_ms=round(process_time * 1000, 2),
        request_id=request_id
    )
    return response


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    """Handle HTTP exceptions."""
    request_id = getattr(request.state, "request_id", "unknown")
    logger.warning(
        "HTTP exception",
        status_code=exc.status_code,
        detail=exc.detail,
        request_id=request_id,
        url=str(request.url),
        method=request.method
    )
    return JSONResponse(
        status_code=exc.status_code,
        content={"success": False, "message": exc.detail, "request_id": request_id}
    )


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    """Handle unexpected exceptions."""
    request_id = getattr(request.state, "request_id", "unknown")
    logger.error(
        "Unhandled exception",
        error=str(exc),
        error_type=type(exc).__name__,
        request_id=request_id,
        url=str(request.url),
        method=request.method,
        exc_info=True
    )
    return JSONResponse(
        status_code=500,
        content={"success": False, "message": "Internal server error", "request_id": request_id}
    )


# Slack Events API / interactivity endpoint
@app.post("/slack/events", tags=["slack"])
async def slack_events(request: Request):
    handler = getattr(request.app.state, "slack_handler", None)
    if handler is None:
        return JSONResponse(
            status_code=503,
            content={"success": False, "message": "Slack integration is not configured"}
        )
    return await handler.handle(request)


# Liveness route kept for uptime pingers
@app.api_route("/", methods=["GET", "HEAD"], tags=["health"], response_class=PlainTextResponse)
async def root():
    return "Bot is running!"


@app.get("/health", tags=["health"], summary="Basic health check")
async def health_check(request: Request):
    """Basic health check endpoint for load balancers."""
    return {
        "status": "healthy",
        "service": SERVICE_NAME,
        "version": VERSION,
        "timestamp": time.time(),
        "slack_configured": getattr(request.app.state, "slack_handler", None) is not None,
        "job_store_backend": JOB_STORE_SETTINGS.get("backend", "memory"),
        "expiring_store_backend": "redis" if STORE_SETTINGS.get("use_redis") else "memory",
    }


if __name__ == "__main__":
    import uvicorn

    logger.info("Starting development server")
    uvicorn.run(
        "paynotify.main:app",
        host="0.0.0.0",
        port=int(os.getenv("PORT", "3000")),
        log_level="info",
        access_log=True
    )

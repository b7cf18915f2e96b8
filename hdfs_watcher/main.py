import logging
from contextlib import asynccontextmanager

import uvicorn
from fastapi import FastAPI, Request

from .api import config_info, files, processing, tracking
from .dependencies import (
    get_local_storage,
    get_manual_ops,
    get_monitoring_publisher,
    get_notification_sink,
    get_poller,
    get_settings,
    get_upload_service,
)
from .logging_config import setup_logging


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan manager"""
    # Startup
    settings = get_settings()
    setup_logging(settings)

    config_info = settings.config_file_info
    logging.info(f"Configuration loaded from: {config_info['active_config_file']}")
    logging.info(f"Running on hostname: {config_info['hostname']}")
    if len(config_info["all_available_configs"]) > 1:
        logging.info(
            f"Available config files: {', '.join(config_info['all_available_configs'])}"
        )

    logging.info("HDFS Watcher starting up...")
    logging.info(f"Mode: {settings.mode} (pseudoop: {settings.pseudoop})")
    if settings.is_local_mode:
        logging.info(f"Local storage: {settings.local_storage_path}")
    else:
        logging.info(f"HDFS paths: {', '.join(settings.hdfs_path_list)} as {settings.hdfs_user}")
    logging.info(f"Public app URI: {settings.resolved_public_app_uri}")
    logging.info(f"Poll interval: {settings.poll_interval_seconds}s")

    local_storage = get_local_storage()
    if local_storage is not None:
        await local_storage.initialize()

    # Resolve the wiring up front so configuration errors stop the startup
    get_manual_ops()
    get_upload_service()

    sink = get_notification_sink()
    try:
        await sink.connect()
    except Exception as e:
        logging.warning(f"Notification sink not reachable at startup, will retry on send: {e}")

    poller = get_poller()
    await poller.start_polling()

    monitoring_publisher = get_monitoring_publisher()
    if monitoring_publisher is not None:
        await monitoring_publisher.start()

    yield

    # Shutdown
    logging.info("HDFS Watcher shutting down...")

    await poller.stop_polling()
    if monitoring_publisher is not None:
        await monitoring_publisher.stop()
    await sink.close()

    logging.info("All background tasks stopped")


app = FastAPI(
    title="HDFS Watcher",
    description="Watches HDFS or a local directory and announces new files once",
    version="0.1.0",
    lifespan=lifespan,
)


# Request logging middleware
@app.middleware("http")
async def log_requests(request: Request, call_next):
    logging.info(
        f"Incoming request: {request.method} {request.url.path}",
        extra={
            "operation": "http_request",
            "method": request.method,
            "path": request.url.path,
            "client_ip": request.client.host if request.client else "unknown",
        },
    )

    response = await call_next(request)

    logging.info(
        f"Response: {response.status_code}",
        extra={
            "operation": "http_response",
            "status_code": response.status_code,
            "path": request.url.path,
        },
    )

    return response


app.include_router(files.router)
app.include_router(tracking.router)
app.include_router(processing.router)
app.include_router(config_info.router)


@app.get("/")
async def root():
    """Health check endpoint."""
    return {"status": "ok", "message": "HDFS Watcher is running"}


@app.get("/health")
async def health():
    """Detailed health check."""
    return {"status": "healthy", "service": "hdfs-watcher"}


def run() -> None:
    uvicorn.run(
        "hdfs_watcher.main:app",
        host="0.0.0.0",
        port=get_settings().server_port,
        reload=False,
        log_level="info",
    )


if __name__ == "__main__":
    run()

"""Entry point for the FileVault service."""

import time
import uuid
from datetime import timedelta

import uvicorn
from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse

from common.logging_config import bind_request_id, reset_request_id, setup_logging
from filevault.config import (
    JANITOR_BATCH_SIZE,
    JANITOR_ENABLED,
    JANITOR_INTERVAL_SECONDS,
    JANITOR_MAX_BATCHES,
    JANITOR_RETENTION_HOURS,
    SERVER_HOST,
    SERVER_PORT,
)
from filevault.database import get_db_connection, init_database
from filevault.exceptions import (
    AccessDeniedError,
    ConcurrentModificationError,
    ContentConflictError,
    DeleteFailedError,
    InvalidArgumentError,
    InvalidStateError,
    NameConflictError,
    NotFoundError,
    UploadFailedError,
    VaultException,
)
from filevault.janitor import JanitorSweeper
from filevault.routes.download_routes import router as download_router
from filevault.routes.file_routes import router as file_router
from filevault.routes.tag_routes import router as tag_router
from filevault.schemas.common import ErrorResponse
from filevault.service_locator import get_object_store
from objectstore.base import ObjectNotFoundError, ObjectStoreError

logger = setup_logging('filevault')
setup_logging('objectstore')

app = FastAPI(
    title="FileVault",
    description="File storage service with reserve-before-write uploads and a cleanup janitor",
    version="1.0.0"
)

janitor = None


@app.middleware("http")
async def log_requests(request: Request, call_next):
    """
    Middleware to log all HTTP requests and responses.
    """
    request_id = str(uuid.uuid4())
    request.state.request_id = request_id
    token = bind_request_id(request_id)

    start_time = time.time()

    user_id = request.headers.get("X-User-Id")

    try:
        logger.info(
            f"Request started: {request.method} {request.url.path} [user_id={user_id or 'anonymous'}]"
        )

        response = await call_next(request)

        duration = time.time() - start_time

        logger.info(
            f"Request completed: {request.method} {request.url.path} "
            f"status={response.status_code} duration={duration:.3f}s"
        )
    finally:
        reset_request_id(token)

    response.headers["X-Request-ID"] = request_id

    return response


@app.on_event("startup")
async def startup_event():
    """
    Initialize storage and start the janitor on application startup.
    """
    global janitor

    logger.info("FileVault service starting up...")

    init_database()
    logger.info("Database initialized")

    object_store = get_object_store()
    logger.info("Object store ready")

    if JANITOR_ENABLED:
        janitor = JanitorSweeper(
            object_store,
            retention=timedelta(hours=JANITOR_RETENTION_HOURS),
            batch_size=JANITOR_BATCH_SIZE,
            max_batches=JANITOR_MAX_BATCHES,
            interval_seconds=JANITOR_INTERVAL_SECONDS,
        )
        await janitor.start()
        logger.info("Janitor task started")
    else:
        logger.info("Janitor disabled")


@app.on_event("shutdown")
async def shutdown_event():
    """
    Stop background tasks on application shutdown.
    """
    global janitor

    logger.info("FileVault service shutting down...")

    if janitor:
        await janitor.stop()
        janitor = None
        logger.info("Janitor task stopped")


def _error_response(request: Request, exc: Exception, status_code: int, code: str, label: str) -> JSONResponse:
    user_id = getattr(request.state, 'user_id', 'unknown')
    message = f"{label}: {exc} [user_id={user_id}] path={request.url.path}"
    if status_code >= 500:
        logger.error(message, exc_info=exc)
    else:
        logger.warning(message)
    return JSONResponse(
        status_code=status_code,
        content=ErrorResponse(detail=str(exc), code=code).model_dump()
    )


@app.exception_handler(InvalidArgumentError)
async def invalid_argument_handler(request: Request, exc: InvalidArgumentError):
    return _error_response(request, exc, status.HTTP_400_BAD_REQUEST, "INVALID_ARGUMENT", "Invalid argument")


@app.exception_handler(NameConflictError)
async def name_conflict_handler(request: Request, exc: NameConflictError):
    return _error_response(request, exc, status.HTTP_409_CONFLICT, "FILE_NAME_CONFLICT", "File name conflict")


@app.exception_handler(ContentConflictError)
async def content_conflict_handler(request: Request, exc: ContentConflictError):
    return _error_response(request, exc, status.HTTP_409_CONFLICT, "FILE_CONTENT_CONFLICT", "File content conflict")


@app.exception_handler(NotFoundError)
async def not_found_handler(request: Request, exc: NotFoundError):
    return _error_response(request, exc, status.HTTP_404_NOT_FOUND, "FILE_NOT_FOUND", "File not found")


@app.exception_handler(AccessDeniedError)
async def access_denied_handler(request: Request, exc: AccessDeniedError):
    return _error_response(request, exc, status.HTTP_403_FORBIDDEN, "ACCESS_DENIED", "Access denied")


@app.exception_handler(InvalidStateError)
async def invalid_state_handler(request: Request, exc: InvalidStateError):
    return _error_response(request, exc, status.HTTP_409_CONFLICT, "INVALID_STATE", "Invalid state")


@app.exception_handler(ConcurrentModificationError)
async def concurrent_modification_handler(request: Request, exc: ConcurrentModificationError):
    return _error_response(
        request, exc, status.HTTP_409_CONFLICT, "CONCURRENT_MODIFICATION", "Concurrent modification"
    )


@app.exception_handler(DeleteFailedError)
async def delete_failed_handler(request: Request, exc: DeleteFailedError):
    return _error_response(request, exc, status.HTTP_500_INTERNAL_SERVER_ERROR, "DELETE_FAILED", "Delete failed")


@app.exception_handler(UploadFailedError)
async def upload_failed_handler(request: Request, exc: UploadFailedError):
    return _error_response(request, exc, status.HTTP_500_INTERNAL_SERVER_ERROR, "UPLOAD_FAILED", "Upload failed")


@app.exception_handler(ObjectNotFoundError)
async def object_not_found_handler(request: Request, exc: ObjectNotFoundError):
    return _error_response(request, exc, status.HTTP_404_NOT_FOUND, "CONTENT_NOT_FOUND", "Content not found")


@app.exception_handler(ObjectStoreError)
async def object_store_error_handler(request: Request, exc: ObjectStoreError):
    return _error_response(
        request, exc, status.HTTP_503_SERVICE_UNAVAILABLE, "OBJECT_STORE_UNAVAILABLE", "Object store error"
    )


@app.exception_handler(VaultException)
async def vault_exception_handler(request: Request, exc: VaultException):
    return _error_response(request, exc, status.HTTP_500_INTERNAL_SERVER_ERROR, "INTERNAL_ERROR", "FileVault exception")


app.include_router(file_router)
app.include_router(download_router)
app.include_router(tag_router)


@app.get("/")
def root():
    """
    Root endpoint.
    """
    return {"message": "FileVault API", "status": "running"}


@app.get("/health")
def health_check():
    """
    Health check endpoint for Docker healthcheck.
    Returns 200 if service is alive.
    """
    return {"status": "healthy", "service": "filevault"}


@app.get("/ready")
def ready_check():
    """
    Readiness check endpoint.
    Verifies database and object store connectivity.
    """
    try:
        with get_db_connection() as conn:
            conn.execute("SELECT 1 FROM files LIMIT 1")
        db_status = "ok"
    except Exception as e:
        db_status = f"error: {str(e)}"

    try:
        object_store_status = "ok" if get_object_store().ping() else "error: ping failed"
    except Exception as e:
        object_store_status = f"error: {str(e)}"

    ready = db_status == "ok" and object_store_status == "ok"
    status_code = status.HTTP_200_OK if ready else status.HTTP_503_SERVICE_UNAVAILABLE

    return JSONResponse(
        status_code=status_code,
        content={
            "ready": ready,
            "database": db_status,
            "object_store": object_store_status
        }
    )


def main() -> None:
    """
    Start the FastAPI server with uvicorn.
    """
    uvicorn.run(
        "filevault.main:app",
        host=SERVER_HOST,
        port=SERVER_PORT,
        log_level="info"
    )


if __name__ == "__main__":
    main()

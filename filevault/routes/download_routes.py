"""Public download links."""

from urllib.parse import quote

from fastapi import APIRouter
from fastapi.responses import StreamingResponse

from common.constants import DEFAULT_CONTENT_TYPE
from common.logging_config import get_logger
from filevault.service_locator import get_object_store
from filevault.services.file_coordinator import FileCoordinator

logger = get_logger(__name__)

router = APIRouter(tags=["Download"])


def content_disposition(file_name: str) -> str:
    """Build an attachment header that survives non-ASCII names."""
    fallback = file_name.encode("ascii", "replace").decode("ascii").replace('"', "_").replace("?", "_")
    return f"attachment; filename=\"{fallback}\"; filename*=UTF-8''{quote(file_name, safe='')}"


@router.get("/d/{file_id}/{secret}")
def download_file(file_id: str, secret: str):
    """
    Stream a READY file to anyone holding its download link.

    Raises:
        - 403: Secret does not match
        - 404: File not found or not READY, or content missing
    """
    record, stream = FileCoordinator(get_object_store()).open_download(file_id, secret)

    logger.info(f"Downloading file: {record.file_name} ({record.file_id})")

    headers = {
        "Content-Disposition": content_disposition(record.file_name),
        "Content-Length": str(record.size_bytes),
    }
    return StreamingResponse(
        stream,
        media_type=record.content_type or DEFAULT_CONTENT_TYPE,
        headers=headers
    )

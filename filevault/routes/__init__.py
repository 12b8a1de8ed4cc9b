"""API routes package."""

from filevault.routes.download_routes import router as download_router
from filevault.routes.file_routes import router as file_router
from filevault.routes.tag_routes import router as tag_router

__all__ = ["download_router", "file_router", "tag_router"]

"""Tag vocabulary API routes."""

from typing import List

from fastapi import APIRouter

from filevault.schemas.tags import TagResponse
from filevault.services.tag_service import TagService

router = APIRouter(prefix="/api/tags", tags=["Tags"])


@router.get("", response_model=List[TagResponse])
def get_all_tags():
    """
    Return every registered tag, sorted by name.
    """
    return [TagResponse(name=name) for name in TagService().get_all_tags()]

"""Tag service for business logic."""

import re
import sqlite3
from typing import List, Optional

from common.constants import TAG_PATTERN
from common.logging_config import get_logger
from filevault.config import MAX_TAGS_PER_FILE
from filevault.exceptions import InvalidArgumentError
from filevault.repositories.tag_repository import TagRepository
from filevault.utils import utcnow

logger = get_logger(__name__)

_TAG_RE = re.compile(TAG_PATTERN)


class TagService:
    def __init__(self, max_tags: int = MAX_TAGS_PER_FILE):
        self.max_tags = max_tags
        self.tag_repo = TagRepository()

    def validate_and_normalize_tags(self, tags: Optional[List[str]]) -> List[str]:
        """
        Validate raw tags and return them lowercased and de-duplicated.

        Order of first occurrence is preserved.

        Raises:
            InvalidArgumentError: If there are too many tags or one is malformed
        """
        if not tags:
            return []

        if len(tags) > self.max_tags:
            raise InvalidArgumentError(f"Maximum {self.max_tags} tags allowed")

        normalized = []
        for tag in tags:
            if tag is None or not tag.strip():
                raise InvalidArgumentError("Tag cannot be null or empty")

            value = tag.strip()
            if not _TAG_RE.match(value):
                raise InvalidArgumentError(
                    f"Tag '{value}' must contain only alphanumeric characters, underscore, "
                    f"or dash and be 1-30 characters long"
                )

            value = value.lower()
            if value not in normalized:
                normalized.append(value)

        return normalized

    def ensure_exist(self, names: List[str]) -> None:
        """
        Register every tag name that is not in the registry yet.

        Safe to call concurrently with the same names.
        """
        if not names:
            return

        existing = self.tag_repo.find_existing(names)
        missing = [name for name in names if name not in existing]

        created = 0
        for name in missing:
            try:
                self.tag_repo.create_tag(name, utcnow())
                created += 1
            except sqlite3.IntegrityError:
                logger.debug(f"Tag '{name}' was created by a concurrent request")

        if created:
            logger.debug(f"Created {created} new tags")

    def get_all_tags(self) -> List[str]:
        return self.tag_repo.get_all_tags()

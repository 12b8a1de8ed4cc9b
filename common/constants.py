"""Project-wide constants (stream sizes, key formats, sentinels)."""

STREAM_PIECE_SIZE_BYTES: int = 64 * 1024  # 64 KiB read size for blob streaming

OBJECT_KEY_PREFIX: str = "file-"

HASH_NOT_COMPUTED: str = "PENDING"

MAX_FILE_NAME_LENGTH: int = 255

TAG_PATTERN: str = r"^[a-zA-Z0-9_-]{1,30}$"

DEFAULT_CONTENT_TYPE: str = "application/octet-stream"

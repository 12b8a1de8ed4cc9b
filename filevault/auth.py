"""Caller identification for API requests."""

from typing import Optional

from fastapi import Header, HTTPException, Request, status


def get_current_user(request: Request, x_user_id: Optional[str] = Header(None)) -> str:
    """
    FastAPI dependency that extracts the caller's user id.

    The id is supplied by the gateway in front of this service in the
    X-User-Id header.

    Args:
        x_user_id: X-User-Id header value

    Returns:
        user_id of the caller

    Raises:
        HTTPException: 401 if the header is missing or blank
    """
    if x_user_id is None or not x_user_id.strip():
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Missing X-User-Id header"
        )

    user_id = x_user_id.strip()
    request.state.user_id = user_id
    return user_id

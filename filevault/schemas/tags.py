"""Pydantic schemas for tag endpoints."""

from pydantic import BaseModel


class TagResponse(BaseModel):
    """Response model for a registered tag."""
    name: str

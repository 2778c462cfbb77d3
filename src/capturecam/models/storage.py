"""
Storage Models
==============

Pydantic models exchanged with the upload, gallery and lead collaborators.
"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field, model_validator


class StoredImage(BaseModel):
    """Result of a successful upload."""

    filename: str
    url: str
    size: int = Field(..., ge=0)
    type: str


class GalleryImage(BaseModel):
    """Previously stored image as listed by the gallery."""

    filename: str
    url: str
    size: int = Field(..., ge=0)
    created_at: datetime


class LeadCreate(BaseModel):
    """
    Payload for creating a lead.

    At least one of name, email or phone must be present.
    """

    name: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None
    company: Optional[str] = None
    image_url: Optional[str] = None

    @model_validator(mode="after")
    def _require_contact(self) -> "LeadCreate":
        if not (self.name or self.email or self.phone):
            raise ValueError("At least one of name, email, or phone is required.")
        return self


class Lead(BaseModel):
    """Persisted lead record."""

    id: int
    name: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None
    company: Optional[str] = None
    image_url: Optional[str] = None
    created_at: datetime

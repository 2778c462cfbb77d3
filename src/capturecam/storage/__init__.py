"""
Storage Module
==============

Collaborators that receive the pipeline's output.

Components:
    - UploadStore: Validated image writes to the uploads directory
    - Gallery: Newest-first listing of stored images
    - LeadStore: SQLite lead records
"""

from capturecam.storage.uploads import ALLOWED_TYPES, UploadStore, UploadValidationError
from capturecam.storage.gallery import IMAGE_EXTENSIONS, Gallery
from capturecam.storage.leads import LeadStore, LeadValidationError, validate_lead

__all__ = [
    "ALLOWED_TYPES",
    "UploadStore",
    "UploadValidationError",
    "IMAGE_EXTENSIONS",
    "Gallery",
    "LeadStore",
    "LeadValidationError",
    "validate_lead",
]

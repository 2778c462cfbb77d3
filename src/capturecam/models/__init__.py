"""
Data Models
===========

Pydantic models for CaptureCam.

Models:
    Input:
        - CameraFrameMessage: Schema for frames pushed by a camera streamer

    State:
        - CaptureState: Controller states (LIVE, EVALUATING, ACCEPTED)
        - CaptureResult: Outcome of one capture trigger
        - CaptureStatus: UI snapshot
        - ReasonCode: Machine-readable capture outcomes

    Storage:
        - StoredImage, GalleryImage: Upload and gallery entries
        - LeadCreate, Lead: Lead records
"""

from capturecam.models.input import CameraFrameMessage
from capturecam.models.reason_codes import ReasonCode
from capturecam.models.state import CaptureResult, CaptureState, CaptureStatus
from capturecam.models.storage import GalleryImage, Lead, LeadCreate, StoredImage

__all__ = [
    # Input
    "CameraFrameMessage",
    # State
    "CaptureState",
    "CaptureResult",
    "CaptureStatus",
    "ReasonCode",
    # Storage
    "StoredImage",
    "GalleryImage",
    "LeadCreate",
    "Lead",
]

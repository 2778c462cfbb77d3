"""
Capture State Models
====================

Internal state and API-facing snapshots of the capture controller.

Core Concepts:
    - CaptureState: Discrete controller states (LIVE, EVALUATING, ACCEPTED)
    - CaptureResult: Outcome of a single capture trigger
    - CaptureStatus: Snapshot for the UI (brightness, label, counters)

Transitions:
    LIVE → EVALUATING:     capture trigger, brightness at or above floor
    EVALUATING → LIVE:     blur rejected, or normalization failed
    EVALUATING → ACCEPTED: sharpness passed and artifact rendered
    ACCEPTED → LIVE:       retake
"""

from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field

from capturecam.models.reason_codes import ReasonCode


class CaptureState(str, Enum):
    """
    Discrete states of the capture controller.

    Attributes:
        LIVE: Camera streaming, brightness polling active
        EVALUATING: Sharpness check and normalization in flight
        ACCEPTED: Normalized artifact held for preview/upload
    """

    LIVE = "LIVE"
    EVALUATING = "EVALUATING"
    ACCEPTED = "ACCEPTED"


class CaptureResult(BaseModel):
    """
    Outcome of a capture trigger.

    Attributes:
        reason_code: Machine-readable outcome
        state: Controller state after the trigger was handled
        message: Optional user-facing text (retry hints, errors)
        sharpness: Sharpness score when one was computed
        brightness: Brightness score the gate was evaluated against
    """

    reason_code: ReasonCode
    state: CaptureState
    message: Optional[str] = None
    sharpness: Optional[float] = Field(default=None, ge=0.0)
    brightness: Optional[float] = Field(default=None, ge=0.0, le=255.0)

    @property
    def accepted(self) -> bool:
        return self.reason_code == ReasonCode.ACCEPTED


class CaptureStatus(BaseModel):
    """
    Snapshot of the controller for the capture UI.

    Attributes:
        state: Current controller state
        brightness: Latest brightness score (None until first sample)
        status_label: 'low-light', 'dim' or 'ready'
        capture_enabled: Whether a capture trigger would be evaluated
        capture_count: Accepted captures since startup
        has_artifact: Whether an artifact is held
        last_message: Last user-facing message (e.g. blur warning)
    """

    state: CaptureState
    brightness: Optional[float] = None
    status_label: str
    capture_enabled: bool
    capture_count: int = Field(default=0, ge=0)
    has_artifact: bool = False
    last_message: Optional[str] = None

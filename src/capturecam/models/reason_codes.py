"""
Reason Codes
============

Fixed set of machine-readable outcome codes for capture attempts.

Each capture attempt ends with exactly ONE reason code.

Rules:
    - One clear cause per code
    - Codes are stable API values; user-facing text lives in CaptureResult.message
"""

from enum import Enum


class ReasonCode(str, Enum):
    """
    Machine-readable capture outcome codes.

    Attributes:
        ACCEPTED: Still passed every gate and was normalized
        TOO_DARK: Latest brightness score is below the floor
        BUSY: An evaluation is already in flight
        NOT_LIVE: An artifact is already held; retake first
        FRAME_UNAVAILABLE: The camera could not provide a still
        BLUR_REJECTED: Sharpness score is below the floor
        DECODE_FAILURE: The still could not be decoded
        RENDERING_UNAVAILABLE: The normalized artifact could not be rendered
    """

    # Success
    ACCEPTED = "ACCEPTED"

    # Ignored before evaluation starts
    TOO_DARK = "TOO_DARK"
    BUSY = "BUSY"
    NOT_LIVE = "NOT_LIVE"

    # Evaluation failures (state returns to LIVE)
    FRAME_UNAVAILABLE = "FRAME_UNAVAILABLE"
    BLUR_REJECTED = "BLUR_REJECTED"
    DECODE_FAILURE = "DECODE_FAILURE"
    RENDERING_UNAVAILABLE = "RENDERING_UNAVAILABLE"

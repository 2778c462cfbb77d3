"""
Input Message Schema
====================

Pydantic model for camera frames pushed by a remote streamer.

Input Contract:
    {
        "timestamp": 1707321234.567,
        "image": "<base64 PNG/JPEG, optionally a data: URL>"
    }

Example:
    from capturecam.models.input import CameraFrameMessage

    raw = await websocket.recv()
    message = CameraFrameMessage.model_validate_json(raw)
"""

from pydantic import BaseModel, ConfigDict, Field


class CameraFrameMessage(BaseModel):
    """
    Schema for frame messages received from a camera streamer.

    Attributes:
        timestamp: UNIX timestamp when the frame was grabbed
        image: Base64-encoded image data
    """

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "timestamp": 1707321234.567,
                "image": "iVBORw0KGgoAAAANSUhEUgAA...",
            }
        }
    )

    timestamp: float = Field(
        ...,
        gt=0,
        description="UNIX timestamp in seconds when the frame was grabbed",
    )

    image: str = Field(
        ...,
        min_length=1,
        description="Base64-encoded image data",
    )

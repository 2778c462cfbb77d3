"""
CaptureCam
==========

Business-card capture pipeline with brightness and blur gating.

The service samples live camera brightness, refuses captures in low light,
scores each still for blur, and normalizes accepted stills to a fixed
1024x585 PNG ready for upload and lead entry.

Components:
    - camera: Live video sources and the image encode/decode boundary
    - quality: Brightness sampler and sharpness estimator
    - imaging: Center-crop + scale normalizer
    - capture: LIVE / EVALUATING / ACCEPTED controller (LangGraph evaluation)
    - storage: Upload, gallery and lead collaborators

Example:
    from capturecam.config import settings
    from capturecam.capture import CaptureController

    # The service is started via the FastAPI application
    # See main.py for entry point
"""

__version__ = "0.1.0"
__author__ = "CaptureCam Project"

__all__ = [
    "__version__",
]

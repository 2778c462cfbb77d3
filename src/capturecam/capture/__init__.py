"""
Capture Module
==============

Capture session control.

Components:
    - CaptureController: LIVE / EVALUATING / ACCEPTED state machine
    - CaptureEvaluationGraph: LangGraph sharpness → normalize workflow
"""

from capturecam.capture.controller import CaptureController, NoArtifactError
from capturecam.capture.graph import CaptureEvaluationGraph, EvaluationState

__all__ = [
    "CaptureController",
    "NoArtifactError",
    "CaptureEvaluationGraph",
    "EvaluationState",
]

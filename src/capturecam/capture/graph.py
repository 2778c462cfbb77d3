"""
Evaluation Graph Definition
===========================

LangGraph workflow for evaluating one captured still.

LangGraph is used for CONTROL FLOW only.

Graph Structure:
    START → estimate_sharpness ─┬─ (rejected) ──────────→ END
                                └─ (passed) → normalize → END

Every path ends with exactly one reason_code in the output state:
    - BLUR_REJECTED / DECODE_FAILURE from estimate_sharpness
    - ACCEPTED / DECODE_FAILURE / RENDERING_UNAVAILABLE from normalize
"""

import logging
from typing import Any, Dict, Optional, TypedDict

from langgraph.graph import END, StateGraph

from capturecam.camera.decoder import DecodeFailure
from capturecam.imaging.normalizer import FrameNormalizer, NormalizedArtifact, RenderingUnavailable
from capturecam.models.reason_codes import ReasonCode
from capturecam.quality.sharpness import BlurRejected, SharpnessEstimator


logger = logging.getLogger(__name__)


class EvaluationState(TypedDict):
    """
    State passed through the evaluation graph.

    Attributes:
        still: Encoded still under evaluation
        sharpness: Laplacian variance, once computed
        artifact: Normalized artifact on acceptance
        reason_code: Outcome, set by whichever node finishes the attempt
        message: User-facing text for rejections and failures
    """
    still: bytes
    sharpness: Optional[float]
    artifact: Optional[NormalizedArtifact]
    reason_code: Optional[ReasonCode]
    message: Optional[str]


class CaptureEvaluationGraph:
    """
    Sharpness gate followed by normalization, as a compiled LangGraph.

    The graph holds no state between invocations; each evaluate() call
    starts from a fresh EvaluationState.
    """

    def __init__(
        self,
        estimator: SharpnessEstimator,
        normalizer: FrameNormalizer,
    ) -> None:
        self.estimator = estimator
        self.normalizer = normalizer
        self._graph = self._build_graph()
        logger.info("CaptureEvaluationGraph initialized")

    def _build_graph(self):
        """Build the LangGraph workflow."""
        workflow = StateGraph(EvaluationState)

        workflow.add_node("estimate_sharpness", self._estimate_sharpness_node)
        workflow.add_node("normalize", self._normalize_node)

        workflow.set_entry_point("estimate_sharpness")
        workflow.add_conditional_edges(
            "estimate_sharpness",
            self._route_after_sharpness,
            {"normalize": "normalize", "end": END},
        )
        workflow.add_edge("normalize", END)

        return workflow.compile()

    async def _estimate_sharpness_node(self, state: EvaluationState) -> Dict[str, Any]:
        """Score the still and apply the blur floor."""
        try:
            score = await self.estimator.estimate(state["still"])
        except DecodeFailure as e:
            logger.error(f"Still could not be decoded for sharpness: {e}")
            return {
                "reason_code": ReasonCode.DECODE_FAILURE,
                "message": "Could not read the captured image, please try again",
            }

        try:
            self.estimator.check(score)
        except BlurRejected as e:
            logger.info(f"Capture rejected: {e}")
            return {
                "sharpness": score,
                "reason_code": ReasonCode.BLUR_REJECTED,
                "message": e.user_message,
            }

        return {"sharpness": score}

    @staticmethod
    def _route_after_sharpness(state: EvaluationState) -> str:
        return "end" if state.get("reason_code") is not None else "normalize"

    async def _normalize_node(self, state: EvaluationState) -> Dict[str, Any]:
        """Crop, scale and encode the accepted still."""
        try:
            artifact = await self.normalizer.normalize(state["still"])
        except DecodeFailure as e:
            logger.error(f"Still could not be decoded for normalization: {e}")
            return {
                "reason_code": ReasonCode.DECODE_FAILURE,
                "message": "Could not read the captured image, please try again",
            }
        except RenderingUnavailable as e:
            logger.error(f"Normalized image could not be rendered: {e}")
            return {
                "reason_code": ReasonCode.RENDERING_UNAVAILABLE,
                "message": "Could not process the captured image, please try again",
            }

        return {"artifact": artifact, "reason_code": ReasonCode.ACCEPTED}

    async def evaluate(self, still: bytes) -> EvaluationState:
        """
        Run one evaluation to completion.

        Args:
            still: Encoded still from the camera

        Returns:
            Final EvaluationState with reason_code set
        """
        initial: EvaluationState = {
            "still": still,
            "sharpness": None,
            "artifact": None,
            "reason_code": None,
            "message": None,
        }
        return await self._graph.ainvoke(initial)

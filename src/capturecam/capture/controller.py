"""
Capture Controller
==================

State machine coordinating one camera session.

States:
    LIVE        Streaming; brightness polled every poll_interval_ms
    EVALUATING  Sharpness check + normalization in flight
    ACCEPTED    Normalized artifact held for preview, upload or retake

Design Rules:
    - Polling runs only in LIVE; leaving LIVE cancels the polling task
    - At most one evaluation is in flight; a second trigger returns BUSY
    - The state is set to EVALUATING before the first await, so concurrent
      triggers on the same event loop always observe it
    - Rejections and failures return to LIVE; none of them is fatal
    - The artifact is only discarded on retake, never on a failed upload
    - Source reads run off the event loop, one at a time
"""

import asyncio
import contextlib
import logging
import threading
from typing import Optional

from capturecam.camera.decoder import EncodeFailure
from capturecam.camera.frame import Frame
from capturecam.camera.source import FrameUnavailable, VideoSource
from capturecam.capture.graph import CaptureEvaluationGraph
from capturecam.imaging.normalizer import FrameNormalizer, NormalizedArtifact
from capturecam.models.reason_codes import ReasonCode
from capturecam.models.state import CaptureResult, CaptureState, CaptureStatus
from capturecam.models.storage import StoredImage
from capturecam.quality.brightness import BrightnessSampler
from capturecam.quality.sharpness import SharpnessEstimator


logger = logging.getLogger(__name__)


TOO_DARK_MESSAGE = "Too dark, add some light and try again"
NOT_READY_MESSAGE = "Camera not ready, try again"


class NoArtifactError(Exception):
    """Raised when an upload is requested without an accepted capture."""
    pass


class CaptureController:
    """
    Drive a VideoSource through LIVE → EVALUATING → ACCEPTED.

    Attributes:
        source: Live video backend
        sampler: Brightness gate
        estimator: Sharpness gate
        normalizer: Output renderer
    """

    def __init__(
        self,
        source: VideoSource,
        sampler: Optional[BrightnessSampler] = None,
        estimator: Optional[SharpnessEstimator] = None,
        normalizer: Optional[FrameNormalizer] = None,
    ) -> None:
        self.source = source
        self.sampler = sampler or BrightnessSampler()
        self.estimator = estimator or SharpnessEstimator()
        self.normalizer = normalizer or FrameNormalizer()
        self._evaluator = CaptureEvaluationGraph(self.estimator, self.normalizer)

        self._state = CaptureState.LIVE
        self._brightness: Optional[float] = None
        self._artifact: Optional[NormalizedArtifact] = None
        self._last_message: Optional[str] = None
        self._last_upload: Optional[StoredImage] = None
        self._poll_task: Optional[asyncio.Task] = None
        self._running = False
        # Serializes read_frame/capture_still across worker threads
        self._source_lock = threading.Lock()

        # Metrics
        self._capture_count = 0
        self._attempt_count = 0
        self._rejection_counts: dict = {}
        self._skipped_polls = 0
        self._poll_errors = 0
        self._upload_count = 0

        logger.info("CaptureController initialized")

    # -------------------------------------------------------------------------
    # Lifecycle
    # -------------------------------------------------------------------------

    async def start(self) -> None:
        """Start the source and enter LIVE with polling active."""
        await self.source.start()
        self._running = True
        self._enter_live()
        logger.info("CaptureController started")

    async def stop(self) -> None:
        """Cancel polling and release the source."""
        self._running = False
        task = self._poll_task
        self._cancel_polling()
        if task is not None:
            with contextlib.suppress(asyncio.CancelledError):
                await task
        await self.source.stop()
        logger.info("CaptureController stopped")

    def _enter_live(self) -> None:
        self._state = CaptureState.LIVE
        self._start_polling()

    def _start_polling(self) -> None:
        if not self._running:
            return
        if self._poll_task is None or self._poll_task.done():
            self._poll_task = asyncio.create_task(self._poll_loop(), name="brightness_poll")

    def _cancel_polling(self) -> None:
        if self._poll_task is not None:
            self._poll_task.cancel()
            self._poll_task = None

    async def _poll_loop(self) -> None:
        interval = self.sampler.config.poll_interval_ms / 1000.0
        while True:
            try:
                await self.poll()
            except Exception:
                self._poll_errors += 1
                logger.exception("Brightness poll failed")
            await asyncio.sleep(interval)

    def _read_frame(self) -> Optional[Frame]:
        with self._source_lock:
            return self.source.read_frame()

    def _capture_still(self) -> Optional[bytes]:
        with self._source_lock:
            return self.source.capture_still()

    def _record_sample(self, frame: Optional[Frame]) -> Optional[float]:
        try:
            brightness = self.sampler.sample(frame)
        except FrameUnavailable:
            self._skipped_polls += 1
            logger.debug("Brightness poll skipped: no frame ready")
            return None

        self._brightness = brightness
        return brightness

    # -------------------------------------------------------------------------
    # Operations
    # -------------------------------------------------------------------------

    def poll_once(self) -> Optional[float]:
        """
        Take one brightness sample if LIVE, reading on the calling thread.

        A source without a frame ready is skipped; the previous score
        is kept.

        Returns:
            The new brightness score, or None if no sample was taken
        """
        if self._state != CaptureState.LIVE:
            return None
        return self._record_sample(self._read_frame())

    async def poll(self) -> Optional[float]:
        """poll_once() with the source read off the event loop."""
        if self._state != CaptureState.LIVE:
            return None

        frame = await asyncio.to_thread(self._read_frame)
        # A capture may have started while the read was in flight
        if self._state != CaptureState.LIVE:
            return None
        return self._record_sample(frame)

    async def capture(self) -> CaptureResult:
        """
        Handle a capture trigger.

        Returns:
            CaptureResult describing the outcome; rejection reasons
            are reported, not raised
        """
        if self._state == CaptureState.EVALUATING:
            return self._result(ReasonCode.BUSY)
        if self._state == CaptureState.ACCEPTED:
            return self._result(ReasonCode.NOT_LIVE, "Retake to capture again")
        if self._brightness is not None and self.sampler.is_too_dark(self._brightness):
            return self._result(ReasonCode.TOO_DARK, TOO_DARK_MESSAGE)

        self._state = CaptureState.EVALUATING
        self._cancel_polling()
        self._attempt_count += 1
        self._last_message = None

        try:
            result = await self._evaluate()
        except Exception:
            logger.exception("Capture evaluation failed unexpectedly")
            self._enter_live()
            raise

        if result.reason_code != ReasonCode.ACCEPTED:
            self._rejection_counts[result.reason_code.value] = (
                self._rejection_counts.get(result.reason_code.value, 0) + 1
            )
        return result

    async def _evaluate(self) -> CaptureResult:
        try:
            still = await asyncio.to_thread(self._capture_still)
        except EncodeFailure as e:
            logger.error(f"Still could not be encoded: {e}")
            still = None

        if still is None:
            return self._reject(ReasonCode.FRAME_UNAVAILABLE, NOT_READY_MESSAGE)

        outcome = await self._evaluator.evaluate(still)
        reason = outcome["reason_code"]
        sharpness = outcome.get("sharpness")

        if reason != ReasonCode.ACCEPTED:
            return self._reject(reason, outcome.get("message"), sharpness)

        self._artifact = outcome["artifact"]
        self._last_upload = None
        self._capture_count += 1
        self._state = CaptureState.ACCEPTED
        brightness = self._brightness
        # Brightness belongs to the live session it was sampled in
        self._brightness = None

        logger.info(
            f"Capture #{self._capture_count} accepted "
            f"(sharpness={sharpness:.2f}, {self._artifact!r})"
        )
        return CaptureResult(
            reason_code=ReasonCode.ACCEPTED,
            state=self._state,
            sharpness=sharpness,
            brightness=brightness,
        )

    def _reject(
        self,
        reason: ReasonCode,
        message: Optional[str],
        sharpness: Optional[float] = None,
    ) -> CaptureResult:
        self._last_message = message
        self._enter_live()
        logger.info(f"Capture not accepted: {reason.value}")
        return self._result(reason, message, sharpness)

    def _result(
        self,
        reason: ReasonCode,
        message: Optional[str] = None,
        sharpness: Optional[float] = None,
    ) -> CaptureResult:
        return CaptureResult(
            reason_code=reason,
            state=self._state,
            message=message,
            sharpness=sharpness,
            brightness=self._brightness,
        )

    def retake(self) -> bool:
        """
        Discard the artifact and return to LIVE.

        Returns:
            True if an accepted capture was discarded
        """
        if self._state != CaptureState.ACCEPTED:
            return False

        self._artifact = None
        self._last_upload = None
        self._last_message = None
        self._enter_live()
        logger.info("Retake: artifact discarded, back to LIVE")
        return True

    async def upload(self, store) -> StoredImage:
        """
        Hand the held artifact to an upload store.

        The artifact stays held whether or not the store succeeds.

        Raises:
            NoArtifactError: If nothing has been accepted
            UploadValidationError / OSError: Propagated from the store
        """
        artifact = self._artifact
        if self._state != CaptureState.ACCEPTED or artifact is None:
            raise NoArtifactError("No accepted capture to upload")

        stored = await asyncio.to_thread(store.save, artifact.data, artifact.media_type)
        self._last_upload = stored
        self._upload_count += 1
        logger.info(f"Artifact uploaded as {stored.filename}")
        return stored

    # -------------------------------------------------------------------------
    # Introspection
    # -------------------------------------------------------------------------

    @property
    def state(self) -> CaptureState:
        return self._state

    @property
    def brightness(self) -> Optional[float]:
        return self._brightness

    @property
    def artifact(self) -> Optional[NormalizedArtifact]:
        return self._artifact

    @property
    def last_upload(self) -> Optional[StoredImage]:
        return self._last_upload

    @property
    def capture_count(self) -> int:
        return self._capture_count

    @property
    def is_polling(self) -> bool:
        return self._poll_task is not None and not self._poll_task.done()

    def status(self) -> CaptureStatus:
        """Snapshot for the UI."""
        too_dark = self._brightness is not None and self.sampler.is_too_dark(self._brightness)
        return CaptureStatus(
            state=self._state,
            brightness=self._brightness,
            status_label=self.sampler.status_label(self._brightness),
            capture_enabled=self._state == CaptureState.LIVE and not too_dark,
            capture_count=self._capture_count,
            has_artifact=self._artifact is not None,
            last_message=self._last_message,
        )

    def get_metrics(self) -> dict:
        """Get controller metrics."""
        return {
            "state": self._state.value,
            "brightness": self._brightness,
            "capture_count": self._capture_count,
            "attempt_count": self._attempt_count,
            "rejections": dict(self._rejection_counts),
            "upload_count": self._upload_count,
            "brightness_samples": self.sampler.sample_count,
            "skipped_polls": self._skipped_polls,
            "poll_errors": self._poll_errors,
            "polling": self.is_polling,
            "source": self.source.get_metrics(),
        }

"""
Central controller orchestrating the parallax pipeline.

Per frame: head pose -> smoothing -> off-axis projection -> render camera.
"""

from typing import Callable, Iterable, Optional
from dataclasses import dataclass

from parallax_window.core.config import AppConfig
from parallax_window.core.state import StateMachine, AppState, ErrorInfo
from parallax_window.projection.off_axis import OffAxisProjector, Frustum
from parallax_window.projection.render_camera import RenderCamera
from parallax_window.storage.calibration_store import CalibrationStore
from parallax_window.storage.schema import Calibration
from parallax_window.vision.camera import CameraError
from parallax_window.vision.head_pose import HeadPose
from parallax_window.vision.smoothing import PoseSmoother
from parallax_window.utils.timing import FPSCounter
from parallax_window.utils.logger import get_logger

logger = get_logger(__name__)


@dataclass
class FrameProcessingResult:
    """Result of processing a single pose sample."""

    success: bool  # Projection matrix updated this frame
    raw_pose: Optional[HeadPose] = None
    smoothed_pose: Optional[HeadPose] = None
    frustum: Optional[Frustum] = None
    fps: float = 0.0


class ParallaxController:
    """
    Central controller for the head-tracked window.

    Owns the calibration store, smoother, projector and render camera,
    and is their only caller. Calibration changes go through here so
    the projector always sees the store's current values.
    """

    def __init__(
        self,
        config: AppConfig,
        store: Optional[CalibrationStore] = None,
        camera: Optional[RenderCamera] = None,
    ):
        """
        Initialize controller.

        Args:
            config: Application configuration
            store: Calibration store (default: built from config.storage)
            camera: Render camera to drive (default: new RenderCamera)
        """
        self._config = config
        self._state_machine = StateMachine(initial_state=AppState.IDLE)

        self._store = store if store is not None else CalibrationStore(config.storage)
        self._camera = camera if camera is not None else RenderCamera()
        self._smoother = PoseSmoother(config.tracking.smoothing_factor)
        self._projector = OffAxisProjector(
            self._camera, self._store.current(), config.projection
        )

        self._fps_counter = FPSCounter()
        self._frames_processed = 0
        self._frames_skipped = 0

        logger.info("ParallaxController initialized")

    # Session control

    def start(self) -> bool:
        """Begin consuming poses."""
        if not self._state_machine.can_transition_to(AppState.TRACKING):
            logger.warning(f"Cannot start tracking from state {self.state}")
            return False

        self._smoother.reset()
        self._fps_counter.reset()
        self._state_machine.transition_to(AppState.TRACKING)
        logger.info("Tracking started")
        return True

    def pause(self) -> bool:
        """Freeze the projection; incoming poses are dropped."""
        if self.state != AppState.TRACKING:
            return False

        self._state_machine.transition_to(AppState.PAUSED)
        logger.info("Tracking paused")
        return True

    def resume(self) -> bool:
        """Resume from pause without easing in from the stale pose."""
        if self.state != AppState.PAUSED:
            return False

        self._smoother.reset()
        self._state_machine.transition_to(AppState.TRACKING)
        logger.info("Tracking resumed")
        return True

    def stop(self) -> bool:
        """Stop consuming poses."""
        if self.state not in (AppState.TRACKING, AppState.PAUSED):
            return False

        self._state_machine.transition_to(AppState.IDLE)
        logger.info("Tracking stopped")
        return True

    def clear_error(self):
        """Acknowledge an error and return to IDLE."""
        self._state_machine.reset()

    # Frame processing

    def process_pose(self, pose: HeadPose) -> FrameProcessingResult:
        """
        Run one pose sample through smoothing and projection.

        Call once per tracking frame, in arrival order.
        """
        result = FrameProcessingResult(
            success=False,
            raw_pose=pose,
            fps=self._fps_counter.tick(),
        )

        if self.state != AppState.TRACKING:
            return result

        smoothed = self._smoother.apply(pose)
        result.smoothed_pose = smoothed

        frustum = self._projector.update_from_head_pose(smoothed)
        result.frustum = frustum
        result.success = frustum is not None

        if result.success:
            self._frames_processed += 1
        else:
            self._frames_skipped += 1

        return result

    def run(
        self,
        poses: Iterable[HeadPose],
        max_frames: Optional[int] = None,
        on_frame: Optional[Callable[[FrameProcessingResult], None]] = None,
    ) -> int:
        """
        Consume a pose stream until it ends, tracking stops, or
        max_frames samples have been taken.

        A pose source that fails to open the camera moves the
        controller to ERROR instead of raising.

        Returns:
            Number of pose samples consumed
        """
        consumed = 0
        samples = iter(poses)

        try:
            # State is checked before each pull from the source
            while self.state in (AppState.TRACKING, AppState.PAUSED):
                pose = next(samples, None)
                if pose is None:
                    break

                result = self.process_pose(pose)
                consumed += 1

                if on_frame is not None:
                    on_frame(result)

                if max_frames is not None and consumed >= max_frames:
                    break

        except CameraError as e:
            logger.error(f"Pose source failed: {e}")
            self._state_machine.set_error(
                ErrorInfo(error_type="CameraError", message=str(e), recoverable=True)
            )

        return consumed

    # Calibration

    def update_screen_dimensions(self, width_cm: float, height_cm: float) -> Calibration:
        """Persist new physical screen size and apply it."""
        calibration = self._store.update_screen_dimensions(width_cm, height_cm)
        self._projector.update_calibration(calibration)
        return calibration

    def update_pixel_dimensions(self, width: int, height: int) -> Calibration:
        """Record the live window resolution (not persisted)."""
        calibration = self._store.update_pixel_dimensions(width, height)
        self._projector.update_calibration(calibration)
        return calibration

    def update_viewing_distance(self, distance_cm: float) -> Calibration:
        """Persist new reference viewing distance and apply it."""
        calibration = self._store.update_viewing_distance(distance_cm)
        self._projector.update_calibration(calibration)
        return calibration

    def reset_calibration(self) -> Calibration:
        """Back to default screen geometry."""
        calibration = self._store.reset()
        self._projector.update_calibration(calibration)
        return calibration

    # Tuning

    def update_smoothing(self, factor: float):
        self._smoother.update_factor(factor)
        self._config.tracking.smoothing_factor = factor

    def update_sensitivity(self, sensitivity: float):
        self._projector.sensitivity = sensitivity
        self._config.projection.sensitivity = sensitivity
        logger.debug(f"Sensitivity updated: {sensitivity:.2f}")

    # Properties

    @property
    def state(self) -> AppState:
        return self._state_machine.current_state

    @property
    def error(self) -> Optional[ErrorInfo]:
        return self._state_machine.error

    @property
    def camera(self) -> RenderCamera:
        return self._camera

    @property
    def projector(self) -> OffAxisProjector:
        return self._projector

    @property
    def calibration(self) -> Calibration:
        return self._store.current()

    @property
    def frames_processed(self) -> int:
        return self._frames_processed

    @property
    def frames_skipped(self) -> int:
        return self._frames_skipped

    @property
    def fps(self) -> float:
        return self._fps_counter.fps

"""
Tests for the frame pipeline controller.
"""

import numpy as np
import pytest

from parallax_window.core.config import AppConfig, StorageConfig, TrackingConfig
from parallax_window.core.controller import ParallaxController
from parallax_window.core.state import AppState
from parallax_window.storage.calibration_store import CalibrationStore
from parallax_window.vision.camera import CameraError
from parallax_window.vision.head_pose import HeadPose


@pytest.fixture
def config(tmp_path):
    return AppConfig(
        tracking=TrackingConfig(smoothing_factor=0.5),
        storage=StorageConfig(data_dir=tmp_path),
    )


@pytest.fixture
def controller(config):
    return ParallaxController(config, store=CalibrationStore(config.storage))


def failing_source():
    raise CameraError("Failed to open camera 0")
    yield  # pragma: no cover


class TestSessionControl:
    """Tests for start/pause/resume/stop."""

    def test_starts_idle(self, controller):
        """Test initial state."""
        assert controller.state == AppState.IDLE

    def test_poses_ignored_when_idle(self, controller):
        """Test that nothing is projected before start()."""
        result = controller.process_pose(HeadPose(x=0.1, y=0.5, z=1.0))

        assert result.success is False
        assert result.smoothed_pose is None

    def test_lifecycle(self, controller):
        """Test valid transitions."""
        assert controller.start() is True
        assert controller.pause() is True
        assert controller.state == AppState.PAUSED
        assert controller.resume() is True
        assert controller.stop() is True
        assert controller.state == AppState.IDLE

    def test_invalid_transitions(self, controller):
        """Test that out-of-order calls are refused."""
        assert controller.pause() is False
        assert controller.resume() is False
        assert controller.stop() is False


class TestFrameProcessing:
    """Tests for the per-frame pipeline."""

    def test_first_frame_unsmoothed(self, controller):
        """Test that the first pose reaches the camera as-is."""
        controller.start()
        result = controller.process_pose(HeadPose(x=0.0, y=0.5, z=1.0))

        assert result.success is True
        np.testing.assert_allclose(controller.camera.position, [0.255, 0.0, 0.6])

    def test_second_frame_smoothed(self, controller):
        """Test that the smoother sits between tracker and projector."""
        controller.start()
        controller.process_pose(HeadPose(x=0.5, y=0.5, z=1.0))
        result = controller.process_pose(HeadPose(x=0.0, y=0.5, z=1.0))

        assert result.smoothed_pose.x == pytest.approx(0.25)
        assert controller.camera.position[0] == pytest.approx(0.1275)

    def test_run_consumes_in_order(self, controller):
        """Test that run() processes every sample and stops at max_frames."""
        poses = [HeadPose(x=0.5, y=0.5, z=1.0 + 0.1 * i) for i in range(10)]
        seen = []

        controller.start()
        consumed = controller.run(poses, max_frames=4, on_frame=lambda r: seen.append(r.raw_pose))

        assert consumed == 4
        assert seen == poses[:4]
        assert controller.frames_processed == 4

    def test_stop_from_callback_ends_run(self, controller):
        """Test that no further sample is pulled once tracking stops."""
        pulled = []

        def source():
            for i in range(10):
                pulled.append(i)
                yield HeadPose(x=0.5, y=0.5, z=1.0)

        def on_frame(result):
            if controller.frames_processed == 2:
                controller.stop()

        controller.start()

        assert controller.run(source(), on_frame=on_frame) == 2
        assert pulled == [0, 1]
        assert controller.state == AppState.IDLE

    def test_paused_frames_dropped(self, controller):
        """Test that paused poses touch neither smoother nor camera."""
        controller.start()
        controller.process_pose(HeadPose(x=0.5, y=0.5, z=1.0))
        position = controller.camera.position.copy()

        controller.pause()
        controller.run([HeadPose(x=0.0, y=0.0, z=2.0)] * 3)

        np.testing.assert_array_equal(controller.camera.position, position)

    def test_resume_resets_smoothing(self, controller):
        """Test that the first pose after resume is not eased in."""
        controller.start()
        controller.process_pose(HeadPose(x=0.5, y=0.5, z=1.0))
        controller.pause()
        controller.resume()

        result = controller.process_pose(HeadPose(x=0.0, y=0.5, z=1.0))

        assert result.smoothed_pose == HeadPose(x=0.0, y=0.5, z=1.0)

    def test_invalid_pose_skipped(self, controller):
        """Test that a zero-depth pose keeps the previous projection."""
        controller.update_smoothing(1.0)
        controller.start()
        controller.process_pose(HeadPose(x=0.4, y=0.5, z=1.0))
        matrix = controller.camera.projection_matrix.copy()

        result = controller.process_pose(HeadPose(x=0.4, y=0.5, z=0.0))

        assert result.success is False
        assert controller.frames_skipped == 1
        np.testing.assert_array_equal(controller.camera.projection_matrix, matrix)

    def test_camera_failure_sets_error(self, controller):
        """Test that a pose source that cannot open the camera is contained."""
        controller.start()

        assert controller.run(failing_source()) == 0
        assert controller.state == AppState.ERROR
        assert controller.error.error_type == "CameraError"

        controller.clear_error()
        assert controller.state == AppState.IDLE
        assert controller.start() is True
        assert controller.error is None
        assert controller.state == AppState.TRACKING


class TestCalibrationUpdates:
    """Tests for calibration pass-throughs."""

    def test_screen_dimensions_reach_projector_and_disk(self, controller, config):
        """Test that store and projector stay in sync."""
        controller.update_screen_dimensions(60.0, 34.0)

        assert controller.projector.screen_dimensions == pytest.approx((0.60, 0.34))
        assert CalibrationStore(config.storage).current().screen_width_cm == 60.0

    def test_viewing_distance(self, controller):
        """Test that the reference distance moves the on-axis eye."""
        controller.update_viewing_distance(80.0)
        controller.start()
        controller.process_pose(HeadPose(x=0.5, y=0.5, z=1.0))

        assert controller.camera.position[2] == pytest.approx(0.8)

    def test_pixel_dimensions(self, controller):
        """Test resolution update."""
        calibration = controller.update_pixel_dimensions(2560, 1440)

        assert controller.calibration.pixel_width == 2560
        assert controller.projector.calibration == calibration

    def test_reset_calibration(self, controller):
        """Test reset back to defaults."""
        controller.update_screen_dimensions(60.0, 34.0)
        controller.reset_calibration()

        assert controller.projector.screen_dimensions == pytest.approx((0.34, 0.19))

    def test_invalid_dimensions_rejected(self, controller):
        """Test that invalid input never reaches the projector."""
        with pytest.raises(ValueError):
            controller.update_screen_dimensions(-34.0, 19.0)

        assert controller.projector.screen_dimensions == pytest.approx((0.34, 0.19))

    def test_sensitivity(self, controller):
        """Test live sensitivity change."""
        controller.update_sensitivity(3.0)
        controller.start()
        controller.process_pose(HeadPose(x=0.0, y=0.5, z=1.0))

        assert controller.camera.position[0] == pytest.approx(0.51)

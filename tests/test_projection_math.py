"""
Tests for off-axis projection mathematics.
"""

import numpy as np
import pytest

from parallax_window.core.config import ProjectionConfig
from parallax_window.projection.matrices import frustum_matrix, look_at_matrix
from parallax_window.projection.off_axis import (
    OffAxisProjector,
    InvalidPoseError,
    WorldPosition,
    Frustum,
)
from parallax_window.projection.render_camera import RenderCamera
from parallax_window.storage.schema import Calibration
from parallax_window.vision.head_pose import HeadPose


NEAR = 0.05


@pytest.fixture
def calibration():
    """34 x 19 cm screen viewed from 60 cm."""
    return Calibration(screen_width_cm=34.0, screen_height_cm=19.0, viewing_distance_cm=60.0)


@pytest.fixture
def camera():
    return RenderCamera()


@pytest.fixture
def projector(camera, calibration):
    return OffAxisProjector(camera, calibration, ProjectionConfig(near_plane=NEAR, far_plane=1000.0))


def project(camera: RenderCamera, point) -> np.ndarray:
    """World point -> normalized device coordinates."""
    clip = camera.projection_matrix @ camera.view_matrix @ np.append(point, 1.0)
    return clip[:3] / clip[3]


class TestHeadPoseToWorldPosition:
    """Tests for head pose -> eye position mapping."""

    def test_center_pose_on_axis(self, projector):
        """Test that the reference pose puts the eye on the screen normal."""
        position = projector.head_pose_to_world_position(HeadPose(x=0.5, y=0.5, z=1.0))

        assert position.x == 0.0
        assert position.y == 0.0
        assert position.z == projector.viewing_distance_world

    def test_center_pose_for_other_calibration(self, camera):
        """Test the on-axis property for a different screen."""
        projector = OffAxisProjector(
            camera, Calibration(screen_width_cm=120.0, screen_height_cm=68.0, viewing_distance_cm=250.0)
        )
        position = projector.head_pose_to_world_position(HeadPose(x=0.5, y=0.5, z=1.0))

        assert (position.x, position.y) == (0.0, 0.0)
        assert position.z == pytest.approx(2.5)

    def test_head_right_moves_eye_left(self, projector):
        """Test that increasing x past center strictly decreases world x."""
        xs = [
            projector.head_pose_to_world_position(HeadPose(x=x, y=0.5, z=1.0)).x
            for x in (0.5, 0.6, 0.75, 0.9, 1.0)
        ]

        assert all(b < a for a, b in zip(xs, xs[1:]))
        assert xs[-1] < 0.0

    def test_image_y_down_maps_to_world_y_down(self, projector):
        """Test y inversion: a head low in the image (y > 0.5) puts the eye below center."""
        low = projector.head_pose_to_world_position(HeadPose(x=0.5, y=0.9, z=1.0))
        high = projector.head_pose_to_world_position(HeadPose(x=0.5, y=0.1, z=1.0))

        assert low.y < 0.0
        assert high.y > 0.0

    def test_larger_z_is_closer(self, projector):
        """Test that increasing z strictly decreases eye distance."""
        zs = [
            projector.head_pose_to_world_position(HeadPose(x=0.5, y=0.5, z=z)).z
            for z in (0.5, 0.8, 1.0, 1.5, 2.0)
        ]

        assert all(b < a for a, b in zip(zs, zs[1:]))
        assert zs[0] == pytest.approx(1.2)
        assert zs[-1] == pytest.approx(0.3)

    def test_sensitivity_scales_offset(self, camera, calibration):
        """Test that sensitivity is configurable and linear."""
        base = OffAxisProjector(camera, calibration, ProjectionConfig(sensitivity=1.0))
        amplified = OffAxisProjector(RenderCamera(), calibration, ProjectionConfig(sensitivity=3.0))
        pose = HeadPose(x=0.2, y=0.5, z=1.0)

        assert amplified.head_pose_to_world_position(pose).x == pytest.approx(
            3.0 * base.head_pose_to_world_position(pose).x
        )

    @pytest.mark.parametrize("z", [0.0, -1.0, float("nan")])
    def test_non_positive_depth_rejected(self, projector, z):
        """Test that z <= 0 is not silently substituted."""
        with pytest.raises(InvalidPoseError):
            projector.head_pose_to_world_position(HeadPose(x=0.5, y=0.5, z=z))


class TestComputeFrustum:
    """Tests for the asymmetric frustum."""

    def test_centered_eye_gives_symmetric_frustum(self, projector):
        """Test that an on-axis eye degenerates to a normal frustum."""
        frustum = projector.compute_frustum(WorldPosition(x=0.0, y=0.0, z=0.6))

        assert frustum.left == -frustum.right
        assert frustum.bottom == -frustum.top
        assert frustum.right == pytest.approx(0.17 * NEAR / 0.6)

    @pytest.mark.parametrize("z", [0.0, -0.1])
    def test_eye_on_or_behind_screen(self, projector, z):
        """Test that no frustum exists for z <= 0."""
        assert projector.compute_frustum(WorldPosition(x=0.0, y=0.0, z=z)) is None

    def test_end_to_end_head_fully_left(self, projector):
        """Test the documented scenario: head at the left edge of the image."""
        position = projector.head_pose_to_world_position(HeadPose(x=0.0, y=0.5, z=1.0))

        assert position.x == pytest.approx(0.255)
        assert position.y == pytest.approx(0.0)
        assert position.z == pytest.approx(0.60)

        frustum = projector.compute_frustum(position)

        assert frustum.left == pytest.approx((-0.17 - 0.255) * (NEAR / 0.60))
        assert frustum.right == pytest.approx((0.17 - 0.255) * (NEAR / 0.60))
        assert frustum.top == pytest.approx(0.095 * NEAR / 0.60)
        assert frustum.near == NEAR

    def test_screen_corners_fill_viewport(self, projector, camera):
        """Test that the physical screen maps exactly onto NDC [-1, 1] from any eye."""
        for pose in (HeadPose(0.5, 0.5, 1.0), HeadPose(0.1, 0.8, 1.3), HeadPose(0.9, 0.2, 0.7)):
            projector.update_from_head_pose(pose)
            half_w, half_h = (d / 2 for d in projector.screen_dimensions)

            for sx, sy in ((-1, -1), (-1, 1), (1, -1), (1, 1)):
                ndc = project(camera, np.array([sx * half_w, sy * half_h, 0.0]))
                assert ndc[0] == pytest.approx(sx)
                assert ndc[1] == pytest.approx(sy)


class TestProjectionMatrix:
    """Tests for the projection matrix and its inverse."""

    def test_matches_reference_formula(self):
        """Test against the glFrustum definition."""
        l, r, b, t, n, f = -0.03, 0.01, -0.02, 0.015, 0.05, 100.0
        expected = np.array(
            [
                [2 * n / (r - l), 0, (r + l) / (r - l), 0],
                [0, 2 * n / (t - b), (t + b) / (t - b), 0],
                [0, 0, -(f + n) / (f - n), -2 * f * n / (f - n)],
                [0, 0, -1, 0],
            ]
        )

        np.testing.assert_allclose(frustum_matrix(l, r, b, t, n, f), expected)

    def test_clip_planes_map_to_canonical_volume(self):
        """Test that near/far depths map to NDC z = -1 / +1."""
        m = frustum_matrix(-0.1, 0.1, -0.1, 0.1, 0.05, 1000.0)

        near_point = m @ np.array([0.0, 0.0, -0.05, 1.0])
        far_point = m @ np.array([0.0, 0.0, -1000.0, 1.0])

        assert near_point[2] / near_point[3] == pytest.approx(-1.0)
        assert far_point[2] / far_point[3] == pytest.approx(1.0)

    def test_inverse(self, projector):
        """Test that the inverse is returned alongside the matrix."""
        frustum = Frustum(left=-0.02, right=0.01, bottom=-0.01, top=0.012, near=NEAR, far=1000.0)
        matrix, inverse = projector.build_projection_matrix(frustum, NEAR, 1000.0)

        np.testing.assert_allclose(matrix @ inverse, np.eye(4), atol=1e-9)

    def test_degenerate_frustum_rejected(self):
        """Test zero-width frusta."""
        with pytest.raises(ValueError):
            frustum_matrix(0.1, 0.1, -0.1, 0.1, 0.05, 10.0)


class TestCameraPose:
    """Tests for camera placement."""

    def test_looks_straight_at_screen_plane(self, projector):
        """Test that the target is the screen point directly ahead of the eye."""
        pose = projector.camera_pose_for(WorldPosition(x=0.1, y=-0.05, z=0.5))

        assert pose.position == WorldPosition(x=0.1, y=-0.05, z=0.5)
        assert pose.look_at_target == WorldPosition(x=0.1, y=-0.05, z=0.0)

    def test_view_matrix_is_pure_translation(self, projector, camera):
        """Test that looking along -z never rotates the camera."""
        projector.update_from_head_pose(HeadPose(x=0.2, y=0.7, z=1.1))

        np.testing.assert_allclose(camera.view_matrix[:3, :3], np.eye(3), atol=1e-12)
        np.testing.assert_allclose(camera.view_matrix[:3, 3], -camera.position)

    def test_look_at_matrix_maps_eye_to_origin(self):
        """Test the general look-at construction."""
        eye = np.array([1.0, 2.0, 3.0])
        view = look_at_matrix(eye, np.array([0.0, 0.0, 0.0]))

        np.testing.assert_allclose((view @ np.append(eye, 1.0))[:3], 0.0, atol=1e-12)


class TestUpdateFromHeadPose:
    """Tests for the per-frame update."""

    def test_updates_camera(self, projector, camera):
        """Test that pose and projection are both applied."""
        frustum = projector.update_from_head_pose(HeadPose(x=0.0, y=0.5, z=1.0))

        np.testing.assert_allclose(camera.position, [0.255, 0.0, 0.6])
        np.testing.assert_allclose(camera.look_at_target, [0.255, 0.0, 0.0])
        assert projector.last_frustum == frustum
        np.testing.assert_allclose(
            camera.projection_matrix @ camera.projection_matrix_inverse, np.eye(4), atol=1e-9
        )

    def test_invalid_pose_keeps_previous_state(self, projector, camera):
        """Test that a bad frame changes nothing and raises nothing."""
        projector.update_from_head_pose(HeadPose(x=0.3, y=0.4, z=1.2))
        matrix = camera.projection_matrix.copy()
        position = camera.position.copy()

        assert projector.update_from_head_pose(HeadPose(x=0.9, y=0.9, z=0.0)) is None

        np.testing.assert_array_equal(camera.projection_matrix, matrix)
        np.testing.assert_array_equal(camera.position, position)

    def test_missing_frustum_keeps_projection(self, projector, camera, monkeypatch):
        """Test that camera pose still updates when only the frustum is invalid."""
        projector.update_from_head_pose(HeadPose(x=0.5, y=0.5, z=1.0))
        matrix = camera.projection_matrix.copy()
        updates = camera.projection_updates

        monkeypatch.setattr(projector, "compute_frustum", lambda position: None)

        assert projector.update_from_head_pose(HeadPose(x=0.1, y=0.5, z=1.0)) is None
        np.testing.assert_array_equal(camera.projection_matrix, matrix)
        assert camera.projection_updates == updates
        assert camera.position[0] == pytest.approx(0.204)

    def test_calibration_push(self, projector):
        """Test that new calibration replaces the world screen size."""
        projector.update_calibration(Calibration(screen_width_cm=60.0, screen_height_cm=34.0))

        assert projector.screen_dimensions == pytest.approx((0.60, 0.34))

    def test_invalid_calibration_rejected(self, projector):
        """Test that the projector never sees non-positive dimensions."""
        with pytest.raises(ValueError):
            projector.update_calibration(Calibration(screen_height_cm=-1.0))

        assert projector.screen_dimensions == pytest.approx((0.34, 0.19))

    def test_unproject_near_plane_corner(self, projector, camera):
        """Test ray casting back through the inverse projection."""
        frustum = projector.update_from_head_pose(HeadPose(x=0.25, y=0.6, z=1.0))

        world = camera.unproject((1.0, 1.0, -1.0))
        expected = camera.position + np.array([frustum.right, frustum.top, -frustum.near])

        np.testing.assert_allclose(world, expected, atol=1e-9)

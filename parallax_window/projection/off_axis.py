"""
Off-axis (asymmetric frustum) projection driven by head position.

World frame (meters):
- screen center at the origin, screen plane at z = 0
- +x right, +y up, +z toward the viewer

The physical screen is treated as a window. For an eye at E, the view
frustum is the screen rectangle seen from E: each screen edge minus
the eye's lateral offset, scaled onto the near plane by similar
triangles (near / E.z). Off-center eyes give asymmetric frusta.
"""

from dataclasses import dataclass
from typing import Optional, Tuple

import numpy as np

from parallax_window.core.config import ProjectionConfig
from parallax_window.projection.matrices import frustum_matrix, invert_matrix
from parallax_window.projection.render_camera import RenderCamera
from parallax_window.storage.schema import Calibration
from parallax_window.vision.head_pose import HeadPose, CENTER_POSE
from parallax_window.utils.logger import get_logger

logger = get_logger(__name__)


class InvalidPoseError(ValueError):
    """Head pose cannot be mapped to an eye position (z <= 0)."""

    pass


@dataclass(frozen=True)
class WorldPosition:
    """Eye position in world space (meters)."""

    x: float
    y: float
    z: float

    def to_array(self) -> np.ndarray:
        return np.array([self.x, self.y, self.z], dtype=np.float64)


@dataclass(frozen=True)
class Frustum:
    """View volume bounds at the near plane."""

    left: float
    right: float
    bottom: float
    top: float
    near: float
    far: float


@dataclass(frozen=True)
class CameraPose:
    """Camera placement for one frame."""

    position: WorldPosition
    look_at_target: WorldPosition


class OffAxisProjector:
    """
    Converts head pose into camera pose + off-axis projection.

    Calibration is pushed in through update_calibration(); the
    projector never reads the store.
    """

    def __init__(
        self,
        camera: RenderCamera,
        calibration: Calibration,
        config: Optional[ProjectionConfig] = None,
    ):
        """
        Initialize projector and place the camera at the reference pose.

        Args:
            camera: Render camera to drive
            calibration: Physical screen geometry
            config: Projection configuration
        """
        self._config = config if config is not None else ProjectionConfig()
        self._camera = camera
        self._near_plane = self._config.near_plane
        self._far_plane = self._config.far_plane
        self._sensitivity = self._config.sensitivity

        self._last_frustum: Optional[Frustum] = None
        self.update_calibration(calibration)

        self.update_from_head_pose(CENTER_POSE)

        logger.info(
            f"OffAxisProjector initialized: "
            f"screen={self._screen_width_world:.3f}x{self._screen_height_world:.3f}m, "
            f"distance={self._viewing_distance_world:.3f}m, "
            f"sensitivity={self._sensitivity:.2f}"
        )

    def update_calibration(self, calibration: Calibration):
        """
        Replace calibration and recompute world-space screen geometry.

        This is the single cm -> world unit conversion point.

        Raises:
            ValueError: If the calibration has non-positive dimensions
        """
        calibration.validate()

        factor = self._config.unit_to_world
        self._calibration = calibration
        self._screen_width_world = calibration.screen_width_cm * factor
        self._screen_height_world = calibration.screen_height_cm * factor
        self._viewing_distance_world = calibration.viewing_distance_cm * factor

        logger.debug(
            f"Calibration applied: {self._screen_width_world:.3f}x"
            f"{self._screen_height_world:.3f}m @ {self._viewing_distance_world:.3f}m"
        )

    def head_pose_to_world_position(self, pose: HeadPose) -> WorldPosition:
        """
        Map a normalized head pose to an eye position.

        Sign convention:
        - head moves right in the image (x up) -> eye moves to -x,
          so the scene pans like looking around an object
        - image y grows downward, world y grows upward, hence the
          negation on y as well
        - z is a scale relative to the reference distance: z > 1
          (face looks bigger) puts the eye closer than calibrated

        Raises:
            InvalidPoseError: If pose.z <= 0
        """
        if not pose.z > 0.0:
            raise InvalidPoseError(f"Head pose depth scale must be > 0, got {pose.z}")

        world_x = -(pose.x - 0.5) * self._screen_width_world * self._sensitivity
        world_y = -(pose.y - 0.5) * self._screen_height_world * self._sensitivity
        world_z = self._viewing_distance_world * (1.0 / pose.z)

        return WorldPosition(x=world_x, y=world_y, z=world_z)

    def compute_frustum(self, world_position: WorldPosition) -> Optional[Frustum]:
        """
        Asymmetric frustum for an eye looking through the screen.

        Returns:
            Frustum, or None if the eye is on or behind the screen plane
        """
        if world_position.z <= 0.0:
            return None

        half_w = self._screen_width_world / 2.0
        half_h = self._screen_height_world / 2.0
        scale = self._near_plane / world_position.z

        return Frustum(
            left=(-half_w - world_position.x) * scale,
            right=(half_w - world_position.x) * scale,
            bottom=(-half_h - world_position.y) * scale,
            top=(half_h - world_position.y) * scale,
            near=self._near_plane,
            far=self._far_plane,
        )

    def build_projection_matrix(
        self,
        frustum: Frustum,
        near: Optional[float] = None,
        far: Optional[float] = None,
    ) -> Tuple[np.ndarray, np.ndarray]:
        """
        Build the projection matrix and its inverse.

        Args:
            frustum: Near-plane bounds
            near: Near clip distance (default: frustum.near)
            far: Far clip distance (default: frustum.far)

        Returns:
            (matrix, inverse), both 4x4
        """
        near = frustum.near if near is None else near
        far = frustum.far if far is None else far

        matrix = frustum_matrix(
            frustum.left, frustum.right, frustum.bottom, frustum.top, near, far
        )
        return matrix, invert_matrix(matrix)

    def camera_pose_for(self, world_position: WorldPosition) -> CameraPose:
        """
        Camera sits at the eye and looks straight at the screen plane.

        The target is the screen-plane point directly ahead of the eye,
        which keeps the view axis normal to the screen.
        """
        return CameraPose(
            position=world_position,
            look_at_target=WorldPosition(x=world_position.x, y=world_position.y, z=0.0),
        )

    def update_from_head_pose(self, pose: HeadPose) -> Optional[Frustum]:
        """
        Per-frame update: pose -> camera placement -> projection.

        Invalid geometry skips the affected step and keeps the previous
        projection matrix; nothing is raised to the render loop.

        Returns:
            The applied frustum, or None if the projection was not updated
        """
        try:
            world_position = self.head_pose_to_world_position(pose)
        except InvalidPoseError as e:
            logger.debug(f"Skipping frame: {e}")
            return None

        camera_pose = self.camera_pose_for(world_position)
        self._apply_camera_pose(camera_pose)

        frustum = self.compute_frustum(world_position)
        if frustum is None:
            logger.debug(f"Skipping projection update: eye at z={world_position.z:.4f}")
            return None

        matrix, inverse = self.build_projection_matrix(frustum, self._near_plane, self._far_plane)
        self._camera.set_projection(matrix, inverse)
        self._last_frustum = frustum

        return frustum

    def _apply_camera_pose(self, camera_pose: CameraPose):
        position = camera_pose.position
        target = camera_pose.look_at_target
        self._camera.set_position(position.x, position.y, position.z)
        self._camera.look_at(target.x, target.y, target.z)

    @property
    def sensitivity(self) -> float:
        return self._sensitivity

    @sensitivity.setter
    def sensitivity(self, value: float):
        if value <= 0.0:
            raise ValueError("sensitivity must be positive")
        self._sensitivity = float(value)

    @property
    def near_plane(self) -> float:
        return self._near_plane

    @property
    def far_plane(self) -> float:
        return self._far_plane

    @property
    def calibration(self) -> Calibration:
        return self._calibration

    @property
    def screen_dimensions(self) -> Tuple[float, float]:
        """Screen (width, height) in world units."""
        return (self._screen_width_world, self._screen_height_world)

    @property
    def viewing_distance_world(self) -> float:
        return self._viewing_distance_world

    @property
    def last_frustum(self) -> Optional[Frustum]:
        """Most recently applied frustum."""
        return self._last_frustum

    @property
    def camera(self) -> RenderCamera:
        return self._camera

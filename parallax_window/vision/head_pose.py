"""
Head pose extraction from MediaPipe Face Mesh landmarks.

The pose is deliberately coarse: where the face is in the image and
how large it appears. That is all the off-axis projector needs.

Coordinate convention (MediaPipe image space):
- x grows to the right of the image, y grows DOWN (origin top-left)
- both normalized to [0, 1], 0.5 = image center
"""

from dataclasses import dataclass
from typing import Optional

import numpy as np

from parallax_window.core.config import TrackingConfig
from parallax_window.utils.logger import get_logger

logger = get_logger(__name__)


# MediaPipe Face Mesh landmark indices
NOSE_BRIDGE_INDEX = 168  # Between the eyes, used for x/y
LEFT_EYE_OUTER_INDEX = 33
RIGHT_EYE_OUTER_INDEX = 263


@dataclass(frozen=True)
class HeadPose:
    """
    Normalized head pose for one tracking frame.

    x, y: image-plane position in [0, 1], 0.5 = center
    z: apparent scale relative to the calibration reference distance.
       1.0 = at reference distance, > 1 = closer, < 1 = farther.
    """

    x: float
    y: float
    z: float

    def to_array(self) -> np.ndarray:
        """Convert to numpy array [x, y, z]."""
        return np.array([self.x, self.y, self.z], dtype=np.float64)

    @classmethod
    def from_array(cls, values: np.ndarray) -> "HeadPose":
        return cls(x=float(values[0]), y=float(values[1]), z=float(values[2]))


CENTER_POSE = HeadPose(x=0.5, y=0.5, z=1.0)


def extract_head_pose(
    landmarks: np.ndarray,
    config: Optional[TrackingConfig] = None,
) -> Optional[HeadPose]:
    """
    Estimate head pose from face landmarks.

    Args:
        landmarks: Array of shape (N, 2) or (N, 3) with normalized coords
        config: Tracking configuration (reference eye distance, depth floor)

    Returns:
        HeadPose, or None if the landmark set is incomplete

    z is floored at config.min_depth_scale so it is always > 0.
    """
    if config is None:
        config = TrackingConfig()

    if landmarks is None or landmarks.ndim != 2 or landmarks.shape[1] < 2:
        return None

    needed = max(NOSE_BRIDGE_INDEX, LEFT_EYE_OUTER_INDEX, RIGHT_EYE_OUTER_INDEX)
    if landmarks.shape[0] <= needed:
        logger.debug(f"Too few landmarks for head pose: {landmarks.shape[0]}")
        return None

    center = landmarks[NOSE_BRIDGE_INDEX, :2]
    x = float(center[0])
    y = float(center[1])

    if config.mirror_x:
        x = 1.0 - x

    # Apparent inter-eye distance grows as the face approaches
    eye_vector = landmarks[RIGHT_EYE_OUTER_INDEX, :2] - landmarks[LEFT_EYE_OUTER_INDEX, :2]
    eye_distance = float(np.linalg.norm(eye_vector))

    z = max(eye_distance / config.reference_eye_distance, config.min_depth_scale)

    return HeadPose(x=x, y=y, z=z)

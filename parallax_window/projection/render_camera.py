"""
Render camera state handed to the rendering layer.

Stands in for the engine camera object: the projector writes pose and
projection here once per frame, the renderer reads them back.
"""

from typing import Optional, Sequence

import numpy as np

from parallax_window.projection.matrices import invert_matrix, look_at_matrix


class RenderCamera:
    """
    Camera pose plus projection, in world units (meters).

    projection_matrix_inverse is always recomputed together with
    projection_matrix, never cached separately.
    """

    def __init__(self):
        self.position = np.zeros(3, dtype=np.float64)
        self.look_at_target = np.array([0.0, 0.0, -1.0])
        self.view_matrix = np.eye(4, dtype=np.float64)
        self.projection_matrix = np.eye(4, dtype=np.float64)
        self.projection_matrix_inverse = np.eye(4, dtype=np.float64)
        self.projection_updates = 0

    def set_position(self, x: float, y: float, z: float):
        self.position = np.array([x, y, z], dtype=np.float64)

    def look_at(self, x: float, y: float, z: float):
        """Aim the camera at a world point and rebuild the view matrix."""
        self.look_at_target = np.array([x, y, z], dtype=np.float64)
        self.view_matrix = look_at_matrix(self.position, self.look_at_target)

    def set_projection(self, matrix: np.ndarray, inverse: Optional[np.ndarray] = None):
        """
        Replace the projection matrix.

        Args:
            matrix: 4x4 projection matrix
            inverse: Its inverse, if already computed alongside it
        """
        self.projection_matrix = np.array(matrix, dtype=np.float64)
        if inverse is None:
            inverse = invert_matrix(self.projection_matrix)
        self.projection_matrix_inverse = np.array(inverse, dtype=np.float64)
        self.projection_updates += 1

    def unproject(self, ndc: Sequence[float]) -> np.ndarray:
        """
        Map a normalized-device-coordinate point back to world space.

        Args:
            ndc: (x, y, z) in [-1, 1]; z=-1 is the near plane

        Returns:
            World-space point (3,)
        """
        clip = np.array([ndc[0], ndc[1], ndc[2], 1.0], dtype=np.float64)
        eye = self.projection_matrix_inverse @ clip
        world = invert_matrix(self.view_matrix) @ eye
        return world[:3] / world[3]

"""
4x4 matrix helpers (OpenGL conventions).

Matrices are row-major numpy arrays acting on column vectors:
clip = P @ view @ [x, y, z, 1]. Transpose before handing them to an
API that expects column-major storage.
"""

import numpy as np


def frustum_matrix(
    left: float,
    right: float,
    bottom: float,
    top: float,
    near: float,
    far: float,
) -> np.ndarray:
    """
    Perspective projection for an arbitrary (possibly asymmetric) frustum.

    Same entries as glFrustum: the near-plane rectangle maps to
    x, y in [-1, 1] and depths near..far map to NDC z in [-1, 1].

    Raises:
        ValueError: If the frustum is degenerate
    """
    if right == left or top == bottom:
        raise ValueError("Degenerate frustum: zero width or height")
    if near <= 0.0 or far <= near:
        raise ValueError(f"Invalid clip planes: near={near}, far={far}")

    m = np.zeros((4, 4), dtype=np.float64)
    m[0, 0] = 2.0 * near / (right - left)
    m[0, 2] = (right + left) / (right - left)
    m[1, 1] = 2.0 * near / (top - bottom)
    m[1, 2] = (top + bottom) / (top - bottom)
    m[2, 2] = -(far + near) / (far - near)
    m[2, 3] = -2.0 * far * near / (far - near)
    m[3, 2] = -1.0
    return m


def look_at_matrix(
    eye: np.ndarray,
    target: np.ndarray,
    up: np.ndarray = np.array([0.0, 1.0, 0.0]),
) -> np.ndarray:
    """
    Right-handed view matrix; the camera looks down its local -z.

    A zero-length view direction keeps the default -z orientation.
    """
    eye = np.asarray(eye, dtype=np.float64)
    target = np.asarray(target, dtype=np.float64)
    up = np.asarray(up, dtype=np.float64)

    forward = target - eye
    norm = np.linalg.norm(forward)
    if norm < 1e-12:
        forward = np.array([0.0, 0.0, -1.0])
    else:
        forward = forward / norm

    side = np.cross(forward, up)
    side_norm = np.linalg.norm(side)
    if side_norm < 1e-12:
        # Looking straight along up; pick any perpendicular
        side = np.cross(forward, np.array([0.0, 0.0, 1.0]))
        side_norm = np.linalg.norm(side)
    side = side / side_norm

    true_up = np.cross(side, forward)

    view = np.eye(4, dtype=np.float64)
    view[0, :3] = side
    view[1, :3] = true_up
    view[2, :3] = -forward
    view[0, 3] = -np.dot(side, eye)
    view[1, 3] = -np.dot(true_up, eye)
    view[2, 3] = np.dot(forward, eye)
    return view


def invert_matrix(m: np.ndarray) -> np.ndarray:
    """Invert a 4x4 matrix."""
    return np.linalg.inv(m)

"""
Face landmark detection using MediaPipe Face Mesh.

Privacy: No facial recognition, no biometric templates stored.
Only geometric landmarks are extracted, and only for the current frame.
"""

from typing import Optional

import mediapipe as mp
import numpy as np

from parallax_window.utils.logger import get_logger

logger = get_logger(__name__)


class FaceTracker:
    """
    Single-face landmark tracking with MediaPipe Face Mesh.

    Yields normalized (x, y) landmarks; head pose extraction is done
    separately by vision.head_pose.
    """

    def __init__(
        self,
        min_detection_confidence: float = 0.5,
        min_tracking_confidence: float = 0.5,
    ):
        """
        Initialize face tracker.

        Args:
            min_detection_confidence: Minimum confidence for face detection
            min_tracking_confidence: Minimum confidence for landmark tracking
        """
        self._face_mesh = mp.solutions.face_mesh.FaceMesh(
            static_image_mode=False,
            max_num_faces=1,  # Single viewer
            refine_landmarks=False,
            min_detection_confidence=min_detection_confidence,
            min_tracking_confidence=min_tracking_confidence,
        )

        logger.info("FaceTracker initialized with MediaPipe Face Mesh")

    def process_frame(self, frame: np.ndarray) -> Optional[np.ndarray]:
        """
        Detect the face in an RGB frame.

        Args:
            frame: RGB image (H, W, 3)

        Returns:
            Landmarks of shape (N, 2), normalized to [0, 1], or None if
            no face was found
        """
        if frame is None or frame.size == 0:
            return None

        results = self._face_mesh.process(frame)

        if not results.multi_face_landmarks:
            return None

        face_landmarks = results.multi_face_landmarks[0]
        return np.array(
            [[lm.x, lm.y] for lm in face_landmarks.landmark],
            dtype=np.float64,
        )

    def close(self):
        """Release MediaPipe resources."""
        if self._face_mesh is not None:
            self._face_mesh.close()
            self._face_mesh = None
            logger.info("FaceTracker closed")

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()

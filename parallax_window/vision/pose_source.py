"""
Webcam head pose stream.

Glues Camera -> FaceTracker -> extract_head_pose into a lazy generator
of HeadPose samples. Each iteration opens the camera for the duration
of the session and releases it when the consumer stops iterating.
"""

from typing import Iterator

from parallax_window.core.config import CameraConfig, TrackingConfig
from parallax_window.vision.camera import Camera
from parallax_window.vision.face_tracker import FaceTracker
from parallax_window.vision.head_pose import HeadPose, extract_head_pose
from parallax_window.utils.logger import get_logger

logger = get_logger(__name__)


class WebcamPoseSource:
    """
    Restartable iterable of head poses from the webcam.

    Frames without a detectable face are skipped, so the stream only
    carries valid poses (z > 0). Raises CameraError when the device
    cannot be opened.
    """

    def __init__(self, camera_config: CameraConfig, tracking_config: TrackingConfig):
        self._camera_config = camera_config
        self._tracking_config = tracking_config
        self.frames_read = 0
        self.faces_lost = 0

    def __iter__(self) -> Iterator[HeadPose]:
        tracking = self._tracking_config

        with Camera(self._camera_config) as camera, FaceTracker(
            min_detection_confidence=tracking.min_face_confidence,
            min_tracking_confidence=tracking.min_face_confidence,
        ) as tracker:
            logger.info("Webcam pose stream started")

            while True:
                frame = camera.read_frame()
                if frame is None:
                    # Device went away
                    logger.warning("Camera stopped delivering frames")
                    return

                self.frames_read += 1

                landmarks = tracker.process_frame(frame.image)
                if landmarks is None:
                    self.faces_lost += 1
                    continue

                pose = extract_head_pose(landmarks, tracking)
                if pose is not None:
                    yield pose

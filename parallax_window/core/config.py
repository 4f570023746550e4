"""
Configuration management for Parallax Window.

All application configuration with sensible defaults.
Uses dataclasses for type safety and validation.
"""

from dataclasses import dataclass, field
import os
from pathlib import Path


@dataclass
class CameraConfig:
    """Camera capture configuration."""

    camera_index: int = 0  # Default camera
    frame_width: int = 640  # Landmarks only need a modest resolution
    frame_height: int = 480
    target_fps: int = 30
    warmup_frames: int = 10  # Frames to skip after camera init


@dataclass
class TrackingConfig:
    """Head tracking and pose smoothing configuration."""

    # Exponential smoothing factor, range: (0.0, 1.0]
    # Lower = more smoothing, 1.0 = pass-through
    smoothing_factor: float = 0.3

    # Inter-eye landmark distance (normalized image units) at the
    # calibration reference distance
    reference_eye_distance: float = 0.15

    # Floor for the depth scale so downstream division stays defined
    min_depth_scale: float = 0.1

    # Minimum confidence for MediaPipe face detection / tracking
    min_face_confidence: float = 0.5

    # Flip x for mirrored (selfie) camera feeds
    mirror_x: bool = False


@dataclass
class ProjectionConfig:
    """Off-axis projection configuration (world unit: meters)."""

    near_plane: float = 0.05
    far_plane: float = 1000.0

    # Parallax amplification: head offset -> eye offset multiplier.
    # Presentation parameter, tune to taste.
    sensitivity: float = 1.5

    # Stored calibration unit (cm) -> world unit (m)
    unit_to_world: float = 0.01


@dataclass
class StorageConfig:
    """Calibration storage configuration."""

    # User data directory (where calibration data is stored)
    data_dir: Path = field(default_factory=lambda: Path.home() / ".parallax_window")

    # Key-value document holding calibration records
    calibration_filename: str = "calibration.json"

    # Versioned record key; bump when the record shape changes
    storage_key: str = "parallax_calibration_v1"

    # Log filename (optional, off by default)
    log_filename: str = "parallax_window.log"

    # Enable file logging (OFF by default)
    enable_file_logging: bool = False

    def __post_init__(self):
        self.data_dir = Path(self.data_dir)

    @property
    def calibration_path(self) -> Path:
        """Get full path to calibration data file."""
        return self.data_dir / self.calibration_filename

    @property
    def log_path(self) -> Path:
        """Get full path to log file."""
        return self.data_dir / self.log_filename


@dataclass
class AppConfig:
    """Main application configuration."""

    camera: CameraConfig = field(default_factory=CameraConfig)
    tracking: TrackingConfig = field(default_factory=TrackingConfig)
    projection: ProjectionConfig = field(default_factory=ProjectionConfig)
    storage: StorageConfig = field(default_factory=StorageConfig)

    # Application version
    version: str = "0.1.0"

    # Log level from environment or default to WARNING
    log_level: str = field(
        default_factory=lambda: os.getenv("PARALLAX_LOG_LEVEL", "WARNING")
    )

    def __post_init__(self):
        """Validate configuration after initialization."""
        self._validate()

    def _validate(self):
        """Validate configuration parameters."""
        # Tracking config validation
        if not 0.0 < self.tracking.smoothing_factor <= 1.0:
            raise ValueError("smoothing_factor must be in (0.0, 1.0]")

        if self.tracking.reference_eye_distance <= 0.0:
            raise ValueError("reference_eye_distance must be positive")

        if self.tracking.min_depth_scale <= 0.0:
            raise ValueError("min_depth_scale must be positive")

        # Projection config validation
        if self.projection.near_plane <= 0.0:
            raise ValueError("near_plane must be positive")

        if self.projection.far_plane <= self.projection.near_plane:
            raise ValueError("far_plane must be greater than near_plane")

        if self.projection.sensitivity <= 0.0:
            raise ValueError("sensitivity must be positive")

        if self.projection.unit_to_world <= 0.0:
            raise ValueError("unit_to_world must be positive")

        # Camera config validation
        if self.camera.target_fps < 1 or self.camera.target_fps > 60:
            raise ValueError("target_fps must be between 1 and 60")


def get_default_config() -> AppConfig:
    """
    Get default application configuration.

    Returns:
        AppConfig instance with default values
    """
    return AppConfig()

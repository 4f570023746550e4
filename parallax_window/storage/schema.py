"""
Calibration data schema and validation.

Privacy: Only stores physical screen geometry,
no biometric data, no images, no personal information.
"""

from dataclasses import dataclass, fields, replace
from typing import Dict, Any, Optional
import math

from parallax_window.utils.logger import get_logger

logger = get_logger(__name__)


# Persisted (wire) field names, matching the stored record layout
_WIRE_KEYS = {
    "screen_width_cm": "screenWidthCm",
    "screen_height_cm": "screenHeightCm",
    "viewing_distance_cm": "viewingDistanceCm",
    "pixel_width": "pixelWidth",
    "pixel_height": "pixelHeight",
    "is_calibrated": "isCalibrated",
}


def _is_positive_length(value: Any) -> bool:
    # bool is an int subclass; a stored True must not become 1 cm
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return False
    try:
        return math.isfinite(value) and value > 0
    except OverflowError:
        # int beyond float range
        return False


def _is_positive_pixels(value: Any) -> bool:
    if isinstance(value, bool) or not isinstance(value, int):
        return False
    return value > 0


@dataclass(frozen=True)
class Calibration:
    """
    Physical screen geometry.

    Lengths are in centimeters (the stored unit). Conversion into the
    world unit happens once, in the projector.
    """

    # Physical screen size (cm)
    screen_width_cm: float = 34.0
    screen_height_cm: float = 19.0

    # Eye-to-screen distance at the reference head pose (cm)
    viewing_distance_cm: float = 60.0

    # Screen resolution (pixels)
    pixel_width: int = 1920
    pixel_height: int = 1080

    # Whether the user has measured their screen
    is_calibrated: bool = False

    def to_dict(self) -> Dict[str, Any]:
        """Convert to the flat persisted record."""
        return {
            wire: getattr(self, name) for name, wire in _WIRE_KEYS.items()
        }

    @classmethod
    def from_dict(
        cls,
        data: Any,
        defaults: Optional["Calibration"] = None,
    ) -> "Calibration":
        """
        Merge a persisted record over defaults, field by field.

        Missing or invalid fields keep the default value; unknown
        keys are ignored. Never raises for malformed input.

        Args:
            data: Decoded record (anything; non-dicts yield the defaults)
            defaults: Fallback values (default: Calibration())

        Returns:
            Calibration instance
        """
        base = defaults if defaults is not None else cls()

        if not isinstance(data, dict):
            logger.warning(
                f"Calibration record is {type(data).__name__}, not a mapping; using defaults"
            )
            return base

        validators = {
            "screen_width_cm": _is_positive_length,
            "screen_height_cm": _is_positive_length,
            "viewing_distance_cm": _is_positive_length,
            "pixel_width": _is_positive_pixels,
            "pixel_height": _is_positive_pixels,
            "is_calibrated": lambda v: isinstance(v, bool),
        }

        overrides: Dict[str, Any] = {}
        for f in fields(cls):
            wire = _WIRE_KEYS[f.name]
            if wire not in data:
                continue

            value = data[wire]
            if validators[f.name](value):
                if f.name.endswith("_cm"):
                    value = float(value)
                overrides[f.name] = value
            else:
                logger.warning(f"Ignoring invalid stored value {wire}={value!r}")

        return replace(base, **overrides)

    def validate(self) -> bool:
        """
        Validate calibration data.

        Returns:
            True if valid, raises ValueError if invalid
        """
        if not (
            _is_positive_length(self.screen_width_cm)
            and _is_positive_length(self.screen_height_cm)
        ):
            raise ValueError("Screen dimensions must be positive")

        if not _is_positive_length(self.viewing_distance_cm):
            raise ValueError("Viewing distance must be positive")

        if not (
            _is_positive_pixels(self.pixel_width)
            and _is_positive_pixels(self.pixel_height)
        ):
            raise ValueError("Pixel dimensions must be positive integers")

        return True

    def with_screen_dimensions(self, width_cm: float, height_cm: float) -> "Calibration":
        """Return a copy with new physical screen size (validated)."""
        updated = replace(
            self, screen_width_cm=float(width_cm), screen_height_cm=float(height_cm)
        )
        updated.validate()
        return updated

    def with_pixel_dimensions(self, width: int, height: int) -> "Calibration":
        """Return a copy with new screen resolution (validated)."""
        updated = replace(self, pixel_width=width, pixel_height=height)
        updated.validate()
        return updated

    def with_viewing_distance(self, distance_cm: float) -> "Calibration":
        """Return a copy with a new reference viewing distance (validated)."""
        updated = replace(self, viewing_distance_cm=float(distance_cm))
        updated.validate()
        return updated

    @property
    def aspect_ratio(self) -> float:
        """Physical width / height."""
        return self.screen_width_cm / self.screen_height_cm


DEFAULT_CALIBRATION = Calibration()

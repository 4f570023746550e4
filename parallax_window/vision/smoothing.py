"""
Head pose smoothing and jitter control.

Exponential moving average over the pose stream. The filter is
indexed by sample, not by wall-clock time: call apply() once per
tracking frame at a roughly steady cadence.
"""

from typing import Optional

from parallax_window.vision.head_pose import HeadPose
from parallax_window.utils.logger import get_logger

logger = get_logger(__name__)


def _check_factor(factor: float) -> float:
    if not 0.0 < factor <= 1.0:
        raise ValueError(f"Smoothing factor must be in (0, 1], got {factor}")
    return float(factor)


class PoseSmoother:
    """
    Smooth head pose samples to reduce tracking jitter.

    output = previous + (sample - previous) * factor, per axis.

    factor in (0, 1]: lower = more smoothing, 1.0 = pass-through.
    The first sample is adopted as-is (no ramp up from zero).
    """

    def __init__(self, factor: float = 0.3):
        """
        Initialize smoother.

        Args:
            factor: Smoothing factor in (0, 1]

        Raises:
            ValueError: If factor is out of range
        """
        self._factor = _check_factor(factor)
        self._previous: Optional[HeadPose] = None

        logger.info(f"PoseSmoother initialized: factor={self._factor:.2f}")

    def apply(self, sample: HeadPose) -> HeadPose:
        """
        Smooth one pose sample.

        Args:
            sample: Raw head pose

        Returns:
            Smoothed head pose (also stored as the new state)
        """
        previous = self._previous

        # prev + (s - prev) * 1.0 can differ from s in the last bit
        if previous is None or self._factor == 1.0:
            self._previous = sample
            return sample

        f = self._factor
        smoothed = HeadPose(
            x=previous.x + (sample.x - previous.x) * f,
            y=previous.y + (sample.y - previous.y) * f,
            z=previous.z + (sample.z - previous.z) * f,
        )

        self._previous = smoothed
        return smoothed

    def reset(self):
        """Reset smoother state (e.g., after tracking resumes)."""
        self._previous = None
        logger.debug("Smoother reset")

    def update_factor(self, factor: float):
        """
        Change responsiveness without clearing state.

        Raises:
            ValueError: If factor is out of range
        """
        self._factor = _check_factor(factor)
        logger.debug(f"Smoothing factor updated: {self._factor:.2f}")

    @property
    def factor(self) -> float:
        return self._factor

    @property
    def current(self) -> Optional[HeadPose]:
        """Last smoothed pose, or None before the first sample."""
        return self._previous

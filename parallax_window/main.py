"""
Parallax Window - head-tracked off-axis projection

Headless entry point: tracks the viewer through the webcam and drives
the render camera, logging the camera pose and frustum as it goes.

Usage:
    python -m parallax_window.main [--frames N] [--screen-width-cm W ...]
"""

import argparse
import sys
from typing import List, Optional

from parallax_window.core.config import get_default_config
from parallax_window.core.controller import ParallaxController, FrameProcessingResult
from parallax_window.vision.pose_source import WebcamPoseSource
from parallax_window.utils.logger import setup_logger, get_logger
from parallax_window.utils.timing import FrameRateLimiter


def build_arg_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(
        prog="parallax-window",
        description="Head-tracked off-axis projection (window illusion).",
    )
    p.add_argument("--camera", type=int, default=None, help="Camera index.")
    p.add_argument(
        "--frames", type=int, default=None, help="Stop after N pose samples."
    )
    p.add_argument(
        "--smoothing", type=float, default=None, help="Pose smoothing factor in (0, 1]."
    )
    p.add_argument(
        "--sensitivity", type=float, default=None, help="Parallax amplification."
    )
    p.add_argument("--screen-width-cm", type=float, default=None)
    p.add_argument("--screen-height-cm", type=float, default=None)
    p.add_argument("--viewing-distance-cm", type=float, default=None)
    p.add_argument(
        "--mirror", action="store_true", help="Flip x for mirrored camera feeds."
    )
    p.add_argument(
        "--log-every", type=int, default=30, help="Log camera pose every N frames."
    )
    p.add_argument("--log-level", default=None)
    return p


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point."""
    args = build_arg_parser().parse_args(argv)

    config = get_default_config()
    if args.camera is not None:
        config.camera.camera_index = args.camera
    if args.smoothing is not None:
        config.tracking.smoothing_factor = args.smoothing
    if args.sensitivity is not None:
        config.projection.sensitivity = args.sensitivity
    if args.mirror:
        config.tracking.mirror_x = True
    if args.log_level is not None:
        config.log_level = args.log_level

    # Re-validate after CLI overrides
    config._validate()

    setup_logger(
        name="parallax_window",
        level=config.log_level,
        log_file=config.storage.log_path,
        enable_file_logging=config.storage.enable_file_logging,
    )

    logger = get_logger(__name__)
    logger.info(f"Parallax Window {config.version} starting")

    controller = ParallaxController(config)

    calibration = controller.calibration
    try:
        if args.screen_width_cm is not None or args.screen_height_cm is not None:
            controller.update_screen_dimensions(
                calibration.screen_width_cm if args.screen_width_cm is None else args.screen_width_cm,
                calibration.screen_height_cm if args.screen_height_cm is None else args.screen_height_cm,
            )
        if args.viewing_distance_cm is not None:
            controller.update_viewing_distance(args.viewing_distance_cm)
    except ValueError as e:
        logger.error(f"Invalid calibration: {e}")
        return 2

    logger.info(f"Calibration: {controller.calibration}")

    limiter = FrameRateLimiter(config.camera.target_fps)

    def on_frame(result: FrameProcessingResult):
        if args.log_every > 0 and result.success and controller.frames_processed % args.log_every == 0:
            camera = controller.camera
            f = result.frustum
            logger.info(
                f"eye=({camera.position[0]:+.3f}, {camera.position[1]:+.3f}, "
                f"{camera.position[2]:.3f})m "
                f"frustum=[l={f.left:+.4f} r={f.right:+.4f} b={f.bottom:+.4f} t={f.top:+.4f}] "
                f"fps={result.fps:.1f}"
            )
        limiter.wait()

    source = WebcamPoseSource(config.camera, config.tracking)

    controller.start()
    try:
        consumed = controller.run(source, max_frames=args.frames, on_frame=on_frame)
    except KeyboardInterrupt:
        consumed = controller.frames_processed + controller.frames_skipped
        logger.info("Interrupted")
    finally:
        controller.stop()

    if controller.error is not None:
        logger.error(f"{controller.error.error_type}: {controller.error.message}")
        return 1

    logger.info(
        f"Processed {consumed} poses "
        f"({controller.frames_skipped} skipped, {source.faces_lost} frames without a face)"
    )
    return 0


if __name__ == "__main__":
    sys.exit(main())

"""
Parallax Window - head-tracked off-axis projection.

Turns the monitor into a window onto a 3D scene: the viewer's head
position, estimated from a webcam, drives an asymmetric perspective
frustum so the screen plane behaves like a pane of glass.

Pipeline:
- Webcam frames -> MediaPipe face landmarks -> normalized head pose
- Exponential smoothing of the pose stream
- Off-axis projection matrix + camera pose for the renderer

Privacy First:
- All processing happens locally
- No video recording
- Only physical screen geometry is stored
"""

__version__ = "0.1.0"
__author__ = "Parallax Window Team"
__license__ = "MIT"

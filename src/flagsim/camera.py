# camera.py
"""Column-major 4x4 matrices for the moderngl renderer."""

import numpy as np

from flagsim.types import PROJ, VIEW


def perspective(fov_y: float, aspect: float, near: float, far: float) -> PROJ:
    f = 1.0 / np.tan(fov_y * 0.5)
    m = np.zeros((4, 4), dtype=np.float32)
    m[0, 0] = f / aspect
    m[1, 1] = f
    m[2, 2] = (far + near) / (near - far)
    m[2, 3] = (2.0 * far * near) / (near - far)
    m[3, 2] = -1.0
    return m.T


def rotation_x(angle: float) -> PROJ:
    c, s = np.cos(angle), np.sin(angle)
    m = np.eye(4, dtype=np.float32)
    m[1:3, 1:3] = [[c, -s], [s, c]]
    return m.T


def rotation_y(angle: float) -> PROJ:
    c, s = np.cos(angle), np.sin(angle)
    m = np.eye(4, dtype=np.float32)
    m[0, 0], m[0, 2] = c, s
    m[2, 0], m[2, 2] = -s, c
    return m.T


def translate(x: float, y: float, z: float) -> PROJ:
    m = np.eye(4, dtype=np.float32)
    m[:3, 3] = (x, y, z)
    return m.T


def orbit_view(
    camera_rot: tuple[float, float], camera_pos: tuple[float, float, float]
) -> VIEW:
    """View matrix for a camera at ``camera_pos`` with (pitch, yaw) rotation."""
    pitch, yaw = camera_rot
    cx, cy, cz = camera_pos
    return translate(-cx, -cy, -cz) @ rotation_y(-yaw) @ rotation_x(-pitch)

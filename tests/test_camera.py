import numpy as np

from flagsim.camera import orbit_view, perspective, rotation_x, rotation_y, translate


def test_translate_is_column_major():
    m = translate(1.0, 2.0, 3.0)
    assert m.dtype == np.float32
    np.testing.assert_allclose(m[3, :3], [1.0, 2.0, 3.0])


def test_rotations_are_orthonormal():
    for m in (rotation_x(0.7), rotation_y(-1.2)):
        np.testing.assert_allclose(m @ m.T, np.eye(4), atol=1e-6)


def test_rotation_y_quarter_turn():
    # Transposed back to row-major, +x maps to -z
    r = rotation_y(np.pi / 2).T
    np.testing.assert_allclose(r @ [1.0, 0.0, 0.0, 1.0], [0.0, 0.0, -1.0, 1.0], atol=1e-6)


def test_perspective_layout():
    m = perspective(np.radians(90.0), 2.0, 0.1, 100.0)
    assert m[1, 1] == np.float32(1.0)
    assert m[0, 0] == np.float32(0.5)
    assert m[2, 3] == -1.0
    assert m[3, 3] == 0.0


def test_orbit_view_without_rotation_is_a_translation():
    np.testing.assert_allclose(
        orbit_view((0.0, 0.0), (1.0, 2.0, 3.0)), translate(-1.0, -2.0, -3.0), atol=1e-6
    )

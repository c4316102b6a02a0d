import numpy as np
import pytest

from flagsim.mesh.grid import generate_grid, grid_index


def test_grid_index_is_row_major():
    assert grid_index(0, 0, 3) == 0
    assert grid_index(3, 0, 3) == 3
    assert grid_index(0, 1, 3) == 4
    assert grid_index(2, 2, 3) == 10


def test_positions_lie_on_the_rest_grid():
    positions, _, _ = generate_grid(2, 1, 0.5)

    assert positions.shape == (6, 3)
    np.testing.assert_allclose(positions[grid_index(1, 1, 2)], [0.5, 0.5, 0.0])
    np.testing.assert_allclose(positions[grid_index(2, 0, 2)], [1.0, 0.0, 0.0])
    assert (positions[:, 2] == 0.0).all()


def test_two_counter_clockwise_faces_per_cell():
    positions, _, faces = generate_grid(3, 2, 0.25)

    assert faces.shape == (2 * 3 * 2, 3)
    assert faces.dtype == np.int32
    assert faces.max() < len(positions)

    p = positions[faces]
    normals = np.cross(p[:, 1] - p[:, 0], p[:, 2] - p[:, 0])
    assert (normals[:, 2] > 0).all()


@pytest.mark.parametrize(
    "xs, ys, expected", [(1, 1, 6), (2, 1, 13), (4, 3, 77), (15, 10, 923)]
)
def test_link_count(xs, ys, expected):
    _, links, _ = generate_grid(xs, ys, 0.1)
    assert len(links) == expected


def test_link_count_without_bending():
    _, links, _ = generate_grid(4, 3, 0.1, add_bending_links=False)
    assert len(links) == 31 + 24


def test_link_rest_lengths_match_rest_shape():
    positions, links, _ = generate_grid(4, 3, 0.2)

    for a, b, rest in links:
        assert np.linalg.norm(positions[b] - positions[a]) == pytest.approx(rest)

    rests = sorted({round(rest, 9) for _, _, rest in links})
    assert rests == pytest.approx([0.2, 0.2 * np.sqrt(2.0), 0.4])


def test_first_links_belong_to_the_first_point():
    _, links, _ = generate_grid(2, 2, 1.0)

    # right, up, two shear diagonals, bend right, bend up
    assert [(a, b) for a, b, _ in links[:6]] == [(0, 1), (0, 3), (0, 4), (1, 3), (0, 2), (0, 6)]

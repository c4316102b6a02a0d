# grid.py
"""
Rectangular cloth grid generation:
1. Structural links between direct neighbours
2. Shear links across both diagonals of every cell
3. Bend links that skip one particle (resist buckling)
"""

import math

import numpy as np

from flagsim.types import GEN_GRID, LINK


def grid_index(u: int, v: int, x_segments: int) -> int:
    """Row-major index of grid point (u, v); v = 0 is the bottom row."""
    return u + v * (x_segments + 1)


def generate_grid(
    x_segments: int,
    y_segments: int,
    rest_distance: float,
    add_bending_links: bool = True,
) -> GEN_GRID:
    """
    Generate a flat cloth grid in the z = 0 plane.

    Args:
        x_segments: Number of cells along x (>= 1)
        y_segments: Number of cells along y (>= 1)
        rest_distance: Spacing between neighbouring particles
        add_bending_links: Add links that skip one particle

    Returns:
        (positions, links, faces) tuple, where each link is
        (index_a, index_b, rest_length) in insertion order
    """
    cols = x_segments + 1
    rows = y_segments + 1

    # 1. POSITIONS
    positions = np.zeros((cols * rows, 3), dtype=np.float64)
    for v in range(rows):
        for u in range(cols):
            i = grid_index(u, v, x_segments)
            positions[i, 0] = u * rest_distance
            positions[i, 1] = v * rest_distance

    # 2. FACES: two counter-clockwise triangles per cell
    faces: list[list[int]] = []
    for v in range(y_segments):
        for u in range(x_segments):
            a = grid_index(u, v, x_segments)
            b = grid_index(u + 1, v, x_segments)
            c = grid_index(u, v + 1, x_segments)
            d = grid_index(u + 1, v + 1, x_segments)

            faces.append([a, b, c])
            faces.append([b, d, c])

    # 3. LINKS, grouped per grid point so relaxation sweeps bottom-up
    links: list[LINK] = []
    diagonal = rest_distance * math.sqrt(2.0)
    bend = rest_distance * 2.0

    for v in range(rows):
        for u in range(cols):
            i = grid_index(u, v, x_segments)

            # Structural
            if u < x_segments:
                links.append((i, grid_index(u + 1, v, x_segments), rest_distance))
            if v < y_segments:
                links.append((i, grid_index(u, v + 1, x_segments), rest_distance))

            # Shear
            if u < x_segments and v < y_segments:
                links.append((i, grid_index(u + 1, v + 1, x_segments), diagonal))
                links.append(
                    (grid_index(u + 1, v, x_segments), grid_index(u, v + 1, x_segments), diagonal)
                )

            # Bend
            if add_bending_links:
                if u + 2 <= x_segments:
                    links.append((i, grid_index(u + 2, v, x_segments), bend))
                if v + 2 <= y_segments:
                    links.append((i, grid_index(u, v + 2, x_segments), bend))

    print(
        f"Generated grid {x_segments}x{y_segments}: {len(positions)} particles, "
        f"{len(links)} links, {len(faces)} faces"
    )

    np_faces = np.array(faces, dtype=np.int32).reshape(-1, 3)
    return positions, links, np_faces

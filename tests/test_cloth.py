import numpy as np
import pytest

from flagsim.cloth import (
    ClothMesh,
    pack_constraints,
    relax_constraints,
    resolve_fixed_constraints,
)
from flagsim.config import MIN_REST_DISTANCE, SolverConfig
from flagsim.models import DistanceConstraint, FixedConstraint

DT = 1.0 / 60.0


def perturbed(cloth, seed=0, scale=0.02):
    rng = np.random.default_rng(seed)
    cloth.pos += rng.normal(scale=scale, size=cloth.pos.shape)
    # At rest in the perturbed shape
    cloth.prev_pos[:] = cloth.pos
    return cloth


def test_layout_and_mass_split():
    cloth = ClothMesh(15, 10, 0.12, 2.0)

    assert cloth.num_particles == 16 * 11
    assert cloth.particle_mass == pytest.approx(2.0 / (16 * 11))
    assert cloth.width == pytest.approx(1.8)
    assert cloth.height == pytest.approx(1.2)
    assert cloth.faces.shape == (2 * 15 * 10, 3)


@pytest.mark.parametrize(
    "xs, ys, rest",
    [(0, 0, 0.0), (-3, 2, -1.0), ("abc", None, float("nan"))],
)
def test_degenerate_construction_is_clamped(xs, ys, rest):
    cloth = ClothMesh(xs, ys, rest, 0.0)

    assert cloth.x_segments >= 1
    assert cloth.y_segments >= 1
    assert cloth.rest_distance >= MIN_REST_DISTANCE
    assert cloth.particle_mass > 0

    cloth.simulate(DT)
    assert np.isfinite(cloth.pos).all()


@pytest.mark.parametrize("dt", [0.0, -1.0, float("nan"), "fast"])
def test_zero_or_invalid_dt_leaves_positions_unchanged(dt):
    cloth = ClothMesh(4, 3, 0.1, 0.5)
    before = cloth.render()

    cloth.simulate(dt)

    np.testing.assert_array_equal(cloth.pos, before)
    np.testing.assert_array_equal(cloth.prev_pos, before)


def test_large_dt_is_clamped():
    cloth = ClothMesh(2, 2, 0.1, 0.1, SolverConfig(max_delta_time=0.02))
    assert cloth.clamp_delta_time(5.0) == 0.02
    assert cloth.clamp_delta_time(0.01) == 0.01


def test_gravity_pulls_free_particles_down():
    cloth = ClothMesh(3, 3, 0.1, 0.1)
    cloth.simulate(DT)
    assert (cloth.pos[:, 1] < cloth.original[:, 1]).all()


def test_pinned_particles_never_integrate():
    cloth = ClothMesh(3, 3, 0.1, 0.1)
    corner = cloth.particle_at(0, 3)
    corner.pinned = True

    for _ in range(30):
        cloth.simulate(DT)

    np.testing.assert_array_equal(corner.position, corner.original)


def test_wind_pushes_along_the_face_normal():
    cloth = ClothMesh(3, 3, 0.1, 0.1)
    cloth.wind[:] = (0.0, 0.0, 10.0)

    for _ in range(5):
        cloth.simulate(DT)

    assert cloth.pos[:, 2].mean() > 0.0


def test_no_aerodynamics_without_coefficient():
    cloth = ClothMesh(3, 3, 0.1, 0.1, SolverConfig(aerodynamic_coefficient=0.0))
    cloth.wind[:] = (0.0, 0.0, 10.0)

    for _ in range(5):
        cloth.simulate(DT)

    np.testing.assert_allclose(cloth.pos[:, 2], 0.0, atol=1e-12)


def test_reset_is_total_and_idempotent():
    cloth = ClothMesh(5, 4, 0.1, 0.2)
    cloth.wind[:] = (3.0, 0.0, 4.0)
    for _ in range(20):
        cloth.simulate(DT)
    assert not np.array_equal(cloth.pos, cloth.original)

    cloth.reset()
    once = (cloth.pos.copy(), cloth.prev_pos.copy())
    cloth.reset()

    np.testing.assert_array_equal(cloth.pos, once[0])
    np.testing.assert_array_equal(cloth.prev_pos, once[1])
    np.testing.assert_array_equal(cloth.pos, cloth.original)
    np.testing.assert_array_equal(cloth.prev_pos, cloth.original)
    assert cloth.steps_stable == 0


def test_reset_keeps_constraints_and_pins():
    cloth = ClothMesh(3, 2, 0.1, 0.1)
    cloth.particle_at(0, 2).pinned = True
    constraints = cloth.constraints

    cloth.simulate(DT)
    cloth.reset()

    assert cloth.constraints is constraints
    assert cloth.particle_at(0, 2).pinned


def test_corner_pinned_grid_does_not_diverge():
    cloth = ClothMesh(2, 2, 1.0, 1.0)
    cloth.particle_at(0, 2).pinned = True
    span = 2.0

    for _ in range(100):
        cloth.simulate(0.016)
        assert np.isfinite(cloth.pos).all()
        assert np.linalg.norm(cloth.pos, axis=1).max() < 5 * span

    assert not cloth.is_exploded
    assert cloth.steps_stable == 100


def test_more_passes_tighten_the_cloth():
    loose = perturbed(ClothMesh(6, 4, 0.1, 0.1, SolverConfig(relaxation_passes=1)))
    tight = perturbed(ClothMesh(6, 4, 0.1, 0.1, SolverConfig(relaxation_passes=10)))
    start = loose.max_stretch()

    loose.simulate(1e-6)
    tight.simulate(1e-6)

    assert tight.max_stretch() < loose.max_stretch()
    assert tight.max_stretch() < start


def test_relaxation_kernel_matches_constraint_resolve():
    kernel = perturbed(ClothMesh(4, 3, 0.1, 0.1))
    python = perturbed(ClothMesh(4, 3, 0.1, 0.1))
    kernel.particle_at(0, 3).pinned = python.particle_at(0, 3).pinned = True

    idx_a, idx_b, rest = pack_constraints(kernel.constraints)
    relax_constraints(kernel.pos, idx_a, idx_b, rest, kernel.pinned_mask, 1)
    for c in python.constraints:
        c.resolve()

    np.testing.assert_allclose(kernel.pos, python.pos, atol=1e-12)


def test_fixed_kernel_matches_constraint_resolve():
    kernel = perturbed(ClothMesh(4, 3, 0.1, 0.1), seed=3)
    python = perturbed(ClothMesh(4, 3, 0.1, 0.1), seed=3)

    def chain(cloth):
        return [
            FixedConstraint(cloth.particle_at(u, 0), cloth.particle_at(u + 1, 0), 0.1)
            for u in range(4)
        ]

    idx_a, idx_b, rest = pack_constraints(chain(kernel))
    resolve_fixed_constraints(kernel.pos, idx_a, idx_b, rest, kernel.pinned_mask)
    for c in chain(python):
        c.resolve()

    np.testing.assert_allclose(kernel.pos, python.pos, atol=1e-12)


def test_divergence_is_flagged_and_cleared_by_reset(capsys):
    cloth = ClothMesh(2, 2, 0.1, 0.1)
    cloth.pos[0, 0] = np.inf

    cloth.simulate(DT)
    assert cloth.is_exploded
    assert "unstable" in capsys.readouterr().out

    frozen = cloth.pos.copy()
    cloth.simulate(DT)
    np.testing.assert_array_equal(cloth.pos, frozen)

    cloth.reset()
    assert not cloth.is_exploded
    cloth.simulate(DT)
    assert np.isfinite(cloth.pos).all()


def test_render_copies_into_buffer():
    cloth = ClothMesh(3, 2, 0.1, 0.1)
    buffer = np.zeros((cloth.num_particles, 3), dtype=np.float32)

    result = cloth.render(buffer)

    assert result is buffer
    np.testing.assert_allclose(buffer, cloth.pos, atol=1e-6)
    assert cloth.render() is not cloth.pos

    with pytest.raises(ValueError):
        cloth.render(np.zeros((2, 3)))


def test_constraints_are_structural_shear_and_bend():
    cloth = ClothMesh(3, 3, 0.1, 0.1)
    assert all(isinstance(c, DistanceConstraint) for c in cloth.constraints)
    assert cloth.max_stretch() == pytest.approx(0.0, abs=1e-12)

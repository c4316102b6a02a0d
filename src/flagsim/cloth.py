# cloth.py
"""
Verlet cloth solver: numba kernels plus the ClothMesh that owns the particle
arrays and the structural/shear/bend constraint set.
"""

from typing import Any

from numba import njit, prange  # type: ignore
import numpy as np

from flagsim.config import MIN_REST_DISTANCE, SolverConfig, is_numeric
from flagsim.mesh.grid import generate_grid, grid_index
from flagsim.models import DistanceConstraint, Particle
from flagsim.types import FACE, INDEX, MASK, POSITIONS

MIN_MASS = 1e-6

# ===============================
# PHYSICS KERNELS
# ===============================


@njit(fastmath=True, cache=True, parallel=True)  # type: ignore
def integrate_verlet(
    pos: POSITIONS,
    prev_pos: POSITIONS,
    pinned_mask: MASK,
    acceleration: POSITIONS,
    drag: float,
    dt: float,
) -> None:
    """Position Verlet; velocity is implied by (pos - prev_pos)."""
    dt_sq = dt * dt
    for i in prange(len(pos)):
        if pinned_mask[i]:
            continue

        vx = (pos[i, 0] - prev_pos[i, 0]) * drag
        vy = (pos[i, 1] - prev_pos[i, 1]) * drag
        vz = (pos[i, 2] - prev_pos[i, 2]) * drag

        prev_pos[i, 0] = pos[i, 0]
        prev_pos[i, 1] = pos[i, 1]
        prev_pos[i, 2] = pos[i, 2]

        pos[i, 0] += vx + acceleration[i, 0] * dt_sq
        pos[i, 1] += vy + acceleration[i, 1] * dt_sq
        pos[i, 2] += vz + acceleration[i, 2] * dt_sq


@njit(cache=True)  # type: ignore
def accumulate_wind_forces(
    pos: POSITIONS,
    prev_pos: POSITIONS,
    faces: FACE,
    wind: np.ndarray,
    coefficient: float,
    dt: float,
    forces: POSITIONS,
) -> None:
    """
    Aerodynamic force per triangle: n * dot(n, wind - v_face) * area * C,
    shared equally between the triangle's three particles.
    """
    inv_dt = 1.0 / dt
    for f in range(len(faces)):
        i1 = faces[f, 0]
        i2 = faces[f, 1]
        i3 = faces[f, 2]

        ux = pos[i2, 0] - pos[i1, 0]
        uy = pos[i2, 1] - pos[i1, 1]
        uz = pos[i2, 2] - pos[i1, 2]
        vx = pos[i3, 0] - pos[i1, 0]
        vy = pos[i3, 1] - pos[i1, 1]
        vz = pos[i3, 2] - pos[i1, 2]

        nx = uy * vz - uz * vy
        ny = uz * vx - ux * vz
        nz = ux * vy - uy * vx
        n_len = np.sqrt(nx * nx + ny * ny + nz * nz)
        if n_len < 1e-12:
            continue

        area = 0.5 * n_len
        nx /= n_len
        ny /= n_len
        nz /= n_len

        # Mean face velocity from the Verlet pair
        fvx = (pos[i1, 0] - prev_pos[i1, 0] + pos[i2, 0] - prev_pos[i2, 0]
               + pos[i3, 0] - prev_pos[i3, 0]) * inv_dt / 3.0
        fvy = (pos[i1, 1] - prev_pos[i1, 1] + pos[i2, 1] - prev_pos[i2, 1]
               + pos[i3, 1] - prev_pos[i3, 1]) * inv_dt / 3.0
        fvz = (pos[i1, 2] - prev_pos[i1, 2] + pos[i2, 2] - prev_pos[i2, 2]
               + pos[i3, 2] - prev_pos[i3, 2]) * inv_dt / 3.0

        rel_n = nx * (wind[0] - fvx) + ny * (wind[1] - fvy) + nz * (wind[2] - fvz)
        scale = rel_n * area * coefficient / 3.0

        for k in range(3):
            i = faces[f, k]
            forces[i, 0] += nx * scale
            forces[i, 1] += ny * scale
            forces[i, 2] += nz * scale


@njit(cache=True)  # type: ignore
def relax_constraints(
    pos: POSITIONS,
    idx_a: INDEX,
    idx_b: INDEX,
    rest_lengths: np.ndarray,
    pinned_mask: MASK,
    passes: int,
) -> None:
    """
    Sequential distance-constraint relaxation in insertion order.
    A pinned endpoint has zero inverse mass and never moves.
    """
    for _ in range(passes):
        for s in range(len(idx_a)):
            a = idx_a[s]
            b = idx_b[s]

            wa = 0.0 if pinned_mask[a] else 1.0
            wb = 0.0 if pinned_mask[b] else 1.0
            w_sum = wa + wb
            if w_sum == 0.0:
                continue

            dx = pos[b, 0] - pos[a, 0]
            dy = pos[b, 1] - pos[a, 1]
            dz = pos[b, 2] - pos[a, 2]

            dist = np.sqrt(dx * dx + dy * dy + dz * dz)
            if dist < 1e-12:
                continue

            k = (dist - rest_lengths[s]) / (dist * w_sum)

            pos[a, 0] += dx * k * wa
            pos[a, 1] += dy * k * wa
            pos[a, 2] += dz * k * wa

            pos[b, 0] -= dx * k * wb
            pos[b, 1] -= dy * k * wb
            pos[b, 2] -= dz * k * wb


@njit(cache=True)  # type: ignore
def resolve_fixed_constraints(
    pos: POSITIONS,
    idx_a: INDEX,
    idx_b: INDEX,
    rest_lengths: np.ndarray,
    pinned_mask: MASK,
) -> None:
    """Place each ``b`` at exactly the rest length from its anchor ``a``, in order."""
    for s in range(len(idx_a)):
        a = idx_a[s]
        b = idx_b[s]
        if pinned_mask[b]:
            continue

        dx = pos[b, 0] - pos[a, 0]
        dy = pos[b, 1] - pos[a, 1]
        dz = pos[b, 2] - pos[a, 2]

        dist = np.sqrt(dx * dx + dy * dy + dz * dz)
        if dist < 1e-12:
            continue

        ratio = rest_lengths[s] / dist
        pos[b, 0] = pos[a, 0] + dx * ratio
        pos[b, 1] = pos[a, 1] + dy * ratio
        pos[b, 2] = pos[a, 2] + dz * ratio


def pack_constraints(
    constraints: "list[DistanceConstraint] | tuple[DistanceConstraint, ...]",
) -> tuple[INDEX, INDEX, np.ndarray]:
    idx_a = np.array([c.a.index for c in constraints], dtype=np.int32)
    idx_b = np.array([c.b.index for c in constraints], dtype=np.int32)
    rest = np.array([c.rest_length for c in constraints], dtype=np.float64)
    return idx_a, idx_b, rest


# ===============================
# CLOTH MESH
# ===============================


class ClothMesh:
    """
    Rectangular grid of particles with:
    - Verlet integration under gravity, wind and damping
    - Sequential relaxation of structural, shear and bend constraints
    - Reset to the flat rest shape
    """

    def __init__(
        self,
        x_segments: int,
        y_segments: int,
        rest_distance: float,
        mass: float,
        solver: SolverConfig | None = None,
    ) -> None:
        self.x_segments = self._segments(x_segments)
        self.y_segments = self._segments(y_segments)
        self.rest_distance = max(
            MIN_REST_DISTANCE, float(rest_distance) if is_numeric(rest_distance) else 0.0
        )
        self.mass = max(MIN_MASS, float(mass) if is_numeric(mass) else 0.0)
        self.solver = solver if solver is not None else SolverConfig()

        positions, links, faces = generate_grid(
            self.x_segments, self.y_segments, self.rest_distance
        )

        self.original = positions
        self.pos = positions.copy()
        # Zero initial velocity
        self.prev_pos = positions.copy()
        self.pinned_mask = np.zeros(len(positions), dtype=np.bool_)
        self.faces = faces
        self.particle_mass = self.mass / len(positions)

        self.particles = tuple(Particle(self, i) for i in range(len(positions)))
        self.constraints = tuple(
            DistanceConstraint(self.particles[a], self.particles[b], rest)
            for a, b, rest in links
        )
        self._idx_a, self._idx_b, self._rest = pack_constraints(self.constraints)

        self.wind = np.zeros(3, dtype=np.float64)
        self._forces = np.zeros_like(self.pos)

        # Diagnostics
        self.is_exploded = False
        self.steps_stable = 0

        print("Cloth initialized:")
        print(f"  - {self.x_segments}x{self.y_segments} segments, {len(self.particles)} particles")
        print(f"  - {len(self.constraints)} constraints")
        print(f"  - Rest distance: {self.rest_distance:.4f}m")
        print(f"  - Particle mass: {self.particle_mass:.6f}kg")

    @staticmethod
    def _segments(value: Any) -> int:
        if not is_numeric(value):
            return 1
        return max(1, int(float(value)))

    @property
    def num_particles(self) -> int:
        return len(self.particles)

    @property
    def width(self) -> float:
        return self.x_segments * self.rest_distance

    @property
    def height(self) -> float:
        return self.y_segments * self.rest_distance

    def particle_at(self, u: int, v: int) -> Particle:
        return self.particles[grid_index(u, v, self.x_segments)]

    def clamp_delta_time(self, dt: float) -> float:
        if not is_numeric(dt):
            return 0.0
        return min(max(float(dt), 0.0), self.solver.max_delta_time)

    def simulate(self, dt: float) -> None:
        """Advance the cloth by one (clamped) time step."""
        if self.is_exploded:
            return

        dt = self.clamp_delta_time(dt)
        if dt <= 0.0:
            return

        solver = self.solver
        forces = self._forces
        forces.fill(0.0)

        if solver.aerodynamic_coefficient > 0.0:
            accumulate_wind_forces(
                self.pos,
                self.prev_pos,
                self.faces,
                self.wind,
                solver.aerodynamic_coefficient,
                dt,
                forces,
            )

        acceleration = forces / self.particle_mass
        acceleration[:, 1] -= solver.gravity

        integrate_verlet(
            self.pos,
            self.prev_pos,
            self.pinned_mask,
            acceleration,
            solver.drag,
            dt,
        )

        relax_constraints(
            self.pos,
            self._idx_a,
            self._idx_b,
            self._rest,
            self.pinned_mask,
            solver.relaxation_passes,
        )

        # Check for explosion
        if not np.isfinite(self.pos).all():
            self.is_exploded = True
            print("Warning: Cloth simulation became unstable!")
            print(f"  Stable steps before divergence: {self.steps_stable}")
        else:
            self.steps_stable += 1
            interval = solver.report_interval
            if interval and self.steps_stable % interval == 0:
                print(
                    f"Stable for {self.steps_stable} steps | "
                    f"Max stretch: {self.max_stretch():.6f}m"
                )

    def max_stretch(self) -> float:
        """Largest absolute deviation of any constraint from its rest length."""
        if len(self._rest) == 0:
            return 0.0
        diff = self.pos[self._idx_b] - self.pos[self._idx_a]
        lengths = np.linalg.norm(diff, axis=1)
        return float(np.max(np.abs(lengths - self._rest)))

    def reset(self) -> None:
        self.pos[:] = self.original
        self.prev_pos[:] = self.original
        self.is_exploded = False
        self.steps_stable = 0

    def render(self, out: np.ndarray | None = None) -> np.ndarray:
        """Copy current positions into ``out`` (or a new array) and return it."""
        if out is None:
            return self.pos.copy()
        if out.shape != self.pos.shape:
            raise ValueError(
                f"Render buffer has shape {out.shape}, expected {self.pos.shape}"
            )
        out[:] = self.pos
        return out

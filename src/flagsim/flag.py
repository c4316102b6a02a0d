# flag.py
"""
Flag simulation: a ClothMesh anchored along one or more edges, reinforced by
anti-stretch constraints that run outwards from the hoist.
"""

from __future__ import annotations

from collections.abc import Iterable
from typing import Any

import numpy as np

from flagsim.cloth import ClothMesh, pack_constraints, resolve_fixed_constraints
from flagsim.config import (
    DEFAULT_HEIGHT,
    DEFAULT_MASS,
    DEFAULT_REST_DISTANCE,
    DEFAULT_WIDTH,
    MIN_REST_DISTANCE,
    PinConfig,
    Side,
    SolverConfig,
    ensure_valid_spacing,
    is_numeric,
    round_half_up,
    to_side,
)
from flagsim.models import FixedConstraint, Particle

# Edge consulted first when choosing which side anti-stretch links start from
HOIST_PRIORITY = (Side.LEFT, Side.TOP, Side.RIGHT, Side.BOTTOM)


def build_cloth(
    width: float,
    height: float,
    mass: float,
    rest_distance: float,
    solver: SolverConfig | None = None,
) -> ClothMesh:
    """Build a cloth from physical extents; ``mass`` is an areal density."""
    width = float(width) if is_numeric(width) and float(width) > 0 else DEFAULT_WIDTH
    height = float(height) if is_numeric(height) and float(height) > 0 else DEFAULT_HEIGHT
    mass = float(mass) if is_numeric(mass) and float(mass) >= 0 else DEFAULT_MASS
    if is_numeric(rest_distance) and float(rest_distance) > 0:
        rest_distance = max(MIN_REST_DISTANCE, float(rest_distance))
    else:
        rest_distance = DEFAULT_REST_DISTANCE

    return ClothMesh(
        max(1, round_half_up(width / rest_distance)),
        max(1, round_half_up(height / rest_distance)),
        rest_distance,
        mass * width * height,
        solver,
    )


class FlagSimulation:
    """Per-frame driver for a pinned, anti-stretch reinforced cloth.

    Frame sequence: ``cloth.simulate(dt)``, re-anchor every pin at its
    original position with zero velocity, then resolve ``length_constraints``
    in stored order (hoist first).
    """

    def __init__(
        self,
        width: float = DEFAULT_WIDTH,
        height: float = DEFAULT_HEIGHT,
        mass: float = DEFAULT_MASS,
        rest_distance: float = DEFAULT_REST_DISTANCE,
        pin: PinConfig | None = None,
        solver: SolverConfig | None = None,
    ) -> None:
        self.cloth = build_cloth(width, height, mass, rest_distance, solver)
        self.pins: list[Particle] = []
        self._pin_indices: set[int] = set()
        self._pin_array = np.zeros(0, dtype=np.int64)

        self.hoist_side: Side | None = None
        self._length_constraints: tuple[FixedConstraint, ...] = ()
        self._length_a, self._length_b, self._length_rest = pack_constraints(())

        pin = PinConfig.from_value(pin)
        self.pin(pin.edges, pin.spacing)
        self.set_length_constraints(self.default_hoist_side(pin.edges))

    # ------------------------
    # Pinning
    # ------------------------

    @staticmethod
    def default_hoist_side(edges: Iterable[Side]) -> Side | None:
        edges = tuple(edges)
        for side in HOIST_PRIORITY:
            if side in edges:
                return side
        return None

    def _edge_particles(self, edge: Any, spacing: int) -> list[Particle]:
        cloth = self.cloth
        xs, ys = cloth.x_segments, cloth.y_segments
        side = to_side(edge)

        if side is Side.TOP:
            return [cloth.particle_at(i, ys) for i in range(0, xs + 1, spacing)]
        if side is Side.LEFT:
            return [cloth.particle_at(0, i) for i in range(0, ys + 1, spacing)]
        if side is Side.BOTTOM:
            return [cloth.particle_at(i, 0) for i in range(0, xs + 1, spacing)]
        if side is Side.RIGHT:
            return [cloth.particle_at(xs, i) for i in range(0, ys + 1, spacing)]
        return []

    def pin(self, edges: Iterable[Side], spacing: int = 1) -> None:
        """Anchor every ``spacing``-th particle along each of ``edges``."""
        spacing = ensure_valid_spacing(spacing)
        for edge in edges:
            for particle in self._edge_particles(edge, spacing):
                if particle.index in self._pin_indices:
                    continue
                self._pin_indices.add(particle.index)
                self.pins.append(particle)
                particle.pinned = True

        self._pin_array = np.array([p.index for p in self.pins], dtype=np.int64)

    def unpin(self) -> None:
        for particle in self.pins:
            particle.pinned = False
        self.pins = []
        self._pin_indices.clear()
        self._pin_array = np.zeros(0, dtype=np.int64)

    # ------------------------
    # Anti-stretch constraints
    # ------------------------

    @property
    def length_constraints(self) -> tuple[FixedConstraint, ...]:
        return self._length_constraints

    def set_length_constraints(self, hoistward_side: Side | str | None) -> None:
        """
        Rebuild the anti-stretch links for the given hoist side.

        Order matters: links closest to the hoist must resolve first, so each
        row (or column) runs from the hoist edge towards the fly.
        """
        cloth = self.cloth
        xs, ys = cloth.x_segments, cloth.y_segments
        at = cloth.particle_at
        rest = cloth.rest_distance
        side = to_side(hoistward_side)
        constraints: list[FixedConstraint] = []

        if side is Side.LEFT:
            # Horizontal, hoist to fly
            for v in range(ys + 1):
                for u in range(xs):
                    constraints.append(FixedConstraint(at(u, v), at(u + 1, v), rest))
        elif side is Side.RIGHT:
            for v in range(ys + 1):
                for u in range(xs, 0, -1):
                    constraints.append(FixedConstraint(at(u, v), at(u - 1, v), rest))
        elif side is Side.TOP:
            # Vertical, top to bottom
            for u in range(xs + 1):
                for v in range(ys, 0, -1):
                    constraints.append(FixedConstraint(at(u, v), at(u, v - 1), rest))
        elif side is Side.BOTTOM:
            for u in range(xs + 1):
                for v in range(ys):
                    constraints.append(FixedConstraint(at(u, v), at(u, v + 1), rest))

        self.hoist_side = side
        self._length_constraints = tuple(constraints)
        self._length_a, self._length_b, self._length_rest = pack_constraints(constraints)

    # ------------------------
    # Lifecycle
    # ------------------------

    def reset(self) -> None:
        self.cloth.reset()

    def simulate(self, dt: float) -> None:
        cloth = self.cloth
        cloth.simulate(dt)

        # Pin constraints
        pins = self._pin_array
        if len(pins):
            cloth.pos[pins] = cloth.original[pins]
            cloth.prev_pos[pins] = cloth.original[pins]

        # Length constraints
        if len(self._length_a):
            resolve_fixed_constraints(
                cloth.pos,
                self._length_a,
                self._length_b,
                self._length_rest,
                cloth.pinned_mask,
            )

    def render(self, out: np.ndarray | None = None) -> np.ndarray:
        return self.cloth.render(out)

    @property
    def faces(self) -> np.ndarray:
        return self.cloth.faces

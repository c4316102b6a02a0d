# models.py
from __future__ import annotations

from typing import TYPE_CHECKING

import numpy as np

from flagsim.types import VEC3

if TYPE_CHECKING:
    from flagsim.cloth import ClothMesh

EPSILON = 1e-12


class Particle:
    """Handle onto one row of the cloth arrays.

    ``position``, ``previous`` and ``original`` are numpy views, so in-place
    updates (``particle.position += offset``) write straight through to the
    mesh the kernels operate on.
    """

    __slots__ = ["cloth", "index"]

    def __init__(self, cloth: ClothMesh, index: int) -> None:
        self.cloth = cloth
        self.index = index

    @property
    def position(self) -> VEC3:
        return self.cloth.pos[self.index]

    @position.setter
    def position(self, value: VEC3) -> None:
        self.cloth.pos[self.index] = value

    @property
    def previous(self) -> VEC3:
        return self.cloth.prev_pos[self.index]

    @previous.setter
    def previous(self, value: VEC3) -> None:
        self.cloth.prev_pos[self.index] = value

    @property
    def original(self) -> VEC3:
        return self.cloth.original[self.index]

    @property
    def pinned(self) -> bool:
        return bool(self.cloth.pinned_mask[self.index])

    @pinned.setter
    def pinned(self, value: bool) -> None:
        self.cloth.pinned_mask[self.index] = value

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Particle):
            return NotImplemented
        return self.cloth is other.cloth and self.index == other.index

    def __hash__(self) -> int:
        return hash((id(self.cloth), self.index))

    def __repr__(self) -> str:
        return f"Particle(index={self.index}, pinned={self.pinned})"


class DistanceConstraint:
    def __init__(
        self,
        a: Particle,
        b: Particle,
        rest_length: float | None = None,
    ) -> None:
        self.a = a
        self.b = b
        if rest_length is None:
            self.rest_length = self.length()
        else:
            self.rest_length = float(rest_length)

    def length(self) -> float:
        return float(np.linalg.norm(self.b.position - self.a.position))

    def resolve(self) -> None:
        """Move both endpoints toward the rest length, split by inverse mass."""
        wa = 0.0 if self.a.pinned else 1.0
        wb = 0.0 if self.b.pinned else 1.0
        w_sum = wa + wb
        if w_sum == 0.0:
            return

        diff = self.b.position - self.a.position
        dist = float(np.linalg.norm(diff))
        if dist < EPSILON:
            return

        correction = diff * ((dist - self.rest_length) / (dist * w_sum))
        if wa:
            self.a.position += correction * wa
        if wb:
            self.b.position -= correction * wb

    def __repr__(self) -> str:
        return (
            f"{type(self).__name__}({self.a.index}, {self.b.index}, "
            f"rest_length={self.rest_length:.4f})"
        )


class FixedConstraint(DistanceConstraint):
    """Distance constraint anchored at ``a``; only ``b`` ever moves."""

    def resolve(self) -> None:
        if self.b.pinned:
            return

        diff = self.b.position - self.a.position
        dist = float(np.linalg.norm(diff))
        if dist < EPSILON:
            return

        self.b.position = self.a.position + diff * (self.rest_length / dist)

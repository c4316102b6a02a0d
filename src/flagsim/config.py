"""
Configuration dataclasses and option normalisation for the flag simulation.

Malformed options never raise: each value degrades to the nearest valid
setting so a partially bad configuration still produces a flag.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field, fields
from enum import Enum
import math
from typing import Any, Union

DEFAULT_WIDTH = 1.8
DEFAULT_HEIGHT = 1.2
DEFAULT_MASS = 0.11  # 110 g/m^2
DEFAULT_REST_DISTANCE = DEFAULT_HEIGHT / 10
MIN_REST_DISTANCE = 1e-3
MAX_SIZE = 500.0

GRAVITY = 9.81 * 1.4
DAMPING = 0.03
RELAXATION_PASSES = 3
MAX_DELTA_TIME = 1.0 / 30.0
AERODYNAMIC_COEFFICIENT = 0.5

AUTO = "auto"


class Side(str, Enum):
    TOP = "top"
    LEFT = "left"
    BOTTOM = "bottom"
    RIGHT = "right"


class Hoisting(str, Enum):
    DEXTER = "dexter"
    SINISTER = "sinister"


Size = Union[float, str]


def is_numeric(value: Any) -> bool:
    if isinstance(value, bool):
        return False
    try:
        return math.isfinite(float(value))
    except (TypeError, ValueError):
        return False


def to_side(value: Any) -> Side | None:
    if isinstance(value, Side):
        return value
    if isinstance(value, str):
        try:
            return Side(value.strip().lower())
        except ValueError:
            return None
    return None


def normalize_edges(edges: Any) -> tuple[Side, ...]:
    """Normalise a single edge or a collection of edges into unique Sides.

    Order of first appearance is kept; unrecognised values are dropped.
    """
    if edges is None:
        return ()
    if isinstance(edges, (str, Side)):
        candidates: Iterable[Any] = (edges,)
    elif isinstance(edges, Iterable):
        candidates = edges
    else:
        return ()

    result: list[Side] = []
    for edge in candidates:
        side = to_side(edge)
        if side is not None and side not in result:
            result.append(side)
    return tuple(result)


def ensure_valid_spacing(spacing: Any, default: int = 1) -> int:
    if is_numeric(spacing) and float(spacing) >= 1:
        return int(math.floor(float(spacing)))
    return default


def _enum_or_default(enum_type: type[Enum], value: Any, default: Enum) -> Any:
    if isinstance(value, enum_type):
        return value
    if isinstance(value, str):
        try:
            return enum_type(value.strip().lower())
        except ValueError:
            return default
    return default


def _number_or_default(value: Any, default: float, minimum: float | None = None) -> float:
    number = float(value) if is_numeric(value) else default
    if minimum is not None:
        number = max(minimum, number)
    return number


@dataclass
class PinConfig:
    """Which grid edges are anchored, and the stride along them.

    Attributes:
        edges: Pinned edges; a single value or any iterable is accepted.
        spacing: Pin every Nth particle along each edge (>= 1).
    """

    edges: tuple[Side, ...] = (Side.LEFT,)
    spacing: int = 1

    def __post_init__(self) -> None:
        self.edges = normalize_edges(self.edges)
        self.spacing = ensure_valid_spacing(self.spacing)

    @classmethod
    def from_value(cls, value: Any) -> PinConfig:
        if isinstance(value, PinConfig):
            return value
        if isinstance(value, Mapping):
            return cls(
                edges=value.get("edges", ()),
                spacing=value.get("spacing", 1),
            )
        if value is None:
            return cls()
        # Bare edge or list of edges
        return cls(edges=value)


@dataclass
class SolverConfig:
    """Numerical parameters of the cloth solver.

    Attributes:
        gravity: Downward acceleration (m/s^2).
        damping: Fraction of velocity lost per step, in [0, 1].
        relaxation_passes: Constraint sweeps per step (>= 1).
        max_delta_time: Largest step accepted by ``simulate``.
        aerodynamic_coefficient: Scale of the per-triangle wind force.
        report_interval: Print a stability line every N steps (0 disables).
    """

    gravity: float = GRAVITY
    damping: float = DAMPING
    relaxation_passes: int = RELAXATION_PASSES
    max_delta_time: float = MAX_DELTA_TIME
    aerodynamic_coefficient: float = AERODYNAMIC_COEFFICIENT
    report_interval: int = 0

    def __post_init__(self) -> None:
        self.gravity = _number_or_default(self.gravity, GRAVITY)
        self.damping = min(1.0, _number_or_default(self.damping, DAMPING, 0.0))
        self.relaxation_passes = int(
            _number_or_default(self.relaxation_passes, RELAXATION_PASSES, 1)
        )
        self.max_delta_time = _number_or_default(self.max_delta_time, MAX_DELTA_TIME, 0.0)
        self.aerodynamic_coefficient = _number_or_default(
            self.aerodynamic_coefficient, AERODYNAMIC_COEFFICIENT, 0.0
        )
        self.report_interval = int(_number_or_default(self.report_interval, 0, 0))

    @property
    def drag(self) -> float:
        return 1.0 - self.damping


@dataclass
class FlagConfig:
    """Construction options for a flag.

    Attributes:
        width: Physical width in metres, or ``"auto"`` to derive it from a
            media source's aspect ratio.
        height: Physical height in metres, or ``"auto"``.
        mass: Areal density in kg/m^2.
        rest_distance: Grid spacing in metres.
        hoisting: Dexter or sinister; only mirrors the texture.
        orientation: Side of the design facing the hoist; LEFT/RIGHT swap the
            flag's width and height.
        pin: Edge pinning policy.
        solver: Numerical solver parameters.
    """

    width: Size = DEFAULT_WIDTH
    height: Size = DEFAULT_HEIGHT
    mass: float = DEFAULT_MASS
    rest_distance: float = DEFAULT_REST_DISTANCE
    hoisting: Hoisting = Hoisting.DEXTER
    orientation: Side = Side.TOP
    pin: PinConfig = field(default_factory=PinConfig)
    solver: SolverConfig = field(default_factory=SolverConfig)

    def __post_init__(self) -> None:
        self.width = self._size(self.width, DEFAULT_WIDTH)
        self.height = self._size(self.height, DEFAULT_HEIGHT)
        self.mass = _number_or_default(self.mass, DEFAULT_MASS, 0.0)
        self.rest_distance = _number_or_default(
            self.rest_distance, DEFAULT_REST_DISTANCE, MIN_REST_DISTANCE
        )
        self.hoisting = _enum_or_default(Hoisting, self.hoisting, Hoisting.DEXTER)
        self.orientation = _enum_or_default(Side, self.orientation, Side.TOP)
        self.pin = PinConfig.from_value(self.pin)
        if isinstance(self.solver, Mapping):
            self.solver = SolverConfig(**_known_keys(SolverConfig, self.solver))
        elif not isinstance(self.solver, SolverConfig):
            self.solver = SolverConfig()

    @staticmethod
    def _size(value: Any, default: float) -> Size:
        if isinstance(value, str) and value.strip().lower() == AUTO:
            return AUTO
        if is_numeric(value) and float(value) > 0:
            return float(value)
        return default

    @classmethod
    def from_dict(cls, options: Mapping[str, Any] | None) -> FlagConfig:
        """Merge an options mapping over the defaults, ignoring unknown keys."""
        return cls(**_known_keys(cls, options or {}))


def _known_keys(cls: type, options: Mapping[str, Any]) -> dict[str, Any]:
    names = {f.name for f in fields(cls)}
    aliases = {"restDistance": "rest_distance"}
    result: dict[str, Any] = {}
    for key, value in options.items():
        key = aliases.get(key, key)
        if key in names:
            result[key] = value
    return result


def round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))

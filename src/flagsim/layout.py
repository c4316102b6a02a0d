"""
Helpers for building rectangular flags from a media source that can be
rotated and mirrored.

The media source only contributes its pixel dimensions; the simulation never
sees it. Orientation and hoisting decide how a texture is laid onto the
cloth, plus a width/height swap for flags rotated into a vertical position.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from enum import Enum
import math

from flagsim.config import (
    AUTO,
    DEFAULT_HEIGHT,
    DEFAULT_WIDTH,
    MAX_SIZE,
    FlagConfig,
    Hoisting,
    Side,
    is_numeric,
)
from flagsim.flag import FlagSimulation


class SourceKind(str, Enum):
    STATIC_IMAGE = "image"
    STREAMING = "video"


@dataclass(frozen=True)
class MediaSource:
    """Pixel dimensions of the design mapped onto the flag."""

    width: int
    height: int
    kind: SourceKind = SourceKind.STATIC_IMAGE

    @property
    def is_valid(self) -> bool:
        return (
            is_numeric(self.width)
            and is_numeric(self.height)
            and float(self.width) > 0
            and float(self.height) > 0
        )


@dataclass(frozen=True)
class TextureTransform:
    reflect: bool = False
    rotate: float = 0.0


@dataclass
class RectangularFlag:
    simulation: FlagSimulation
    texture_transform: TextureTransform
    source: MediaSource | None = None


def _size_from_source(
    source: MediaSource, width: float | str, height: float | str
) -> tuple[float | str, float | str]:
    src_w, src_h = float(source.width), float(source.height)
    if width == AUTO and height == AUTO:
        cross = DEFAULT_HEIGHT
        if src_w < src_h:
            # Vertical
            return cross, cross * src_h / src_w
        # Horizontal or square
        return cross * src_w / src_h, cross
    if width == AUTO and is_numeric(height):
        return float(height) * src_w / src_h, height
    if is_numeric(width) and height == AUTO:
        return width, float(width) * src_h / src_w
    return width, height


def compute_size(config: FlagConfig, source: MediaSource | None = None) -> tuple[float, float]:
    """Resolve the flag's physical size, downscaling anything above MAX_SIZE."""
    width, height = config.width, config.height
    if source is not None and source.is_valid:
        width, height = _size_from_source(source, width, height)

    if is_numeric(width) and is_numeric(height):
        width, height = float(width), float(height)
        scale = min(1.0, MAX_SIZE / max(width, height))
        return width * scale, height * scale

    return DEFAULT_WIDTH, DEFAULT_HEIGHT


def is_vertical(orientation: Side) -> bool:
    """True if the design has been rotated into a vertical position."""
    return orientation in (Side.LEFT, Side.RIGHT)


def angle_of_side(side: Side) -> float:
    return {
        Side.TOP: 0.0,
        Side.LEFT: -math.pi / 2,
        Side.BOTTOM: math.pi,
        Side.RIGHT: math.pi / 2,
    }[side]


def compute_texture_transform(config: FlagConfig) -> TextureTransform:
    return TextureTransform(
        reflect=config.hoisting is Hoisting.SINISTER,
        rotate=angle_of_side(config.orientation),
    )


def build_flag(
    config: FlagConfig | None = None,
    source: MediaSource | None = None,
) -> RectangularFlag:
    """Create a flag simulation sized for ``source`` and the configured layout."""
    config = config if config is not None else FlagConfig()
    width, height = compute_size(config, source)

    if is_vertical(config.orientation):
        width, height = height, width

    resolved = replace(config, width=width, height=height)
    simulation = FlagSimulation(
        width=resolved.width,
        height=resolved.height,
        mass=resolved.mass,
        rest_distance=resolved.rest_distance,
        pin=resolved.pin,
        solver=resolved.solver,
    )

    return RectangularFlag(
        simulation=simulation,
        texture_transform=compute_texture_transform(config),
        source=source,
    )

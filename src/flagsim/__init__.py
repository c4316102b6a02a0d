"""
Flag Physics Simulation Package

A cloth simulation of a waving flag using Verlet integration, distance
constraints, edge pinning and hoist-ordered anti-stretch links.
"""

from .cloth import ClothMesh
from .config import FlagConfig, Hoisting, PinConfig, Side, SolverConfig
from .flag import FlagSimulation
from .layout import MediaSource, build_flag
from .models import DistanceConstraint, FixedConstraint, Particle

__version__ = "0.1.0"

__all__ = [
    "ClothMesh",
    "DistanceConstraint",
    "FixedConstraint",
    "FlagConfig",
    "FlagSimulation",
    "Hoisting",
    "MediaSource",
    "Particle",
    "PinConfig",
    "Side",
    "SolverConfig",
    "build_flag",
]

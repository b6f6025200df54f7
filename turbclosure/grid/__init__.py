"""
Structured mesh collaborator.

Provides the Cartesian mesh consumed by the transport assembly, the
gradient kernels and the closure models (wall distance, boundary types).
"""

from .cartesian import (
    CartesianMesh,
    WALL,
    FIXED_VALUE,
    ZERO_GRADIENT,
    BOUNDARY_TYPES,
    SIDES,
)

__all__ = [
    'CartesianMesh',
    'WALL',
    'FIXED_VALUE',
    'ZERO_GRADIENT',
    'BOUNDARY_TYPES',
    'SIDES',
]

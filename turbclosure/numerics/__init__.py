"""
Numerical methods for the closure transport equations.

This module provides:
- Green-Gauss gradient reconstruction
- Restarted GMRES(m) with left preconditioning
- Implicit assembly and solve of one transported scalar
"""

from .gradients import (
    compute_gradients,
    scalar_gradient,
    velocity_gradient,
    grad_dot,
)

from .gmres import (
    gmres,
    GMRESResult,
)

from .transport import (
    ScalarEquation,
    StencilSystem,
    SolveResult,
    split_source,
    limit_production,
    assemble,
    solve_system,
    solve_scalar_equation,
)

__all__ = [
    # Gradients
    'compute_gradients',
    'scalar_gradient',
    'velocity_gradient',
    'grad_dot',
    # GMRES
    'gmres',
    'GMRESResult',
    # Transport
    'ScalarEquation',
    'StencilSystem',
    'SolveResult',
    'split_source',
    'limit_production',
    'assemble',
    'solve_system',
    'solve_scalar_equation',
]

"""
RANS turbulence closures for a structured finite-volume flow solver.

This package provides:
    - Two-equation k-ω closures (Wilcox, SST) and transitional variants
      (γ-SST, k-v2-ω, k-kL-ω)
    - Explicit algebraic Reynolds-stress closures (EARSM, EARSMTrans)
    - Implicit transport of the turbulence scalars on a Cartesian mesh
    - YAML configuration and a re-readable coefficient dictionary
"""

from .config import ClosureConfig, CoefficientDict, load_yaml, from_dict, save_yaml
from .errors import (
    TurbClosureError,
    ConfigurationError,
    UnknownModelError,
    LinearSolveError,
    FieldNotAvailable,
)
from .grid import CartesianMesh
from .models import MeanFlowState, RASModel, available_models, create_model
from .utils import setup_logging

__version__ = "0.1.0"

__all__ = [
    'ClosureConfig',
    'CoefficientDict',
    'load_yaml',
    'from_dict',
    'save_yaml',
    'TurbClosureError',
    'ConfigurationError',
    'UnknownModelError',
    'LinearSolveError',
    'FieldNotAvailable',
    'CartesianMesh',
    'MeanFlowState',
    'RASModel',
    'available_models',
    'create_model',
    'setup_logging',
]

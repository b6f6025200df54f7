"""
Closure variants and the model registry.

    create_model("kOmegaSST", mesh, flow)      # by registry name
"""

from typing import Dict, Optional, Type

from ..config.coefficients import CoefficientDict
from ..config.schema import ClosureConfig
from ..errors import UnknownModelError
from ..grid.cartesian import CartesianMesh
from .base import Closure, MeanFlowState, StepContext, TurbulenceState
from .earsm import EARSM
from .earsm_trans import EARSMTrans
from .engine import RASModel
from .gamma_sst import GammaSST
from .k_omega import KOmega
from .kkl_omega import KkLOmega
from .kv2_omega import KV2Omega
from .sst import KOmegaSST

_REGISTRY: Dict[str, Type[Closure]] = {
    cls.name: cls
    for cls in (KOmega, KOmegaSST, GammaSST, EARSM, EARSMTrans, KV2Omega, KkLOmega)
}


def available_models():
    """Registered model names, sorted."""
    return sorted(_REGISTRY)


def get_closure(name: str) -> Type[Closure]:
    try:
        return _REGISTRY[name]
    except KeyError:
        raise UnknownModelError(
            f"Unknown turbulence model '{name}'. Supported models: {', '.join(available_models())}"
        ) from None


def create_model(name: Optional[str], mesh: CartesianMesh, flow: MeanFlowState,
                 coeffs: Optional[CoefficientDict] = None,
                 config: Optional[ClosureConfig] = None,
                 initial: Optional[dict] = None) -> RASModel:
    """
    Build a model instance by registry name.

    Parameters
    ----------
    name : str or None
        Registry name; None takes config.turbulence.model.
    mesh, flow, coeffs, config, initial
        See RASModel.

    Raises
    ------
    UnknownModelError
        If the name is not registered.
    ConfigurationError
        If a coefficient or setting is invalid.
    """
    config = config or ClosureConfig()
    closure_cls = get_closure(name if name is not None else config.turbulence.model)
    return RASModel(closure_cls, mesh, flow, coeffs=coeffs, config=config, initial=initial)


__all__ = [
    'Closure',
    'MeanFlowState',
    'StepContext',
    'TurbulenceState',
    'RASModel',
    'KOmega',
    'KOmegaSST',
    'GammaSST',
    'EARSM',
    'EARSMTrans',
    'KV2Omega',
    'KkLOmega',
    'available_models',
    'get_closure',
    'create_model',
]

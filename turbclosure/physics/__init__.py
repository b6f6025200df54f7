"""
Pointwise closure physics (JAX kernels).

- invariants:   strain/rotation tensors, invariants, tensor basis
- blending:     SST and Hellsten blending functions
- correlations: transition/intermittency correlations
- earsm:        explicit algebraic Reynolds-stress closure
"""

from .jax_config import jax, jnp, get_device_info

__all__ = ['jax', 'jnp', 'get_device_info']

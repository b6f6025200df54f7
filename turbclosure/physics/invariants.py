"""
Strain-rate / rotation-rate tensors and their invariants.

Conventions:
    grad_u[..., i, j] = ∂U_j/∂x_i      (gradient of the velocity field)
    S_ij = ½(∂U_i/∂x_j + ∂U_j/∂x_i)    (strain rate, symmetric)
    W_ij = ½(∂U_i/∂x_j − ∂U_j/∂x_i)    (rotation rate, antisymmetric)

Dimension Agnostic:
    All functions act on the two trailing axes and broadcast over any
    leading shape: a single 3x3 tensor, a 1D profile (N, 3, 3) or a 2D
    field (NI, NJ, 3, 3).

The basis tensors follow Wallin & Johansson (2000), the set used by the
explicit algebraic stress closure in physics/earsm.py.
"""

from typing import NamedTuple

from .jax_config import jax, jnp


class Invariants(NamedTuple):
    """Scalar invariants of (S, W)."""
    II_S: jnp.ndarray   # tr(S²)
    II_W: jnp.ndarray   # tr(W²)  (non-positive)
    IV: jnp.ndarray     # tr(S W²)
    V: jnp.ndarray      # tr(S² W²)


def _transpose(A):
    return jnp.swapaxes(A, -1, -2)


def _trace(A):
    return jnp.trace(A, axis1=-2, axis2=-1)


def identity_like(A):
    """Identity tensor broadcast to the shape of A."""
    return jnp.broadcast_to(jnp.eye(A.shape[-1], dtype=A.dtype), A.shape)


@jax.jit
def symm(A):
    """Symmetric part ½(A + Aᵀ)."""
    return 0.5 * (A + _transpose(A))


@jax.jit
def skew(A):
    """Antisymmetric part ½(A − Aᵀ)."""
    return 0.5 * (A - _transpose(A))


@jax.jit
def dev(A):
    """Deviatoric part A − ⅓ tr(A) I."""
    return A - (_trace(A) / 3.0)[..., None, None] * identity_like(A)


@jax.jit
def strain_rate(grad_u):
    """Strain-rate tensor S = ½(∇U + ∇Uᵀ)."""
    return symm(grad_u)


@jax.jit
def rotation_rate(grad_u):
    """Rotation-rate tensor W_ij = ½(∂U_i/∂x_j − ∂U_j/∂x_i)."""
    # grad_u is indexed [i, j] = ∂U_j/∂x_i, so W = skew(grad_uᵀ)
    return skew(_transpose(grad_u))


@jax.jit
def double_inner(A, B):
    """Double contraction A:B = A_ij B_ij."""
    return jnp.sum(A * B, axis=(-2, -1))


@jax.jit
def magnitude_sqr(A):
    """A:A."""
    return double_inner(A, A)


@jax.jit
def strain_magnitude(S):
    """|S| = sqrt(2 S:S)."""
    return jnp.sqrt(2.0 * magnitude_sqr(S))


@jax.jit
def vorticity_magnitude(W):
    """|Ω| = sqrt(2 W:W)."""
    return jnp.sqrt(2.0 * magnitude_sqr(W))


@jax.jit
def tensor_invariants(S, W) -> Invariants:
    """
    Invariants used by the non-linear closure.
    
    Parameters
    ----------
    S : array (..., 3, 3)
        Symmetric (strain-like) tensor.
    W : array (..., 3, 3)
        Antisymmetric (rotation-like) tensor.
        
    Returns
    -------
    Invariants
        II_S = tr(S²), II_W = tr(W²), IV = tr(S W²), V = tr(S² W²).
    """
    S2 = S @ S
    W2 = W @ W
    return Invariants(
        II_S=_trace(S2),
        II_W=_trace(W2),
        IV=_trace(S @ W2),
        V=_trace(S2 @ W2),
    )


@jax.jit
def basis_tensors(S, W):
    """
    Wallin–Johansson tensor basis (all symmetric and trace-free).
    
    T1 = S
    T2 = W² − ⅓ II_W I
    T3 = S W − W S
    T4 = S W² + W² S − II_W S − ⅔ IV I
    T5 = W S W² − W² S W
    
    Returns
    -------
    tuple of 5 arrays, each (..., 3, 3)
    """
    I = identity_like(S)
    W2 = W @ W
    II_W = _trace(W2)[..., None, None]
    IV = _trace(S @ W2)[..., None, None]

    T1 = S
    T2 = W2 - II_W / 3.0 * I
    T3 = S @ W - W @ S
    T4 = S @ W2 + W2 @ S - II_W * S - 2.0 / 3.0 * IV * I
    T5 = W @ S @ W2 - W2 @ S @ W
    return T1, T2, T3, T4, T5

"""
Restarted GMRES(m) for the implicit scalar transport systems.

Every transport equation of a closure produces a non-symmetric, diagonally
dominant system on the 5-point stencil. This module solves it matrix-free:
the caller supplies ``matvec(v, *args)`` and optionally a left
preconditioner ``preconditioner(v, *args)``, with the stencil coefficients
travelling in ``args``. One Arnoldi cycle of length m is compiled per
(operator, preconditioner, size, m) and reused for every equation and step.

Within a cycle the Krylov basis is orthogonalised with modified
Gram-Schmidt and the Hessenberg least-squares problem is reduced with
Givens rotations, so the preconditioned residual norm is known after each
Arnoldi step without forming the iterate.

Reference: Saad & Schultz (1986), SIAM J. Sci. Stat. Comput. 7(3), 856–869.
"""

from dataclasses import dataclass
from typing import Callable, Dict, NamedTuple, Optional, Tuple

from ..physics.jax_config import jax, jnp

# Breakdown threshold for the new Krylov direction
BREAKDOWN_TOL = 1e-14

# Guard added to Givens and back-substitution denominators
TINY = 1e-30

_compiled_cycles: Dict[tuple, Callable] = {}


@dataclass
class GMRESResult:
    """Outcome of one linear solve.

    Attributes
    ----------
    x : jnp.ndarray
        Solution, same shape as the right-hand side.
    residual_norm : float
        Preconditioned residual norm at exit.
    converged : bool
        True when residual_norm < tol · ‖P⁻¹b‖.
    iterations : int
        Arnoldi steps performed over all cycles.
    residual_history : list
        Preconditioned residual norm at the start of each cycle, plus the
        final one.
    """
    x: jnp.ndarray
    residual_norm: float
    converged: bool
    iterations: int
    residual_history: list


class _Arnoldi(NamedTuple):
    step: jnp.ndarray
    basis: jnp.ndarray      # (m+1, n)
    hess: jnp.ndarray       # (m+1, m), triangularised in place
    cos: jnp.ndarray
    sin: jnp.ndarray
    rhs: jnp.ndarray        # rotated least-squares right-hand side
    done: jnp.ndarray


def gmres(
    matvec: Callable[..., jnp.ndarray],
    b: jnp.ndarray,
    x0: Optional[jnp.ndarray] = None,
    tol: float = 1e-6,
    restart: int = 20,
    maxiter: int = 100,
    preconditioner: Optional[Callable[..., jnp.ndarray]] = None,
    args: Tuple = (),
) -> GMRESResult:
    """Solve A x = b with left-preconditioned GMRES(m).

    Parameters
    ----------
    matvec : callable
        ``matvec(v, *args)`` returning A v for a flat vector v.
    b : jnp.ndarray
        Right-hand side; any shape, solved flattened.
    x0 : jnp.ndarray, optional
        Starting iterate (zeros by default).
    tol : float
        Relative tolerance on the preconditioned residual.
    restart : int
        Cycle length m, capped at the system size.
    maxiter : int
        Budget of Arnoldi steps across all cycles.
    preconditioner : callable, optional
        ``preconditioner(v, *args)`` returning P⁻¹ v.
    args : tuple
        Operator data forwarded to matvec and preconditioner.

    Returns
    -------
    GMRESResult
    """
    b = jnp.asarray(b)
    n = b.size
    m = max(1, min(restart, n))
    x = jnp.zeros(n) if x0 is None else jnp.asarray(x0).reshape(n)
    b_flat = b.reshape(n)

    reference = float(jnp.linalg.norm(
        b_flat if preconditioner is None else preconditioner(b_flat, *args)))
    if reference < TINY:
        return GMRESResult(x=jnp.zeros_like(b), residual_norm=0.0, converged=True,
                           iterations=0, residual_history=[0.0])
    target = tol * reference

    cycle = _cycle_for(matvec, preconditioner, n, m)
    history = []
    steps = 0
    while steps < maxiter:
        r = _residual(matvec, preconditioner, b_flat, x, args)
        r_norm = jnp.linalg.norm(r)
        history.append(float(r_norm))
        if history[-1] < target:
            return GMRESResult(x=x.reshape(b.shape), residual_norm=history[-1],
                               converged=True, iterations=steps, residual_history=history)
        x, taken = cycle(x, r, r_norm, target, args)
        steps += max(int(taken), 1)

    final = float(jnp.linalg.norm(_residual(matvec, preconditioner, b_flat, x, args)))
    history.append(final)
    return GMRESResult(x=x.reshape(b.shape), residual_norm=final, converged=final < target,
                       iterations=steps, residual_history=history)


def _residual(matvec, preconditioner, b, x, args):
    r = b - matvec(x, *args)
    return r if preconditioner is None else preconditioner(r, *args)


def _cycle_for(matvec, preconditioner, n: int, m: int) -> Callable:
    key = (
        getattr(matvec, '_cache_key', id(matvec)),
        None if preconditioner is None else getattr(preconditioner, '_cache_key', id(preconditioner)),
        n,
        m,
    )
    if key not in _compiled_cycles:
        _compiled_cycles[key] = _compile_cycle(matvec, preconditioner, n, m)
    return _compiled_cycles[key]


def _compile_cycle(matvec, preconditioner, n: int, m: int) -> Callable:
    """Build the jitted Arnoldi cycle; operator data enters through ``args``."""

    def operator(v, args):
        w = matvec(v, *args)
        return w if preconditioner is None else preconditioner(w, *args)

    def arnoldi_step(state: _Arnoldi, target, args) -> _Arnoldi:
        j = state.step
        w = operator(state.basis[j], args)

        def orthogonalise(i, carry):
            hess, w = carry
            h = jnp.dot(w, state.basis[i])
            return hess.at[i, j].set(h), w - h * state.basis[i]

        hess, w = jax.lax.fori_loop(0, j + 1, orthogonalise, (state.hess, w))
        h_next = jnp.linalg.norm(w)
        hess = hess.at[j + 1, j].set(h_next)
        basis = state.basis.at[j + 1].set(
            jnp.where(h_next > BREAKDOWN_TOL, w / h_next, jnp.zeros(n)))

        def rotate(i, hess):
            upper = state.cos[i] * hess[i, j] + state.sin[i] * hess[i + 1, j]
            lower = -state.sin[i] * hess[i, j] + state.cos[i] * hess[i + 1, j]
            return hess.at[i, j].set(upper).at[i + 1, j].set(lower)

        hess = jax.lax.fori_loop(0, j, rotate, hess)

        diag, sub = hess[j, j], hess[j + 1, j]
        radius = jnp.sqrt(diag ** 2 + sub ** 2)
        c, s = diag / (radius + TINY), sub / (radius + TINY)
        hess = hess.at[j, j].set(radius).at[j + 1, j].set(0.0)
        rhs = state.rhs
        rhs = rhs.at[j + 1].set(-s * rhs[j]).at[j].set(c * rhs[j])

        done = (jnp.abs(rhs[j + 1]) < target) | (h_next <= BREAKDOWN_TOL)
        return _Arnoldi(j + 1, basis, hess, state.cos.at[j].set(c),
                        state.sin.at[j].set(s), rhs, done)

    @jax.jit
    def cycle(x, r, r_norm, target, args):
        start = _Arnoldi(
            step=jnp.asarray(0),
            basis=jnp.zeros((m + 1, n)).at[0].set(r / r_norm),
            hess=jnp.zeros((m + 1, m)),
            cos=jnp.zeros(m),
            sin=jnp.zeros(m),
            rhs=jnp.zeros(m + 1).at[0].set(r_norm),
            done=jnp.asarray(False),
        )
        end = jax.lax.while_loop(
            lambda s: (s.step < m) & ~s.done,
            lambda s: arnoldi_step(s, target, args),
            start,
        )
        k = end.step

        def back_substitute(offset, y):
            i = k - 1 - offset
            return y.at[i].set((end.rhs[i] - jnp.dot(end.hess[i, :m], y)) / (end.hess[i, i] + TINY))

        y = jax.lax.fori_loop(0, k, back_substitute, jnp.zeros(m))
        y = jnp.where(jnp.arange(m) < k, y, 0.0)
        return x + end.basis[:m].T @ y, k

    return cycle

# Copyright (c) 2024 Yilin Zou
"""Fixed-step explicit integrators.

The step functions are written once and work both on CasADi expressions
(used to build the shooting constraints) and on NumPy arrays. The jitted
:func:`simulate` is an independent numerical rollout used to verify
solutions and to generate initial guesses.
"""
from typing import Callable

import numba as nb

from mshoot.base.vectypes import *

INTEGRATORS = ("rk4", "euler")
"""Names of the available integration schemes."""


def euler_step(f: Callable, x, u, t, h):
    """One explicit Euler step of ``x' = f(x, u, t)`` with step size ``h``."""
    return x + h * f(x, u, t)


def rk4_step(f: Callable, x, u, t, h):
    """One classical fourth-order Runge-Kutta step of ``x' = f(x, u, t)``
    with step size ``h``."""
    k1 = f(x, u, t)
    k2 = f(x + h / 2 * k1, u, t + h / 2)
    k3 = f(x + h / 2 * k2, u, t + h / 2)
    k4 = f(x + h * k3, u, t + h)
    return x + h / 6 * (k1 + 2 * k2 + 2 * k3 + k4)


def get_step(method: str) -> Callable:
    """Return the step function of the integration scheme named
    ``method``."""
    if method == "rk4":
        return rk4_step
    if method == "euler":
        return euler_step
    raise ValueError(f"integrator must be one of {INTEGRATORS}, got {method!r}")


def integrate(step: Callable, f: Callable, x, u, t, h, num_substep: int = 1):
    """Integrate over one interval of length ``h`` starting at time ``t``,
    holding the control ``u`` constant and taking ``num_substep`` steps."""
    h_ = h / num_substep
    for i in range(num_substep):
        x = step(f, x, u, t + i * h_, h_)
    return x


@nb.njit
def _eval(func, x, u, t):
    v = np.empty(len(x) + len(u) + 1, dtype=np.float64)
    v[: len(x)] = x
    v[len(x) : len(x) + len(u)] = u
    v[-1] = t
    return func(v)


@nb.njit
def _interval(func, x, u, t_0, t_1, num_substep, rk4):
    h = (t_1 - t_0) / num_substep
    x_ = x.copy()
    for i in range(num_substep):
        t_ = t_0 + i * h
        if rk4:
            k1 = _eval(func, x_, u, t_)
            k2 = _eval(func, x_ + h / 2 * k1, u, t_ + h / 2)
            k3 = _eval(func, x_ + h / 2 * k2, u, t_ + h / 2)
            k4 = _eval(func, x_ + h * k3, u, t_ + h)
            x_ = x_ + h / 6 * (k1 + 2 * k2 + 2 * k3 + k4)
        else:
            x_ = x_ + h * _eval(func, x_, u, t_)
    return x_


@nb.njit
def _simulate(func, x_0, u, t, num_substep, rk4):
    x = np.empty((len(t), len(x_0)), dtype=np.float64)
    x[0] = x_0
    for k in range(len(t) - 1):
        x[k + 1] = _interval(func, x[k], u[k], t[k], t[k + 1], num_substep, rk4)
    return x


@nb.njit
def _shoot(func, x, u, t, num_substep, rk4):
    x_end = np.empty_like(x)
    for k in range(len(x)):
        x_end[k] = _interval(func, x[k], u[k], t[k], t[k + 1], num_substep, rk4)
    return x_end


def simulate(
    func: Callable[[VecFloat], VecFloat],
    x_0: VecFloat,
    u: VecFloat,
    t: VecFloat,
    num_substep: int = 1,
    method: str = "rk4",
) -> VecFloat:
    """Simulate ``x' = f(x, u, t)`` with piecewise constant control.

    Args:
        func: Jitted dynamics taking the concatenation ``[x, u, t]``
            (see :attr:`mshoot.base.fastfunc.FastFunc.F`).
        x_0: Initial state.
        u: Control on each interval, shape ``(len(t) - 1, n_u)``.
        t: Time grid.
        num_substep: Number of integration steps per interval.
        method: ``"rk4"`` or ``"euler"``.

    Returns:
        States at the grid points, shape ``(len(t), n_x)``.
    """
    get_step(method)
    if num_substep < 1:
        raise ValueError("num_substep must be a positive integer")
    t = np.asarray(t, dtype=np.float64)
    u = np.asarray(u, dtype=np.float64)
    if u.ndim != 2 or len(u) != len(t) - 1:
        raise ValueError("u must have shape (len(t) - 1, n_u)")
    x_0 = np.asarray(x_0, dtype=np.float64)
    return _simulate(func, x_0, u, t, num_substep, method == "rk4")


def shoot(
    func: Callable[[VecFloat], VecFloat],
    x: VecFloat,
    u: VecFloat,
    t: VecFloat,
    num_substep: int = 1,
    method: str = "rk4",
) -> VecFloat:
    """Integrate every interval of the grid ``t`` independently, starting
    from its own initial state.

    Args:
        func: Jitted dynamics taking the concatenation ``[x, u, t]``.
        x: Initial state of each interval, shape ``(len(t) - 1, n_x)``.
        u: Control on each interval, shape ``(len(t) - 1, n_u)``.
        t: Time grid.
        num_substep: Number of integration steps per interval.
        method: ``"rk4"`` or ``"euler"``.

    Returns:
        End state of each interval, shape ``(len(t) - 1, n_x)``.
    """
    get_step(method)
    if num_substep < 1:
        raise ValueError("num_substep must be a positive integer")
    t = np.asarray(t, dtype=np.float64)
    x = np.ascontiguousarray(x, dtype=np.float64)
    u = np.ascontiguousarray(u, dtype=np.float64)
    if x.ndim != 2 or len(x) != len(t) - 1:
        raise ValueError("x must have shape (len(t) - 1, n_x)")
    if u.ndim != 2 or len(u) != len(t) - 1:
        raise ValueError("u must have shape (len(t) - 1, n_u)")
    return _shoot(func, x, u, t, num_substep, method == "rk4")

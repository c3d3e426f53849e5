# Copyright (c) 2024 Yilin Zou
"""Problems used in the blog post."""
import sympy as sp

from mshoot.problem import Problem


def van_der_pol(num_interval: int = 20, num_substep: int = 4) -> Problem:
    r"""The Van der Pol oscillator steered to rest.

    .. math::
        \min \int_0^{10} x_1^2 + x_2^2 + u^2 \, dt \quad \text{s.t.} \quad
        \dot{x}_1 = (1 - x_2^2) x_1 - x_2 + u, \quad \dot{x}_2 = x_1,

    with :math:`x(0) = (0, 1)`, :math:`-1 \le u \le 1` and :math:`x_1 \ge -0.25`.
    """
    p = Problem(["x1", "x2"], ["u"])
    x1, x2 = p.x
    (u,) = p.u
    p.set_dynamics([(1 - x2**2) * x1 - x2 + u, x1])
    p.set_cost(x1**2 + x2**2 + u**2)
    p.set_boundary_condition([0.0, 1.0], [None, None])
    p.set_state_bound([-0.25, None], [None, None])
    p.set_control_bound([-1.0], [1.0])
    p.set_discretization(10.0, num_interval, integrator="rk4", num_substep=num_substep)
    return p


def double_integrator(num_interval: int = 20, integrator: str = "rk4") -> Problem:
    r"""Rest-to-rest transfer of a unit mass with minimal control effort.

    .. math::
        \min \int_0^1 u^2 \, dt \quad \text{s.t.} \quad \dot{p} = v, \quad \dot{v} = u,

    from :math:`(p, v) = (0, 0)` to :math:`(1, 0)`. The continuous optimum is
    :math:`u(t) = 6 - 12 t` with cost :math:`12`.
    """
    p = Problem(["p", "v"], ["u"])
    pos, vel = p.x
    (u,) = p.u
    p.set_dynamics([vel, u])
    p.set_cost(u**2)
    p.set_boundary_condition([0.0, 0.0], [1.0, 0.0])
    p.set_discretization(1.0, num_interval, integrator=integrator)
    return p


def pendulum(num_interval: int = 40) -> Problem:
    r"""Swing-up of a damped pendulum with bounded torque.

    .. math::
        \min \int_0^5 u^2 \, dt \quad \text{s.t.} \quad
        \dot{\theta} = \omega, \quad \dot{\omega} = -\sin\theta - 0.1\,\omega + u,

    from hanging at rest to upright at rest, :math:`|u| \le 2` and
    :math:`|\omega| \le 3` imposed as a path constraint.
    """
    p = Problem(["theta", "omega"], ["u"])
    theta, omega = p.x
    (u,) = p.u
    p.set_dynamics([omega, -sp.sin(theta) - 0.1 * omega + u])
    p.set_cost(u**2)
    p.set_boundary_condition([0.0, 0.0], [sp.pi, 0.0])
    p.set_control_bound([-2.0], [2.0])
    p.set_path_constraint([omega**2], [0.0], [9.0])
    p.set_discretization(5.0, num_interval, integrator="rk4", num_substep=2)
    return p

# Copyright (c) 2024 Yilin Zou
"""Multiple shooting transcription of a :class:`mshoot.problem.Problem`.

The horizon is split into ``N`` intervals. Each interval ``k`` gets its own
initial state :math:`x_k` and constant control :math:`u_k`, and the
continuity of the trajectory is imposed by the gap-closing constraints

.. math::
    F(x_k, u_k, t_k) - x_{k+1} = 0, \\quad k = 0, \\dots, N - 1,

where :math:`F` integrates the dynamics over one interval. The decision
vector is interleaved as :math:`[x_0, u_0, x_1, u_1, \\dots, u_{N-1}, x_N]`,
which gives the Jacobian of the constraints its block-banded structure.
"""
import logging

import casadi as ca

from mshoot.base.casadify import to_casadi, to_casadi_vector
from mshoot.base.vectypes import *
from mshoot.integrator import get_step, integrate
from mshoot.problem import Problem

logger = logging.getLogger(__name__)


def _structure(expr: ca.SX) -> tuple[VecInt, VecInt]:
    row, col = expr.sparsity().get_triplet()
    return np.array(row, dtype=np.int32), np.array(col, dtype=np.int32)


class MultipleShooting:
    """The nonlinear program obtained by multiple shooting.

    Besides the CasADi expressions (:attr:`nlp`), the object implements the
    callback interface expected by ``cyipopt`` and used by the SciPy backend:
    :meth:`objective`, :meth:`gradient`, :meth:`constraints`,
    :meth:`jacobian`, :meth:`jacobianstructure`, :meth:`hessian` and
    :meth:`hessianstructure`. All derivatives are computed by CasADi.
    """

    def __init__(self, problem: Problem) -> None:
        """
        Args:
            problem: A fully configured ``Problem``.
        """
        if not problem.ok:
            raise ValueError("problem is not fully configured")
        self._problem = problem

        n_x, n_u, N = problem.n_x, problem.n_u, problem.N

        # per-interval building blocks
        x = ca.SX.sym("x", n_x)
        u = ca.SX.sym("u", n_u)
        t = ca.SX.sym("t")
        q = ca.SX.sym("q")
        replace = dict(zip(problem.x, ca.vertsplit(x)))
        replace.update(zip(problem.u, ca.vertsplit(u)))
        replace[problem.t] = t

        f = to_casadi_vector(problem.dynamics, replace)
        l = to_casadi(problem.running_cost, replace)
        self._dynamics = ca.Function("f", [x, u, t], [f], ["x", "u", "t"], ["xdot"])

        # running cost as an extra quadrature state, integrated with the state
        f_aug = ca.Function(
            "f_aug", [ca.vertcat(x, q), u, t], [ca.vertcat(f, l)]
        )
        h = problem.h
        x_aug = integrate(
            get_step(problem.integrator),
            lambda x_, u_, t_: f_aug(x_, u_, t_),
            ca.vertcat(x, 0),
            u,
            t,
            h,
            problem.num_substep,
        )
        self._shooting = ca.Function(
            "F",
            [x, u, t],
            [x_aug[:n_x], x_aug[n_x]],
            ["x0", "u", "t0"],
            ["xf", "qf"],
        )
        self._path_constraint = ca.Function(
            "c",
            [x, u, t],
            [to_casadi_vector(problem.path_constraint, replace)],
            ["x", "u", "t"],
            ["c"],
        )
        terminal_cost = ca.Function(
            "E", [x], [to_casadi(problem.terminal_cost, replace)], ["x"], ["E"]
        )

        # the discretized problem
        w = ca.SX.sym("w", problem.L)
        l_x = [int(i) for i in problem.index_x[:, 0]]
        X = [w[l : l + n_x] for l in l_x]
        if n_u:
            l_u = [int(i) for i in problem.index_u[:, 0]]
            U = [w[l : l + n_u] for l in l_u]
        else:
            U = [ca.SX(0, 1) for _ in range(N)]

        J = 0
        g = []
        for k in range(N):
            t_k = float(problem.t_x[k])
            x_f, q_f = self._shooting(X[k], U[k], t_k)
            J += q_f
            g.append(x_f - X[k + 1])
            g.append(self._path_constraint(X[k], U[k], t_k))
        J += terminal_cost(X[N])
        g = ca.vertcat(*g)

        self._w = w
        self._J = J
        self._g = g

        lam = ca.SX.sym("lam", problem.M)
        sigma = ca.SX.sym("sigma")
        grad = ca.gradient(J, w)
        jac = ca.jacobian(g, w)
        hess_o = ca.tril(ca.hessian(J, w)[0])
        hess_c = ca.tril(ca.hessian(ca.dot(lam, g), w)[0])
        hess = ca.tril(ca.hessian(sigma * J + ca.dot(lam, g), w)[0])

        self._func_objective = ca.Function("objective", [w], [J])
        self._func_gradient = ca.Function("gradient", [w], [grad])
        self._func_constraints = ca.Function("constraints", [w], [g])
        self._func_jacobian = ca.Function("jacobian", [w], [jac])
        self._func_hessian_o = ca.Function("hessian_o", [w], [hess_o])
        self._func_hessian_c = ca.Function("hessian_c", [w, lam], [hess_c])
        self._func_hessian = ca.Function("hessian", [w, lam, sigma], [hess])

        self._structure_jacobian = _structure(jac)
        self._structure_hessian_o = _structure(hess_o)
        self._structure_hessian_c = _structure(hess_c)
        self._structure_hessian = _structure(hess)

        logger.debug(
            "multiple shooting NLP: %d variables, %d constraints, %d Jacobian and %d Hessian nonzeros",
            self.L,
            self.M,
            len(self._structure_jacobian[0]),
            len(self._structure_hessian[0]),
        )

    def objective(self, x: VecFloat) -> float:
        """The objective function of the discretized optimization problem."""
        return float(self._func_objective(x))

    def gradient(self, x: VecFloat) -> VecFloat:
        """Gradient of the objective function of the discretized optimization
        problem."""
        return self._func_gradient(x).full().ravel()

    def constraints(self, x: VecFloat) -> VecFloat:
        """Constraint functions of the discretized optimization problem."""
        return self._func_constraints(x).full().ravel()

    def jacobianstructure(self) -> tuple[VecInt, VecInt]:
        """Coordinates of the Jacobian of the constraint functions of the
        discretized optimization problem."""
        return self._structure_jacobian

    def jacobian(self, x: VecFloat) -> VecFloat:
        """Jacobian of the constraint functions of the discretized optimization
        problem.

        Args:
            x: Vector of optimization variables.

        Returns:
            A plain 1D array, with coordinates given by :meth:`jacobianstructure`.
        """
        return np.array(self._func_jacobian(x).nonzeros(), dtype=np.float64)

    def hessianstructure_o(self) -> tuple[VecInt, VecInt]:
        """Coordinates of the Hessian of the objective function.

        Only includes entries in the lower triangle of the Hessian
        matrix.
        """
        return self._structure_hessian_o

    def hessian_o(self, x: VecFloat) -> VecFloat:
        """Hessian of the objective function, with coordinates given by
        :meth:`hessianstructure_o`."""
        return np.array(self._func_hessian_o(x).nonzeros(), dtype=np.float64)

    def hessianstructure_c(self) -> tuple[VecInt, VecInt]:
        """Coordinates of the Hessian of the constraint functions.

        Only includes entries in the lower triangle of the Hessian
        matrix.
        """
        return self._structure_hessian_c

    def hessian_c(self, x: VecFloat, fct_c: VecFloat) -> VecFloat:
        """Sum of Hessian of the constraint functions with factor ``fct_c``,
        with coordinates given by :meth:`hessianstructure_c`.

        Args:
            x: Vector of optimization variables.
            fct_c: Factors (Lagrange multipliers) for the constraints.
        """
        return np.array(self._func_hessian_c(x, fct_c).nonzeros(), dtype=np.float64)

    def hessianstructure(self) -> tuple[VecInt, VecInt]:
        """Coordinates of the Hessian of the Lagrangian of the discretized
        optimization problem.

        Only includes entries in the lower triangle of the Hessian
        matrix.
        """
        return self._structure_hessian

    def hessian(self, x: VecFloat, fct_c: VecFloat, fct_o: float) -> VecFloat:
        """Hessian of the Lagrangian of the discretized optimization problem
        with factors ``fct_c`` for constraints and ``fct_o`` for the objective.

        Args:
            x: Vector of optimization variables.
            fct_c: Factors (Lagrange multipliers) for the constraints.
            fct_o: Factor (Lagrange multiplier) for the objective.

        Returns:
            A plain 1D array, with coordinates given by :meth:`hessianstructure`.
        """
        return np.array(
            self._func_hessian(x, fct_c, fct_o).nonzeros(), dtype=np.float64
        )

    def gaps(self, x: VecFloat) -> VecFloat:
        """Gap-closing constraint values, shape ``(N, n_x)``."""
        p = self._problem
        return self.constraints(x).reshape(p.N, p.n_x + p.n_c)[:, : p.n_x]

    @property
    def problem(self) -> Problem:
        """The transcribed ``Problem``."""
        return self._problem

    @property
    def nlp(self) -> dict[str, ca.SX]:
        """The problem in the form expected by :func:`casadi.nlpsol`."""
        return {"x": self._w, "f": self._J, "g": self._g}

    @property
    def F(self) -> ca.Function:
        """Integrator over one shooting interval, ``(x0, u, t0) -> (xf, qf)``
        where ``qf`` is the integrated running cost."""
        return self._shooting

    @property
    def f(self) -> ca.Function:
        """Dynamics as a CasADi function, ``(x, u, t) -> xdot``."""
        return self._dynamics

    @property
    def L(self) -> int:
        """Number of optimization variables."""
        return self._problem.L

    @property
    def M(self) -> int:
        """Number of constraints."""
        return self._problem.M

    @property
    def v_lb(self) -> VecFloat:
        """Lower bounds of variables."""
        return self._problem.v_lb

    @property
    def v_ub(self) -> VecFloat:
        """Upper bounds of variables."""
        return self._problem.v_ub

    @property
    def c_lb(self) -> VecFloat:
        """Lower bounds of constraints."""
        return self._problem.c_lb

    @property
    def c_ub(self) -> VecFloat:
        """Upper bounds of constraints."""
        return self._problem.c_ub

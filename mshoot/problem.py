# Copyright (c) 2024 Yilin Zou
from collections import namedtuple
from enum import Enum
from typing import Optional, Self, TYPE_CHECKING

import sympy as sp

from mshoot.base.autoupdate import AutoUpdate
from mshoot.base.fastfunc import FastFunc
from mshoot.base.vectypes import *
from mshoot.integrator import INTEGRATORS, shoot, simulate

if TYPE_CHECKING:
    from mshoot.variable import Variable


class BcType(Enum):
    """Enum class to represent the type of boundary conditions."""

    FREE = 0
    """Free boundary condition."""
    FIXED = 1
    """Fixed boundary condition."""


class BcInfo(namedtuple("BcInfo", ["t", "v"])):
    """Named tuple to store boundary condition information."""

    t: BcType
    """Type of the boundary condition."""
    v: None | float
    """Value of the boundary condition."""


def _bound(value: Optional[float], default: float) -> float:
    return default if value is None else float(value)


class Problem:
    r"""A single-phase, fixed-horizon optimal control problem

    .. math::
        \min_{x(\cdot), u(\cdot)} \int_{t_0}^{t_f} L(x, u, t) \, dt + E(x(t_f))
        \quad \text{s.t.} \quad \dot{x} = f(x, u, t),

    with boundary conditions on the states, box bounds on states and
    controls, and path constraints. The problem is discretized by multiple
    shooting with piecewise constant controls on ``N`` intervals.

    Expressions are given in SymPy, built from the symbols :attr:`x`,
    :attr:`u` and :attr:`t`. Every setter returns the problem itself so
    calls can be chained.
    """

    def __init__(
        self,
        state: int | list[str],
        control: int | list[str],
        simplify: bool = False,
        fastmath: bool = False,
    ) -> None:
        r"""Initialize a problem with given states and controls.

        States and controls can be given as the number of variables or the list of variable names.
        If names are given, they are used as the names of the variables.
        Otherwise, the names are generated automatically as :math:`x_0, x_1, \dots, x_{n - 1}`
        and :math:`u_0, u_1, \dots, u_{m - 1}`.

        If ``simplify`` is ``True``, every symbolic expression will be simplified (by :func:`sympy.simplify`) before
        being compiled for simulation. This will slow down the speed of compilation.

        If ``fastmath`` is ``True``, the ``fastmath`` flag will be passed to the Numba JIT compiler.

        Args:
            state: Number of state variables or list of state variable names.
            control: Number of control variables or list of control variable names.
            simplify: Whether to use Sympy to simplify :class:`sympy.Expr` before compilation.
            fastmath: Whether to use Numba ``fastmath`` mode.
        """
        self._name_state = self._names(state, "x", "state")
        self._name_control = self._names(control, "u", "control")
        if not self._name_state:
            raise ValueError("at least one state variable is required")
        if len(set(self._name_state + self._name_control)) != len(
            self._name_state
        ) + len(self._name_control):
            raise ValueError("names of state and control variables must be unique")

        self._num_state = len(self._name_state)
        self._num_control = len(self._name_control)
        self._symbol_state = [sp.Symbol(name) for name in self._name_state]
        self._symbol_control = [sp.Symbol(name) for name in self._name_control]
        self._symbol_time = sp.Symbol("t")
        self._symbols = self._symbol_state + self._symbol_control + [self._symbol_time]

        self._compile_parameters = simplify, fastmath

        self._auto_update = AutoUpdate(
            [
                "dynamics",
                "boundary_condition",
                "bound",
                "path_constraint",
                "discretization",
            ],
            {
                "func_dynamics": self._update_func_dynamics,
                "time_grid": self._update_time_grid,
                "bound_variable": self._update_bound_variable,
                "bound_constraint": self._update_bound_constraint,
            },
        )
        self._auto_update.set_dependency("func_dynamics", ["dynamics"])
        self._auto_update.set_dependency("time_grid", ["discretization"])
        self._auto_update.set_dependency(
            "bound_variable", ["boundary_condition", "bound", "discretization"]
        )
        self._auto_update.set_dependency(
            "bound_constraint", ["path_constraint", "discretization"]
        )

        self._dynamics_set = False
        self._discretization_set = False

        n_x, n_u = self._num_state, self._num_control
        self._lower_bound_state = np.full(n_x, -np.inf)
        self._upper_bound_state = np.full(n_x, np.inf)
        self._lower_bound_control = np.full(n_u, -np.inf)
        self._upper_bound_control = np.full(n_u, np.inf)
        self._info_bc_0 = [BcInfo(BcType.FREE, None)] * n_x
        self._info_bc_f = [BcInfo(BcType.FREE, None)] * n_x

        self.set_cost(0, 0)  # no cost by default
        self.set_boundary_condition([None] * n_x, [None] * n_x)
        self.set_state_bound([None] * n_x, [None] * n_x)
        self.set_control_bound([None] * n_u, [None] * n_u)
        self.set_path_constraint([], [], [])

    @staticmethod
    def _names(variable: int | list[str], prefix: str, kind: str) -> list[str]:
        if isinstance(variable, int):
            if variable < 0:
                raise ValueError(f"number of {kind} variables must be non-negative")
            return [f"{prefix}_{i}" for i in range(variable)]
        elif isinstance(variable, list):
            if "t" in variable:
                raise ValueError(
                    f'Symbol "t" is reserved for time. Use a different name for {kind} variables'
                )
            return [str(v) for v in variable]
        raise ValueError(f"{kind} must be int or list of str")

    def _sympify(
        self, expr: float | sp.Expr, allowed: list[sp.Symbol], what: str
    ) -> sp.Expr:
        expr = sp.sympify(expr)
        unknown = expr.free_symbols - set(allowed)
        if unknown:
            raise ValueError(
                f"{what} depends on unknown symbols: {sorted(map(str, unknown))}"
            )
        return expr

    def set_dynamics(self, dynamics: list[float | sp.Expr]) -> Self:
        """Set the dynamics of the problem.

        Args:
            dynamics: List of time derivatives of states composed with x, u, and t.
        """
        dynamics = list(dynamics)
        if len(dynamics) != self.n_x:
            raise ValueError(
                "the number of dynamics must be equal to the number of state variables"
            )
        self._expr_dynamics = [
            self._sympify(d, self._symbols, "dynamics") for d in dynamics
        ]
        self._dynamics_set = True
        self._auto_update.update("dynamics")
        return self

    def set_cost(
        self, running: float | sp.Expr = 0, terminal: float | sp.Expr = 0
    ) -> Self:
        """Set the objective of the problem.

        Args:
            running: Running cost :math:`L(x, u, t)` integrated over the horizon.
            terminal: Terminal cost :math:`E(x)` evaluated at the final state.
        """
        self._expr_running_cost = self._sympify(running, self._symbols, "running cost")
        self._expr_terminal_cost = self._sympify(
            terminal, self._symbol_state, "terminal cost"
        )
        return self

    def set_boundary_condition(
        self,
        initial: list[None | float],
        final: list[None | float],
    ) -> Self:
        """Set the boundary conditions of the states.

        ``None`` leaves the corresponding state free, a number fixes it.

        Args:
            initial: Initial values of the states.
            final: Final values of the states.
        """
        initial = list(initial)
        final = list(final)
        if not len(initial) == len(final) == self.n_x:
            raise ValueError(
                "initial and final must have the same length as the number of state variables"
            )
        info_bc_0 = [
            BcInfo(BcType.FREE, None) if v is None else BcInfo(BcType.FIXED, float(v))
            for v in initial
        ]
        info_bc_f = [
            BcInfo(BcType.FREE, None) if v is None else BcInfo(BcType.FIXED, float(v))
            for v in final
        ]
        self._check_boundary_condition(
            info_bc_0, info_bc_f, self._lower_bound_state, self._upper_bound_state
        )
        self._info_bc_0 = info_bc_0
        self._info_bc_f = info_bc_f
        self._auto_update.update("boundary_condition")
        return self

    def _check_boundary_condition(self, info_bc_0, info_bc_f, lb, ub) -> None:
        for i in range(self.n_x):
            for info in info_bc_0[i], info_bc_f[i]:
                if info.t == BcType.FIXED and not lb[i] <= info.v <= ub[i]:
                    raise ValueError(
                        f"boundary value {info.v} of {self._name_state[i]} is outside of its bounds"
                    )

    @staticmethod
    def _bounds(
        lower_bound: list[None | float], upper_bound: list[None | float], n: int, kind: str
    ) -> tuple[VecFloat, VecFloat]:
        lower_bound = list(lower_bound)
        upper_bound = list(upper_bound)
        if not len(lower_bound) == len(upper_bound) == n:
            raise ValueError(
                f"lower_bound and upper_bound must have the same length as the number of {kind} variables"
            )
        lb = np.array([_bound(v, -np.inf) for v in lower_bound], dtype=np.float64)
        ub = np.array([_bound(v, np.inf) for v in upper_bound], dtype=np.float64)
        if np.any(lb > ub):
            raise ValueError("lower_bound must be less than or equal to upper_bound")
        return lb, ub

    def set_state_bound(
        self, lower_bound: list[None | float], upper_bound: list[None | float]
    ) -> Self:
        """Set box bounds of the states, enforced at every shooting node.

        ``None`` means unbounded.

        Args:
            lower_bound: Lower bounds of the states.
            upper_bound: Upper bounds of the states.
        """
        lb, ub = self._bounds(lower_bound, upper_bound, self.n_x, "state")
        self._check_boundary_condition(self._info_bc_0, self._info_bc_f, lb, ub)
        self._lower_bound_state = lb
        self._upper_bound_state = ub
        self._auto_update.update("bound")
        return self

    def set_control_bound(
        self, lower_bound: list[None | float], upper_bound: list[None | float]
    ) -> Self:
        """Set box bounds of the controls, enforced on every interval.

        ``None`` means unbounded.

        Args:
            lower_bound: Lower bounds of the controls.
            upper_bound: Upper bounds of the controls.
        """
        lb, ub = self._bounds(lower_bound, upper_bound, self.n_u, "control")
        self._lower_bound_control = lb
        self._upper_bound_control = ub
        self._auto_update.update("bound")
        return self

    def set_path_constraint(
        self,
        path_constraint: list[float | sp.Expr],
        lower_bound: list[float],
        upper_bound: list[float],
    ) -> Self:
        """Set path constraints, enforced at the start of every shooting
        interval.

        For equality constraints, set the corresponding entry of ``lower_bound`` and ``upper_bound`` to the same value.
        For one-sided inequality constraints, set the corresponding entry of ``lower_bound`` or ``upper_bound``
        to ``-inf`` or ``inf``.

        Args:
            path_constraint: List of path constraints composed with x, u, and t.
            lower_bound: List of lower bounds of path constraints.
            upper_bound: List of upper bounds of path constraints.
        """
        path_constraint = list(path_constraint)
        lower_bound = list(lower_bound)
        upper_bound = list(upper_bound)
        if not len(path_constraint) == len(lower_bound) == len(upper_bound):
            raise ValueError(
                "path_constraint, lower_bound and upper_bound must have the same length"
            )
        lb = np.array(lower_bound, dtype=np.float64)
        ub = np.array(upper_bound, dtype=np.float64)
        if np.any(lb > ub):
            raise ValueError("lower_bound must be less than or equal to upper_bound")

        self._expr_path_constraint = [
            self._sympify(c, self._symbols, "path constraint") for c in path_constraint
        ]
        self._lower_bound_path_constraint = lb
        self._upper_bound_path_constraint = ub
        self._auto_update.update("path_constraint")
        return self

    def set_discretization(
        self,
        t_f: float,
        num_interval: int,
        t_0: float = 0.0,
        integrator: str = "rk4",
        num_substep: int = 1,
    ) -> Self:
        """Set the horizon and the multiple shooting grid.

        The horizon :math:`[t_0, t_f]` is split into ``num_interval`` intervals of equal length.
        On each interval the control is constant and the dynamics are integrated by ``integrator``
        with ``num_substep`` fixed steps.

        Args:
            t_f: Final time.
            num_interval: Number of shooting intervals.
            t_0: Initial time.
            integrator: ``"rk4"`` or ``"euler"``.
            num_substep: Number of integration steps per shooting interval.
        """
        t_0 = float(t_0)
        t_f = float(t_f)
        if not t_f > t_0:
            raise ValueError("t_f must be greater than t_0")
        if int(num_interval) != num_interval or num_interval < 1:
            raise ValueError("num_interval must be a positive integer")
        if int(num_substep) != num_substep or num_substep < 1:
            raise ValueError("num_substep must be a positive integer")
        if integrator not in INTEGRATORS:
            raise ValueError(
                f"integrator must be one of {INTEGRATORS}, got {integrator!r}"
            )
        self._t_0 = t_0
        self._t_f = t_f
        self._num_interval = int(num_interval)
        self._integrator = integrator
        self._num_substep = int(num_substep)
        self._discretization_set = True
        self._auto_update.update("discretization")
        return self

    def _update_func_dynamics(self) -> None:
        self._func_dynamics = FastFunc(
            self._expr_dynamics, self._symbols, *self._compile_parameters
        )

    def _update_time_grid(self) -> None:
        self._t_x = np.linspace(self._t_0, self._t_f, self._num_interval + 1)
        n_w = self.n_x + self.n_u
        self._index_state = (
            np.arange(self.N + 1, dtype=np.int32)[:, None] * n_w
            + np.arange(self.n_x, dtype=np.int32)[None, :]
        )
        self._index_control = (
            np.arange(self.N, dtype=np.int32)[:, None] * n_w
            + self.n_x
            + np.arange(self.n_u, dtype=np.int32)[None, :]
        )

    def _update_bound_variable(self) -> None:
        v_lb = np.empty(self.L, dtype=np.float64)
        v_ub = np.empty(self.L, dtype=np.float64)
        v_lb[self._index_state] = self._lower_bound_state
        v_ub[self._index_state] = self._upper_bound_state
        v_lb[self._index_control] = self._lower_bound_control
        v_ub[self._index_control] = self._upper_bound_control
        for i in range(self.n_x):
            if self._info_bc_0[i].t == BcType.FIXED:
                v_lb[self._index_state[0, i]] = self._info_bc_0[i].v
                v_ub[self._index_state[0, i]] = self._info_bc_0[i].v
            if self._info_bc_f[i].t == BcType.FIXED:
                v_lb[self._index_state[-1, i]] = self._info_bc_f[i].v
                v_ub[self._index_state[-1, i]] = self._info_bc_f[i].v
        self._lower_bound_variable = v_lb
        self._upper_bound_variable = v_ub

    def _update_bound_constraint(self) -> None:
        # gaps first, then path constraints, interval by interval
        lb = np.concatenate([np.zeros(self.n_x), self._lower_bound_path_constraint])
        ub = np.concatenate([np.zeros(self.n_x), self._upper_bound_path_constraint])
        self._lower_bound_constraint = np.tile(lb, self.N)
        self._upper_bound_constraint = np.tile(ub, self.N)

    def _guard_variable(self, v: "Variable") -> None:
        if not self.ok:
            raise ValueError("problem is not fully configured")
        if len(v.data) != self.L:
            raise ValueError("variable does not match the discretization of the problem")

    def error(self, v: "Variable", refine: int = 10) -> VecFloat:
        """Difference between the start state of each interval and the end
        state of the previous interval re-integrated with a ``refine`` times
        finer integration step.

        With ``refine=1`` this is the gap of the discretized problem itself;
        with ``refine > 1`` it also contains the integration error.

        Args:
            v: The variable to be checked.
            refine: Refinement factor of the integration step.

        Returns:
            Array of shape ``(N, n_x)``.
        """
        self._guard_variable(v)
        if refine < 1:
            raise ValueError("refine must be a positive integer")
        x = v.data[self._index_state]
        u = v.data[self._index_control]
        x_end = shoot(
            self._func_dynamics.F,
            x[:-1],
            u,
            self._t_x,
            self._num_substep * int(refine),
            self._integrator,
        )
        return x_end - x[1:]

    def check(
        self,
        v: "Variable",
        absolute_tolerance: float = 1.0e-6,
        relative_tolerance: float = 1.0e-6,
        refine: int = 10,
    ) -> bool:
        """Check that re-integrating every shooting interval with a finer
        step lands on the next shooting node.

        Args:
            v: The variable to be checked.
            absolute_tolerance: Absolute tolerance of the error.
            relative_tolerance: Relative tolerance of the error.
            refine: Refinement factor of the integration step.

        Returns:
            ``True`` if the error is within the tolerance, ``False`` otherwise.
        """
        error = self.error(v, refine)
        scale = np.abs(v.data[self._index_state[1:]])
        return bool(np.all(np.abs(error) <= absolute_tolerance + relative_tolerance * scale))

    def simulate(self, v: "Variable", refine: int = 10) -> tuple[VecFloat, VecFloat]:
        """Simulate the controls of ``v`` from its initial state on a grid
        ``refine`` times finer than the shooting grid.

        Typically used for plotting.

        Args:
            v: Variable providing the initial state and the controls.
            refine: Number of output points per shooting interval.

        Returns:
            Time points of shape ``(N * refine + 1,)`` and states of shape ``(N * refine + 1, n_x)``.

        Examples:
            >>> t, x = problem.simulate(v)
            >>> plt.plot(t, x[:, 0])
        """
        self._guard_variable(v)
        if refine < 1:
            raise ValueError("refine must be a positive integer")
        refine = int(refine)
        t = np.linspace(self._t_0, self._t_f, self.N * refine + 1)
        u = np.repeat(v.data[self._index_control], refine, axis=0)
        x = simulate(
            self._func_dynamics.F,
            v.data[self._index_state[0]],
            u,
            t,
            self._num_substep,
            self._integrator,
        )
        return t, x

    @property
    def n_x(self) -> int:
        """Number of state variables."""
        return self._num_state

    @property
    def n_u(self) -> int:
        """Number of control variables."""
        return self._num_control

    @property
    def n_c(self) -> int:
        """Number of path constraints."""
        return len(self._expr_path_constraint)

    @property
    def x(self) -> list[sp.Symbol]:
        """:class:`sympy.Symbol` s of state variables."""
        return self._symbol_state

    @property
    def u(self) -> list[sp.Symbol]:
        """:class:`sympy.Symbol` s of control variables."""
        return self._symbol_control

    @property
    def t(self) -> sp.Symbol:
        """:class:`sympy.Symbol` of time."""
        return self._symbol_time

    @property
    def name_x(self) -> list[str]:
        """Names of state variables."""
        return self._name_state

    @property
    def name_u(self) -> list[str]:
        """Names of control variables."""
        return self._name_control

    @property
    def F_d(self) -> FastFunc:
        """:class:`mshoot.base.fastfunc.FastFunc` of the dynamics."""
        return self._func_dynamics

    @property
    def dynamics(self) -> list[sp.Expr]:
        """Dynamics expressions."""
        return self._expr_dynamics

    @property
    def running_cost(self) -> sp.Expr:
        """Running cost expression."""
        return self._expr_running_cost

    @property
    def terminal_cost(self) -> sp.Expr:
        """Terminal cost expression."""
        return self._expr_terminal_cost

    @property
    def path_constraint(self) -> list[sp.Expr]:
        """Path constraint expressions."""
        return self._expr_path_constraint

    @property
    def info_bc_0(self) -> list[BcInfo]:
        """Initial boundary conditions of the states."""
        return self._info_bc_0

    @property
    def info_bc_f(self) -> list[BcInfo]:
        """Final boundary conditions of the states."""
        return self._info_bc_f

    @property
    def x_lb(self) -> VecFloat:
        """Lower bounds of states."""
        return self._lower_bound_state

    @property
    def x_ub(self) -> VecFloat:
        """Upper bounds of states."""
        return self._upper_bound_state

    @property
    def u_lb(self) -> VecFloat:
        """Lower bounds of controls."""
        return self._lower_bound_control

    @property
    def u_ub(self) -> VecFloat:
        """Upper bounds of controls."""
        return self._upper_bound_control

    @property
    def t_0(self) -> float:
        """Initial time."""
        return self._t_0

    @property
    def t_f(self) -> float:
        """Final time."""
        return self._t_f

    @property
    def N(self) -> int:
        """Number of shooting intervals."""
        return self._num_interval

    @property
    def h(self) -> float:
        """Length of a shooting interval."""
        return (self._t_f - self._t_0) / self._num_interval

    @property
    def integrator(self) -> str:
        """Name of the integration scheme."""
        return self._integrator

    @property
    def num_substep(self) -> int:
        """Number of integration steps per shooting interval."""
        return self._num_substep

    @property
    def t_x(self) -> VecFloat:
        """Times of the shooting nodes, ``N + 1`` points."""
        return self._t_x

    @property
    def t_u(self) -> VecFloat:
        """Start times of the shooting intervals, ``N`` points."""
        return self._t_x[:-1]

    @property
    def index_x(self) -> VecInt:
        """Positions of the states in the decision vector, shape ``(N + 1, n_x)``."""
        return self._index_state

    @property
    def index_u(self) -> VecInt:
        """Positions of the controls in the decision vector, shape ``(N, n_u)``."""
        return self._index_control

    @property
    def L(self) -> int:
        """Number of optimization variables of the discretized optimization
        problem."""
        return (self.N + 1) * self.n_x + self.N * self.n_u

    @property
    def M(self) -> int:
        """Number of constraints of the discretized optimization problem."""
        return self.N * (self.n_x + self.n_c)

    @property
    def v_lb(self) -> VecFloat:
        """Lower bounds of variables."""
        return self._lower_bound_variable

    @property
    def v_ub(self) -> VecFloat:
        """Upper bounds of variables."""
        return self._upper_bound_variable

    @property
    def c_lb(self) -> VecFloat:
        """Lower bounds of constraints."""
        return self._lower_bound_constraint

    @property
    def c_ub(self) -> VecFloat:
        """Upper bounds of constraints."""
        return self._upper_bound_constraint

    @property
    def c_lb_path(self) -> VecFloat:
        """Lower bounds of path constraints."""
        return self._lower_bound_path_constraint

    @property
    def c_ub_path(self) -> VecFloat:
        """Upper bounds of path constraints."""
        return self._upper_bound_path_constraint

    @property
    def ok(self) -> bool:
        """Whether the problem is fully configured."""
        return self._dynamics_set and self._discretization_set

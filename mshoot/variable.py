# Copyright (c) 2024 Yilin Zou
from typing import Self

from mshoot.base.vectypes import *
from mshoot.integrator import simulate
from mshoot.problem import Problem, BcType


class StrideIndexArray:
    """Utility class for firstly indexing a trajectory and then further
    indexing the value at each node.

    Trajectories are stored interleaved in the decision vector, so the
    ``i``-th trajectory is ``count`` values ``stride`` apart starting at
    ``offset + i``. Indexing returns a writable view.
    """

    def __init__(
        self, data: VecFloat, offset: int, n: int, stride: int, count: int
    ) -> None:
        """
        Args:
            data: The underlying data array.
            offset: Position of the first value of the first trajectory.
            n: Number of trajectories.
            stride: Distance between consecutive values of a trajectory.
            count: Number of values of each trajectory.
        """
        self._data = data
        self._offset = offset
        self._n = n
        self._stride = stride
        self._count = count

    def _view(self, i: int) -> VecFloat:
        if not -self._n <= i < self._n:
            raise IndexError("trajectory index out of range")
        i %= self._n
        start = self._offset + i
        stop = start + self._stride * (self._count - 1) + 1
        return self._data[start : stop : self._stride]

    def __getitem__(self, i: int) -> VecFloat:
        return self._view(i)

    def __setitem__(self, i: int, value: VecFloat) -> None:
        self._view(i)[:] = value

    def __len__(self) -> int:
        return self._n


class Variable:
    """Optimization variable of a multiple shooting discretized problem.

    ``Variable`` objects provide two kinds of interfaces:
    - Plain 1D array (:attr:`data`) for passing to the solver;
    - Trajectory views (:attr:`x` and :attr:`u`) for users to set and extract corresponding values.

    Generally, users need not create ``Variable`` objects directly.
    A better way is to use the :func:`constant_guess`, :func:`linear_guess`
    and :func:`simulate_guess` functions to generate a starting point and possibly adjust it manually.
    """

    def __init__(self, problem: Problem, data: VecFloat) -> None:
        """
        Args:
            problem: The ``Problem`` object to create the ``Variable`` for.
            data: The underlying data array.
        """
        if not problem.ok:
            raise ValueError("problem is not fully configured")
        data = np.asarray(data, dtype=np.float64)
        if data.shape != (problem.L,):
            raise ValueError(
                f"data must be a 1D array of length {problem.L}, got shape {data.shape}"
            )
        self._problem = problem
        self._data = data
        n_w = problem.n_x + problem.n_u
        self._array_state = StrideIndexArray(
            data, 0, problem.n_x, n_w, problem.N + 1
        )
        self._array_control = StrideIndexArray(
            data, problem.n_x, problem.n_u, n_w, problem.N
        )

    @property
    def x(self) -> StrideIndexArray:
        """The state trajectories (values at the ``N + 1`` shooting nodes)
        that could be further indexed."""
        return self._array_state

    @property
    def u(self) -> StrideIndexArray:
        """The control trajectories (values on the ``N`` intervals) that
        could be further indexed."""
        return self._array_control

    @property
    def X(self) -> VecFloat:
        """Copy of the states as a matrix of shape ``(N + 1, n_x)``."""
        return self._data[self._problem.index_x]

    @property
    def U(self) -> VecFloat:
        """Copy of the controls as a matrix of shape ``(N, n_u)``."""
        return self._data[self._problem.index_u]

    @property
    def data(self) -> VecFloat:
        """The underlying data array.

        Typically used to pass to the solver.
        """
        return self._data

    @property
    def problem(self) -> Problem:
        """The ``Problem`` the variable belongs to."""
        return self._problem

    @property
    def t_x(self) -> VecFloat:
        """Times of the state values."""
        return self._problem.t_x

    @property
    def t_u(self) -> VecFloat:
        """Start times of the control intervals."""
        return self._problem.t_u

    def copy(self) -> Self:
        """Return a ``Variable`` with a copy of the underlying data."""
        return type(self)(self._problem, self._data.copy())


def constant_guess(problem: Problem, value: float = 0.0) -> Variable:
    """Return a ``Variable`` with constant guesses for a ``Problem``.

    Fixed boundary conditions are set to the corresponding values, while the other variables are set to ``value``.

    Args:
        problem: The ``Problem`` to guess for.
        value: The constant value to guess.

    Returns:
        A ``Variable`` with constant guesses for the given ``Problem``.
    """
    if not problem.ok:
        raise ValueError("problem is not fully configured")
    v = Variable(problem, np.full(problem.L, float(value), dtype=np.float64))
    for i in range(problem.n_x):
        if problem.info_bc_0[i].t == BcType.FIXED:
            v.x[i][0] = problem.info_bc_0[i].v
        if problem.info_bc_f[i].t == BcType.FIXED:
            v.x[i][-1] = problem.info_bc_f[i].v
    return v


def linear_guess(problem: Problem, default: float = 0.0) -> Variable:
    """Return a ``Variable`` with linear guesses for a ``Problem``.

    Fixed boundary conditions are set to the corresponding values; all other boundary conditions are assumed to be ``default``.
    Then, linear interpolation in time is used to set the states in the middle. Controls are set to ``default``.

    Args:
        problem: The ``Problem`` to guess for.
        default: The default value to guess.

    Returns:
        A ``Variable`` with linear guesses for the given ``Problem``.
    """
    if not problem.ok:
        raise ValueError("problem is not fully configured")
    default = float(default)
    v = Variable(problem, np.full(problem.L, default, dtype=np.float64))
    s = (problem.t_x - problem.t_0) / (problem.t_f - problem.t_0)
    for i in range(problem.n_x):
        bc_0 = problem.info_bc_0[i]
        bc_f = problem.info_bc_f[i]
        x_0 = bc_0.v if bc_0.t == BcType.FIXED else default
        x_f = bc_f.v if bc_f.t == BcType.FIXED else default
        if bc_0.t == BcType.FREE and bc_f.t == BcType.FIXED:
            x_0 = x_f
        elif bc_0.t == BcType.FIXED and bc_f.t == BcType.FREE:
            x_f = x_0
        v.x[i] = x_0 + s * (x_f - x_0)
    return v


def simulate_guess(problem: Problem, control: float | VecFloat = 0.0) -> Variable:
    """Return a ``Variable`` obtained by single shooting.

    The controls are set to ``control`` (a constant, or an array of shape ``(N, n_u)``)
    and the states are obtained by integrating the dynamics from the fixed initial state
    with the integrator of the problem. This starting point has no gaps, but final
    boundary conditions are generally violated.

    Args:
        problem: The ``Problem`` to guess for. Every initial state must be fixed.
        control: The controls to simulate.

    Returns:
        A ``Variable`` with simulated states for the given ``Problem``.
    """
    if not problem.ok:
        raise ValueError("problem is not fully configured")
    if any(bc.t != BcType.FIXED for bc in problem.info_bc_0):
        raise ValueError("simulate_guess requires every initial state to be fixed")
    u = np.broadcast_to(
        np.asarray(control, dtype=np.float64), (problem.N, problem.n_u)
    ).copy()
    x_0 = np.array([bc.v for bc in problem.info_bc_0], dtype=np.float64)
    x = simulate(
        problem.F_d.F, x_0, u, problem.t_x, problem.num_substep, problem.integrator
    )
    data = np.empty(problem.L, dtype=np.float64)
    data[problem.index_x] = x
    data[problem.index_u] = u
    return Variable(problem, data)

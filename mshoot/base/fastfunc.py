# Copyright (c) 2024 Yilin Zou
from typing import Callable, Iterable

import numba as nb
import sympy as sp
from sympy.printing.numpy import NumPyPrinter

from .vectypes import *


class _NumbaPrinter(NumPyPrinter):
    """NumPy printer that writes ``Min`` and ``Max`` as nested binary
    ``numpy.fmin`` / ``numpy.fmax`` calls, which Numba compiles on scalars."""

    def _print_nested(self, name: str, args) -> str:
        f = self._module_format(f"{self._module}.{name}")
        code = self._print(args[0])
        for a in args[1:]:
            code = f"{f}({code}, {self._print(a)})"
        return code

    def _print_Min(self, expr) -> str:
        return self._print_nested("fmin", expr.args)

    def _print_Max(self, expr) -> str:
        return self._print_nested("fmax", expr.args)


def _compile_scalar(
    expr: sp.Expr, symbols: list[sp.Symbol], fastmath: bool
) -> Callable[[VecFloat], float]:
    # the i-th symbol is read from v[i] of the argument vector
    v = sp.IndexedBase("v")
    replace = {s: v[i] for i, s in enumerate(symbols)}
    f = sp.lambdify(
        [sp.Symbol("v")], expr.xreplace(replace), "numpy", printer=_NumbaPrinter()
    )
    return nb.njit(fastmath=fastmath)(f)


def _append(
    F: Callable[[VecFloat, VecFloat], None], f: Callable[[VecFloat], float], i: int
) -> Callable[[VecFloat, VecFloat], None]:
    @nb.njit
    def F_(v: VecFloat, out: VecFloat) -> None:
        F(v, out)
        out[i] = f(v)

    return F_


@nb.njit
def _fill_nothing(v: VecFloat, out: VecFloat) -> None:
    pass


class FastFunc:
    """A vector of SymPy expressions compiled to a Numba function.

    Every expression is turned into a scalar function by
    :func:`sympy.lambdify` and jitted; the scalar functions are then chained
    into one jitted function. The compiled function takes a single float64
    array holding the values of ``symbols`` (in order) and returns a float64
    array with one entry per expression.
    """

    def __init__(
        self,
        expr: Iterable[float | sp.Expr],
        symbols: list[sp.Symbol],
        simplify: bool = False,
        fastmath: bool = False,
    ) -> None:
        """
        Args:
            expr: Expressions to compile.
            symbols: Symbols the expressions depend on, in argument order.
            simplify: Whether to use :func:`sympy.simplify` before compilation.
            fastmath: Whether to use Numba ``fastmath`` mode.
        """
        self._expr = [sp.sympify(e) for e in expr]
        if simplify:
            self._expr = [sp.simplify(e) for e in self._expr]
        self._symbols = list(symbols)

        free = set().union(*(e.free_symbols for e in self._expr))
        unknown = free - set(self._symbols)
        if unknown:
            raise ValueError(
                f"expression depends on undeclared symbols: {sorted(map(str, unknown))}"
            )

        self._f = [_compile_scalar(e, self._symbols, fastmath) for e in self._expr]
        fill = _fill_nothing
        for i, f in enumerate(self._f):
            fill = _append(fill, f, i)
        n = len(self._expr)

        @nb.njit
        def F(v: VecFloat) -> VecFloat:
            out = np.empty(n, dtype=np.float64)
            fill(v, out)
            return out

        self._F = F

    def __call__(self, v: VecFloat) -> VecFloat:
        return self._F(np.asarray(v, dtype=np.float64))

    @property
    def F(self) -> Callable[[VecFloat], VecFloat]:
        """The compiled Numba function, suitable to be passed to other
        jitted functions."""
        return self._F

    @property
    def f(self) -> list[Callable[[VecFloat], float]]:
        """Jitted scalar function of each expression."""
        return self._f

    @property
    def n(self) -> int:
        """Number of expressions."""
        return len(self._expr)

    @property
    def expr(self) -> list[sp.Expr]:
        """The compiled expressions."""
        return self._expr

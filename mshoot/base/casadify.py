# Copyright (c) 2024 Yilin Zou
"""Conversion of SymPy expressions to CasADi symbolic expressions.

SymPy is the modelling language of ``mshoot``; CasADi is used to transcribe
the problem into a nonlinear program and to differentiate it. The
conversion walks the SymPy expression tree and rebuilds it with CasADi
operations, so every derivative is taken by CasADi on the transcribed
problem.
"""
import functools
import operator
from typing import Iterable

import casadi as ca
import sympy as sp

_FUNCTION = {
    sp.sin: ca.sin,
    sp.cos: ca.cos,
    sp.tan: ca.tan,
    sp.asin: ca.asin,
    sp.acos: ca.acos,
    sp.atan: ca.atan,
    sp.sinh: ca.sinh,
    sp.cosh: ca.cosh,
    sp.tanh: ca.tanh,
    sp.exp: ca.exp,
    sp.log: ca.log,
    sp.Abs: ca.fabs,
    sp.sign: ca.sign,
    sp.floor: ca.floor,
    sp.ceiling: ca.ceil,
}

_BINARY = {
    sp.atan2: ca.atan2,
}

_REDUCE = {
    sp.Add: operator.add,
    sp.Mul: operator.mul,
    sp.Min: ca.fmin,
    sp.Max: ca.fmax,
}


def to_casadi(expr: float | sp.Expr, replace: dict[sp.Symbol, ca.SX]) -> ca.SX:
    """Convert a SymPy expression to a CasADi expression.

    Args:
        expr: The expression to convert.
        replace: CasADi value for each SymPy symbol appearing in ``expr``.

    Returns:
        The converted expression as a scalar :class:`casadi.SX`.

    Raises:
        ValueError: If ``expr`` contains a symbol missing from ``replace``.
        NotImplementedError: If ``expr`` contains an unsupported operation.
    """
    return ca.SX(_convert(sp.sympify(expr), replace))


def to_casadi_vector(
    expr: Iterable[float | sp.Expr], replace: dict[sp.Symbol, ca.SX]
) -> ca.SX:
    """Convert a list of SymPy expressions to a CasADi column vector."""
    expr = [to_casadi(e, replace) for e in expr]
    if not expr:
        return ca.SX(0, 1)
    return ca.vertcat(*expr)


def _convert(expr: sp.Basic, replace: dict[sp.Symbol, ca.SX]):
    if expr.is_Symbol:
        if expr not in replace:
            raise ValueError(f"undeclared symbol {expr}")
        return replace[expr]
    if expr.is_Number or expr.is_NumberSymbol:
        if not expr.is_real:
            raise NotImplementedError(f"complex constant {expr} is not supported")
        return float(expr)

    args = [_convert(a, replace) for a in expr.args]
    if isinstance(expr, sp.Pow):
        base, exponent = args
        if expr.exp == sp.Rational(1, 2):
            return ca.sqrt(base)
        return base**exponent
    for cls, f in _REDUCE.items():
        if isinstance(expr, cls):
            return functools.reduce(f, args)
    for cls, f in _FUNCTION.items():
        if isinstance(expr, cls):
            return f(*args)
    for cls, f in _BINARY.items():
        if isinstance(expr, cls):
            return f(*args)
    raise NotImplementedError(
        f"{type(expr).__name__} cannot be converted to a CasADi expression"
    )

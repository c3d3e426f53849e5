# Copyright (c) 2024 Yilin Zou
import casadi as ca
import numpy as np
import pytest
import sympy as sp

from mshoot.base.casadify import to_casadi
from mshoot.base.fastfunc import FastFunc


def test_constant_function():
    ff = FastFunc([1, 2.5], [])
    assert np.allclose(ff(np.zeros(0)), [1.0, 2.5])

    x = sp.symbols("x")
    ff = FastFunc([sp.Rational(1, 2)], [x])
    assert np.allclose(ff(np.array([3.0])), [0.5])


def test_empty_function():
    x = sp.symbols("x")
    ff = FastFunc([], [x])
    assert ff.n == 0
    assert ff(np.array([1.0])).shape == (0,)


def test_value():
    x, y, t = sp.symbols("x, y, t")
    ff = FastFunc([x + y**2, sp.sin(x) * sp.exp(-t), sp.sqrt(y) / (1 + x**2)], [x, y, t])
    v = np.array([0.5, 2.0, 0.3])
    expected = [
        0.5 + 4.0,
        np.sin(0.5) * np.exp(-0.3),
        np.sqrt(2.0) / 1.25,
    ]
    assert np.allclose(ff(v), expected)
    assert np.allclose(ff.F(v), expected)


def test_symbol_order():
    x, y = sp.symbols("x, y")
    ff = FastFunc([x - y], [y, x])
    assert np.allclose(ff(np.array([1.0, 3.0])), [2.0])


def test_undeclared_symbol():
    x, y = sp.symbols("x, y")
    with pytest.raises(ValueError):
        FastFunc([x + y], [x])


def test_configs():
    x, y = sp.symbols("x, y")
    FastFunc([x + y**2], [x, y], fastmath=True)
    ff = FastFunc([(x**2 - 1) / (x - 1)], [x, y], simplify=True)
    assert ff.expr == [x + 1]


class TestSupportedFunctions:
    x, y = sp.symbols("x, y")
    value = np.array([0.7, 1.3])

    @pytest.mark.parametrize(
        "expr",
        [
            x + 2 * y - 3,
            x * y**3 / (1 + x),
            sp.sqrt(x) + x ** sp.Rational(3, 2),
            sp.sin(x) * sp.cos(y) + sp.tan(x),
            sp.exp(-x) + sp.log(y),
            sp.asin(x) + sp.acos(x) + sp.atan(y),
            sp.sinh(x) + sp.cosh(y) + sp.tanh(x),
            sp.atan2(y, x),
            sp.Abs(x - 3) + sp.sign(x - 3),
            sp.Min(x, y) + sp.Max(x, y),
            sp.Max(x, 0) - sp.Min(y, 1, x / 2),
            sp.floor(y) + sp.ceiling(x),
            sp.pi * x + sp.E,
        ],
    )
    def test_agrees_with_casadi(self, expr):
        X = ca.SX.sym("X")
        Y = ca.SX.sym("Y")
        f = ca.Function("f", [X, Y], [to_casadi(expr, {self.x: X, self.y: Y})])
        expected = float(f(*self.value))
        ff = FastFunc([expr], [self.x, self.y])
        assert np.isclose(ff(self.value)[0], expected)
        assert np.isclose(
            ff.f[0](self.value),
            float(sp.sympify(expr).subs({self.x: 0.7, self.y: 1.3}).evalf()),
        )

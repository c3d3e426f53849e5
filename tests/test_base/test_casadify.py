# Copyright (c) 2024 Yilin Zou
import casadi as ca
import numpy as np
import pytest
import sympy as sp

from mshoot.base.casadify import to_casadi, to_casadi_vector


class TestCasadify:
    x, y = sp.symbols("x, y")
    X = ca.SX.sym("X")
    Y = ca.SX.sym("Y")
    replace = {x: X, y: Y}
    value = {x: 0.7, y: 1.3}

    def evaluate(self, expr):
        e = to_casadi(expr, self.replace)
        f = ca.Function("f", [self.X, self.Y], [e])
        return float(f(self.value[self.x], self.value[self.y]))

    def expected(self, expr):
        return float(sp.sympify(expr).subs(self.value).evalf())

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
            sp.floor(y) + sp.ceiling(x),
            sp.pi * x + sp.E,
        ],
    )
    def test_value(self, expr):
        assert np.isclose(self.evaluate(expr), self.expected(expr))

    def test_constant(self):
        assert np.isclose(self.evaluate(sp.Integer(4)), 4.0)
        assert np.isclose(self.evaluate(2.5), 2.5)

    def test_derivative(self):
        expr = self.x**2 * sp.sin(self.y)
        e = to_casadi(expr, self.replace)
        f = ca.Function("df", [self.X, self.Y], [ca.gradient(e, self.X)])
        expected = self.expected(sp.diff(expr, self.x))
        assert np.isclose(float(f(0.7, 1.3)), expected)

    def test_vector(self):
        v = to_casadi_vector([self.x, self.y, 1], self.replace)
        assert v.shape == (3, 1)
        assert to_casadi_vector([], self.replace).shape == (0, 1)

    def test_undeclared_symbol(self):
        z = sp.Symbol("z")
        with pytest.raises(ValueError):
            to_casadi(self.x + z, self.replace)

    def test_unsupported(self):
        with pytest.raises(NotImplementedError):
            to_casadi(sp.gamma(self.x), self.replace)

# Copyright (c) 2024 Yilin Zou
import numpy as np
import pytest
import scipy.sparse

from mshoot import Problem, constant_guess, simulate_guess
from mshoot.examples import double_integrator, pendulum, van_der_pol
from mshoot.transcription import MultipleShooting


def finite_difference(func, x, eps=1e-6):
    columns = []
    for i in range(len(x)):
        e = np.zeros_like(x)
        e[i] = eps
        columns.append((np.atleast_1d(func(x + e)) - np.atleast_1d(func(x - e))) / (2 * eps))
    return np.array(columns).T


def dense(values, structure, shape):
    return scipy.sparse.coo_array((values, structure), shape=shape).toarray()


def symmetric(values, structure, n):
    lower = dense(values, structure, (n, n))
    return lower + lower.T - np.diag(np.diag(lower))


@pytest.fixture(params=["van_der_pol", "pendulum"])
def nlp(request):
    if request.param == "van_der_pol":
        return MultipleShooting(van_der_pol(5))
    return MultipleShooting(pendulum(4))


@pytest.fixture
def x(nlp):
    rng = np.random.default_rng(0)
    return rng.uniform(-0.5, 0.5, nlp.L)


class TestDerivative:
    def test_gradient(self, nlp, x):
        assert np.allclose(
            nlp.gradient(x), finite_difference(nlp.objective, x).ravel(), rtol=1e-5, atol=1e-6
        )

    def test_jacobian(self, nlp, x):
        jac = dense(nlp.jacobian(x), nlp.jacobianstructure(), (nlp.M, nlp.L))
        assert np.allclose(jac, finite_difference(nlp.constraints, x), rtol=1e-5, atol=1e-6)

    def test_hessian(self, nlp, x):
        rng = np.random.default_rng(1)
        lam = rng.uniform(-1, 1, nlp.M)
        sigma = 0.7

        def grad_lagrangian(x_):
            jac = dense(nlp.jacobian(x_), nlp.jacobianstructure(), (nlp.M, nlp.L))
            return sigma * nlp.gradient(x_) + jac.T @ lam

        hess = symmetric(nlp.hessian(x, lam, sigma), nlp.hessianstructure(), nlp.L)
        assert np.allclose(hess, finite_difference(grad_lagrangian, x), rtol=1e-4, atol=1e-5)

        hess_o = symmetric(nlp.hessian_o(x), nlp.hessianstructure_o(), nlp.L)
        hess_c = symmetric(nlp.hessian_c(x, lam), nlp.hessianstructure_c(), nlp.L)
        assert np.allclose(hess, sigma * hess_o + hess_c)

    def test_lower_triangle(self, nlp):
        for row, col in (
            nlp.hessianstructure(),
            nlp.hessianstructure_o(),
            nlp.hessianstructure_c(),
        ):
            assert np.all(row >= col)

    def test_banded_jacobian(self, nlp):
        p = nlp.problem
        row, col = nlp.jacobianstructure()
        interval = row // (p.n_x + p.n_c)
        assert np.all(col >= p.index_x[interval, 0])
        assert np.all(col < p.index_x[interval + 1, 0] + p.n_x)


class TestValue:
    def test_objective(self):
        # u^2 with constant u is integrated exactly
        p = double_integrator(4)
        nlp = MultipleShooting(p)
        v = simulate_guess(p, 2.0)
        assert np.isclose(nlp.objective(v.data), 4.0)

    def test_terminal_cost(self):
        p = double_integrator(4)
        p.set_cost(0, p.x[0] ** 2 + 3 * p.x[1])
        nlp = MultipleShooting(p)
        v = simulate_guess(p, 1.0)
        assert np.isclose(nlp.objective(v.data), 0.5**2 + 3 * 1.0)

    def test_gaps(self):
        p = van_der_pol(5)
        nlp = MultipleShooting(p)
        v = simulate_guess(p, 0.3)
        assert nlp.gaps(v.data).shape == (5, 2)
        assert np.allclose(nlp.gaps(v.data), 0, atol=1e-10)

        v.x[1][2] += 0.5
        assert np.allclose(nlp.gaps(v.data), p.error(v, refine=1), atol=1e-10)

    def test_path_constraint(self):
        p = pendulum(4)
        nlp = MultipleShooting(p)
        v = constant_guess(p, 2.0)
        c = nlp.constraints(v.data).reshape(p.N, p.n_x + p.n_c)
        assert np.allclose(c[:, 2], v.x[1][:-1] ** 2)

    def test_time_dependent_dynamics(self):
        p = Problem(1, 0)
        p.set_dynamics([p.t])
        p.set_discretization(2.0, 2, t_0=1.0)
        nlp = MultipleShooting(p)
        w = np.array([0.0, 0.0, 0.0])
        assert np.allclose(nlp.gaps(w).ravel(), [(1.5**2 - 1) / 2, (2**2 - 1.5**2) / 2])

    def test_casadi_functions(self):
        p = double_integrator(4)
        nlp = MultipleShooting(p)
        assert set(nlp.nlp) == {"x", "f", "g"}
        xf, qf = nlp.F([0.0, 1.0], 2.0, 0.0)
        assert np.allclose(xf.full().ravel(), [0.25 + 0.0625 / 2 * 2, 1.5])
        assert np.isclose(float(qf), 4 * 0.25)
        assert np.allclose(nlp.f([0.0, 1.0], 2.0, 0.0).full().ravel(), [1.0, 2.0])

    def test_not_configured(self):
        with pytest.raises(ValueError):
            MultipleShooting(Problem(1, 1))

# Copyright (c) 2024 Yilin Zou
import numpy as np
import pytest
import sympy as sp

from mshoot import Problem, constant_guess, simulate_guess
from mshoot.examples import double_integrator, van_der_pol
from mshoot.transcription import MultipleShooting


class TestCheck:
    def test_exact_integration(self):
        # piecewise constant force: RK4 is exact for the double integrator
        p = double_integrator(5)
        v = simulate_guess(p, 1.0)
        assert np.allclose(p.error(v, refine=1), 0)
        assert np.allclose(p.error(v), 0)
        assert p.check(v)

    def test_gap(self):
        p = double_integrator(5)
        v = simulate_guess(p, 1.0)
        v.x[0][3] += 0.1
        error = p.error(v, refine=1)
        assert np.isclose(error[2, 0], -0.1)
        assert np.isclose(error[3, 0], 0.1)
        assert not p.check(v)

    def test_integration_error(self):
        p = double_integrator(5, integrator="euler")
        v = simulate_guess(p, 1.0)
        assert p.check(v, refine=1)
        assert not p.check(v, refine=10)
        assert p.check(v, absolute_tolerance=0.1, refine=10)

    def test_nonlinear(self):
        p = van_der_pol(10)
        v = simulate_guess(p, 0.5)
        assert np.max(np.abs(p.error(v, refine=1))) < 1e-12
        assert p.check(v, absolute_tolerance=1e-2, relative_tolerance=1e-2)

    def test_invalid(self):
        p = double_integrator(5)
        v = constant_guess(double_integrator(4))
        with pytest.raises(ValueError):
            p.check(v)
        with pytest.raises(ValueError):
            p.error(simulate_guess(p), refine=0)
        with pytest.raises(ValueError):
            Problem(1, 1).check(v)


class TestSimulate:
    def test_fine_trajectory(self):
        p = double_integrator(4)
        v = simulate_guess(p, 1.0)
        t, x = p.simulate(v, refine=5)
        assert t.shape == (21,) and x.shape == (21, 2)
        assert np.allclose(x[:, 0], t**2 / 2)
        assert np.allclose(x[::5], v.X)

    def test_ignores_later_nodes(self):
        p = double_integrator(4)
        v = constant_guess(p, 0.0)
        v.u[0] = 1.0
        t, x = p.simulate(v, refine=2)
        assert np.allclose(x[:, 1], t)


class TestNonsmoothDynamics:
    def setup_method(self):
        p = Problem(["x"], ["u"])
        (x,) = p.x
        (u,) = p.u
        p.set_dynamics([sp.Max(u, 0) - sp.Min(x, 1)])
        p.set_boundary_condition([0.5], [None])
        p.set_discretization(1.0, 4)
        self.p = p

    def test_simulate_guess(self):
        v = simulate_guess(self.p, 0.3)
        nlp = MultipleShooting(self.p)
        assert np.allclose(nlp.gaps(v.data), 0, atol=1e-10)
        # x' = 0.3 - x while x < 1
        assert np.allclose(v.x[0], 0.3 + 0.2 * np.exp(-v.t_x), atol=1e-5)

    def test_check(self):
        v = simulate_guess(self.p, -0.3)
        assert np.allclose(v.x[0], 0.5 * np.exp(-v.t_x), atol=1e-5)
        assert self.p.check(v, absolute_tolerance=1e-5, relative_tolerance=1e-5)
        t, x = self.p.simulate(v, refine=2)
        assert np.allclose(x[:, 0], 0.5 * np.exp(-t), atol=1e-5)

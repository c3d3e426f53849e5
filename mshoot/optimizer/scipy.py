# Copyright (c) 2024 Yilin Zou
from typing import Any, Iterable, Optional

import numpy as np
from scipy.optimize import minimize, Bounds, NonlinearConstraint
from scipy.sparse import coo_array

from ._common import _preprocess, _postprocess
from mshoot.problem import Problem
from mshoot.transcription import MultipleShooting
from mshoot.variable import Variable


def _reflection(func, row, col, n):
    diag_i = []
    diag_rc = []
    for i, (r, c) in enumerate(zip(row, col)):
        if r == c:
            diag_i.append(i)
            diag_rc.append(r)
    diag_i = np.array(diag_i, dtype=np.int32)
    diag_rc = np.array(diag_rc, dtype=np.int32)

    def full_csr_matrix(*args):
        data = func(*args)
        coo_half = coo_array((data, (row, col)), shape=(n, n))
        coo_diag = coo_array((data[diag_i], (diag_rc, diag_rc)), shape=(n, n))
        return (coo_half + coo_half.T - coo_diag).tocsr()

    return full_csr_matrix


def solve(
    problem: Problem | MultipleShooting,
    guess: Variable | Iterable[float],
    optimizer_options: Optional[dict] = None,
) -> tuple[Variable, Any]:
    """Solve the problem using trust-constr method of
    :func:`scipy.optimize.minimize`.

    Exact gradients, Jacobians and Hessians are provided by the CasADi transcription.
    Useful when IPOPT is not available; typically much slower.

    Optimizer options should be a dictionary of options to pass to :func:`scipy.optimize.minimize`.
    See [Scipy documentation](https://docs.scipy.org)
    for available options. Options will be passed verbatimly.

    Args:
        problem: ``Problem`` to solve, or its ``MultipleShooting`` transcription.
        guess: Guess to the solution.
        optimizer_options: Options to pass to :func:`scipy.optimize.minimize`.

    Returns:
        The solution as a ``Variable``, and the raw output returned by :func:`scipy.optimize.minimize`.
    """
    nlp, x_0, optimizer_options = _preprocess(problem, guess, optimizer_options)

    objective_hessian = _reflection(nlp.hessian_o, *nlp.hessianstructure_o(), nlp.L)
    constraints_jacobian = lambda x: coo_array(
        (nlp.jacobian(x), nlp.jacobianstructure()), shape=(nlp.M, nlp.L)
    ).tocsr()
    constraints_hessian = _reflection(nlp.hessian_c, *nlp.hessianstructure_c(), nlp.L)

    bounds = Bounds(nlp.v_lb, nlp.v_ub)
    constraints = NonlinearConstraint(
        nlp.constraints,
        nlp.c_lb,
        nlp.c_ub,
        jac=constraints_jacobian,
        hess=constraints_hessian,
    )

    res = minimize(
        nlp.objective,
        x_0,
        method="trust-constr",
        jac=nlp.gradient,
        hess=objective_hessian,
        constraints=constraints,
        bounds=bounds,
        options=optimizer_options,
    )

    result = _postprocess(nlp, res.x, res.success, res.message)
    return result, res

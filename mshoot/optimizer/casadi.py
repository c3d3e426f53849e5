# Copyright (c) 2024 Yilin Zou
from typing import Any, Iterable, Optional

import casadi as ca

from ._common import _preprocess, _postprocess
from mshoot.problem import Problem
from mshoot.transcription import MultipleShooting
from mshoot.variable import Variable


def solve(
    problem: Problem | MultipleShooting,
    guess: Variable | Iterable[float],
    optimizer_options: Optional[dict] = None,
) -> tuple[Variable, Any]:
    """Solve the problem using [IPOPT](https://github.com/coin-or/Ipopt)
    through :func:`casadi.nlpsol`.

    This is the route taken in the blog post: the transcribed problem is handed to CasADi
    as symbolic expressions, and CasADi generates the derivatives IPOPT needs.

    Optimizer options should be a dictionary of options to pass to :func:`casadi.nlpsol`.
    IPOPT options are prefixed with ``ipopt.``, e.g. ``{"ipopt.print_level": 0, "print_time": False}``.
    Options will be passed verbatimly.

    Args:
        problem: ``Problem`` to solve, or its ``MultipleShooting`` transcription.
        guess: Guess to the solution.
        optimizer_options: Options to pass to :func:`casadi.nlpsol`.

    Returns:
        The solution as a ``Variable``, and the statistics returned by the solver
        with the additional entries ``f`` (objective), ``g`` (constraints),
        ``lam_g`` and ``lam_x`` (multipliers).
    """
    nlp, x_0, optimizer_options = _preprocess(problem, guess, optimizer_options)

    solver = ca.nlpsol("solver", "ipopt", nlp.nlp, optimizer_options)
    sol = solver(x0=x_0, lbx=nlp.v_lb, ubx=nlp.v_ub, lbg=nlp.c_lb, ubg=nlp.c_ub)

    info = dict(solver.stats())
    info["f"] = float(sol["f"])
    info["g"] = sol["g"].full().ravel()
    info["lam_g"] = sol["lam_g"].full().ravel()
    info["lam_x"] = sol["lam_x"].full().ravel()

    result = _postprocess(
        nlp, sol["x"].full(), info.get("success", False), info.get("return_status")
    )
    return result, info

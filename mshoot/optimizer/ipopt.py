# Copyright (c) 2024 Yilin Zou
from typing import Any, Iterable, Optional

import cyipopt

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
    through [cyipopt](https://github.com/mechmotum/cyipopt).

    The ``MultipleShooting`` transcription is passed directly as the problem object,
    with derivatives evaluated by CasADi.

    Optimizer options should be a dictionary of options to pass to Ipopt.
    See [Ipopt documentation](https://coin-or.github.io/Ipopt/OPTIONS.html) for available options.
    Options will be passed verbatimly.

    Args:
        problem: ``Problem`` to solve, or its ``MultipleShooting`` transcription.
        guess: Guess to the solution.
        optimizer_options: Options to pass to IPOPT.

    Returns:
        The solution as a ``Variable``, and the raw output returned by IPOPT.
    """
    nlp, x_0, optimizer_options = _preprocess(problem, guess, optimizer_options)

    solver = cyipopt.Problem(
        n=nlp.L,
        m=nlp.M,
        problem_obj=nlp,
        lb=nlp.v_lb,
        ub=nlp.v_ub,
        cl=nlp.c_lb,
        cu=nlp.c_ub,
    )
    for k, v in optimizer_options.items():
        solver.add_option(k, v)

    x, info = solver.solve(x_0)

    # 0: solved, 1: solved to acceptable level
    result = _postprocess(nlp, x, info["status"] in (0, 1), info["status_msg"])
    return result, info

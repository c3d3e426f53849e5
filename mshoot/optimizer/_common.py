import logging
from typing import Iterable, Optional

from mshoot.base.vectypes import *
from mshoot.problem import Problem
from mshoot.transcription import MultipleShooting
from mshoot.variable import Variable

logger = logging.getLogger(__name__)


def _preprocess(
    problem: Problem | MultipleShooting,
    guess: Variable | Iterable[float],
    optimizer_options: Optional[dict] = None,
) -> tuple[MultipleShooting, VecFloat, dict]:
    if isinstance(problem, MultipleShooting):
        nlp = problem
    else:
        if not problem.ok:
            raise ValueError("problem is not fully configured")
        nlp = MultipleShooting(problem)
    if optimizer_options is None:
        optimizer_options = {}

    if isinstance(guess, Variable):
        x_0 = guess.data.copy()
    else:
        x_0 = np.array(list(guess), dtype=np.float64)
    if len(x_0) != nlp.L:
        raise ValueError(
            f"guess must have {nlp.L} values to match the discretization, got {len(x_0)}"
        )
    # fixed boundary values and bounds hold from the start
    x_0 = np.clip(x_0, nlp.v_lb, nlp.v_ub)

    return nlp, x_0, dict(optimizer_options)


def _postprocess(nlp: MultipleShooting, x: VecFloat, success: bool, status) -> Variable:
    if success:
        logger.info("solver converged: %s", status)
    else:
        logger.warning("solver did not converge: %s", status)
    return Variable(nlp.problem, np.array(x, dtype=np.float64).ravel())

# Copyright (c) 2024 Yilin Zou
"""# mshoot: Multiple SHOOTing for optimal control

Companion code of the blog post *Optimal control by multiple shooting*
(``docs/posts``).

- **Model** an optimal control problem with [SymPy](https://www.sympy.org/) expressions: :class:`Problem`.
- **Transcribe** it by multiple shooting into a nonlinear program built with [CasADi](https://web.casadi.org/):
  :class:`mshoot.transcription.MultipleShooting`.
- **Solve** it with [IPOPT](https://github.com/coin-or/Ipopt) (through CasADi or cyipopt) or SciPy:
  :mod:`mshoot.optimizer`.
- **Verify** the solution by re-integrating every shooting interval with [Numba](https://numba.pydata.org/)
  compiled dynamics: :meth:`Problem.check`.
"""

from .problem import Problem, BcType
from .variable import Variable, constant_guess, linear_guess, simulate_guess

__all__ = [
    "BcType",
    "Problem",
    "Variable",
    "constant_guess",
    "linear_guess",
    "simulate_guess",
]

__author__ = "Yilin Zou"
__copyright__ = "Copyright (c) 2024 Yilin Zou"

# Copyright (c) 2024 Yilin Zou
"""Van der Pol oscillator solved by direct multiple shooting.

This is the script accompanying the blog post
``docs/posts/2024-05-20-multiple-shooting.md``::

    python examples/van_der_pol.py --intervals 40
"""
import argparse
import logging

import matplotlib.pyplot as plt
import numpy as np

from mshoot import simulate_guess
from mshoot.examples import van_der_pol
from mshoot.logging_config import setup_logging
from mshoot.optimizer import casadi


def main() -> None:
    parser = argparse.ArgumentParser(description=__doc__.splitlines()[0])
    parser.add_argument("--intervals", type=int, default=20, help="number of shooting intervals")
    parser.add_argument("--no-plot", action="store_true", help="only print the summary")
    parser.add_argument("--verbose", action="store_true", help="show debug output")
    args = parser.parse_args()

    setup_logging(logging.DEBUG if args.verbose else logging.INFO)

    problem = van_der_pol(args.intervals)
    guess = simulate_guess(problem, 0.0)
    v, info = casadi.solve(
        problem, guess, {"ipopt.print_level": 0, "print_time": False}
    )

    print(f"status:     {info['return_status']}")
    print(f"iterations: {info['iter_count']}")
    print(f"objective:  {info['f']:.6f}")
    print(f"max gap:    {np.max(np.abs(problem.error(v, refine=1))):.2e}")

    if args.no_plot:
        return

    t, x = problem.simulate(v)
    fig, ax = plt.subplots()
    ax.plot(t, x[:, 0], label="$x_1$ (simulated)")
    ax.plot(t, x[:, 1], label="$x_2$ (simulated)")
    ax.plot(v.t_x, v.x[0], "o", color="C0", label="$x_1$ (shooting nodes)")
    ax.plot(v.t_x, v.x[1], "o", color="C1", label="$x_2$ (shooting nodes)")
    ax.step(v.t_x, np.append(v.u[0], v.u[0][-1]), where="post", label="$u$")
    ax.set_xlabel("$t$")
    ax.grid()
    ax.legend()
    plt.show()


if __name__ == "__main__":
    main()

# Copyright (c) 2024 Yilin Zou
"""Backends solving the multiple shooting NLP.

- :mod:`mshoot.optimizer.casadi`: IPOPT through :func:`casadi.nlpsol`;
- :mod:`mshoot.optimizer.ipopt`: IPOPT through ``cyipopt``;
- :mod:`mshoot.optimizer.scipy`: trust-constr method of :func:`scipy.optimize.minimize`.

Every backend exposes ``solve(problem, guess, optimizer_options=None)``
returning the solution as a ``Variable`` and the raw solver output.
"""

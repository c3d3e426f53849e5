# Copyright (c) 2024 Yilin Zou
"""This submodule contains the symbolic plumbing of the mshoot package:
compiling SymPy expressions to Numba and CasADi, and tracking which
compiled objects have to be rebuilt when a ``Problem`` changes."""

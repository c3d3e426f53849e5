# Copyright (c) 2024 Yilin Zou
from typing import Callable


class AutoUpdate:
    """Utility class for rebuilding derived data when its inputs change.

    Sources are named inputs (e.g. ``"dynamics"``), targets are named
    callables (e.g. a method compiling the dynamics). A target runs the first
    time all of its sources have been set, and again every time one of them
    is set afterwards.
    """

    sources: list[str]
    """Names of the sources."""
    targets: dict[str, Callable[[], None]]
    """Target callables by name, in the order they run."""
    dependency: dict[str, set[str]]
    """Sources each target depends on."""
    seen: set[str]
    """Sources that have been set at least once."""

    def __init__(
        self, sources: list[str], targets: dict[str, Callable[[], None]]
    ) -> None:
        """
        Args:
            sources: Names of the sources.
            targets: Target callables by name.
        """
        self.sources = list(sources)
        self.targets = dict(targets)
        self.dependency = {name: set() for name in self.targets}
        self.seen = set()

    def set_dependency(self, target: str, sources: list[str]) -> None:
        """Declare that ``target`` depends on ``sources``."""
        if target not in self.targets:
            raise ValueError(f"unknown target {target!r}")
        for source in sources:
            if source not in self.sources:
                raise ValueError(f"unknown source {source!r}")
            self.dependency[target].add(source)

    def ready(self, target: str) -> bool:
        """Whether every source of ``target`` has been set."""
        return self.dependency[target] <= self.seen

    def update(self, source: str) -> None:
        """Mark ``source`` as set and run the targets depending on it whose
        sources are all set."""
        if source not in self.sources:
            raise ValueError(f"unknown source {source!r}")
        self.seen.add(source)
        for name, f in self.targets.items():
            if source in self.dependency[name] and self.ready(name):
                f()

    def update_all(self) -> None:
        """Run every target whose sources are all set."""
        [f() for name, f in self.targets.items() if self.ready(name)]

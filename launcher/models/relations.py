import threading
from bisect import insort
from typing import Callable, Iterable, List, Tuple

from launcher.models.mod_path import ModPath


class ModRelationSet:
    """Partners of one mod for one relation (depends, dependants or conflicts).

    ``active`` holds partners whose condition currently holds (the partner is
    installed and enabled), ``inactive`` the others. A path is never in both
    lists and both lists stay sorted.
    """

    def __init__(self, paths: Iterable[ModPath] = ()) -> None:
        self._lock = threading.Lock()
        self._active: List[ModPath] = []
        self._inactive: List[ModPath] = sorted(set(paths))

    @property
    def active(self) -> Tuple[ModPath, ...]:
        with self._lock:
            return tuple(self._active)

    @property
    def inactive(self) -> Tuple[ModPath, ...]:
        with self._lock:
            return tuple(self._inactive)

    def paths(self) -> Tuple[ModPath, ...]:
        """Every partner, active first."""
        with self._lock:
            return tuple(self._active) + tuple(self._inactive)

    def has_active(self) -> bool:
        with self._lock:
            return bool(self._active)

    def has_inactive(self) -> bool:
        with self._lock:
            return bool(self._inactive)

    def __contains__(self, path: ModPath) -> bool:
        with self._lock:
            return path in self._active or path in self._inactive

    def __len__(self) -> int:
        with self._lock:
            return len(self._active) + len(self._inactive)

    def move_to_active(self, path: ModPath) -> None:
        with self._lock:
            self._move(path, self._inactive, self._active)

    def move_to_inactive(self, path: ModPath) -> None:
        with self._lock:
            self._move(path, self._active, self._inactive)

    def revalidate(self, is_satisfied: Callable[[ModPath], bool]) -> None:
        """Re-checks every partner, demoting stale active entries too."""
        results = {path: is_satisfied(path) for path in self.paths()}
        with self._lock:
            for path, satisfied in results.items():
                if satisfied and path in self._inactive:
                    self._move(path, self._inactive, self._active)
                elif not satisfied and path in self._active:
                    self._move(path, self._active, self._inactive)

    @staticmethod
    def _move(path: ModPath, source: List[ModPath], target: List[ModPath]) -> None:
        if path in source:
            source.remove(path)
        if path not in target:
            insort(target, path)

    def __repr__(self) -> str:
        return f"ModRelationSet(active={list(self.active)}, inactive={list(self.inactive)})"

"""Partition of the inequality constraints into included and excluded."""

from __future__ import annotations

from typing import Optional

import numpy as np


class WorkingSet:
    """
    Included/excluded partition of the index range ``[0, count)``.

    Included constraints are treated as equalities in the current
    iteration. Both index arrays are returned in ascending order. The most
    recently included and excluded indices are remembered for the cycling
    heuristics of the active-set solver.
    """

    def __init__(self, count: int) -> None:
        if count < 0:
            raise ValueError("count must be nonnegative")
        self._mask = np.zeros(count, dtype=bool)
        self._last_included: Optional[int] = None
        self._last_excluded: Optional[int] = None

    def __len__(self) -> int:
        return self._mask.shape[0]

    def _check(self, index: int) -> int:
        index = int(index)
        if not 0 <= index < self._mask.shape[0]:
            raise IndexError(f"Constraint index {index} out of range [0, {self._mask.shape[0]})")
        return index

    def include(self, index: int) -> None:
        index = self._check(index)
        self._mask[index] = True
        self._last_included = index

    def exclude(self, index: int) -> None:
        index = self._check(index)
        self._mask[index] = False
        self._last_excluded = index

    def include_all(self) -> None:
        self._mask[:] = True
        self._last_included = None
        self._last_excluded = None

    def exclude_all(self) -> None:
        self._mask[:] = False
        self._last_included = None
        self._last_excluded = None

    def is_included(self, index: int) -> bool:
        return bool(self._mask[self._check(index)])

    @property
    def included(self) -> np.ndarray:
        return np.flatnonzero(self._mask)

    @property
    def excluded(self) -> np.ndarray:
        return np.flatnonzero(~self._mask)

    def count_included(self) -> int:
        return int(np.count_nonzero(self._mask))

    def count_excluded(self) -> int:
        return self._mask.shape[0] - self.count_included()

    @property
    def last_included(self) -> Optional[int]:
        return self._last_included

    @property
    def last_excluded(self) -> Optional[int]:
        return self._last_excluded

    def __repr__(self) -> str:
        return (
            f"WorkingSet(included={self.included.tolist()}, "
            f"last_included={self._last_included}, last_excluded={self._last_excluded})"
        )


__all__ = ["WorkingSet"]

"""Growable row-major float64 matrix.

Rows are appended into spare capacity that doubles when exhausted, so an
insert costs amortized ``O(D)`` rather than a full copy of the table.
"""

from __future__ import annotations

import numpy as np


class GrowableMatrix:
    def __init__(self, dim: int = 0, capacity: int = 16) -> None:
        self._dim = int(dim)
        self._rows = 0
        self._buf = np.zeros((max(1, capacity), self._dim), dtype=np.float64)

    @classmethod
    def from_array(cls, array: np.ndarray) -> "GrowableMatrix":
        arr = np.asarray(array, dtype=np.float64)
        if arr.ndim != 2:
            raise ValueError("expected a 2-D array")
        m = cls(dim=arr.shape[1], capacity=max(16, arr.shape[0]))
        m._buf[: arr.shape[0]] = arr
        m._rows = arr.shape[0]
        return m

    @property
    def dim(self) -> int:
        return self._dim

    @property
    def rows(self) -> int:
        return self._rows

    @property
    def capacity(self) -> int:
        return self._buf.shape[0]

    def view(self) -> np.ndarray:
        """Live view of the occupied rows; do not hold it across mutations."""
        return self._buf[: self._rows]

    def row(self, index: int) -> np.ndarray:
        return self._buf[index]

    def copy(self) -> np.ndarray:
        return self._buf[: self._rows].copy()

    def _reserve(self, rows: int) -> None:
        if rows <= self.capacity:
            return
        new_cap = self.capacity
        while new_cap < rows:
            new_cap *= 2
        buf = np.zeros((new_cap, self._dim), dtype=np.float64)
        buf[: self._rows] = self._buf[: self._rows]
        self._buf = buf

    def append_rows(self, block: np.ndarray) -> None:
        block = np.asarray(block, dtype=np.float64).reshape(-1, block.shape[-1])
        if self._rows == 0 and self._dim != block.shape[1]:
            # the first insert establishes the dimension
            self._dim = block.shape[1]
            self._buf = np.zeros((self.capacity, self._dim), dtype=np.float64)
        self._reserve(self._rows + block.shape[0])
        self._buf[self._rows : self._rows + block.shape[0]] = block
        self._rows += block.shape[0]

    def set_row(self, index: int, values: np.ndarray) -> None:
        self._buf[index] = values

    def delete_row(self, index: int) -> None:
        """Remove row ``index``, shifting later rows down by one."""
        self._buf[index : self._rows - 1] = self._buf[index + 1 : self._rows]
        self._rows -= 1
        self._buf[self._rows] = 0.0

    def clear(self) -> None:
        self._rows = 0
        self._dim = 0
        self._buf = np.zeros((16, 0), dtype=np.float64)

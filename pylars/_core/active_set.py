"""
Active set bookkeeping.

An ordered set of predictor indices with O(1) membership tests. The order
is the row/column order of the Cholesky factor.
"""

import numpy as np
from typing import Iterator, List


class ActiveSet:
    """
    Ordered active set over ``p`` predictors.
    
    The insertion-ordered index list and the boolean membership map are
    only modified together, so ``i in active`` holds iff ``mask[i]``.
    
    Parameters
    ----------
    p : int
        Number of predictors
    """
    
    def __init__(self, p: int):
        self.p = int(p)
        self._order: List[int] = []
        self._mask = np.zeros(self.p, dtype=bool)
    
    def __len__(self) -> int:
        return len(self._order)
    
    def __contains__(self, index) -> bool:
        index = int(index)
        return 0 <= index < self.p and bool(self._mask[index])
    
    def __iter__(self) -> Iterator[int]:
        return iter(list(self._order))
    
    def __repr__(self):
        return f"ActiveSet(p={self.p}, active={self._order})"
    
    @property
    def indices(self) -> np.ndarray:
        """Active predictor indices in factor order."""
        return np.array(self._order, dtype=np.intp)
    
    @property
    def mask(self) -> np.ndarray:
        """Boolean membership map (copy)."""
        return self._mask.copy()
    
    @property
    def full(self) -> bool:
        return len(self._order) == self.p
    
    def inactive(self) -> np.ndarray:
        """Inactive predictor indices in ascending order."""
        return np.flatnonzero(~self._mask)
    
    def position(self, index: int) -> int:
        """Offset of ``index`` in the ordered active set."""
        if index not in self:
            raise KeyError(f"Predictor {index} is not active")
        return self._order.index(int(index))
    
    def activate(self, index: int) -> None:
        """Append ``index`` to the active set."""
        index = int(index)
        if not 0 <= index < self.p:
            raise IndexError(f"Predictor index {index} out of range [0, {self.p})")
        if self._mask[index]:
            raise ValueError(f"Predictor {index} is already active")
        self._order.append(index)
        self._mask[index] = True
    
    def deactivate(self, position: int) -> int:
        """
        Remove the predictor at offset ``position``.
        
        Later entries shift down by one, mirroring the Cholesky downdate.
        
        Returns
        -------
        int
            The removed predictor index
        """
        position = int(position)
        if not 0 <= position < len(self._order):
            raise IndexError(
                f"Active position {position} out of range [0, {len(self._order)})"
            )
        index = self._order.pop(position)
        self._mask[index] = False
        return index
    
    def clear(self) -> None:
        self._order = []
        self._mask[:] = False

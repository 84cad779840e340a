"""
Host compute routines over output-row ranges.

Both host backends compute through these routines; the multi-threaded backend
simply calls them on disjoint row ranges from several threads. Every output
cell is produced by the same sequence of element operations regardless of how
rows are partitioned, which makes the two backends bit-identical.

Multiply seeds each cell with the ``k = 0`` product and accumulates the
remaining products in ascending ``k``, matching the device kernels.
"""

from __future__ import annotations

from typing import List, Tuple

import numpy as np

from ..elements._base import ElementOperator


def elementwise_rows(
    element: ElementOperator,
    op: str,
    a: np.ndarray,
    b: np.ndarray,
    out: np.ndarray,
    start: int,
    stop: int,
) -> None:
    out[start:stop] = element.apply(op, a[start:stop], b[start:stop])


def multiply_rows(
    element: ElementOperator,
    a: np.ndarray,
    b: np.ndarray,
    out: np.ndarray,
    start: int,
    stop: int,
) -> None:
    """
    Compute ``out[start:stop] = a[start:stop] @ b`` with the element's arithmetic.

    Parameters
    ----------
    element : ElementOperator
        Element arithmetic.
    a : np.ndarray
        Left operand, shape (rows, inner).
    b : np.ndarray
        Right operand, shape (inner, columns).
    out : np.ndarray
        Zero-filled output, shape (rows, columns).
    start, stop : int
        Output row range.

    Notes
    -----
    With ``inner == 0`` the rows are left untouched (zero-filled).
    """
    inner = a.shape[1]
    if inner == 0 or start >= stop:
        return
    block = a[start:stop]
    acc = element.multiply(block[:, 0:1], b[0:1, :])
    for k in range(1, inner):
        acc = element.add(acc, element.multiply(block[:, k : k + 1], b[k : k + 1, :]))
    out[start:stop] = acc


def transpose_rows(a: np.ndarray, out: np.ndarray, start: int, stop: int) -> None:
    out[start:stop] = a[:, start:stop].T


def row_ranges(rows: int, parts: int) -> List[Tuple[int, int]]:
    """
    Split ``range(rows)`` into at most `parts` contiguous, disjoint ranges.

    Returns
    -------
    List[Tuple[int, int]]
        ``(start, stop)`` pairs covering every row exactly once, in order.
    """
    parts = max(1, min(int(parts), rows))
    if rows == 0:
        return []
    base, extra = divmod(rows, parts)
    ranges = []
    start = 0
    for i in range(parts):
        stop = start + base + (1 if i < extra else 0)
        ranges.append((start, stop))
        start = stop
    return ranges

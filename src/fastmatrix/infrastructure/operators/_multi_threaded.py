"""
Multi-threaded host backend.

Output rows are split into contiguous, disjoint ranges and computed on a
thread pool. Partitions never share output rows, and each cell is computed by
the same routine as the single-threaded backend, so results are bit-identical
to it.
"""

from __future__ import annotations

from concurrent.futures import Future, ThreadPoolExecutor
import os
from typing import Any, Callable, List, Optional

import numpy as np

from ..device._config import DeviceConfig
from ..matrix._matrix import Matrix
from ._host_kernels import elementwise_rows, multiply_rows, row_ranges, transpose_rows
from ._validation import validate_binary, validate_unary


def default_workers() -> int:
    """
    Worker count used when none is given.

    Returns
    -------
    int
        `FASTMATRIX_WORKERS` when set, otherwise the CPU count.
    """
    configured = DeviceConfig.from_env().workers
    if configured is not None:
        return configured
    return os.cpu_count() or 1


class MultiThreadedOperator:
    """
    Host backend computing disjoint output-row ranges in parallel.

    Parameters
    ----------
    workers : Optional[int]
        Number of worker threads (and maximum partitions per operation).
        Defaults to `default_workers()`.

    Notes
    -----
    The pool is created with the operator and shut down by `close()` or on
    context-manager exit.
    """

    def __init__(self, workers: Optional[int] = None) -> None:
        workers = default_workers() if workers is None else int(workers)
        if workers <= 0:
            raise ValueError(f"workers must be > 0, got {workers}")
        self.workers = workers
        self._executor = ThreadPoolExecutor(
            max_workers=workers, thread_name_prefix="fastmatrix-worker"
        )

    def _run(self, rows: int, task: Callable[[int, int], None]) -> None:
        futures: List[Future] = [
            self._executor.submit(task, start, stop)
            for start, stop in row_ranges(rows, self.workers)
        ]
        for future in futures:
            future.result()

    def _elementwise(self, op: str, a: Any, b: Any) -> Matrix:
        a, b = validate_binary(op, a, b)
        element = a.element
        out = element.zeros(a.shape)
        self._run(
            a.rows,
            lambda start, stop: elementwise_rows(
                element, op, a._data, b._data, out, start, stop
            ),
        )
        return Matrix._from_owned(out, element)

    def add(self, a: Any, b: Any) -> Matrix:
        return self._elementwise("add", a, b)

    def subtract(self, a: Any, b: Any) -> Matrix:
        return self._elementwise("subtract", a, b)

    def multiply(self, a: Any, b: Any) -> Matrix:
        a, b = validate_binary("multiply", a, b)
        element = a.element
        out = element.zeros((a.rows, b.columns))
        self._run(
            a.rows,
            lambda start, stop: multiply_rows(
                element, a._data, b._data, out, start, stop
            ),
        )
        return Matrix._from_owned(out, element)

    def transpose(self, a: Any) -> Matrix:
        a = validate_unary("transpose", a)
        out: np.ndarray = a.element.zeros((a.columns, a.rows))
        self._run(a.columns, lambda start, stop: transpose_rows(a._data, out, start, stop))
        return Matrix._from_owned(out, a.element)

    def close(self) -> None:
        self._executor.shutdown(wait=True)

    def __enter__(self) -> "MultiThreadedOperator":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

"""
Dense host matrix.

`Matrix` is the concrete, host-resident implementation of the `IMatrix`
protocol: a fixed-shape, row-major 2-D container of values of one element
type. Storage is a C-contiguous NumPy array owned exclusively by the matrix.

Design notes
------------
- Shape is fixed at construction; there is no reshape or resize.
- Every construction path copies its source, so callers never share storage
  with a matrix.
- Writes go through `__setitem__`, which calls the `_prepare_host_write` hook
  first. `BufferedMatrix` uses the hook to keep its device copy coherent.
"""

from __future__ import annotations

from typing import Any, Iterable, Sequence

import numpy as np

from ...domain._errors import RaggedInputError
from ..elements._base import ElementOperator
from ..elements._registry import resolve_element


def _check_dimension(name: str, value: Any) -> int:
    if isinstance(value, bool) or not isinstance(value, (int, np.integer)):
        raise TypeError(f"{name} must be an int, got {type(value).__name__}")
    if value < 0:
        raise ValueError(f"{name} must be >= 0, got {value}")
    return int(value)


class Matrix:
    """
    Dense, row-major matrix stored on the host.

    Parameters
    ----------
    rows : int
        Number of rows (>= 0).
    columns : int
        Number of columns (>= 0).
    element : object, optional
        Element type, or anything `resolve_element` accepts. Defaults to
        `float64`.

    Notes
    -----
    The matrix is zero-filled. Use `from_array` or `from_rows` to build a
    matrix from existing values.
    """

    def __init__(self, rows: int, columns: int, element: object = None) -> None:
        rows = _check_dimension("rows", rows)
        columns = _check_dimension("columns", columns)
        op = resolve_element(element)
        self._init_storage(op.zeros((rows, columns)), op)

    def _init_storage(self, data: np.ndarray, element: ElementOperator) -> None:
        self._element = element
        self._data = data

    def _post_init(self) -> None:
        """Subclass hook run after `_from_owned` has attached storage."""
        return None

    @classmethod
    def _from_owned(cls, data: np.ndarray, element: ElementOperator) -> "Matrix":
        """
        Wrap an array the caller hands over (no copy).

        The array must be 2-D, C-contiguous and of the element's dtype.
        """
        obj = cls.__new__(cls)
        obj._init_storage(data, element)
        obj._post_init()
        return obj

    # ------------------------------------------------------------------
    # Factories
    # ------------------------------------------------------------------
    @classmethod
    def from_array(cls, array: Any, element: object = None) -> "Matrix":
        """
        Build a matrix from a rectangular 2-D array-like.

        Parameters
        ----------
        array : Any
            2-D NumPy array or nested sequence.
        element : object, optional
            Element type. When omitted it is inferred from the array dtype.

        Returns
        -------
        Matrix
            A matrix holding a copy of the values.

        Raises
        ------
        ValueError
            If the source is not 2-D or its dtype has no registered element.
        """
        if element is None:
            arr = np.asarray(array)
            op = resolve_element(arr.dtype)
        else:
            op = resolve_element(element)
            arr = np.asarray(array, dtype=op.dtype)
        if arr.ndim != 2:
            raise ValueError(f"from_array expects a 2-D source, got ndim={arr.ndim}")
        data = np.array(arr, dtype=op.dtype, order="C", copy=True)
        return cls._from_owned(data, op)

    @classmethod
    def from_rows(cls, rows: Iterable[Sequence[Any]], element: object = None) -> "Matrix":
        """
        Build a matrix from row-grouped values.

        Every row length is validated against row 0 before any storage is
        allocated.

        Parameters
        ----------
        rows : Iterable[Sequence[Any]]
            Rows of values.
        element : object, optional
            Element type. When omitted it is inferred from the values.

        Returns
        -------
        Matrix
            A matrix holding a copy of the values.

        Raises
        ------
        RaggedInputError
            At the first row whose length differs from row 0.
        """
        row_list = [list(r) for r in rows]
        if not row_list:
            op = resolve_element(element)
            return cls._from_owned(op.zeros((0, 0)), op)

        expected = len(row_list[0])
        for i, row in enumerate(row_list):
            if len(row) != expected:
                raise RaggedInputError(expected, len(row), i)

        if element is None:
            inferred = np.asarray(row_list)
            if inferred.ndim != 2:
                raise ValueError(
                    "Cannot infer an element type for composite values; pass element="
                )
            op = resolve_element(inferred.dtype)
        else:
            op = resolve_element(element)

        if op.dtype.hasobject:
            data = op.zeros((len(row_list), expected))
            for i, row in enumerate(row_list):
                for j, value in enumerate(row):
                    data[i, j] = value
        else:
            data = np.array(row_list, dtype=op.dtype, order="C").reshape(
                len(row_list), expected
            )
        return cls._from_owned(data, op)

    # ------------------------------------------------------------------
    # Shape and element
    # ------------------------------------------------------------------
    @property
    def rows(self) -> int:
        return int(self._data.shape[0])

    @property
    def columns(self) -> int:
        return int(self._data.shape[1])

    @property
    def shape(self) -> tuple[int, int]:
        return (self.rows, self.columns)

    @property
    def size(self) -> int:
        return int(self._data.size)

    @property
    def element(self) -> ElementOperator:
        return self._element

    @property
    def dtype(self) -> np.dtype:
        return self._element.dtype

    @property
    def data(self) -> np.ndarray:
        """
        Read-only view of the host storage.

        Returns
        -------
        np.ndarray
            A non-writeable view; use item assignment to modify the matrix.
        """
        view = self._data.view()
        view.flags.writeable = False
        return view

    # ------------------------------------------------------------------
    # Element access
    # ------------------------------------------------------------------
    def _bounded(self, name: str, value: Any, bound: int) -> int:
        if isinstance(value, bool) or not isinstance(value, (int, np.integer)):
            raise TypeError(f"{name} index must be an int, got {type(value).__name__}")
        if not 0 <= value < bound:
            raise IndexError(
                f"{name} index {value} out of range for matrix of shape {self.shape}"
            )
        return int(value)

    def _check_index(self, index: Any) -> tuple[int, int]:
        if not isinstance(index, tuple) or len(index) != 2:
            raise TypeError("Matrix indices must be a (row, column) pair")
        return (
            self._bounded("row", index[0], self.rows),
            self._bounded("column", index[1], self.columns),
        )

    def __getitem__(self, index: tuple[int, int]) -> Any:
        r, c = self._check_index(index)
        return self._data[r, c]

    def __setitem__(self, index: tuple[int, int], value: Any) -> None:
        r, c = self._check_index(index)
        self._prepare_host_write()
        self._data[r, c] = value

    def _prepare_host_write(self) -> None:
        return None

    def get_row(self, index: int) -> np.ndarray:
        """Return a copy of row `index`."""
        return self._data[self._bounded("row", index, self.rows)].copy()

    def get_column(self, index: int) -> np.ndarray:
        """Return a copy of column `index`."""
        return self._data[:, self._bounded("column", index, self.columns)].copy()

    def to_numpy(self) -> np.ndarray:
        """Return a copy of the matrix as a 2-D NumPy array."""
        return self._data.copy()

    # ------------------------------------------------------------------
    # Comparison and formatting
    # ------------------------------------------------------------------
    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Matrix):
            return NotImplemented
        if self._element != other._element or self.shape != other.shape:
            return False
        return bool(np.all(self._data == other._data))

    def __ne__(self, other: object) -> bool:
        result = self.__eq__(other)
        if result is NotImplemented:
            return result
        return not result

    def __hash__(self) -> int:
        return hash((self._element, self.shape, tuple(self._data.ravel().tolist())))

    def __str__(self) -> str:
        fmt = self._element.format_value
        return "\n".join(
            "[" + ", ".join(fmt(v) for v in row) + "]" for row in self._data
        )

    def __repr__(self) -> str:
        return (
            f"{type(self).__name__}(rows={self.rows}, columns={self.columns}, "
            f"element={self._element.name!r})"
        )

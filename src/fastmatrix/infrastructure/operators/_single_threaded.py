"""
Single-threaded host backend.
"""

from __future__ import annotations

from typing import Any

from ..matrix._matrix import Matrix
from ._host_kernels import elementwise_rows, multiply_rows, transpose_rows
from ._validation import validate_binary, validate_unary


class SingleThreadedOperator:
    """
    Reference backend: every operation runs on the calling thread.

    All methods validate their operands, leave them unmodified and return a
    new `Matrix`.
    """

    def _elementwise(self, op: str, a: Any, b: Any) -> Matrix:
        a, b = validate_binary(op, a, b)
        out = a.element.zeros(a.shape)
        elementwise_rows(a.element, op, a._data, b._data, out, 0, a.rows)
        return Matrix._from_owned(out, a.element)

    def add(self, a: Any, b: Any) -> Matrix:
        return self._elementwise("add", a, b)

    def subtract(self, a: Any, b: Any) -> Matrix:
        return self._elementwise("subtract", a, b)

    def multiply(self, a: Any, b: Any) -> Matrix:
        a, b = validate_binary("multiply", a, b)
        out = a.element.zeros((a.rows, b.columns))
        multiply_rows(a.element, a._data, b._data, out, 0, a.rows)
        return Matrix._from_owned(out, a.element)

    def transpose(self, a: Any) -> Matrix:
        a = validate_unary("transpose", a)
        out = a.element.zeros((a.columns, a.rows))
        transpose_rows(a._data, out, 0, a.columns)
        return Matrix._from_owned(out, a.element)

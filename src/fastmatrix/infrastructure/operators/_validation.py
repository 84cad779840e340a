"""
Operand validation shared by every backend.

Checks run in a fixed order before any result storage is allocated:

1. no operand is None (`NullOperandError`);
2. every operand is a `Matrix` (`TypeError`);
3. operands share one element type (`ElementTypeMismatchError`);
4. shapes are compatible with the operation (`DimensionMismatchError`).
"""

from __future__ import annotations

from typing import Any

from ...domain._errors import (
    DimensionMismatchError,
    ElementTypeMismatchError,
    NullOperandError,
)
from ..matrix._matrix import Matrix


def _check_operand(op_kind: str, operand: Any, position: int) -> Matrix:
    if operand is None:
        raise NullOperandError(op_kind, position)
    if not isinstance(operand, Matrix):
        raise TypeError(
            f"{op_kind}: operand {position} must be a Matrix, "
            f"got {type(operand).__name__}"
        )
    return operand


def validate_unary(op_kind: str, a: Any) -> Matrix:
    return _check_operand(op_kind, a, 0)


def validate_binary(op_kind: str, a: Any, b: Any) -> tuple[Matrix, Matrix]:
    """
    Validate the operands of a binary operation.

    Parameters
    ----------
    op_kind : str
        "add", "subtract" or "multiply".
    a, b : Any
        Operands.

    Returns
    -------
    tuple[Matrix, Matrix]
        The validated operands.

    Raises
    ------
    NullOperandError
        If an operand is None.
    ElementTypeMismatchError
        If the operands carry different element types.
    DimensionMismatchError
        If shapes differ for add/subtract, or ``a.columns != b.rows`` for
        multiply.
    """
    a = _check_operand(op_kind, a, 0)
    b = _check_operand(op_kind, b, 1)

    if a.element != b.element:
        raise ElementTypeMismatchError(op_kind, a.element.name, b.element.name)

    if op_kind == "multiply":
        compatible = a.columns == b.rows
    else:
        compatible = a.shape == b.shape
    if not compatible:
        raise DimensionMismatchError(op_kind, a.rows, a.columns, b.rows, b.columns)
    return a, b

"""
Base class for element arithmetic operators.

`ElementOperator` is the concrete foundation for the `ElementLike` capability.
Subclasses provide host arithmetic (vectorized NumPy) and, when the element is
meant to run on a device, the C fragments used to specialize kernels.

The C fragments are resolved when a kernel is built for a specific
(operation, element type) pair. This mirrors how generic device code is
monomorphized: the kernel body never branches on element type at runtime.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any, Optional

import numpy as np


class ElementOperator(ABC):
    """
    Abstract element arithmetic capability.

    Parameters
    ----------
    name : str
        Registry name of the element type (e.g., "int32", "vector3").
    dtype : np.dtype
        Host storage dtype.

    Notes
    -----
    - Class attributes `c_add`, `c_subtract` and `c_multiply` default to the
      infix C operators, which fits every built-in scalar type. Record types
      override them to call helper functions emitted by `c_declaration`.
    - Operators compare equal when they have the same class, name and dtype,
      so they can be used as parts of kernel cache keys.
    """

    c_type: Optional[str] = None
    c_declaration: str = ""
    c_add: str = "({a} + {b})"
    c_subtract: str = "({a} - {b})"
    c_multiply: str = "({a} * {b})"

    def __init__(self, name: str, dtype: Any) -> None:
        self.name = str(name)
        self.dtype = np.dtype(dtype)

    # ------------------------------------------------------------------
    # Capability flags
    # ------------------------------------------------------------------
    @property
    def device_compatible(self) -> bool:
        """
        Whether this element type can be specialized into device kernels.

        Returns
        -------
        bool
            True when C fragments are available and the storage dtype has a
            fixed layout without object references.
        """
        return self.c_type is not None and not self.dtype.hasobject

    @property
    def itemsize(self) -> int:
        return int(self.dtype.itemsize)

    # ------------------------------------------------------------------
    # Host arithmetic
    # ------------------------------------------------------------------
    @abstractmethod
    def add(self, a: Any, b: Any) -> Any:
        """Elementwise ``a + b`` over scalars or broadcastable arrays."""
        ...

    @abstractmethod
    def subtract(self, a: Any, b: Any) -> Any:
        """Elementwise ``a - b`` over scalars or broadcastable arrays."""
        ...

    @abstractmethod
    def multiply(self, a: Any, b: Any) -> Any:
        """Elementwise ``a * b`` over scalars or broadcastable arrays."""
        ...

    # ------------------------------------------------------------------
    # Storage helpers
    # ------------------------------------------------------------------
    def zeros(self, shape: tuple[int, ...]) -> np.ndarray:
        """
        Allocate zero-initialized host storage for this element type.

        Object-dtype storage is filled with integer zeros so host arithmetic
        on untouched cells still works.
        """
        if self.dtype.hasobject:
            out = np.empty(shape, dtype=self.dtype)
            out.fill(0)
            return out
        return np.zeros(shape, dtype=self.dtype)

    def format_value(self, value: Any) -> str:
        return str(value)

    def c_expression(self, op: str, a: str, b: str) -> str:
        """
        Render the C expression for a binary operation.

        Parameters
        ----------
        op : str
            One of "add", "subtract", "multiply".
        a, b : str
            C expressions for the operands.

        Returns
        -------
        str
            The rendered expression.
        """
        template = {
            "add": self.c_add,
            "subtract": self.c_subtract,
            "multiply": self.c_multiply,
        }[op]
        return template.format(a=a, b=b)

    def apply(self, op: str, a: Any, b: Any) -> Any:
        return getattr(self, op)(a, b)

    # ------------------------------------------------------------------
    # Identity
    # ------------------------------------------------------------------
    def __eq__(self, other: object) -> bool:
        if not isinstance(other, ElementOperator):
            return NotImplemented
        return (type(self), self.name, self.dtype) == (
            type(other),
            other.name,
            other.dtype,
        )

    def __hash__(self) -> int:
        return hash((type(self).__name__, self.name, self.dtype.str))

    def __repr__(self) -> str:
        return f"{type(self).__name__}('{self.name}')"

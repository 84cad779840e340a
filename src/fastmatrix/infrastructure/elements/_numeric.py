"""
Built-in element operators.

This module provides the default element capabilities:

- `INT32`, `INT64`, `FLOAT32`, `FLOAT64`: fixed-width numeric scalars usable
  on every backend, including device kernels.
- `PYOBJECT`: arbitrary Python objects combined with their own ``+``, ``-``
  and ``*`` operators. Host backends only.

Host arithmetic uses NumPy ufuncs with an explicit loop dtype so results keep
the element's storage type (integers wrap on overflow, as they do on device).
"""

from __future__ import annotations

from typing import Any

import numpy as np

from ._base import ElementOperator


class NumericOperator(ElementOperator):
    """
    Element operator for a fixed-width NumPy scalar type.

    Parameters
    ----------
    name : str
        Registry name (e.g., "float32").
    dtype : Any
        NumPy scalar type or dtype.
    c_type : str
        C type name used in kernel source. 64-bit integers use the
        `fm_long` typedef emitted by every kernel dialect prelude.
    """

    def __init__(self, name: str, dtype: Any, c_type: str) -> None:
        super().__init__(name, dtype)
        self.c_type = c_type

    def add(self, a: Any, b: Any) -> Any:
        return np.add(a, b, dtype=self.dtype)

    def subtract(self, a: Any, b: Any) -> Any:
        return np.subtract(a, b, dtype=self.dtype)

    def multiply(self, a: Any, b: Any) -> Any:
        return np.multiply(a, b, dtype=self.dtype)


class PyObjectOperator(ElementOperator):
    """
    Host-only element operator for arbitrary Python objects.

    Values are stored in object arrays and combined through their own Python
    operators, so any class defining ``__add__``, ``__sub__`` and ``__mul__``
    can populate a matrix. There is no device half: using this element with a
    compute device raises `UnsupportedElementTypeError`.
    """

    def __init__(self) -> None:
        super().__init__("object", object)

    def add(self, a: Any, b: Any) -> Any:
        return np.add(a, b, dtype=object)

    def subtract(self, a: Any, b: Any) -> Any:
        return np.subtract(a, b, dtype=object)

    def multiply(self, a: Any, b: Any) -> Any:
        return np.multiply(a, b, dtype=object)


INT32 = NumericOperator("int32", np.int32, "int")
INT64 = NumericOperator("int64", np.int64, "fm_long")
FLOAT32 = NumericOperator("float32", np.float32, "float")
FLOAT64 = NumericOperator("float64", np.float64, "double")
PYOBJECT = PyObjectOperator()

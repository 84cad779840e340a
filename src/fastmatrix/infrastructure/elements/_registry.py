"""
Element operator registry and resolution utilities.

Matrices accept a flexible element specification (a name, a NumPy dtype or
scalar type, a Python type, or an operator instance). This module maps those
specifications onto registered `ElementOperator` instances.

Design
------
- Operators are registered under their `name` in a class-level registry, and
  indexed by storage dtype so dtype-based lookups (e.g. `Matrix.from_array`
  on a record array) find custom element types.
- Built-ins (`int32`, `int64`, `float32`, `float64`, `object`) are registered
  at import time.
- Resolution fails loudly with the list of available names.

Usage example
-------------
    vector3 = FieldwiseOperator("vector3", np.dtype([...], align=True))
    register_element(vector3)
    m = Matrix(3, 3, element="vector3")
"""

from __future__ import annotations

from typing import Any, ClassVar, Dict, Optional

import numpy as np

from ._base import ElementOperator
from ._numeric import FLOAT32, FLOAT64, INT32, INT64, PYOBJECT


class ElementRegistry:
    """
    Registry of element operators, keyed by name and by storage dtype.
    """

    BY_NAME: ClassVar[Dict[str, ElementOperator]] = {}
    BY_DTYPE: ClassVar[Dict[np.dtype, ElementOperator]] = {}

    @classmethod
    def register(cls, element: ElementOperator, *, overwrite: bool = False) -> ElementOperator:
        """
        Register an element operator.

        Parameters
        ----------
        element : ElementOperator
            Operator to register.
        overwrite : bool
            If False (default), raises if the name is already registered with a
            different operator.

        Returns
        -------
        ElementOperator
            The registered operator (allows use as an expression).
        """
        if not isinstance(element, ElementOperator):
            raise TypeError(f"Expected an ElementOperator, got {type(element).__name__}")
        existing = cls.BY_NAME.get(element.name)
        if existing is not None and existing != element and not overwrite:
            raise ValueError(f"Element already registered: {element.name!r}")
        cls.BY_NAME[element.name] = element
        if overwrite or element.dtype not in cls.BY_DTYPE:
            cls.BY_DTYPE[element.dtype] = element
        return element

    @classmethod
    def available(cls) -> tuple[str, ...]:
        """Return registered element names (sorted)."""
        return tuple(sorted(cls.BY_NAME))

    @classmethod
    def resolve(cls, spec: Any = None) -> ElementOperator:
        """
        Resolve an element specification to a registered operator.

        Parameters
        ----------
        spec : Any
            - None: the default element (`float64`)
            - ElementOperator: returned unchanged
            - str: a registered element name
            - Python `int` / `float` / `object`: `int64` / `float64` / `object`
            - NumPy dtype or scalar type: the operator registered for that dtype

        Returns
        -------
        ElementOperator
            The resolved operator.

        Raises
        ------
        ValueError
            If no registered operator matches.
        """
        if spec is None:
            return FLOAT64
        if isinstance(spec, ElementOperator):
            return spec
        if isinstance(spec, str) and spec in cls.BY_NAME:
            return cls.BY_NAME[spec]
        if spec is int:
            return INT64
        if spec is float:
            return FLOAT64
        if spec is object:
            return PYOBJECT

        dtype: Optional[np.dtype]
        try:
            dtype = np.dtype(spec)
        except TypeError:
            dtype = None
        if dtype is not None:
            if dtype.hasobject and dtype.names is None:
                return PYOBJECT
            found = cls.BY_DTYPE.get(dtype)
            if found is not None:
                return found

        available = ", ".join(cls.available()) or "<none>"
        raise ValueError(f"Unsupported element type: {spec!r}. Available: {available}")


def register_element(element: ElementOperator, *, overwrite: bool = False) -> ElementOperator:
    return ElementRegistry.register(element, overwrite=overwrite)


def resolve_element(spec: Any = None) -> ElementOperator:
    return ElementRegistry.resolve(spec)


for _builtin in (INT32, INT64, FLOAT32, FLOAT64, PYOBJECT):
    ElementRegistry.register(_builtin)

"""
Element arithmetic capabilities.

This package provides the concrete element operators used by matrices and
backends:

- ``ElementOperator``      abstract base for custom element types
- ``INT32`` / ``INT64`` / ``FLOAT32`` / ``FLOAT64``   device-capable scalars
- ``PYOBJECT``             host-only arbitrary Python objects
- ``FieldwiseOperator``    device-capable record types (fieldwise arithmetic)
- ``register_element`` / ``resolve_element``   registry helpers
"""

from ._base import ElementOperator
from ._numeric import (
    FLOAT32,
    FLOAT64,
    INT32,
    INT64,
    PYOBJECT,
    NumericOperator,
    PyObjectOperator,
)
from ._fieldwise import FieldwiseOperator
from ._registry import ElementRegistry, register_element, resolve_element

__all__ = [
    ElementOperator.__name__,
    NumericOperator.__name__,
    PyObjectOperator.__name__,
    FieldwiseOperator.__name__,
    ElementRegistry.__name__,
    "INT32",
    "INT64",
    "FLOAT32",
    "FLOAT64",
    "PYOBJECT",
    "register_element",
    "resolve_element",
]

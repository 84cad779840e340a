"""
Record (struct) element operators.

`FieldwiseOperator` turns a fixed-layout NumPy record dtype, such as a
three-component integer vector, into a device-capable element type whose
arithmetic is applied field by field. It generates:

- the C struct matching the record layout, and
- one helper function per operation (`<name>_add`, `<name>_subtract`,
  `<name>_multiply`) used by specialized kernels.

Custom semantics (e.g., a cross product for multiply) can be provided by
subclassing and overriding both the host method and the matching C fragment.
"""

from __future__ import annotations

import re
from typing import Any, Callable

import numpy as np

from ._base import ElementOperator

_C_FIELD_TYPES = {
    np.dtype(np.int32): "int",
    np.dtype(np.int64): "fm_long",
    np.dtype(np.float32): "float",
    np.dtype(np.float64): "double",
}

_IDENTIFIER = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")

_C_OPERATORS = {"add": "+", "subtract": "-", "multiply": "*"}


def _c_layout_matches(dtype: np.dtype) -> bool:
    """
    Check that a record dtype has the same layout as the equivalent C struct.

    Parameters
    ----------
    dtype : np.dtype
        Record dtype with scalar fields.

    Returns
    -------
    bool
        True when every field offset and the total size follow natural C
        alignment rules.
    """
    offset = 0
    max_align = 1
    for name in dtype.names:
        field_dtype, field_offset = dtype.fields[name][:2]
        align = field_dtype.itemsize
        max_align = max(max_align, align)
        offset = -(-offset // align) * align
        if field_offset != offset:
            return False
        offset += field_dtype.itemsize
    size = -(-offset // max_align) * max_align
    return size == dtype.itemsize


class FieldwiseOperator(ElementOperator):
    """
    Device-capable element operator for a record dtype, applied per field.

    Parameters
    ----------
    name : str
        Element name; also used as the C struct name, so it must be a valid
        C identifier.
    dtype : Any
        Record dtype whose fields are int32/int64/float32/float64 scalars laid
        out with natural C alignment (``np.dtype([...], align=True)`` always
        qualifies).

    Raises
    ------
    ValueError
        If the name is not a C identifier, the dtype has no fields, a field has
        an unsupported type, or the layout does not match the C struct.
    """

    def __init__(self, name: str, dtype: Any) -> None:
        super().__init__(name, dtype)
        if not _IDENTIFIER.match(self.name):
            raise ValueError(f"Element name must be a C identifier, got {name!r}")
        if not self.dtype.names:
            raise ValueError(f"FieldwiseOperator requires a record dtype, got {self.dtype}")

        fields = []
        for field_name in self.dtype.names:
            field_dtype = self.dtype.fields[field_name][0]
            c_field = _C_FIELD_TYPES.get(np.dtype(field_dtype))
            if c_field is None:
                raise ValueError(
                    f"Field '{field_name}' has unsupported dtype {field_dtype}; "
                    "expected int32, int64, float32 or float64."
                )
            fields.append((field_name, c_field))

        if not _c_layout_matches(self.dtype):
            raise ValueError(
                f"Record dtype {self.dtype} does not match the C struct layout; "
                "construct it with align=True."
            )

        self._fields = tuple(fields)
        self.c_type = self.name
        self.c_declaration = self._render_declaration()
        self.c_add = self.name + "_add({a}, {b})"
        self.c_subtract = self.name + "_subtract({a}, {b})"
        self.c_multiply = self.name + "_multiply({a}, {b})"

    def _render_declaration(self) -> str:
        members = " ".join(f"{c_field} {field};" for field, c_field in self._fields)
        lines = [f"typedef struct {{ {members} }} {self.name};"]
        for op, symbol in _C_OPERATORS.items():
            body = " ".join(
                f"r.{field} = a.{field} {symbol} b.{field};" for field, _ in self._fields
            )
            lines.append(
                f"FM_DEVICE_FN {self.name} {self.name}_{op}({self.name} a, {self.name} b) "
                f"{{ {self.name} r; {body} return r; }}"
            )
        return "\n".join(lines)

    def _fieldwise(self, ufunc: Callable, a: Any, b: Any) -> Any:
        a = np.asarray(a, dtype=self.dtype)
        b = np.asarray(b, dtype=self.dtype)
        out = np.empty(np.broadcast(a, b).shape, dtype=self.dtype)
        for field, _ in self._fields:
            out[field] = ufunc(a[field], b[field])
        if out.ndim == 0:
            return out[()]
        return out

    def add(self, a: Any, b: Any) -> Any:
        return self._fieldwise(np.add, a, b)

    def subtract(self, a: Any, b: Any) -> Any:
        return self._fieldwise(np.subtract, a, b)

    def multiply(self, a: Any, b: Any) -> Any:
        return self._fieldwise(np.multiply, a, b)

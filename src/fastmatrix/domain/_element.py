"""
Element arithmetic capability contract.

An element type participates in matrix operations through an operator object
that supplies its arithmetic twice:

- on the host, as vectorized functions over NumPy arrays (`add`, `subtract`,
  `multiply`), and
- on a device, as C source fragments (`c_type`, `c_declaration`, `c_add`,
  `c_subtract`, `c_multiply`) spliced into kernel source when a kernel is
  specialized for that element type.

Device kernels cannot call back into host-side dynamic dispatch, so the device
half of the capability is resolved once per (operation, element type) pair at
kernel specialization time. Element types without a device half are host-only.
"""

from __future__ import annotations

from typing import Any, Optional, Protocol, runtime_checkable

import numpy as np


@runtime_checkable
class ElementLike(Protocol):
    """
    Duck-typed element arithmetic capability.

    Notes
    -----
    - `dtype` fixes the host storage layout. Device-capable elements must use
      a dtype without object references.
    - `c_add` / `c_subtract` / `c_multiply` are `str.format` templates using
      the `{a}` and `{b}` placeholders.
    """

    name: str
    dtype: np.dtype
    c_type: Optional[str]
    c_declaration: str
    c_add: str
    c_subtract: str
    c_multiply: str

    @property
    def device_compatible(self) -> bool: ...

    def add(self, a: Any, b: Any) -> Any: ...
    def subtract(self, a: Any, b: Any) -> Any: ...
    def multiply(self, a: Any, b: Any) -> Any: ...

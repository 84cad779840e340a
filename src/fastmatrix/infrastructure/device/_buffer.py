"""
Device buffer ownership.

`DeviceBuffer` wraps a single device allocation made through a
`DeviceContext`. It records the element type and length the allocation was
sized for, so transfers and kernel launches never need to re-derive them, and
it frees the underlying memory exactly once.

Lifetime
--------
Buffers are released deterministically via `release()`, normally by the
`BufferedMatrix` that owns them (explicitly or on context-manager exit). There
is no garbage-collection finalizer: an unreleased buffer stays accounted
against the device until its context is disposed.

Thread safety
-------------
Release is protected by an internal lock, so concurrent `release()` calls free
the allocation once.
"""

from __future__ import annotations

from dataclasses import dataclass, field
import threading
from typing import Any

import numpy as np

from ...domain.device._device_protocol import DeviceLike
from ..elements._base import ElementOperator


@dataclass
class DeviceBuffer:
    """
    Owned device allocation holding `length` elements of `element`.

    Attributes
    ----------
    device : DeviceLike
        Device that performed the allocation.
    native : Any
        Backend-native handle (NumPy array, CuPy memory, OpenCL buffer).
    length : int
        Number of elements.
    element : ElementOperator
        Element type of the stored values.
    """

    device: DeviceLike
    native: Any
    length: int
    element: ElementOperator

    _released: bool = False
    _lock: threading.Lock = field(default_factory=threading.Lock, repr=False)

    @property
    def dtype(self) -> np.dtype:
        return self.element.dtype

    @property
    def nbytes(self) -> int:
        return int(self.length) * self.element.itemsize

    @property
    def released(self) -> bool:
        return self._released

    def release(self) -> None:
        """
        Free the device allocation.

        Notes
        -----
        - Idempotent: calls after the first have no effect.
        - After release, `native` is None and the buffer must not be used.
        """
        with self._lock:
            if self._released:
                return
            self._released = True
            native, self.native = self.native, None
        self.device.free(native, self.nbytes)

    def __enter__(self) -> "DeviceBuffer":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.release()

"""
Shared device implementation.

`BaseDevice` implements the bookkeeping every concrete device needs: the
descriptor/name pair and byte-accurate accounting of live allocations. The
accounting backs `available_memory()`, which `DeviceContext.allocate` checks
(together with `max_allocation_size`) before any allocation or transfer is
issued.

Concrete devices implement the `_allocate_native` / `_free_native` hooks and
the transfer, compile and launch primitives of `DeviceLike`. A native
allocation failure surfaces as `DeviceOutOfMemoryError`: `allocate`
translates `MemoryError`, and backends translate their own error types in
`_allocate_native` with `_out_of_memory`.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
import threading
from typing import Any

import numpy as np

from ...domain._errors import DeviceOutOfMemoryError
from ...domain.device._device import DeviceDescriptor


class BaseDevice(ABC):
    """
    Base class for concrete devices.

    Parameters
    ----------
    descriptor : DeviceDescriptor
        Identity of the device.
    name : str
        Human-readable device name.
    """

    def __init__(self, descriptor: DeviceDescriptor, name: str) -> None:
        self.descriptor = descriptor
        self.name = name
        self._allocated = 0
        self._alloc_lock = threading.Lock()

    # ------------------------------------------------------------------
    # Memory accounting
    # ------------------------------------------------------------------
    @property
    @abstractmethod
    def memory_size(self) -> int: ...

    @property
    def allocated_bytes(self) -> int:
        return self._allocated

    def available_memory(self) -> int:
        """
        Bytes that can still be allocated on this device.

        Returns
        -------
        int
            `memory_size` minus the bytes held by live allocations.
        """
        return max(0, self.memory_size - self._allocated)

    @property
    def max_allocation_size(self) -> int:
        """Largest single allocation the device accepts, in bytes."""
        return self.memory_size

    def _out_of_memory(self, nbytes: int) -> DeviceOutOfMemoryError:
        return DeviceOutOfMemoryError(
            nbytes, self.available_memory(), str(self.descriptor)
        )

    def allocate(self, length: int, dtype: np.dtype) -> Any:
        dtype = np.dtype(dtype)
        nbytes = int(length) * dtype.itemsize
        try:
            native = self._allocate_native(int(length), dtype, nbytes)
        except DeviceOutOfMemoryError:
            raise
        except MemoryError as e:
            raise self._out_of_memory(nbytes) from e
        with self._alloc_lock:
            self._allocated += nbytes
        return native

    def free(self, native: Any, nbytes: int) -> None:
        self._free_native(native)
        with self._alloc_lock:
            self._allocated = max(0, self._allocated - int(nbytes))

    @abstractmethod
    def _allocate_native(self, length: int, dtype: np.dtype, nbytes: int) -> Any: ...

    def _free_native(self, native: Any) -> None:
        # Most backends free on garbage collection of the handle.
        return None

    def release(self) -> None:
        with self._alloc_lock:
            self._allocated = 0

    def __repr__(self) -> str:
        return f"{type(self).__name__}('{self.descriptor}', name={self.name!r})"

"""
Device contracts for fastmatrix.

This module defines the duck-typed contract an accelerator backend must satisfy
to be driven by `DeviceContext`, `BufferedMatrix` and `AcceleratedOperator`.
It deliberately standardizes no device API: any GPU, SIMD or emulated backend
that provides these members can be substituted.

Contract summary
----------------
- Queues (streams) are ordered pipelines of device work that execute
  asynchronously relative to the host. `synchronize()` is the only blocking
  point on a queue.
- Buffers are allocated by the device and copied to/from host memory through
  a queue. Host->device copies are non-blocking.
- Kernels are compiled (specialized) from a `KernelSpec` and launched over a
  1-D grid of groups.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Protocol, runtime_checkable

import numpy as np

from ._device import DeviceDescriptor

if TYPE_CHECKING:
    from ...infrastructure.kernels._spec import KernelSpec, LaunchConfig


@runtime_checkable
class QueueLike(Protocol):
    """
    Ordered, asynchronous execution queue owned by a single consumer.
    """

    def synchronize(self) -> None: ...
    def release(self) -> None: ...


@runtime_checkable
class DeviceLike(Protocol):
    """
    Duck-typed compute device contract.

    Notes
    -----
    `allocate` returns a backend-native handle; ownership and accounting are
    wrapped by the infrastructure `DeviceBuffer`.
    """

    descriptor: DeviceDescriptor
    name: str

    @property
    def max_group_size(self) -> int: ...

    @property
    def has_shared_memory(self) -> bool: ...

    @property
    def shared_memory_per_group(self) -> int: ...

    @property
    def memory_size(self) -> int: ...

    @property
    def max_allocation_size(self) -> int: ...

    def available_memory(self) -> int: ...
    def create_queue(self) -> QueueLike: ...
    def allocate(self, length: int, dtype: np.dtype) -> Any: ...
    def free(self, native: Any, nbytes: int) -> None: ...

    def copy_to_device_async(
        self, queue: QueueLike, native: Any, host: np.ndarray
    ) -> None: ...

    def copy_to_host(
        self, queue: QueueLike, native: Any, length: int, dtype: np.dtype
    ) -> np.ndarray: ...

    def compile(self, spec: "KernelSpec") -> Any: ...

    def launch(
        self,
        queue: QueueLike,
        kernel: Any,
        config: "LaunchConfig",
        *args: Any,
    ) -> None: ...

    def release(self) -> None: ...

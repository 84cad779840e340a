"""
Host-emulated compute device.

`EmulatedDevice` is the always-present fallback device. Device memory is plain
NumPy storage and kernels are the NumPy group-by-group equivalents produced by
`build_emulated_kernel`. Each queue is a single-worker thread pool, so work
submitted to one queue runs in submission order and off the calling thread,
just like a device stream.

Its capabilities (threads per group, group-local memory, total memory) come
from `DeviceConfig`, which lets tests drive both kernel variants and the
out-of-memory path without accelerator hardware.
"""

from __future__ import annotations

from concurrent.futures import Future, ThreadPoolExecutor, wait
import threading
from typing import Any, Callable, List

import numpy as np

from ...domain.device._device import DeviceDescriptor
from ..kernels._emulated import build_emulated_kernel
from ..kernels._spec import KernelSpec, LaunchConfig
from ._base import BaseDevice
from ._config import DeviceConfig


class EmulatedQueue:
    """
    In-order asynchronous work queue backed by one worker thread.

    Notes
    -----
    - `submit` never blocks; `synchronize` waits for everything submitted so
      far and re-raises the first failure.
    - `release` drains the queue and stops the worker; it is idempotent.
    """

    def __init__(self) -> None:
        self._executor = ThreadPoolExecutor(
            max_workers=1, thread_name_prefix="fastmatrix-emulated-queue"
        )
        self._pending: List[Future] = []
        self._lock = threading.Lock()
        self._released = False

    def submit(self, fn: Callable[..., Any], *args: Any) -> Future:
        with self._lock:
            if self._released:
                raise RuntimeError("Cannot submit work to a released queue.")
            future = self._executor.submit(fn, *args)
            self._pending.append(future)
            return future

    def synchronize(self) -> None:
        with self._lock:
            pending, self._pending = self._pending, []
        wait(pending)
        for future in pending:
            future.result()

    def release(self) -> None:
        with self._lock:
            if self._released:
                return
            self._released = True
        self.synchronize()
        self._executor.shutdown(wait=True)


class EmulatedDevice(BaseDevice):
    """
    NumPy-backed device implementing the full device contract.

    Parameters
    ----------
    config : DeviceConfig
        Source of the emulated capabilities.
    """

    def __init__(self, config: DeviceConfig) -> None:
        super().__init__(DeviceDescriptor("emulated"), "fastmatrix emulated device")
        self._group_size = int(config.emulated_group_size)
        self._has_shared = bool(config.emulated_shared_memory)
        self._shared_bytes = int(config.emulated_shared_bytes)
        self._memory_size = int(config.emulated_memory_bytes)

    @property
    def max_group_size(self) -> int:
        return self._group_size

    @property
    def has_shared_memory(self) -> bool:
        return self._has_shared

    @property
    def shared_memory_per_group(self) -> int:
        return self._shared_bytes if self._has_shared else 0

    @property
    def memory_size(self) -> int:
        return self._memory_size

    def create_queue(self) -> EmulatedQueue:
        return EmulatedQueue()

    def _allocate_native(self, length: int, dtype: np.dtype, nbytes: int) -> np.ndarray:
        return np.empty(length, dtype=dtype)

    def copy_to_device_async(
        self, queue: EmulatedQueue, native: np.ndarray, host: np.ndarray
    ) -> None:
        queue.submit(np.copyto, native, host.reshape(-1))

    def copy_to_host(
        self, queue: EmulatedQueue, native: np.ndarray, length: int, dtype: np.dtype
    ) -> np.ndarray:
        out = np.empty(length, dtype=dtype)
        queue.submit(np.copyto, out, native[:length])
        queue.synchronize()
        return out

    def compile(self, spec: KernelSpec) -> Callable[..., None]:
        return build_emulated_kernel(spec)

    def launch(
        self,
        queue: EmulatedQueue,
        kernel: Callable[..., None],
        config: LaunchConfig,
        *args: Any,
    ) -> None:
        queue.submit(kernel, config, *args)

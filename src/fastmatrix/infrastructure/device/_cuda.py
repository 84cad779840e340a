"""
CUDA device backed by CuPy.

Kernels are rendered in the CUDA dialect and compiled with NVRTC through
`cupy.RawKernel`. Fused multiply-add contraction is disabled so floating point
results round the same way as the host backends.

Device memory is held as raw byte arrays (`cupy.uint8`), which lets record
element types (structs) travel through the same transfer path as scalars.
Queues are non-blocking CUDA streams. Free memory is read from the driver, so
allocations by other processes are accounted for; blocks cached by CuPy's
memory pool count as free.

CuPy is imported lazily; the probe reports no candidates when it is not
installed.
"""

from __future__ import annotations

from typing import Any, List

import numpy as np

from ...domain.device._device import DeviceDescriptor
from ..kernels._sources import Dialect, render_source
from ..kernels._spec import KernelSpec, LaunchConfig
from ._base import BaseDevice

NVRTC_OPTIONS = ("--fmad=false",)


def probe_cuda() -> List[DeviceDescriptor]:
    """
    List the CUDA devices visible to this process.

    Returns
    -------
    List[DeviceDescriptor]
        One descriptor per device (empty when CuPy is not installed or no
        device is present).
    """
    try:
        import cupy as cp  # type: ignore
    except ImportError:
        return []

    try:
        count = int(cp.cuda.runtime.getDeviceCount())
    except cp.cuda.runtime.CUDARuntimeError:
        # Raised when no driver or no device is present.
        return []
    return [DeviceDescriptor(f"cuda:{i}") for i in range(count)]


class CudaQueue:
    """
    Wrapper around a non-blocking CUDA stream.

    Host arrays handed to asynchronous copies are kept alive until the next
    `synchronize()`.
    """

    def __init__(self, cp: Any, device_index: int) -> None:
        with cp.cuda.Device(device_index):
            self.stream = cp.cuda.Stream(non_blocking=True)
        self._keepalive: List[np.ndarray] = []

    def hold(self, host: np.ndarray) -> None:
        self._keepalive.append(host)

    def synchronize(self) -> None:
        self.stream.synchronize()
        self._keepalive.clear()

    def release(self) -> None:
        self.synchronize()


class CudaDevice(BaseDevice):
    """
    CUDA device implementing the device contract.

    Parameters
    ----------
    descriptor : DeviceDescriptor
        A `cuda:<index>` descriptor.

    Raises
    ------
    ImportError
        If CuPy is not installed.
    """

    def __init__(self, descriptor: DeviceDescriptor) -> None:
        import cupy as cp  # type: ignore

        self.cp = cp
        self.index = int(descriptor.index or 0)
        self._device = cp.cuda.Device(self.index)
        props = cp.cuda.runtime.getDeviceProperties(self.index)

        name = props.get("name", b"CUDA device")
        if isinstance(name, bytes):
            name = name.decode(errors="replace")
        super().__init__(descriptor, str(name))

        self._group_size = int(props["maxThreadsPerBlock"])
        self._shared_bytes = int(props.get("sharedMemPerBlock", 0))
        self._memory_size = int(props["totalGlobalMem"])

    @property
    def max_group_size(self) -> int:
        return self._group_size

    @property
    def has_shared_memory(self) -> bool:
        return self._shared_bytes > 0

    @property
    def shared_memory_per_group(self) -> int:
        return self._shared_bytes

    @property
    def memory_size(self) -> int:
        return self._memory_size

    def create_queue(self) -> CudaQueue:
        return CudaQueue(self.cp, self.index)

    def available_memory(self) -> int:
        with self._device:
            free, _total = self.cp.cuda.runtime.memGetInfo()
            pooled = self.cp.get_default_memory_pool().free_bytes()
        return min(super().available_memory(), int(free) + int(pooled))

    def _allocate_native(self, length: int, dtype: np.dtype, nbytes: int) -> Any:
        try:
            with self._device:
                return self.cp.empty(max(nbytes, 1), dtype=self.cp.uint8)
        except self.cp.cuda.memory.OutOfMemoryError as e:
            raise self._out_of_memory(nbytes) from e

    def copy_to_device_async(self, queue: CudaQueue, native: Any, host: np.ndarray) -> None:
        host = np.ascontiguousarray(host)
        if host.nbytes == 0:
            return
        queue.hold(host)
        with self._device:
            native.data.copy_from_host_async(
                host.ctypes.data, host.nbytes, stream=queue.stream
            )

    def copy_to_host(
        self, queue: CudaQueue, native: Any, length: int, dtype: np.dtype
    ) -> np.ndarray:
        out = np.empty(length, dtype=dtype)
        if out.nbytes:
            with self._device:
                native.data.copy_to_host_async(
                    out.ctypes.data, out.nbytes, stream=queue.stream
                )
        queue.synchronize()
        return out

    def compile(self, spec: KernelSpec) -> Any:
        source = render_source(spec, Dialect.CUDA)
        with self._device:
            kernel = self.cp.RawKernel(source, spec.name, options=NVRTC_OPTIONS)
            kernel.compile()
        return kernel

    def launch(
        self, queue: CudaQueue, kernel: Any, config: LaunchConfig, *args: Any
    ) -> None:
        native_args = tuple(np.int32(a) if isinstance(a, int) else a for a in args)
        with self._device, queue.stream:
            kernel((config.grid_size,), (config.group_size,), native_args)

    def release(self) -> None:
        with self._device:
            self.cp.get_default_memory_pool().free_all_blocks()
        super().release()

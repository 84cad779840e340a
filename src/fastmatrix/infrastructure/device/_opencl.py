"""
OpenCL GPU device backed by PyOpenCL.

Only devices of GPU type are considered, in platform order. Kernels are
rendered in the OpenCL C dialect and built per specialization; double
precision kernels enable `cl_khr_fp64`.

OpenCL drivers may defer backing a buffer until its first use. Each new buffer
is therefore zero-filled on a private queue before `allocate` returns, so an
exhausted device fails at allocation rather than at the first transfer.

PyOpenCL is imported lazily; the probe reports no candidates when it is not
installed or no platform is registered.
"""

from __future__ import annotations

from typing import Any, List, NamedTuple

import numpy as np

from ...domain.device._device import DeviceDescriptor
from ..kernels._sources import Dialect, render_source
from ..kernels._spec import KernelSpec, LaunchConfig
from ._base import BaseDevice


def _gpu_devices(cl: Any) -> List[Any]:
    try:
        platforms = cl.get_platforms()
    except cl.LogicError:
        # PLATFORM_NOT_FOUND_KHR: no ICD loader entries.
        return []
    devices: List[Any] = []
    for platform in platforms:
        try:
            devices.extend(platform.get_devices(device_type=cl.device_type.GPU))
        except cl.RuntimeError:
            # DEVICE_NOT_FOUND on platforms without GPUs.
            continue
    return devices


def probe_opencl() -> List[DeviceDescriptor]:
    """
    List the OpenCL GPU devices visible to this process.

    Returns
    -------
    List[DeviceDescriptor]
        One descriptor per GPU device across all platforms.
    """
    try:
        import pyopencl as cl  # type: ignore
    except ImportError:
        return []
    return [DeviceDescriptor(f"opencl:{i}") for i in range(len(_gpu_devices(cl)))]


class OpenClKernel(NamedTuple):
    program: Any
    name: str


class OpenClQueue:
    """Wrapper around an in-order `pyopencl.CommandQueue`."""

    def __init__(self, cl: Any, context: Any, device: Any) -> None:
        self.native = cl.CommandQueue(context, device)
        self._keepalive: List[np.ndarray] = []

    def hold(self, host: np.ndarray) -> None:
        self._keepalive.append(host)

    def synchronize(self) -> None:
        self.native.finish()
        self._keepalive.clear()

    def release(self) -> None:
        self.synchronize()


class OpenClDevice(BaseDevice):
    """
    OpenCL GPU device implementing the device contract.

    Parameters
    ----------
    descriptor : DeviceDescriptor
        An `opencl:<index>` descriptor; the index counts GPU devices across
        platforms.

    Raises
    ------
    ImportError
        If PyOpenCL is not installed.
    LookupError
        If no GPU device has that index.
    """

    def __init__(self, descriptor: DeviceDescriptor) -> None:
        import pyopencl as cl  # type: ignore

        self.cl = cl
        devices = _gpu_devices(cl)
        index = int(descriptor.index or 0)
        if index >= len(devices):
            raise LookupError(
                f"OpenCL GPU device {index} not found ({len(devices)} present)"
            )
        self._cl_device = devices[index]
        super().__init__(descriptor, str(self._cl_device.name).strip())
        self._context = cl.Context([self._cl_device])

        self._group_size = int(self._cl_device.max_work_group_size)
        self._has_shared = (
            self._cl_device.local_mem_type == cl.device_local_mem_type.LOCAL
        )
        self._shared_bytes = int(self._cl_device.local_mem_size)
        self._memory_size = int(self._cl_device.global_mem_size)
        self._max_allocation = int(self._cl_device.max_mem_alloc_size)
        self._alloc_queue = cl.CommandQueue(self._context, self._cl_device)

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

    @property
    def max_allocation_size(self) -> int:
        return self._max_allocation

    def create_queue(self) -> OpenClQueue:
        return OpenClQueue(self.cl, self._context, self._cl_device)

    def _allocate_native(self, length: int, dtype: np.dtype, nbytes: int) -> Any:
        cl = self.cl
        size = max(nbytes, 1)
        if size > self._max_allocation:
            raise self._out_of_memory(nbytes)
        try:
            buffer = cl.Buffer(self._context, cl.mem_flags.READ_WRITE, size=size)
        except cl.LogicError as e:
            if e.code != cl.status_code.INVALID_BUFFER_SIZE:
                raise
            raise self._out_of_memory(nbytes) from e
        except cl.MemoryError as e:
            raise self._out_of_memory(nbytes) from e
        try:
            cl.enqueue_fill_buffer(
                self._alloc_queue, buffer, np.uint8(0), 0, size
            ).wait()
        except cl.MemoryError as e:
            buffer.release()
            raise self._out_of_memory(nbytes) from e
        return buffer

    def _free_native(self, native: Any) -> None:
        native.release()

    def copy_to_device_async(
        self, queue: OpenClQueue, native: Any, host: np.ndarray
    ) -> None:
        host = np.ascontiguousarray(host)
        if host.nbytes == 0:
            return
        queue.hold(host)
        self.cl.enqueue_copy(queue.native, native, host, is_blocking=False)

    def copy_to_host(
        self, queue: OpenClQueue, native: Any, length: int, dtype: np.dtype
    ) -> np.ndarray:
        out = np.empty(length, dtype=dtype)
        if out.nbytes:
            self.cl.enqueue_copy(queue.native, out, native, is_blocking=False)
        queue.synchronize()
        return out

    def compile(self, spec: KernelSpec) -> OpenClKernel:
        source = render_source(spec, Dialect.OPENCL)
        program = self.cl.Program(self._context, source).build()
        return OpenClKernel(program, spec.name)

    def launch(
        self, queue: OpenClQueue, kernel: OpenClKernel, config: LaunchConfig, *args: Any
    ) -> None:
        native_args = tuple(np.int32(a) if isinstance(a, int) else a for a in args)
        # cl.Kernel carries argument state; one per launch.
        cl_kernel = self.cl.Kernel(kernel.program, kernel.name)
        cl_kernel(
            queue.native,
            (config.total_threads,),
            (config.group_size,),
            *native_args,
        )

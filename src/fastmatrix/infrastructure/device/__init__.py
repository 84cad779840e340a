"""
Compute devices, device buffers and the device context.
"""

from ._config import DeviceConfig
from ._buffer import DeviceBuffer
from ._base import BaseDevice
from ._emulated import EmulatedDevice, EmulatedQueue
from ._cuda import CudaDevice, probe_cuda
from ._opencl import OpenClDevice, probe_opencl
from ._selection import bind_device, probe_candidates, select_device
from ._context import DeviceContext

__all__ = [
    DeviceConfig.__name__,
    DeviceBuffer.__name__,
    BaseDevice.__name__,
    EmulatedDevice.__name__,
    EmulatedQueue.__name__,
    CudaDevice.__name__,
    OpenClDevice.__name__,
    DeviceContext.__name__,
    "probe_cuda",
    "probe_opencl",
    "probe_candidates",
    "bind_device",
    "select_device",
]

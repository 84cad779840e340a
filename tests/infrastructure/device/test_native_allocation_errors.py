"""
Native allocation failures surface as `DeviceOutOfMemoryError`.

The CUDA and OpenCL devices are driven through stand-in CuPy and PyOpenCL
modules, so these checks run without GPU hardware.
"""

import sys
import unittest
from unittest import mock

import numpy as np

from fastmatrix.domain._errors import DeviceOutOfMemoryError
from fastmatrix.domain.device._device import DeviceDescriptor
from fastmatrix.infrastructure.device import DeviceConfig, DeviceContext
from fastmatrix.infrastructure.device._cuda import CudaDevice
from fastmatrix.infrastructure.device._emulated import EmulatedDevice
from fastmatrix.infrastructure.device._opencl import OpenClDevice
from fastmatrix.infrastructure.elements import INT32

MiB = 1 << 20
GiB = 1 << 30


class FakeClError(Exception):
    def __init__(self, code=None):
        super().__init__(code)
        self.code = code


def fake_cupy():
    cp = mock.MagicMock(name="cupy")
    cp.cuda.memory.OutOfMemoryError = type("OutOfMemoryError", (Exception,), {})
    cp.cuda.runtime.getDeviceProperties.return_value = {
        "name": b"Fake CUDA",
        "maxThreadsPerBlock": 256,
        "sharedMemPerBlock": 48 * 1024,
        "totalGlobalMem": GiB,
    }
    cp.cuda.runtime.memGetInfo.return_value = (MiB, GiB)
    cp.get_default_memory_pool.return_value.free_bytes.return_value = 4096
    return cp


def fake_pyopencl():
    cl = mock.MagicMock(name="pyopencl")
    cl.LogicError = type("LogicError", (FakeClError,), {})
    cl.RuntimeError = type("RuntimeError", (FakeClError,), {})
    cl.MemoryError = type("MemoryError", (FakeClError,), {})
    gpu = mock.MagicMock(
        max_work_group_size=256,
        local_mem_size=32 * 1024,
        global_mem_size=GiB,
        max_mem_alloc_size=MiB,
    )
    gpu.name = "Fake OpenCL GPU"
    gpu.local_mem_type = cl.device_local_mem_type.LOCAL
    platform = mock.MagicMock()
    platform.get_devices.return_value = [gpu]
    cl.get_platforms.return_value = [platform]
    return cl


def context_on(device):
    with mock.patch(
        "fastmatrix.infrastructure.device._context.select_device",
        return_value=device,
    ):
        ctx = DeviceContext(DeviceConfig.emulated())
        ctx.device
    return ctx


class TestEmulatedAllocationErrors(unittest.TestCase):
    def test_host_memory_error_is_translated(self):
        with DeviceContext(DeviceConfig.emulated()) as ctx:
            with mock.patch.object(
                EmulatedDevice, "_allocate_native", side_effect=MemoryError
            ):
                with self.assertRaises(DeviceOutOfMemoryError) as caught:
                    ctx.allocate(4, INT32)
            self.assertEqual(caught.exception.requested, 16)
            self.assertEqual(ctx.device.allocated_bytes, 0)


class TestCudaAllocationErrors(unittest.TestCase):
    def setUp(self):
        self.cp = fake_cupy()
        with mock.patch.dict(sys.modules, {"cupy": self.cp}):
            self.device = CudaDevice(DeviceDescriptor("cuda:0"))
        self.ctx = context_on(self.device)

    def tearDown(self):
        self.ctx.dispose()

    def test_free_memory_comes_from_the_driver(self):
        self.assertEqual(self.device.available_memory(), MiB + 4096)

    def test_request_beyond_free_memory_fails_before_allocating(self):
        with self.assertRaises(DeviceOutOfMemoryError) as caught:
            self.ctx.allocate(MiB, INT32)
        self.assertEqual(caught.exception.available, MiB + 4096)
        self.cp.empty.assert_not_called()

    def test_native_out_of_memory_is_translated(self):
        self.cp.empty.side_effect = self.cp.cuda.memory.OutOfMemoryError("oom")
        with self.assertRaises(DeviceOutOfMemoryError) as caught:
            self.ctx.allocate(16, INT32)
        self.assertEqual(caught.exception.requested, 64)
        self.assertEqual(caught.exception.device, "cuda:0")
        self.assertEqual(self.device.allocated_bytes, 0)


class TestOpenClAllocationErrors(unittest.TestCase):
    def setUp(self):
        self.cl = fake_pyopencl()
        with mock.patch.dict(sys.modules, {"pyopencl": self.cl}):
            self.device = OpenClDevice(DeviceDescriptor("opencl:0"))
        self.ctx = context_on(self.device)

    def tearDown(self):
        self.ctx.dispose()

    def test_single_allocation_limit(self):
        self.assertEqual(self.device.max_allocation_size, MiB)
        with self.assertRaises(DeviceOutOfMemoryError) as caught:
            self.ctx.allocate(MiB // 4 + 1, INT32)
        self.assertEqual(caught.exception.available, MiB)
        with self.assertRaises(DeviceOutOfMemoryError):
            self.device.allocate(MiB // 4 + 1, np.int32)
        self.cl.Buffer.assert_not_called()

    def test_invalid_buffer_size_is_translated(self):
        self.cl.Buffer.side_effect = self.cl.LogicError(
            self.cl.status_code.INVALID_BUFFER_SIZE
        )
        with self.assertRaises(DeviceOutOfMemoryError):
            self.ctx.allocate(16, INT32)

    def test_other_logic_errors_propagate(self):
        self.cl.Buffer.side_effect = self.cl.LogicError(
            self.cl.status_code.INVALID_CONTEXT
        )
        with self.assertRaises(self.cl.LogicError):
            self.ctx.allocate(16, INT32)

    def test_buffer_is_backed_at_allocation(self):
        buffer = self.ctx.allocate(16, INT32)
        self.assertIs(buffer.native, self.cl.Buffer.return_value)
        args = self.cl.enqueue_fill_buffer.call_args[0]
        self.assertIs(args[1], self.cl.Buffer.return_value)
        self.assertEqual(args[3:], (0, 64))
        buffer.release()

    def test_deferred_out_of_memory_is_translated(self):
        self.cl.enqueue_fill_buffer.side_effect = self.cl.MemoryError()
        with self.assertRaises(DeviceOutOfMemoryError):
            self.ctx.allocate(16, INT32)
        self.cl.Buffer.return_value.release.assert_called_once()
        self.assertEqual(self.device.allocated_bytes, 0)


if __name__ == "__main__":
    unittest.main()

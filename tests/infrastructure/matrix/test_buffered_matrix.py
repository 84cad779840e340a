import threading
import unittest

import numpy as np

from fastmatrix.domain._errors import (
    DeviceOutOfMemoryError,
    DeviceUnavailableError,
    UnsupportedElementTypeError,
)
from fastmatrix.infrastructure.device import DeviceConfig, DeviceContext
from fastmatrix.infrastructure.elements import INT32, PYOBJECT
from fastmatrix.infrastructure.matrix import BufferedMatrix, CopyState, Matrix


class TestBufferedMatrixCopyStates(unittest.TestCase):
    def setUp(self):
        self.ctx = DeviceContext(DeviceConfig.emulated(emulated_memory_bytes=1024))
        self.m = BufferedMatrix.from_matrix(
            Matrix.from_rows([[1, 2, 3], [4, 5, 6]], INT32), self.ctx
        )

    def tearDown(self):
        self.m.release()
        self.ctx.dispose()

    def _device_values(self):
        device = self.ctx.device
        flat = device.copy_to_host(
            self.ctx.default_queue, self.m.buffer.native, self.m.size, np.int32
        )
        return flat.reshape(self.m.shape)

    def test_construction_allocates_nothing(self):
        self.assertIs(self.m.copy_state, CopyState.NO_BUFFER)
        self.assertIsNone(self.m.buffer)
        self.assertFalse(self.ctx.is_bound)

    def test_upload_then_await(self):
        self.m.upload()
        self.assertIs(self.m.copy_state, CopyState.UPLOAD_PENDING)
        self.assertEqual(self.ctx.device.allocated_bytes, 24)
        self.m.await_upload()
        self.assertIs(self.m.copy_state, CopyState.SYNCED)
        np.testing.assert_array_equal(self._device_values(), self.m.to_numpy())

    def test_repeated_upload_is_a_noop(self):
        self.m.upload()
        buffer = self.m.buffer
        self.m.upload()
        self.assertIs(self.m.buffer, buffer)
        self.m.await_upload()
        self.m.upload()
        self.assertIs(self.m.copy_state, CopyState.SYNCED)
        self.assertEqual(self.ctx.device.allocated_bytes, 24)

    def test_await_without_upload_is_a_noop(self):
        self.m.await_upload()
        self.assertIs(self.m.copy_state, CopyState.NO_BUFFER)

    def test_write_while_pending_marks_stale(self):
        self.m.upload()
        self.m[0, 0] = 100
        self.assertIs(self.m.copy_state, CopyState.STALE)
        # The pending copy completed before the write landed.
        np.testing.assert_array_equal(self._device_values()[0], [1, 2, 3])

    def test_write_after_sync_marks_stale_and_reupload_refreshes(self):
        self.m.upload()
        self.m.await_upload()
        buffer = self.m.buffer
        self.m[1, 2] = 60
        self.assertIs(self.m.copy_state, CopyState.STALE)
        self.m.await_upload()
        self.assertIs(self.m.copy_state, CopyState.STALE)
        self.m.upload()
        self.m.await_upload()
        self.assertIs(self.m.copy_state, CopyState.SYNCED)
        self.assertIs(self.m.buffer, buffer)
        self.assertEqual(self._device_values()[1, 2], 60)

    def test_write_without_buffer_keeps_state(self):
        self.m[0, 0] = 7
        self.assertIs(self.m.copy_state, CopyState.NO_BUFFER)
        self.assertEqual(self.m[0, 0], 7)

    def test_release_frees_and_allows_reupload(self):
        self.m.upload()
        self.m.release()
        self.m.release()
        self.assertIs(self.m.copy_state, CopyState.NO_BUFFER)
        self.assertIsNone(self.m.buffer)
        self.assertIsNone(self.m.queue)
        self.assertEqual(self.ctx.device.allocated_bytes, 0)
        self.assertEqual(self.m[1, 1], 5)

        self.m.upload()
        self.m.await_upload()
        self.assertIs(self.m.copy_state, CopyState.SYNCED)

    def test_release_waits_for_pending_upload(self):
        self.m.upload()
        buffer = self.m.buffer
        queue = self.m.queue
        drain = queue.release
        seen = []

        def recording_release():
            seen.append((self.m.copy_state, buffer.released))
            drain()

        queue.release = recording_release
        self.m.release()
        self.assertEqual(seen, [(CopyState.UPLOAD_PENDING, False)])
        self.assertIs(self.m.copy_state, CopyState.NO_BUFFER)
        self.assertTrue(buffer.released)

    def test_upload_after_dispose_is_unavailable(self):
        self.m.upload()
        self.m.await_upload()
        self.ctx.dispose()
        with self.assertRaises(DeviceUnavailableError):
            self.m.upload()
        self.assertIs(self.m.copy_state, CopyState.SYNCED)

    def test_await_after_dispose_is_unavailable(self):
        self.m.upload()
        self.ctx.dispose()
        with self.assertRaises(DeviceUnavailableError):
            self.m.await_upload()
        self.m.release()
        self.assertIs(self.m.copy_state, CopyState.NO_BUFFER)

    def test_context_manager_releases(self):
        with BufferedMatrix(4, 4, INT32, self.ctx) as m:
            m.upload()
            self.assertEqual(self.ctx.device.allocated_bytes, 64)
        self.assertIs(m.copy_state, CopyState.NO_BUFFER)
        self.assertEqual(self.ctx.device.allocated_bytes, 0)

    def test_out_of_memory_leaves_no_buffer(self):
        big = BufferedMatrix(32, 32, INT32, self.ctx)
        with self.assertRaises(DeviceOutOfMemoryError):
            big.upload()
        self.assertIs(big.copy_state, CopyState.NO_BUFFER)
        self.assertIsNone(big.buffer)
        self.assertEqual(self.ctx.device.allocated_bytes, 0)

    def test_host_only_element_cannot_upload(self):
        m = BufferedMatrix(2, 2, PYOBJECT, self.ctx)
        with self.assertRaises(UnsupportedElementTypeError):
            m.upload()
        self.assertIs(m.copy_state, CopyState.NO_BUFFER)

    def test_equals_host_matrix_with_same_values(self):
        self.assertEqual(self.m, Matrix.from_rows([[1, 2, 3], [4, 5, 6]], INT32))

    def test_concurrent_uploads_allocate_once(self):
        start = threading.Barrier(8)

        def worker():
            start.wait()
            self.m.upload()
            self.m.await_upload()

        threads = [threading.Thread(target=worker) for _ in range(8)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()
        self.assertIs(self.m.copy_state, CopyState.SYNCED)
        self.assertEqual(self.ctx.device.allocated_bytes, 24)

    def test_repr_shows_state(self):
        self.assertIn("state=no_buffer", repr(self.m))


if __name__ == "__main__":
    unittest.main()

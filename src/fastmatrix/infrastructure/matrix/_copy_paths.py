"""
Copy-state control paths for `BufferedMatrix`.

This module registers one implementation per (method, `CopyState`) pair. It is
imported for its side effects by the package `__init__`, which installs the
state dispatchers on `BufferedMatrix`.

Methods covered:

- `_upload`: allocate (first time) and issue the asynchronous host-to-device
  copy;
- `_await_upload`: block on the matrix's queue;
- `_prepare_host_write`: keep the device copy coherent before a host write.

All paths run with the matrix's state lock held.
"""

from __future__ import annotations

from ._buffered_matrix import BufferedMatrix as BM
from ._copy_state import CopyState, copy_state_path_manager


def _issue_copy(self: BM) -> None:
    queue = self._ensure_queue()
    self.context.device.copy_to_device_async(queue, self._buffer.native, self._data)
    self._state = CopyState.UPLOAD_PENDING


# ----------------------------------------------------------------------
# upload
# ----------------------------------------------------------------------
@copy_state_path_manager(BM, BM._upload, CopyState.NO_BUFFER)
def upload_first(self: BM) -> None:
    """
    Allocate the device buffer and issue the first copy.

    On failure the buffer is released and the state stays `NO_BUFFER`.
    """
    self._buffer = self.context.allocate(self.size, self.element)
    try:
        _issue_copy(self)
    except BaseException:
        buffer, self._buffer = self._buffer, None
        buffer.release()
        raise


@copy_state_path_manager(BM, BM._upload, CopyState.STALE)
def upload_refresh(self: BM) -> None:
    """Re-issue the copy into the existing buffer."""
    _issue_copy(self)


@copy_state_path_manager(BM, BM._upload, CopyState.UPLOAD_PENDING)
@copy_state_path_manager(BM, BM._upload, CopyState.SYNCED)
def upload_noop(self: BM) -> None:
    return None


# ----------------------------------------------------------------------
# await_upload
# ----------------------------------------------------------------------
@copy_state_path_manager(BM, BM._await_upload, CopyState.UPLOAD_PENDING)
def await_pending(self: BM) -> None:
    self._queue.synchronize()
    self._state = CopyState.SYNCED


@copy_state_path_manager(BM, BM._await_upload, CopyState.NO_BUFFER)
@copy_state_path_manager(BM, BM._await_upload, CopyState.SYNCED)
@copy_state_path_manager(BM, BM._await_upload, CopyState.STALE)
def await_noop(self: BM) -> None:
    return None


# ----------------------------------------------------------------------
# host writes
# ----------------------------------------------------------------------
@copy_state_path_manager(BM, BM._prepare_host_write, CopyState.UPLOAD_PENDING)
def write_while_pending(self: BM) -> None:
    # The in-flight copy may still be reading the host array.
    self._queue.synchronize()
    self._state = CopyState.STALE


@copy_state_path_manager(BM, BM._prepare_host_write, CopyState.SYNCED)
def write_after_sync(self: BM) -> None:
    self._state = CopyState.STALE


@copy_state_path_manager(BM, BM._prepare_host_write, CopyState.NO_BUFFER)
@copy_state_path_manager(BM, BM._prepare_host_write, CopyState.STALE)
def write_noop(self: BM) -> None:
    return None

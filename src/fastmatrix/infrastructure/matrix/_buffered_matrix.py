"""
Device-paired matrix.

`BufferedMatrix` extends `Matrix` with a device buffer, a private execution
queue and a copy state. The host array stays authoritative: uploads copy host
values to the device asynchronously, and the accelerated backend reads operands
from the device buffer once their upload has completed.

The state-dependent behavior of `upload`, `await_upload` and host writes lives
in `_copy_paths`, registered per `CopyState` through
`copy_state_path_manager`. The methods below are the dispatch entry points.

Thread safety
-------------
Public state-changing methods and item assignment are serialized per matrix by
an internal lock.
"""

from __future__ import annotations

import threading
from typing import Any, Optional

import numpy as np

from ..device._buffer import DeviceBuffer
from ..device._context import DeviceContext
from ..elements._base import ElementOperator
from ._copy_state import CopyState
from ._matrix import Matrix


class BufferedMatrix(Matrix):
    """
    Matrix paired with a device buffer.

    Parameters
    ----------
    rows : int
        Number of rows.
    columns : int
        Number of columns.
    element : object, optional
        Element type. Must be device-compatible to be uploaded.
    context : Optional[DeviceContext]
        Device context to allocate from. Defaults to the process-wide context,
        resolved on first use.

    Notes
    -----
    - Construction allocates nothing on the device (`CopyState.NO_BUFFER`).
    - Release the buffer with `release()` or by using the matrix as a context
      manager. There is no finalizer.
    """

    def __init__(
        self,
        rows: int,
        columns: int,
        element: object = None,
        context: Optional[DeviceContext] = None,
    ) -> None:
        super().__init__(rows, columns, element)
        self._init_device_state(context)

    def _post_init(self) -> None:
        self._init_device_state(None)

    def _init_device_state(self, context: Optional[DeviceContext]) -> None:
        self._context = context
        self._state = CopyState.NO_BUFFER
        self._buffer: Optional[DeviceBuffer] = None
        self._queue: Any = None
        self._state_lock = threading.RLock()

    # ------------------------------------------------------------------
    # Factories
    # ------------------------------------------------------------------
    @classmethod
    def from_matrix(
        cls, matrix: Matrix, context: Optional[DeviceContext] = None
    ) -> "BufferedMatrix":
        """
        Copy a matrix into a new, not-yet-uploaded `BufferedMatrix`.

        Parameters
        ----------
        matrix : Matrix
            Source matrix (not modified).
        context : Optional[DeviceContext]
            Device context for the new matrix.

        Returns
        -------
        BufferedMatrix
            A matrix in `CopyState.NO_BUFFER`.
        """
        out = cls._from_owned(matrix.to_numpy(), matrix.element)
        out._context = context
        return out

    @classmethod
    def _adopt(
        cls,
        data: np.ndarray,
        element: ElementOperator,
        context: DeviceContext,
        buffer: DeviceBuffer,
    ) -> "BufferedMatrix":
        """
        Wrap downloaded result values together with the device buffer they
        were downloaded from. The new matrix starts in `CopyState.SYNCED`.
        """
        out = cls._from_owned(data, element)
        out._context = context
        out._buffer = buffer
        out._state = CopyState.SYNCED
        return out

    # ------------------------------------------------------------------
    # Properties
    # ------------------------------------------------------------------
    @property
    def context(self) -> DeviceContext:
        if self._context is None:
            self._context = DeviceContext.get_or_init()
        return self._context

    @property
    def copy_state(self) -> CopyState:
        return self._state

    @property
    def buffer(self) -> Optional[DeviceBuffer]:
        return self._buffer

    @property
    def queue(self) -> Any:
        return self._queue

    def _ensure_queue(self) -> Any:
        if self._queue is None:
            self._queue = self.context.create_queue()
        return self._queue

    # ------------------------------------------------------------------
    # Copy pipeline
    # ------------------------------------------------------------------
    def upload(self) -> None:
        """
        Start copying host values to the device without waiting.

        Allocates the device buffer on first use. A no-op when an upload is
        already pending or the buffer is in sync.

        Raises
        ------
        UnsupportedElementTypeError
            If the element type cannot live on a device.
        DeviceOutOfMemoryError
            If the buffer does not fit in device memory.
        DeviceUnavailableError
            If the context has been disposed.
        """
        with self._state_lock:
            self.context.ensure_open()
            self._upload()

    def await_upload(self) -> None:
        """
        Block until a pending upload has completed.

        A no-op in every state other than `CopyState.UPLOAD_PENDING`.

        Raises
        ------
        DeviceUnavailableError
            If the context has been disposed.
        """
        with self._state_lock:
            self.context.ensure_open()
            self._await_upload()

    def _upload(self) -> None: ...

    def _await_upload(self) -> None: ...

    def _prepare_host_write(self) -> None: ...

    def __setitem__(self, index: tuple[int, int], value: Any) -> None:
        with self._state_lock:
            super().__setitem__(index, value)

    # ------------------------------------------------------------------
    # Release
    # ------------------------------------------------------------------
    def release(self) -> None:
        """
        Free the device buffer and the private queue.

        Waits for a pending upload first. Idempotent; the host values stay
        valid and the matrix returns to `CopyState.NO_BUFFER`.
        """
        with self._state_lock:
            queue, self._queue = self._queue, None
            buffer, self._buffer = self._buffer, None
            try:
                if queue is not None:
                    queue.release()
            finally:
                self._state = CopyState.NO_BUFFER
                if buffer is not None:
                    buffer.release()

    def __enter__(self) -> "BufferedMatrix":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.release()

    def __repr__(self) -> str:
        return (
            f"{type(self).__name__}(rows={self.rows}, columns={self.columns}, "
            f"element={self.element.name!r}, state={self._state.value})"
        )

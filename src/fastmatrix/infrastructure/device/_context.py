"""
Device context.

`DeviceContext` is the handle through which matrices and the accelerated
backend reach a compute device. It binds the device lazily (exactly once, even
under concurrent first use), accounts device allocations, hands out execution
queues, and owns the disposal path.

Two ways to obtain one:

- `DeviceContext(config)` builds an explicit, independent context. Tests and
  embedding applications inject it where it is needed.
- `DeviceContext.get_or_init()` returns the process-wide default context,
  creating it on first call. The default context is disposed at interpreter
  exit.
"""

from __future__ import annotations

import atexit
from concurrent.futures import Future, ThreadPoolExecutor
import threading
from typing import ClassVar, Optional

from ...domain._errors import (
    DeviceOutOfMemoryError,
    DeviceUnavailableError,
    UnsupportedElementTypeError,
)
from ...domain.device._device_protocol import DeviceLike, QueueLike
from ..elements._base import ElementOperator
from ..elements._registry import resolve_element
from ._buffer import DeviceBuffer
from ._config import DeviceConfig
from ._selection import select_device


class DeviceContext:
    """
    Lazily-bound handle to a compute device.

    Parameters
    ----------
    config : Optional[DeviceConfig]
        Selection settings. When omitted, settings are read from the
        environment at bind time.

    Notes
    -----
    - Binding, default-queue creation and disposal are serialized by one lock.
    - After `dispose()`, every device operation raises
      `DeviceUnavailableError`.
    """

    _default: ClassVar[Optional["DeviceContext"]] = None
    _default_lock: ClassVar[threading.Lock] = threading.Lock()

    def __init__(self, config: Optional[DeviceConfig] = None) -> None:
        self._config = config
        self._device: Optional[DeviceLike] = None
        self._default_queue: Optional[QueueLike] = None
        self._lock = threading.RLock()
        self._alloc_lock = threading.Lock()
        self._disposed = False

    # ------------------------------------------------------------------
    # Process default
    # ------------------------------------------------------------------
    @classmethod
    def get_or_init(cls, config: Optional[DeviceConfig] = None) -> "DeviceContext":
        """
        Return the process-wide default context, creating it on first call.

        Parameters
        ----------
        config : Optional[DeviceConfig]
            Used only by the call that creates the default context.

        Returns
        -------
        DeviceContext
            The same instance for every caller.
        """
        ctx = cls._default
        if ctx is not None:
            return ctx
        with cls._default_lock:
            if cls._default is None:
                ctx = cls(config)
                atexit.register(ctx.dispose)
                cls._default = ctx
            return cls._default

    @classmethod
    def reset_default(cls) -> None:
        """Dispose and forget the process-wide default context."""
        with cls._default_lock:
            ctx, cls._default = cls._default, None
        if ctx is not None:
            atexit.unregister(ctx.dispose)
            ctx.dispose()

    # ------------------------------------------------------------------
    # Binding
    # ------------------------------------------------------------------
    def ensure_open(self) -> None:
        """Raise `DeviceUnavailableError` if the context has been disposed."""
        if self._disposed:
            raise DeviceUnavailableError("DeviceContext has been disposed.")

    @property
    def disposed(self) -> bool:
        return self._disposed

    @property
    def is_bound(self) -> bool:
        return self._device is not None

    @property
    def device(self) -> DeviceLike:
        """
        The bound device, selected on first access.

        Returns
        -------
        DeviceLike
            The device this context drives.

        Raises
        ------
        DeviceUnavailableError
            If the context has been disposed, or a forced device is absent.
        """
        self.ensure_open()
        device = self._device
        if device is not None:
            return device
        with self._lock:
            self.ensure_open()
            if self._device is None:
                self._device = select_device(self._config)
            return self._device

    @property
    def config(self) -> DeviceConfig:
        return self._config if self._config is not None else DeviceConfig.from_env()

    def is_available(self) -> bool:
        """
        Whether an accelerator (not the emulated fallback) is bound.

        Binds the device if needed.
        """
        return not self.device.descriptor.is_emulated()

    def prewarm(self) -> "Future[DeviceLike]":
        """
        Bind the device on a background thread.

        Returns
        -------
        Future[DeviceLike]
            Resolves to the bound device, or to the binding error.
        """
        executor = ThreadPoolExecutor(
            max_workers=1, thread_name_prefix="fastmatrix-prewarm"
        )
        try:
            return executor.submit(lambda: self.device)
        finally:
            executor.shutdown(wait=False)

    # ------------------------------------------------------------------
    # Memory and queues
    # ------------------------------------------------------------------
    def allocate(self, length: int, element: object = None) -> DeviceBuffer:
        """
        Allocate a device buffer of `length` elements.

        Parameters
        ----------
        length : int
            Number of elements.
        element : object
            Element type or anything `resolve_element` accepts.

        Returns
        -------
        DeviceBuffer
            Owned buffer; the caller must `release()` it.

        Raises
        ------
        UnsupportedElementTypeError
            If the element type cannot live on a device.
        DeviceOutOfMemoryError
            If the request exceeds the memory available on the device or its
            largest single allocation, or the native allocation fails.
        DeviceUnavailableError
            If the context has been disposed.
        """
        op: ElementOperator = resolve_element(element)
        if not op.device_compatible:
            raise UnsupportedElementTypeError(
                op.name, "It has no fixed layout or no device arithmetic."
            )
        if length < 0:
            raise ValueError(f"length must be >= 0, got {length}")

        device = self.device
        nbytes = int(length) * op.itemsize
        with self._alloc_lock:
            available = min(device.available_memory(), device.max_allocation_size)
            if nbytes > available:
                raise DeviceOutOfMemoryError(nbytes, available, str(device.descriptor))
            native = device.allocate(int(length), op.dtype)
        return DeviceBuffer(device, native, int(length), op)

    def create_queue(self) -> QueueLike:
        """Create a new execution queue owned by the caller."""
        return self.device.create_queue()

    @property
    def default_queue(self) -> QueueLike:
        """Shared queue of this context, created lazily."""
        self.ensure_open()
        queue = self._default_queue
        if queue is not None:
            return queue
        with self._lock:
            self.ensure_open()
            if self._default_queue is None:
                self._default_queue = self.device.create_queue()
            return self._default_queue

    # ------------------------------------------------------------------
    # Disposal
    # ------------------------------------------------------------------
    def dispose(self) -> None:
        """
        Release the default queue and the device.

        Idempotent. Buffers still held by matrices become unusable.
        """
        with self._lock:
            if self._disposed:
                return
            self._disposed = True
            queue, self._default_queue = self._default_queue, None
            device, self._device = self._device, None
        if queue is not None:
            queue.release()
        if device is not None:
            device.release()

    def __enter__(self) -> "DeviceContext":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.dispose()

    def __repr__(self) -> str:
        if self._disposed:
            state = "disposed"
        elif self._device is None:
            state = "unbound"
        else:
            state = str(self._device.descriptor)
        return f"DeviceContext({state})"

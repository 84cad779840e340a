"""
Accelerated backend.

`AcceleratedOperator` runs every operation as a device kernel on the device of
its `DeviceContext`:

1. validate operands (shared validation, before any allocation);
2. stage operands on the device: a `BufferedMatrix` of the same context is
   uploaded if needed and awaited; any other matrix is copied into a
   temporary `BufferedMatrix` that is released on every exit path;
3. select the kernel specialization and launch geometry, compile it once
   through the operator's `KernelCache`, and launch it on a queue created
   for this operation alone;
4. synchronize that queue, download the result, and return a `BufferedMatrix` that owns
   the result buffer in `CopyState.SYNCED`, ready to feed further device
   operations without another upload.

Kernel variant selection
------------------------
Add and subtract use the shared-memory tile kernel when the device reports
group-local memory large enough for one tile of each operand (tile length ==
group size). Otherwise they use the global-memory kernel. Multiply and
transpose always use one thread per output cell with global memory.
"""

from __future__ import annotations

from contextlib import ExitStack
from typing import Any, Optional

from ...domain._errors import UnsupportedElementTypeError
from ...domain.device._device_protocol import DeviceLike
from ..device._buffer import DeviceBuffer
from ..device._context import DeviceContext
from ..elements._base import ElementOperator
from ..kernels._cache import KernelCache
from ..kernels._spec import KernelOp, KernelSpec, KernelVariant, LaunchConfig
from ..matrix._buffered_matrix import BufferedMatrix
from ..matrix._matrix import Matrix
from ._validation import validate_binary, validate_unary


def select_variant(device: DeviceLike, element: ElementOperator) -> KernelVariant:
    """
    Choose the memory-access variant for an elementwise kernel.

    Parameters
    ----------
    device : DeviceLike
        Target device.
    element : ElementOperator
        Element type of the operands.

    Returns
    -------
    KernelVariant
        `SHARED` when two tiles of `max_group_size` elements fit in group-local
        memory, otherwise `GLOBAL`.
    """
    if not device.has_shared_memory:
        return KernelVariant.GLOBAL
    tiles_bytes = 2 * device.max_group_size * element.itemsize
    if tiles_bytes <= device.shared_memory_per_group:
        return KernelVariant.SHARED
    return KernelVariant.GLOBAL


class AcceleratedOperator:
    """
    Device-kernel backend.

    Parameters
    ----------
    context : Optional[DeviceContext]
        Device context to run on. Defaults to the process-wide context.

    Attributes
    ----------
    cache : KernelCache
        Compiled kernels of this operator, keyed by `KernelSpec`.
    """

    def __init__(self, context: Optional[DeviceContext] = None) -> None:
        self._context = context
        self.cache = KernelCache()

    @property
    def context(self) -> DeviceContext:
        if self._context is None:
            self._context = DeviceContext.get_or_init()
        return self._context

    # ------------------------------------------------------------------
    # Kernel selection
    # ------------------------------------------------------------------
    def kernel_spec(self, op: KernelOp, element: ElementOperator) -> KernelSpec:
        """
        Build the kernel specialization this operator launches for `op`.

        Parameters
        ----------
        op : KernelOp
            Operation.
        element : ElementOperator
            Element type.

        Returns
        -------
        KernelSpec
            The specialization (variant and tile size included).
        """
        device = self.context.device
        if op.is_elementwise and select_variant(device, element) is KernelVariant.SHARED:
            return KernelSpec(op, element, KernelVariant.SHARED, device.max_group_size)
        return KernelSpec(op, element, KernelVariant.GLOBAL)

    def launch_config(self, count: int) -> LaunchConfig:
        return LaunchConfig.for_elements(count, self.context.device.max_group_size)

    # ------------------------------------------------------------------
    # Staging
    # ------------------------------------------------------------------
    def _require_device_element(self, op_kind: str, element: ElementOperator) -> None:
        if not element.device_compatible:
            raise UnsupportedElementTypeError(
                element.name, f"Operation '{op_kind}' needs a fixed-layout element."
            )

    def _stage(self, stack: ExitStack, matrix: Matrix) -> BufferedMatrix:
        if isinstance(matrix, BufferedMatrix) and matrix.context is self.context:
            staged = matrix
        else:
            staged = BufferedMatrix.from_matrix(matrix, self.context)
            stack.callback(staged.release)
        staged.upload()
        staged.await_upload()
        return staged

    def _run(
        self,
        op: KernelOp,
        element: ElementOperator,
        shape: tuple[int, int],
        operands: tuple[Matrix, ...],
        scalars: tuple[int, ...],
    ) -> BufferedMatrix:
        ctx = self.context
        device = ctx.device
        count = shape[0] * shape[1]

        with ExitStack() as stack:
            staged = [self._stage(stack, m) for m in operands]
            out: DeviceBuffer = ctx.allocate(count, element)

            def _discard_on_error(exc_type, exc, tb) -> None:
                if exc_type is not None:
                    out.release()

            stack.push(_discard_on_error)
            # Released before `out`: a queue drains its work on release.
            queue = ctx.create_queue()
            stack.callback(queue.release)

            if count and self._launchable(op, operands):
                spec = self.kernel_spec(op, element)
                kernel = self.cache.get_or_compile(spec, device.compile)
                device.launch(
                    queue,
                    kernel,
                    self.launch_config(count),
                    *[m.buffer.native for m in staged],
                    out.native,
                    *scalars,
                )
                queue.synchronize()
                flat = device.copy_to_host(queue, out.native, count, element.dtype)
                data = flat.reshape(shape)
            else:
                data = element.zeros(shape)
                device.copy_to_device_async(queue, out.native, data)
                queue.synchronize()
        return BufferedMatrix._adopt(data, element, ctx, out)

    @staticmethod
    def _launchable(op: KernelOp, operands: tuple[Matrix, ...]) -> bool:
        # Multiply with an empty inner dimension has nothing to accumulate.
        return not (op is KernelOp.MULTIPLY and operands[0].columns == 0)

    # ------------------------------------------------------------------
    # Operations
    # ------------------------------------------------------------------
    def _elementwise(self, op: KernelOp, a: Any, b: Any) -> BufferedMatrix:
        a, b = validate_binary(op.value, a, b)
        self._require_device_element(op.value, a.element)
        return self._run(op, a.element, a.shape, (a, b), (a.size,))

    def add(self, a: Any, b: Any) -> BufferedMatrix:
        return self._elementwise(KernelOp.ADD, a, b)

    def subtract(self, a: Any, b: Any) -> BufferedMatrix:
        return self._elementwise(KernelOp.SUBTRACT, a, b)

    def multiply(self, a: Any, b: Any) -> BufferedMatrix:
        a, b = validate_binary("multiply", a, b)
        self._require_device_element("multiply", a.element)
        return self._run(
            KernelOp.MULTIPLY,
            a.element,
            (a.rows, b.columns),
            (a, b),
            (a.rows, a.columns, b.columns),
        )

    def transpose(self, a: Any) -> BufferedMatrix:
        a = validate_unary("transpose", a)
        self._require_device_element("transpose", a.element)
        return self._run(
            KernelOp.TRANSPOSE,
            a.element,
            (a.columns, a.rows),
            (a,),
            (a.rows, a.columns),
        )

"""
Host-emulated kernel implementations.

The emulated device executes the same kernels as real accelerators, group by
group, using NumPy. Each builder below specializes a kernel for one
`KernelSpec` by binding the element's host arithmetic into a closure, which is
the emulated counterpart of generating type-specialized device code.

Semantics follow the device kernels exactly:

- every group covers ``[group * group_size, (group + 1) * group_size)``,
  clipped to the output length (the ``idx < count`` guard);
- the shared-memory variant copies both operand tiles into group-local arrays
  before any output is written (the barrier);
- multiply seeds each cell with the ``k = 0`` product and accumulates in
  ascending ``k``.

Buffers are flat, row-major NumPy arrays of the element dtype.
"""

from __future__ import annotations

from typing import Callable

import numpy as np

from ._spec import KernelOp, KernelSpec, KernelVariant, LaunchConfig

EmulatedKernel = Callable[..., None]


def _group_ranges(config: LaunchConfig, count: int):
    for group in range(config.grid_size):
        start = group * config.group_size
        stop = min(start + config.group_size, count)
        if start < stop:
            yield start, stop


def _elementwise_global(spec: KernelSpec) -> EmulatedKernel:
    fn = getattr(spec.element, spec.op.value)

    def kernel(
        config: LaunchConfig, a: np.ndarray, b: np.ndarray, out: np.ndarray, count: int
    ) -> None:
        for start, stop in _group_ranges(config, count):
            out[start:stop] = fn(a[start:stop], b[start:stop])

    return kernel


def _elementwise_shared(spec: KernelSpec) -> EmulatedKernel:
    fn = getattr(spec.element, spec.op.value)
    tile = spec.tile
    dtype = spec.element.dtype

    def kernel(
        config: LaunchConfig, a: np.ndarray, b: np.ndarray, out: np.ndarray, count: int
    ) -> None:
        if config.group_size != tile:
            raise ValueError(
                f"{spec.name}: launched with group size {config.group_size}, "
                f"compiled for tile {tile}"
            )
        tile_a = np.empty(tile, dtype=dtype)
        tile_b = np.empty(tile, dtype=dtype)
        for start, stop in _group_ranges(config, count):
            n = stop - start
            tile_a[:n] = a[start:stop]
            tile_b[:n] = b[start:stop]
            # barrier
            out[start:stop] = fn(tile_a[:n], tile_b[:n])

    return kernel


def _multiply(spec: KernelSpec) -> EmulatedKernel:
    element = spec.element

    def kernel(
        config: LaunchConfig,
        a: np.ndarray,
        b: np.ndarray,
        out: np.ndarray,
        rows: int,
        inner: int,
        columns: int,
    ) -> None:
        for start, stop in _group_ranges(config, rows * columns):
            idx = np.arange(start, stop)
            r = idx // columns
            c = idx % columns
            acc = element.multiply(a[r * inner], b[c])
            for k in range(1, inner):
                acc = element.add(
                    acc, element.multiply(a[r * inner + k], b[k * columns + c])
                )
            out[start:stop] = acc

    return kernel


def _transpose(spec: KernelSpec) -> EmulatedKernel:
    def kernel(
        config: LaunchConfig, src: np.ndarray, out: np.ndarray, rows: int, columns: int
    ) -> None:
        for start, stop in _group_ranges(config, rows * columns):
            idx = np.arange(start, stop)
            r = idx // columns
            c = idx % columns
            out[c * rows + r] = src[idx]

    return kernel


def build_emulated_kernel(spec: KernelSpec) -> EmulatedKernel:
    """
    Specialize an emulated kernel for `spec`.

    Parameters
    ----------
    spec : KernelSpec
        Kernel specialization.

    Returns
    -------
    EmulatedKernel
        Callable invoked as ``kernel(config, *args)`` with the same argument
        order as the device kernel.
    """
    if spec.op.is_elementwise:
        if spec.variant is KernelVariant.SHARED:
            return _elementwise_shared(spec)
        return _elementwise_global(spec)
    if spec.op is KernelOp.MULTIPLY:
        return _multiply(spec)
    return _transpose(spec)

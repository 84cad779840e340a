"""
Kernel specifications and launch configuration.

A `KernelSpec` names one specialization of a device kernel: the operation, the
concrete element type, the memory-access variant and (for the shared-memory
variant) the tile size baked into the kernel. Specs are immutable and hashable
so they double as `KernelCache` keys.

`LaunchConfig` describes a 1-D launch over groups of threads. Grids always
cover every output element; kernels guard the tail with ``idx < count``.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from ..elements._base import ElementOperator


class KernelOp(Enum):
    """Operations with a device kernel."""

    ADD = "add"
    SUBTRACT = "subtract"
    MULTIPLY = "multiply"
    TRANSPOSE = "transpose"

    @property
    def is_elementwise(self) -> bool:
        return self in (KernelOp.ADD, KernelOp.SUBTRACT)


class KernelVariant(Enum):
    """
    Memory-access strategy of a kernel.

    Attributes
    ----------
    SHARED : KernelVariant
        Stages a tile of each operand into group-local memory, synchronizes the
        group, then writes the output.
    GLOBAL : KernelVariant
        Reads and writes global memory directly from every thread.
    """

    SHARED = "shared"
    GLOBAL = "global"


@dataclass(frozen=True)
class KernelSpec:
    """
    One (operation, element type, variant) specialization of a kernel.

    Attributes
    ----------
    op : KernelOp
        Operation implemented by the kernel.
    element : ElementOperator
        Concrete element type the kernel is specialized for.
    variant : KernelVariant
        Memory-access strategy.
    tile : int
        Tile length for `SHARED` kernels (equals the launch group size);
        0 for `GLOBAL` kernels.
    """

    op: KernelOp
    element: ElementOperator
    variant: KernelVariant = KernelVariant.GLOBAL
    tile: int = 0

    @property
    def name(self) -> str:
        """
        Kernel entry-point symbol, unique per specialization.

        Returns
        -------
        str
            e.g. ``fm_add_float32_shared_256``.
        """
        parts = ["fm", self.op.value, self.element.name, self.variant.value]
        if self.variant is KernelVariant.SHARED:
            parts.append(str(self.tile))
        return "_".join(parts)


@dataclass(frozen=True)
class LaunchConfig:
    """
    1-D launch geometry.

    Attributes
    ----------
    grid_size : int
        Number of groups.
    group_size : int
        Threads per group.
    """

    grid_size: int
    group_size: int

    @classmethod
    def for_elements(cls, count: int, max_group_size: int) -> "LaunchConfig":
        """
        Build a launch covering `count` output elements.

        The group size is the device's maximum threads-per-group and the grid is
        ``ceil(count / group_size)``, so no trailing partial group is dropped.

        Parameters
        ----------
        count : int
            Number of output elements (one thread each).
        max_group_size : int
            Device maximum threads per group.

        Returns
        -------
        LaunchConfig
            The launch configuration (`grid_size == 0` when `count == 0`).

        Raises
        ------
        ValueError
            If `count` is negative or `max_group_size` is not positive.
        """
        if count < 0:
            raise ValueError(f"count must be >= 0, got {count}")
        if max_group_size <= 0:
            raise ValueError(f"max_group_size must be > 0, got {max_group_size}")
        group_size = int(max_group_size)
        grid_size = -(-int(count) // group_size)
        return cls(grid_size=grid_size, group_size=group_size)

    @property
    def total_threads(self) -> int:
        return self.grid_size * self.group_size

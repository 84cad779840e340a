"""
Kernel specification, generation, caching and emulation.
"""

from ._spec import KernelOp, KernelSpec, KernelVariant, LaunchConfig
from ._sources import Dialect, render_source
from ._emulated import build_emulated_kernel
from ._cache import KernelCache

__all__ = [
    KernelOp.__name__,
    KernelSpec.__name__,
    KernelVariant.__name__,
    LaunchConfig.__name__,
    Dialect.__name__,
    KernelCache.__name__,
    "render_source",
    "build_emulated_kernel",
]

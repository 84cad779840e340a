"""
Compiled kernel cache.

`KernelCache` maps a `KernelSpec` to the compiled kernel produced by a device.
Each specialization is compiled at most once per cache, including when several
threads request the same spec for the first time concurrently.
"""

from __future__ import annotations

import threading
from typing import Any, Callable, Dict

from ._spec import KernelSpec


class KernelCache:
    """
    Thread-safe, populate-once mapping from kernel specs to compiled kernels.

    Notes
    -----
    - Lookups of already-compiled kernels take the fast path without locking.
    - Compilation happens under the cache lock, so concurrent first requests
      for any spec observe exactly one compilation.
    """

    def __init__(self) -> None:
        self._kernels: Dict[KernelSpec, Any] = {}
        self._lock = threading.Lock()
        self._compilations = 0

    def get_or_compile(self, spec: KernelSpec, compile_fn: Callable[[KernelSpec], Any]) -> Any:
        """
        Return the compiled kernel for `spec`, compiling it on first use.

        Parameters
        ----------
        spec : KernelSpec
            Kernel specialization.
        compile_fn : Callable[[KernelSpec], Any]
            Device compile function invoked on a cache miss.

        Returns
        -------
        Any
            Backend-native compiled kernel.
        """
        kernel = self._kernels.get(spec)
        if kernel is not None:
            return kernel
        with self._lock:
            kernel = self._kernels.get(spec)
            if kernel is None:
                kernel = compile_fn(spec)
                self._kernels[spec] = kernel
                self._compilations += 1
            return kernel

    @property
    def compilations(self) -> int:
        return self._compilations

    def clear(self) -> None:
        with self._lock:
            self._kernels.clear()

    def __contains__(self, spec: object) -> bool:
        return spec in self._kernels

    def __len__(self) -> int:
        return len(self._kernels)

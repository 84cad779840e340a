"""
Device configuration.

`DeviceConfig` gathers the knobs that influence device selection and the
emulated fallback device. It can be constructed explicitly (tests, embedding
applications) or from environment variables via `DeviceConfig.from_env()`.

Environment variables
---------------------
FASTMATRIX_DEVICE : str, optional
    "auto" (default), "emulated", "cuda[:<index>]" or "opencl[:<index>]".
    Anything other than "auto" forces that device instead of probing.
FASTMATRIX_EMULATED_GROUP_SIZE : int, optional
    Maximum threads per group reported by the emulated device (default 256).
FASTMATRIX_EMULATED_SHARED_MEMORY : bool, optional
    Whether the emulated device reports group-local memory (default on).
FASTMATRIX_EMULATED_SHARED_BYTES : int, optional
    Group-local memory size of the emulated device (default 49152).
FASTMATRIX_EMULATED_MEMORY_BYTES : int, optional
    Total memory of the emulated device (default 1 GiB).
FASTMATRIX_WORKERS : int, optional
    Default worker count for the multi-threaded backend.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from typing import Mapping, Optional

from ...domain.device._device import DeviceDescriptor

_FALSE_VALUES = ("0", "", "false", "False", "FALSE", "off", "no")


def _env_flag(env: Mapping[str, str], key: str, default: bool) -> bool:
    if key not in env:
        return default
    return env[key].strip() not in _FALSE_VALUES


def _env_int(env: Mapping[str, str], key: str, default: Optional[int]) -> Optional[int]:
    raw = env.get(key, "").strip()
    if not raw:
        return default
    try:
        value = int(raw)
    except ValueError as e:
        raise ValueError(f"{key} must be an integer, got {raw!r}") from e
    if value <= 0:
        raise ValueError(f"{key} must be positive, got {value}")
    return value


@dataclass(frozen=True)
class DeviceConfig:
    """
    Device selection and emulation settings.

    Attributes
    ----------
    device : Optional[DeviceDescriptor]
        Forced device; None probes CUDA, then OpenCL GPUs, then falls back to
        the emulated device.
    emulated_group_size : int
        Maximum threads per group of the emulated device.
    emulated_shared_memory : bool
        Whether the emulated device reports group-local memory, which enables
        the shared-memory kernel variant.
    emulated_shared_bytes : int
        Group-local memory size of the emulated device, in bytes.
    emulated_memory_bytes : int
        Total memory of the emulated device, in bytes.
    workers : Optional[int]
        Default worker count for `MultiThreadedOperator` (None: CPU count).
    """

    device: Optional[DeviceDescriptor] = None
    emulated_group_size: int = 256
    emulated_shared_memory: bool = True
    emulated_shared_bytes: int = 48 * 1024
    emulated_memory_bytes: int = 1 << 30
    workers: Optional[int] = field(default=None)

    def __post_init__(self) -> None:
        if self.emulated_group_size <= 0:
            raise ValueError(
                f"emulated_group_size must be > 0, got {self.emulated_group_size}"
            )
        if self.emulated_memory_bytes < 0 or self.emulated_shared_bytes < 0:
            raise ValueError("emulated memory sizes must be >= 0")
        if self.workers is not None and self.workers <= 0:
            raise ValueError(f"workers must be > 0, got {self.workers}")

    @classmethod
    def emulated(cls, **overrides) -> "DeviceConfig":
        """Build a configuration that forces the emulated device."""
        return cls(device=DeviceDescriptor("emulated"), **overrides)

    @classmethod
    def from_env(cls, env: Optional[Mapping[str, str]] = None) -> "DeviceConfig":
        """
        Build a configuration from environment variables.

        Parameters
        ----------
        env : Optional[Mapping[str, str]]
            Mapping to read instead of `os.environ` (useful in tests).

        Returns
        -------
        DeviceConfig
            Parsed configuration.

        Raises
        ------
        ValueError
            If a variable holds an invalid value.
        """
        env = os.environ if env is None else env

        raw_device = env.get("FASTMATRIX_DEVICE", "auto").strip() or "auto"
        device = None if raw_device == "auto" else DeviceDescriptor(raw_device)

        return cls(
            device=device,
            emulated_group_size=_env_int(env, "FASTMATRIX_EMULATED_GROUP_SIZE", 256),
            emulated_shared_memory=_env_flag(
                env, "FASTMATRIX_EMULATED_SHARED_MEMORY", True
            ),
            emulated_shared_bytes=_env_int(
                env, "FASTMATRIX_EMULATED_SHARED_BYTES", 48 * 1024
            ),
            emulated_memory_bytes=_env_int(
                env, "FASTMATRIX_EMULATED_MEMORY_BYTES", 1 << 30
            ),
            workers=_env_int(env, "FASTMATRIX_WORKERS", None),
        )

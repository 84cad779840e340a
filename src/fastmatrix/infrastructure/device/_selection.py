"""
Device selection.

Selection runs in two phases. Probing lists candidate descriptors and has no
side effects. Binding then constructs exactly one device object for the chosen
descriptor.

Priority when no device is forced:

1. CUDA (device 0);
2. the first OpenCL device of GPU type;
3. the host-emulated device, which is always present.

A probe that fails unexpectedly (driver errors, broken installs) emits a
`RuntimeWarning` and selection continues with the next device kind.
"""

from __future__ import annotations

from typing import Callable, Dict, List, Optional
import warnings

from ...domain._errors import DeviceUnavailableError
from ...domain.device._device import DeviceDescriptor, DeviceKind
from ...domain.device._device_protocol import DeviceLike
from ._config import DeviceConfig
from ._cuda import CudaDevice, probe_cuda
from ._emulated import EmulatedDevice
from ._opencl import OpenClDevice, probe_opencl

Probe = Callable[[], List[DeviceDescriptor]]

PROBES: Dict[DeviceKind, Probe] = {
    DeviceKind.CUDA: probe_cuda,
    DeviceKind.OPENCL: probe_opencl,
}
"""Accelerator probes in priority order."""


def _safe_probe(kind: DeviceKind) -> List[DeviceDescriptor]:
    try:
        return list(PROBES[kind]())
    except Exception as e:
        warnings.warn(
            f"fastmatrix could not probe {kind.value} devices; skipping them. "
            f"Reason: {e!r}",
            RuntimeWarning,
            stacklevel=3,
        )
        return []


def probe_candidates() -> List[DeviceDescriptor]:
    """
    List every selectable device in priority order.

    Returns
    -------
    List[DeviceDescriptor]
        Accelerator candidates followed by the emulated device.
    """
    candidates: List[DeviceDescriptor] = []
    for kind in PROBES:
        candidates.extend(_safe_probe(kind))
    candidates.append(DeviceDescriptor("emulated"))
    return candidates


def bind_device(descriptor: DeviceDescriptor, config: DeviceConfig) -> DeviceLike:
    """
    Construct the device object for `descriptor`.

    Parameters
    ----------
    descriptor : DeviceDescriptor
        Device to bind.
    config : DeviceConfig
        Configuration (used by the emulated device).

    Returns
    -------
    DeviceLike
        The bound device.
    """
    if descriptor.is_emulated():
        return EmulatedDevice(config)
    if descriptor.is_cuda():
        return CudaDevice(descriptor)
    return OpenClDevice(descriptor)


def _bind_forced(descriptor: DeviceDescriptor, config: DeviceConfig) -> DeviceLike:
    if not descriptor.is_emulated():
        present = _safe_probe(descriptor.kind)
        if descriptor not in present:
            raise DeviceUnavailableError(
                f"Configured device '{descriptor}' is not available "
                f"(found: {[str(d) for d in present] or 'none'})."
            )
    try:
        return bind_device(descriptor, config)
    except (ImportError, LookupError) as e:
        raise DeviceUnavailableError(
            f"Configured device '{descriptor}' could not be bound: {e}"
        ) from e


def select_device(config: Optional[DeviceConfig] = None) -> DeviceLike:
    """
    Select and bind the compute device.

    Parameters
    ----------
    config : Optional[DeviceConfig]
        Selection settings; defaults to `DeviceConfig.from_env()`.

    Returns
    -------
    DeviceLike
        The bound device.

    Raises
    ------
    DeviceUnavailableError
        If the configuration forces a device that is not present.
    """
    config = DeviceConfig.from_env() if config is None else config

    if config.device is not None:
        return _bind_forced(config.device, config)

    for descriptor in probe_candidates():
        if descriptor.is_emulated():
            break
        try:
            return bind_device(descriptor, config)
        except Exception as e:
            warnings.warn(
                f"fastmatrix could not bind {descriptor}; trying the next device. "
                f"Reason: {e!r}",
                RuntimeWarning,
                stacklevel=2,
            )

    return EmulatedDevice(config)

"""
Device descriptor utilities.

This module defines lightweight, backend-agnostic descriptors for compute
devices. It provides:

- `DeviceKind`: an enumeration of supported device categories
- `DeviceDescriptor`: a validated, normalized descriptor parsed from
  user-facing strings such as "emulated", "cuda:0" or "opencl:1"

Descriptors never allocate or bind backend resources. They are used for
configuration (forcing a device kind), for identifying bound devices in
error messages, and as hashable keys.
"""

from enum import Enum
import re


class DeviceKind(Enum):
    """
    Enumeration of supported device categories.

    Attributes
    ----------
    CUDA : DeviceKind
        NVIDIA CUDA device driven through CuPy.
    OPENCL : DeviceKind
        OpenCL GPU device driven through PyOpenCL.
    EMULATED : DeviceKind
        Host-emulated fallback device (always present).
    """

    CUDA = "cuda"
    OPENCL = "opencl"
    EMULATED = "emulated"


class DeviceDescriptor:
    """
    Concrete compute device descriptor.

    Parameters
    ----------
    device : str
        Device identifier string. Must be one of:
        - "emulated"
        - "cuda" or "cuda:<index>"
        - "opencl" or "opencl:<index>"

        A missing index is normalized to 0.

    Raises
    ------
    ValueError
        If the provided device string does not match the supported formats.

    Notes
    -----
    `__slots__` prevents dynamic attribute creation; descriptors are compared
    and hashed by `(kind, index)`.
    """

    __slots__ = ("kind", "index")

    _INDEXED_PATTERN = re.compile(r"^(cuda|opencl)(?::(\d+))?$")

    def __init__(self, device: str):
        if device == "emulated":
            self.kind = DeviceKind.EMULATED
            self.index = None
        else:
            m = self._INDEXED_PATTERN.match(device)
            if not m:
                raise ValueError(
                    f"Invalid device '{device}'. Expected 'emulated', "
                    "'cuda[:<index>]' or 'opencl[:<index>]'"
                )
            self.kind = DeviceKind(m.group(1))
            self.index = int(m.group(2) or 0)

    def __str__(self) -> str:
        if self.kind is DeviceKind.EMULATED:
            return "emulated"
        return f"{self.kind.value}:{self.index}"

    def __repr__(self) -> str:
        return f"DeviceDescriptor('{self}')"

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, DeviceDescriptor):
            return NotImplemented
        return (self.kind, self.index) == (other.kind, other.index)

    def __hash__(self) -> int:
        return hash((self.kind, self.index))

    def is_emulated(self) -> bool:
        """
        Check whether this descriptor names the host-emulated fallback device.

        Returns
        -------
        bool
            True for the emulated device, False for real accelerators.
        """
        return self.kind is DeviceKind.EMULATED

    def is_cuda(self) -> bool:
        return self.kind is DeviceKind.CUDA

    def is_opencl(self) -> bool:
        return self.kind is DeviceKind.OPENCL

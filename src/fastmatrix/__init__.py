"""
fastmatrix: dense matrices with interchangeable host and accelerator backends.

Quick start
-----------
    from fastmatrix import Matrix, create_operator

    a = Matrix.from_rows([[1, 2], [3, 4]])
    b = Matrix.from_rows([[5, 6], [7, 8]])
    op = create_operator("accelerated")
    print(op.multiply(a, b))
"""

from .domain._errors import (
    DeviceOutOfMemoryError,
    DeviceUnavailableError,
    DimensionMismatchError,
    ElementTypeMismatchError,
    NullOperandError,
    RaggedInputError,
    UnsupportedElementTypeError,
)
from .domain.device._device import DeviceDescriptor, DeviceKind
from .infrastructure.elements import (
    FLOAT32,
    FLOAT64,
    INT32,
    INT64,
    PYOBJECT,
    ElementOperator,
    FieldwiseOperator,
    register_element,
    resolve_element,
)
from .infrastructure.device import DeviceConfig, DeviceContext, select_device
from .infrastructure.kernels import KernelCache, KernelSpec, KernelVariant, LaunchConfig
from .infrastructure.matrix import BufferedMatrix, CopyState, Matrix
from .infrastructure.operators import (
    AcceleratedOperator,
    Backend,
    MultiThreadedOperator,
    SingleThreadedOperator,
    create_operator,
)

__version__ = "1.0.0a0"

__all__ = [
    "Matrix",
    "BufferedMatrix",
    "CopyState",
    "DeviceConfig",
    "DeviceContext",
    "DeviceDescriptor",
    "DeviceKind",
    "select_device",
    "KernelCache",
    "KernelSpec",
    "KernelVariant",
    "LaunchConfig",
    "SingleThreadedOperator",
    "MultiThreadedOperator",
    "AcceleratedOperator",
    "Backend",
    "create_operator",
    "ElementOperator",
    "FieldwiseOperator",
    "INT32",
    "INT64",
    "FLOAT32",
    "FLOAT64",
    "PYOBJECT",
    "register_element",
    "resolve_element",
    "RaggedInputError",
    "DimensionMismatchError",
    "NullOperandError",
    "ElementTypeMismatchError",
    "UnsupportedElementTypeError",
    "DeviceUnavailableError",
    "DeviceOutOfMemoryError",
]

"""
Backend-agnostic contracts: matrix and element protocols, device descriptors,
error taxonomy and control-path dispatch.
"""

from ._element import ElementLike
from ._matrix import IMatrix, IMatrixOperator
from ._errors import (
    DeviceOutOfMemoryError,
    DeviceUnavailableError,
    DimensionMismatchError,
    ElementTypeMismatchError,
    NullOperandError,
    RaggedInputError,
    UnsupportedElementTypeError,
)

__all__ = [
    ElementLike.__name__,
    IMatrix.__name__,
    IMatrixOperator.__name__,
    RaggedInputError.__name__,
    DimensionMismatchError.__name__,
    NullOperandError.__name__,
    ElementTypeMismatchError.__name__,
    UnsupportedElementTypeError.__name__,
    DeviceUnavailableError.__name__,
    DeviceOutOfMemoryError.__name__,
]

"""
Matrix and matrix-operator interface definitions.

These protocols capture the backend-agnostic surface shared by host matrices,
device-paired matrices, and the three operator backends. Domain code and tests
can type against them without importing the concrete infrastructure classes.
"""

from __future__ import annotations

from typing import Any, Protocol, runtime_checkable

import numpy as np

from ._element import ElementLike


@runtime_checkable
class IMatrix(Protocol):
    """
    Dense, row-major 2-D matrix.

    Notes
    -----
    `rows` and `columns` are immutable after construction.
    """

    @property
    def rows(self) -> int: ...

    @property
    def columns(self) -> int: ...

    @property
    def element(self) -> ElementLike: ...

    def __getitem__(self, index: tuple[int, int]) -> Any: ...
    def __setitem__(self, index: tuple[int, int], value: Any) -> None: ...
    def to_numpy(self) -> np.ndarray: ...


@runtime_checkable
class IMatrixOperator(Protocol):
    """
    Uniform operation contract implemented by every execution backend.

    All methods are pure: operands are never mutated and a fresh matrix is
    returned.
    """

    def add(self, a: IMatrix, b: IMatrix) -> IMatrix: ...
    def subtract(self, a: IMatrix, b: IMatrix) -> IMatrix: ...
    def multiply(self, a: IMatrix, b: IMatrix) -> IMatrix: ...
    def transpose(self, a: IMatrix) -> IMatrix: ...

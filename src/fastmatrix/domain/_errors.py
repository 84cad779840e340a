"""
Matrix- and device-related exceptions for fastmatrix.

This module defines the error taxonomy shared by every backend. Each error
subclasses the builtin exception closest to its meaning so callers can catch
either the precise type or the familiar builtin (e.g., `ValueError` for shape
problems, `MemoryError` for device exhaustion).

All of these errors are raised synchronously to the caller of the operation
that detected them. None of them are retried or swallowed internally, and an
operation that raises never leaves a partially-built result behind.
"""

from typing import Optional


class RaggedInputError(ValueError):
    """
    Raised when a row-grouped source has rows of inconsistent length.

    The check runs before any storage is allocated, so a ragged source never
    yields a partially-constructed matrix.

    Attributes
    ----------
    expected_length : int
        Length of row 0, which every other row must match.
    actual_length : int
        Length of the first offending row.
    row_index : int
        Index of the first offending row.
    """

    def __init__(self, expected_length: int, actual_length: int, row_index: int) -> None:
        """
        Initialize the RaggedInputError.

        Parameters
        ----------
        expected_length : int
            Baseline row length (row 0).
        actual_length : int
            Length of the offending row.
        row_index : int
            Index of the offending row.
        """
        super().__init__(
            f"Row-grouped source is ragged: row {row_index} has length "
            f"{actual_length} while row 0 has length {expected_length}."
        )
        self.expected_length = expected_length
        self.actual_length = actual_length
        self.row_index = row_index


class DimensionMismatchError(ValueError):
    """
    Raised when operand shapes are incompatible with the requested operation.

    Add and subtract require identical shapes; multiply requires
    ``a.columns == b.rows``. The check runs before any result is allocated.

    Attributes
    ----------
    op_kind : str
        Operation name (e.g., "add", "multiply").
    a_rows, a_cols : int
        Shape of the left operand.
    b_rows, b_cols : int
        Shape of the right operand.
    """

    def __init__(
        self, op_kind: str, a_rows: int, a_cols: int, b_rows: int, b_cols: int
    ) -> None:
        super().__init__(
            f"{op_kind}: incompatible operand shapes "
            f"({a_rows}x{a_cols}) and ({b_rows}x{b_cols})."
        )
        self.op_kind = op_kind
        self.a_rows = a_rows
        self.a_cols = a_cols
        self.b_rows = b_rows
        self.b_cols = b_cols


class NullOperandError(TypeError):
    """
    Raised when an operation receives an absent (`None`) operand.

    Attributes
    ----------
    op_kind : str
        Operation name.
    position : Optional[int]
        Zero-based operand position, when known.
    """

    def __init__(self, op_kind: str, position: Optional[int] = None) -> None:
        where = "" if position is None else f" (operand {position})"
        super().__init__(f"{op_kind} received a None operand{where}.")
        self.op_kind = op_kind
        self.position = position


class ElementTypeMismatchError(TypeError):
    """
    Raised when two operands carry different element types.
    """

    def __init__(self, op_kind: str, element_a: str, element_b: str) -> None:
        super().__init__(
            f"{op_kind}: element type mismatch '{element_a}' vs '{element_b}'."
        )
        self.op_kind = op_kind
        self.element_a = element_a
        self.element_b = element_b


class UnsupportedElementTypeError(TypeError):
    """
    Raised when a host-only element type is used with a compute device.

    Device kernels require fixed-layout values whose arithmetic is resolved
    when the kernel is specialized. Element types without that capability
    (e.g., arbitrary Python objects) can only be used by host backends.
    """

    def __init__(self, element: str, reason: str = "") -> None:
        suffix = f" {reason}" if reason else ""
        super().__init__(
            f"Element type '{element}' cannot be used on a compute device.{suffix}"
        )
        self.element = element


class DeviceUnavailableError(RuntimeError):
    """
    Raised when a device operation is requested but no device can serve it.

    This covers use of a disposed `DeviceContext` and configurations that force
    a device kind which is not present on this machine.
    """

    def __init__(self, message: str) -> None:
        super().__init__(message)


class DeviceOutOfMemoryError(MemoryError):
    """
    Raised when a device allocation exceeds the memory available on the device.

    Detected before any transfer is issued.

    Attributes
    ----------
    requested : int
        Requested allocation size in bytes.
    available : int
        Bytes available on the device at the time of the request.
    device : str
        Device identifier.
    """

    def __init__(self, requested: int, available: int, device: str) -> None:
        super().__init__(
            f"Device '{device}' cannot allocate {requested} bytes "
            f"({available} bytes available)."
        )
        self.requested = requested
        self.available = available
        self.device = device

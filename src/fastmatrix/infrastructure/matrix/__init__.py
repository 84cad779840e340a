"""
Host and device-paired matrices.
"""

from ._matrix import Matrix
from ._copy_state import CopyState
from ._buffered_matrix import BufferedMatrix
from . import _copy_paths  # noqa: F401  (registers BufferedMatrix control paths)

__all__ = [
    Matrix.__name__,
    BufferedMatrix.__name__,
    CopyState.__name__,
]

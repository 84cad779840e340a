"""
Matrix operator backends.
"""

from ._single_threaded import SingleThreadedOperator
from ._multi_threaded import MultiThreadedOperator, default_workers
from ._accelerated import AcceleratedOperator, select_variant
from ._factory import Backend, OperatorRegistry, create_operator

__all__ = [
    SingleThreadedOperator.__name__,
    MultiThreadedOperator.__name__,
    AcceleratedOperator.__name__,
    Backend.__name__,
    OperatorRegistry.__name__,
    "create_operator",
    "default_workers",
    "select_variant",
]

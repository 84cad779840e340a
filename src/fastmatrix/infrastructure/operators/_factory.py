"""
Backend registry and operator factory.

Backends are registered by `Backend` key in a class-level registry, and
`create_operator` builds a fresh operator for a key. Constructor keyword
arguments are passed through (e.g. ``workers=`` for the multi-threaded
backend, ``context=`` for the accelerated backend).

Usage example
-------------
    op = create_operator("multi", workers=4)
    c = op.multiply(a, b)
"""

from __future__ import annotations

from enum import Enum
from typing import Any, Callable, ClassVar, Dict, TypeVar, Union

from ...domain._matrix import IMatrixOperator
from ._accelerated import AcceleratedOperator
from ._multi_threaded import MultiThreadedOperator
from ._single_threaded import SingleThreadedOperator

T = TypeVar("T", bound=Callable[..., IMatrixOperator])


class Backend(Enum):
    """Execution backends."""

    SINGLE = "single"
    MULTI = "multi"
    ACCELERATED = "accelerated"


class OperatorRegistry:
    """
    Registry mapping `Backend` keys to operator constructors.
    """

    BACKENDS: ClassVar[Dict[Backend, Callable[..., IMatrixOperator]]] = {}

    @classmethod
    def register(cls, backend: Backend, *, overwrite: bool = False) -> Callable[[T], T]:
        """
        Decorator registering an operator constructor under `backend`.

        Parameters
        ----------
        backend : Backend
            Registry key.
        overwrite : bool
            If False (default), raises if `backend` is already registered.
        """

        def decorator(factory: T) -> T:
            if not overwrite and backend in cls.BACKENDS:
                raise ValueError(f"Backend already registered: {backend.value!r}")
            cls.BACKENDS[backend] = factory
            return factory

        return decorator

    @classmethod
    def available(cls) -> tuple[str, ...]:
        """Return registered backend names (sorted)."""
        return tuple(sorted(b.value for b in cls.BACKENDS))


OperatorRegistry.register(Backend.SINGLE)(SingleThreadedOperator)
OperatorRegistry.register(Backend.MULTI)(MultiThreadedOperator)
OperatorRegistry.register(Backend.ACCELERATED)(AcceleratedOperator)


def create_operator(backend: Union[Backend, str], **kwargs: Any) -> IMatrixOperator:
    """
    Build an operator for `backend`.

    Parameters
    ----------
    backend : Union[Backend, str]
        Backend key or its name ("single", "multi", "accelerated").
    **kwargs : Any
        Passed to the operator constructor.

    Returns
    -------
    IMatrixOperator
        A new operator instance.

    Raises
    ------
    ValueError
        If the backend is unknown.
    """
    try:
        key = backend if isinstance(backend, Backend) else Backend(backend)
        factory = OperatorRegistry.BACKENDS[key]
    except (KeyError, ValueError) as e:
        available = ", ".join(OperatorRegistry.available()) or "<none>"
        raise ValueError(
            f"Unsupported backend: {backend!r}. Available: {available}"
        ) from e
    return factory(**kwargs)

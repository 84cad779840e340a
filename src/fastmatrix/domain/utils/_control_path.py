"""
State-based method dispatch (a.k.a. "control-path" templating) via decorators.

This module provides a small mechanism for routing a single method call to one
of several registered implementations based on an object's runtime state.

Core idea
---------
- You define a *base* method on a class (its signature becomes the canonical one).
- You then register multiple "control paths" for that method, each keyed by:
    (ClassName, MethodName, StateVal)
- At runtime, the wrapper reads the object's state attribute and dispatches to
  the registered implementation that matches the current state.

Intended use-cases
------------------
- Implementing state machines where behavior changes by state without large
  if/elif chains (e.g., the per-matrix copy-state machine).
- Keeping per-state behaviors isolated as separate functions for readability.

Important notes
---------------
- This design mutates the class: the first time you decorate a control path,
  the original method name is replaced with a wrapper that performs dispatch.
- Registered implementations are stored in a closure-local mapping owned by
  `create_path_builder()`. Different builders do not share mappings.
- Registered implementations are called like instance methods, i.e. as
  `sub_method(self, *args, **kwargs)`.
"""

from typing import (
    Callable,
    Hashable,
    Optional,
    Union,
    Dict,
    Type,
    Any,
)
from typing_extensions import ParamSpec, TypeVar
from collections import namedtuple
from functools import wraps

P = ParamSpec("P")
R = TypeVar("R")


def create_path_builder(
    state_attribute: str = "_state",
) -> Callable[
    [
        Type,
        Callable[P, R],
        Hashable,
        Optional[Union[Exception, Callable[[Callable[P, R], Any], None]]],
    ],
    Callable[[Callable[P, R]], Callable[P, R]],
]:
    """
    Create and return a "path builder" used to register stateful control paths.

    The returned function (`templator`) is used like this:

        copy_path = create_path_builder("_state")

        class Buffered:
            def upload(self) -> None: ...

        @copy_path(Buffered, Buffered.upload, CopyState.NO_BUFFER)
        def upload_first(self) -> None:
            ...

    When `Buffered.upload(...)` is called, it dispatches on `self._state`.

    Parameters
    ----------
    state_attribute : str
        Name of the attribute (usually a property) read from the instance to
        select a control path.

    Returns
    -------
    Callable
        A function with signature:

            (cls, method, state, trap_exception=None) -> decorator
    """

    MethodKey = namedtuple(
        "MethodKey",
        [
            "ClassName",
            "MethodName",
            "StateVal",
        ],
    )
    """
    Tuple-like key used to uniquely identify a control path.
    """

    methods_map: Dict[MethodKey, Callable] = {}
    """Mapping from (class, method, state) keys to registered implementations."""

    def templator(
        cls: Type,
        method: Callable[P, R],
        state: Hashable,
        trap_exception: Optional[
            Union[Exception, Callable[[Callable[P, R], Any], None]]
        ] = None,
    ) -> Callable[[Callable[P, R]], Callable[P, R]]:
        """
        Build a decorator that registers a control path implementation.

        Parameters
        ----------
        cls : Type
            The class whose method should be wrapped for state-based dispatch.
        method : Callable[P, R]
            The base method being templated. Its metadata is preserved on the
            installed wrapper via `functools.wraps(method)`.
        state : Hashable
            The state value that selects the decorated implementation.
        trap_exception : Optional[Union[Exception, Callable]]
            Controls what happens when a dispatch target is missing:

            - If `None`, the wrapper raises `NotImplementedError`.
            - If an exception class, the wrapper raises `trap_exception()`.
            - If a callable that is not an exception class, it is invoked as
              `trap_exception(method, state)` and must raise.

        Returns
        -------
        Callable[[Callable[P, R]], Callable[P, R]]
            A decorator registering `sub_method` for `(cls, method, state)`.

        Raises
        ------
        TypeError
            If `state` is not hashable.
        """
        try:
            hash(state)
        except TypeError:
            raise TypeError(f"The argument for 'state' must be hashable. Got {state!r}")

        method_name = getattr(method, "__name__")
        smk: MethodKey = MethodKey(cls.__name__, method_name, state)
        """Static method key for the control path being registered by this call."""

        def decorator(sub_method: Callable[P, R]) -> Callable[P, R]:
            methods_map[smk] = sub_method

            # Only install the dispatcher once; later registrations reuse it.
            current = cls.__dict__.get(method_name)
            if getattr(current, "__control_path_dispatcher__", False):
                return sub_method

            @wraps(method)
            def wrapper(self: Any, *args: P.args, **kwargs: P.kwargs) -> Any:
                """
                Dispatch to a registered implementation based on the state attribute.
                """
                if not hasattr(self, state_attribute):
                    raise NotImplementedError(
                        "{} is missing attribute {} (@property)".format(
                            type(self), repr(state_attribute)
                        )
                    )
                cur_state = getattr(self, state_attribute)
                key = MethodKey(cls.__name__, method_name, cur_state)
                if sm := methods_map.get(key):
                    return sm(self, *args, **kwargs)
                if not trap_exception:
                    raise NotImplementedError(
                        "Missing control path (state={}) for {}".format(
                            repr(cur_state), repr(method)
                        )
                    )
                if isinstance(trap_exception, type) and issubclass(
                    trap_exception, BaseException
                ):
                    raise trap_exception()
                trap_exception(method, cur_state)
                raise NotImplementedError(
                    "Missing control path (state={}) for {}".format(
                        repr(cur_state), repr(method)
                    )
                )

            wrapper.__control_path_dispatcher__ = True
            setattr(cls, method_name, wrapper)
            return sub_method

        return decorator

    return templator

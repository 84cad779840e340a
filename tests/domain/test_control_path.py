import unittest

from fastmatrix.domain.utils._control_path import create_path_builder


class TestCreatePathBuilder(unittest.TestCase):
    def setUp(self) -> None:
        # Fresh builder per test to avoid map-sharing across tests.
        self.decorator = create_path_builder("_state")

    def test_state_must_be_hashable(self) -> None:
        class C:
            _state = "A"

            def foo(self, x: int) -> int:
                return x

        with self.assertRaises(TypeError) as ctx:
            # list is unhashable
            self.decorator(C, C.foo, ["not-hashable"])(lambda self, x: x)

        self.assertIn("must be hashable", str(ctx.exception))

    def test_dispatch_selects_registered_control_path(self) -> None:
        class C:
            def __init__(self, st):
                self._state = st

            def foo(self, x: int) -> int:
                # base implementation never used once wrapper installed
                return -999

        @self.decorator(C, C.foo, "A")
        def foo_A(self, x: int) -> int:
            return x + 10

        @self.decorator(C, C.foo, "B")
        def foo_B(self, x: int) -> int:
            return x + 20

        self.assertEqual(C("A").foo(1), 11)
        self.assertEqual(C("B").foo(1), 21)

    def test_control_path_receives_instance(self) -> None:
        class C:
            def __init__(self, st):
                self._state = st
                self.hits = 0

            def bump(self) -> None: ...

        @self.decorator(C, C.bump, "open")
        def bump_open(self) -> None:
            self.hits += 1
            self._state = "closed"

        c = C("open")
        c.bump()
        self.assertEqual(c.hits, 1)
        self.assertEqual(c._state, "closed")

    def test_state_change_redirects_next_call(self) -> None:
        class C:
            def __init__(self):
                self._state = 0

            def step(self) -> str: ...

        @self.decorator(C, C.step, 0)
        def step_zero(self) -> str:
            self._state = 1
            return "zero"

        @self.decorator(C, C.step, 1)
        def step_one(self) -> str:
            return "one"

        c = C()
        self.assertEqual([c.step(), c.step(), c.step()], ["zero", "one", "one"])

    def test_stacked_registrations_share_implementation(self) -> None:
        class C:
            def __init__(self, st):
                self._state = st

            def foo(self) -> str: ...

        @self.decorator(C, C.foo, "A")
        @self.decorator(C, C.foo, "B")
        def foo_AB(self) -> str:
            return "ab"

        self.assertEqual(C("A").foo(), "ab")
        self.assertEqual(C("B").foo(), "ab")

    def test_custom_state_attribute(self) -> None:
        decorator = create_path_builder("mode")

        class C:
            def __init__(self, mode):
                self.mode = mode

            def foo(self) -> str: ...

        @decorator(C, C.foo, "fast")
        def foo_fast(self) -> str:
            return "fast"

        self.assertEqual(C("fast").foo(), "fast")

    def test_missing_state_attribute_raises_not_implemented(self) -> None:
        class C:
            # No _state attribute on purpose
            def foo(self, x: int) -> int:
                return x

        @self.decorator(C, C.foo, "A")
        def foo_A(self, x: int) -> int:
            return x + 1

        with self.assertRaises(NotImplementedError) as ctx:
            C().foo(1)

        self.assertIn("missing attribute", str(ctx.exception))
        self.assertIn("'_state'", str(ctx.exception))

    def test_missing_control_path_without_trap_exception_raises_not_implemented(
        self,
    ) -> None:
        class C:
            def __init__(self, st):
                self._state = st

            def foo(self, x: int) -> int:
                return x

        @self.decorator(C, C.foo, "A")
        def foo_A(self, x: int) -> int:
            return x + 1

        with self.assertRaises(NotImplementedError) as ctx:
            C("B").foo(1)

        self.assertIn("Missing control path", str(ctx.exception))
        self.assertIn("state='B'", str(ctx.exception))

    def test_trap_exception_as_exception_class_raises_that_exception(self) -> None:
        class MissingPathError(Exception):
            pass

        class C:
            def __init__(self, st):
                self._state = st

            def foo(self, x: int) -> int:
                return x

        @self.decorator(C, C.foo, "A", trap_exception=MissingPathError)
        def foo_A(self, x: int) -> int:
            return x + 1

        with self.assertRaises(MissingPathError):
            C("B").foo(1)

    def test_trap_exception_callable_is_invoked_with_method_and_state(self) -> None:
        class TrapError(Exception):
            pass

        calls = []

        def trap(method, state):
            calls.append((method.__name__, state))
            raise TrapError(f"no path for {state}")

        class C:
            def __init__(self, st):
                self._state = st

            def foo(self, x: int) -> int:
                return x

        @self.decorator(C, C.foo, "A", trap_exception=trap)
        def foo_A(self, x: int) -> int:
            return x + 1

        with self.assertRaises(TrapError):
            C("B").foo(123)
        self.assertEqual(calls, [("foo", "B")])

    def test_wrapper_preserves_original_method_metadata(self) -> None:
        class C:
            _state = "A"

            def foo(self, x: int) -> int:
                """Original foo docstring."""
                return x

        @self.decorator(C, C.foo, "A")
        def foo_A(self, x: int) -> int:
            return x + 1

        self.assertEqual(C.foo.__name__, "foo")
        self.assertEqual(C.foo.__doc__, "Original foo docstring.")

    def test_two_builders_do_not_share_control_paths(self) -> None:
        deco1 = create_path_builder("_state")
        deco2 = create_path_builder("_state")

        class C:
            def __init__(self, st):
                self._state = st

            def foo(self, x: int) -> int:
                return -999

        @deco1(C, C.foo, "A")
        def foo_A_1(self, x: int) -> int:
            return 111

        @deco2(C, C.foo, "B")
        def foo_B_2(self, x: int) -> int:
            return 222

        # The dispatcher installed by deco1 only consults deco1's paths.
        self.assertEqual(C("A").foo(0), 111)
        with self.assertRaises(NotImplementedError):
            C("B").foo(0)


if __name__ == "__main__":
    unittest.main()

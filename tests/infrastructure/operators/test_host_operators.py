from fractions import Fraction
import os
import unittest
from unittest import mock

import numpy as np

from fastmatrix.infrastructure.elements import FLOAT32, FLOAT64, INT32, INT64, PYOBJECT
from fastmatrix.infrastructure.matrix import Matrix
from fastmatrix.infrastructure.operators import (
    MultiThreadedOperator,
    SingleThreadedOperator,
    default_workers,
)
from fastmatrix.infrastructure.operators._host_kernels import row_ranges


def filled(rows, columns, value, element=INT32):
    return Matrix.from_array(np.full((rows, columns), value), element)


class TestRowRanges(unittest.TestCase):
    def test_ranges_cover_every_row_once(self):
        for rows, parts in ((10, 3), (3, 10), (1, 1), (7, 7), (100, 8)):
            with self.subTest(rows=rows, parts=parts):
                ranges = row_ranges(rows, parts)
                self.assertLessEqual(len(ranges), parts)
                covered = [r for start, stop in ranges for r in range(start, stop)]
                self.assertEqual(covered, list(range(rows)))
                self.assertTrue(all(stop > start for start, stop in ranges))

    def test_no_rows(self):
        self.assertEqual(row_ranges(0, 4), [])


class _HostOperatorChecks:
    """Behavior shared by both host backends."""

    def make_operator(self):
        raise NotImplementedError

    def setUp(self):
        self.op = self.make_operator()

    def tearDown(self):
        close = getattr(self.op, "close", None)
        if close is not None:
            close()

    def test_five_by_five_scenario(self):
        a = filled(5, 5, 15)
        b = filled(5, 5, 5)
        self.assertEqual(self.op.add(a, b), filled(5, 5, 20))
        self.assertEqual(self.op.subtract(a, b), filled(5, 5, 10))
        self.assertEqual(self.op.multiply(a, b), filled(5, 5, 375))

    def test_transpose_scenario(self):
        a = filled(5, 3, 10)
        a[0, 2] = 5
        t = self.op.transpose(a)
        self.assertEqual(t.shape, (3, 5))
        self.assertEqual(t[2, 0], 5)
        self.assertEqual(t[0, 0], 10)

    def test_rectangular_multiply(self):
        a = Matrix.from_rows([[1, 2, 3], [4, 5, 6]], INT64)
        b = Matrix.from_rows([[7, 8], [9, 10], [11, 12]], INT64)
        self.assertEqual(
            self.op.multiply(a, b), Matrix.from_rows([[58, 64], [139, 154]], INT64)
        )

    def test_algebraic_laws(self):
        rng = np.random.default_rng(7)
        a = Matrix.from_array(rng.integers(-100, 100, size=(9, 6)), INT64)
        b = Matrix.from_array(rng.integers(-100, 100, size=(9, 6)), INT64)
        self.assertEqual(self.op.subtract(self.op.add(a, b), b), a)
        self.assertEqual(self.op.transpose(self.op.transpose(a)), a)
        self.assertEqual(self.op.add(a, b), self.op.add(b, a))

    def test_operands_are_not_modified(self):
        a = filled(3, 3, 2)
        b = filled(3, 3, 4)
        a_copy, b_copy = a.to_numpy(), b.to_numpy()
        self.op.multiply(a, b)
        self.op.add(a, b)
        np.testing.assert_array_equal(a.to_numpy(), a_copy)
        np.testing.assert_array_equal(b.to_numpy(), b_copy)

    def test_result_is_a_new_host_matrix(self):
        a = filled(2, 2, 1)
        c = self.op.add(a, a)
        self.assertIs(type(c), Matrix)
        self.assertIsNot(c, a)
        self.assertIs(c.element, INT32)

    def test_empty_operands(self):
        self.assertEqual(self.op.add(Matrix(0, 3), Matrix(0, 3)).shape, (0, 3))
        self.assertEqual(self.op.transpose(Matrix(0, 3)).shape, (3, 0))
        product = self.op.multiply(Matrix(2, 0, INT32), Matrix(0, 3, INT32))
        self.assertEqual(product, Matrix(2, 3, INT32))

    def test_object_elements(self):
        a = Matrix.from_rows(
            [[Fraction(1, 2), Fraction(1, 3)], [Fraction(1, 4), Fraction(1, 5)]],
            PYOBJECT,
        )
        c = self.op.multiply(a, a)
        self.assertEqual(c[0, 0], Fraction(1, 4) + Fraction(1, 12))
        self.assertEqual(self.op.add(a, a)[1, 1], Fraction(2, 5))

    def test_float_results_match_numpy(self):
        rng = np.random.default_rng(3)
        a = rng.standard_normal((12, 8))
        b = rng.standard_normal((8, 5))
        c = self.op.multiply(Matrix.from_array(a), Matrix.from_array(b))
        self.assertIs(c.element, FLOAT64)
        np.testing.assert_allclose(c.to_numpy(), a @ b, rtol=1e-12)


class TestSingleThreadedOperator(_HostOperatorChecks, unittest.TestCase):
    def make_operator(self):
        return SingleThreadedOperator()


class TestMultiThreadedOperator(_HostOperatorChecks, unittest.TestCase):
    def make_operator(self):
        return MultiThreadedOperator(workers=3)

    def test_bit_identical_to_single_threaded(self):
        rng = np.random.default_rng(11)
        single = SingleThreadedOperator()
        for element in (FLOAT32, FLOAT64):
            a = Matrix.from_array(rng.standard_normal((37, 29)), element)
            b = Matrix.from_array(rng.standard_normal((29, 41)), element)
            c = Matrix.from_array(rng.standard_normal((37, 29)), element)
            with self.subTest(element=element.name):
                m = self.op.multiply(a, b).to_numpy()
                s = single.multiply(a, b).to_numpy()
                self.assertEqual(m.tobytes(), s.tobytes())
                self.assertEqual(
                    self.op.add(a, c).to_numpy().tobytes(),
                    single.add(a, c).to_numpy().tobytes(),
                )
                self.assertEqual(self.op.transpose(a), single.transpose(a))

    def test_more_workers_than_rows(self):
        with MultiThreadedOperator(workers=16) as op:
            self.assertEqual(op.add(filled(2, 2, 1), filled(2, 2, 1)), filled(2, 2, 2))

    def test_invalid_worker_count(self):
        with self.assertRaises(ValueError):
            MultiThreadedOperator(workers=0)

    def test_default_workers_from_environment(self):
        with mock.patch.dict(os.environ, {"FASTMATRIX_WORKERS": "3"}):
            self.assertEqual(default_workers(), 3)
        with mock.patch.dict(os.environ, {"FASTMATRIX_WORKERS": ""}):
            self.assertEqual(default_workers(), os.cpu_count() or 1)


if __name__ == "__main__":
    unittest.main()

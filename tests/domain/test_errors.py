import unittest

from fastmatrix.domain._errors import (
    DeviceOutOfMemoryError,
    DeviceUnavailableError,
    DimensionMismatchError,
    ElementTypeMismatchError,
    NullOperandError,
    RaggedInputError,
    UnsupportedElementTypeError,
)


class TestErrorTaxonomy(unittest.TestCase):
    def test_builtin_bases(self):
        self.assertTrue(issubclass(RaggedInputError, ValueError))
        self.assertTrue(issubclass(DimensionMismatchError, ValueError))
        self.assertTrue(issubclass(NullOperandError, TypeError))
        self.assertTrue(issubclass(ElementTypeMismatchError, TypeError))
        self.assertTrue(issubclass(UnsupportedElementTypeError, TypeError))
        self.assertTrue(issubclass(DeviceUnavailableError, RuntimeError))
        self.assertTrue(issubclass(DeviceOutOfMemoryError, MemoryError))

    def test_ragged_input_fields_and_message(self):
        e = RaggedInputError(expected_length=3, actual_length=2, row_index=4)
        self.assertEqual((e.expected_length, e.actual_length, e.row_index), (3, 2, 4))
        self.assertIn("row 4", str(e))
        self.assertIn("length 2", str(e))

    def test_dimension_mismatch_fields(self):
        e = DimensionMismatchError("multiply", 2, 3, 4, 5)
        self.assertEqual(e.op_kind, "multiply")
        self.assertEqual((e.a_rows, e.a_cols, e.b_rows, e.b_cols), (2, 3, 4, 5))
        self.assertIn("(2x3)", str(e))
        self.assertIn("(4x5)", str(e))

    def test_null_operand_position_is_optional(self):
        self.assertIsNone(NullOperandError("add").position)
        e = NullOperandError("add", 1)
        self.assertEqual(e.position, 1)
        self.assertIn("operand 1", str(e))

    def test_out_of_memory_fields(self):
        e = DeviceOutOfMemoryError(requested=100, available=10, device="emulated")
        self.assertEqual((e.requested, e.available, e.device), (100, 10, "emulated"))
        self.assertIn("100 bytes", str(e))

    def test_element_errors_name_the_elements(self):
        e = ElementTypeMismatchError("add", "int32", "float64")
        self.assertIn("'int32'", str(e))
        self.assertIn("'float64'", str(e))
        u = UnsupportedElementTypeError("object")
        self.assertEqual(u.element, "object")


if __name__ == "__main__":
    unittest.main()

import unittest
from dskclean.string import format_memory, short_id


class TestStringFunctions(unittest.TestCase):
    def test_short_id_strips_digest_prefix(self):
        self.assertEqual(short_id("sha256:4f1c0e3a9b2d7e6f5a4b"), "4f1c0e3a9b2d")

    def test_short_id_keeps_volume_names(self):
        self.assertEqual(short_id("pgdata"), "pgdata")

    def test_format_memory_bytes(self):
        """Test format_memory keeps the exact count below 1KB."""
        self.assertEqual(format_memory(0), "0 B")
        self.assertEqual(format_memory(500), "500 B")

    def test_format_memory_units(self):
        self.assertEqual(format_memory(1024), "1.00 KB")
        self.assertEqual(format_memory(1536 * 1024), "1.50 MB")
        self.assertEqual(format_memory(3 * 1024**3), "3.00 GB")

    def test_format_memory_terabytes(self):
        self.assertEqual(format_memory(2 * 1024**4), "2.00 TB")


if __name__ == "__main__":
    unittest.main()

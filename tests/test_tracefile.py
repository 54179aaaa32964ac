import os
import tempfile
import unittest

from tracefile import (
    SyntheticTrace, TraceError, TraceReader, TraceRecord,
    generate_trace, open_trace, parse_line,
)

SAMPLE = """l 0x1fffff50 1
s 1fffff54 0
garbage

l zz 3
l 0x100000000 1
l 0x7ffe0 12
"""


class TestParseLine(unittest.TestCase):

    def test_parses_type_address_and_gap(self):
        self.assertEqual(parse_line("l 0x1fffff50 1"), TraceRecord("l", 0x1FFFFF50, 1))
        self.assertEqual(parse_line("s 1fffff54 0\n"), TraceRecord("s", 0x1FFFFF54, 0))

    def test_gap_is_optional(self):
        self.assertEqual(parse_line("l 0x10"), TraceRecord("l", 0x10, 0))

    def test_malformed_lines(self):
        for line in ("", "garbage", "l zz 3", "l 0x10 x", "l 0x100000000 1", "l -0x4 1",
                     "l 1_0 1", "l +10 1", "l 0x 1", "l 0x_10 1"):
            self.assertIsNone(parse_line(line), line)


class TestTraceReader(unittest.TestCase):

    def setUp(self):
        self.tmpdir = tempfile.TemporaryDirectory()
        self.path = os.path.join(self.tmpdir.name, "sample.trace")
        with open(self.path, "w") as f:
            f.write(SAMPLE)

    def tearDown(self):
        self.tmpdir.cleanup()

    def test_skips_malformed_lines(self):
        reader = TraceReader(self.path)
        with self.assertLogs("tracefile", level="WARNING") as logs:
            addresses = list(reader.addresses())
        self.assertEqual(addresses, [0x1FFFFF50, 0x1FFFFF54, 0x7FFE0])
        self.assertEqual(reader.skipped, 3)
        self.assertEqual(reader.first_bad_line, 3)
        self.assertIn("skipped 3", logs.output[0])

    def test_missing_file(self):
        reader = TraceReader(os.path.join(self.tmpdir.name, "missing.trace"))
        with self.assertRaises(TraceError):
            list(reader)

    def test_open_trace_dispatch(self):
        self.assertIsInstance(open_trace(self.path), TraceReader)
        self.assertIsInstance(open_trace("synthetic:random", {"num_requests": 10}), SyntheticTrace)


class TestGenerateTrace(unittest.TestCase):

    def test_sequential_wraps_working_set(self):
        addresses = generate_trace(num_requests=20, working_set_kb=1, line_size=64, access_pattern="sequential")
        self.assertEqual(addresses[:16], [i * 64 for i in range(16)])
        self.assertEqual(addresses[16:], [0, 64, 128, 192])

    def test_seeded_generation_is_repeatable(self):
        for pattern in ("random", "mixed"):
            first = generate_trace(num_requests=500, working_set_kb=8, line_size=4, access_pattern=pattern, seed=42)
            second = generate_trace(num_requests=500, working_set_kb=8, line_size=4, access_pattern=pattern, seed=42)
            self.assertEqual(first, second)
            self.assertTrue(all(0 <= a < 8 * 1024 for a in first))
            self.assertTrue(all(a % 4 == 0 for a in first))

    def test_rejects_non_positive_line_size(self):
        with self.assertRaises(ValueError):
            generate_trace(num_requests=10, line_size=0)
        with self.assertRaises(TraceError):
            SyntheticTrace("synthetic:", {"line_size_bytes": 0})

    def test_unknown_pattern(self):
        with self.assertRaises(ValueError):
            generate_trace(access_pattern="zigzag")
        with self.assertRaises(TraceError):
            SyntheticTrace("synthetic:zigzag", {})

    def test_synthetic_trace_uses_config(self):
        trace = SyntheticTrace("synthetic:", {"num_requests": 32, "access_pattern": "sequential",
                                              "line_size_bytes": 8, "working_set_kb": 1})
        self.assertEqual(list(trace.addresses()), [i * 8 for i in range(32)])
        self.assertEqual(trace.skipped, 0)


if __name__ == '__main__':
    unittest.main()

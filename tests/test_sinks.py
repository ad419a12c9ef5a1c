"""Tests for ui.sinks -- report destinations."""

import io
import os
import tempfile
import unittest

from rich.console import Console

from ui.sinks import ConsoleSink, FileSink, MemorySink


class TestConsoleSink(unittest.TestCase):
    def test_prints_plain_text(self):
        buf = io.StringIO()
        sink = ConsoleSink(Console(file=buf, width=200, color_system=None))
        sink.line("[   1] Download: 10.00 Mbit/s")
        # Square brackets must not be treated as rich markup.
        self.assertEqual(buf.getvalue(), "[   1] Download: 10.00 Mbit/s\n")


class TestFileSink(unittest.TestCase):
    def test_appends_timestamped_lines(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            path = os.path.join(tmpdir, "report.log")
            with FileSink(path) as sink:
                sink.line("Download: 10.00 Mbit/s")
                sink.line("Upload: 5.00 Mbit/s")
            with FileSink(path) as sink:
                sink.line("Download: 11.00 Mbit/s")

            with open(path, encoding="utf-8") as fh:
                lines = fh.read().splitlines()

        self.assertEqual(len(lines), 3)
        self.assertRegex(lines[0], r"^\d{2}:\d{2}:\d{2} Download: 10\.00 Mbit/s$")
        self.assertTrue(lines[2].endswith("Download: 11.00 Mbit/s"))

    def test_creates_parent_directory(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            path = os.path.join(tmpdir, "nested", "dir", "report.log")
            sink = FileSink(path)
            sink.line("hello")
            sink.close()
            self.assertTrue(os.path.isfile(path))

    def test_write_after_close(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            sink = FileSink(os.path.join(tmpdir, "report.log"))
            sink.close()
            sink.close()  # idempotent
            with self.assertRaises(ValueError):
                sink.line("late")


class TestMemorySink(unittest.TestCase):
    def test_collects(self):
        sink = MemorySink()
        sink.line("a")
        sink.line("b")
        self.assertEqual(sink.lines, ["a", "b"])


if __name__ == "__main__":
    unittest.main()

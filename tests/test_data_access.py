from __future__ import annotations

import tempfile
import unittest
from pathlib import Path

from pdf_images.data_access import (
    DataAccessError,
    atomic_output,
    list_source_images,
    modified_output_path,
    natural_sort_key,
    resolve_merge_output,
    resolve_split_output_dir,
    unique_file_path,
)


class TestNaturalSort(unittest.TestCase):
    def test_numeric_runs_compare_by_value(self) -> None:
        names = ["c10.jpg", "b.jpg", "a.jpg", "c2.jpg", "C1.jpg"]
        self.assertEqual(sorted(names, key=natural_sort_key), ["a.jpg", "b.jpg", "C1.jpg", "c2.jpg", "c10.jpg"])

    def test_list_source_images_filters_and_sorts_recursively(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            root = Path(tmp)
            (root / "sub").mkdir()
            for name in ["b.jpg", "a.JPG", "c10.png", "c2.jpeg", "notes.txt", "sub/d1.png"]:
                (root / name).write_bytes(b"")

            found = [p.relative_to(root).as_posix() for p in list_source_images(root)]

        self.assertEqual(found, ["a.JPG", "b.jpg", "c2.jpeg", "c10.png", "sub/d1.png"])

    def test_missing_source_dir(self) -> None:
        with self.assertRaises(DataAccessError):
            list_source_images(Path("/nonexistent/source/dir"))


class TestOutputPaths(unittest.TestCase):
    def setUp(self) -> None:
        self._tmp = tempfile.TemporaryDirectory()
        self.root = Path(self._tmp.name)
        self.source = self.root / "scans"
        self.source.mkdir()

    def tearDown(self) -> None:
        self._tmp.cleanup()

    def test_unique_file_path(self) -> None:
        target = self.root / "book.pdf"
        self.assertEqual(unique_file_path(target), target)
        target.write_bytes(b"")
        (self.root / "book (1).pdf").write_bytes(b"")
        self.assertEqual(unique_file_path(target), self.root / "book (2).pdf")

    def test_explicit_pdf_destination_creates_parent(self) -> None:
        out = resolve_merge_output(source_dir=self.source, destination=self.root / "nested" / "book.pdf")
        self.assertEqual(out, (self.root / "nested" / "book.pdf").resolve())
        self.assertTrue(out.parent.is_dir())

    def test_directory_destination_uses_source_folder_name(self) -> None:
        out = resolve_merge_output(source_dir=self.source, destination=self.root / "pdfs")
        self.assertEqual(out, (self.root / "pdfs" / "scans.pdf").resolve())
        out.write_bytes(b"")
        again = resolve_merge_output(source_dir=self.source, destination=self.root / "pdfs")
        self.assertEqual(again.name, "scans (1).pdf")

    def test_conflicting_destinations(self) -> None:
        (self.root / "taken.pdf").mkdir()
        with self.assertRaises(DataAccessError):
            resolve_merge_output(source_dir=self.source, destination=self.root / "taken.pdf")

        (self.root / "file.txt").write_bytes(b"")
        with self.assertRaises(DataAccessError):
            resolve_merge_output(source_dir=self.source, destination=self.root / "file.txt")

    def test_modify_and_split_locations(self) -> None:
        pdf = self.root / "report.pdf"
        self.assertEqual(modified_output_path(pdf), self.root / "report_modified.pdf")
        self.assertEqual(resolve_split_output_dir(pdf_file=pdf, destination=None, create_subfolder=False), self.root)
        sub = resolve_split_output_dir(pdf_file=pdf, destination=self.root / "imgs", create_subfolder=True)
        self.assertEqual(sub, (self.root / "imgs" / "report").resolve())
        self.assertTrue(sub.is_dir())


class TestAtomicOutput(unittest.TestCase):
    def test_failed_write_leaves_target_untouched(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            target = Path(tmp) / "out.pdf"
            target.write_bytes(b"previous")

            with self.assertRaises(RuntimeError):
                with atomic_output(target) as fh:
                    fh.write(b"half")
                    raise RuntimeError("boom")

            self.assertEqual(target.read_bytes(), b"previous")
            self.assertEqual([p.name for p in Path(tmp).iterdir()], ["out.pdf"])

            with atomic_output(target) as fh:
                fh.write(b"complete")
            self.assertEqual(target.read_bytes(), b"complete")


if __name__ == "__main__":
    unittest.main()

from __future__ import annotations

import tempfile
import unittest
from pathlib import Path
from unittest.mock import patch

import pypdfium2 as pdfium
from pypdf import PdfReader

from pdf_images.contracts import ConversionStatus
from pdf_images.errors import DocumentOpenError
from pdf_images.geometry import compute_page_transform
from pdf_images.module import resize_pdf_pages

from pdf_fixtures import write_pdf_with_boxes, write_pdf_with_inherited_box


def _boxes(pdf_file: Path) -> list[tuple[tuple[float, ...], tuple[float, ...]]]:
    pdf = pdfium.PdfDocument(str(pdf_file))
    try:
        return [(tuple(pdf[i].get_mediabox()), tuple(pdf[i].get_cropbox())) for i in range(len(pdf))]
    finally:
        pdf.close()


class TestResizePdfPages(unittest.TestCase):
    def setUp(self) -> None:
        self._tmp = tempfile.TemporaryDirectory()
        self.root = Path(self._tmp.name)

    def tearDown(self) -> None:
        self._tmp.cleanup()

    def test_every_page_gets_target_width_regardless_of_original(self) -> None:
        src = write_pdf_with_boxes(
            self.root / "in.pdf",
            [(0, 0, 300, 400), (100, 50, 942, 645), (0, 0, 595, 842)],
        )
        out = self.root / "out.pdf"
        progress: list[float] = []

        report = resize_pdf_pages(src, out, on_progress=progress.append)

        self.assertEqual(report.status, ConversionStatus.COMPLETE)
        self.assertEqual(report.units_total, 3)
        boxes = _boxes(out)
        self.assertEqual(len(boxes), 3)
        expected_heights = [400 * 595 / 300, 595 * 595 / 842, 842.0]
        for (media, crop), height in zip(boxes, expected_heights):
            self.assertAlmostEqual(media[0], 0.0, places=2)
            self.assertAlmostEqual(media[1], 0.0, places=2)
            self.assertAlmostEqual(media[2], 595.0, places=2)
            self.assertAlmostEqual(media[3], height, places=1)
            for m, c in zip(media, crop):
                self.assertAlmostEqual(m, c, places=2)
        self.assertEqual(len(progress), 3)
        self.assertEqual(progress[-1], 100.0)

    def test_transform_precedes_existing_content(self) -> None:
        src = write_pdf_with_boxes(self.root / "in.pdf", [(0, 0, 300, 400)])
        out = self.root / "out.pdf"

        resize_pdf_pages(src, out)

        data = PdfReader(str(out)).pages[0].get_contents().get_data()
        cm_at = data.find(b"cm")
        original_at = data.find(b"10 10 l")
        self.assertGreaterEqual(cm_at, 0)
        self.assertGreater(original_at, cm_at)

    def test_page_without_content_is_still_resized(self) -> None:
        src = write_pdf_with_boxes(self.root / "in.pdf", [(0, 0, 300, 400), (0, 0, 1190, 100)], blank=(2,))
        out = self.root / "out.pdf"

        report = resize_pdf_pages(src, out)

        self.assertEqual(report.failures, ())
        media, _ = _boxes(out)[1]
        self.assertAlmostEqual(media[2], 595.0, places=2)
        self.assertAlmostEqual(media[3], 50.0, places=2)

    def test_media_box_inherited_from_page_tree(self) -> None:
        src = write_pdf_with_inherited_box(self.root / "in.pdf", (50, 100, 350, 500))
        out = self.root / "out.pdf"

        report = resize_pdf_pages(src, out)

        self.assertEqual(report.failures, ())
        media, crop = _boxes(out)[0]
        for actual, expected in zip(media, (0.0, 0.0, 595.0, 400 * 595 / 300)):
            self.assertAlmostEqual(actual, expected, places=1)
        for m, c in zip(media, crop):
            self.assertAlmostEqual(m, c, places=2)

    def test_failing_page_is_reported_and_left_unmodified(self) -> None:
        src = write_pdf_with_boxes(self.root / "in.pdf", [(0, 0, 300, 400), (0, 0, 612, 792), (0, 0, 200, 200)])
        out = self.root / "out.pdf"

        def flaky(box, target_width):
            if box.width == 612:
                raise RuntimeError("boom")
            return compute_page_transform(box, target_width)

        errors: list[tuple[int, BaseException]] = []
        progress: list[float] = []
        with patch("pdf_images.engines.pypdfium2_engine.compute_page_transform", side_effect=flaky):
            report = resize_pdf_pages(
                src, out, on_progress=progress.append, on_page_error=lambda n, e: errors.append((n, e))
            )

        self.assertEqual(report.status, ConversionStatus.PARTIAL)
        self.assertEqual([n for n, _ in errors], [2])
        self.assertEqual([f.page_num for f in report.failures], [2])
        boxes = _boxes(out)
        self.assertEqual(len(boxes), 3)
        self.assertAlmostEqual(boxes[0][0][2], 595.0, places=2)
        self.assertEqual(tuple(round(v) for v in boxes[1][0]), (0, 0, 612, 792))
        self.assertAlmostEqual(boxes[2][0][2], 595.0, places=2)
        self.assertEqual(len(progress), 3)

    def test_unreadable_input_is_fatal(self) -> None:
        src = self.root / "broken.pdf"
        src.write_bytes(b"%PDF-1.7 this is not really a pdf")
        out = self.root / "out.pdf"

        with self.assertRaises(DocumentOpenError):
            resize_pdf_pages(src, out)
        self.assertFalse(out.exists())


if __name__ == "__main__":
    unittest.main()

from __future__ import annotations

import unittest

from pdf_images.contracts import PageBox
from pdf_images.geometry import compute_page_transform


class TestComputePageTransform(unittest.TestCase):
    def test_width_matches_target_and_aspect_ratio_is_kept(self) -> None:
        for width, height in [(300.0, 400.0), (842.0, 595.0), (1.0, 5000.0), (4961.0, 7016.0)]:
            t = compute_page_transform(PageBox(0.0, 0.0, width, height), 595.0)
            self.assertAlmostEqual(t.new_box.width, 595.0)
            self.assertAlmostEqual(t.new_box.height / t.new_box.width, height / width)

    def test_matrix_is_uniform_scale_without_skew(self) -> None:
        t = compute_page_transform(PageBox(0.0, 0.0, 1190.0, 1684.0), 595.0)
        a, b, c, d, e, f = t.matrix
        self.assertEqual((a, d), (0.5, 0.5))
        self.assertEqual((b, c), (0.0, 0.0))
        self.assertEqual((e, f), (0.0, 0.0))
        self.assertEqual(t.new_box, PageBox(0.0, 0.0, 595.0, 842.0))

    def test_offset_origin_is_undone_in_scaled_units(self) -> None:
        t = compute_page_transform(PageBox(100.0, 50.0, 1190.0, 842.0), 595.0)
        self.assertEqual((t.new_box.x, t.new_box.y), (0.0, 0.0))
        self.assertAlmostEqual(t.shift_x, -50.0)
        self.assertAlmostEqual(t.shift_y, -25.0)
        # original lower-left corner lands on the new origin
        self.assertAlmostEqual(100.0 * t.scale_x + t.shift_x, 0.0)
        self.assertAlmostEqual(50.0 * t.scale_y + t.shift_y, 0.0)

    def test_non_positive_width_is_identity(self) -> None:
        for box in [PageBox(0.0, 0.0, 0.0, 100.0), PageBox(10.0, 20.0, -5.0, 100.0)]:
            t = compute_page_transform(box, 595.0)
            self.assertTrue(t.is_identity)
            self.assertEqual(t.new_box, box)

    def test_repeatable(self) -> None:
        box = PageBox(12.5, 7.25, 612.0, 792.0)
        self.assertEqual(compute_page_transform(box, 595.0), compute_page_transform(box, 595.0))


if __name__ == "__main__":
    unittest.main()

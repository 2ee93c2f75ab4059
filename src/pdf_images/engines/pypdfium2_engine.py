from __future__ import annotations

import ctypes
import io
import logging
from pathlib import Path
from typing import Sequence

from ..contracts import PageBox, PageTransform
from ..data_access import atomic_output
from ..errors import DocumentOpenError, DocumentWriteError
from ..geometry import compute_page_transform
from ..reporting import ItemErrorCallback, PageErrorCallback, ProgressCallback

from .base import PdfWriterEngine

LOGGER = logging.getLogger("pdf_images.engines.pypdfium2")


class Pypdfium2Engine(PdfWriterEngine):
    """
    Writes documents through PDFium.

    PDFium is not thread-safe; one engine call owns its documents exclusively.
    """

    def backend_id(self) -> str:
        return "pypdfium2"

    def backend_version(self) -> str | None:
        try:
            import pypdfium2 as pdfium  # type: ignore

            return getattr(pdfium, "__version__", None)
        except Exception:
            return None

    def _require_pdfium(self):
        try:
            import pypdfium2 as pdfium  # type: ignore

            return pdfium
        except ImportError as e:
            raise RuntimeError("Missing dependency: pypdfium2 is required for writing PDFs.") from e

    def _require_pil(self):
        try:
            from PIL import Image  # type: ignore

            return Image
        except ImportError as e:
            raise RuntimeError("Missing dependency: Pillow is required for decoding images.") from e

    def _require_pypdf(self):
        try:
            import pypdf  # type: ignore

            return pypdf
        except ImportError as e:
            raise RuntimeError("Missing dependency: pypdf is required for reading inherited page boxes.") from e

    def _apply_page_transform(self, pdfium, page, transform: PageTransform) -> None:
        """
        Prefix the page content with `q <matrix> cm` (and close it with `Q`),
        then move both media and crop box to the transform's new box.
        """

        import pypdfium2.raw as pdfium_c  # type: ignore

        # A page without objects has nothing to scale (and may lack /Contents entirely).
        if pdfium_c.FPDFPage_CountObjects(page.raw) > 0:
            matrix = pdfium.PdfMatrix(*transform.matrix).to_raw()
            if not pdfium_c.FPDFPage_TransFormWithClip(page.raw, ctypes.byref(matrix), None):
                raise pdfium.PdfiumError("Failed to prepend transform matrix to page content")

        box = transform.new_box.to_ltrb()
        page.set_mediabox(*box)
        page.set_cropbox(*box)

    def _save(self, pdf, out_file: Path) -> None:
        try:
            with atomic_output(out_file) as fh:
                pdf.save(fh)
        except Exception as e:
            raise DocumentWriteError(f"Failed to write output PDF: {out_file}") from e

    # ------------------------------------------------------------------ #
    # merge
    # ------------------------------------------------------------------ #

    def _encode_image(self, Image, image_file: Path, *, png_to_jpeg: bool, jpeg_quality: int):
        """
        Decode `image_file` and return (width_px, height_px, jpeg_bytes | None, pil_image | None).

        JPEG input is embedded as-is. Other input is re-encoded as JPEG when
        `png_to_jpeg`, otherwise embedded as a (lossless) bitmap.
        """

        with Image.open(image_file) as img:
            img.load()
            width, height = img.size
            if img.format == "JPEG":
                return width, height, image_file.read_bytes(), None

            if png_to_jpeg:
                buf = io.BytesIO()
                img.convert("RGB").save(buf, format="JPEG", quality=jpeg_quality)
                return width, height, buf.getvalue(), None

            if img.mode in ("L", "RGB", "RGBA"):
                pil = img.copy()
            elif "A" in img.mode or "transparency" in img.info:
                pil = img.convert("RGBA")
            else:
                pil = img.convert("RGB")
            return width, height, None, pil

    def _place_image(
        self,
        pdfium,
        Image,
        pdf,
        image_file: Path,
        *,
        resize: bool,
        target_width: float,
        png_to_jpeg: bool,
        jpeg_quality: int,
    ) -> None:
        width, height, jpeg_bytes, pil = self._encode_image(
            Image, image_file, png_to_jpeg=png_to_jpeg, jpeg_quality=jpeg_quality
        )

        page = pdf.new_page(width, height)
        page_index = len(pdf) - 1
        try:
            image = pdfium.PdfImage.new(pdf)
            if jpeg_bytes is not None:
                image.load_jpeg(io.BytesIO(jpeg_bytes), inline=True)
            else:
                image.set_bitmap(pdfium.PdfBitmap.from_pil(pil))

            # Drawn once at its native pixel rectangle; any scaling is page-level.
            image.set_matrix(pdfium.PdfMatrix().scale(width, height))
            page.insert_obj(image)
            page.gen_content()

            if resize:
                transform = compute_page_transform(PageBox(0.0, 0.0, float(width), float(height)), target_width)
                self._apply_page_transform(pdfium, page, transform)
        except Exception:
            page.close()
            pdf.del_page(page_index)
            raise
        page.close()

    def merge_images(
        self,
        *,
        image_files: Sequence[Path],
        out_file: Path,
        resize: bool,
        target_width: float,
        png_to_jpeg: bool,
        jpeg_quality: int,
        on_progress: ProgressCallback,
        on_item_error: ItemErrorCallback,
    ) -> int:
        pdfium = self._require_pdfium()
        Image = self._require_pil()

        total = len(image_files)
        pdf = pdfium.PdfDocument.new()
        try:
            for i, image_file in enumerate(image_files):
                try:
                    self._place_image(
                        pdfium,
                        Image,
                        pdf,
                        image_file,
                        resize=resize,
                        target_width=target_width,
                        png_to_jpeg=png_to_jpeg,
                        jpeg_quality=jpeg_quality,
                    )
                except Exception as e:
                    on_item_error(image_file.name, e)

                on_progress((i + 1) / total * 100)

            if total == 0:
                on_progress(100.0)

            pages_written = len(pdf)
            self._save(pdf, out_file)
        finally:
            pdf.close()

        LOGGER.info("Merged %d/%d image(s) into %s", pages_written, total, out_file)
        return pages_written

    # ------------------------------------------------------------------ #
    # resize
    # ------------------------------------------------------------------ #

    def _open(self, pdfium, pdf_file: Path):
        try:
            return pdfium.PdfDocument(str(pdf_file))
        except Exception as e:
            raise DocumentOpenError(f"Failed to open PDF: {pdf_file}") from e

    def resize_pages(
        self,
        *,
        pdf_file: Path,
        out_file: Path,
        target_width: float,
        on_progress: ProgressCallback,
        on_page_error: PageErrorCallback,
    ) -> int:
        pdfium = self._require_pdfium()

        page_tree = None

        def inherited_mediabox(page_num: int) -> tuple[float, float, float, float]:
            # FPDFPage_GetMediaBox only reads the page dictionary; pypdf flattens
            # /MediaBox down from the /Pages ancestors.
            nonlocal page_tree
            if page_tree is None:
                page_tree = self._require_pypdf().PdfReader(str(pdf_file)).pages
            box = page_tree[page_num - 1].mediabox
            return float(box.left), float(box.bottom), float(box.right), float(box.top)

        pdf = self._open(pdfium, pdf_file)
        try:
            page_count = len(pdf)
            for page_num in range(1, page_count + 1):
                try:
                    page = pdf[page_num - 1]
                    try:
                        ltrb = page.get_mediabox(fallback_ok=False)
                        if ltrb is None:
                            ltrb = inherited_mediabox(page_num)
                        box = PageBox.from_ltrb(*ltrb)
                        transform = compute_page_transform(box, target_width)
                        self._apply_page_transform(pdfium, page, transform)
                    finally:
                        page.close()
                except Exception as e:
                    on_page_error(page_num, e)

                on_progress(page_num / page_count * 100)

            if page_count == 0:
                on_progress(100.0)

            self._save(pdf, out_file)
        finally:
            pdf.close()

        LOGGER.info("Resized %d page(s) of %s into %s", page_count, pdf_file, out_file)
        return page_count

from __future__ import annotations

from abc import ABC, abstractmethod
from pathlib import Path
from typing import Sequence

from ..reporting import ItemErrorCallback, PageErrorCallback, ProgressCallback


class PdfEngine(ABC):
    """
    Backend abstraction shared by all engines.

    Engines process one unit (image or page) at a time, in order, and never
    stop a pass because a single unit failed: unit failures go to the error
    callback, document-level failures raise `DocumentOpenError` /
    `DocumentWriteError`.
    """

    @abstractmethod
    def backend_id(self) -> str:
        raise NotImplementedError

    def backend_version(self) -> str | None:
        return None


class PdfWriterEngine(PdfEngine):
    @abstractmethod
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
        """
        Write one full-bleed page per decodable image, in input order.

        Return the number of pages written.
        """

        raise NotImplementedError

    @abstractmethod
    def resize_pages(
        self,
        *,
        pdf_file: Path,
        out_file: Path,
        target_width: float,
        on_progress: ProgressCallback,
        on_page_error: PageErrorCallback,
    ) -> int:
        """
        Rescale every page to `target_width` into a new document.

        Return the source page count.
        """

        raise NotImplementedError


class PdfImageExtractionEngine(PdfEngine):
    @abstractmethod
    def extract_images(
        self,
        *,
        pdf_file: Path,
        out_dir: Path,
        raw: bool,
        jpeg_quality: int,
        on_progress: ProgressCallback,
        on_page_error: PageErrorCallback,
    ) -> tuple[int, list[Path]]:
        """
        Write every embedded image as `page_<n>_img_<k>.<ext>` into `out_dir`.

        Return (page count, written files in page/sequence order).
        """

        raise NotImplementedError

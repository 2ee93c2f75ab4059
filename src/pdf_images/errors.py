from __future__ import annotations


class PdfImagesError(Exception):
    pass


class DocumentOpenError(PdfImagesError):
    """The input document could not be opened. Aborts the whole operation."""


class DocumentWriteError(PdfImagesError):
    """The output document could not be created or saved. Aborts the whole operation."""


class ImageResourceError(PdfImagesError):
    """
    A single embedded image failed to extract.

    `image_index` is None when the resource could not be resolved far enough
    to tell whether it is an image at all.
    """

    def __init__(self, *, page_num: int, resource_key: str, image_index: int | None) -> None:
        if image_index is None:
            message = f"Resource (Key: {resource_key}) on page {page_num} failed."
        else:
            message = f"Image #{image_index} (Key: {resource_key}) on page {page_num} failed."
        super().__init__(message)
        self.page_num = page_num
        self.resource_key = resource_key
        self.image_index = image_index

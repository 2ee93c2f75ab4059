"""
Convert between folders of raster images and PDF documents.

- merge: one full-bleed page per image, optionally rescaled to A4 width
- modify: rescale every page of an existing PDF to A4 width
- split: write the embedded images of a PDF back to files

Unit-level failures (one image, one page) are reported and never stop a pass;
document-level failures abort the operation.
"""

from .contracts import (
    DEFAULT_JPEG_QUALITY,
    FALLBACK_EXTENSION,
    TARGET_PAGE_WIDTH,
    ConversionError,
    ConversionResult,
    ConversionStatus,
    EncodingClassification,
    ImageEncoding,
    MergeConfig,
    ModifyConfig,
    OperationName,
    PageBox,
    PageTransform,
    SplitConfig,
    UnitFailure,
    UnitReport,
)
from .errors import DocumentOpenError, DocumentWriteError, ImageResourceError, PdfImagesError
from .geometry import compute_page_transform
from .module import (
    extract_images,
    merge_images_to_pdf,
    resize_pdf_pages,
    run_merge,
    run_modify,
    run_split,
)
from .sniffing import detect_image_extension

__all__ = [
    "DEFAULT_JPEG_QUALITY",
    "FALLBACK_EXTENSION",
    "TARGET_PAGE_WIDTH",
    "ConversionError",
    "ConversionResult",
    "ConversionStatus",
    "DocumentOpenError",
    "DocumentWriteError",
    "EncodingClassification",
    "ImageEncoding",
    "ImageResourceError",
    "MergeConfig",
    "ModifyConfig",
    "OperationName",
    "PageBox",
    "PageTransform",
    "PdfImagesError",
    "SplitConfig",
    "UnitFailure",
    "UnitReport",
    "compute_page_transform",
    "detect_image_extension",
    "extract_images",
    "merge_images_to_pdf",
    "resize_pdf_pages",
    "run_merge",
    "run_modify",
    "run_split",
]

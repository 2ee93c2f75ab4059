from __future__ import annotations

from dataclasses import asdict, dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any

# ISO A4 portrait width in PDF points (1/72 inch).
TARGET_PAGE_WIDTH = 595.0
DEFAULT_JPEG_QUALITY = 95
FALLBACK_EXTENSION = "dat"
MERGE_IMAGE_EXTENSIONS = (".jpg", ".jpeg", ".png")


class OperationName(str, Enum):
    MERGE = "merge"
    MODIFY = "modify"
    SPLIT = "split"


class ConversionStatus(str, Enum):
    """
    Aggregate outcome of one operation.

    - COMPLETE: every unit succeeded
    - PARTIAL: output written, but one or more units failed
    - FAILED: document-level failure, output absent or unusable
    """

    COMPLETE = "complete"
    PARTIAL = "partial"
    FAILED = "failed"


class ImageEncoding(str, Enum):
    KNOWN_BY_FILTER = "known_by_filter"
    DETECTED_BY_SNIFFING = "detected_by_sniffing"
    UNKNOWN = "unknown"


@dataclass(frozen=True, slots=True)
class PageBox:
    # PDF user-space units; origin need not be (0, 0)
    x: float
    y: float
    width: float
    height: float

    @classmethod
    def from_ltrb(cls, left: float, bottom: float, right: float, top: float) -> PageBox:
        return cls(x=left, y=bottom, width=right - left, height=top - bottom)

    def to_ltrb(self) -> tuple[float, float, float, float]:
        return (self.x, self.y, self.x + self.width, self.y + self.height)


@dataclass(frozen=True, slots=True)
class PageTransform:
    new_box: PageBox
    scale_x: float
    skew_y: float
    skew_x: float
    scale_y: float
    shift_x: float
    shift_y: float

    @property
    def matrix(self) -> tuple[float, float, float, float, float, float]:
        """The [a b c d e f] operands of a PDF `cm` operator."""
        return (self.scale_x, self.skew_y, self.skew_x, self.scale_y, self.shift_x, self.shift_y)

    @property
    def is_identity(self) -> bool:
        return self.matrix == (1.0, 0.0, 0.0, 1.0, 0.0, 0.0)


@dataclass(frozen=True, slots=True)
class EncodingClassification:
    encoding: ImageEncoding
    extension: str


@dataclass(frozen=True, slots=True)
class UnitFailure:
    unit: str  # display name of the image file, or "page <n>"
    error: str
    page_num: int | None = None  # 1-indexed
    resource_key: str | None = None
    image_index: int | None = None  # per-page sequence, 1-indexed


@dataclass(frozen=True, slots=True)
class UnitReport:
    """
    Outcome of one engine pass.

    `units_total` counts images (merge) or pages (modify/split).
    """

    units_total: int
    failures: tuple[UnitFailure, ...]
    outputs: tuple[Path, ...] = ()

    @property
    def status(self) -> ConversionStatus:
        return ConversionStatus.PARTIAL if self.failures else ConversionStatus.COMPLETE


@dataclass(frozen=True, slots=True)
class ConversionError:
    code: str
    message: str
    detail: dict[str, Any] | None = None


@dataclass(frozen=True, slots=True)
class ConversionResult:
    ok: bool
    status: ConversionStatus
    operation: OperationName
    engine: str
    source: str
    outputs: list[str]
    units_total: int
    unit_failures: list[UnitFailure]
    errors: list[ConversionError]
    meta: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


def _validate_quality(raw: bool, jpeg_quality: int | None) -> None:
    if raw and jpeg_quality is not None:
        raise ValueError("raw mode keeps original encodings; jpeg_quality cannot be combined with raw")
    if jpeg_quality is not None and not 1 <= jpeg_quality <= 100:
        raise ValueError("jpeg_quality must be within 1..100")


def _validate_target_width(target_width: float) -> None:
    if target_width <= 0:
        raise ValueError("target_width must be positive")


@dataclass(frozen=True, slots=True)
class MergeConfig:
    """
    Merge a folder of images into one PDF.

    `destination` is either an explicit `.pdf` file or a directory in which
    a PDF named after the source folder is created.
    """

    source_dir: Path
    destination: Path
    resize: bool = False
    raw: bool = False  # keep PNGs lossless instead of re-encoding them as JPEG
    jpeg_quality: int | None = None
    target_width: float = TARGET_PAGE_WIDTH

    def __post_init__(self) -> None:
        if not isinstance(self.source_dir, Path) or not isinstance(self.destination, Path):
            raise TypeError("source_dir and destination must be pathlib.Path")
        _validate_quality(self.raw, self.jpeg_quality)
        _validate_target_width(self.target_width)

    @property
    def effective_quality(self) -> int:
        return DEFAULT_JPEG_QUALITY if self.jpeg_quality is None else self.jpeg_quality


@dataclass(frozen=True, slots=True)
class ModifyConfig:
    pdf_file: Path
    target_width: float = TARGET_PAGE_WIDTH
    compute_source_sha256: bool = False

    def __post_init__(self) -> None:
        if not isinstance(self.pdf_file, Path):
            raise TypeError("pdf_file must be pathlib.Path")
        _validate_target_width(self.target_width)


@dataclass(frozen=True, slots=True)
class SplitConfig:
    pdf_file: Path
    destination: Path | None = None  # None => the input PDF's folder
    create_subfolder: bool = False
    raw: bool = False
    jpeg_quality: int | None = None
    compute_source_sha256: bool = False

    def __post_init__(self) -> None:
        if not isinstance(self.pdf_file, Path):
            raise TypeError("pdf_file must be pathlib.Path")
        if self.destination is not None and not isinstance(self.destination, Path):
            raise TypeError("destination must be pathlib.Path or None")
        _validate_quality(self.raw, self.jpeg_quality)

    @property
    def effective_quality(self) -> int:
        return DEFAULT_JPEG_QUALITY if self.jpeg_quality is None else self.jpeg_quality

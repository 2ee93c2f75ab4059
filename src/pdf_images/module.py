from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Sequence

from .contracts import (
    DEFAULT_JPEG_QUALITY,
    TARGET_PAGE_WIDTH,
    ConversionError,
    ConversionResult,
    ConversionStatus,
    MergeConfig,
    ModifyConfig,
    OperationName,
    SplitConfig,
    UnitReport,
)
from .data_access import (
    DataAccessError,
    list_source_images,
    modified_output_path,
    resolve_absolute_path,
    resolve_merge_output,
    resolve_split_output_dir,
    sha256_file,
)
from .engines import PdfImageExtractionEngine, PdfWriterEngine, PypdfEngine, Pypdfium2Engine
from .errors import DocumentOpenError, DocumentWriteError
from .reporting import (
    ItemErrorCallback,
    PageErrorCallback,
    ProgressCallback,
    ProgressEmitter,
    UnitFailureCollector,
)

LOGGER = logging.getLogger("pdf_images.module")


def _get_writer_engine() -> PdfWriterEngine:
    return Pypdfium2Engine()


def _get_extraction_engine() -> PdfImageExtractionEngine:
    return PypdfEngine()


def _check_quality(jpeg_quality: int) -> None:
    if not 1 <= jpeg_quality <= 100:
        raise ValueError("jpeg_quality must be within 1..100")


# ---------------------------------------------------------------------- #
# Operations. Unit failures are reported and collected; document-level
# failures raise DocumentOpenError / DocumentWriteError.
# ---------------------------------------------------------------------- #


def merge_images_to_pdf(
    image_paths: Sequence[Path],
    output_path: Path,
    *,
    resize: bool = False,
    jpeg_quality: int = DEFAULT_JPEG_QUALITY,
    png_to_jpeg: bool = True,
    target_width: float = TARGET_PAGE_WIDTH,
    on_progress: ProgressCallback | None = None,
    on_item_error: ItemErrorCallback | None = None,
) -> UnitReport:
    """
    One page per image, in the given order. Images that fail to decode or
    place are reported and contribute no page.
    """

    _check_quality(jpeg_quality)
    image_files = [Path(p) for p in image_paths]
    out_file = Path(output_path)

    collector = UnitFailureCollector()
    _get_writer_engine().merge_images(
        image_files=image_files,
        out_file=out_file,
        resize=resize,
        target_width=target_width,
        png_to_jpeg=png_to_jpeg,
        jpeg_quality=jpeg_quality,
        on_progress=ProgressEmitter(on_progress),
        on_item_error=collector.item_error_callback(on_item_error),
    )
    collector.add_output(out_file)
    return collector.report(units_total=len(image_files))


def resize_pdf_pages(
    input_path: Path,
    output_path: Path,
    *,
    target_width: float = TARGET_PAGE_WIDTH,
    on_progress: ProgressCallback | None = None,
    on_page_error: PageErrorCallback | None = None,
) -> UnitReport:
    """Rescale every page to `target_width`; failing pages are copied unmodified."""
    out_file = Path(output_path)

    collector = UnitFailureCollector()
    page_count = _get_writer_engine().resize_pages(
        pdf_file=Path(input_path),
        out_file=out_file,
        target_width=target_width,
        on_progress=ProgressEmitter(on_progress),
        on_page_error=collector.page_error_callback(on_page_error),
    )
    collector.add_output(out_file)
    return collector.report(units_total=page_count)


def extract_images(
    input_path: Path,
    output_dir: Path,
    *,
    raw: bool = False,
    jpeg_quality: int = DEFAULT_JPEG_QUALITY,
    on_progress: ProgressCallback | None = None,
    on_page_error: PageErrorCallback | None = None,
) -> UnitReport:
    """Write every embedded image as `page_<n>_img_<k>.<ext>` into `output_dir`."""
    _check_quality(jpeg_quality)

    collector = UnitFailureCollector()
    page_count, written = _get_extraction_engine().extract_images(
        pdf_file=Path(input_path),
        out_dir=Path(output_dir),
        raw=raw,
        jpeg_quality=jpeg_quality,
        on_progress=ProgressEmitter(on_progress),
        on_page_error=collector.page_error_callback(on_page_error),
    )
    for path in written:
        collector.add_output(path)
    return collector.report(units_total=page_count)


# ---------------------------------------------------------------------- #
# Entrypoints. These never raise for document-level problems; they return a
# ConversionResult with ok=False and coded errors instead.
# ---------------------------------------------------------------------- #


def _failed(
    *,
    operation: OperationName,
    engine: str,
    source: Path,
    code: str,
    message: str,
    detail: dict[str, Any] | None = None,
    meta: dict[str, Any] | None = None,
) -> ConversionResult:
    LOGGER.error("%s failed [%s]: %s", operation.value, code, message)
    return ConversionResult(
        ok=False,
        status=ConversionStatus.FAILED,
        operation=operation,
        engine=engine,
        source=str(source),
        outputs=[],
        units_total=0,
        unit_failures=[],
        errors=[ConversionError(code=code, message=message, detail=detail)],
        meta=meta or {},
    )


def _from_report(
    *,
    operation: OperationName,
    engine: str,
    source: Path,
    report: UnitReport,
    meta: dict[str, Any],
) -> ConversionResult:
    status = report.status
    if status is ConversionStatus.PARTIAL:
        LOGGER.warning("%s finished with %d unit error(s)", operation.value, len(report.failures))
    return ConversionResult(
        ok=status is ConversionStatus.COMPLETE,
        status=status,
        operation=operation,
        engine=engine,
        source=str(source),
        outputs=[str(p) for p in report.outputs],
        units_total=report.units_total,
        unit_failures=list(report.failures),
        errors=[],
        meta=meta,
    )


def _document_error_code(e: Exception) -> str:
    if isinstance(e, DocumentOpenError):
        return "DOCUMENT_OPEN_FAILED"
    if isinstance(e, DocumentWriteError):
        return "DOCUMENT_WRITE_FAILED"
    return "ENGINE_FAILED"


def _validate_pdf_input(operation: OperationName, engine_id: str, pdf_file: Path) -> ConversionResult | None:
    if pdf_file.suffix.lower() != ".pdf":
        return _failed(
            operation=operation,
            engine=engine_id,
            source=pdf_file,
            code="INPUT_NOT_PDF",
            message="Input must be a .pdf file",
            detail={"pdf_file": str(pdf_file)},
        )
    if not pdf_file.is_file():
        return _failed(
            operation=operation,
            engine=engine_id,
            source=pdf_file,
            code="INPUT_NOT_FOUND",
            message="Input PDF not found",
            detail={"pdf_file": str(pdf_file)},
        )
    return None


def _source_meta(pdf_file: Path, compute_source_sha256: bool) -> dict[str, Any]:
    meta: dict[str, Any] = {}
    if compute_source_sha256:
        try:
            meta["source_sha256"] = sha256_file(pdf_file)
        except OSError as e:
            meta.setdefault("audit_warnings", []).append({"code": "SOURCE_HASH_FAILED", "error": repr(e)})
    return meta


def run_merge(
    *,
    config: MergeConfig,
    on_progress: ProgressCallback | None = None,
    on_item_error: ItemErrorCallback | None = None,
) -> ConversionResult:
    engine = _get_writer_engine()
    engine_id = engine.backend_id()
    source_dir = resolve_absolute_path(config.source_dir)

    try:
        image_files = list_source_images(source_dir)
    except DataAccessError as e:
        return _failed(
            operation=OperationName.MERGE,
            engine=engine_id,
            source=source_dir,
            code="INPUT_NOT_FOUND",
            message=str(e),
            detail={"source_dir": str(source_dir)},
        )

    meta: dict[str, Any] = {
        "backend_version": engine.backend_version(),
        "resize": config.resize,
        "target_width": config.target_width,
        "png_to_jpeg": not config.raw,
        "jpeg_quality": None if config.raw else config.effective_quality,
    }

    if not image_files:
        LOGGER.warning("No images found in source directory %s", source_dir)
        meta["notice"] = "no images found in source directory"
        return ConversionResult(
            ok=True,
            status=ConversionStatus.COMPLETE,
            operation=OperationName.MERGE,
            engine=engine_id,
            source=str(source_dir),
            outputs=[],
            units_total=0,
            unit_failures=[],
            errors=[],
            meta=meta,
        )

    try:
        out_file = resolve_merge_output(source_dir=source_dir, destination=config.destination)
    except DataAccessError as e:
        return _failed(
            operation=OperationName.MERGE,
            engine=engine_id,
            source=source_dir,
            code="DATA_ACCESS_ERROR",
            message=str(e),
            detail={"destination": str(config.destination)},
            meta=meta,
        )

    LOGGER.info("Merging %d image(s) from %s into %s", len(image_files), source_dir, out_file)
    try:
        report = merge_images_to_pdf(
            image_files,
            out_file,
            resize=config.resize,
            jpeg_quality=config.effective_quality,
            png_to_jpeg=not config.raw,
            target_width=config.target_width,
            on_progress=on_progress,
            on_item_error=on_item_error,
        )
    except Exception as e:
        return _failed(
            operation=OperationName.MERGE,
            engine=engine_id,
            source=source_dir,
            code=_document_error_code(e),
            message=str(e),
            detail={"error": repr(e.__cause__ or e), "out_file": str(out_file)},
            meta=meta,
        )

    return _from_report(operation=OperationName.MERGE, engine=engine_id, source=source_dir, report=report, meta=meta)


def run_modify(
    *,
    config: ModifyConfig,
    on_progress: ProgressCallback | None = None,
    on_page_error: PageErrorCallback | None = None,
) -> ConversionResult:
    engine = _get_writer_engine()
    engine_id = engine.backend_id()
    pdf_file = resolve_absolute_path(config.pdf_file)

    invalid = _validate_pdf_input(OperationName.MODIFY, engine_id, pdf_file)
    if invalid is not None:
        return invalid

    out_file = modified_output_path(pdf_file)
    meta = {"backend_version": engine.backend_version(), "target_width": config.target_width}
    meta.update(_source_meta(pdf_file, config.compute_source_sha256))

    LOGGER.info("Resizing pages of %s into %s", pdf_file, out_file)
    try:
        report = resize_pdf_pages(
            pdf_file,
            out_file,
            target_width=config.target_width,
            on_progress=on_progress,
            on_page_error=on_page_error,
        )
    except Exception as e:
        return _failed(
            operation=OperationName.MODIFY,
            engine=engine_id,
            source=pdf_file,
            code=_document_error_code(e),
            message=str(e),
            detail={"error": repr(e.__cause__ or e), "out_file": str(out_file)},
            meta=meta,
        )

    return _from_report(operation=OperationName.MODIFY, engine=engine_id, source=pdf_file, report=report, meta=meta)


def run_split(
    *,
    config: SplitConfig,
    on_progress: ProgressCallback | None = None,
    on_page_error: PageErrorCallback | None = None,
) -> ConversionResult:
    engine = _get_extraction_engine()
    engine_id = engine.backend_id()
    pdf_file = resolve_absolute_path(config.pdf_file)

    invalid = _validate_pdf_input(OperationName.SPLIT, engine_id, pdf_file)
    if invalid is not None:
        return invalid

    meta = {
        "backend_version": engine.backend_version(),
        "raw": config.raw,
        "jpeg_quality": None if config.raw else config.effective_quality,
    }
    meta.update(_source_meta(pdf_file, config.compute_source_sha256))

    try:
        out_dir = resolve_split_output_dir(
            pdf_file=pdf_file, destination=config.destination, create_subfolder=config.create_subfolder
        )
    except DataAccessError as e:
        return _failed(
            operation=OperationName.SPLIT,
            engine=engine_id,
            source=pdf_file,
            code="DATA_ACCESS_ERROR",
            message=str(e),
            detail={"destination": str(config.destination)},
            meta=meta,
        )
    meta["out_dir"] = str(out_dir)

    LOGGER.info("Extracting images from %s into %s", pdf_file, out_dir)
    try:
        report = extract_images(
            pdf_file,
            out_dir,
            raw=config.raw,
            jpeg_quality=config.effective_quality,
            on_progress=on_progress,
            on_page_error=on_page_error,
        )
    except Exception as e:
        return _failed(
            operation=OperationName.SPLIT,
            engine=engine_id,
            source=pdf_file,
            code=_document_error_code(e),
            message=str(e),
            detail={"error": repr(e.__cause__ or e)},
            meta=meta,
        )

    return _from_report(operation=OperationName.SPLIT, engine=engine_id, source=pdf_file, report=report, meta=meta)

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path
from typing import Callable

from tqdm import tqdm

from .artifacts import write_conversion_report_json
from .contracts import ConversionResult, ConversionStatus, MergeConfig, ModifyConfig, SplitConfig
from .module import run_merge, run_modify, run_split

LOGGER = logging.getLogger("pdf_images.cli")

EXIT_OK = 0
EXIT_FATAL = 1
EXIT_PARTIAL = 2


def _quality(value: str) -> int:
    q = int(value)
    if not 1 <= q <= 100:
        raise argparse.ArgumentTypeError("quality must be within 1..100")
    return q


def _add_common(p: argparse.ArgumentParser) -> None:
    p.add_argument(
        "--report",
        type=Path,
        default=None,
        help="Write the conversion result (outputs, unit errors) as JSON to this file.",
    )


def build_arg_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(
        prog="pdf-images",
        description="Merge images into a PDF, resize PDF pages to A4 width, or extract images from a PDF.",
    )
    p.add_argument(
        "--log-level",
        default="WARNING",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Logging verbosity (default: WARNING).",
    )
    sub = p.add_subparsers(dest="command", required=True)

    merge = sub.add_parser("merge", help="Merges images from a folder into a single PDF.")
    merge.add_argument("-s", "--source", required=True, type=Path, help="Source folder containing images.")
    merge.add_argument(
        "-d",
        "--destination",
        required=True,
        type=Path,
        help="Output file path OR directory. If directory, filename defaults to source folder name.",
    )
    merge.add_argument("--raw", action="store_true", help="If set, PNGs will not be converted to JPEG.")
    merge.add_argument(
        "-r",
        "--resize",
        action="store_true",
        help="If set, resizes pages to fixed width (A4 width) without altering image quality.",
    )
    merge.add_argument("-q", "--quality", type=_quality, default=None, help="JPEG quality for PNG re-encoding (1..100).")
    _add_common(merge)

    modify = sub.add_parser(
        "modify",
        help="Resizes PDF pages to a fixed width (A4 width) while maintaining aspect ratio & image quality.",
    )
    modify.add_argument("-f", "--file", required=True, type=Path, help="Path to the PDF file to modify.")
    modify.add_argument(
        "--compute-source-sha256",
        action="store_true",
        help="Include SHA-256 of the source PDF in the report meta.",
    )
    _add_common(modify)

    split = sub.add_parser("split", help="Extracts images from a PDF file.")
    split.add_argument("-f", "--file", required=True, type=Path, help="Path to the source PDF file.")
    split.add_argument("-d", "--destination", type=Path, default=None, help="Optional output directory.")
    split.add_argument("--subfolder", action="store_true", help="Create a subfolder named after the file.")
    split.add_argument(
        "--raw",
        action="store_true",
        help="If set, keeps original image formats. Otherwise converts to JPEG.",
    )
    split.add_argument("-q", "--quality", type=_quality, default=None, help="JPEG quality for re-encoding (1..100).")
    split.add_argument(
        "--compute-source-sha256",
        action="store_true",
        help="Include SHA-256 of the source PDF in the report meta.",
    )
    _add_common(split)

    return p


def _progress_bar(desc: str) -> tuple[tqdm, Callable[[float], None]]:
    bar = tqdm(total=100, desc=desc, bar_format="{l_bar}{bar}| {n:.0f}%", file=sys.stderr)

    def on_progress(percent: float) -> None:
        bar.update(percent - bar.n)

    return bar, on_progress


def _print_summary(result: ConversionResult) -> None:
    if result.status is ConversionStatus.FAILED:
        for err in result.errors:
            print(f"Error [{err.code}]: {err.message}", file=sys.stderr)
        return

    for failure in result.unit_failures:
        where = failure.unit
        if failure.image_index is not None:
            where = f"{where}, image #{failure.image_index} (key {failure.resource_key})"
        elif failure.resource_key is not None:
            where = f"{where}, key {failure.resource_key}"
        print(f"Failed: {where}: {failure.error}", file=sys.stderr)

    if result.meta.get("notice"):
        print(f"Notice: {result.meta['notice']}")
    elif result.status is ConversionStatus.PARTIAL:
        print(f"Partial output ({len(result.unit_failures)} error(s)): {', '.join(result.outputs) or '-'}")
    else:
        target = result.meta.get("out_dir") or (result.outputs[0] if result.outputs else "-")
        print(f"Done: {len(result.outputs)} file(s) written to {target}")


def _exit_code(result: ConversionResult) -> int:
    if result.status is ConversionStatus.FAILED:
        return EXIT_FATAL
    if result.status is ConversionStatus.PARTIAL:
        return EXIT_PARTIAL
    return EXIT_OK


def main(argv: list[str] | None = None) -> int:
    parser = build_arg_parser()
    args = parser.parse_args(argv)

    logging.basicConfig(level=getattr(logging, args.log_level), format="%(levelname)s %(name)s: %(message)s")

    try:
        if args.command == "merge":
            config = MergeConfig(
                source_dir=args.source,
                destination=args.destination,
                resize=args.resize,
                raw=args.raw,
                jpeg_quality=args.quality,
            )
        elif args.command == "modify":
            config = ModifyConfig(pdf_file=args.file, compute_source_sha256=args.compute_source_sha256)
        else:
            config = SplitConfig(
                pdf_file=args.file,
                destination=args.destination,
                create_subfolder=args.subfolder,
                raw=args.raw,
                jpeg_quality=args.quality,
                compute_source_sha256=args.compute_source_sha256,
            )
    except (TypeError, ValueError) as e:
        parser.error(str(e))

    if args.command == "merge":
        bar, on_progress = _progress_bar("Generating PDF")
        with bar:
            result = run_merge(config=config, on_progress=on_progress)
    elif args.command == "modify":
        bar, on_progress = _progress_bar("Resizing pages")
        with bar:
            result = run_modify(config=config, on_progress=on_progress)
    else:
        bar, on_progress = _progress_bar("Scanning pages")
        with bar:
            result = run_split(config=config, on_progress=on_progress)

    if args.report is not None:
        write_conversion_report_json(result=result, out_report=args.report)

    _print_summary(result)
    return _exit_code(result)


if __name__ == "__main__":
    raise SystemExit(main())

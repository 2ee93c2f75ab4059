from __future__ import annotations

import contextlib
import hashlib
import logging
import os
import re
import tempfile
from pathlib import Path
from typing import BinaryIO, Iterator

from .contracts import MERGE_IMAGE_EXTENSIONS

LOGGER = logging.getLogger("pdf_images.data_access")

_DIGITS = re.compile(r"(\d+)")


class DataAccessError(Exception):
    pass


def resolve_absolute_path(path: Path) -> Path:
    """Resolve against the current working directory (not the install location)."""
    return path.expanduser().resolve()


def natural_sort_key(text: str) -> tuple[tuple[int, int | str], ...]:
    """
    Case-insensitive key comparing embedded digit runs by numeric value,
    so "c2" < "c10".
    """

    key: list[tuple[int, int | str]] = []
    for part in _DIGITS.split(text):
        if not part:
            continue
        if part.isdigit():
            key.append((0, int(part)))
        else:
            key.append((1, part.casefold()))
    return tuple(key)


def list_source_images(
    source_dir: Path, *, extensions: tuple[str, ...] = MERGE_IMAGE_EXTENSIONS
) -> list[Path]:
    """
    All image files under `source_dir` (recursively), in natural order of
    their path relative to `source_dir`.
    """

    if not source_dir.is_dir():
        raise DataAccessError(f"Source directory not found: {source_dir}")

    found = [p for p in source_dir.rglob("*") if p.is_file() and p.suffix.lower() in extensions]
    return sorted(found, key=lambda p: natural_sort_key(p.relative_to(source_dir).as_posix()))


def unique_file_path(path: Path) -> Path:
    """Return `path`, or `name (1).ext`, `name (2).ext`, ... if it already exists."""
    if not path.exists():
        return path
    counter = 1
    while True:
        candidate = path.with_name(f"{path.stem} ({counter}){path.suffix}")
        if not candidate.exists():
            return candidate
        counter += 1


def _source_folder_name(source_dir: Path) -> str:
    name = source_dir.name
    if not name.strip():
        # filesystem root: use the drive/anchor without separators
        name = source_dir.anchor.replace(":", "").replace("\\", "").replace("/", "")
    return name.strip() or "output"


def resolve_merge_output(*, source_dir: Path, destination: Path) -> Path:
    """
    Work out the PDF file a merge writes to.

    - `destination` ending in `.pdf` is an explicit file; its parent is created
    - anything else is a directory (created if missing) and the PDF is named
      after the source folder
    The result never overwrites an existing file.
    """

    dest = resolve_absolute_path(destination)

    if dest.suffix.lower() == ".pdf":
        if dest.is_dir():
            raise DataAccessError(
                f"Cannot create file {dest.name}: a folder with the same name already exists at destination."
            )
        try:
            dest.parent.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise DataAccessError(f"Failed to create directory: {dest.parent}") from e
        target = dest
    else:
        if dest.suffix:
            LOGGER.info(
                "Destination %r has a non-.pdf extension (%s); treating it as a directory.",
                str(dest),
                dest.suffix,
            )
        if dest.is_file():
            raise DataAccessError(
                f"Destination path {dest} exists and is a file. Specify a directory or a new .pdf filename."
            )
        try:
            dest.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise DataAccessError(f"Failed to create destination directory: {dest}") from e
        target = dest / f"{_source_folder_name(resolve_absolute_path(source_dir))}.pdf"

    return unique_file_path(target)


def modified_output_path(pdf_file: Path) -> Path:
    return pdf_file.with_name(f"{pdf_file.stem}_modified.pdf")


def resolve_split_output_dir(*, pdf_file: Path, destination: Path | None, create_subfolder: bool) -> Path:
    base = resolve_absolute_path(destination) if destination is not None else pdf_file.parent
    out_dir = base / pdf_file.stem if create_subfolder else base
    try:
        out_dir.mkdir(parents=True, exist_ok=True)
    except OSError as e:
        raise DataAccessError(f"Failed to create output directory: {out_dir}") from e
    return out_dir


@contextlib.contextmanager
def atomic_output(out_file: Path) -> Iterator[BinaryIO]:
    """
    Write to a temp file beside `out_file` and move it into place only when
    the block completes; on error the temp file is removed and `out_file`
    is left untouched.
    """

    out_file.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp_name = tempfile.mkstemp(prefix=f".{out_file.name}.", suffix=".part", dir=out_file.parent)
    tmp = Path(tmp_name)
    try:
        with os.fdopen(fd, "wb") as fh:
            yield fh
        os.replace(tmp, out_file)
    except BaseException:
        tmp.unlink(missing_ok=True)
        raise


def sha256_file(path: Path) -> str:
    h = hashlib.sha256()
    with path.open("rb") as f:
        for chunk in iter(lambda: f.read(1024 * 1024), b""):
            h.update(chunk)
    return h.hexdigest()

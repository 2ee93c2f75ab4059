from __future__ import annotations

from .contracts import FALLBACK_EXTENSION

# (offset, signature, extension), checked in order
_SIGNATURES: tuple[tuple[int, bytes, str], ...] = (
    (0, b"\x89PNG\r\n\x1a\n", "png"),
    (0, b"\xff\xd8\xff", "jpg"),
    (0, b"GIF87a", "gif"),
    (0, b"GIF89a", "gif"),
    (0, b"II*\x00", "tif"),
    (0, b"MM\x00*", "tif"),
    (0, b"\x00\x00\x00\x0cjP  \r\n\x87\n", "jp2"),
    (0, b"\xff\x4f\xff\x51", "j2k"),
    (8, b"WEBP", "webp"),
)


def _is_bmp(head: bytes) -> bool:
    # "BM" alone is too weak for raw pixel dumps; require the two reserved header words to be zero.
    return len(head) >= 14 and head[:2] == b"BM" and head[6:10] == b"\x00\x00\x00\x00"


def detect_image_extension(data: bytes | bytearray | memoryview | None) -> str:
    """
    Pick a file extension for an opaque blob from its leading magic bytes.

    Returns FALLBACK_EXTENSION when nothing matches. Never raises.
    """

    if not data:
        return FALLBACK_EXTENSION
    try:
        head = bytes(data[:32])
    except (TypeError, ValueError):
        return FALLBACK_EXTENSION

    for offset, signature, extension in _SIGNATURES:
        if head[offset : offset + len(signature)] == signature:
            if extension == "webp" and head[:4] != b"RIFF":
                continue
            return extension

    if _is_bmp(head):
        return "bmp"

    return FALLBACK_EXTENSION

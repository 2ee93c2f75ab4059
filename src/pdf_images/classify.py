"""
Encoding classification for embedded image streams.

Classification is an ordered chain of classifiers. Each one returns a
definitive extension or None ("unknown"); the first definitive answer wins.
If every classifier abstains the stream is UNKNOWN with the fallback extension.
"""

from __future__ import annotations

from typing import Callable, Iterable, Sequence

from .contracts import FALLBACK_EXTENSION, EncodingClassification, ImageEncoding
from .sniffing import detect_image_extension

Classifier = Callable[[Sequence[str], bytes], str | None]

# Abbreviated names are legal for inline images and show up in the wild on XObjects too.
_FILTER_ALIASES = {
    "AHx": "ASCIIHexDecode",
    "A85": "ASCII85Decode",
    "LZW": "LZWDecode",
    "Fl": "FlateDecode",
    "RL": "RunLengthDecode",
    "CCF": "CCITTFaxDecode",
    "DCT": "DCTDecode",
}

# Filters whose output is a self-describing image codec.
_FILTER_EXTENSIONS = {
    "DCTDecode": "jpg",
    "JPXDecode": "jp2",
    "CCITTFaxDecode": "tif",
    "JBIG2Decode": "jbig2",
}


def normalize_filter_chain(raw_filters: Iterable[str] | str | None) -> tuple[str, ...]:
    """Turn a /Filter value (name, array or None) into bare, unabbreviated names."""
    if raw_filters is None:
        return ()
    if isinstance(raw_filters, str):
        raw_filters = [raw_filters]
    names = []
    for f in raw_filters:
        name = str(f).lstrip("/")
        names.append(_FILTER_ALIASES.get(name, name))
    return tuple(names)


def is_dct_encoded(filters: Sequence[str]) -> bool:
    return "DCTDecode" in filters


def codec_extension(filters: Sequence[str]) -> str | None:
    # The codec filter is the last one applied on decode.
    if not filters:
        return None
    return _FILTER_EXTENSIONS.get(filters[-1])


def classify_by_filter(filters: Sequence[str], data: bytes) -> str | None:
    return codec_extension(filters)


def classify_by_signature(filters: Sequence[str], data: bytes) -> str | None:
    ext = detect_image_extension(data)
    return None if ext == FALLBACK_EXTENSION else ext


RAW_CLASSIFIER_CHAIN: tuple[tuple[ImageEncoding, Classifier], ...] = (
    (ImageEncoding.KNOWN_BY_FILTER, classify_by_filter),
    (ImageEncoding.DETECTED_BY_SNIFFING, classify_by_signature),
)


def classify_image_stream(
    filters: Sequence[str],
    data: bytes,
    chain: Sequence[tuple[ImageEncoding, Classifier]] = RAW_CLASSIFIER_CHAIN,
) -> EncodingClassification:
    for encoding, classifier in chain:
        ext = classifier(filters, data)
        if ext:
            return EncodingClassification(encoding=encoding, extension=ext)
    return EncodingClassification(encoding=ImageEncoding.UNKNOWN, extension=FALLBACK_EXTENSION)

from __future__ import annotations

import io
import logging
import zlib
from pathlib import Path
from typing import Any, Iterator

from ..classify import classify_image_stream, codec_extension, is_dct_encoded, normalize_filter_chain
from ..contracts import FALLBACK_EXTENSION, ImageEncoding
from ..errors import DocumentOpenError, DocumentWriteError, ImageResourceError
from ..reporting import PageErrorCallback, ProgressCallback
from ..sniffing import detect_image_extension

from .base import PdfImageExtractionEngine

LOGGER = logging.getLogger("pdf_images.engines.pypdf")

# Pillow modes the JPEG encoder accepts without conversion.
_JPEG_MODES = ("RGB", "L", "CMYK")

# pypdf only adds a TIFF header to CCITT data; the fax payload itself is not decoded.
_WRAPPED_CODECS = ("CCITTFaxDecode",)


def _resolve(obj: Any) -> Any:
    return obj.get_object() if obj is not None else None


def _filter_names(stream: Any) -> list[str] | None:
    raw = _resolve(stream.get("/Filter"))
    if raw is None:
        return None
    if isinstance(raw, list):
        return [str(_resolve(f)) for f in raw]
    return [str(raw)]


class PypdfEngine(PdfImageExtractionEngine):
    """
    Walks page resource dictionaries with pypdf and writes each image XObject.

    Stream bytes come from `get_data()`: simple filters (Flate, LZW, ASCII*,
    RunLength) are decoded, DCT/JPX are passed through and CCITT data is
    wrapped in a TIFF header. In raw mode DCT, JPX and JBIG2 streams are
    written as stored, so JBIG2 never needs jbig2dec.
    """

    def backend_id(self) -> str:
        return "pypdf"

    def backend_version(self) -> str | None:
        try:
            import pypdf  # type: ignore

            return getattr(pypdf, "__version__", None)
        except Exception:
            return None

    def _require_pypdf(self):
        try:
            import pypdf  # type: ignore

            return pypdf
        except ImportError as e:
            raise RuntimeError("Missing dependency: pypdf is required for image extraction.") from e

    def _require_pil(self):
        try:
            from PIL import Image  # type: ignore

            return Image
        except ImportError as e:
            raise RuntimeError("Missing dependency: Pillow is required for JPEG re-encoding.") from e

    def _iter_xobjects(self, page: Any) -> Iterator[tuple[str, Any]]:
        resources = _resolve(page.get("/Resources"))
        if resources is None:
            return
        xobjects = _resolve(resources.get("/XObject"))
        if xobjects is None:
            return
        for key in list(xobjects.keys()):
            yield str(key), xobjects.raw_get(key)

    def _read_stream(self, pypdf, stream: Any, *, label: str) -> bytes | None:
        try:
            data = stream.get_data()
        except (
            pypdf.errors.PyPdfError,
            pypdf.errors.DependencyError,
            NotImplementedError,
            ValueError,
            zlib.error,
        ) as e:
            LOGGER.debug("Skipping %s: stream could not be decoded (%r)", label, e)
            return None
        if not data:
            LOGGER.debug("Skipping %s: empty stream", label)
            return None
        return data

    def _read_codec_payload(self, pypdf, stream: Any, filters: tuple[str, ...], *, label: str) -> bytes | None:
        """Stream bytes with every filter decoded except the trailing codec."""
        if filters[-1] in _WRAPPED_CODECS:
            return self._read_stream(pypdf, stream, label=label)

        data = stream._data
        if len(filters) > 1:
            outer = pypdf.generic.EncodedStreamObject()
            outer._data = data
            outer[pypdf.generic.NameObject("/Filter")] = pypdf.generic.ArrayObject(
                [pypdf.generic.NameObject(f"/{f}") for f in filters[:-1]]
            )
            parms = _resolve(stream.get("/DecodeParms"))
            if isinstance(parms, list):
                outer[pypdf.generic.NameObject("/DecodeParms")] = pypdf.generic.ArrayObject(
                    [_resolve(p) for p in parms[:-1]]
                )
            return self._read_stream(pypdf, outer, label=label)

        if not data:
            LOGGER.debug("Skipping %s: empty stream", label)
            return None
        return data

    def _reencode_as_jpeg(self, Image, stream: Any, data: bytes, jpeg_quality: int) -> bytes:
        if detect_image_extension(data) != FALLBACK_EXTENSION:
            # A complete image file: JPX, CCITT wrapped as TIFF, or a file stored behind FlateDecode.
            img = Image.open(io.BytesIO(data))
        else:
            img = stream.decode_as_image()
            if img is None:
                raise ValueError("stream could not be decoded as an image")

        with img:
            if img.mode not in _JPEG_MODES:
                img = img.convert("RGB")
            buf = io.BytesIO()
            img.save(buf, format="JPEG", quality=jpeg_quality)
            return buf.getvalue()

    def _extract_resource(
        self,
        pypdf,
        Image,
        stream: Any,
        *,
        out_base: Path,
        raw: bool,
        jpeg_quality: int,
    ) -> Path | None:
        filters = normalize_filter_chain(_filter_names(stream))

        if raw:
            ext = codec_extension(filters)
            if ext is not None:
                data = self._read_codec_payload(pypdf, stream, filters, label=out_base.name)
                if data is None:
                    return None
                out_file = out_base.with_name(f"{out_base.name}.{ext}")
                out_file.write_bytes(data)
                return out_file

        data = self._read_stream(pypdf, stream, label=out_base.name)
        if data is None:
            return None

        if raw:
            classification = classify_image_stream(filters, data)
            if classification.encoding is ImageEncoding.UNKNOWN:
                # Most likely a raw pixel dump behind FlateDecode; kept as-is.
                LOGGER.debug("%s: no filter or signature match, writing .%s", out_base.name, classification.extension)
            out_file = out_base.with_name(f"{out_base.name}.{classification.extension}")
            out_file.write_bytes(data)
            return out_file

        out_file = out_base.with_name(f"{out_base.name}.jpg")
        if is_dct_encoded(filters):
            out_file.write_bytes(data)
        else:
            out_file.write_bytes(self._reencode_as_jpeg(Image, stream, data, jpeg_quality))
        return out_file

    def _extract_page(
        self,
        pypdf,
        Image,
        page: Any,
        *,
        page_num: int,
        out_dir: Path,
        raw: bool,
        jpeg_quality: int,
        on_page_error: PageErrorCallback,
    ) -> list[Path]:
        written: list[Path] = []
        image_index = 0
        for key, ref in self._iter_xobjects(page):
            index: int | None = None
            try:
                try:
                    stream = _resolve(ref)
                    if stream is None or _resolve(stream.get("/Subtype")) != "/Image":
                        continue

                    image_index += 1
                    index = image_index
                    out_base = out_dir / f"page_{page_num}_img_{image_index}"
                    out_file = self._extract_resource(
                        pypdf, Image, stream, out_base=out_base, raw=raw, jpeg_quality=jpeg_quality
                    )
                except Exception as e:
                    raise ImageResourceError(page_num=page_num, resource_key=key, image_index=index) from e
            except ImageResourceError as e:
                on_page_error(page_num, e)
                continue

            if out_file is not None:
                written.append(out_file)
        return written

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
        pypdf = self._require_pypdf()
        Image = self._require_pil()

        if not out_dir.is_dir():
            raise DocumentWriteError(f"Output directory does not exist: {out_dir}")

        try:
            reader = pypdf.PdfReader(str(pdf_file))
            page_count = len(reader.pages)
        except Exception as e:
            raise DocumentOpenError(f"Failed to open PDF: {pdf_file}") from e

        written: list[Path] = []
        for page_num in range(1, page_count + 1):
            try:
                page = reader.pages[page_num - 1]
                written.extend(
                    self._extract_page(
                        pypdf,
                        Image,
                        page,
                        page_num=page_num,
                        out_dir=out_dir,
                        raw=raw,
                        jpeg_quality=jpeg_quality,
                        on_page_error=on_page_error,
                    )
                )
            except Exception as e:
                on_page_error(page_num, e)

            on_progress(page_num / page_count * 100)

        if page_count == 0:
            on_progress(100.0)

        LOGGER.info("Extracted %d image(s) from %d page(s) of %s", len(written), page_count, pdf_file)
        return page_count, written

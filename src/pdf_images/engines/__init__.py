"""
Backends for the conversion operations.

- `Pypdfium2Engine` writes documents (merge, page resize) through PDFium.
- `PypdfEngine` reads the page object model (resource dictionaries, filters)
  for image extraction.
"""

from .base import PdfEngine, PdfImageExtractionEngine, PdfWriterEngine
from .pypdf_engine import PypdfEngine
from .pypdfium2_engine import Pypdfium2Engine

__all__ = [
    "PdfEngine",
    "PdfImageExtractionEngine",
    "PdfWriterEngine",
    "PypdfEngine",
    "Pypdfium2Engine",
]

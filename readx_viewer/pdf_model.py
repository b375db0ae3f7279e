# pdf_model.py
import fitz  # PyMuPDF
from dataclasses import dataclass
from typing import List, Optional, Tuple

from PIL import Image

from .errors import DocumentDecodeError, PageRenderError
from .logger import logger


@dataclass(frozen=True)
class TextRun:
    """
    One text span as laid out in the page's content stream.

    ``transform`` is the run's affine matrix (a, b, c, d, e, f) in page
    space with a top-left origin; (e, f) is the left end of the baseline.
    ``width`` is the advance the embedded font gives the whole string and
    ``height`` is the glyph size.
    """
    text: str
    transform: Tuple[float, float, float, float, float, float]
    width: float
    height: float

    @property
    def x(self) -> float:
        return self.transform[4]

    @property
    def baseline(self) -> float:
        return self.transform[5]


class Document:
    """
    Immutable handle over a decoded PDF.
    It encapsulates all interactions with the PyMuPDF (fitz) library;
    page numbers are 1-based here and converted to fitz indices internally.
    """
    def __init__(self, doc: fitz.Document):
        self.doc: Optional[fitz.Document] = doc
        self.page_count = doc.page_count

    @classmethod
    def from_bytes(cls, data: bytes) -> "Document":
        """Decodes raw document bytes. Raises DocumentDecodeError."""
        if not data:
            raise DocumentDecodeError("Document is empty")
        try:
            doc = fitz.open(stream=data, filetype="pdf")
        except Exception as e:
            raise DocumentDecodeError(f"Failed to open PDF: {e}") from e
        if doc.page_count == 0:
            doc.close()
            raise DocumentDecodeError("Document has no pages")
        logger.info("Opened document with %d pages", doc.page_count)
        return cls(doc)

    def _page(self, page_number: int) -> fitz.Page:
        if not self.doc:
            raise PageRenderError("Document is closed", page_number)
        if not 1 <= page_number <= self.page_count:
            raise PageRenderError(f"Page {page_number} out of range", page_number)
        return self.doc.load_page(page_number - 1)

    def page_size(self, page_number: int) -> Tuple[float, float]:
        """Returns the (width, height) of a page in points."""
        try:
            rect = self._page(page_number).rect
        except PageRenderError:
            raise
        except Exception as e:
            raise PageRenderError(f"Failed to read page {page_number}: {e}", page_number) from e
        return rect.width, rect.height

    def text_runs(self, page_number: int) -> List[TextRun]:
        """Returns the page's text spans in content order."""
        try:
            page_dict = self._page(page_number).get_text("dict")
        except PageRenderError:
            raise
        except Exception as e:
            raise PageRenderError(f"Failed to read text of page {page_number}: {e}", page_number) from e

        runs = []
        for block in page_dict.get("blocks", []):
            if block.get("type") != 0:
                continue
            for line in block.get("lines", []):
                cos, sin = line.get("dir", (1.0, 0.0))
                for span in line.get("spans", []):
                    size = span["size"]
                    ox, oy = span["origin"]
                    x0, _, x1, _ = span["bbox"]
                    runs.append(TextRun(
                        text=span["text"],
                        transform=(size * cos, size * sin, -size * sin, size * cos, ox, oy),
                        width=x1 - x0,
                        height=size,
                    ))
        return runs

    def rasterize(self, page_number: int, scale: float) -> Image.Image:
        """Renders a page into an RGB pixel buffer at the given scale."""
        try:
            page = self._page(page_number)
            mat = fitz.Matrix(scale, scale)
            pix = page.get_pixmap(matrix=mat, alpha=False)
            return Image.frombytes("RGB", (pix.width, pix.height), pix.samples)
        except PageRenderError:
            raise
        except Exception as e:
            raise PageRenderError(f"Rendering error on page {page_number}: {e}", page_number) from e

    def close(self):
        """Closes the PDF document."""
        if self.doc:
            self.doc.close()
            self.doc = None


def measure_text(text: str, font_size: float) -> float:
    """Rendered width of ``text`` in the viewer's overlay font."""
    return fitz.get_text_length(text, fontname="helv", fontsize=font_size)

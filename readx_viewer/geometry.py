# geometry.py
"""
Word geometry for the tappable overlay.

Text runs come from the content stream with the widths of their embedded
fonts. The overlay is measured with a different font, so every word's
offset and width inside a run is measured with the overlay metrics and then
rescaled by ``run.width / measured run width``. That keeps boxes aligned to
the rendered glyphs even when the two fonts disagree.
"""
import re
from dataclasses import dataclass
from typing import Callable, List, Optional, Sequence, Tuple

from .config import BASELINE_ASCENT, MIN_DEVICE_PIXEL_RATIO
from .pdf_model import TextRun, measure_text

WORD_PATTERN = re.compile(r"\S+")

# Separator placed between runs in the cached page text
RUN_SEPARATOR = " "

GlyphMetrics = Callable[[str, float], float]


@dataclass
class WordBox:
    """An invisible tappable region over one rendered word, in surface pixels."""
    text: str
    x: float
    y: float
    w: float
    h: float
    # Start of the word inside the page's cached text
    offset: int = 0
    highlighted: bool = False
    # None, "active" or "other"
    match: Optional[str] = None

    def contains(self, px: float, py: float) -> bool:
        return self.x <= px <= self.x + self.w and self.y <= py <= self.y + self.h

    @property
    def geometry(self) -> Tuple[str, float, float, float, float]:
        return self.text, self.x, self.y, self.w, self.h


def pixel_ratio(device_pixel_ratio: float, floor: float = MIN_DEVICE_PIXEL_RATIO) -> float:
    return max(device_pixel_ratio, floor)


def render_scale(page_width: float, layout_width: float, device_pixel_ratio: float,
                 floor: float = MIN_DEVICE_PIXEL_RATIO) -> float:
    """Surface pixels per PDF point: pixel ratio times the fit-to-width factor."""
    if page_width <= 0:
        return pixel_ratio(device_pixel_ratio, floor)
    return pixel_ratio(device_pixel_ratio, floor) * (layout_width / page_width)


def page_text(runs: Sequence[TextRun]) -> str:
    """Concatenated text of a page, identical to what measure() caches."""
    return RUN_SEPARATOR.join(run.text for run in runs)


class GeometryMeasurer:
    """Turns a page's text runs into word boxes at a given render scale."""

    def __init__(self, metrics: GlyphMetrics = measure_text, ascent: float = BASELINE_ASCENT):
        self.metrics = metrics
        self.ascent = ascent

    def measure(self, runs: Sequence[TextRun], scale: float) -> Tuple[List[WordBox], str]:
        boxes: List[WordBox] = []
        offset = 0
        for index, run in enumerate(runs):
            if index:
                offset += len(RUN_SEPARATOR)
            boxes.extend(self._measure_run(run, scale, offset))
            offset += len(run.text)
        return boxes, page_text(runs)

    def _measure_run(self, run: TextRun, scale: float, offset: int) -> List[WordBox]:
        if not run.text.strip():
            return []

        measured = self.metrics(run.text, run.height)
        correction = run.width / measured if measured > 0 else 1.0
        glyph_height = run.height * scale
        top = run.baseline * scale - self.ascent * glyph_height

        boxes = []
        # finditer keeps offsets into the original string, not a rebuilt one
        for match in WORD_PATTERN.finditer(run.text):
            word = match.group()
            before = self.metrics(run.text[:match.start()], run.height) * correction
            width = self.metrics(word, run.height) * correction
            boxes.append(WordBox(
                text=word,
                x=(run.x + before) * scale,
                y=top,
                w=width * scale,
                h=glyph_height,
                offset=offset + match.start(),
            ))
        return boxes

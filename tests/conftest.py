from __future__ import annotations

from typing import Callable, Dict, Iterable, List, Optional

import pytest
from PIL import Image

from readx_viewer.config import ViewerConfig
from readx_viewer.controller import ViewerController
from readx_viewer.errors import PageRenderError
from readx_viewer.pdf_model import TextRun

PAGE_WIDTH = 600.0
PAGE_HEIGHT = 800.0
FONT_SIZE = 12.0
# Monospace: every glyph advances half an em
CHAR_WIDTH = FONT_SIZE * 0.5


def mono(text: str, size: float) -> float:
    return len(text) * size * 0.5


class FakeDocument:
    """Deterministic stand-in for the PyMuPDF-backed Document."""

    def __init__(
        self,
        page_count: int,
        texts: Optional[Dict[int, str]] = None,
        failing: Iterable[int] = (),
        failing_text: Iterable[int] = (),
    ) -> None:
        self.page_count = page_count
        self.texts = dict(texts or {})
        self.failing = set(failing)
        self.failing_text = set(failing_text)
        self.render_calls: List[int] = []
        self.closed = False

    def text_of(self, page_number: int) -> str:
        return self.texts.get(page_number, f"lorem ipsum {page_number}")

    def page_size(self, page_number: int):
        return PAGE_WIDTH, PAGE_HEIGHT

    def text_runs(self, page_number: int) -> List[TextRun]:
        if page_number in self.failing_text:
            raise RuntimeError("broken content stream")
        text = self.text_of(page_number)
        return [
            TextRun(
                text=text,
                transform=(FONT_SIZE, 0.0, 0.0, FONT_SIZE, 50.0, 100.0),
                width=len(text) * CHAR_WIDTH,
                height=FONT_SIZE,
            )
        ]

    def rasterize(self, page_number: int, scale: float) -> Image.Image:
        if page_number in self.failing:
            raise PageRenderError(f"Rendering error on page {page_number}", page_number)
        self.render_calls.append(page_number)
        return Image.new("RGB", (4, 4), "white")

    def close(self) -> None:
        self.closed = True


def page_top(n: int, margin: int = 8) -> float:
    """Top of page ``n`` once every page before it is laid out."""
    return margin + (n - 1) * (PAGE_HEIGHT + 2 * margin)


@pytest.fixture
def make_controller() -> Callable[..., tuple]:
    def _make(doc: FakeDocument, **config_overrides) -> tuple:
        events: list = []
        settings = {"scroll_debounce": 0.01}
        settings.update(config_overrides)
        controller = ViewerController(
            events.append,
            config=ViewerConfig(**settings),
            layout_width=PAGE_WIDTH,
            device_pixel_ratio=1.0,
            open_document=lambda _data: doc,
            metrics=mono,
        )
        return controller, events

    return _make

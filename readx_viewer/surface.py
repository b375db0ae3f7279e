# surface.py
import asyncio
from dataclasses import dataclass
from enum import Enum
from typing import List, Optional

from PIL import Image

from .errors import PageRenderError
from .geometry import WordBox
from .logger import logger


class SurfaceState(Enum):
    EMPTY = "empty"
    MATERIALIZING = "materializing"
    MATERIALIZED = "materialized"
    EVICTED = "evicted"
    FAILED = "failed"


@dataclass
class PageSlot:
    """
    Per-page record. ``width``/``height`` are the reserved layout size: set on
    the first materialization attempt and never changed afterwards.
    ``cached_text`` survives eviction.
    """
    page_number: int
    width: Optional[float] = None
    height: Optional[float] = None
    raster: Optional[Image.Image] = None
    word_boxes: Optional[List[WordBox]] = None
    cached_text: Optional[str] = None
    scale: float = 0.0
    pixel_ratio: float = 1.0

    @property
    def materialized(self) -> bool:
        return self.raster is not None and self.word_boxes is not None

    @property
    def reserved(self) -> bool:
        return self.width is not None


class PageSurface:
    """One page's raster buffer and word overlay, plus its layout slot."""

    def __init__(self, page_number: int):
        self.slot = PageSlot(page_number)
        self.state = SurfaceState.EMPTY
        self.error: Optional[PageRenderError] = None

    @property
    def page_number(self) -> int:
        return self.slot.page_number

    @property
    def word_boxes(self) -> List[WordBox]:
        return self.slot.word_boxes or []

    def reserve(self, width: float, height: float):
        if self.slot.reserved:
            return
        self.slot.width = width
        self.slot.height = height

    def materialize(self, renderer):
        """
        Renders the page into this surface. The layout slot is reserved before
        rasterizing so a failed page still keeps its place as a placeholder.
        """
        if self.state is SurfaceState.FAILED:
            return
        previous = self.state
        self.state = SurfaceState.MATERIALIZING
        try:
            self.reserve(*renderer.layout_size(self.page_number))
            rendered = renderer.render(self.page_number)
        except PageRenderError as e:
            self.state = SurfaceState.FAILED
            self.error = e
            raise
        except Exception:
            self.state = previous
            raise

        self.slot.raster = rendered.raster
        self.slot.word_boxes = rendered.word_boxes
        self.slot.cached_text = rendered.text
        self.slot.scale = rendered.scale
        self.slot.pixel_ratio = rendered.pixel_ratio
        self.state = SurfaceState.MATERIALIZED

    def evict(self):
        """Drops the heavy buffers. Geometry and cached text are kept."""
        if self.state is not SurfaceState.MATERIALIZED:
            return
        self.slot.raster = None
        self.slot.word_boxes = None
        self.state = SurfaceState.EVICTED

    def hit_test(self, x: float, y: float) -> Optional[int]:
        """Index of the word box under a layout-space point, if any."""
        px, py = x * self.slot.pixel_ratio, y * self.slot.pixel_ratio
        for index, box in enumerate(self.word_boxes):
            if box.contains(px, py):
                return index
        return None

    def mark_matches(self, query: str, mark: Optional[str]) -> int:
        needle = query.lower()
        count = 0
        for box in self.word_boxes:
            if needle and needle in box.text.lower():
                box.match = mark
                count += 1
            else:
                box.match = None
        return count

    def clear_matches(self):
        for box in self.word_boxes:
            box.match = None

    def __repr__(self) -> str:
        return f"PageSurface(page={self.page_number}, state={self.state.value})"


class WordHighlight:
    """
    The single tapped-word highlight of the document. Setting one clears the
    previous one; it also clears itself after ``timeout`` seconds in case the
    host never calls back.
    """
    def __init__(self, timeout: float):
        self.timeout = timeout
        self.page_number: Optional[int] = None
        self.box: Optional[WordBox] = None
        self._timer: Optional[asyncio.TimerHandle] = None

    def set(self, surface: PageSurface, index: int) -> WordBox:
        self.clear()
        box = surface.word_boxes[index]
        box.highlighted = True
        self.page_number = surface.page_number
        self.box = box
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            logger.debug("No running loop; word highlight will not auto-clear")
        else:
            self._timer = loop.call_later(self.timeout, self.clear)
        return box

    def clear(self):
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None
        if self.box is not None:
            self.box.highlighted = False
        self.box = None
        self.page_number = None

    def forget_page(self, page_number: int):
        if self.page_number == page_number:
            self.clear()

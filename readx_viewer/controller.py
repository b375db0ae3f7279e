# controller.py
import asyncio
from typing import Callable, List, Optional

from .config import ViewerConfig
from .errors import DocumentDecodeError, ViewerError
from .events import (
    EventSink,
    FullscreenChanged,
    GoBack,
    PageChanged,
    ViewerErrorEvent,
    WordTapped,
)
from .fullscreen import FullscreenHeuristic
from .geometry import GeometryMeasurer, GlyphMetrics
from .logger import logger
from .pdf_model import Document, measure_text
from .renderer import PageRenderer
from .search import SearchEngine
from .state import ScrollState
from .surface import PageSurface, WordHighlight
from .viewport import ViewportTracker
from .window import PageWindowManager


class ViewerController:
    """
    The embedded viewer for one open document at a time.
    Acts as the controller: the host calls the inbound operations, and every
    outcome the host must react to comes back through ``emit``.

    All methods run on the event loop thread. Background work (neighbor
    rendering, scroll widening, search extraction) is scheduled as tasks on
    the running loop.
    """
    def __init__(self, emit: EventSink, config: Optional[ViewerConfig] = None,
                 layout_width: float = 360.0, device_pixel_ratio: float = 1.0,
                 open_document: Callable[[bytes], Document] = Document.from_bytes,
                 metrics: GlyphMetrics = measure_text):
        self.emit = emit
        self.config = config or ViewerConfig()
        self.layout_width = layout_width
        self.device_pixel_ratio = device_pixel_ratio
        self._open_document = open_document
        self.measurer = GeometryMeasurer(metrics, ascent=self.config.baseline_ascent)

        self.state = ScrollState()
        self.document = None
        self.window: Optional[PageWindowManager] = None
        self.heuristic: Optional[FullscreenHeuristic] = None
        self.viewport: Optional[ViewportTracker] = None
        self.search: Optional[SearchEngine] = None
        self.highlight = WordHighlight(self.config.word_highlight_timeout)
        self._initial_task: Optional[asyncio.Task] = None

    # --- Document lifecycle ---

    def open_document(self, data: bytes, start_page: int = 1) -> asyncio.Task:
        """
        Opens ``data`` and shows ``start_page`` before returning. Neighbors are
        rendered by the returned background task, which re-anchors the viewport
        on the start page once they are in place.
        """
        self.close()
        try:
            document = self._open_document(data)
        except DocumentDecodeError as e:
            logger.error("Failed to open document: %s", e)
            self._report(e)
            raise

        config = self.config
        self.document = document
        self.state = ScrollState()
        renderer = PageRenderer(document, self.measurer, self.layout_width,
                                self.device_pixel_ratio, config.min_device_pixel_ratio)
        self.window = PageWindowManager(renderer, self.state, config, self._report,
                                        on_materialized=self._on_materialized,
                                        on_evicted=self._on_evicted)
        self.heuristic = FullscreenHeuristic(self.state, config.immersive_threshold)
        self.viewport = ViewportTracker(self.window, self.heuristic, self.state, config,
                                        self._page_changed)
        self.search = SearchEngine(self.window, self.state, config, self._navigate_to_match,
                                   self._report)

        start = min(max(start_page, 1), document.page_count)
        self.state.current_page = start
        self.window.materialize(start)
        self.viewport.scroll_to(start)
        self._page_changed(start)

        self._initial_task = asyncio.get_running_loop().create_task(
            self._render_initial(self.window, self.viewport, start))
        return self._initial_task

    async def _render_initial(self, window: PageWindowManager, viewport: ViewportTracker, start: int):
        if await window.widen(start, self.config.initial_neighbor_radius):
            viewport.scroll_to(start)
            window.evict_distant()

    def close(self):
        if self.document is None:
            return
        self.viewport.cancel()
        self.search.cancel()
        self.highlight.clear()
        self.window.release()
        self.document.close()
        self.document = None
        self.window = None
        self.heuristic = None
        self.viewport = None
        self.search = None
        self.state = ScrollState()
        logger.info("Closed document")

    async def settle(self):
        """Waits until no background work is pending."""
        while True:
            pending = [t for t in self._background_tasks() if not t.done()]
            if not pending:
                return
            await asyncio.gather(*pending)

    def _background_tasks(self) -> List[asyncio.Task]:
        tasks = [self._initial_task]
        if self.viewport:
            tasks.append(self.viewport.pending)
        if self.search:
            tasks.append(self.search.pending)
        return [t for t in tasks if t is not None]

    # --- Page navigation ---

    def go_to_page(self, page_number: int):
        if self.document is None:
            return
        page_number = min(max(page_number, 1), self.total_pages)
        self._show_page(page_number, self.config.page_turn_radius)

    def prev_page(self):
        if self.document is None or self.current_page <= 1:
            return
        self._show_page(self.current_page - 1, self.config.page_turn_radius)

    def next_page(self):
        if self.document is None or self.current_page >= self.total_pages:
            return
        self._show_page(self.current_page + 1, self.config.page_turn_radius)

    def _show_page(self, page_number: int, radius: int):
        # Stop background widening around the old page
        self.window.supersede()
        changed = page_number != self.state.current_page
        self.state.current_page = page_number
        self.window.materialize_around(page_number, radius)
        self.viewport.scroll_to(page_number)
        if changed:
            self._page_changed(page_number)

    def _navigate_to_match(self, page_number: int):
        self._show_page(page_number, self.config.match_neighbor_radius)

    def on_scroll(self, offset: float):
        """Raw scroll tick from the host, in layout pixels from the top of the content."""
        if self.document is None:
            return
        self.viewport.on_scroll(offset)

    # --- Word taps ---

    def tap(self, page_number: int, x: float, y: float) -> Optional[str]:
        """Taps the word under a layout-space point on a page, if there is one."""
        surface = self._materialized_surface(page_number)
        if surface is None:
            return None
        index = surface.hit_test(x, y)
        if index is None:
            return None
        return self.tap_word(page_number, index)

    def tap_word(self, page_number: int, index: int) -> Optional[str]:
        surface = self._materialized_surface(page_number)
        if surface is None or not 0 <= index < len(surface.word_boxes):
            return None
        box = self.highlight.set(surface, index)
        self.emit(WordTapped(box.text))
        return box.text

    def clear_word_highlight(self):
        self.highlight.clear()

    def _materialized_surface(self, page_number: int) -> Optional[PageSurface]:
        if self.window is None or page_number not in self.window.render_window:
            return None
        return self.window.surfaces[page_number]

    # --- Search ---

    def open_search(self):
        if self.search:
            self.search.open()

    def close_search(self):
        if self.search:
            self.search.close()

    def set_query(self, text: str) -> Optional[asyncio.Task]:
        if self.search is None:
            return None
        if not self.state.search_open:
            self.search.open()
        return self.search.set_query(text)

    def next_match(self) -> Optional[int]:
        return self.search.next_match() if self.search else None

    def prev_match(self) -> Optional[int]:
        return self.search.prev_match() if self.search else None

    # --- Chrome ---

    def toggle_immersive(self) -> bool:
        if self.heuristic is None:
            return False
        immersive = self.heuristic.toggle()
        self.emit(FullscreenChanged(immersive))
        return immersive

    def back(self) -> bool:
        """Hardware back. Leaves immersive mode first; returns True if the press was consumed."""
        if self.heuristic is not None and self.state.immersive:
            self.heuristic.set_immersive(False)
            self.emit(FullscreenChanged(False))
            return True
        self.emit(GoBack())
        return False

    # --- Internal hooks ---

    def _page_changed(self, page_number: int):
        self.emit(PageChanged(page_number, self.total_pages))

    def _on_materialized(self, surface: PageSurface):
        self.highlight.clear()
        if self.search:
            self.search.apply_marks(surface)

    def _on_evicted(self, surface: PageSurface):
        self.highlight.forget_page(surface.page_number)

    def _report(self, error: ViewerError):
        self.emit(ViewerErrorEvent.from_error(error))

    # --- Read-only view for the host ---

    @property
    def total_pages(self) -> int:
        return self.document.page_count if self.document else 0

    @property
    def current_page(self) -> int:
        return self.state.current_page

    @property
    def render_window(self) -> List[int]:
        return sorted(self.window.render_window) if self.window else []

    @property
    def scroll_offset(self) -> float:
        return self.state.last_offset

    @property
    def immersive(self) -> bool:
        return self.state.immersive

    @property
    def chrome_visible(self) -> bool:
        return self.state.chrome_visible

    @property
    def query(self) -> str:
        return self.search.live_query if self.search else ""

    @property
    def match_pages(self) -> List[int]:
        return self.search.match_pages if self.search else []

    @property
    def active_index(self) -> int:
        return self.search.active_index if self.search else -1

    @property
    def match_count(self) -> int:
        return len(self.match_pages)

    @property
    def searching(self) -> bool:
        return bool(self.search and self.search.session and self.search.session.searching)

    def surface(self, page_number: int) -> Optional[PageSurface]:
        return self.window.surfaces.get(page_number) if self.window else None

# viewport.py
import asyncio
from typing import Callable, Optional

from .config import ViewerConfig
from .fullscreen import FullscreenHeuristic, Transition
from .logger import logger
from .state import ScrollState
from .window import PageWindowManager


class ViewportTracker:
    """
    Turns scroll offsets into page changes.

    Every raw tick goes straight to the fullscreen heuristic. Page evaluation
    is debounced: a burst of ticks within ``scroll_debounce`` seconds results in
    one evaluation, which picks the materialized page whose top is closest to the
    chrome edge, reports it if it changed, widens the render window around it
    in the background and finally evicts.
    """
    def __init__(self, window: PageWindowManager, heuristic: FullscreenHeuristic,
                 state: ScrollState, config: ViewerConfig,
                 on_page_changed: Callable[[int], None]):
        self.window = window
        self.heuristic = heuristic
        self.state = state
        self.config = config
        self.on_page_changed = on_page_changed
        self._debounce: Optional[asyncio.TimerHandle] = None
        self._widening: Optional[asyncio.Task] = None

    @property
    def offset(self) -> float:
        return self.state.last_offset

    def on_scroll(self, offset: float) -> Optional[Transition]:
        transition = self.heuristic.on_scroll(offset)
        self._schedule()
        return transition

    def _schedule(self):
        if self._debounce is not None:
            self._debounce.cancel()
        loop = asyncio.get_running_loop()
        self._debounce = loop.call_later(self.config.scroll_debounce, self._fire)

    def _fire(self):
        self._debounce = None
        self.evaluate()

    def screen_top(self, page_number: int) -> float:
        """On-screen top of a page, with content starting below the chrome."""
        return self.config.chrome_height + self.window.page_top(page_number) - self.offset

    def page_at_offset(self) -> Optional[int]:
        pages = sorted(self.window.render_window)
        if not pages:
            return None
        chrome = self.config.chrome_height
        return min(pages, key=lambda n: (abs(self.screen_top(n) - chrome), n))

    def evaluate(self) -> Optional[asyncio.Task]:
        """Settles the current page. Returns the background widening task, if one started."""
        page = self.page_at_offset()
        if page is None or page == self.state.current_page:
            return None
        self.state.current_page = page
        logger.debug("Viewport settled on page %d", page)
        self.on_page_changed(page)
        self._widening = asyncio.get_running_loop().create_task(self._widen_then_evict(page))
        return self._widening

    async def _widen_then_evict(self, page: int):
        if await self.window.widen(page, self.config.scroll_widen_radius):
            self.window.evict_distant()

    def scroll_to(self, page_number: int):
        """Programmatic scroll so the page's top meets the chrome edge."""
        self.heuristic.jump_to(self.window.page_top(page_number))

    @property
    def pending(self) -> Optional[asyncio.Task]:
        if self._widening is not None and not self._widening.done():
            return self._widening
        return None

    def cancel(self):
        if self._debounce is not None:
            self._debounce.cancel()
            self._debounce = None
        self.window.supersede()

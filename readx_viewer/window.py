# window.py
import asyncio
from typing import Callable, Dict, List, Optional, Set

from .config import ViewerConfig
from .errors import PageRenderError, ViewerError
from .logger import logger
from .state import ScrollState
from .surface import PageSurface, SurfaceState


class PageWindowManager:
    """
    Decides which pages hold raster buffers.

    The render window is bounded by ``max_materialized``; when it overflows,
    pages outside ``current_page ± protected_radius`` are evicted farthest
    first. Eviction keeps each page's reserved layout slot, so the document's
    scroll height never changes because of it. Reserving a slot above the
    current page moves the scroll offset down with it, so the page under the
    viewport stays put.

    Background widening runs under a generation token: starting a new pass
    bumps the token, and a stale pass stops at its next resumption point.
    """
    def __init__(self, renderer, state: ScrollState, config: ViewerConfig,
                 on_error: Callable[[ViewerError], None],
                 on_materialized: Optional[Callable[[PageSurface], None]] = None,
                 on_evicted: Optional[Callable[[PageSurface], None]] = None):
        self.renderer = renderer
        self.state = state
        self.config = config
        self.on_error = on_error
        self.on_materialized = on_materialized
        self.on_evicted = on_evicted

        self.total_pages: int = renderer.document.page_count
        self.surfaces: Dict[int, PageSurface] = {
            n: PageSurface(n) for n in range(1, self.total_pages + 1)
        }
        self.render_window: Set[int] = set()
        self._generation = 0

    # --- Materialization ---

    def materialize(self, page_number: int) -> bool:
        """Materializes one page. Returns True if the page is in the window afterwards."""
        if page_number in self.render_window:
            return True
        surface = self.surfaces.get(page_number)
        if surface is None or surface.state is SurfaceState.FAILED:
            return False

        was_reserved = surface.slot.reserved
        try:
            surface.materialize(self.renderer)
        except PageRenderError as e:
            logger.warning("Page %d failed to render: %s", page_number, e)
            self.on_error(e)
            return False
        finally:
            if not was_reserved:
                self._keep_anchor(surface)

        self.render_window.add(page_number)
        logger.debug("Materialized page %d (window=%d)", page_number, len(self.render_window))
        if self.on_materialized:
            self.on_materialized(surface)
        self.evict_distant()
        return True

    def _keep_anchor(self, surface: PageSurface):
        # A slot reserved above the current page pushes it down by the slot's height
        slot = surface.slot
        if slot.reserved and surface.page_number < self.state.current_page:
            self.state.last_offset += slot.height + 2 * self.config.page_margin

    def neighborhood(self, center: int, radius: int) -> List[int]:
        """Pages within ``radius`` of ``center``, ordered outward: c, c+1, c-1, c+2, ..."""
        pages = [center] if 1 <= center <= self.total_pages else []
        for step in range(1, radius + 1):
            for n in (center + step, center - step):
                if 1 <= n <= self.total_pages:
                    pages.append(n)
        return pages

    def materialize_around(self, center: int, radius: int):
        """Synchronous neighborhood fill, used where a blank page must never show."""
        for n in self.neighborhood(center, radius):
            self.materialize(n)

    def supersede(self) -> int:
        """Invalidates any in-flight widening pass and returns the new token."""
        self._generation += 1
        return self._generation

    def is_current(self, token: int) -> bool:
        return token == self._generation

    async def widen(self, center: int, radius: int) -> bool:
        """
        Materializes ``center ± radius`` one page at a time, yielding to the
        event loop around every page. Returns False if a newer pass took over.
        """
        token = self.supersede()
        for n in self.neighborhood(center, radius):
            await asyncio.sleep(0)
            if not self.is_current(token):
                logger.debug("Widening around page %d superseded", center)
                return False
            if n not in self.render_window:
                self.materialize(n)
        await asyncio.sleep(0)
        return self.is_current(token)

    # --- Eviction ---

    def evict_distant(self) -> List[int]:
        """Evicts farthest-from-current pages until the window fits the cap."""
        if len(self.render_window) <= self.config.max_materialized:
            return []
        current = self.state.current_page
        radius = self.config.protected_radius
        candidates = sorted(
            (n for n in self.render_window if abs(n - current) > radius),
            key=lambda n: (-abs(n - current), n),
        )
        evicted = []
        for n in candidates:
            if len(self.render_window) <= self.config.max_materialized:
                break
            self.evict(n)
            evicted.append(n)
        if evicted:
            logger.debug("Evicted pages %s around page %d", evicted, current)
        return evicted

    def evict(self, page_number: int):
        if page_number not in self.render_window:
            return
        surface = self.surfaces[page_number]
        surface.evict()
        self.render_window.discard(page_number)
        if self.on_evicted:
            self.on_evicted(surface)

    # --- Layout ---

    def page_top(self, page_number: int) -> float:
        """Top of a page in content coordinates. Unreserved pages take no space."""
        margin = self.config.page_margin
        top = 0.0
        for n in range(1, page_number):
            slot = self.surfaces[n].slot
            if slot.reserved:
                top += slot.height + 2 * margin
        return top + margin

    def total_height(self) -> float:
        margin = self.config.page_margin
        return sum(
            s.slot.height + 2 * margin for s in self.surfaces.values() if s.slot.reserved
        )

    def laid_out_pages(self) -> List[int]:
        return [n for n, surface in self.surfaces.items() if surface.slot.reserved]

    def release(self):
        """Drops every buffer and cancels background passes. Used on close."""
        self.supersede()
        for n in list(self.render_window):
            self.evict(n)

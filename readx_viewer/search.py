# search.py
"""
Incremental full-document text search.

Each query starts a new session. Phase 1 scans pages whose text is already
cached and jumps to the first hit immediately. Phase 2 extracts the rest in
small concurrent batches, yielding between batches, and stops as soon as the
live query no longer matches the session's query.
"""
import asyncio
from dataclasses import dataclass, field
from typing import Callable, List, Optional

from .config import ViewerConfig
from .errors import SearchExtractionError, ViewerError
from .logger import logger
from .state import ScrollState
from .surface import PageSurface
from .window import PageWindowManager

ACTIVE_MATCH = "active"
OTHER_MATCH = "other"


@dataclass
class SearchSession:
    query: str
    generation: int
    match_pages: List[int] = field(default_factory=list)
    active_index: int = -1
    searching: bool = False

    @property
    def needle(self) -> str:
        return self.query.lower()

    @property
    def status(self) -> str:
        if self.searching:
            return "searching"
        return "has_results" if self.match_pages else "idle"

    @property
    def active_page(self) -> Optional[int]:
        if 0 <= self.active_index < len(self.match_pages):
            return self.match_pages[self.active_index]
        return None

    def merge(self, pages: List[int]) -> bool:
        """Adds pages keeping the list ascending and unique. Returns True on the first hit."""
        first = not self.match_pages
        active = self.active_page
        self.match_pages = sorted(set(self.match_pages).union(pages))
        if active is not None:
            self.active_index = self.match_pages.index(active)
        return first and bool(self.match_pages)


class SearchEngine:

    def __init__(self, window: PageWindowManager, state: ScrollState, config: ViewerConfig,
                 navigate: Callable[[int], None], on_error: Callable[[ViewerError], None]):
        self.window = window
        self.state = state
        self.config = config
        self.navigate = navigate
        self.on_error = on_error

        self.session: Optional[SearchSession] = None
        self.live_query = ""
        self._generation = 0
        self._task: Optional[asyncio.Task] = None

    # --- Session lifecycle ---

    def open(self):
        self.state.search_open = True
        self.state.chrome_visible = True

    def close(self):
        self._generation += 1
        self.session = None
        self.live_query = ""
        self._clear_marks()
        self.state.search_open = False
        self.state.chrome_visible = not self.state.immersive

    def set_query(self, text: str) -> Optional[asyncio.Task]:
        """Starts a new session for ``text``. Returns the background phase, if any."""
        self.live_query = text
        self._generation += 1
        self._clear_marks()

        session = SearchSession(query=text, generation=self._generation)
        if not text.strip():
            self.session = None
            return None
        self.session = session

        surfaces = self.window.surfaces
        session.match_pages = [
            n for n, surface in surfaces.items()
            if surface.slot.cached_text is not None and session.needle in surface.slot.cached_text.lower()
        ]
        if session.match_pages:
            session.active_index = 0
            self._show_active(session)

        pending = [n for n, surface in surfaces.items() if surface.slot.cached_text is None]
        if not pending:
            logger.info("Search '%s': %d matching pages", text, len(session.match_pages))
            return None
        session.searching = True
        self._task = asyncio.get_running_loop().create_task(self._search_uncached(session, pending))
        return self._task

    def _is_live(self, session: SearchSession) -> bool:
        return session.generation == self._generation and self.live_query == session.query

    async def _search_uncached(self, session: SearchSession, pending: List[int]):
        size = self.config.search_batch_size
        try:
            for start in range(0, len(pending), size):
                await asyncio.sleep(0)
                if not self._is_live(session):
                    logger.debug("Search '%s' superseded", session.query)
                    return
                batch = pending[start:start + size]
                texts = await asyncio.gather(*(self._extract(n) for n in batch))
                if not self._is_live(session):
                    logger.debug("Search '%s' superseded", session.query)
                    return

                found = [n for n, text in zip(batch, texts)
                         if text is not None and session.needle in text.lower()]
                if not found:
                    continue
                if session.merge(found):
                    session.active_index = 0
                    self._show_active(session)
                else:
                    self._refresh_marks(session)
            logger.info("Search '%s': %d matching pages", session.query, len(session.match_pages))
        finally:
            session.searching = False

    async def _extract(self, page_number: int) -> Optional[str]:
        await asyncio.sleep(0)
        slot = self.window.surfaces[page_number].slot
        if slot.cached_text is not None:
            return slot.cached_text
        try:
            text = self.window.renderer.extract_text(page_number)
        except Exception as e:
            error = SearchExtractionError(f"Failed to extract text of page {page_number}: {e}", page_number)
            logger.warning("%s", error)
            self.on_error(error)
            return None
        slot.cached_text = text
        return text

    # --- Match navigation ---

    @property
    def match_pages(self) -> List[int]:
        return list(self.session.match_pages) if self.session else []

    @property
    def active_index(self) -> int:
        return self.session.active_index if self.session else -1

    def next_match(self) -> Optional[int]:
        return self._step(1)

    def prev_match(self) -> Optional[int]:
        return self._step(-1)

    def _step(self, direction: int) -> Optional[int]:
        session = self.session
        if not session or not session.match_pages:
            return None
        session.active_index = (session.active_index + direction) % len(session.match_pages)
        self._show_active(session)
        return session.active_page

    def _show_active(self, session: SearchSession):
        page = session.active_page
        if page is None:
            return
        self.navigate(page)
        self._refresh_marks(session)

    # --- Highlighting ---

    def apply_marks(self, surface: PageSurface):
        """Marks a freshly materialized page if it belongs to the open session."""
        session = self.session
        if not session or surface.page_number not in session.match_pages:
            return
        mark = ACTIVE_MATCH if surface.page_number == session.active_page else OTHER_MATCH
        surface.mark_matches(session.needle, mark)

    def _refresh_marks(self, session: SearchSession):
        matches = set(session.match_pages)
        for n in self.window.render_window:
            surface = self.window.surfaces[n]
            if n == session.active_page:
                surface.mark_matches(session.needle, ACTIVE_MATCH)
            elif n in matches:
                surface.mark_matches(session.needle, OTHER_MATCH)
            else:
                surface.clear_matches()

    def _clear_marks(self):
        for n in self.window.render_window:
            self.window.surfaces[n].clear_matches()

    @property
    def pending(self) -> Optional[asyncio.Task]:
        if self._task is not None and not self._task.done():
            return self._task
        return None

    def cancel(self):
        self._generation += 1

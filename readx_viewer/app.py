# app.py
import asyncio
import tkinter as tk
from tkinter import filedialog, messagebox, ttk
from typing import Callable, Dict, Iterable, Optional, Tuple

from PIL import ImageTk

from .config import THEMES, ViewerConfig
from .controller import ViewerController
from .errors import DocumentDecodeError
from .events import FullscreenChanged, GoBack, PageChanged, ViewerErrorEvent, WordTapped
from .logger import logger

# Milliseconds between event loop pumps
PUMP_INTERVAL = 16
WHEEL_STEP = 60


class PhotoCache:
    """Display images of materialized pages, keyed by page and raster identity."""

    def __init__(self, factory: Callable = ImageTk.PhotoImage):
        self.factory = factory
        self._photos: Dict[int, Tuple[int, object]] = {}

    def get(self, page_number: int, slot):
        cached = self._photos.get(page_number)
        if cached and cached[0] == id(slot.raster):
            return cached[1]
        image = slot.raster.resize((int(slot.width), int(slot.height)))
        photo = self.factory(image)
        self._photos[page_number] = (id(slot.raster), photo)
        return photo

    def prune(self, render_window: Iterable[int]):
        """Drops images of pages that no longer hold a raster."""
        keep = set(render_window)
        for n in [n for n in self._photos if n not in keep]:
            del self._photos[n]

    def clear(self):
        self._photos.clear()

    def __len__(self) -> int:
        return len(self._photos)

    def __contains__(self, page_number: int) -> bool:
        return page_number in self._photos


class ReaderApp(tk.Tk):
    """
    Reference host for the viewer engine.
    Owns the window and an asyncio loop that is pumped from Tk's timer, so
    the engine's cooperative tasks interleave with Tk events on one thread.
    """
    def __init__(self, path: Optional[str] = None, start_page: int = 1,
                 config: Optional[ViewerConfig] = None):
        super().__init__()
        self.theme = THEMES["dark"]
        self.loop = asyncio.new_event_loop()
        self.controller = ViewerController(self._on_event, config=config)
        self.photos = PhotoCache()
        self.path = path
        self.start_page = start_page

        self._setup_window()
        self._create_widgets()
        self._bind_events()
        self.after(PUMP_INTERVAL, self._pump)
        if path:
            self.after(100, lambda: self.load_pdf(path, start_page))

    def _setup_window(self):
        self.title("ReadX")
        self.geometry("720x900")
        self.configure(bg=self.theme["bg"])
        self.protocol("WM_DELETE_WINDOW", self._on_closing)

    def _create_widgets(self):
        self.toolbar = ttk.Frame(self, padding=5)
        self.toolbar.pack(side=tk.TOP, fill=tk.X)

        ttk.Button(self.toolbar, text="Open", command=self.open_pdf).pack(side=tk.LEFT, padx=5)
        ttk.Button(self.toolbar, text="◀", width=3, command=lambda: self._submit(self.controller.prev_page)).pack(side=tk.LEFT)
        self.page_lbl = ttk.Label(self.toolbar, text="-", width=10, anchor="center")
        self.page_lbl.pack(side=tk.LEFT, padx=2)
        ttk.Button(self.toolbar, text="▶", width=3, command=lambda: self._submit(self.controller.next_page)).pack(side=tk.LEFT)

        self.search_entry = ttk.Entry(self.toolbar, width=24)
        self.search_entry.pack(side=tk.LEFT, padx=(15, 2))
        ttk.Button(self.toolbar, text="▲", width=2, command=lambda: self._submit(self.controller.prev_match)).pack(side=tk.LEFT)
        ttk.Button(self.toolbar, text="▼", width=2, command=lambda: self._submit(self.controller.next_match)).pack(side=tk.LEFT)
        ttk.Button(self.toolbar, text="⛶", width=3, command=lambda: self._submit(self.controller.toggle_immersive)).pack(side=tk.RIGHT)

        self.canvas = tk.Canvas(self, bg=self.theme["canvas_bg"], highlightthickness=0)
        self.canvas.pack(fill=tk.BOTH, expand=True)

        self.status_lbl = ttk.Label(self, text="No file open", anchor="w")
        self.status_lbl.pack(side=tk.BOTTOM, fill=tk.X)

    def _bind_events(self):
        self.bind("<Control-o>", lambda e: self.open_pdf())
        self.bind("<Left>", lambda e: self._submit(self.controller.prev_page))
        self.bind("<Right>", lambda e: self._submit(self.controller.next_page))
        self.bind("<Control-f>", lambda e: self._focus_search())
        self.bind("<Escape>", lambda e: self._submit(self._escape))
        self.bind("<F11>", lambda e: self._submit(self.controller.toggle_immersive))
        self.search_entry.bind("<KeyRelease>", self._on_query_changed)
        self.search_entry.bind("<Return>", lambda e: self._submit(self.controller.next_match))
        self.canvas.bind("<Button-1>", self._on_click)
        self.canvas.bind("<MouseWheel>", self._on_mousewheel)
        self.canvas.bind("<Button-4>", self._on_mousewheel)
        self.canvas.bind("<Button-5>", self._on_mousewheel)

    # --- Loop bridge ---

    def _submit(self, fn, *args):
        """Runs ``fn`` inside the asyncio loop on its next pump."""
        self.loop.call_soon(fn, *args)

    def _pump(self):
        self.loop.call_soon(self.loop.stop)
        self.loop.run_forever()
        self._redraw()
        self.after(PUMP_INTERVAL, self._pump)

    def _on_closing(self):
        self.controller.close()
        self.loop.close()
        self.destroy()

    # --- Document ---

    def open_pdf(self):
        path = filedialog.askopenfilename(filetypes=[("PDF files", "*.pdf")])
        if path:
            self.load_pdf(path)

    def load_pdf(self, path: str, start_page: int = 1):
        try:
            with open(path, "rb") as f:
                data = f.read()
        except OSError as e:
            messagebox.showerror("Error", f"Failed to read PDF: {e}")
            return
        self.path = path
        self.photos.clear()
        self.controller.layout_width = max(self.canvas.winfo_width() - 16, 100)
        self._submit(self._open, data, start_page)

    def _open(self, data: bytes, start_page: int):
        try:
            self.controller.open_document(data, start_page)
        except DocumentDecodeError:
            # Already reported through the event sink
            return
        self.status_lbl.config(text=self.path.split('/')[-1].split('\\')[-1])

    # --- Engine events ---

    def _on_event(self, event):
        if isinstance(event, PageChanged):
            self.page_lbl.config(text=f"{event.page} / {event.total_pages}")
        elif isinstance(event, WordTapped):
            self.status_lbl.config(text=f"Word: {event.word}")
        elif isinstance(event, FullscreenChanged):
            logger.debug("Fullscreen %s", event.is_fullscreen)
        elif isinstance(event, GoBack):
            self.after_idle(self._on_closing)
        elif isinstance(event, ViewerErrorEvent):
            if event.page is None:
                messagebox.showerror("Error", event.message)
            else:
                self.status_lbl.config(text=f"Page {event.page}: {event.message}")

    # --- Input ---

    def _escape(self):
        if self.controller.state.search_open:
            self.controller.close_search()
            self.search_entry.delete(0, tk.END)
        else:
            self.controller.back()

    def _focus_search(self):
        self._submit(self.controller.open_search)
        self.search_entry.focus_set()

    def _on_query_changed(self, event=None):
        text = self.search_entry.get()
        if text != self.controller.query:
            self._submit(self.controller.set_query, text)

    def _on_mousewheel(self, event):
        if self.controller.window is None:
            return
        delta = event.delta if hasattr(event, "delta") and event.delta else (120 if event.num == 4 else -120)
        max_offset = max(self.controller.window.total_height() - self.canvas.winfo_height(), 0)
        offset = self.controller.scroll_offset - (delta // 120) * WHEEL_STEP
        self._submit(self.controller.on_scroll, min(max(offset, 0), max_offset))

    def _on_click(self, event):
        hit = self._page_at(event.x, event.y)
        if hit:
            self._submit(self.controller.tap, *hit)

    def _page_at(self, x: float, y: float) -> Optional[Tuple[int, float, float]]:
        window = self.controller.window
        if window is None:
            return None
        content_y = y + self.controller.scroll_offset
        left = self._page_left()
        for n in window.laid_out_pages():
            top = window.page_top(n)
            slot = window.surfaces[n].slot
            if top <= content_y <= top + slot.height:
                return n, x - left, content_y - top
        return None

    def _page_left(self) -> float:
        return max((self.canvas.winfo_width() - self.controller.layout_width) // 2, 0)

    # --- Painting ---

    def _redraw(self):
        window = self.controller.window
        if self.controller.chrome_visible:
            if not self.toolbar.winfo_ismapped():
                self.toolbar.pack(side=tk.TOP, fill=tk.X, before=self.canvas)
        elif self.toolbar.winfo_ismapped():
            self.toolbar.pack_forget()

        self.canvas.delete("all")
        if window is None:
            self.photos.clear()
            return
        self.photos.prune(window.render_window)
        offset = self.controller.scroll_offset
        view_h = self.canvas.winfo_height()
        left = self._page_left()
        for n in window.laid_out_pages():
            surface = window.surfaces[n]
            slot = surface.slot
            y = window.page_top(n) - offset
            if y + slot.height < 0 or y > view_h:
                continue
            if slot.materialized:
                photo = self.photos.get(n, slot)
                self.canvas.create_image(left, y, anchor="nw", image=photo)
                self._draw_boxes(surface, left, y)
            else:
                fill = self.theme["error"] if surface.error else self.theme["placeholder"]
                self.canvas.create_rectangle(left, y, left + slot.width, y + slot.height, fill=fill, outline="")

    def _draw_boxes(self, surface, left: float, top: float):
        ratio = surface.slot.pixel_ratio
        for box in surface.word_boxes:
            if box.highlighted:
                color = self.theme["word_highlight"]
            elif box.match == "active":
                color = self.theme["match_active"]
            elif box.match == "other":
                color = self.theme["match_other"]
            else:
                continue
            x0, y0 = left + box.x / ratio, top + box.y / ratio
            self.canvas.create_rectangle(x0, y0, x0 + box.w / ratio, y0 + box.h / ratio,
                                         fill=color, stipple="gray50", outline="")

# config.py

from dataclasses import dataclass
from typing import Dict

# --- Theme Configuration (reference host) ---
THEMES: Dict[str, Dict[str, str]] = {
    "dark": {
        "bg": "#1a1a2e",
        "fg": "#94A3B8",
        "canvas_bg": "#1a1a2e",
        "chrome_bg": "#16213e",
        "page_bg": "#FFFFFF",
        "placeholder": "#334155",
        "error": "#F87171",
        "word_highlight": "#4F46E5",
        "match_active": "#F59E0B",
        "match_other": "#FDE68A",
    },
}

# --- Page Window ---
# Upper bound on pages holding a raster buffer and word boxes at once
MAX_MATERIALIZED: int = 10

# Pages within this distance of the current page are never evicted
PROTECTED_RADIUS: int = 4

# Neighbors rendered in the background after the start page is shown
INITIAL_NEIGHBOR_RADIUS: int = 3

# Neighbors rendered synchronously on prev/next page turns
PAGE_TURN_RADIUS: int = 2

# Neighbors rendered in the background after the viewport settles
SCROLL_WIDEN_RADIUS: int = 3

# Neighbors rendered around a search match
MATCH_NEIGHBOR_RADIUS: int = 1

# --- Viewport ---
SCROLL_DEBOUNCE_SECONDS: float = 0.1

# Height of the fixed toolbar; the current page is the one whose top sits closest to it
CHROME_HEIGHT: int = 56

# Vertical gap above and below each page in layout pixels
PAGE_MARGIN: int = 8

# Accumulated one-way scroll distance that toggles immersive mode
IMMERSIVE_THRESHOLD: int = 30

# --- Word overlay ---
WORD_HIGHLIGHT_TIMEOUT: float = 5.0

# Rasters are never rendered below this device pixel ratio
MIN_DEVICE_PIXEL_RATIO: float = 3.0

# Word box top = baseline - BASELINE_ASCENT * glyph height
BASELINE_ASCENT: float = 0.85

# --- Search ---
SEARCH_BATCH_SIZE: int = 5


@dataclass(frozen=True)
class ViewerConfig:
    """Tunable engine settings. Defaults mirror the module constants."""
    max_materialized: int = MAX_MATERIALIZED
    protected_radius: int = PROTECTED_RADIUS
    initial_neighbor_radius: int = INITIAL_NEIGHBOR_RADIUS
    page_turn_radius: int = PAGE_TURN_RADIUS
    scroll_widen_radius: int = SCROLL_WIDEN_RADIUS
    match_neighbor_radius: int = MATCH_NEIGHBOR_RADIUS
    scroll_debounce: float = SCROLL_DEBOUNCE_SECONDS
    chrome_height: int = CHROME_HEIGHT
    page_margin: int = PAGE_MARGIN
    immersive_threshold: int = IMMERSIVE_THRESHOLD
    word_highlight_timeout: float = WORD_HIGHLIGHT_TIMEOUT
    min_device_pixel_ratio: float = MIN_DEVICE_PIXEL_RATIO
    baseline_ascent: float = BASELINE_ASCENT
    search_batch_size: int = SEARCH_BATCH_SIZE

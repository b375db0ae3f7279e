# state.py
from dataclasses import dataclass


@dataclass
class ScrollState:
    """Scroll and chrome state shared by the viewport, window and fullscreen logic."""
    last_offset: float = 0.0
    # Signed; reset whenever the scroll direction reverses
    accumulated_delta: float = 0.0
    current_page: int = 1
    immersive: bool = False
    immersive_is_auto: bool = False
    chrome_visible: bool = True
    search_open: bool = False

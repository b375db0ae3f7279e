# fullscreen.py
from enum import Enum
from typing import Optional

from .state import ScrollState


class Transition(Enum):
    ENTER = "enter"
    EXIT = "exit"


class FullscreenHeuristic:
    """
    Derives immersive mode from one-way scroll distance.

    Scrolling down more than ``threshold`` pixels in one direction hides the
    chrome; scrolling back up more than ``threshold`` shows it again, but only
    if the immersive mode was entered this way. Automatic transitions only
    change local chrome visibility. Manual toggles are the ones the host
    hears about.
    """
    def __init__(self, state: ScrollState, threshold: float):
        self.state = state
        self.threshold = threshold

    def on_scroll(self, offset: float) -> Optional[Transition]:
        """Feeds one raw scroll tick. Returns the automatic transition it caused, if any."""
        state = self.state
        delta = offset - state.last_offset
        state.last_offset = offset
        if delta == 0:
            return None

        if state.accumulated_delta == 0 or (delta > 0) == (state.accumulated_delta > 0):
            state.accumulated_delta += delta
        else:
            state.accumulated_delta = delta

        if state.search_open:
            return None

        if state.accumulated_delta > self.threshold and not state.immersive:
            state.immersive = True
            state.immersive_is_auto = True
            state.chrome_visible = False
            state.accumulated_delta = 0
            return Transition.ENTER

        if state.accumulated_delta < -self.threshold and state.immersive and state.immersive_is_auto:
            state.immersive = False
            state.immersive_is_auto = False
            state.chrome_visible = True
            state.accumulated_delta = 0
            return Transition.EXIT

        return None

    def set_immersive(self, immersive: bool) -> bool:
        """Explicit user control. Clears the auto flag; returns the new state."""
        state = self.state
        state.immersive = immersive
        state.immersive_is_auto = False
        state.accumulated_delta = 0
        state.chrome_visible = not immersive or state.search_open
        return immersive

    def toggle(self) -> bool:
        return self.set_immersive(not self.state.immersive)

    def jump_to(self, offset: float):
        """Programmatic scroll: moves the reference point without counting as a gesture."""
        self.state.last_offset = offset
        self.state.accumulated_delta = 0

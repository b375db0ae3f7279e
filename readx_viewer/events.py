# events.py
"""Outbound events delivered to the host through a single ``emit`` callable."""
from dataclasses import dataclass
from typing import Any, Callable, Dict, Optional, Union

from .errors import ViewerError


@dataclass(frozen=True)
class WordTapped:
    word: str

    def as_message(self) -> Dict[str, Any]:
        return {"type": "wordTapped", "word": self.word}


@dataclass(frozen=True)
class PageChanged:
    page: int
    total_pages: int

    def as_message(self) -> Dict[str, Any]:
        return {"type": "pageChanged", "page": self.page, "totalPages": self.total_pages}


@dataclass(frozen=True)
class FullscreenChanged:
    is_fullscreen: bool

    def as_message(self) -> Dict[str, Any]:
        return {"type": "fullscreenChanged", "isFullscreen": self.is_fullscreen}


@dataclass(frozen=True)
class GoBack:

    def as_message(self) -> Dict[str, Any]:
        return {"type": "goBack"}


@dataclass(frozen=True)
class ViewerErrorEvent:
    kind: str
    page: Optional[int]
    message: str

    @classmethod
    def from_error(cls, error: ViewerError) -> "ViewerErrorEvent":
        return cls(kind=error.kind, page=error.page, message=str(error))

    def as_message(self) -> Dict[str, Any]:
        return {"type": "viewerError", "kind": self.kind, "page": self.page, "message": self.message}


ViewerEvent = Union[WordTapped, PageChanged, FullscreenChanged, GoBack, ViewerErrorEvent]
EventSink = Callable[[ViewerEvent], None]

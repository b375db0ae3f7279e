# errors.py
from typing import Optional


class ViewerError(Exception):
    """Base class for every error the viewer surfaces to its host."""
    kind = "viewerError"

    def __init__(self, message: str, page: Optional[int] = None):
        super().__init__(message)
        self.page = page


class DocumentDecodeError(ViewerError):
    """The supplied bytes could not be opened. Fatal for the whole session."""
    kind = "documentDecode"


class PageRenderError(ViewerError):
    """One page failed to rasterize or measure. Other pages stay usable."""
    kind = "pageRender"

    def __init__(self, message: str, page: int):
        super().__init__(message, page)


class SearchExtractionError(ViewerError):
    """Text extraction failed for one page during background search."""
    kind = "searchExtraction"

    def __init__(self, message: str, page: int):
        super().__init__(message, page)

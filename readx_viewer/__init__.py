from .config import ViewerConfig
from .controller import ViewerController
from .errors import DocumentDecodeError, PageRenderError, SearchExtractionError, ViewerError
from .events import FullscreenChanged, GoBack, PageChanged, ViewerErrorEvent, WordTapped
from .pdf_model import Document, TextRun

__version__ = "0.1.0"

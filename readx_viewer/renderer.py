# renderer.py
from dataclasses import dataclass
from typing import List

from PIL import Image

from .errors import PageRenderError
from .geometry import GeometryMeasurer, WordBox, page_text, pixel_ratio, render_scale
from .logger import logger


@dataclass
class RenderedPage:
    """Everything one materialization produces for a page."""
    page_number: int
    layout_width: float
    layout_height: float
    scale: float
    pixel_ratio: float
    raster: Image.Image
    word_boxes: List[WordBox]
    text: str


class PageRenderer:
    """
    Decodes, rasterizes and measures single pages.
    Work is synchronous; callers decide where to yield around it.
    """
    def __init__(self, document, measurer: GeometryMeasurer, layout_width: float,
                 device_pixel_ratio: float, min_pixel_ratio: float):
        self.document = document
        self.measurer = measurer
        self.layout_width = layout_width
        self.device_pixel_ratio = device_pixel_ratio
        self.min_pixel_ratio = min_pixel_ratio

    def layout_size(self, page_number: int):
        """Reserved on-screen size of a page when fitted to the layout width."""
        page_w, page_h = self.document.page_size(page_number)
        if page_w <= 0:
            return self.layout_width, 0.0
        return self.layout_width, page_h * self.layout_width / page_w

    def render(self, page_number: int) -> RenderedPage:
        page_w, page_h = self.document.page_size(page_number)
        scale = render_scale(page_w, self.layout_width, self.device_pixel_ratio, self.min_pixel_ratio)
        try:
            raster = self.document.rasterize(page_number, scale)
            boxes, text = self.measurer.measure(self.document.text_runs(page_number), scale)
        except PageRenderError:
            raise
        except Exception as e:
            raise PageRenderError(f"Rendering error on page {page_number}: {e}", page_number) from e

        logger.debug("Rendered page %d at scale %.2f (%d words)", page_number, scale, len(boxes))
        layout_height = page_h * self.layout_width / page_w if page_w > 0 else 0.0
        return RenderedPage(
            page_number=page_number,
            layout_width=self.layout_width,
            layout_height=layout_height,
            scale=scale,
            pixel_ratio=pixel_ratio(self.device_pixel_ratio, self.min_pixel_ratio),
            raster=raster,
            word_boxes=boxes,
            text=text,
        )

    def extract_text(self, page_number: int) -> str:
        """Page text without rasterizing, same string render() caches."""
        return page_text(self.document.text_runs(page_number))

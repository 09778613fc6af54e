"""
Stitched comic strip: all panels in one row with captions underneath.

    width  = N*W + (N-1)*P + 2*P
    height = H + C + 2*P

Panel i (0-based, ascending panel index) is drawn at (P + i*(W+P), P).
A panel whose illustration is missing or does not decode is drawn as a
flat fallback box; its caption is still drawn.
"""
import base64
import re
from typing import Iterable, List, Optional, Tuple

from PIL import Image
from pydantic import BaseModel

from .config import (BACKGROUND_COLOR, CAPTION_COLOR, CAPTION_FONT_SIZE, CAPTION_HEIGHT,
                     COMIC_PADDING, FALLBACK_FILL, FALLBACK_LABEL, FALLBACK_TEXT_COLOR,
                     PANEL_HEIGHT, PANEL_WIDTH)
from .models import ComicDocument, ComicPanel
from .raster import RasterBuffer, load_font
from .utils import decode_or_none


class StripLayout(BaseModel):
    panel_width: int = PANEL_WIDTH
    panel_height: int = PANEL_HEIGHT
    caption_height: int = CAPTION_HEIGHT
    padding: int = COMIC_PADDING

    def canvas_size(self, num_panels: int) -> Tuple[int, int]:
        width = num_panels * self.panel_width + (num_panels - 1) * self.padding + 2 * self.padding
        height = self.panel_height + self.caption_height + 2 * self.padding
        return width, height

    def panel_origin(self, position: int) -> Tuple[int, int]:
        return self.padding + position * (self.panel_width + self.padding), self.padding

    def caption_center(self, position: int) -> Tuple[float, float]:
        x, y = self.panel_origin(position)
        return (x + self.panel_width / 2,
                y + self.panel_height + self.caption_height / 2)


def decode_illustration(panel: ComicPanel) -> Optional[Image.Image]:
    if panel.status == "failed":
        return None
    return decode_or_none(panel.image, f"Panel {panel.index} illustration")


def draw_fallback_box(buf: RasterBuffer, x: int, y: int, layout: StripLayout) -> None:
    buf.fill_rect(x, y, layout.panel_width, layout.panel_height, FALLBACK_FILL)
    buf.draw_centered_text(FALLBACK_LABEL,
                           x + layout.panel_width / 2, y + layout.panel_height / 2,
                           load_font(CAPTION_FONT_SIZE), FALLBACK_TEXT_COLOR,
                           max_width=layout.panel_width - 2 * layout.padding)


def render_strip(panels: Iterable[ComicPanel], layout: StripLayout = StripLayout()) -> RasterBuffer:
    """Draw the strip into a fresh raster buffer owned by this call."""
    ordered: List[ComicPanel] = sorted(panels, key=lambda p: p.index)
    if not ordered:
        raise ValueError("No panels to stitch together")
    pending = [p.index for p in ordered if p.is_pending]
    if pending:
        raise ValueError(f"Panels still pending: {pending}")

    width, height = layout.canvas_size(len(ordered))
    buf = RasterBuffer(width, height, BACKGROUND_COLOR)
    font = load_font(CAPTION_FONT_SIZE)

    for pos, panel in enumerate(ordered):
        x, y = layout.panel_origin(pos)
        img = decode_illustration(panel)
        if img is None:
            draw_fallback_box(buf, x, y, layout)
        else:
            buf.blit_scaled(img, x, y, layout.panel_width, layout.panel_height)

        cx, cy = layout.caption_center(pos)
        buf.draw_centered_text(panel.caption, cx, cy, font, CAPTION_COLOR,
                               max_width=layout.panel_width)
    return buf


def stitch_comic(panels: Iterable[ComicPanel], layout: StripLayout = StripLayout()) -> bytes:
    """PNG bytes of the stitched strip."""
    return render_strip(panels, layout).to_png_bytes()


def stitch_document(document: ComicDocument, layout: StripLayout = StripLayout()) -> bytes:
    return stitch_comic(document.panels, layout)


# ------------------ DOWNLOAD ARTIFACT -------------


def comic_data_uri(png: bytes) -> str:
    return "data:image/png;base64," + base64.b64encode(png).decode("utf-8")


def download_filename(title: str) -> str:
    name = re.sub(r"\s+", "_", title.strip()) or "comic"
    return f"{name}_comic.png"

"""
On-screen grid preview.

While a run is still waiting for its script the true panel count is
unknown, so the preview shows ``DEFAULT_PANEL_COUNT`` generic loading tiles.
Once the script is in, it shows one tile per script entry, with loading
tiles for illustrations that are still pending. With no run active (before
the first run, after a reset or after a failure) it shows no tiles. The two cases are kept apart as ``PendingPreview``
and ``ResolvedPreview`` so callers can see which one they are rendering;
the loading-tile count can differ from the final panel count.
"""
import base64
import math
from typing import List, Optional, Union

from PIL import Image
from pydantic import BaseModel

from .compositor import decode_illustration
from .config import (BACKGROUND_COLOR, CAPTION_COLOR, DEFAULT_PANEL_COUNT, FALLBACK_FILL,
                     FALLBACK_TEXT_COLOR)
from .models import ComicPanel
from .pipeline import RunProgress
from .raster import RasterBuffer, load_font

SINGLE_COLUMN_MAX_WIDTH = 640


class PendingPreview(BaseModel):
    count: int


class ResolvedPreview(BaseModel):
    panels: List[ComicPanel]


PreviewState = Union[PendingPreview, ResolvedPreview]


class PreviewTile(BaseModel):
    position: int
    caption: str = ""
    image_uri: Optional[str] = None
    loading: bool = False


def preview_state(progress: RunProgress, default_count: int = DEFAULT_PANEL_COUNT) -> PreviewState:
    # idle, reset and failed runs all have no panels: an empty ResolvedPreview
    if progress.in_progress and progress.panel_count is None:
        return PendingPreview(count=default_count)
    return ResolvedPreview(panels=sorted(progress.panels, key=lambda p: p.index))


def columns_for_width(width: int) -> int:
    return 1 if width < SINGLE_COLUMN_MAX_WIDTH else 2


def preview_tiles(state: PreviewState) -> List[PreviewTile]:
    if isinstance(state, PendingPreview):
        return [PreviewTile(position=i + 1, caption=f"Loading panel {i + 1}...", loading=True)
                for i in range(state.count)]

    tiles = []
    for pos, panel in enumerate(state.panels, start=1):
        uri = None
        if panel.image:
            uri = f"data:{panel.mime_type};base64," + base64.b64encode(panel.image).decode("utf-8")
        tiles.append(PreviewTile(position=pos, caption=panel.caption, image_uri=uri,
                                 loading=panel.is_pending))
    return tiles


def render_preview_grid(state: PreviewState, columns: int = 2, tile_size: int = 300,
                        caption_height: int = 40, pad: int = 16) -> Image.Image:
    """Grid image of the preview tiles: illustration above caption in each tile."""
    if isinstance(state, PendingPreview):
        panels: List[Optional[ComicPanel]] = [None] * state.count
        captions = [t.caption for t in preview_tiles(state)]
    else:
        panels = list(state.panels)
        captions = [p.caption for p in state.panels]

    count = max(len(panels), 1)
    columns = max(1, min(columns, count))
    rows = math.ceil(count / columns)
    cell_h = tile_size + caption_height
    buf = RasterBuffer(columns * tile_size + (columns + 1) * pad,
                       rows * cell_h + (rows + 1) * pad, BACKGROUND_COLOR)
    font = load_font(14)

    for i, panel in enumerate(panels):
        r, c = divmod(i, columns)
        x, y = pad + c * (tile_size + pad), pad + r * (cell_h + pad)
        img = decode_illustration(panel) if panel is not None else None
        if img is not None:
            buf.blit_scaled(img, x, y, tile_size, tile_size)
        else:
            label = "Loading..." if panel is None or panel.is_pending else "Failed to load image"
            buf.fill_rect(x, y, tile_size, tile_size, FALLBACK_FILL)
            buf.draw_centered_text(label, x + tile_size / 2, y + tile_size / 2, font,
                                   FALLBACK_TEXT_COLOR)
        buf.draw_centered_text(captions[i], x + tile_size / 2, y + tile_size + caption_height / 2,
                               font, CAPTION_COLOR, max_width=tile_size)
    return buf.image

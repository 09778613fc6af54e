"""
A small raster buffer over Pillow.

The compositor only needs four primitives: fill a rectangle, blit an image
scaled into a box, draw text centred on a point (wrapped to a maximum
width), and encode the result. Keeping them here means layout code never
touches ImageDraw directly.
"""
from functools import lru_cache
from typing import List, Tuple

from PIL import Image, ImageDraw, ImageFont

from .utils import pil_to_png_bytes

FONT_PATHS = [
    "/System/Library/Fonts/Helvetica.ttc",  # macOS
    "/usr/share/fonts/truetype/dejavu/DejaVuSans.ttf",  # Linux
    "arial.ttf"  # Windows
]


@lru_cache(maxsize=8)
def load_font(size: int):
    for font_path in FONT_PATHS:
        try:
            return ImageFont.truetype(font_path, size)
        except OSError:
            continue
    return ImageFont.load_default()


def wrap_text(text: str, font, max_width: int, draw: ImageDraw.ImageDraw) -> List[str]:
    """
    Wrap text to fit within a maximum width, breaking at word boundaries.
    """
    words = text.split()
    lines = []
    current_line = ""

    for word in words:
        test_line = current_line + (" " if current_line else "") + word
        bbox = draw.textbbox((0, 0), test_line, font=font)
        if bbox[2] - bbox[0] <= max_width:
            current_line = test_line
        else:
            if current_line:
                lines.append(current_line)
                current_line = word
            else:
                # Single word is too long, just add it anyway
                lines.append(word)
                current_line = ""

    if current_line:
        lines.append(current_line)

    return lines


class RasterBuffer:
    def __init__(self, width: int, height: int, background: str = "white"):
        self.image = Image.new("RGB", (width, height), background)
        self.draw = ImageDraw.Draw(self.image)

    @property
    def size(self) -> Tuple[int, int]:
        return self.image.size

    def fill_rect(self, x: int, y: int, w: int, h: int, color: str) -> None:
        # ImageDraw rectangles include the end coordinate
        self.draw.rectangle([x, y, x + w - 1, y + h - 1], fill=color)

    def blit_scaled(self, img: Image.Image, x: int, y: int, w: int, h: int) -> None:
        if img.size != (w, h):
            img = img.resize((w, h), resample=Image.LANCZOS)
        self.image.paste(img.convert("RGB"), (x, y))

    def draw_centered_text(self, text: str, cx: float, cy: float, font, color: str,
                           max_width: int = 0) -> None:
        """Draw text whose bounding block is centred on (cx, cy)."""
        lines = wrap_text(text, font, max_width, self.draw) if max_width else [text]
        if not lines:
            return
        ref = self.draw.textbbox((0, 0), "Ay", font=font)
        line_height = ref[3] - ref[1]
        spacing = max(2, line_height // 5)
        block_height = line_height * len(lines) + spacing * (len(lines) - 1)
        top = cy - block_height / 2

        for i, line in enumerate(lines):
            bbox = self.draw.textbbox((0, 0), line, font=font)
            line_width = bbox[2] - bbox[0]
            x = round(cx - line_width / 2 - bbox[0])
            y = round(top + i * (line_height + spacing) - ref[1])
            self.draw.text((x, y), line, fill=color, font=font)

    def to_png_bytes(self) -> bytes:
        return pil_to_png_bytes(self.image)

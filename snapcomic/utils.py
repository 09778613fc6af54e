import io
from pathlib import Path
from typing import List, Optional

from PIL import Image

from .config import PRINT_PROMPTS

# ------------------ PROMPTS -----------------------
PROMPTS_DIR = Path(__file__).parent / "prompts"


def load_prompt(name: str) -> str:
    p = PROMPTS_DIR / f"{name}.txt"
    if not p.exists():
        raise FileNotFoundError(f"Prompt file not found: {p}")
    return p.read_text(encoding="utf-8")


def fill(template: str, **kv) -> str:
    """Replace only specific placeholders, leaving JSON braces alone."""
    out = template
    for k, v in kv.items():
        out = out.replace(f"{{{k}}}", str(v))
    return out


def clip_words(text: str, limit: int) -> str:
    words = text.split()
    if len(words) <= limit:
        return text.strip()
    return " ".join(words[:limit])


# ------------------ IMAGES ------------------------


def image_bytes_to_pil(b: bytes) -> Image.Image:
    """Decode encoded image bytes into a fully loaded RGB image.

    Raises OSError (including PIL.UnidentifiedImageError) for bytes that
    are not a readable image.
    """
    img = Image.open(io.BytesIO(b))
    img.load()
    return img.convert("RGB")


def decode_or_none(b: Optional[bytes], label: str = "Image") -> Optional[Image.Image]:
    """Like image_bytes_to_pil, but returns None for missing or unreadable bytes."""
    if not b:
        return None
    try:
        return image_bytes_to_pil(b)
    except (OSError, ValueError, Image.DecompressionBombError) as e:
        print(f"   ! {label} failed to decode: {e}. Drawing fallback box.")
        return None


def pil_to_png_bytes(img: Image.Image) -> bytes:
    """Converts a PIL Image object to PNG bytes."""
    buf = io.BytesIO()
    img.save(buf, format="PNG")
    return buf.getvalue()


# --- Simple prompt logger (stdout + file) ---


class PromptLogger:
    def __init__(self, out_file: Optional[Path] = None, echo: bool = PRINT_PROMPTS):
        self.out_file = out_file
        self.echo = echo
        self.lines: List[str] = []

    def log(self, title: str, content: str):
        block = f"\n===== {title} =====\n{content.strip()}\n"
        self.lines.append(block)
        if self.echo:
            print(block)

    def flush(self):
        if self.out_file is None:
            return
        self.out_file.parent.mkdir(parents=True, exist_ok=True)
        self.out_file.write_text("".join(self.lines), encoding="utf-8")

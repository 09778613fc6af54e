from typing import Any, Optional

from .errors import EmptyResponseError
from .genai_client import ComicGenAI
from .models import PanelIllustration
from .utils import PromptLogger


def first_inline_image(resp: Any) -> Optional[PanelIllustration]:
    """First inline image payload across the response candidates, if any."""
    for c in getattr(resp, "candidates", None) or []:
        content = getattr(c, "content", None)
        for part in getattr(content, "parts", None) or []:
            inline = getattr(part, "inline_data", None)
            if inline is not None and getattr(inline, "data", None):
                return PanelIllustration(data=inline.data,
                                         mime_type=getattr(inline, "mime_type", None) or "image/png")
    return None


async def generate_panel_illustration(g: ComicGenAI, image_prompt: str,
                                      logger: Optional[PromptLogger] = None) -> PanelIllustration:
    """Generate one square illustration for a panel description.

    Each call stands alone: no seed, reference image or earlier panel is
    passed along, so characters may drift between panels.
    """
    if not image_prompt or not image_prompt.strip():
        raise ValueError("image_prompt must not be empty")
    logger = logger or PromptLogger()
    logger.log("PANEL_IMAGE_PROMPT", image_prompt)

    resp = await g.generate_image(image_prompt)
    illustration = first_inline_image(resp)
    if illustration is None:
        raise EmptyResponseError("No image data found in the image generation response")
    return illustration

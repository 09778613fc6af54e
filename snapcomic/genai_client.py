from typing import Any, Optional

from google import genai
from google.genai import types

from .config import PANEL_ASPECT_RATIO, ClientConfig
from .errors import TransportError

# ------------------ GENAI WRAPPER ----------------


def response_text(resp: Any) -> str:
    """Text of a generate_content response, or "" when it carries none."""
    text = getattr(resp, "text", None)
    if text:
        return text.strip()
    out = []
    for c in getattr(resp, "candidates", None) or []:
        content = getattr(c, "content", None)
        for p in getattr(content, "parts", None) or []:
            if getattr(p, "text", None):
                out.append(p.text)
    return "\n".join(out).strip()


class ComicGenAI:
    """Async access to the two generation requests the pipeline makes.

    The SDK client is built from an explicit ``ClientConfig``; pass ``client``
    to reuse an existing ``genai.Client`` (or a stand-in with the same
    ``aio.models.generate_content`` coroutine).
    """

    def __init__(self, config: ClientConfig, client: Any = None):
        self.config = config
        self.client = client if client is not None else genai.Client(api_key=config.api_key)

    # Structured output generation from an image + instruction
    async def generate_structured(self, prompt: str, response_schema: Any,
                                  image: Optional[bytes] = None, mime_type: Optional[str] = None,
                                  model: Optional[str] = None) -> str:
        parts = []
        if image is not None:
            parts.append(types.Part.from_bytes(data=image, mime_type=mime_type or "image/png"))
        parts.append(types.Part(text=prompt))
        try:
            resp = await self.client.aio.models.generate_content(
                model=model or self.config.text_model,
                contents=parts,
                config=types.GenerateContentConfig(
                    response_mime_type="application/json",
                    response_schema=response_schema,
                ),
            )
        except Exception as e:
            print(f"[ERROR] Structured generation call failed: {e}")
            raise TransportError(f"Structured generation request failed: {e}") from e
        return response_text(resp)

    async def generate_image(self, prompt: str, aspect_ratio: str = PANEL_ASPECT_RATIO,
                             model: Optional[str] = None) -> Any:
        """Issue one image-generation call and return the raw response."""
        try:
            return await self.client.aio.models.generate_content(
                model=model or self.config.image_model,
                contents=prompt,
                config=types.GenerateContentConfig(
                    response_modalities=["IMAGE"],
                    image_config=types.ImageConfig(aspect_ratio=aspect_ratio),
                ),
            )
        except Exception as e:
            print(f"[ERROR] Image generation call failed: {e}")
            raise TransportError(f"Image generation request failed: {e}") from e

"""
Prompt generation: one uploaded image -> an ordered panel script.

A single structured-generation request sends the image together with the
``comic_script`` instruction and asks for a JSON array of
``{panelNumber, imagePrompt, caption}`` objects. The reply is validated
against ``PanelScriptEntry``, checked to cover panel numbers 1..n exactly
once, and returned sorted by panel number.
"""
import json
from typing import List, Optional

from pydantic import TypeAdapter, ValidationError

from .config import MAX_CAPTION_WORDS, MAX_IMAGE_PROMPT_WORDS
from .errors import EmptyResponseError, ParseError
from .genai_client import ComicGenAI
from .models import PanelScriptEntry
from .utils import PromptLogger, clip_words, fill, load_prompt

SCRIPT_PROMPT_TEMPLATE = load_prompt("comic_script")

SCRIPT_RESPONSE_SCHEMA = list[PanelScriptEntry]
_SCRIPT_ADAPTER = TypeAdapter(SCRIPT_RESPONSE_SCHEMA)


def build_script_prompt(panel_count: int) -> str:
    return fill(SCRIPT_PROMPT_TEMPLATE, panel_count=panel_count)


def parse_panel_script(raw: str, panel_count: int) -> List[PanelScriptEntry]:
    """Validate the model's JSON reply and return entries sorted by panel number."""
    try:
        data = json.loads(raw)
    except json.JSONDecodeError as e:
        raise ParseError(f"Script response is not valid JSON: {e}") from e
    try:
        entries = _SCRIPT_ADAPTER.validate_python(data)
    except ValidationError as e:
        raise ParseError(f"Script response does not match the panel schema: {e}") from e

    numbers = sorted(e.panelNumber for e in entries)
    if numbers != list(range(1, panel_count + 1)):
        raise ParseError(
            f"Expected panel numbers 1..{panel_count}, got {numbers}")

    entries.sort(key=lambda e: e.panelNumber)
    return [_clip_entry(e) for e in entries]


def _clip_entry(entry: PanelScriptEntry) -> PanelScriptEntry:
    image_prompt = clip_words(entry.imagePrompt, MAX_IMAGE_PROMPT_WORDS)
    caption = clip_words(entry.caption, MAX_CAPTION_WORDS)
    if image_prompt != entry.imagePrompt.strip() or caption != entry.caption.strip():
        print(f"   ! Panel {entry.panelNumber} text exceeded its word limit; clipped.")
    return PanelScriptEntry(panelNumber=entry.panelNumber, imagePrompt=image_prompt, caption=caption)


async def generate_panel_script(g: ComicGenAI, image: bytes, mime_type: str, panel_count: int,
                                logger: Optional[PromptLogger] = None) -> List[PanelScriptEntry]:
    if panel_count < 1:
        raise ValueError(f"panel_count must be at least 1, got {panel_count}")
    logger = logger or PromptLogger()

    prompt = build_script_prompt(panel_count)
    logger.log("SCRIPT_GENERATION_PROMPT", prompt)
    raw = await g.generate_structured(prompt, SCRIPT_RESPONSE_SCHEMA, image=image, mime_type=mime_type)
    logger.log("SCRIPT_GENERATION_RESPONSE", raw or "<empty>")

    if not raw:
        raise EmptyResponseError("Empty response or no text content for the comic script")
    return parse_panel_script(raw, panel_count)

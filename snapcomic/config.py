"""
Shared configuration for snapcomic.
Model names, layout constants and the explicit client configuration.
"""
import os
from typing import Mapping, Optional

from dotenv import load_dotenv
from pydantic import BaseModel

from .errors import ConfigurationError

load_dotenv()

# ------------------ MODELS ------------------------
# script planning (image + instruction -> JSON panel list)
TEXT_GENERATION_MODEL = os.getenv("TEXT_GENERATION_MODEL", "gemini-3-flash-preview")
# panel illustrations
IMAGE_GENERATION_MODEL = os.getenv("IMAGE_GENERATION_MODEL", "gemini-2.5-flash-image")
PANEL_ASPECT_RATIO = "1:1"

# ------------------ STRIP LAYOUT ------------------
PANEL_WIDTH = 500
PANEL_HEIGHT = 500
CAPTION_HEIGHT = 50
COMIC_PADDING = 20

BACKGROUND_COLOR = "#f9fafb"
CAPTION_COLOR = "#333333"
CAPTION_FONT_SIZE = 20
FALLBACK_FILL = "#e0e0e0"
FALLBACK_TEXT_COLOR = "#666666"
FALLBACK_LABEL = "Failed to load image"

# ------------------ RUN DEFAULTS ------------------
DEFAULT_PANEL_COUNT = int(os.getenv("DEFAULT_PANEL_COUNT", "4"))
DEFAULT_COMIC_TITLE = os.getenv("DEFAULT_COMIC_TITLE", "My Comic")
MAX_IMAGE_PROMPT_WORDS = 50
MAX_CAPTION_WORDS = 15
PRINT_PROMPTS = os.getenv("PRINT_PROMPTS", "0") == "1"

API_KEY_VARS = ("GEMINI_API_KEY", "GOOGLE_API_KEY", "API_KEY")


class ClientConfig(BaseModel):
    """Credential and model selection for the generation service.

    Built once (usually via ``from_env``) and handed to ``ComicGenAI``;
    nothing reads the credential from the environment after that.
    """
    api_key: str
    text_model: str = TEXT_GENERATION_MODEL
    image_model: str = IMAGE_GENERATION_MODEL

    @classmethod
    def from_env(cls, env: Optional[Mapping[str, str]] = None) -> "ClientConfig":
        env = os.environ if env is None else env
        api_key = next((env[k].strip() for k in API_KEY_VARS if env.get(k, "").strip()), "")
        if not api_key:
            raise ConfigurationError(
                f"Missing API key: set one of {', '.join(API_KEY_VARS)} in the environment or .env")
        return cls(
            api_key=api_key,
            text_model=env.get("TEXT_GENERATION_MODEL", TEXT_GENERATION_MODEL),
            image_model=env.get("IMAGE_GENERATION_MODEL", IMAGE_GENERATION_MODEL),
        )

"""snapcomic: turn one image into an illustrated, captioned comic strip."""
from .compositor import StripLayout, comic_data_uri, download_filename, stitch_comic, stitch_document
from .config import ClientConfig
from .errors import (ComicError, ConfigurationError, EmptyResponseError, ParseError,
                     PipelineError, TransportError)
from .genai_client import ComicGenAI
from .illustrations import generate_panel_illustration
from .models import ComicDocument, ComicPanel, PanelIllustration, PanelScriptEntry, UploadedImage
from .pipeline import RunProgress, run_comic
from .script import generate_panel_script

__all__ = [
    "ClientConfig", "ComicGenAI", "StripLayout",
    "ComicDocument", "ComicPanel", "PanelIllustration", "PanelScriptEntry", "UploadedImage",
    "ComicError", "ConfigurationError", "EmptyResponseError", "ParseError",
    "PipelineError", "TransportError",
    "generate_panel_script", "generate_panel_illustration", "run_comic", "RunProgress",
    "stitch_comic", "stitch_document", "comic_data_uri", "download_filename",
]

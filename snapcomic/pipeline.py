"""
Pipeline orchestration: uploaded image -> script -> illustrations -> ComicDocument.

The run is a list of stages executed one at a time on a single event loop.
The script stage runs exactly once; one illustration stage per script entry
follows in ascending panel order, and each illustration request is awaited
before the next one is issued. The first failing stage discards every panel
collected so far and surfaces as a single ``PipelineError``.
"""
from typing import Any, Awaitable, Callable, Dict, List, NamedTuple, Optional

from .config import DEFAULT_COMIC_TITLE, DEFAULT_PANEL_COUNT
from .errors import PipelineError
from .genai_client import ComicGenAI
from .illustrations import generate_panel_illustration
from .models import ComicDocument, ComicPanel, PanelScriptEntry, UploadedImage
from .script import generate_panel_script
from .utils import PromptLogger

EventListener = Callable[[Dict[str, Any]], None]


class RunProgress:
    """Run-scoped state the preview and the server observe while a run is active."""

    def __init__(self, listener: Optional[EventListener] = None):
        self.listener = listener
        self.in_progress = False
        # None until the script resolves
        self.panel_count: Optional[int] = None
        self.panels: List[ComicPanel] = []
        self.document: Optional[ComicDocument] = None
        self.error: Optional[str] = None

    def emit(self, event: Dict[str, Any]) -> None:
        if self.listener is not None:
            self.listener(event)


class ComicRun:
    def __init__(self, g: ComicGenAI, upload: UploadedImage, panel_count: int,
                 progress: RunProgress, logger: PromptLogger):
        self.g = g
        self.upload = upload
        self.panel_count = panel_count
        self.progress = progress
        self.logger = logger
        self.script: List[PanelScriptEntry] = []
        self.panels: List[ComicPanel] = []

    def discard(self) -> None:
        self.panels = []
        self.progress.panels = []
        self.progress.panel_count = None


class Stage(NamedTuple):
    name: str
    run: Callable[[ComicRun], Awaitable[ComicRun]]


async def execute_stages(stages: List[Stage], run: ComicRun) -> ComicRun:
    """Await each stage in order; stop and discard at the first failure."""
    for stage in stages:
        try:
            run = await stage.run(run)
        except Exception as e:
            run.discard()
            raise PipelineError(stage.name, e) from e
    return run


async def script_stage(run: ComicRun) -> ComicRun:
    run.progress.emit({"type": "step", "step": "script",
                       "message": "Writing the comic script..."})
    run.script = await generate_panel_script(
        run.g, run.upload.data, run.upload.mime_type, run.panel_count, run.logger)

    run.panels = [ComicPanel.pending(entry) for entry in run.script]
    run.progress.panel_count = len(run.script)
    run.progress.panels = list(run.panels)
    run.progress.emit({"type": "step_complete", "step": "script",
                       "count": len(run.script),
                       "captions": [e.caption for e in run.script]})
    print(f"   Panels: {len(run.script)}")
    return run


def illustration_stage(entry: PanelScriptEntry) -> Stage:
    async def _run(run: ComicRun) -> ComicRun:
        run.progress.emit({"type": "step_progress", "step": "panels",
                           "current": entry.panelNumber, "total": len(run.script),
                           "item": f"Panel {entry.panelNumber}"})
        illustration = await generate_panel_illustration(run.g, entry.imagePrompt, run.logger)

        pos = entry.panelNumber - 1
        run.panels[pos] = ComicPanel.ready(entry, illustration)
        run.progress.panels = list(run.panels)
        run.progress.emit({"type": "panel", "index": entry.panelNumber,
                           "caption": entry.caption})
        print(f"   ✓ Panel {entry.panelNumber} -> {entry.caption}")
        return run

    return Stage(f"panel {entry.panelNumber} illustration", _run)


async def run_comic(g: ComicGenAI, upload: UploadedImage, panel_count: int = DEFAULT_PANEL_COUNT,
                    title: str = DEFAULT_COMIC_TITLE, progress: Optional[RunProgress] = None,
                    logger: Optional[PromptLogger] = None) -> ComicDocument:
    """Run one comic generation for an uploaded image.

    Raises PipelineError (with the original stage error as ``cause``) when
    any stage fails; there is no partial document.
    """
    progress = progress or RunProgress()
    logger = logger or PromptLogger()
    run = ComicRun(g, upload, panel_count, progress, logger)

    progress.in_progress = True
    progress.panel_count = None
    progress.panels = []
    progress.document = None
    progress.error = None
    try:
        print(f">> Writing a {panel_count}-panel script for {upload.filename}...")
        run = await execute_stages([Stage("script", script_stage)], run)

        print(">> Rendering panels...")
        run.progress.emit({"type": "step", "step": "panels",
                           "message": "Generating comic panels..."})
        run = await execute_stages([illustration_stage(e) for e in run.script], run)
        run.progress.emit({"type": "step_complete", "step": "panels",
                           "count": len(run.panels)})
    except PipelineError as e:
        print(f"[ERROR] {e}")
        progress.error = str(e)
        raise
    finally:
        progress.in_progress = False
        logger.flush()

    document = ComicDocument(title=title, panels=run.panels)
    progress.document = document
    return document

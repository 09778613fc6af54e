from typing import List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field


class UploadedImage(BaseModel):
    model_config = ConfigDict(frozen=True)

    data: bytes
    filename: str
    mime_type: str


class PanelScriptEntry(BaseModel):
    panelNumber: int = Field(ge=1)
    imagePrompt: str
    caption: str


class PanelIllustration(BaseModel):
    data: bytes
    mime_type: str = "image/png"


class ComicPanel(BaseModel):
    index: int
    caption: str
    # None while the illustration is still being generated
    image: Optional[bytes] = None
    mime_type: str = "image/png"
    status: Literal["pending", "ready", "failed"] = "pending"

    @classmethod
    def pending(cls, entry: PanelScriptEntry) -> "ComicPanel":
        return cls(index=entry.panelNumber, caption=entry.caption)

    @classmethod
    def ready(cls, entry: PanelScriptEntry, illustration: PanelIllustration) -> "ComicPanel":
        return cls(index=entry.panelNumber, caption=entry.caption,
                   image=illustration.data, mime_type=illustration.mime_type,
                   status="ready")

    @classmethod
    def failed(cls, index: int, caption: str) -> "ComicPanel":
        """A panel whose illustration is drawn as the fallback box."""
        return cls(index=index, caption=caption, status="failed")

    @property
    def is_pending(self) -> bool:
        return self.status == "pending"


class ComicDocument(BaseModel):
    title: str
    panels: List[ComicPanel] = Field(default_factory=list)

    @property
    def is_complete(self) -> bool:
        return bool(self.panels) and not any(p.is_pending for p in self.panels)

    def ordered_panels(self) -> List[ComicPanel]:
        return sorted(self.panels, key=lambda p: p.index)

# slidesmith/schemas.py
import uuid
from enum import Enum
from typing import List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from .config import DEFAULT_MODEL, DEFAULT_PROVIDER, LLM_CONFIG

Language = Literal["EN", "ZH_TW"]
Theme = Literal["light", "dark", "system"]


class SlideLayout(str, Enum):
    TITLE_SLIDE = "TITLE_SLIDE"
    TITLE_CONTENT = "TITLE_CONTENT"
    SECTION_HEADER = "SECTION_HEADER"
    TWO_COLUMN = "TWO_COLUMN"
    BLANK = "BLANK"


class Transition(str, Enum):
    NONE = "none"
    FADE = "fade"
    SLIDE_IN = "slide-in"
    ZOOM_IN = "zoom-in"


class Provider(str, Enum):
    GEMINI = "gemini"
    OPENAI = "openai"
    ANTHROPIC = "anthropic"
    GROK = "grok"


def new_slide_id() -> str:
    return f"slide-{uuid.uuid4().hex}"


class Slide(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str = Field(default_factory=new_slide_id)
    title: str = ""
    content: List[str] = Field(default_factory=list)
    layout: SlideLayout = SlideLayout.TITLE_CONTENT
    image_url: Optional[str] = None
    transition: Optional[Transition] = None

    @field_validator("content", mode="before")
    @classmethod
    def _coerce_content(cls, v):
        if v is None:
            return []
        if isinstance(v, str):
            return [v]
        if isinstance(v, (list, tuple)):
            return [str(x) for x in v if x is not None]
        return v

    @field_validator("layout", mode="before")
    @classmethod
    def _fallback_layout(cls, v):
        if isinstance(v, SlideLayout):
            return v
        try:
            return SlideLayout(str(v).strip().upper())
        except ValueError:
            return SlideLayout.TITLE_CONTENT


class SlideUpdate(BaseModel):
    """Partial slide edit; only fields that were explicitly set are applied."""

    title: Optional[str] = None
    content: Optional[List[str]] = None
    layout: Optional[str] = None
    image_url: Optional[str] = None
    transition: Optional[Transition] = None


class TemplateStyles(BaseModel):
    background: str
    title: str
    subtitle: str
    text: str
    accent: str


class Template(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    name: str
    styles: TemplateStyles


class Presentation(BaseModel):
    model_config = ConfigDict(frozen=True)

    title: str
    slides: List[Slide]
    template: Template


class AiConfig(BaseModel):
    provider: Provider = Provider(DEFAULT_PROVIDER)
    model: str = DEFAULT_MODEL
    api_key: Optional[str] = Field(default=None, repr=False)

    @model_validator(mode="after")
    def _model_belongs_to_provider(self):
        models = LLM_CONFIG[self.provider.value]["models"]
        if self.model not in models:
            raise ValueError(f"Model {self.model!r} is not offered by {self.provider.value}")
        return self

# slidesmith/workflow.py
"""
Application flow for one authoring session:

    WELCOME -> PARSING -> GENERATING_OUTLINE -> REVIEWING_OUTLINE
            -> SELECTING_TEMPLATE -> EDITOR

Any failure while turning a document into an outline drops back to WELCOME
with a user-readable message in `error`.
"""
import asyncio
import logging
from enum import Enum
from types import ModuleType
from typing import Callable, List, Optional

from . import llm_clients
from .config import DEFAULT_PRESENTATION_TITLE
from .editor import PresentationEditor
from .errors import MissingApiKeyError, SlidesmithError, WorkflowError
from .outline import OutlineEditor
from .parser import extract_text
from .playback import Playback
from .schemas import Presentation, Slide
from .settings_store import SettingsStore
from .templates import get_template

logger = logging.getLogger(__name__)

API_KEY_MISSING_MESSAGE = "Please enter a valid API Key above to begin."


class AppState(str, Enum):
    WELCOME = "WELCOME"
    PARSING = "PARSING"
    GENERATING_OUTLINE = "GENERATING_OUTLINE"
    REVIEWING_OUTLINE = "REVIEWING_OUTLINE"
    SELECTING_TEMPLATE = "SELECTING_TEMPLATE"
    EDITOR = "EDITOR"


class Workspace:
    def __init__(self, settings: SettingsStore, clients: ModuleType = llm_clients,
                 extract: Callable[[str, bytes], str] = extract_text):
        self.settings = settings
        self._clients = clients
        self._extract = extract
        self.state = AppState.WELCOME
        self.error: Optional[str] = None
        self.outline: Optional[OutlineEditor] = None
        self.confirmed_outline: Optional[List[Slide]] = None
        self.editor: Optional[PresentationEditor] = None
        self.playback: Optional[Playback] = None

    # -------------------------------------------------- settings
    def select_provider(self, provider: str) -> None:
        self.settings.select_provider(provider)
        self.error = None

    def select_model(self, model: str) -> None:
        self.settings.select_model(model)

    def set_api_key(self, provider: str, key: str) -> None:
        self.settings.set_api_key(provider, key)
        if self.error == API_KEY_MISSING_MESSAGE:
            self.error = None

    def set_theme(self, theme: str) -> None:
        self.settings.set_theme(theme)

    # -------------------------------------------------- document -> outline
    async def process_document(self, filename: str, data: bytes, language: str = "EN") -> List[Slide]:
        if self.state in (AppState.PARSING, AppState.GENERATING_OUTLINE):
            raise WorkflowError("An outline is already being generated")
        config = self.settings.ai_config()
        if not config.api_key:
            self.error = API_KEY_MISSING_MESSAGE
            raise MissingApiKeyError(config.provider.value)

        self.error = None
        self.state = AppState.PARSING
        try:
            text = await asyncio.to_thread(self._extract, filename, data)
            self.state = AppState.GENERATING_OUTLINE
            slides = await asyncio.to_thread(self._clients.generate_outline, config, text, language)
        except Exception as e:
            logger.warning("Outline generation failed for %s: %s", filename, e)
            self.error = str(e) if isinstance(e, SlidesmithError) else "An unknown error occurred."
            self.state = AppState.WELCOME
            raise

        self.outline = OutlineEditor(slides)
        self.confirmed_outline = None
        self.state = AppState.REVIEWING_OUTLINE
        return slides

    def require_outline(self) -> OutlineEditor:
        if self.outline is None or self.state != AppState.REVIEWING_OUTLINE:
            raise WorkflowError("No outline is being reviewed")
        return self.outline

    def confirm_outline(self) -> List[Slide]:
        self.confirmed_outline = self.require_outline().confirm()
        self.state = AppState.SELECTING_TEMPLATE
        return self.confirmed_outline

    def back_to_outline(self) -> None:
        if self.outline is None:
            raise WorkflowError("There is no outline to go back to")
        self.state = AppState.REVIEWING_OUTLINE

    def select_template(self, template_id: str) -> Presentation:
        if self.state != AppState.SELECTING_TEMPLATE or not self.confirmed_outline:
            raise WorkflowError("Confirm an outline before choosing a template")
        template = get_template(template_id)
        if template is None:
            raise ValueError(f"Unknown template: {template_id}")
        if self.editor is not None:
            self._close_dialogs()
        presentation = Presentation(
            title=DEFAULT_PRESENTATION_TITLE,
            slides=list(self.confirmed_outline),
            template=template,
        )
        self.editor = PresentationEditor(presentation, ai_config=self.settings.ai_config, clients=self._clients)
        self.playback = None
        self.state = AppState.EDITOR
        logger.info("Created presentation with %d slides using %s", len(presentation.slides), template.id)
        return presentation

    # -------------------------------------------------- editor
    def require_editor(self) -> PresentationEditor:
        if self.editor is None or self.state != AppState.EDITOR:
            raise WorkflowError("No presentation is open")
        return self.editor

    def start_playback(self, from_selection: bool = False) -> Playback:
        self.playback = self.require_editor().present(from_selection)
        return self.playback

    def require_playback(self) -> Playback:
        if self.playback is None or not self.playback.active:
            raise WorkflowError("Playback is not running")
        return self.playback

    def _close_dialogs(self) -> None:
        self.editor.close_refine()
        self.editor.close_image_dialog()

    def new_presentation(self) -> None:
        if self.editor is not None:
            self._close_dialogs()
        self.editor = None
        self.playback = None
        self.outline = None
        self.confirmed_outline = None
        self.error = None
        self.state = AppState.WELCOME

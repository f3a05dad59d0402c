# slidesmith/editor.py
"""
Presentation editing state.

The deck is never mutated in place: every edit builds a new slide list and a
new Presentation, so `editor.presentation is old_snapshot` tells an observer
whether anything changed. Illegal edits (bad index, deleting the last slide)
are ignored rather than raised.

AI round-trips go through transient dialogs (see dialogs.py). They address
their slide by id, so reordering while a dialog is open is harmless.
"""
import logging
from functools import partial
from types import ModuleType
from typing import Any, Callable, NamedTuple, Optional

from . import llm_clients
from .config import NEW_BULLET_TEXT, NEW_SLIDE_CONTENT, NEW_SLIDE_TITLE
from .dialogs import ImageDialog, RefineDialog
from .errors import DialogBusyError, ExportError, MissingApiKeyError, WorkflowError
from .layouts import column_to_absolute, move_item, selection_after_move
from .pdf_renderer import build_pdf
from .playback import Playback
from .pptx_builder import build_pptx
from .schemas import AiConfig, Presentation, Slide, SlideLayout, Transition

logger = logging.getLogger(__name__)

EDITABLE_FIELDS = {"title", "content", "layout", "image_url", "transition"}


class ExportResult(NamedTuple):
    filename: str
    media_type: str
    data: bytes


EXPORTERS = {
    "pdf": (build_pdf, ".pdf", "application/pdf"),
    "pptx": (
        build_pptx,
        ".pptx",
        "application/vnd.openxmlformats-officedocument.presentationml.presentation",
    ),
}


def export_filename(title: str, ext: str) -> str:
    return f"{(title or 'presentation').replace(' ', '_')}{ext}"


def export_presentation(presentation: Presentation, fmt: str) -> ExportResult:
    if fmt not in EXPORTERS:
        raise ValueError(f"Unsupported export format: {fmt}")
    build, ext, media_type = EXPORTERS[fmt]
    try:
        data = build(presentation)
    except Exception as e:
        logger.exception("Export to %s failed", fmt)
        raise ExportError(f"An error occurred while exporting to {fmt.upper()}: {e}") from e
    return ExportResult(export_filename(presentation.title, ext), media_type, data)


class PresentationEditor:
    def __init__(self, presentation: Presentation,
                 ai_config: Optional[Callable[[], AiConfig]] = None,
                 clients: ModuleType = llm_clients):
        self.presentation = presentation
        self.selected_index = 0
        self.refine_dialog: Optional[RefineDialog] = None
        self.image_dialog: Optional[ImageDialog] = None
        self._ai_config = ai_config or AiConfig
        self._clients = clients

    # ------------------------------------------------------------------
    # snapshot helpers
    @property
    def slides(self):
        return self.presentation.slides

    @property
    def selected_slide(self) -> Slide:
        return self.slides[self.selected_index]

    def _in_range(self, index: int) -> bool:
        return 0 <= index < len(self.slides)

    def _replace_slides(self, slides) -> None:
        self.presentation = self.presentation.model_copy(update={"slides": slides})

    def index_of(self, slide_id: str) -> Optional[int]:
        for i, s in enumerate(self.slides):
            if s.id == slide_id:
                return i
        return None

    # ------------------------------------------------------------------
    # deck edits
    def update_slide(self, index: int, **fields: Any) -> bool:
        unknown = set(fields) - EDITABLE_FIELDS
        if unknown:
            raise TypeError(f"Unknown slide fields: {', '.join(sorted(unknown))}")
        if not self._in_range(index):
            logger.debug("Ignoring update of missing slide %d", index)
            return False
        current = self.slides[index]
        updated = Slide.model_validate({**current.model_dump(), **fields})
        slides = list(self.slides)
        slides[index] = updated
        self._replace_slides(slides)
        return True

    def reorder(self, from_index: int, to_index: int) -> bool:
        if from_index == to_index or not (self._in_range(from_index) and self._in_range(to_index)):
            return False
        self._replace_slides(move_item(self.slides, from_index, to_index))
        self.selected_index = selection_after_move(self.selected_index, from_index, to_index)
        return True

    def add_slide(self) -> Slide:
        slide = Slide(title=NEW_SLIDE_TITLE, content=list(NEW_SLIDE_CONTENT), layout=SlideLayout.TITLE_CONTENT)
        self._replace_slides([*self.slides, slide])
        self.selected_index = len(self.slides) - 1
        return slide

    def delete_slide(self, index: int) -> bool:
        # a deck never drops below one slide
        if len(self.slides) <= 1 or not self._in_range(index):
            return False
        self._replace_slides([s for i, s in enumerate(self.slides) if i != index])
        self.selected_index = max(0, self.selected_index - 1)
        return True

    def select(self, index: int) -> bool:
        if not self._in_range(index):
            return False
        self.selected_index = index
        return True

    def set_title(self, text: str) -> None:
        self.presentation = self.presentation.model_copy(update={"title": text})

    def set_transition(self, index: int, transition) -> bool:
        return self.update_slide(index, transition=Transition(transition))

    def remove_image(self, index: int) -> bool:
        return self.update_slide(index, image_url=None)

    # ------------------------------------------------------------------
    # bullet edits
    def edit_content(self, slide_index: int, content_index: int, text: str) -> bool:
        if not self._in_range(slide_index):
            return False
        content = list(self.slides[slide_index].content)
        if not 0 <= content_index < len(content):
            return False
        content[content_index] = text
        return self.update_slide(slide_index, content=content)

    def add_bullet(self, slide_index: int, text: str = NEW_BULLET_TEXT) -> bool:
        if not self._in_range(slide_index):
            return False
        return self.update_slide(slide_index, content=[*self.slides[slide_index].content, text])

    def delete_bullet(self, slide_index: int, content_index: int) -> bool:
        if not self._in_range(slide_index):
            return False
        content = list(self.slides[slide_index].content)
        if not 0 <= content_index < len(content):
            return False
        del content[content_index]
        return self.update_slide(slide_index, content=content)

    def edit_column_bullet(self, slide_index: int, column: str, local_index: int, text: str) -> bool:
        if not self._in_range(slide_index):
            return False
        absolute = column_to_absolute(column, local_index, len(self.slides[slide_index].content))
        if absolute is None:
            return False
        return self.edit_content(slide_index, absolute, text)

    def delete_column_bullet(self, slide_index: int, column: str, local_index: int) -> bool:
        if not self._in_range(slide_index):
            return False
        absolute = column_to_absolute(column, local_index, len(self.slides[slide_index].content))
        if absolute is None:
            return False
        return self.delete_bullet(slide_index, absolute)

    # ------------------------------------------------------------------
    # AI round-trips
    def _require_ai_config(self) -> AiConfig:
        config = self._ai_config()
        if not config.api_key:
            raise MissingApiKeyError(config.provider.value)
        return config

    def _slide_or_raise(self, index: int) -> Slide:
        if not self._in_range(index):
            raise IndexError(f"Presentation has no slide {index}")
        return self.slides[index]

    def open_refine(self, slide_index: int, content_index: int, text: Optional[str] = None) -> RefineDialog:
        """Start refining the title (content_index == -1) or one bullet. Needs a running event loop."""
        if self.refine_dialog is not None:
            raise DialogBusyError("A refine dialog is already open")
        slide = self._slide_or_raise(slide_index)
        if content_index == -1:
            original = slide.title
        elif 0 <= content_index < len(slide.content):
            original = slide.content[content_index]
        else:
            raise IndexError(f"Slide {slide_index} has no content entry {content_index}")
        if text is None:
            text = original
        config = self._require_ai_config()

        dialog = RefineDialog(slide.id, content_index, text, field_text=original)
        dialog.start_refine(partial(self._clients.refine_text, config, text))
        self.refine_dialog = dialog
        logger.info("Refining %s of slide %d", "title" if content_index == -1 else f"point {content_index}", slide_index)
        return dialog

    def accept_refine(self) -> bool:
        """Write the refined text into its field and close the dialog. No-op until a result exists."""
        dialog = self.refine_dialog
        if dialog is None or dialog.result is None:
            return False
        self.close_refine()
        index = self.index_of(dialog.slide_id)
        if index is None:
            logger.info("Refined slide was deleted; dropping result")
            return False
        if dialog.targets_title:
            return self.update_slide(index, title=dialog.result)
        content = self.slides[index].content
        if dialog.content_index >= len(content) or content[dialog.content_index] != dialog.field_text:
            logger.info("Refined point was edited or removed; dropping result")
            return False
        return self.edit_content(index, dialog.content_index, dialog.result)

    def close_refine(self) -> None:
        if self.refine_dialog is not None:
            self.refine_dialog.close()
            self.refine_dialog = None

    def open_image_dialog(self, slide_index: int) -> ImageDialog:
        if self.image_dialog is not None:
            raise DialogBusyError("An image dialog is already open")
        slide = self._slide_or_raise(slide_index)
        self.image_dialog = ImageDialog(slide.id)
        return self.image_dialog

    async def generate_image(self, prompt: str) -> Optional[str]:
        """
        Generate an image for the open dialog's slide and store it as the
        slide's image_url. Returns None when the dialog was closed before the
        result arrived; provider failures are raised and the slide is untouched.
        """
        dialog = self.image_dialog
        if dialog is None:
            raise WorkflowError("No image dialog is open")
        config = self._require_ai_config()
        dialog.start_generation(prompt, partial(self._clients.generate_image, config))
        await dialog.wait()

        if dialog.error is not None:
            raise dialog.error
        if not dialog.is_open or dialog.result is None:
            return None
        index = self.index_of(dialog.slide_id)
        if index is not None:
            self.update_slide(index, image_url=dialog.result)
        if self.image_dialog is dialog:
            self.close_image_dialog()
        return dialog.result

    def close_image_dialog(self) -> None:
        if self.image_dialog is not None:
            self.image_dialog.close()
            self.image_dialog = None

    # ------------------------------------------------------------------
    # read-only consumers
    def export(self, fmt: str) -> ExportResult:
        return export_presentation(self.presentation, fmt)

    def present(self, from_selection: bool = False) -> Playback:
        return Playback(self.presentation, self.selected_index if from_selection else 0)

# slidesmith/outline.py
import logging
from typing import List

from .schemas import Slide

logger = logging.getLogger(__name__)


class OutlineEditor:
    """Draft slide list reviewed by the user before a template is chosen."""

    def __init__(self, slides: List[Slide]):
        self.slides: List[Slide] = list(slides)

    def set_title(self, slide_index: int, text: str) -> None:
        if not 0 <= slide_index < len(self.slides):
            raise IndexError(f"Outline has no slide {slide_index}")
        slides = list(self.slides)
        slides[slide_index] = slides[slide_index].model_copy(update={"title": text})
        self.slides = slides

    def set_content_point(self, slide_index: int, content_index: int, text: str) -> None:
        if not 0 <= slide_index < len(self.slides):
            logger.debug("Ignoring edit of missing outline slide %d", slide_index)
            return
        slide = self.slides[slide_index]
        if not 0 <= content_index < len(slide.content):
            logger.debug("Ignoring edit of missing point %d on outline slide %d", content_index, slide_index)
            return
        content = list(slide.content)
        content[content_index] = text
        slides = list(self.slides)
        slides[slide_index] = slide.model_copy(update={"content": content})
        self.slides = slides

    def confirm(self) -> List[Slide]:
        return list(self.slides)

# slidesmith/playback.py
import logging
from typing import Optional

from .schemas import Presentation, Slide, Transition

logger = logging.getLogger(__name__)

NEXT_KEYS = ("ArrowRight", " ")
PREVIOUS_KEYS = ("ArrowLeft",)
EXIT_KEYS = ("Escape",)


class Playback:
    """Read-only walk through a deck snapshot. exit() is terminal."""

    def __init__(self, presentation: Presentation, start_index: int = 0):
        self.presentation = presentation
        last = len(presentation.slides) - 1
        self.index = min(max(start_index, 0), last)
        self.active = True

    @property
    def slide_count(self) -> int:
        return len(self.presentation.slides)

    @property
    def current_slide(self) -> Slide:
        return self.presentation.slides[self.index]

    @property
    def current_transition(self) -> Transition:
        return self.current_slide.transition or Transition.NONE

    @property
    def position(self) -> str:
        return f"{self.index + 1} / {self.slide_count}"

    @property
    def at_start(self) -> bool:
        return self.index == 0

    @property
    def at_end(self) -> bool:
        return self.index == self.slide_count - 1

    def next(self) -> int:
        if self.active:
            self.index = min(self.index + 1, self.slide_count - 1)
        return self.index

    def previous(self) -> int:
        if self.active:
            self.index = max(self.index - 1, 0)
        return self.index

    def exit(self) -> None:
        if self.active:
            logger.debug("Leaving playback at slide %d", self.index)
        self.active = False

    def handle_key(self, key: str) -> Optional[int]:
        if key in NEXT_KEYS:
            return self.next()
        if key in PREVIOUS_KEYS:
            return self.previous()
        if key in EXIT_KEYS:
            self.exit()
        return None

    def to_dict(self) -> dict:
        return {
            "active": self.active,
            "index": self.index,
            "position": self.position,
            "transition": self.current_transition.value,
            "slide": self.current_slide.model_dump(mode="json"),
        }

# slidesmith/dialogs.py
"""
Transient AI dialogs.

A dialog owns exactly one remote request at a time. The blocking client call
runs in a worker thread; streamed partials are handed back to the event loop
before they touch the dialog. Anything arriving after close() is dropped.
The remote call itself is not aborted, it just finishes into the void.
"""
import asyncio
import logging
from typing import Any, Callable, Dict, Optional

from .errors import DialogBusyError, ProviderError, SlidesmithError

logger = logging.getLogger(__name__)


class AiDialog:
    kind = "ai"

    def __init__(self, slide_id: str):
        self.slide_id = slide_id
        self.is_open = True
        self.result: Optional[str] = None
        self.error: Optional[SlidesmithError] = None
        self._task: Optional[asyncio.Task] = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    @property
    def done(self) -> bool:
        return self.result is not None or self.error is not None

    def start(self, call: Callable[[], str]) -> None:
        """Schedule `call` in a worker thread. Must be called from a running event loop."""
        if not self.is_open:
            raise DialogBusyError(f"The {self.kind} dialog is closed")
        if self.running:
            raise DialogBusyError(f"The {self.kind} request is still running")
        self.result = None
        self.error = None
        self._task = asyncio.get_running_loop().create_task(self._run(call))

    async def _run(self, call: Callable[[], str]) -> None:
        try:
            result = await asyncio.to_thread(call)
        except SlidesmithError as e:
            if not self.is_open:
                logger.info("Dropping %s error for a closed dialog: %s", self.kind, e)
                return
            logger.warning("%s request failed: %s", self.kind, e)
            self.error = e
            return
        except Exception as e:
            logger.exception("%s request failed unexpectedly", self.kind)
            if self.is_open:
                self.error = ProviderError(f"The {self.kind} request failed: {e.__class__.__name__}")
            return
        if not self.is_open:
            logger.info("Dropping %s result for a closed dialog", self.kind)
            return
        self._apply_result(result)

    def _apply_result(self, result: str) -> None:
        self.result = result

    async def wait(self) -> Optional[str]:
        if self._task is not None:
            await self._task
        return self.result

    def close(self) -> None:
        self.is_open = False

    def to_dict(self) -> Dict[str, Any]:
        return {
            "kind": self.kind,
            "slide_id": self.slide_id,
            "open": self.is_open,
            "running": self.running,
            "result": self.result,
            "error": str(self.error) if self.error else None,
        }


class RefineDialog(AiDialog):
    """Preview of an AI rewrite of one title (content_index == -1) or bullet."""

    kind = "refine"

    def __init__(self, slide_id: str, content_index: int, original_text: str,
                 field_text: Optional[str] = None):
        super().__init__(slide_id)
        self.content_index = content_index
        self.original_text = original_text
        # what the target field held when the dialog opened
        self.field_text = original_text if field_text is None else field_text
        self.preview = ""

    @property
    def targets_title(self) -> bool:
        return self.content_index == -1

    def start_refine(self, refine: Callable[[Callable[[str], None]], str]) -> None:
        loop = asyncio.get_running_loop()

        def on_chunk(text: str) -> None:
            loop.call_soon_threadsafe(self._show_partial, text)

        self.start(lambda: refine(on_chunk))

    def _show_partial(self, text: str) -> None:
        if self.is_open and not self.done:
            self.preview = text

    def _apply_result(self, result: str) -> None:
        self.preview = result
        self.result = result

    def to_dict(self) -> Dict[str, Any]:
        data = super().to_dict()
        data.update(
            content_index=self.content_index,
            original=self.original_text,
            preview=self.preview,
        )
        return data


class ImageDialog(AiDialog):
    kind = "image"

    def __init__(self, slide_id: str):
        super().__init__(slide_id)
        self.prompt: Optional[str] = None

    def start_generation(self, prompt: str, generate: Callable[[str], str]) -> None:
        self.start(lambda: generate(prompt))
        self.prompt = prompt

    def to_dict(self) -> Dict[str, Any]:
        data = super().to_dict()
        data["prompt"] = self.prompt
        return data

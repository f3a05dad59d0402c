import base64
import json
import threading
from io import BytesIO

import pytest
from PIL import Image

from slidesmith.editor import PresentationEditor
from slidesmith.schemas import AiConfig, Presentation, Provider, Slide, SlideLayout
from slidesmith.settings_store import SettingsStore
from slidesmith.templates import TEMPLATES


def png_data_uri(size=(40, 20), color="red") -> str:
    buf = BytesIO()
    Image.new("RGB", size, color).save(buf, format="PNG")
    return "data:image/png;base64," + base64.b64encode(buf.getvalue()).decode("ascii")


class FakeResponse:
    """Just enough of requests.Response for the provider wrappers."""

    def __init__(self, status_code=200, payload=None, text=None, lines=None):
        self.status_code = status_code
        self._payload = payload
        self.text = text if text is not None else json.dumps(payload)
        self._lines = lines or []
        self.encoding = None
        self.closed = False

    def json(self):
        if self._payload is None:
            raise ValueError("No JSON object could be decoded")
        return self._payload

    def iter_lines(self, decode_unicode=False):
        yield from self._lines

    def close(self):
        self.closed = True


class FakeClients:
    """Stand-in for slidesmith.llm_clients; `release` gates the blocking calls."""

    def __init__(self, outline=None, refined="Refined text", image=None):
        self.outline = outline
        self.refined = refined
        self.image = image or png_data_uri()
        self.error = None
        self.release = threading.Event()
        self.release.set()
        self.calls = []

    def generate_outline(self, config, document_text, language="EN"):
        self.calls.append(("outline", document_text, language))
        if self.error:
            raise self.error
        if self.outline is not None:
            return list(self.outline)
        return [
            Slide(title="Quarterly Results", content=["Revenue review"], layout=SlideLayout.TITLE_SLIDE),
            Slide(title="Highlights", content=["Q1 revenue grew 20%", "Q2 flat", "Q3 strong rebound"]),
        ]

    def refine_text(self, config, text, on_chunk=None):
        self.calls.append(("refine", text))
        self.release.wait(5)
        if self.error:
            raise self.error
        if on_chunk is not None:
            on_chunk(self.refined[: len(self.refined) // 2])
            on_chunk(self.refined)
        return self.refined

    def generate_image(self, config, prompt):
        self.calls.append(("image", prompt))
        self.release.wait(5)
        if self.error:
            raise self.error
        return self.image


@pytest.fixture
def template():
    return TEMPLATES[0]


@pytest.fixture
def slides():
    return [
        Slide(title="Intro", content=["Welcome"], layout=SlideLayout.TITLE_SLIDE),
        Slide(title="Agenda", content=["One", "Two", "Three"]),
        Slide(title="Compare", content=["a", "b", "c", "d", "e"], layout=SlideLayout.TWO_COLUMN),
    ]


@pytest.fixture
def presentation(slides, template):
    return Presentation(title="My Deck", slides=slides, template=template)


@pytest.fixture
def ai_config():
    return AiConfig(provider=Provider.GEMINI, model="gemini-2.5-flash", api_key="test-key")


@pytest.fixture
def fake_clients():
    return FakeClients()


@pytest.fixture
def editor(presentation, ai_config, fake_clients):
    return PresentationEditor(presentation, ai_config=lambda: ai_config, clients=fake_clients)


@pytest.fixture
def settings(tmp_path):
    return SettingsStore(str(tmp_path / "settings.json"))

# slidesmith/config.py
import os
from pathlib import Path

MAX_FILE_MB = 20
ALLOWED_EXTS = {".txt", ".md", ".pdf", ".docx"}

DEFAULT_PROVIDER = "gemini"
DEFAULT_MODEL = "gemini-2.5-flash"

# provider -> display name + supported models (first model is the provider default)
LLM_CONFIG = {
    "gemini": {
        "name": "Gemini",
        "models": ["gemini-2.5-flash", "gemini-2.5-pro"],
    },
    "openai": {
        "name": "OpenAI",
        "models": ["gpt-4o", "gpt-4o-mini", "gpt-5"],
    },
    "anthropic": {
        "name": "Anthropic",
        "models": ["claude-3-7-sonnet-latest", "claude-sonnet-4-0"],
    },
    "grok": {
        "name": "Grok",
        "models": ["grok-3", "grok-4"],
    },
}

LANGUAGES = {
    "EN": "English",
    "ZH_TW": "Traditional Chinese (繁體中文)",
}

AI_TIMEOUT_SECONDS = float(os.getenv("SLIDESMITH_AI_TIMEOUT", "60"))

SETTINGS_PATH = os.getenv(
    "SLIDESMITH_SETTINGS",
    str(Path.home() / ".slidesmith" / "settings.json"),
)
LOG_LEVEL = os.getenv("SLIDESMITH_LOG_LEVEL", "INFO")
LOG_PATH = os.getenv("SLIDESMITH_LOG_PATH")

DEFAULT_PRESENTATION_TITLE = "My AI Presentation"
UNTITLED_SLIDE_TITLE = "Untitled Slide"
NEW_SLIDE_TITLE = "New Slide"
NEW_SLIDE_CONTENT = ["Your content here."]
NEW_BULLET_TEXT = "New bullet point."

# logical canvas used for PDF rasterization
CANVAS_WIDTH = 1280
CANVAS_HEIGHT = 720

# TrueType font for PDF text; must cover CJK for ZH_TW decks
FONT_PATH = os.getenv("SLIDESMITH_FONT")
FONT_CANDIDATES = [
    "/usr/share/fonts/opentype/noto/NotoSansCJK-Regular.ttc",  # Debian/Ubuntu
    "/usr/share/fonts/noto-cjk/NotoSansCJK-Regular.ttc",  # Arch/Fedora
    "/usr/share/fonts/google-noto-cjk/NotoSansCJK-Regular.ttc",
    "/usr/share/fonts/truetype/wqy/wqy-microhei.ttc",
    "/System/Library/Fonts/PingFang.ttc",  # macOS
    "/System/Library/Fonts/STHeiti Medium.ttc",
    "C:\\Windows\\Fonts\\msjh.ttc",  # Windows
    "C:\\Windows\\Fonts\\msyh.ttc",
    "/usr/share/fonts/truetype/dejavu/DejaVuSans.ttf",  # Latin only
]

HOST = os.getenv("SLIDESMITH_HOST", "127.0.0.1")
PORT = int(os.getenv("SLIDESMITH_PORT", "8000"))

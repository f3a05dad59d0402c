# slidesmith/media.py
import base64
import binascii
import logging
import re
from io import BytesIO
from typing import Optional
from urllib.parse import unquote_to_bytes

from PIL import Image

logger = logging.getLogger(__name__)

_DATA_URI = re.compile(r"^data:(?P<mime>[^;,]*)(?P<b64>;base64)?,(?P<data>.*)$", re.DOTALL)


def decode_data_uri(url: Optional[str]) -> Optional[bytes]:
    """
    Raw bytes of a data: URI, or None for anything else.
    External image URLs are never fetched at export time.
    """
    if not url:
        return None
    m = _DATA_URI.match(url)
    if not m:
        return None
    if not m.group("b64"):
        return unquote_to_bytes(m.group("data"))
    try:
        return base64.b64decode(m.group("data"))
    except (binascii.Error, ValueError):
        logger.warning("Ignoring image with invalid base64 payload")
        return None


def load_image(url: Optional[str]) -> Optional[Image.Image]:
    raw = decode_data_uri(url)
    if raw is None:
        return None
    try:
        img = Image.open(BytesIO(raw))
        img.load()
    except (OSError, Image.DecompressionBombError) as e:
        logger.warning("Ignoring unreadable slide image: %s", e)
        return None
    if img.mode not in ("RGB", "L"):
        img = img.convert("RGB")
    return img
